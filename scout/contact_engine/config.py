"""
Configuration for the contact engine.

Operational knobs (timeouts, delays, limits) are env-driven so a deployment
can tune them without a code change. The keyword priority list used to rank
candidate emails can be overridden per deployment with SCOUT_EMAIL_KEYWORDS
(comma-separated, highest priority first).
"""

from __future__ import annotations

import os
from typing import Dict, List, Tuple

from dotenv import load_dotenv

load_dotenv()


# ---------------------------------------------------------
# Helper functions for environment variables
# ---------------------------------------------------------
def _env_int(key: str, default: int) -> int:
    try:
        return int(str(os.getenv(key, default)).strip())
    except Exception:
        return default


def _env_float(key: str, default: float) -> float:
    try:
        return float(str(os.getenv(key, default)).strip())
    except Exception:
        return default


def _env_bool(key: str, default: bool = False) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_str(key: str, default: str = "") -> str:
    return str(os.getenv(key, default) or default).strip()


def _env_list(key: str, default: List[str]) -> List[str]:
    raw = os.environ.get(key)
    if not raw or not raw.strip():
        return list(default)
    items = [p.strip().lower() for p in raw.split(",")]
    return [p for p in items if p] or list(default)


# ---------------------------------------------------------
# Credentials
# ---------------------------------------------------------
SERPER_API_KEY = _env_str("SERPER_API_KEY")
HUNTER_API_KEY = _env_str("HUNTER_API_KEY")


# ---------------------------------------------------------
# Batch / rate limiting
# ---------------------------------------------------------
RATE_LIMIT_ACTION = "find-company-emails"
RATE_LIMIT_PER_HOUR = _env_int("SCOUT_RATE_LIMIT_PER_HOUR", 20)
RATE_LIMIT_WINDOW_S = 3600

MAX_COMPANIES_MIN = 1
MAX_COMPANIES_MAX = 150
MAX_COMPANIES_DEFAULT = 25

# Pause between companies (paid search + directory APIs).
COMPANY_DELAY_S = _env_float("SCOUT_COMPANY_DELAY_S", 1.5)

# Temporary blacklist window for companies that yielded nothing.
BLACKLIST_RETRY_HOURS = _env_int("SCOUT_BLACKLIST_RETRY_HOURS", 24)

VERIFY_MX = _env_bool("SCOUT_VERIFY_MX", True)


# ---------------------------------------------------------
# Page fetching / scraping
# ---------------------------------------------------------
PAGE_TIMEOUT_S = _env_float("SCOUT_PAGE_TIMEOUT_S", 5.0)
PAGE_DELAY_S = _env_float("SCOUT_PAGE_DELAY_S", 0.5)
PAGE_TEXT_MAX_CHARS = _env_int("SCOUT_PAGE_TEXT_MAX_CHARS", 4000)

USER_AGENT = _env_str(
    "SCOUT_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

PAGE_HEADERS: Dict[str, str] = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
}

# Visited in order; the crawl stops at the first page yielding an email.
SCRAPE_PATHS: Tuple[str, ...] = (
    "/",
    "/contact",
    "/recrutement",
    "/careers",
)

# A page is a careers page when at least this many distinct terms co-occur.
CAREER_TERMS: Tuple[str, ...] = (
    "recrutement",
    "recrute",
    "offres d'emploi",
    "offre d'emploi",
    "emploi",
    "candidature",
    "candidature spontanée",
    "rejoignez-nous",
    "rejoindre",
    "carrière",
    "carrières",
    "careers",
    "career",
    "jobs",
    "job openings",
    "hiring",
    "join us",
    "join our team",
)
CAREER_TERMS_MIN_HITS = 2


# ---------------------------------------------------------
# Website search
# ---------------------------------------------------------
SERPER_SEARCH_URL = "https://google.serper.dev/search"
SEARCH_TIMEOUT_S = _env_float("SCOUT_SEARCH_TIMEOUT_S", 10.0)
SEARCH_NUM_RESULTS = 5
SEARCH_KEEP_TOP = 3

# Directories / social networks / registries: never a company's own site.
WEBSITE_BLACKLIST_DOMAINS: Tuple[str, ...] = (
    "linkedin.com",
    "facebook.com",
    "instagram.com",
    "twitter.com",
    "x.com",
    "youtube.com",
    "tiktok.com",
    "wikipedia.org",
    "societe.com",
    "pappers.fr",
    "verif.com",
    "infogreffe.fr",
    "pagesjaunes.fr",
    "annuaire-entreprises.data.gouv.fr",
    "manageo.fr",
    "kompass.com",
    "corporama.com",
    "score3.fr",
    "entreprises.lefigaro.fr",
    "indeed.com",
    "indeed.fr",
    "glassdoor.fr",
    "glassdoor.com",
    "welcometothejungle.com",
    "hellowork.com",
    "google.com",
)

NONE_TOKEN = "AUCUN"


# ---------------------------------------------------------
# Directory lookup (Hunter.io domain search)
# ---------------------------------------------------------
HUNTER_DOMAIN_SEARCH_URL = "https://api.hunter.io/v2/domain-search"
DIRECTORY_TIMEOUT_S = _env_float("SCOUT_DIRECTORY_TIMEOUT_S", 15.0)
DIRECTORY_LIMIT = _env_int("SCOUT_DIRECTORY_LIMIT", 10)

# Highest priority first; unknown departments sort after all of these.
DEPARTMENT_PRIORITY: Tuple[Tuple[str, ...], ...] = (
    ("hr",),
    ("management", "executive"),
    ("sales",),
    ("support",),
    ("communication",),
)


# ---------------------------------------------------------
# Email ranking (shared by directory ranking and final selection)
# ---------------------------------------------------------
DEFAULT_EMAIL_KEYWORDS: List[str] = [
    # recruiting / HR first
    "recrutement",
    "recruitment",
    "recrute",
    "rh",
    "hr",
    "jobs",
    "job",
    "emploi",
    "careers",
    "carriere",
    "candidature",
    "talent",
    # generic contact
    "contact",
    "info",
    "accueil",
    "hello",
    "bonjour",
    "office",
]
EMAIL_KEYWORDS: List[str] = _env_list("SCOUT_EMAIL_KEYWORDS", DEFAULT_EMAIL_KEYWORDS)

# Company-name tokens shorter than this never count as a match.
NAME_TOKEN_MIN_LEN = 4


# ---------------------------------------------------------
# AI extraction
# ---------------------------------------------------------
AI_TEXT_MAX_CHARS = _env_int("SCOUT_AI_TEXT_MAX_CHARS", 8000)
