"""
Website resolution: one search call, host blacklist, AI tie-break.

    0 candidates  -> None
    1 candidate   -> that site, no model call
    2-3           -> the model picks an index (or AUCUN)
"""

from __future__ import annotations

import logging
import re
import urllib.parse
from typing import List, Optional

import requests

from scout.brain_gateway import BrainGateway, brain_gateway
from scout.contact_engine.config import (
    NONE_TOKEN,
    SEARCH_KEEP_TOP,
    SEARCH_NUM_RESULTS,
    SEARCH_TIMEOUT_S,
    SERPER_API_KEY,
    SERPER_SEARCH_URL,
    WEBSITE_BLACKLIST_DOMAINS,
)
from scout.contact_engine.crawler.page_fetcher import bare_domain, normalize_root_url
from scout.contact_engine.models import CompanyIdentity, Parsed, WebsiteCandidate

logger = logging.getLogger(__name__)

DISAMBIGUATION_SYSTEM_PROMPT = f"""
You identify the official website of a French company among search results.

Answer with ONE token only:
- the number of the official website (1, 2, 3...), or
- {NONE_TOKEN} if none of them is the company's own website.

Directories, registries, job boards, press articles and social networks are
never the official website. No explanation.
""".strip()

_INT_RE = re.compile(r"\d+")


def build_query(company: CompanyIdentity) -> str:
    parts = [company.name.strip()]
    if company.city and company.city.strip():
        parts.append(company.city.strip())
    parts.append("site officiel")
    return " ".join(parts)


def is_blacklisted_host(url: str, blacklist=WEBSITE_BLACKLIST_DOMAINS) -> bool:
    try:
        host = (urllib.parse.urlparse(url if "://" in url else "https://" + url).hostname or "").lower()
    except Exception:
        return True
    if not host:
        return True
    for dom in blacklist:
        if host == dom or host.endswith("." + dom):
            return True
    return False


def filter_candidates(organic, keep: int = SEARCH_KEEP_TOP) -> List[WebsiteCandidate]:
    """Drop blacklisted hosts, dedupe by domain (www. or not), keep the first `keep`."""
    out: List[WebsiteCandidate] = []
    seen = set()
    for row in organic or []:
        if not isinstance(row, dict):
            continue
        link = str(row.get("link") or "").strip()
        if not link or is_blacklisted_host(link):
            continue
        root = normalize_root_url(link)
        key = bare_domain(root)
        if not root or key in seen:
            continue
        seen.add(key)
        out.append(
            WebsiteCandidate(
                url=root,
                title=str(row.get("title") or "").strip(),
                snippet=str(row.get("snippet") or "").strip(),
            )
        )
        if len(out) >= keep:
            break
    return out


def parse_choice(answer: str, n_candidates: int) -> Parsed:
    """
    Parsed.ok(index) with a 0-based index, Parsed.ok(None) for AUCUN,
    Parsed.malformed for anything else (non-numeric, out of range).
    """
    text = (answer or "").strip().upper()
    if not text:
        return Parsed.malformed("empty")
    if NONE_TOKEN in text:
        return Parsed.ok(None)
    m = _INT_RE.search(text)
    if not m:
        return Parsed.malformed(f"non-numeric answer {answer!r}")
    idx = int(m.group(0))
    if not 1 <= idx <= n_candidates:
        return Parsed.malformed(f"index out of range {idx}")
    return Parsed.ok(idx - 1)


class WebsiteResolver:
    def __init__(
        self,
        api_key: Optional[str] = None,
        gateway: Optional[BrainGateway] = None,
        http=None,
        timeout: float = SEARCH_TIMEOUT_S,
    ):
        self.api_key = SERPER_API_KEY if api_key is None else api_key
        self.gateway = gateway or brain_gateway
        self.http = http or requests
        self.timeout = timeout

    def search(self, query: str) -> List[dict]:
        """Raw organic results; raises on transport / HTTP / decode errors."""
        r = self.http.post(
            SERPER_SEARCH_URL,
            headers={"X-API-KEY": self.api_key, "Content-Type": "application/json"},
            json={"q": query, "num": SEARCH_NUM_RESULTS, "gl": "fr", "hl": "fr"},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return list((r.json() or {}).get("organic") or [])

    def resolve(self, company: CompanyIdentity) -> Optional[str]:
        """Official website root url, or None. Never raises."""
        if company.website_url:
            known = normalize_root_url(company.website_url)
            if known:
                return known

        if not self.api_key:
            logger.warning("Website search skipped (SERPER_API_KEY not set) company=%s", company.name)
            return None

        query = build_query(company)
        try:
            organic = self.search(query)
        except Exception as e:
            logger.warning("Website search failed company=%s err=%s", company.name, e)
            return None

        candidates = filter_candidates(organic)
        logger.info("Website search company=%s raw=%s kept=%s", company.name, len(organic), len(candidates))

        if not candidates:
            return None
        if len(candidates) == 1:
            return candidates[0].url

        return self.disambiguate(company, candidates)

    def disambiguate(self, company: CompanyIdentity, candidates: List[WebsiteCandidate]) -> Optional[str]:
        """Ask the model to pick; any failure falls back to the first candidate."""
        fallback = candidates[0].url

        if not self.gateway.is_configured():
            logger.warning("Disambiguation skipped (no LLM credentials) company=%s", company.name)
            return fallback

        lines = [f"Company: {company.name}"]
        if company.city:
            lines.append(f"City: {company.city}")
        if company.activity_label:
            lines.append(f"Activity: {company.activity_label}")
        lines.append("")
        lines.append("Search results:")
        for i, c in enumerate(candidates, start=1):
            lines.append(f"{i}. {c.url} | {c.title} | {c.snippet}")

        try:
            answer = self.gateway.generate(
                prompt="\n".join(lines),
                system=DISAMBIGUATION_SYSTEM_PROMPT,
                context_type="website_disambiguation",
                company_id=company.id,
                temperature=0,
                max_tokens=5,
            )
        except Exception as e:
            logger.warning("Disambiguation failed company=%s err=%s", company.name, e)
            return fallback

        parsed = parse_choice(answer, len(candidates))
        if not parsed.is_ok:
            logger.warning("Disambiguation malformed company=%s reason=%s", company.name, parsed.error)
            return fallback
        if parsed.value is None:
            logger.info("Disambiguation: no official site company=%s", company.name)
            return None
        return candidates[parsed.value].url
