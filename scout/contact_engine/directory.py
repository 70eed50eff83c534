"""
Domain directory lookup (Hunter.io domain search).

Maps a website to the generic mailboxes the directory knows for its domain,
ranked so the most useful address for outreach comes first.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import requests

from scout.contact_engine.config import (
    DEPARTMENT_PRIORITY,
    DIRECTORY_LIMIT,
    DIRECTORY_TIMEOUT_S,
    EMAIL_KEYWORDS,
    HUNTER_API_KEY,
    HUNTER_DOMAIN_SEARCH_URL,
)
from scout.contact_engine.crawler.extractor import is_junk_email
from scout.contact_engine.crawler.page_fetcher import bare_domain
from scout.contact_engine.models import CONFIDENCE_HIGH, DirectoryEntry, DirectoryResult
from scout.contact_engine.prioritizer import keyword_rank

logger = logging.getLogger(__name__)


def department_rank(department: Optional[str]) -> int:
    dep = (department or "").strip().lower()
    for i, group in enumerate(DEPARTMENT_PRIORITY):
        if dep in group:
            return i
    return len(DEPARTMENT_PRIORITY)


def rank_entries(entries: List[DirectoryEntry], keywords=EMAIL_KEYWORDS) -> List[DirectoryEntry]:
    """Keyword on local part, then department, then provider confidence (desc)."""
    return sorted(
        entries,
        key=lambda e: (
            keyword_rank(e.address, keywords),
            department_rank(e.department),
            -int(e.confidence or 0),
        ),
    )


def _parse_entries(payload) -> List[DirectoryEntry]:
    data = (payload or {}).get("data") or {}
    out: List[DirectoryEntry] = []
    seen = set()
    for row in data.get("emails") or []:
        if not isinstance(row, dict):
            continue
        addr = str(row.get("value") or "").strip().lower()
        if not addr or addr in seen or is_junk_email(addr):
            continue
        seen.add(addr)
        try:
            conf = int(row.get("confidence") or 0)
        except (TypeError, ValueError):
            conf = 0
        out.append(
            DirectoryEntry(
                address=addr,
                department=row.get("department"),
                confidence=conf,
                type=row.get("type"),
            )
        )
    return out


class DirectoryClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        http=None,
        timeout: float = DIRECTORY_TIMEOUT_S,
        limit: int = DIRECTORY_LIMIT,
    ):
        self.api_key = HUNTER_API_KEY if api_key is None else api_key
        self.http = http or requests
        self.timeout = timeout
        self.limit = limit

    def lookup(self, website_url: str) -> DirectoryResult:
        """
        Never raises. Missing key, bad domain, HTTP failure or an empty
        answer all give DirectoryResult() (no emails, confidence none).
        """
        domain = bare_domain(website_url)
        if not domain:
            return DirectoryResult()

        if not self.api_key:
            logger.warning("Directory lookup skipped (HUNTER_API_KEY not set) domain=%s", domain)
            return DirectoryResult()

        params = {
            "domain": domain,
            "api_key": self.api_key,
            "type": "generic",
            "limit": self.limit,
        }

        try:
            r = self.http.get(HUNTER_DOMAIN_SEARCH_URL, params=params, timeout=self.timeout)
            r.raise_for_status()
            payload = r.json()
        except Exception as e:
            logger.warning("Directory lookup failed domain=%s err=%s", domain, e)
            return DirectoryResult()

        entries = rank_entries(_parse_entries(payload))
        if not entries:
            logger.info("Directory empty domain=%s", domain)
            return DirectoryResult()

        logger.info("Directory hit domain=%s emails=%s", domain, len(entries))
        return DirectoryResult(
            emails=[e.address for e in entries],
            confidence=CONFIDENCE_HIGH,
            entries=entries,
        )
