"""
Pick the single best contact address out of a candidate list.

Pure: no I/O, no config reads at call time beyond the default keyword list.
"""

from __future__ import annotations

import re
import unicodedata
from typing import List, Optional, Sequence

from scout.contact_engine.config import EMAIL_KEYWORDS, NAME_TOKEN_MIN_LEN

_LOCAL_SPLIT_RE = re.compile(r"[._\-+]+")
_NAME_SPLIT_RE = re.compile(r"[^a-z0-9]+")


def _fold(s: str) -> str:
    """Lowercase and strip accents ("Société Générale" -> "societe generale")."""
    nfkd = unicodedata.normalize("NFKD", s or "")
    return "".join(c for c in nfkd if not unicodedata.combining(c)).lower()


def local_part(address: str) -> str:
    """Accent-folded, lowercased part before the "@"."""
    return _fold((address or "").strip()).split("@", 1)[0]


def keyword_matches(keyword: str, address: str) -> bool:
    """
    Short keywords ("rh", "hr", "job") must be a whole local-part token so
    "chris@" never reads as HR; longer ones match as substrings.
    """
    kw = _fold((keyword or "").strip())
    if not kw:
        return False
    local = local_part(address)
    if len(kw) <= 3:
        return kw in _LOCAL_SPLIT_RE.split(local)
    return kw in local


def keyword_rank(address: str, keywords: Sequence[str] = EMAIL_KEYWORDS) -> int:
    """Index of the first keyword matching the local part, len(keywords) if none."""
    for i, kw in enumerate(keywords):
        if keyword_matches(kw, address):
            return i
    return len(keywords)


def name_tokens(company_name: Optional[str]) -> List[str]:
    return [t for t in _NAME_SPLIT_RE.split(_fold(company_name or "")) if len(t) >= NAME_TOKEN_MIN_LEN]


def select_best(
    emails: Sequence[str],
    company_name: Optional[str] = None,
    keywords: Sequence[str] = EMAIL_KEYWORDS,
) -> Optional[str]:
    """
    0 candidates -> None, 1 -> it.

    Otherwise, keywords are scanned in priority order and the first candidate
    whose local part matches wins; then the first candidate containing a
    company-name token; then the first candidate.
    """
    candidates = [e for e in emails if e]
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    for kw in keywords:
        for e in candidates:
            if keyword_matches(kw, e):
                return e

    tokens = name_tokens(company_name)
    for tok in tokens:
        for e in candidates:
            if tok in e.lower():
                return e

    return candidates[0]
