from __future__ import annotations

import logging
import re
import urllib.parse
from typing import Optional

import requests
from bs4 import BeautifulSoup

from scout.contact_engine.config import PAGE_HEADERS, PAGE_TEXT_MAX_CHARS, PAGE_TIMEOUT_S
from scout.contact_engine.crawler.extractor import extract_emails_from_html
from scout.contact_engine.models import PageResult

logger = logging.getLogger(__name__)

_NOISE_TAGS = ["script", "style", "nav", "header", "footer", "iframe", "noscript"]
_WS_RE = re.compile(r"\s+")
_FORM_HINTS = ("contact", "message")


def normalize_root_url(raw: Optional[str]) -> Optional[str]:
    """'acme.fr/about?x=1' -> 'https://acme.fr' ; None for anything unusable."""
    if not raw:
        return None
    s = raw.strip()
    if not s:
        return None

    if "://" not in s:
        s = "https://" + s

    try:
        u = urllib.parse.urlparse(s)
    except Exception:
        return None

    if u.scheme not in ("http", "https"):
        return None
    if not u.netloc:
        return None

    return urllib.parse.urlunparse((u.scheme, u.netloc.lower(), "", "", "", ""))


def bare_domain(raw: Optional[str]) -> str:
    """Hostname without scheme, port, path or a leading 'www.'."""
    root = normalize_root_url(raw)
    if not root:
        return ""
    host = (urllib.parse.urlparse(root).hostname or "").lower().strip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def join_path(root: str, path: str) -> str:
    return root.rstrip("/") + "/" + path.lstrip("/")


def clean_text(soup: BeautifulSoup, max_chars: int = PAGE_TEXT_MAX_CHARS) -> str:
    for tag in soup(_NOISE_TAGS):
        tag.decompose()
    text = _WS_RE.sub(" ", soup.get_text(" ")).strip()
    if len(text) > max_chars:
        text = text[:max_chars]
    return text


def fetch_page(
    url: str,
    timeout: float = PAGE_TIMEOUT_S,
    http=None,
    max_chars: int = PAGE_TEXT_MAX_CHARS,
) -> PageResult:
    """
    GET one page and pull out what the contact cascade needs.

    Never raises: transport errors and non-2xx statuses come back as
    PageResult(ok=False) with no emails and no text.
    """
    http = http or requests

    try:
        r = http.get(url, headers=PAGE_HEADERS, timeout=timeout)
    except Exception as e:
        logger.info("fetch failed url=%s err=%s", url, e)
        return PageResult(url=url, ok=False)

    status = getattr(r, "status_code", None)
    if status is None or not (200 <= int(status) < 300):
        logger.info("fetch non-2xx url=%s status=%s", url, status)
        return PageResult(url=url, ok=False, status_code=status)

    raw_html = getattr(r, "text", "") or ""

    try:
        emails = extract_emails_from_html(raw_html)
        soup = BeautifulSoup(raw_html, "html.parser")
        has_form = soup.find("form") is not None
        text = clean_text(soup, max_chars=max_chars)
    except Exception as e:
        logger.warning("parse failed url=%s err=%s", url, e)
        return PageResult(url=url, ok=False, status_code=status)

    low = text.lower()
    has_contact_form = has_form and any(h in low for h in _FORM_HINTS)

    return PageResult(
        url=url,
        emails=emails,
        text=text,
        has_contact_form=has_contact_form,
        ok=True,
        status_code=status,
    )
