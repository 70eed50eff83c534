from __future__ import annotations

import html
import re
import urllib.parse
from typing import Iterable, List, Set

EMAIL_RE = re.compile(r"\b[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}\b")
_MAILTO_RE = re.compile(r"mailto:([^\"\'\s>]+)", re.I)

# Mailboxes nobody answers, or template filler
_JUNK_LOCAL_SUBSTR = (
    "noreply",
    "no-reply",
    "example",
)

# Vendor/junk domains that leak into page templates
_BLOCKLIST_DOMAIN_SUBSTR = (
    "wixpress.com",
    "sentry.io",
    "sentry-next.",
    "sentry.wixpress.com",
)

# "logo@2x.png" and friends match the email regex
_BAD_SUFFIXES = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".svg",
    ".ico",
    ".bmp",
    ".avif",
    ".tif",
    ".tiff",
    ".heic",
    ".css",
    ".js",
)

# "nom [at] acme [dot] fr", "nom (arobase) acme.fr"
_OBFUSCATED = [
    (re.compile(r"\s*\[\s*(?:at|arobase)\s*\]\s*", re.I), "@"),
    (re.compile(r"\s*\(\s*(?:at|arobase)\s*\)\s*", re.I), "@"),
    (re.compile(r"\s+(?:at|arobase)\s+", re.I), "@"),
    (re.compile(r"\s*\[\s*(?:dot|point)\s*\]\s*", re.I), "."),
    (re.compile(r"\s*\(\s*(?:dot|point)\s*\)\s*", re.I), "."),
    (re.compile(r"\s+dot\s+", re.I), "."),
]


def email_domain(e: str) -> str:
    e = (e or "").strip().lower()
    if "@" not in e:
        return ""
    return e.split("@", 1)[1].strip().lower()


def is_junk_email(e: str) -> bool:
    low = (e or "").strip().lower()
    if not low or "@" not in low:
        return True

    if any(low.endswith(suf) for suf in _BAD_SUFFIXES):
        return True

    if any(bad in low for bad in _JUNK_LOCAL_SUBSTR):
        return True

    dom = email_domain(low)
    if not dom:
        return True

    for bad in _BLOCKLIST_DOMAIN_SUBSTR:
        if bad in dom:
            return True

    return False


def deobfuscate(text: str) -> str:
    out = text or ""
    for rx, repl in _OBFUSCATED:
        out = rx.sub(repl, out)
    return out


def clean_candidate(raw: str) -> str:
    s = (raw or "").strip()

    # %20info@... -> info@...
    try:
        s = urllib.parse.unquote(s)
    except Exception:
        pass

    s = s.strip(" \t\r\n\"'<>[](){}.,;:")

    return s.lower().strip()


def filter_emails(candidates: Iterable[str]) -> List[str]:
    """Clean, drop junk, dedupe (lowercased, first-seen order)."""
    seen: Set[str] = set()
    out: List[str] = []
    for raw in candidates:
        cand = clean_candidate(raw)
        if not cand or not EMAIL_RE.fullmatch(cand) or is_junk_email(cand):
            continue
        if cand in seen:
            continue
        seen.add(cand)
        out.append(cand)
    return out


def extract_emails_from_html(raw_html: str) -> List[str]:
    """
    Extract a de-duplicated list of emails from HTML.
    - Unescapes HTML entities
    - Regex hits over the raw markup plus mailto: targets
    - Filters noreply / example / asset-looking / vendor addresses
    - Keeps first-seen order
    """
    if not raw_html:
        return []

    text = html.unescape(raw_html)

    hits: List[str] = list(EMAIL_RE.findall(text))

    # mailto: links sometimes carry ?subject=...
    for m in _MAILTO_RE.findall(text):
        hits.append(m.split("?")[0])

    found = filter_emails(hits)

    # Drop "20info@domain.com" when "info@domain.com" also exists.
    present = set(found)
    out: List[str] = []
    for e in found:
        artifact = False
        for n in (1, 2, 3):
            if len(e) > n and e[:n].isdigit() and e[n:] in present:
                artifact = True
                break
        if not artifact:
            out.append(e)

    return out
