from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional

from scout.brain_gateway import BrainGateway, brain_gateway
from scout.contact_engine.config import AI_TEXT_MAX_CHARS
from scout.contact_engine.crawler.extractor import EMAIL_RE, clean_candidate, deobfuscate, is_junk_email
from scout.contact_engine.models import AiExtraction, Parsed

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You extract contact details for a French company from raw website text.

Rules (strict):
- Return ONLY email addresses that appear literally in the text, or that are
  written in an obfuscated form such as "nom [at] domaine [dot] fr" or
  "nom (arobase) domaine.fr" (rewrite those as a normal address).
- NEVER invent, guess or complete an address. If you are unsure, leave it out.
- Exclude noreply / no-reply / do-not-reply style mailboxes.
- When several addresses exist, list recruiting / HR, contact and info
  addresses first.
- If the text mentions a careers / recruitment page URL, return it.

Respond with a STRICT JSON object and nothing else:
{"emails_found": ["..."], "career_page": "https://..." or null}
""".strip()

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.S | re.I)


def _safe_default() -> AiExtraction:
    return AiExtraction(emails=[], career_page_url=None)


def _strip_fences(text: str) -> str:
    m = _FENCE_RE.match(text or "")
    if m:
        return m.group(1)
    return (text or "").strip()


def parse_extraction(output_text: str) -> Parsed:
    """
    Decode the model answer into {"emails_found": [str], "career_page": str|None}.

    Markdown fences are stripped first; anything that isn't that exact shape
    comes back as Parsed.malformed.
    """
    body = _strip_fences(output_text)
    if not body:
        return Parsed.malformed("empty")

    data: Any
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        start = body.find("{")
        end = body.rfind("}")
        if start == -1 or end <= start:
            return Parsed.malformed("not json")
        try:
            data = json.loads(body[start : end + 1])
        except json.JSONDecodeError:
            return Parsed.malformed("not json")

    if not isinstance(data, dict):
        return Parsed.malformed("not an object")

    emails = data.get("emails_found", [])
    if emails is None:
        emails = []
    if not isinstance(emails, list) or not all(isinstance(e, str) for e in emails):
        return Parsed.malformed("emails_found is not a list of strings")

    career = data.get("career_page")
    if career is not None and not isinstance(career, str):
        return Parsed.malformed("career_page is not a string")

    return Parsed.ok({"emails_found": emails, "career_page": (career or "").strip() or None})


def is_grounded(address: str, text: str) -> bool:
    """
    The full address is one of the addresses written in the text, once
    "[at]" / "(dot)" style obfuscation has been undone.
    """
    addr = (address or "").strip().lower()
    if not addr or "@" not in addr or not text:
        return False
    hits = EMAIL_RE.findall(text) + EMAIL_RE.findall(deobfuscate(text))
    return addr in {clean_candidate(m) for m in hits}


def _excerpt(text: str, max_chars: int) -> str:
    text = (text or "").strip()
    if len(text) > max_chars:
        text = text[:max_chars]
    return text


def extract_from_text(
    text: str,
    company_name: str,
    domain: str,
    gateway: Optional[BrainGateway] = None,
    company_id: Optional[str] = None,
    max_chars: int = AI_TEXT_MAX_CHARS,
) -> AiExtraction:
    """
    Last-resort extraction over the text a crawl collected.

    Never raises: missing credentials, gateway failures and malformed answers
    all give an empty extraction. Returned addresses are filtered with the
    same junk rules as page scraping and must be grounded in `text`.
    """
    gateway = gateway or brain_gateway
    excerpt = _excerpt(text, max_chars)
    if not excerpt:
        return _safe_default()

    if not gateway.is_configured():
        logger.warning("AI extraction skipped (no LLM credentials) company=%s", company_name)
        return _safe_default()

    prompt = (
        f"Company: {company_name}\n"
        f"Website domain: {domain or 'unknown'}\n\n"
        f"Website text:\n{excerpt}"
    )

    try:
        output_text = gateway.generate(
            prompt=prompt,
            system=SYSTEM_PROMPT,
            context_type="contact_extraction",
            company_id=company_id,
            temperature=0,
            max_tokens=300,
        )
    except Exception as e:
        logger.warning("AI extraction failed company=%s err=%s", company_name, e)
        return _safe_default()

    parsed = parse_extraction(output_text)
    if not parsed.is_ok:
        logger.warning("AI extraction malformed company=%s reason=%s", company_name, parsed.error)
        return _safe_default()

    emails: List[str] = []
    for raw in parsed.value["emails_found"]:
        cand = clean_candidate(raw)
        if not cand or not EMAIL_RE.fullmatch(cand) or is_junk_email(cand):
            continue
        if not is_grounded(cand, excerpt):
            logger.info("AI email dropped (not in page text) company=%s email=%s", company_name, cand)
            continue
        if cand not in emails:
            emails.append(cand)

    return AiExtraction(emails=emails, career_page_url=parsed.value["career_page"])
