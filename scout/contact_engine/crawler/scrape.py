from __future__ import annotations

import functools
import logging
import re
import time
from typing import Callable, List, Optional

from scout.contact_engine.ai_extractor import extract_from_text
from scout.contact_engine.config import (
    CAREER_TERMS,
    CAREER_TERMS_MIN_HITS,
    PAGE_DELAY_S,
    SCRAPE_PATHS,
)
from scout.contact_engine.crawler.page_fetcher import (
    bare_domain,
    fetch_page,
    join_path,
    normalize_root_url,
)
from scout.contact_engine.models import (
    ALTERNATIVE_CONTACT_FORM,
    AiExtraction,
    PageResult,
    ScrapeOutcome,
    ScrapeResult,
)

logger = logging.getLogger(__name__)


_CAREER_PATTERNS = tuple(
    (term, re.compile(r"(?<!\w)" + re.escape(term) + r"(?!\w)")) for term in CAREER_TERMS
)


def is_career_page(text: str) -> bool:
    """
    At least CAREER_TERMS_MIN_HITS distinct job/recruitment terms on the page.

    Terms match as whole words, and a term found only inside a longer matched
    term ("emploi" in "offre d'emploi") does not count again.
    """
    low = (text or "").lower()
    if not low:
        return False
    hits = {term for term, rx in _CAREER_PATTERNS if rx.search(low)}
    hits = {t for t in hits if not any(t != other and t in other for other in hits)}
    return len(hits) >= CAREER_TERMS_MIN_HITS


def crawl_site(
    website_url: str,
    paths=SCRAPE_PATHS,
    fetch: Callable[..., PageResult] = fetch_page,
    http=None,
    sleep: Callable[[float], None] = time.sleep,
    delay_s: float = PAGE_DELAY_S,
) -> ScrapeResult:
    """
    Visit the fixed path list in order, stopping at the first page with an email.

    Text is aggregated across every page fetched (input for the AI step).
    The first page that reads like a careers page is remembered even if the
    crawl keeps going.
    """
    result = ScrapeResult()

    root = normalize_root_url(website_url)
    if not root:
        logger.info("crawl skipped, unusable website=%r", website_url)
        return result

    chunks: List[str] = []
    seen_emails = set()

    for i, path in enumerate(paths):
        if i > 0 and delay_s > 0:
            sleep(delay_s)

        url = join_path(root, path)
        kwargs = {"http": http} if http is not None else {}
        page = fetch(url, **kwargs)
        result.pages_visited.append(url)

        if not page.ok:
            continue

        if page.text:
            chunks.append(f"[{url}]\n{page.text}")

        if page.has_contact_form:
            result.has_contact_form = True

        if result.career_page_url is None and is_career_page(page.text):
            result.career_page_url = url

        for e in page.emails:
            if e not in seen_emails:
                seen_emails.add(e)
                result.emails.append(e)

        if result.emails:
            logger.info("crawl hit url=%s emails=%s", url, len(result.emails))
            break

    result.page_text = "\n\n".join(chunks)
    return result


def outcome_from_crawl(crawl: ScrapeResult) -> Optional[ScrapeOutcome]:
    """
    Decide what a crawl means on its own.

    Returns None only when the AI extractor should look at the collected
    text (no emails, no contact form, some text).
    """
    if crawl.emails:
        return ScrapeOutcome(
            emails=list(crawl.emails),
            career_page_url=crawl.career_page_url,
            has_contact_form=crawl.has_contact_form,
        )

    if crawl.has_contact_form:
        return ScrapeOutcome(
            career_page_url=crawl.career_page_url,
            alternative_contact=ALTERNATIVE_CONTACT_FORM,
            has_contact_form=True,
        )

    if crawl.page_text.strip():
        return None

    return ScrapeOutcome(career_page_url=crawl.career_page_url)


def scrape_and_extract(
    website_url: str,
    company_name: str,
    extractor: Optional[Callable[..., AiExtraction]] = None,
    http=None,
    sleep: Callable[[float], None] = time.sleep,
    crawl: Optional[Callable[[str], ScrapeResult]] = None,
    verify: Optional[Callable[[List[str]], List[str]]] = None,
    company_id: Optional[str] = None,
) -> ScrapeOutcome:
    """
    Crawl, then hand the collected text to the AI extractor if nothing was found.

    `verify` filters every batch of addresses (crawled or extracted) before
    it is judged; a crawl whose addresses are all rejected counts as empty.
    """
    crawl_fn = crawl or functools.partial(crawl_site, http=http, sleep=sleep)
    verify = verify or list

    result = crawl_fn(website_url)
    result.emails = verify(result.emails)
    outcome = outcome_from_crawl(result)
    if outcome is not None:
        return outcome

    extractor = extractor or extract_from_text
    ai = extractor(result.page_text, company_name, bare_domain(website_url), company_id=company_id)
    return ScrapeOutcome(
        emails=verify(ai.emails),
        career_page_url=result.career_page_url or ai.career_page_url,
        used_ai=True,
    )
