"""
Contact pipeline orchestrator.

Per company:

    PENDING -> WEBSITE_RESOLVED | WEBSITE_UNRESOLVED
    WEBSITE_RESOLVED -> DIRECTORY_LOOKUP -> SCRAPE_FALLBACK -> AI_FALLBACK -> DONE

The lookup states are an ordered list of (state, stage_fn). Every stage
returns a StageOutcome; the fold stops at the first outcome carrying emails
or flagged terminal. The scrape stage enters AI_FALLBACK itself when the
crawl left text but no address and no contact form. Companies are processed one at a time with a
fixed pause in between (the search and directory APIs are paid and
rate-limited).
"""

from __future__ import annotations

import dataclasses
import functools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from scout.contact_engine.ai_extractor import extract_from_text
from scout.contact_engine.config import (
    COMPANY_DELAY_S,
    MAX_COMPANIES_MAX,
    MAX_COMPANIES_MIN,
    RATE_LIMIT_ACTION,
    RATE_LIMIT_PER_HOUR,
)
from scout.contact_engine.crawler.scrape import crawl_site, scrape_and_extract
from scout.contact_engine.directory import DirectoryClient
from scout.contact_engine.errors import RateLimitExceeded, RequestError
from scout.contact_engine.models import (
    CONFIDENCE_NONE,
    ERROR_NO_WEBSITE,
    SOURCE_AI,
    SOURCE_DIRECTORY,
    SOURCE_NONE,
    SOURCE_SCRAPE,
    STAGE_CONFIDENCE,
    STATE_AI_FALLBACK,
    STATE_DIRECTORY_LOOKUP,
    STATE_DONE,
    STATE_PENDING,
    STATE_SCRAPE_FALLBACK,
    STATE_WEBSITE_RESOLVED,
    STATE_WEBSITE_UNRESOLVED,
    BatchResult,
    BatchSummary,
    CompanyIdentity,
    EmailCandidate,
    ResolutionResult,
    ScrapeResult,
    StageOutcome,
    dedupe_candidates,
)
from scout.contact_engine.prioritizer import select_best
from scout.contact_engine.store import (
    BLACKLIST_API_ERROR,
    BLACKLIST_INVALID,
    BLACKLIST_NO_EMAIL,
    CompanyStore,
    blacklist_key,
)
from scout.contact_engine.website_resolver import WebsiteResolver

logger = logging.getLogger(__name__)

ERROR_INVALID_COMPANY = "invalid company (missing name)"


@dataclass
class CompanyRun:
    """Mutable per-company context shared by the stages of one resolution."""
    company: CompanyIdentity
    website: str
    trail: List[str] = field(default_factory=list)


Stage = Tuple[str, Callable[[CompanyRun], StageOutcome]]


class ContactPipeline:
    def __init__(
        self,
        store: CompanyStore,
        rate_limiter=None,
        resolver: Optional[WebsiteResolver] = None,
        directory: Optional[DirectoryClient] = None,
        crawl: Optional[Callable[[str], ScrapeResult]] = None,
        extractor: Optional[Callable] = None,
        verifier=None,
        sleep: Callable[[float], None] = time.sleep,
        company_delay_s: float = COMPANY_DELAY_S,
        rate_limit: int = RATE_LIMIT_PER_HOUR,
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.resolver = resolver or WebsiteResolver()
        self.directory = directory or DirectoryClient()
        self.crawl = crawl or functools.partial(crawl_site, sleep=sleep)
        self.extractor = extractor or extract_from_text
        self.verifier = verifier
        self.sleep = sleep
        self.company_delay_s = company_delay_s
        self.rate_limit = rate_limit

        self.stages: Sequence[Stage] = (
            (STATE_DIRECTORY_LOOKUP, self._directory_stage),
            (STATE_SCRAPE_FALLBACK, self._scrape_stage),
        )

    # -----------------------------------------------------
    # Stages
    # -----------------------------------------------------
    def _verified(self, addresses: Sequence[str]) -> List[str]:
        """Drop addresses the verifier calls invalid (risky ones stay)."""
        if self.verifier is None:
            return list(addresses)
        kept: List[str] = []
        for addr in addresses:
            res = self.verifier.verify(addr)
            if res.status == "invalid":
                logger.info("Email dropped by verifier: %s", addr)
                continue
            kept.append(addr)
        return kept

    def _directory_stage(self, run: CompanyRun) -> StageOutcome:
        res = self.directory.lookup(run.website)
        roles = {e.address: e.department for e in res.entries}
        emails = self._verified(res.emails)
        if not emails:
            return StageOutcome()
        return StageOutcome(
            emails=tuple(EmailCandidate(a, SOURCE_DIRECTORY, roles.get(a)) for a in emails),
            confidence=STAGE_CONFIDENCE[SOURCE_DIRECTORY],
            source=SOURCE_DIRECTORY,
        )

    def _scrape_stage(self, run: CompanyRun) -> StageOutcome:
        outcome = scrape_and_extract(
            run.website,
            run.company.name,
            extractor=self.extractor,
            crawl=self.crawl,
            verify=self._verified,
            company_id=run.company.id,
        )
        if outcome.used_ai:
            run.trail.append(STATE_AI_FALLBACK)

        if not outcome.emails:
            return StageOutcome(
                terminal=True,
                career_page_url=outcome.career_page_url,
                alternative_contact=outcome.alternative_contact,
                has_contact_form=outcome.has_contact_form,
            )

        source = SOURCE_AI if outcome.used_ai else SOURCE_SCRAPE
        return StageOutcome(
            emails=tuple(EmailCandidate(a, source) for a in outcome.emails),
            confidence=STAGE_CONFIDENCE[source],
            source=source,
            terminal=True,
            career_page_url=outcome.career_page_url,
            has_contact_form=outcome.has_contact_form,
        )

    # -----------------------------------------------------
    # Per company
    # -----------------------------------------------------
    def resolve_company(self, company: CompanyIdentity) -> ResolutionResult:
        """Run the state machine for one company. Stage errors are soft."""
        trail = [STATE_PENDING]

        website = self.resolver.resolve(company)
        if not website:
            trail += [STATE_WEBSITE_UNRESOLVED, STATE_DONE]
            logger.info("No website company=%s", company.name)
            return ResolutionResult(
                company_id=company.id,
                company_name=company.name,
                website=None,
                confidence=CONFIDENCE_NONE,
                source=SOURCE_NONE,
                error=ERROR_NO_WEBSITE,
                trail=tuple(trail),
            )

        trail.append(STATE_WEBSITE_RESOLVED)
        run = CompanyRun(company=company, website=website, trail=trail)

        final = StageOutcome()
        career_page_url: Optional[str] = None
        has_contact_form: Optional[bool] = None

        for state, stage_fn in self.stages:
            trail.append(state)
            try:
                outcome = stage_fn(run)
            except Exception as e:
                logger.warning("Stage %s failed company=%s err=%s", state, company.name, e)
                outcome = StageOutcome()

            career_page_url = career_page_url or outcome.career_page_url
            if outcome.has_contact_form is not None:
                has_contact_form = bool(has_contact_form) or outcome.has_contact_form
            final = outcome

            if outcome.emails or outcome.terminal:
                break

        trail.append(STATE_DONE)

        emails = dedupe_candidates(final.emails)
        addresses = [e.address for e in emails]
        selected = select_best(addresses, company.name)

        source = final.source if emails else SOURCE_NONE
        logger.info(
            "Resolved company=%s website=%s source=%s emails=%s selected=%s",
            company.name, website, source, len(emails), selected,
        )

        return ResolutionResult(
            company_id=company.id,
            company_name=company.name,
            website=website,
            emails=emails,
            selected_email=selected,
            confidence=STAGE_CONFIDENCE[source],
            source=source,
            career_page_url=career_page_url,
            alternative_contact=None if emails else final.alternative_contact,
            has_contact_form=has_contact_form,
            trail=tuple(trail),
        )

    def process_company(self, company: CompanyIdentity) -> ResolutionResult:
        """Resolve, persist and blacklist-on-miss. Never raises."""
        key = blacklist_key(company)

        if not company.name:
            result = ResolutionResult(
                company_id=company.id,
                company_name=company.name,
                error=ERROR_INVALID_COMPANY,
                trail=(STATE_PENDING, STATE_DONE),
            )
            self._blacklist(key, company, BLACKLIST_INVALID, permanent=True)
            return self._persist(result)

        try:
            result = self.resolve_company(company)
        except Exception as e:
            logger.exception("Resolution crashed company=%s", company.name)
            result = ResolutionResult(
                company_id=company.id,
                company_name=company.name,
                error=f"{type(e).__name__}: {e}",
                trail=(STATE_PENDING, STATE_DONE),
            )
            self._blacklist(key, company, BLACKLIST_API_ERROR)
            return self._persist(result)

        result = self._persist(result)
        if not result.emails:
            self._blacklist(key, company, BLACKLIST_NO_EMAIL)
        return result

    def _persist(self, result: ResolutionResult) -> ResolutionResult:
        try:
            self.store.apply_result(result)
        except Exception as e:
            logger.exception("Store update failed company=%s", result.company_id)
            return dataclasses.replace(result, error=result.error or f"store update failed: {e}")
        return result

    def _blacklist(self, key: str, company: CompanyIdentity, reason: str, permanent: bool = False) -> None:
        try:
            self.store.add_to_blacklist(key, company.name or None, reason, permanent=permanent)
        except Exception:
            logger.exception("Blacklist write failed key=%s", key)

    # -----------------------------------------------------
    # Batch
    # -----------------------------------------------------
    def run_batch(self, caller_id: str, max_companies: int) -> BatchResult:
        """
        Gate on the caller's rate limit, then resolve up to `max_companies`
        pending companies in order.

        Raises RequestError (bad input), RateLimitExceeded (quota) or
        RateLimitUnavailable (rate-limit log down). Per-company failures never
        escape; they show up as `error` on that company's result.
        """
        if not caller_id:
            raise RequestError("Missing caller id", status=401)
        if (
            isinstance(max_companies, bool)
            or not isinstance(max_companies, int)
            or not MAX_COMPANIES_MIN <= max_companies <= MAX_COMPANIES_MAX
        ):
            raise RequestError(
                f"maxCompanies must be an integer between {MAX_COMPANIES_MIN} and {MAX_COMPANIES_MAX}"
            )

        if self.rate_limiter is not None:
            if not self.rate_limiter.record_and_check(caller_id, RATE_LIMIT_ACTION, self.rate_limit):
                raise RateLimitExceeded(action=RATE_LIMIT_ACTION, limit=self.rate_limit, used=self.rate_limit)

        companies = self.store.fetch_pending(caller_id, max_companies)
        logger.info("Batch start caller=%s pending_pulled=%s", caller_id, len(companies))

        batch = BatchResult()
        for i, company in enumerate(companies):
            if i > 0 and self.company_delay_s > 0:
                self.sleep(self.company_delay_s)
            result = self.process_company(company)
            batch.results.append(result)

        found = sum(1 for r in batch.results if r.emails)
        batch.summary = BatchSummary(
            processed=len(batch.results),
            found=found,
            not_found=len(batch.results) - found,
            has_more=self.store.count_pending(caller_id) > 0,
        )
        logger.info(
            "Batch done caller=%s processed=%s found=%s has_more=%s",
            caller_id, batch.summary.processed, found, batch.summary.has_more,
        )
        return batch
