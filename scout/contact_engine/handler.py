"""
Request entry point for "find company emails".

    handle_find_company_emails(caller_id, body) -> (status, payload)

401 no caller, 400 bad maxCompanies, 429 rate limited, 500 anything else
fatal, 200 with per-company results otherwise.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from scout.contact_engine.config import (
    MAX_COMPANIES_DEFAULT,
    MAX_COMPANIES_MAX,
    MAX_COMPANIES_MIN,
    VERIFY_MX,
)
from scout.contact_engine.errors import RateLimitExceeded, RequestError
from scout.contact_engine.models import BatchResult
from scout.contact_engine.pipeline import ContactPipeline
from scout.contact_engine.rate_limit import RateLimiter
from scout.contact_engine.store import CompanyStore
from scout.email_verifier import EmailVerifier

logger = logging.getLogger(__name__)


def parse_max_companies(body: Optional[Dict[str, Any]]) -> int:
    """Absent -> default; anything but an int in range -> RequestError(400)."""
    if body is None:
        return MAX_COMPANIES_DEFAULT
    if not isinstance(body, dict):
        raise RequestError("Request body must be a JSON object")

    raw = body.get("maxCompanies")
    if raw is None:
        return MAX_COMPANIES_DEFAULT

    if isinstance(raw, bool) or not isinstance(raw, int):
        raise RequestError("maxCompanies must be an integer")
    if not MAX_COMPANIES_MIN <= raw <= MAX_COMPANIES_MAX:
        raise RequestError(
            f"maxCompanies must be between {MAX_COMPANIES_MIN} and {MAX_COMPANIES_MAX}"
        )
    return raw


def build_message(batch: BatchResult) -> str:
    s = batch.summary
    if s.processed == 0:
        return "No companies left to process"
    msg = f"{s.processed} companies processed: {s.found} with an email, {s.not_found} without"
    if s.has_more:
        msg += ". More companies remain, run again to continue"
    return msg


def build_payload(batch: BatchResult) -> Dict[str, Any]:
    return {
        "success": True,
        "processed": batch.summary.processed,
        "results": [r.to_dict() for r in batch.results],
        "summary": batch.summary.to_dict(),
        "hasMore": batch.summary.has_more,
        "message": build_message(batch),
    }


def _error(status: int, message: str) -> Tuple[int, Dict[str, Any]]:
    return status, {"success": False, "error": message}


def handle_find_company_emails(
    caller_id: Optional[str],
    body: Optional[Dict[str, Any]],
    pipeline: Optional[ContactPipeline] = None,
) -> Tuple[int, Dict[str, Any]]:
    if not caller_id:
        return _error(401, "Unauthorized")

    try:
        max_companies = parse_max_companies(body)
    except RequestError as e:
        return _error(e.status, str(e))

    try:
        if pipeline is None:
            pipeline = build_default_pipeline()
        batch = pipeline.run_batch(caller_id, max_companies)
    except RequestError as e:
        return _error(e.status, str(e))
    except RateLimitExceeded as e:
        return _error(429, str(e))
    except Exception as e:
        logger.exception("find-company-emails failed caller=%s", caller_id)
        return _error(500, str(e) or type(e).__name__)

    return 200, build_payload(batch)


def build_default_pipeline() -> ContactPipeline:
    """Production wiring: shared DB, real HTTP clients, MX verifier if enabled."""
    return ContactPipeline(
        store=CompanyStore(),
        rate_limiter=RateLimiter(),
        verifier=EmailVerifier() if VERIFY_MX else None,
    )
