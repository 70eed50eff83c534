from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from prefect import flow, get_run_logger
from prefect.runtime import flow_run  # type: ignore

from flows.utils.discord_alerts import send_discord_alert
from scout.contact_engine.config import MAX_COMPANIES_DEFAULT, _env_int
from scout.contact_engine.handler import build_default_pipeline, handle_find_company_emails
from scout.contact_engine.pipeline import ContactPipeline

MAX_BATCHES_DEFAULT = _env_int("SCOUT_FLOW_MAX_BATCHES", 10)


def _company_log_line(result: Dict[str, Any]) -> str:
    return json.dumps(
        {
            "event": "company_contacts_company_done",
            "company_id": result.get("companyId"),
            "company_name": result.get("companyName"),
            "website": result.get("website"),
            "source": result.get("source"),
            "confidence": result.get("confidence"),
            "selected_email": result.get("selectedEmail"),
            "emails": len(result.get("emails") or []),
            "alternative_contact": result.get("alternativeContact"),
            "error": result.get("error"),
        },
        sort_keys=True,
    )


def run_batches(
    pipeline: ContactPipeline,
    caller_id: str,
    logger,
    max_companies: int = MAX_COMPANIES_DEFAULT,
    drain: bool = False,
    max_batches: int = MAX_BATCHES_DEFAULT,
    run_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Drive the find-company-emails handler.

    One batch by default; with drain=True keeps calling while `hasMore`
    (bounded by max_batches, and stopped early by the caller's rate limit).
    Emits one JSON line per company and one batch summary line. A fatal
    batch error (500) sends a Discord alert and fails the run.
    """
    totals = {"batches": 0, "processed": 0, "found": 0, "notFound": 0}
    has_more = False
    stopped_reason = "done"

    while True:
        status, payload = handle_find_company_emails(
            caller_id, {"maxCompanies": max_companies}, pipeline=pipeline
        )

        if status == 429:
            logger.warning(
                json.dumps({"event": "company_contacts_rate_limited", "error": payload.get("error")}, sort_keys=True)
            )
            stopped_reason = "rate_limited"
            break

        if status != 200:
            error = payload.get("error") or f"status {status}"
            logger.error(json.dumps({"event": "company_contacts_batch_failed", "status": status, "error": error}, sort_keys=True))
            if status >= 500:
                send_discord_alert(
                    "Company contact batch failed",
                    error,
                    severity="error",
                    context={
                        "flow": "company-contacts",
                        "run_id": run_id,
                        "caller_id": caller_id,
                        "batches_done": totals["batches"],
                    },
                )
            raise RuntimeError(f"company-contacts batch failed ({status}): {error}")

        totals["batches"] += 1
        for result in payload.get("results") or []:
            logger.info(_company_log_line(result))

        summary = payload.get("summary") or {}
        totals["processed"] += int(summary.get("processed", 0) or 0)
        totals["found"] += int(summary.get("found", 0) or 0)
        totals["notFound"] += int(summary.get("notFound", 0) or 0)
        has_more = bool(payload.get("hasMore"))

        logger.info(
            json.dumps(
                {
                    "event": "company_contacts_batch_done",
                    "run_id": run_id,
                    "batch": totals["batches"],
                    "has_more": has_more,
                    **summary,
                },
                sort_keys=True,
            )
        )

        if not drain or not has_more or payload.get("processed", 0) == 0:
            break
        if totals["batches"] >= max_batches:
            stopped_reason = "max_batches"
            break

    return {
        "run_id": run_id,
        "totals": totals,
        "has_more": has_more,
        "stopped_reason": stopped_reason,
    }


@flow(name="company-contacts", persist_result=False)
def company_contacts(
    caller_id: str,
    max_companies: int = MAX_COMPANIES_DEFAULT,
    drain: bool = False,
    max_batches: int = MAX_BATCHES_DEFAULT,
) -> Dict[str, Any]:
    logger = get_run_logger()
    run_id = getattr(flow_run, "id", None)
    logger.info("Company contacts flow started caller=%s drain=%s", caller_id, drain)
    return run_batches(
        build_default_pipeline(),
        caller_id,
        logger,
        max_companies=max_companies,
        drain=drain,
        max_batches=max_batches,
        run_id=str(run_id) if run_id else None,
    )


if __name__ == "__main__":
    company_contacts(caller_id=os.environ["SCOUT_CALLER_ID"])
