#!/usr/bin/env python
"""
run_contact_search.py

Run the company contact search for one caller from the command line,
outside Prefect. With --drain it keeps going while the handler reports
`hasMore` (the caller's hourly rate limit still applies).

Exit codes: 0 ok, 1 fatal batch error, 2 rate limited.
"""

import argparse
import json
import logging
import os
import sys

# Ensure project root is on sys.path so `scout` / `flows` can be imported
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from flows.company_contacts_flow import MAX_BATCHES_DEFAULT, run_batches  # noqa: E402
from scout.contact_engine.config import MAX_COMPANIES_DEFAULT  # noqa: E402
from scout.contact_engine.handler import build_default_pipeline  # noqa: E402

logger = logging.getLogger("run_contact_search")


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Find contact emails for a caller's pending companies")
    p.add_argument("--caller", default=os.getenv("SCOUT_CALLER_ID"),
                   help="Caller (user) id owning the companies; defaults to $SCOUT_CALLER_ID")
    p.add_argument("--max-companies", type=int, default=MAX_COMPANIES_DEFAULT,
                   help="Companies per batch (1-150)")
    p.add_argument("--drain", action="store_true", help="Keep running batches while more remain")
    p.add_argument("--max-batches", type=int, default=MAX_BATCHES_DEFAULT)
    p.add_argument("--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv=None, pipeline=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.caller:
        logger.error("No caller id (use --caller or set SCOUT_CALLER_ID)")
        return 1

    try:
        summary = run_batches(
            pipeline or build_default_pipeline(),
            args.caller,
            logger,
            max_companies=args.max_companies,
            drain=args.drain,
            max_batches=args.max_batches,
        )
    except RuntimeError as e:
        logger.error("%s", e)
        return 1

    print(json.dumps(summary, sort_keys=True, indent=2))
    return 2 if summary["stopped_reason"] == "rate_limited" else 0


if __name__ == "__main__":
    sys.exit(main())
