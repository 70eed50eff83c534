import logging
import os
import time
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

# Main + error webhooks
DEFAULT_WEBHOOK = os.getenv("DISCORD_WEBHOOK_MAIN")
ERROR_WEBHOOK = os.getenv("DISCORD_WEBHOOK_ERRORS") or DEFAULT_WEBHOOK


def post_webhook(
    url: Optional[str],
    payload: Dict[str, Any],
    *,
    http=None,
    sleep=time.sleep,
    attempts: int = 3,
) -> bool:
    """
    Send one webhook payload. Retries on 429 (honouring Retry-After) and on
    5xx / transport errors; gives up on other 4xx. Returns True on delivery.
    """
    if not url:
        logger.warning("discord: no webhook URL provided")
        return False

    http = http or requests

    for attempt in range(attempts):
        try:
            resp = http.post(url, json=payload, timeout=5)

            if resp.status_code in (200, 204):
                return True

            if resp.status_code == 429:
                retry = float(resp.headers.get("Retry-After", 2 ** attempt))
                logger.warning("discord: rate limited, retrying in %ss", retry)
                sleep(retry)
                continue

            if 400 <= resp.status_code < 500:
                logger.warning("discord: client error %s %s", resp.status_code, resp.text[:200])
                return False

            logger.warning("discord: server error %s %s", resp.status_code, resp.text[:200])

        except Exception as e:
            logger.warning("discord: post failed: %s", e)
            sleep(1 + attempt)

    return False

