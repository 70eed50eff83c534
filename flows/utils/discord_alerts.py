import logging
import os
from typing import Any, Dict, Optional

from . import discord_client

"""
Discord alerts for Scout flows.

send_discord_alert() routes by severity (critical/error vs info), adds a
context block and never raises into the calling flow.
"""

logger = logging.getLogger(__name__)

_ALERTS_OVERRIDE = os.getenv("DISCORD_ALERTS_URL")

ALERT_WEBHOOK = _ALERTS_OVERRIDE or discord_client.ERROR_WEBHOOK or discord_client.DEFAULT_WEBHOOK
INFO_WEBHOOK = discord_client.DEFAULT_WEBHOOK or ALERT_WEBHOOK

_PREFIX = {
    "critical": "[CRITICAL]",
    "error": "[ERROR]",
    "info": "[INFO]",
}


def _choose_webhook(severity: str) -> Optional[str]:
    if severity.lower() in ("critical", "error"):
        return ALERT_WEBHOOK
    return INFO_WEBHOOK


def _format_context(context: Optional[Dict[str, Any]]) -> str:
    if not context:
        return ""
    lines = [f"- **{k}**: `{v}`" for k, v in context.items()]
    return "**Context:**\n" + "\n".join(lines)


def build_alert_payload(
    title: str,
    body: str,
    severity: str = "error",
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    sev = (severity or "error").lower()
    prefix = _PREFIX.get(sev, f"[{sev.upper()}]")

    description = body
    ctx = _format_context(context)
    if ctx:
        description += "\n\n" + ctx

    return {
        "username": "Scout - Alerts",
        "embeds": [
            {
                "title": f"{prefix} {title}",
                "description": description[:4000],
                "color": 0xFF0000 if sev in ("critical", "error") else 0x5865F2,
            }
        ],
    }


def send_discord_alert(
    title: str,
    body: str,
    *,
    severity: str = "error",
    context: Optional[Dict[str, Any]] = None,
    webhook: Optional[str] = None,
    http=None,
) -> bool:
    """Best-effort: a missing webhook or a failed post is logged, never raised."""
    target = webhook or _choose_webhook(severity)
    if not target:
        logger.warning("discord alert dropped (no webhook) severity=%s title=%r", severity, title)
        return False

    payload = build_alert_payload(title, body, severity=severity, context=context)
    try:
        return discord_client.post_webhook(target, payload, http=http)
    except Exception as e:
        logger.warning("discord alert failed title=%r err=%r", title, e)
        return False
