"""
Per-caller rate limiting over the append-only `rate_limits` log.

One row is inserted per accepted call; the check counts rows for
(caller, action) inside the trailing window. Check-then-insert is not
atomic: two concurrent calls at the boundary can both pass.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from scout.contact_engine.config import RATE_LIMIT_WINDOW_S
from scout.contact_engine.errors import RateLimitExceeded, RateLimitUnavailable
from scout.db import get_session_factory, session_scope
from scout.schema import RateLimitLog, utcnow

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        window_seconds: int = RATE_LIMIT_WINDOW_S,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self.window = timedelta(seconds=window_seconds)
        self.clock = clock

    def _factory(self) -> sessionmaker:
        return self._session_factory or get_session_factory()

    @staticmethod
    def _count(session, caller_id: str, action: str, since: datetime) -> int:
        stmt = (
            select(func.coalesce(func.sum(RateLimitLog.count), 0))
            .where(RateLimitLog.user_id == caller_id)
            .where(RateLimitLog.action == action)
            .where(RateLimitLog.created_at >= since)
        )
        return int(session.execute(stmt).scalar() or 0)

    def check_and_consume(self, caller_id: str, action: str, limit: int) -> int:
        """
        Consume one call for (caller_id, action) or raise RateLimitExceeded.

        Returns the number of calls left in the window after this one.
        Raises RateLimitUnavailable if the log cannot be read or written.
        """
        now = self.clock()
        since = now - self.window

        try:
            with session_scope(self._factory()) as session:
                used = self._count(session, caller_id, action, since)
                if used >= limit:
                    raise RateLimitExceeded(action=action, limit=limit, used=used)
                session.add(
                    RateLimitLog(user_id=caller_id, action=action, count=1, created_at=now)
                )
        except RateLimitExceeded:
            logger.warning("Rate limit hit caller=%s action=%s limit=%s", caller_id, action, limit)
            raise
        except Exception as e:
            logger.exception("Rate limit check failed caller=%s action=%s", caller_id, action)
            raise RateLimitUnavailable("Rate limiting unavailable") from e

        return max(0, limit - used - 1)

    def record_and_check(self, caller_id: str, action: str, limit: int) -> bool:
        """Non-raising gate: True when the call was accepted and recorded."""
        try:
            self.check_and_consume(caller_id, action, limit)
        except RateLimitExceeded:
            return False
        return True
