"""
Company store adapter.

Reads pending companies for a caller and writes resolution results back.
Also owns the company blacklist, which keeps companies that just failed out
of the pending set for a while so repeated batches drain.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.orm import sessionmaker

from scout.contact_engine.config import BLACKLIST_RETRY_HOURS
from scout.contact_engine.models import CompanyIdentity, ResolutionResult
from scout.db import get_session_factory, session_scope
from scout.schema import Company, CompanyBlacklist, utcnow

logger = logging.getLogger(__name__)

BLACKLIST_NO_EMAIL = "no_email_found"
BLACKLIST_API_ERROR = "api_error"
BLACKLIST_INVALID = "invalid_company"

CAREER_NOTE_PREFIX = "Page carrières : "


def blacklist_key(company: CompanyIdentity) -> str:
    return (company.registry_id or "").strip() or f"company:{company.id}"


def _to_identity(row: Company) -> CompanyIdentity:
    return CompanyIdentity(
        id=row.id,
        name=(row.name or "").strip(),
        registry_id=(row.registry_id or "").strip(),
        city=row.city,
        activity_code=row.activity_code,
        activity_label=row.activity_label,
        notes=row.notes,
        website_url=row.website_url,
    )


def prepend_career_note(notes: Optional[str], career_page_url: str) -> str:
    note = f"{CAREER_NOTE_PREFIX}{career_page_url}"
    existing = (notes or "").strip()
    if note in existing:
        return existing
    if not existing:
        return note
    return f"{note}\n\n{existing}"


class CompanyStore:
    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self.clock = clock

    def _factory(self) -> sessionmaker:
        return self._session_factory or get_session_factory()

    def _pending_filter(self, user_id: str, now: datetime):
        key = func.coalesce(func.nullif(Company.registry_id, ""), "company:" + Company.id)
        active_block = exists().where(
            and_(
                CompanyBlacklist.registry_id == key,
                or_(
                    CompanyBlacklist.is_permanent.is_(True),
                    CompanyBlacklist.expires_at > now,
                ),
            )
        )
        return and_(
            Company.user_id == user_id,
            Company.selected_email.is_(None),
            ~active_block,
        )

    def fetch_pending(self, user_id: str, limit: int) -> List[CompanyIdentity]:
        """Companies of `user_id` without a selected email and not blacklisted, newest first."""
        now = self.clock()
        stmt = (
            select(Company)
            .where(self._pending_filter(user_id, now))
            .order_by(Company.created_at.desc(), Company.id.desc())
            .limit(limit)
        )
        with session_scope(self._factory()) as session:
            rows = session.execute(stmt).scalars().all()
            return [_to_identity(r) for r in rows]

    def count_pending(self, user_id: str) -> int:
        now = self.clock()
        stmt = select(func.count(Company.id)).where(self._pending_filter(user_id, now))
        with session_scope(self._factory()) as session:
            return int(session.execute(stmt).scalar() or 0)

    def apply_result(self, result: ResolutionResult) -> bool:
        """
        Write one resolution back onto its company row.

        A None website never clears a known one. Returns False if the row
        no longer exists.
        """
        with session_scope(self._factory()) as session:
            row = session.get(Company, result.company_id)
            if row is None:
                logger.warning("apply_result: company %s not found", result.company_id)
                return False

            if result.website is not None:
                row.website_url = result.website
            row.emails = result.addresses
            row.selected_email = result.selected_email
            if result.career_page_url:
                row.career_site_url = result.career_page_url
                row.notes = prepend_career_note(row.notes, result.career_page_url)
            if result.has_contact_form is not None:
                row.has_contact_form = result.has_contact_form
            row.updated_at = self.clock()
        return True

    def add_to_blacklist(
        self,
        key: str,
        company_name: Optional[str],
        reason: str,
        permanent: bool = False,
        retry_hours: int = BLACKLIST_RETRY_HOURS,
    ) -> None:
        """Insert or refresh a blacklist entry (hit_count grows on repeats)."""
        now = self.clock()
        expires_at = None if permanent else now + timedelta(hours=retry_hours)

        with session_scope(self._factory()) as session:
            row = session.execute(
                select(CompanyBlacklist).where(CompanyBlacklist.registry_id == key)
            ).scalar_one_or_none()

            if row is None:
                session.add(
                    CompanyBlacklist(
                        registry_id=key,
                        company_name=company_name,
                        blacklist_reason=reason,
                        is_permanent=permanent,
                        expires_at=expires_at,
                        hit_count=1,
                        created_at=now,
                        updated_at=now,
                    )
                )
            else:
                row.company_name = company_name or row.company_name
                row.blacklist_reason = reason
                row.is_permanent = bool(row.is_permanent or permanent)
                row.expires_at = None if row.is_permanent else expires_at
                row.hit_count = (row.hit_count or 0) + 1
                row.updated_at = now

        logger.info("Blacklisted %s reason=%s permanent=%s", key, reason, permanent)
