from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from scout.contact_engine.models import AiExtraction, DirectoryResult
from scout.db import make_session_factory
from scout.email_verifier import EmailVerificationResult
from scout.schema import Base, Company


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        text: str = "",
        headers: Optional[Dict[str, str]] = None,
    ):
        self.status_code = status_code
        self._json = json_data
        self.text = text
        self.headers = headers or {}

    def json(self):
        if self._json is None:
            raise ValueError("no json body")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


Route = Union[FakeResponse, Exception, Callable[..., FakeResponse]]


class FakeHttp:
    """Stands in for the `requests` module; routes by exact URL."""

    def __init__(self, routes: Optional[Dict[str, Route]] = None, default: Optional[Route] = None):
        self.routes = dict(routes or {})
        self.default = default if default is not None else FakeResponse(404, text="not found")
        self.calls: List[Dict[str, Any]] = []

    def _answer(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        route = self.routes.get(url, self.default)
        if isinstance(route, Exception):
            raise route
        if callable(route) and not isinstance(route, FakeResponse):
            return route(url, **kwargs)
        return route

    def get(self, url, **kwargs):
        return self._answer("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._answer("POST", url, **kwargs)

    def urls(self, method: Optional[str] = None) -> List[str]:
        return [c["url"] for c in self.calls if method is None or c["method"] == method]


class FakeGateway:
    """BrainGateway double: canned answers, records every call."""

    def __init__(self, answers=None, configured: bool = True, error: Optional[Exception] = None):
        self.answers = list(answers or [])
        self.configured = configured
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def is_configured(self) -> bool:
        return self.configured

    def generate(self, prompt, system, model=None, context_type=None, company_id=None, **params):
        self.calls.append(
            {"prompt": prompt, "system": system, "context_type": context_type, "company_id": company_id}
        )
        if self.error is not None:
            raise self.error
        if not self.answers:
            return ""
        return self.answers.pop(0)


class FakeResolver:
    def __init__(self, websites: Dict[str, Optional[str]]):
        self.websites = websites
        self.calls: List[str] = []

    def resolve(self, company):
        self.calls.append(company.id)
        return self.websites.get(company.name)


class FakeDirectory:
    def __init__(self, results: Optional[Dict[str, DirectoryResult]] = None, error: Optional[Exception] = None):
        self.results = results or {}
        self.error = error
        self.calls: List[str] = []

    def lookup(self, website_url):
        self.calls.append(website_url)
        if self.error is not None:
            raise self.error
        return self.results.get(website_url, DirectoryResult())


class FakeExtractor:
    def __init__(self, extraction: Optional[AiExtraction] = None):
        self.extraction = extraction or AiExtraction()
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, text, company_name, domain, **kwargs):
        self.calls.append({"text": text, "company_name": company_name, "domain": domain, **kwargs})
        return self.extraction


class FakeVerifier:
    def __init__(self, invalid=()):
        self.invalid = {e.lower() for e in invalid}
        self.calls: List[str] = []

    def verify(self, email):
        self.calls.append(email)
        status = "invalid" if email.lower() in self.invalid else "valid"
        return EmailVerificationResult(status, 1.0 if status == "valid" else 0.0, "fake")


class SleepRecorder:
    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FrozenClock:
    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def html_page(body: str, title: str = "Acme") -> str:
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def add_company(session_factory):
    """Insert a company row; later calls get a later created_at."""
    base = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _add(name="Acme Corp", user_id="user-1", registry_id=None, **fields):
        counter["n"] += 1
        row = Company(
            user_id=user_id,
            name=name,
            registry_id=registry_id or f"{counter['n']:09d}",
            created_at=base + timedelta(minutes=counter["n"]),
            updated_at=base + timedelta(minutes=counter["n"]),
            **fields,
        )
        with session_factory() as s:
            s.add(row)
            s.commit()
            return row.id

    return _add
