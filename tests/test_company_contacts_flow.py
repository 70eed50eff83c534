import importlib
import json
import logging

import pytest

import flows.company_contacts_flow as flow_mod
from scout.contact_engine.errors import RateLimitExceeded
from scout.contact_engine.models import BatchResult, BatchSummary, ResolutionResult


class ScriptedPipeline:
    """Returns the queued batches (or raises the queued errors) in order."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.calls = 0

    def run_batch(self, caller_id, max_companies):
        self.calls += 1
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        return step


def _batch(n, has_more):
    results = [ResolutionResult(company_id=f"c-{i}", company_name=f"Co {i}") for i in range(n)]
    return BatchResult(results=results, summary=BatchSummary(processed=n, found=0, not_found=n, has_more=has_more))


@pytest.fixture
def alerts(monkeypatch):
    sent = []
    monkeypatch.setattr(flow_mod, "send_discord_alert", lambda *a, **kw: sent.append((a, kw)) or True)
    return sent


def test_single_batch_by_default(alerts, caplog):
    pipeline = ScriptedPipeline(_batch(2, True), _batch(1, False))
    logger = logging.getLogger("test-flow")

    with caplog.at_level(logging.INFO, logger="test-flow"):
        out = flow_mod.run_batches(pipeline, "user-1", logger, max_companies=2)

    assert pipeline.calls == 1
    assert out["has_more"] is True
    assert out["totals"]["processed"] == 2

    events = [json.loads(r.message)["event"] for r in caplog.records if r.message.startswith("{")]
    assert events.count("company_contacts_company_done") == 2
    assert events[-1] == "company_contacts_batch_done"


def test_drain_runs_until_no_more(alerts):
    pipeline = ScriptedPipeline(_batch(2, True), _batch(2, True), _batch(1, False))
    out = flow_mod.run_batches(pipeline, "user-1", logging.getLogger("t"), max_companies=2, drain=True)
    assert pipeline.calls == 3
    assert out["totals"] == {"batches": 3, "processed": 5, "found": 0, "notFound": 5}
    assert out["stopped_reason"] == "done"


def test_drain_is_bounded(alerts):
    pipeline = ScriptedPipeline(*[_batch(1, True) for _ in range(5)])
    out = flow_mod.run_batches(pipeline, "user-1", logging.getLogger("t"), drain=True, max_batches=2)
    assert pipeline.calls == 2
    assert out["stopped_reason"] == "max_batches"


def test_rate_limit_stops_without_alert(alerts):
    pipeline = ScriptedPipeline(_batch(1, True), RateLimitExceeded("find-company-emails", 20, 20))
    out = flow_mod.run_batches(pipeline, "user-1", logging.getLogger("t"), drain=True)
    assert out["stopped_reason"] == "rate_limited"
    assert alerts == []


def test_fatal_error_alerts_and_raises(alerts):
    pipeline = ScriptedPipeline(RuntimeError("database is down"))
    with pytest.raises(RuntimeError):
        flow_mod.run_batches(pipeline, "user-1", logging.getLogger("t"), run_id="run-1")
    assert len(alerts) == 1
    args, kwargs = alerts[0]
    assert "database is down" in args[1]
    assert kwargs["context"]["run_id"] == "run-1"


def test_malformed_max_batches_env_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("SCOUT_FLOW_MAX_BATCHES", "ten")
    try:
        importlib.reload(flow_mod)
        assert flow_mod.MAX_BATCHES_DEFAULT == 10
    finally:
        monkeypatch.delenv("SCOUT_FLOW_MAX_BATCHES")
        importlib.reload(flow_mod)
