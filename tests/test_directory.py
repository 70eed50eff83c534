import requests

from conftest import FakeHttp, FakeResponse
from scout.contact_engine.config import HUNTER_DOMAIN_SEARCH_URL
from scout.contact_engine.directory import DirectoryClient, department_rank, rank_entries
from scout.contact_engine.models import CONFIDENCE_HIGH, CONFIDENCE_NONE, DirectoryEntry
from scout.contact_engine.prioritizer import select_best


def _hunter(*rows):
    return {"data": {"domain": "acme.fr", "emails": list(rows)}}


def _client(payload=None, route=None, api_key="hunter-key"):
    http = FakeHttp({HUNTER_DOMAIN_SEARCH_URL: route or FakeResponse(200, json_data=payload)})
    return DirectoryClient(api_key=api_key, http=http), http


def test_request_uses_bare_domain_and_generic_type():
    client, http = _client(_hunter())
    client.lookup("https://www.acme.fr/contact")
    params = http.calls[0]["params"]
    assert params["domain"] == "acme.fr"
    assert params["type"] == "generic"
    assert params["api_key"] == "hunter-key"


def test_keyword_ranking_puts_recrutement_first_and_confidence_high():
    client, _ = _client(
        _hunter(
            {"value": "info@acme.fr", "department": "support", "confidence": 97},
            {"value": "recrutement@acme.fr", "department": None, "confidence": 60},
        )
    )
    res = client.lookup("https://acme.fr")
    assert res.emails == ["recrutement@acme.fr", "info@acme.fr"]
    assert res.confidence == CONFIDENCE_HIGH
    assert select_best(res.emails, "Acme Corp") == "recrutement@acme.fr"


def test_department_then_provider_confidence_when_no_keyword():
    client, _ = _client(
        _hunter(
            {"value": "zeta@acme.fr", "department": "communication", "confidence": 99},
            {"value": "alpha@acme.fr", "department": "sales", "confidence": 50},
            {"value": "beta@acme.fr", "department": "hr", "confidence": 10},
            {"value": "gamma@acme.fr", "department": "executive", "confidence": 70},
            {"value": "delta@acme.fr", "department": "management", "confidence": 90},
            {"value": "omega@acme.fr", "department": None, "confidence": 100},
        )
    )
    res = client.lookup("acme.fr")
    assert res.emails == [
        "beta@acme.fr",
        "delta@acme.fr",
        "gamma@acme.fr",
        "alpha@acme.fr",
        "zeta@acme.fr",
        "omega@acme.fr",
    ]


def test_already_ranked_directory_list_is_not_reordered_by_selection():
    entries = rank_entries(
        [
            DirectoryEntry("info@acme.fr", "support", 99),
            DirectoryEntry("jobs@acme.fr", None, 20),
            DirectoryEntry("contact@acme.fr", "sales", 80),
        ]
    )
    emails = [e.address for e in entries]
    assert emails[0] == "jobs@acme.fr"
    assert select_best(emails) == emails[0]


def test_empty_response_gives_no_emails():
    client, _ = _client(_hunter())
    res = client.lookup("acme.fr")
    assert res.emails == []
    assert res.confidence == CONFIDENCE_NONE


def test_missing_key_and_http_errors_degrade_quietly():
    client, http = _client(_hunter({"value": "info@acme.fr"}), api_key="")
    assert client.lookup("acme.fr").emails == []
    assert http.calls == []

    client, _ = _client(route=FakeResponse(401, json_data={"errors": []}))
    assert client.lookup("acme.fr").confidence == CONFIDENCE_NONE

    client, _ = _client(route=requests.ConnectionError("down"))
    assert client.lookup("acme.fr").emails == []


def test_junk_and_duplicate_rows_skipped():
    client, _ = _client(
        _hunter(
            {"value": "noreply@acme.fr"},
            {"value": "Contact@acme.fr", "confidence": "n/a"},
            {"value": "contact@acme.fr"},
            "not a dict",
        )
    )
    res = client.lookup("acme.fr")
    assert res.emails == ["contact@acme.fr"]


def test_department_rank_order():
    assert department_rank("hr") < department_rank("management") == department_rank("executive")
    assert department_rank("executive") < department_rank("sales") < department_rank("support")
    assert department_rank("support") < department_rank("communication") < department_rank("it")
    assert department_rank(None) == department_rank("legal")
