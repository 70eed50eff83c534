import json

from conftest import FakeGateway
from scout.contact_engine.ai_extractor import extract_from_text, is_grounded, parse_extraction

TEXT = (
    "[https://acme.fr/]\nAcme Corp, menuiserie a Lyon. "
    "Ecrivez-nous : contact [at] acme [dot] fr ou recrutement@acme.fr. "
    "Nos offres : https://acme.fr/emplois"
)


def _answer(emails, career=None, fenced=False):
    body = json.dumps({"emails_found": emails, "career_page": career})
    return f"```json\n{body}\n```" if fenced else body


def test_parse_plain_and_fenced_json():
    plain = parse_extraction(_answer(["a@acme.fr"]))
    assert plain.is_ok
    assert plain.value == {"emails_found": ["a@acme.fr"], "career_page": None}

    fenced = parse_extraction(_answer(["a@acme.fr"], "https://acme.fr/jobs", fenced=True))
    assert fenced.is_ok
    assert fenced.value["career_page"] == "https://acme.fr/jobs"


def test_parse_tolerates_chatter_around_the_object():
    parsed = parse_extraction('Voici le resultat : {"emails_found": [], "career_page": null} !')
    assert parsed.is_ok
    assert parsed.value["emails_found"] == []


def test_parse_rejects_wrong_shapes():
    assert not parse_extraction("").is_ok
    assert not parse_extraction("no json here").is_ok
    assert not parse_extraction("[1, 2]").is_ok
    assert not parse_extraction('{"emails_found": "a@acme.fr"}').is_ok
    assert not parse_extraction('{"emails_found": [1]}').is_ok
    assert not parse_extraction('{"emails_found": [], "career_page": 3}').is_ok


def test_grounding_rules():
    assert is_grounded("recrutement@acme.fr", TEXT)
    assert is_grounded("contact@acme.fr", TEXT)
    assert not is_grounded("direction@acme.fr", TEXT)
    assert not is_grounded("contact@globex.fr", TEXT)
    assert not is_grounded("contact@acme.fr", "")


def test_grounding_needs_the_whole_address():
    assert not is_grounded("contact@acme.fr", "Contactez Acme par telephone au 01 23 45 67 89.")
    assert not is_grounded("contact@acme.com", "contact [at] acme [dot] fr")
    assert not is_grounded("rh@acme.fr", "Ecrivez a la drh@acme.fr")
    assert is_grounded("contact@acme.fr", "contact (arobase) acme (point) fr")
    assert is_grounded("contact@acme.fr", "Write to us at contact@acme.fr today")


def test_names_in_prose_do_not_ground_guessed_addresses():
    gateway = FakeGateway(answers=[_answer(["contact@acme.fr", "rh@acme.fr"])])
    ai = extract_from_text("Contactez Acme, service RH, par telephone.", "Acme Corp", "acme.fr", gateway=gateway)
    assert ai.emails == []


def test_extraction_keeps_grounded_and_drops_invented_addresses():
    gateway = FakeGateway(
        answers=[
            _answer(
                ["Contact@acme.fr", "direction@acme.fr", "noreply@acme.fr", "recrutement@acme.fr"],
                "https://acme.fr/emplois",
                fenced=True,
            )
        ]
    )
    ai = extract_from_text(TEXT, "Acme Corp", "acme.fr", gateway=gateway, company_id="c-1")

    assert ai.emails == ["contact@acme.fr", "recrutement@acme.fr"]
    assert ai.career_page_url == "https://acme.fr/emplois"

    call = gateway.calls[0]
    assert call["context_type"] == "contact_extraction"
    assert call["company_id"] == "c-1"
    assert "Company: Acme Corp" in call["prompt"]
    assert "NEVER invent" in call["system"]


def test_excerpt_is_bounded():
    gateway = FakeGateway(answers=[_answer([])])
    extract_from_text("x" * 20000, "Acme", "acme.fr", gateway=gateway, max_chars=8000)
    prompt = gateway.calls[0]["prompt"]
    assert prompt.count("x") <= 8000 + len("Company: Acme\nWebsite domain: acme.fr")


def test_malformed_answer_gives_empty_result():
    gateway = FakeGateway(answers=["Je ne sais pas."])
    ai = extract_from_text(TEXT, "Acme Corp", "acme.fr", gateway=gateway)
    assert ai.emails == []
    assert ai.career_page_url is None


def test_missing_credentials_skip_the_call():
    gateway = FakeGateway(configured=False)
    ai = extract_from_text(TEXT, "Acme Corp", "acme.fr", gateway=gateway)
    assert ai.emails == []
    assert gateway.calls == []


def test_gateway_error_gives_empty_result():
    gateway = FakeGateway(error=RuntimeError("BrainGateway.generate failed"))
    ai = extract_from_text(TEXT, "Acme Corp", "acme.fr", gateway=gateway)
    assert ai.emails == []


def test_empty_text_never_calls_the_model():
    gateway = FakeGateway(answers=[_answer(["contact@acme.fr"])])
    assert extract_from_text("   ", "Acme", "acme.fr", gateway=gateway).emails == []
    assert gateway.calls == []
