from conftest import FakeExtractor, FakeHttp, FakeResponse, SleepRecorder, html_page
from scout.contact_engine.crawler.scrape import (
    crawl_site,
    is_career_page,
    outcome_from_crawl,
    scrape_and_extract,
)
from scout.contact_engine.models import ALTERNATIVE_CONTACT_FORM, AiExtraction, ScrapeResult

ROOT = "https://acme.fr"


def _site(pages):
    return FakeHttp({f"{ROOT}{path}": FakeResponse(200, text=body) for path, body in pages.items()})


def test_paths_visited_in_order_with_delay_between_pages():
    http = _site({"/": html_page("<p>Bienvenue</p>")})
    sleep = SleepRecorder()
    res = crawl_site(ROOT, http=http, sleep=sleep, delay_s=0.5)

    assert http.urls() == [f"{ROOT}/", f"{ROOT}/contact", f"{ROOT}/recrutement", f"{ROOT}/careers"]
    assert sleep.calls == [0.5, 0.5, 0.5]
    assert res.emails == []
    assert "Bienvenue" in res.page_text


def test_stops_at_first_page_with_an_email():
    http = _site(
        {
            "/": html_page("<p>Bienvenue</p>"),
            "/contact": html_page("<p>Ecrivez a contact@acme.fr</p>"),
            "/recrutement": html_page("<p>rh@acme.fr</p>"),
        }
    )
    sleep = SleepRecorder()
    res = crawl_site(ROOT, http=http, sleep=sleep)

    assert res.emails == ["contact@acme.fr"]
    assert http.urls() == [f"{ROOT}/", f"{ROOT}/contact"]
    assert len(sleep.calls) == 1


def test_careers_page_flagged_independently_of_emails():
    http = _site(
        {
            "/": html_page("<p>Bienvenue</p>"),
            "/recrutement": html_page("<h1>Recrutement</h1><p>Nos offres d'emploi, candidature spontanee</p>"),
            "/careers": html_page("<p>Careers: jobs@acme.fr</p>"),
        }
    )
    res = crawl_site(ROOT, http=http, sleep=SleepRecorder())
    assert res.career_page_url == f"{ROOT}/recrutement"
    assert res.emails == ["jobs@acme.fr"]


def test_single_job_word_is_not_a_careers_page():
    assert not is_career_page("Consultez notre emploi du temps")
    assert not is_career_page("Recrutement")
    assert not is_career_page("Careers")
    assert not is_career_page("Nos carrières")
    assert not is_career_page("Voir nos offres d'emploi")
    assert is_career_page("Recrutement : envoyez votre candidature")
    assert is_career_page("Join our team! See open jobs")
    assert not is_career_page("")


def test_unusable_website_fetches_nothing():
    http = _site({})
    res = crawl_site("ftp://acme.fr", http=http, sleep=SleepRecorder())
    assert http.calls == []
    assert res.pages_visited == []


def test_outcome_from_crawl_branches():
    hit = outcome_from_crawl(ScrapeResult(emails=["a@acme.fr"], page_text="x"))
    assert hit.emails == ["a@acme.fr"]

    form = outcome_from_crawl(ScrapeResult(page_text="Contact", has_contact_form=True))
    assert form.emails == []
    assert form.alternative_contact == ALTERNATIVE_CONTACT_FORM

    assert outcome_from_crawl(ScrapeResult(page_text="some text")) is None

    nothing = outcome_from_crawl(ScrapeResult())
    assert nothing.emails == [] and nothing.alternative_contact is None


def test_form_short_circuits_before_ai():
    http = _site(
        {
            "/": html_page("<p>Bienvenue chez Acme</p>"),
            "/contact": html_page("<h2>Contactez-nous</h2><form><textarea></textarea></form>"),
        }
    )
    extractor = FakeExtractor(AiExtraction(emails=["contact@acme.fr"]))

    out = scrape_and_extract(ROOT, "Acme Corp", extractor=extractor, http=http, sleep=SleepRecorder())

    assert out.emails == []
    assert out.alternative_contact == "form available"
    assert out.used_ai is False
    assert extractor.calls == []


def test_text_without_emails_goes_to_ai():
    http = _site({"/": html_page("<p>Ecrivez-nous : contact [at] acme [dot] fr</p>")})
    extractor = FakeExtractor(AiExtraction(emails=["contact@acme.fr"], career_page_url=None))

    out = scrape_and_extract(ROOT, "Acme Corp", extractor=extractor, http=http, sleep=SleepRecorder())

    assert out.used_ai is True
    assert out.emails == ["contact@acme.fr"]
    assert extractor.calls[0]["domain"] == "acme.fr"
    assert "contact [at] acme [dot] fr" in extractor.calls[0]["text"]


def test_nothing_fetched_is_total_failure():
    http = _site({})
    extractor = FakeExtractor()

    out = scrape_and_extract(ROOT, "Acme Corp", extractor=extractor, http=http, sleep=SleepRecorder())

    assert out.emails == []
    assert out.alternative_contact is None
    assert extractor.calls == []

