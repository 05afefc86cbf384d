import json

import pytest

from recruit_triage.exceptions import LLMError
from recruit_triage.services.metadata_extractor import MetadataExtractor
from recruit_triage.services.sources import DirectApplicationSource, IndeedApplicationSource


@pytest.fixture
def extractor(settings, fake_gmail, fake_llm):
    return MetadataExtractor(settings, fake_gmail, fake_llm, DirectApplicationSource(settings), sleep=lambda s: None)


def test_heuristic_path_skips_llm(extractor, fake_gmail, fake_llm, make_message):
    fake_gmail.add(make_message())
    record = extractor.extract("m1", "t-m1")
    assert record is not None
    assert record.position == "Frontend Developer"
    assert record.category == "Developer"
    assert record.experience_status == "experienced"
    assert record.has_resume and record.has_cover_letter
    assert record.sender_email == "jane@example.com"
    assert record.sender_name == "Jane Doe"
    assert record.rfc822_message_id == "<m1@mail.example.com>"
    assert record.classified_by == "heuristic"
    assert fake_llm.prompts == []


def test_irrelevant_subject_returns_none(extractor, fake_gmail, make_message):
    fake_gmail.add(make_message(subject="Hello"))
    assert extractor.extract("m1", "t-m1") is None


def test_thread_with_replies_is_skipped(extractor, fake_gmail, make_message):
    fake_gmail.add(make_message())
    fake_gmail.threads["t-m1"] = ["m1", "m1-reply"]
    assert extractor.extract("m1", "t-m1") is None


@pytest.mark.parametrize("message_id,thread_id", [("", "t1"), ("m1", None), ("  ", "t1")])
def test_missing_ids_return_none(extractor, message_id, thread_id):
    assert extractor.extract(message_id, thread_id) is None


def test_llm_fallback_when_no_title(extractor, fake_gmail, fake_llm, make_message):
    fake_gmail.add(make_message(subject="Job application"))
    fake_llm.responses = [
        "Here you go " + json.dumps({"job_title": "QA Engineer", "experience_status": "Fresher", "category": "developer"})
    ]
    record = extractor.extract("m1", "t-m1")
    assert record.position == "QA Engineer"
    assert record.category == "Developer"
    assert record.experience_status == "fresher"
    assert record.classified_by == "llm"
    assert "SUBJECT: Job application" in fake_llm.prompts[0]


def test_llm_failure_keeps_record_with_unclear_fields(settings, fake_gmail, fake_llm, make_message):
    sleeps = []
    extractor = MetadataExtractor(
        settings.model_copy(update={"llm_failure_backoff_s": 60}),
        fake_gmail,
        fake_llm,
        DirectApplicationSource(settings),
        sleep=sleeps.append,
    )
    fake_gmail.add(make_message(subject="Job application"))
    fake_llm.error = LLMError("boom")
    record = extractor.extract("m1", "t-m1")
    assert record is not None
    assert record.position == "unclear"
    assert record.category == "unclear"
    assert record.experience_status == "unclear"
    assert record.classified_by == "fallback"
    assert sleeps == [60]


def test_unparseable_llm_output_means_unclear(extractor, fake_gmail, fake_llm, make_message):
    fake_gmail.add(make_message(subject="Job application"))
    fake_llm.responses = ["ERROR: Retry after rate limit also failed"]
    record = extractor.extract("m1", "t-m1")
    assert record.position == "unclear"
    assert record.classified_by == "fallback"


def test_fetch_error_drops_record(extractor, fake_gmail):
    fake_gmail.threads["t-missing"] = ["missing"]
    assert extractor.extract("missing", "t-missing") is None


def test_indeed_source_rejects_other_senders(settings, fake_gmail, fake_llm, make_message):
    extractor = MetadataExtractor(settings, fake_gmail, fake_llm, IndeedApplicationSource(settings))
    fake_gmail.add(make_message(sender="Jane <jane@example.com>"))
    assert extractor.extract("m1", "t-m1") is None


def test_indeed_resume_link_and_no_cover_letter(settings, fake_gmail, fake_llm, make_message):
    extractor = MetadataExtractor(settings, fake_gmail, fake_llm, IndeedApplicationSource(settings))
    fake_gmail.add(
        make_message(
            subject="New application for Frontend Developer, Mohali",
            sender="Ravi Kumar via Indeed <ravi-abc@indeedemail.com>",
            attachments=(),
            html='<a href="https://indeed.com/r/ravi">View resume</a>',
        )
    )
    record = extractor.extract("m1", "t-m1")
    assert record.source == "indeed"
    assert record.has_resume
    assert record.resume_link == "https://indeed.com/r/ravi"
    assert record.has_cover_letter is False
    assert record.position == "Frontend Developer"


def test_html_only_message_uses_text_of_html(extractor, fake_gmail, make_message):
    fake_gmail.add(
        make_message(body="", html="<p>I am applying for the Python Developer position. Resume attached.</p>", subject="Job application")
    )
    record = extractor.extract("m1", "t-m1")
    assert record.position == "Python Developer"
    assert "Python Developer" in record.body


def test_direct_sender_allow_list(settings, fake_gmail, fake_llm, make_message):
    gmail_only = settings.model_copy(update={"direct_sender_domains": ["gmail.com"]})
    extractor = MetadataExtractor(gmail_only, fake_gmail, fake_llm, DirectApplicationSource(gmail_only))
    fake_gmail.add(make_message("m1"), make_message("m2", sender="Ravi <ravi@gmail.com>"))

    assert extractor.extract("m1", "t-m1") is None
    assert extractor.extract("m2", "t-m2").sender_email == "ravi@gmail.com"


def test_direct_source_accepts_any_sender_by_default(settings):
    assert DirectApplicationSource(settings).sender_domains == ()
