import pytest

from recruit_triage.email_classifier import (
    DEVELOPER,
    EXPERIENCED,
    FRESHER,
    RECRUITER,
    SALES_MARKETING,
    UNCLEAR,
    WEB_DESIGNER,
    detect_category,
    detect_cover_letter,
    detect_experience_status,
    detect_resume,
    fast_parse_email,
    normalize_category,
    normalize_experience_status,
)


def test_fast_parse_frontend_developer(cover_letter_body):
    result = fast_parse_email("Application for Frontend Developer", cover_letter_body)
    assert result is not None
    assert result.job_title == "Frontend Developer"
    assert result.category == DEVELOPER
    assert result.experience_status == EXPERIENCED


def test_fast_parse_without_title_returns_none():
    assert fast_parse_email("Hello", "nothing here") is None


@pytest.mark.parametrize(
    "text,expected",
    [
        ("I have 5 years of experience in Laravel", EXPERIENCED),
        ("Worked as a backend developer at Acme", EXPERIENCED),
        ("I am a recent graduate from NIT", FRESHER),
        ("I am a fresher with 2 years of freelancing", EXPERIENCED),
        ("Hello there", UNCLEAR),
    ],
)
def test_detect_experience_status(text, expected):
    assert detect_experience_status(text) == expected


def test_category_title_takes_precedence_over_text():
    assert detect_category("Sales Executive", "I am a developer") == SALES_MARKETING


def test_category_recruiter_before_developer():
    assert detect_category("HR Executive", "") == RECRUITER
    assert detect_category("IT Recruiter for developers", "") == RECRUITER


def test_category_from_text_when_title_has_none():
    assert detect_category(None, "I am a React developer") == DEVELOPER
    assert detect_category("UI Designer", "") == WEB_DESIGNER


def test_category_keywords_match_whole_words():
    # "hr" inside "three", "apps" inside "happs"
    assert detect_category("Senior Accountant", "three months, happs") == UNCLEAR


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("developer", DEVELOPER),
        ("Sales / Marketing", SALES_MARKETING),
        ("web designer", WEB_DESIGNER),
        ("CREATIVE", UNCLEAR),
        (None, UNCLEAR),
    ],
)
def test_normalize_category(raw, expected):
    assert normalize_category(raw) == expected


def test_normalize_experience_status():
    assert normalize_experience_status(" Fresher ") == FRESHER
    assert normalize_experience_status("senior") == UNCLEAR


def test_detect_resume_from_attachment_or_body():
    assert detect_resume("", ["John_CV.pdf"])
    assert detect_resume("Please find my resume attached", [])
    assert not detect_resume("Hello", ["photo.jpg"])


def test_cover_letter_length_boundary():
    short = "sincerely" + " ab" * 96 + " a"
    exact = "sincerely" + " ab" * 97
    assert len(short) == 299
    assert len(exact) == 300
    assert not detect_cover_letter(short)
    assert detect_cover_letter(exact)


def test_cover_letter_needs_keyword_and_words():
    assert not detect_cover_letter("ab " * 120)
    assert not detect_cover_letter("sincerely " + "x" * 400)


def test_cover_letter_detected_in_real_letter(cover_letter_body):
    assert detect_cover_letter(cover_letter_body)
