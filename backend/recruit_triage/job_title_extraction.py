"""
Job title extraction utilities.

Goal: find the title a candidate is applying for using an ordered chain of
patterns (subject, then body lines, then generic phrases, then a role-keyword
scan). The first plausible match wins; there is no scoring.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence


_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class TitleMatch:
    value: str
    source: str  # e.g. "subject:application_for"


# Subject patterns (most reliable source), tried in order.
SUBJECT_PATTERNS: list[tuple[str, str]] = [
    (r"^Application for (.+?)(?:\s*\(|\s+Role\b|\s+Position\b|$)", "subject:application_for"),
    (r"^New application received for the position of (.+?)(?:\s*\[|\s+at\s|$)", "subject:new_application_received"),
    (r"^New application for (.+?)(?:,|\s*\[|\s+at\s|$)", "subject:new_application_for"),
    (r"^Job Opening: (.+?)(?:\s*\[|\s+at\s|$)", "subject:job_opening"),
    (r"^Applying for the (.+?)(?:\s+Role\b|\s+Position\b|$)", "subject:applying_for_the"),
    (r"^I'm interested in (.+?)(?:\s+Role\b|\s+Position\b|$)", "subject:interested_in"),
    (r"^Applying for the post of (.+)$", "subject:post_of"),
    (r"^Application for (.+)$", "subject:application_for_simple"),
]

# Body patterns, matched per line.
BODY_PATTERNS: list[tuple[str, str]] = [
    (
        r"(?:I am writing to express my interest in|I am applying for|interest in) the (.+?)"
        r"(?:\s+role\b|\s+position\b|[.,;](?:\s|$)|$)",
        "body:interest_in_the",
    ),
    (r"\b(?:position|role) of (.+?)(?:\s+at\b|\s*\[|[.,;](?:\s|$)|$)", "body:position_of"),
    (r"Job Opening: (.+?)(?:\s*\[|\s+at\b|$)", "body:job_opening"),
]

# Generic phrases, matched against the normalized (single-line, lowercase) text.
PHRASE_PATTERNS: list[tuple[str, str]] = [
    (r"\bas an? (.+?)(?:\s+at\b|\s+for\b|\s+with\b|[.,;!?](?:\s|$)|$)", "text:as_a"),
    (r"\bposition of (.+?)(?:\s+at\b|\s+for\b|\s+with\b|[.,;!?](?:\s|$)|$)", "text:position_of"),
]

ROLE_KEYWORDS: Sequence[str] = (
    "developer",
    "engineer",
    "programmer",
    "designer",
    "manager",
    "consultant",
    "analyst",
    "specialist",
)

# "Dear Hiring Manager", "your developers" are not titles.
ROLE_PHRASE_STOPWORDS = frozenset({"a", "an", "the", "our", "your", "my", "dear", "hiring", "and", "or"})


def _collapse_ws(s: str) -> str:
    return _WS_RE.sub(" ", (s or "").strip())


def normalize_text(subject: str, body: str) -> str:
    """Subject and body on one line, whitespace collapsed, lowercased."""
    return _collapse_ws(f"{subject or ''} {body or ''}").lower()


def clean_job_title(raw: Optional[str]) -> Optional[str]:
    """
    Clean a raw extracted title while keeping it close to the email's wording.
    Removes "post of" style prefixes, trailing "Role"/"Position", "at Company"
    suffixes and bracketed ids.
    """
    if not raw:
        return None
    s = _collapse_ws(raw)
    if not s:
        return None

    # "Careers | Frontend Developer" -> keep the most specific (last) segment.
    parts = [p for p in re.split(r"\s*\|\s*|\s+/\s+", s) if p.strip()]
    if len(parts) > 1:
        s = parts[-1]

    # Strip surrounding quotes.
    s = s.strip(" \t\r\n\"'“”‘’`")

    s = re.sub(r"^(?:the\s+)?(?:post|position)\s+of\s+", "", s, flags=re.I)
    s = re.sub(r"^(?:role|position|title|job\s*title)\s*[:\-–—]\s*", "", s, flags=re.I)
    s = re.sub(r"\s+(?:role|position)\s*$", "", s, flags=re.I)
    s = re.sub(r"\s+at\s+.+$", "", s, flags=re.I)

    # Bracketed requisition ids / tracking tokens like "[#1234]" or "(Req 12345)".
    s = re.sub(r"\s*[\(\[\{][^\)\]\}]*[\)\]\}]\s*$", "", s).strip()

    s = s.rstrip(" .,:;|/\\-–—")
    s = _collapse_ws(s)
    return s or None


def is_plausible_job_title(title: Optional[str]) -> bool:
    """
    Conservative plausibility filter: prevent obvious junk, but keep recall high.
    """
    if not title:
        return False
    s = _collapse_ws(title)
    if not (2 <= len(s) <= 90):
        return False

    if not re.search(r"[A-Za-z]", s):
        return False

    # Avoid URLs/emails.
    if re.search(r"https?://|www\.", s, re.I):
        return False
    if re.search(r"\b[\w.\-]+@[\w.\-]+\.\w+\b", s):
        return False

    # Too many words is usually a sentence, not a title.
    if len(s.split()) > 8:
        return False

    banned = (
        "job",
        "role",
        "position",
        "opportunity",
        "job application",
        "your company",
        "part of your team",
    )
    if s.lower() in banned:
        return False

    return True


def _first_match(
    text: str,
    patterns: Sequence[tuple[str, str]],
    flags: int = re.I,
) -> Optional[TitleMatch]:
    for pat, source_tag in patterns:
        for m in re.finditer(pat, text or "", flags=flags):
            cleaned = clean_job_title(m.group(1))
            if is_plausible_job_title(cleaned):
                return TitleMatch(value=cleaned, source=source_tag)
    return None


def _last_role_keyword_phrase(text: str) -> Optional[TitleMatch]:
    """Last '<word> <role keyword>' occurrence for the first keyword that appears at all."""
    for keyword in ROLE_KEYWORDS:
        found = [
            m.group(1)
            for m in re.finditer(rf"\b((\w+)\s+{keyword}s?)\b", text, flags=re.I)
            if m.group(2).lower() not in ROLE_PHRASE_STOPWORDS
        ]
        if found:
            return TitleMatch(value=found[-1].strip(), source=f"text:role_keyword:{keyword}")
    return None


def extract_job_title(subject: str, body: str) -> Optional[TitleMatch]:
    """
    Extract the job title an applicant refers to. First successful step wins:
    subject patterns, body-line patterns, "as a <title>" phrases, role keyword scan.
    """
    subject = _collapse_ws(subject or "")
    body = body or ""

    if subject:
        match = _first_match(subject, SUBJECT_PATTERNS)
        if match:
            return match

    if body:
        match = _first_match(body, BODY_PATTERNS, flags=re.I | re.M)
        if match:
            return match

    text = normalize_text(subject, body)
    match = _first_match(text, PHRASE_PATTERNS)
    if match:
        return match

    return _last_role_keyword_phrase(text)
