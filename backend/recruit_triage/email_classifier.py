"""Heuristic application classifier: job title, experience status, category, resume and cover letter presence."""
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from .job_title_extraction import extract_job_title, normalize_text

UNCLEAR = "unclear"

EXPERIENCED = "experienced"
FRESHER = "fresher"
EXPERIENCE_STATUSES = (EXPERIENCED, FRESHER, UNCLEAR)

DEVELOPER = "Developer"
RECRUITER = "Recruiter"
WEB_DESIGNER = "Web Designer"
SALES_MARKETING = "Sales/Marketing"

# Iteration order is the tie-break: the first category with a matching keyword wins.
CATEGORY_KEYWORDS: dict[str, list[str]] = {
    RECRUITER: [r"recruiter", r"hr", r"talent acquisition", r"it recruitment"],
    DEVELOPER: [
        r"developer",
        r"engineer",
        r"programmer",
        r"flutter",
        r"react(?:\s*js)?",
        r"backend",
        r"back[\s\-]end",
        r"frontend",
        r"front[\s\-]end",
        r"full[\s\-]?stack",
        r"node(?:\.?js)?",
        r"laravel",
        r"php",
        r"mobile",
        r"apps?",
        r"software",
        r"javascript",
        r"js",
        r"python",
        r"devops",
    ],
    WEB_DESIGNER: [r"designer", r"ui/ux", r"web design"],
    SALES_MARKETING: [r"sales", r"marketing", r"business development"],
}

EXPERIENCE_PATTERNS = [
    r"\b\d+(?:\.\d+)?\s*(?:\+?\s*years?|yrs?)\b",  # "7.5 years", "2+ years"
    r"\bwith\s+\d+(?:\.\d+)?\s*\+?\s*years?\s+of\s+experience\b",
    r"\bover\s+\d+(?:\.\d+)?\s*years?\b",
    r"\bbuilt\s+\d+\s+apps?\b",
    r"\bthroughout\s+my\s+career\b",
    r"\benhanced\s+\w+\s+performance\b",
    r"\bmigrating\s+to\s+\w+\s+components\b",
    r"\bworked\s+as\s+an?\s+\w+\s+(?:developer|engineer)\b",
    r"\bexperience\s+in\s+\w+\s+development\b",
]

FRESHER_PATTERNS = [
    r"\brecent\s+graduate\b",
    r"\bfresher\b",
    r"\bintern\b",
    r"\bentry.?level\b",
    r"\btraining\s+in\b",
    r"\bcompleted\s+\w+\s+training\b",
]

RESUME_FILENAME_KEYWORDS = ("resume", "cv")
RESUME_BODY_PATTERN = r"\b(?:resume|résumé|cv)\b"

COVER_LETTER_KEYWORDS = [
    # openers / closers
    "cover letter",
    "dear hiring manager",
    "dear sir or madam",
    "dear team",
    "dear recruiter",
    "i am writing to",
    "i am excited to apply",
    "i am reaching out",
    "i am interested in",
    "thank you for considering",
    "thank you for your time",
    "sincerely",
    "best regards",
    # intent
    "with hands-on experience in",
    "i am eager to",
    "i am passionate about",
    "i am confident that",
    "i would love the opportunity",
    "i am looking forward to",
    "contribute to your team",
    "add value to your organization",
    "aligns with my career goals",
    # skill highlights
    "proficient in",
    "expertise in",
    "skilled at",
    "experience working with",
    "proven track record",
    "strong background in",
    "solid understanding of",
    # soft skills
    "team-oriented",
    "detail-oriented",
    "self-motivated",
    "fast learner",
    "problem-solving",
    "communication skills",
]
COVER_LETTER_MIN_CHARS = 300
COVER_LETTER_MIN_WORDS = 50


@dataclass(frozen=True)
class FastParseResult:
    job_title: str
    experience_status: str
    category: str


def contains_keyword(text: Optional[str], keywords: Iterable[str]) -> bool:
    """Case-insensitive substring containment of any keyword."""
    if not text:
        return False
    lowered = text.lower()
    return any(k.lower() in lowered for k in keywords)


def _matches_any(text: str, patterns: Iterable[str]) -> bool:
    return any(re.search(p, text, re.I) for p in patterns)


def detect_experience_status(text: str) -> str:
    """experienced > fresher > unclear."""
    if _matches_any(text, EXPERIENCE_PATTERNS):
        return EXPERIENCED
    if _matches_any(text, FRESHER_PATTERNS):
        return FRESHER
    return UNCLEAR


def _category_in(text: str) -> Optional[str]:
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(re.search(rf"(?<!\w){k}(?!\w)", text, re.I) for k in keywords):
            return category
    return None


def detect_category(job_title: Optional[str], text: str) -> str:
    """Category from the job title first, then the full text."""
    return _category_in(job_title or "") or _category_in(text or "") or UNCLEAR


def normalize_category(raw: Optional[str]) -> str:
    """Map free text (e.g. LLM output) to a known category, else 'unclear'."""
    raw = (raw or "").strip().lower()
    if not raw:
        return UNCLEAR
    for category in CATEGORY_KEYWORDS:
        if raw == category.lower():
            return category
    compact = re.sub(r"[\s/_\-]+", "", raw)
    for category in CATEGORY_KEYWORDS:
        if compact == re.sub(r"[\s/_\-]+", "", category.lower()):
            return category
    return UNCLEAR


def normalize_experience_status(raw: Optional[str]) -> str:
    raw = (raw or "").strip().lower()
    return raw if raw in EXPERIENCE_STATUSES else UNCLEAR


def detect_resume(body: Optional[str], attachment_filenames: Iterable[Optional[str]] = ()) -> bool:
    """Attachment filename mentions resume/cv, or the body mentions a resume/CV."""
    if any(contains_keyword(name, RESUME_FILENAME_KEYWORDS) for name in attachment_filenames if name):
        return True
    return bool(re.search(RESUME_BODY_PATTERN, body or "", re.I))


def detect_cover_letter(body: Optional[str]) -> bool:
    """
    Cover-letter keywords present AND the body is long enough to be a letter
    (>= 300 chars, >= 50 words), so short "see attached" notes are rejected.
    """
    body = body or ""
    if len(body) < COVER_LETTER_MIN_CHARS:
        return False
    if len(body.split()) < COVER_LETTER_MIN_WORDS:
        return False
    return contains_keyword(body, COVER_LETTER_KEYWORDS)


def fast_parse_email(subject: str, body: str) -> Optional[FastParseResult]:
    """
    Heuristic fast path. Returns None when no job title can be inferred at all;
    experience status and category fall back to 'unclear'. Never raises.
    """
    match = extract_job_title(subject, body)
    if not match:
        return None

    text = normalize_text(subject, body)
    return FastParseResult(
        job_title=match.value.strip(),
        experience_status=detect_experience_status(text),
        category=detect_category(match.value, text),
    )
