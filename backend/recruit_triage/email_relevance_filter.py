"""
Email relevance filter - keeps applications, drops newsletters and notifications.

Rule-based only: the subject must mention a recruitment keyword and must not
mention any exclusion keyword. Runs before classification so spam is never
treated as an application.
"""

import re
from typing import Iterable, Optional

RELEVANT_SUBJECT_KEYWORDS = [
    "application received",
    "new application received",
    "new application for",
    "application for",
    "applying for",
    "job application",
    "job candidate",
    "applied for",
    "resume",
    "cv",
    "profile",
    "hiring",
    "interview",
    "interested in",
    "candidate for",
    "looking for job",
    "seeking opportunity",
    "job opening",
]

IRRELEVANT_SUBJECT_KEYWORDS = [
    "unsubscribe",
    "newsletter",
    "promotion",
    "discount",
    "offer",
    "sale",
    "buy now",
    "thank you for subscribing",
    "follow us",
    "follow up",
    "follow-up",
    "webinar",
    "event invite",
    "no-reply",
    "notification",
    "account",
    "password",
    "invoice",
    "receipt",
]


def _normalize_text(text: str) -> str:
    """Normalize text for pattern matching."""
    return re.sub(r"\s+", " ", (text or "").lower().strip())


def _extract_domain(email: str) -> Optional[str]:
    """Extract domain from email address."""
    match = re.search(r"@([\w.-]+)", email or "")
    return match.group(1).lower() if match else None


def _has_any(text: str, keywords: Iterable[str]) -> bool:
    return any(re.search(rf"(?<!\w){re.escape(k)}(?!\w)", text) for k in keywords)


def is_relevant_subject(subject: Optional[str]) -> bool:
    """True when the subject names a recruitment topic and nothing from the exclusion list."""
    subject_norm = _normalize_text(subject or "")
    if not subject_norm:
        return False
    return _has_any(subject_norm, RELEVANT_SUBJECT_KEYWORDS) and not _has_any(
        subject_norm, IRRELEVANT_SUBJECT_KEYWORDS
    )


def sender_domain_allowed(sender_email: Optional[str], allowed_domains: Iterable[str]) -> bool:
    """Empty allow-list accepts any sender; otherwise the sender domain must end with one of them."""
    allowed = [d.lower().lstrip("@") for d in allowed_domains if d]
    if not allowed:
        return True
    domain = _extract_domain(sender_email or "")
    if not domain:
        return False
    return any(domain == d or domain.endswith("." + d) for d in allowed)
