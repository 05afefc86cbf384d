"""
Application sources: where applications arrive from and how the candidate,
resume and title hint are read from a message.

DirectApplicationSource - candidates mail the recruitment inbox, sometimes
through the consulting relay address (candidate in Reply-To).
IndeedApplicationSource - Indeed relays applications from @indeedemail.com
with a "View resume" link instead of an attachment and no cover letter.
"""
import re
from typing import Optional

from bs4 import BeautifulSoup

from ..config import Settings
from ..email_classifier import detect_resume
from ..schemas import InboundMessage

_ANGLE_ADDR_RE = re.compile(r"<(.+?)>")
_BODY_NAME_RE = re.compile(r"^[ \t]*Name:[ \t]*(\S.*?)[ \t]*\r?$", re.M)
_JOB_OPENING_HINT_RE = re.compile(r"Job Opening:\s*([^\[\r\n]+)")


def extract_email_and_name(header_value: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """'Jane Doe <jane@x.com>' -> ('jane@x.com', 'Jane Doe'); bare 'jane@x.com' -> ('jane@x.com', 'jane')."""
    if not header_value or not header_value.strip():
        return None, None
    match = _ANGLE_ADDR_RE.search(header_value)
    email = match.group(1).strip() if match else header_value.strip()
    name = header_value.split("<")[0].strip().strip('"').strip("'").split("@")[0].strip()
    return email, (name or None)


def name_from_body(body: str) -> Optional[str]:
    """Forms and job boards put the applicant on a 'Name:' line."""
    match = _BODY_NAME_RE.search(body or "")
    return match.group(1) if match else None


class ApplicationSource:
    """Base strategy: plain From header, attachment-based resume detection, cover letter required."""

    name = "base"
    search_query = "label:inbox -label:pre-stage"
    sender_domains: tuple[str, ...] = ()
    requires_cover_letter = True

    def __init__(self, settings: Settings):
        self.settings = settings

    def sender_header(self, message: InboundMessage) -> Optional[str]:
        return message.header("from")

    def resolve_sender(self, message: InboundMessage, body: str) -> tuple[Optional[str], Optional[str]]:
        email, name = extract_email_and_name(self.sender_header(message))
        return email, (name_from_body(body) or name)

    def detect_resume(self, message: InboundMessage, body: str) -> tuple[bool, Optional[str]]:
        """(has_resume, resume_link)."""
        return detect_resume(body, message.attachment_filenames), None

    def hint_title(self, message: InboundMessage, body: str) -> Optional[str]:
        return None


class DirectApplicationSource(ApplicationSource):
    name = "direct"

    @property
    def sender_domains(self) -> tuple[str, ...]:
        return tuple(self.settings.direct_sender_domains)

    def sender_header(self, message: InboundMessage) -> Optional[str]:
        from_value = message.header("from") or ""
        reply_to = message.header("reply-to")
        relay = (self.settings.consulting_mail or "").lower()
        if relay and relay in from_value.lower() and reply_to:
            return reply_to
        return from_value

    def hint_title(self, message: InboundMessage, body: str) -> Optional[str]:
        match = _JOB_OPENING_HINT_RE.search(body or "")
        return match.group(1).strip() if match else None


class IndeedApplicationSource(ApplicationSource):
    name = "indeed"
    search_query = "label:inbox -label:pre-stage from:indeedemail.com"
    sender_domains = ("indeedemail.com",)
    requires_cover_letter = False

    def detect_resume(self, message: InboundMessage, body: str) -> tuple[bool, Optional[str]]:
        link = find_resume_link(message.html_body)
        return bool(link), link

    def hint_title(self, message: InboundMessage, body: str) -> Optional[str]:
        # "New application for Frontend Developer, Mohali"
        parts = re.split(r"New application for", message.subject, maxsplit=1, flags=re.I)
        if len(parts) < 2:
            return None
        return parts[1].split(",")[0].strip() or None


def find_resume_link(html: str) -> Optional[str]:
    """href of the first anchor whose text is 'View resume'."""
    if not html:
        return None
    soup = BeautifulSoup(html, "html.parser")
    for anchor in soup.find_all("a"):
        if anchor.get_text(strip=True).lower() == "view resume" and anchor.get("href"):
            return anchor["href"]
    return None


SOURCES = {
    DirectApplicationSource.name: DirectApplicationSource,
    IndeedApplicationSource.name: IndeedApplicationSource,
}


def get_source(name: str, settings: Settings) -> ApplicationSource:
    try:
        return SOURCES[name](settings)
    except KeyError:
        raise ValueError(f"Unknown application source: {name!r}. Known: {', '.join(SOURCES)}") from None
