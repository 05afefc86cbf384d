"""Per-message metadata extraction: thread gate, sender, relevance gate, heuristics, LLM fallback."""
import logging
import time
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup

from ..config import Settings
from ..email_classifier import (
    UNCLEAR,
    detect_cover_letter,
    fast_parse_email,
    normalize_category,
    normalize_experience_status,
)
from ..email_relevance_filter import is_relevant_subject, sender_domain_allowed
from ..exceptions import ConfigurationError
from ..gmail_service import GmailClient
from ..schemas import ExtractedMetadata, InboundMessage
from .llm_service import LLMClient, decode_json_object
from .sources import ApplicationSource

logger = logging.getLogger(__name__)

LLM_TASK = "Extract job application details from emails with varying structures."

LLM_INSTRUCTIONS = """You are a job-application parser.

Return ONLY valid JSON (no markdown, no explanation):
{"job_title": "<title or 'unclear'>", "experience_status": "<experienced|fresher|unclear>", "category": "<Developer|Web Designer|Recruiter|Sales/Marketing|unclear>"}

1. job_title
   - Use explicit mentions in the subject or body ("Application for ...", "Job Opening: ...",
     "applying for the ... role"). Drop anything from '(' or '[' onward.
   - Normalize to a standard form ("Full Stack Web Developer" -> "Full Stack Developer").
   - If HINT_TITLE is given and appears in the email, prefer it.
   - Do not guess. If no title is clearly supported, use "unclear".
2. experience_status
   - "experienced" if the candidate states years of experience or a career history.
   - "fresher" for recent graduates, interns, entry-level candidates.
   - otherwise "unclear".
3. category
   - "Developer": developer, engineer, programmer, frontend, backend, full stack, mobile, software.
   - "Web Designer": designer, ui/ux, web design.
   - "Recruiter": recruiter, hr, talent acquisition.
   - "Sales/Marketing": sales, marketing, business development.
   - otherwise "unclear".
"""


def html_to_text(html: str) -> str:
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text("\n", strip=True)


def _build_llm_prompt(subject: str, body: str, hint_title: Optional[str]) -> str:
    return (
        f"{LLM_TASK}\n\n"
        f"SUBJECT: {subject.strip()}\n"
        f"BODY: {body.strip()[:4000]}\n"
        f"HINT_TITLE: {repr(hint_title) if hint_title else 'None'}"
    )


class MetadataExtractor:
    """(message_id, thread_id) -> ExtractedMetadata, or None when the message is not an eligible application."""

    def __init__(
        self,
        settings: Settings,
        gmail: GmailClient,
        llm: LLMClient,
        source: ApplicationSource,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        self.settings = settings
        self.gmail = gmail
        self.llm = llm
        self.source = source
        self._sleep = sleep

    def extract(self, message_id: Optional[str], thread_id: Optional[str]) -> Optional[ExtractedMetadata]:
        if not (message_id or "").strip() or not (thread_id or "").strip():
            logger.info(f"Email ID or thread ID missing, skipping ({message_id!r}, {thread_id!r})")
            return None
        try:
            return self._extract(message_id, thread_id)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Error extracting details from email {message_id}: {e}")
            return None

    def _extract(self, message_id: str, thread_id: str) -> Optional[ExtractedMetadata]:
        thread_message_ids = self.gmail.get_thread_message_ids(thread_id)
        if len(thread_message_ids) > 1:
            logger.info(f"Thread {thread_id} has {len(thread_message_ids)} messages, skipping")
            return None

        message = self.gmail.get_message(message_id)
        body = message.text_body or html_to_text(message.html_body)

        sender_email, sender_name = self.source.resolve_sender(message, body)
        if not sender_domain_allowed(sender_email, self.source.sender_domains):
            logger.info(f"Sender {sender_email} not accepted by source {self.source.name}, skipping")
            return None

        subject = message.subject
        if not is_relevant_subject(subject):
            logger.info(f"Subject not related to recruitment, skipping: {subject!r}")
            return None

        has_resume, resume_link = self.source.detect_resume(message, body)
        has_cover_letter = detect_cover_letter(body) if self.source.requires_cover_letter else False

        position, category, experience_status, classified_by = self.classify(message, subject, body)

        return ExtractedMetadata(
            message_id=message.id or message_id,
            thread_id=message.thread_id or thread_id,
            rfc822_message_id=message.header("message-id") or "",
            sender_email=sender_email,
            sender_name=sender_name,
            subject=subject,
            body=body,
            attachment_filenames=message.attachment_filenames,
            attachment_ids=message.attachment_ids,
            resume_link=resume_link,
            has_resume=has_resume,
            has_cover_letter=has_cover_letter,
            position=position,
            category=category,
            experience_status=experience_status,
            source=self.source.name,
            classified_by=classified_by,
        )

    def classify(self, message: InboundMessage, subject: str, body: str) -> tuple[str, str, str, str]:
        """(position, category, experience_status, classified_by). Heuristics first, LLM when inconclusive."""
        fast = fast_parse_email(subject, body)
        if fast and fast.category != UNCLEAR:
            return fast.job_title, fast.category, fast.experience_status, "heuristic"

        hint = self.source.hint_title(message, body) or (fast.job_title if fast else None)
        try:
            text = self.llm.generate(_build_llm_prompt(subject, body, hint), instructions=LLM_INSTRUCTIONS)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"LLM extraction failed for {message.id}: {e}")
            if self.settings.llm_failure_backoff_s > 0:
                logger.info(f"Waiting {self.settings.llm_failure_backoff_s:.0f}s before continuing")
                self._sleep(self.settings.llm_failure_backoff_s)
            return UNCLEAR, UNCLEAR, UNCLEAR, "fallback"

        parsed = decode_json_object(text)
        if not parsed.ok:
            logger.warning(f"Could not parse LLM output for {message.id}: {parsed.error}")
            return UNCLEAR, UNCLEAR, UNCLEAR, "fallback"

        data = parsed.value
        position = str(data.get("job_title") or "").strip() or UNCLEAR
        return (
            position,
            normalize_category(data.get("category")),
            normalize_experience_status(data.get("experience_status")),
            "llm",
        )
