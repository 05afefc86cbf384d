"""Pydantic schemas for pipeline steps and the trigger API."""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

UNCLEAR = "unclear"


class MessageRef(BaseModel):
    """Search result: ids only. Either may be missing on malformed provider data."""
    id: Optional[str] = None
    thread_id: Optional[str] = None


class Attachment(BaseModel):
    filename: str
    attachment_id: Optional[str] = None
    mime_type: Optional[str] = None

    class Config:
        frozen = True


class InboundMessage(BaseModel):
    """A fetched Gmail message, decoded. Header names are lowercased."""
    id: str
    thread_id: str
    headers: dict[str, str] = Field(default_factory=dict)
    text_body: str = ""
    html_body: str = ""
    attachments: List[Attachment] = Field(default_factory=list)
    label_ids: List[str] = Field(default_factory=list)

    class Config:
        frozen = True

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    @property
    def subject(self) -> str:
        return self.header("subject") or ""

    @property
    def attachment_filenames(self) -> List[str]:
        return [a.filename for a in self.attachments]

    @property
    def attachment_ids(self) -> List[str]:
        return [a.attachment_id for a in self.attachments if a.attachment_id]


class ExtractedMetadata(BaseModel):
    """One candidate application, keyed by Gmail message id."""
    message_id: str
    thread_id: str
    rfc822_message_id: str = ""
    sender_email: Optional[str] = None
    sender_name: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    attachment_filenames: List[str] = Field(default_factory=list)
    attachment_ids: List[str] = Field(default_factory=list)
    resume_link: Optional[str] = None
    has_resume: bool = False
    has_cover_letter: bool = False
    position: Optional[str] = UNCLEAR
    category: str = UNCLEAR
    experience_status: str = UNCLEAR
    source: str = "direct"
    classified_by: str = "heuristic"  # heuristic | llm | fallback

    @property
    def position_is_clear(self) -> bool:
        return bool(self.position) and self.position.strip().lower() != UNCLEAR


class Bucket(str, Enum):
    MISSING_RESUME = "missing_resume"
    MISSING_COVER_LETTER = "missing_cover_letter"
    UNCLEAR_POSITION = "unclear_position"
    MULTIPLE_MISSING = "multiple_missing"
    CONFIRMED = "confirmed"


class SortedBuckets(BaseModel):
    multiple_missing_details_emails: List[ExtractedMetadata] = Field(default_factory=list)
    missing_resume_emails: List[ExtractedMetadata] = Field(default_factory=list)
    missing_cover_letter_emails: List[ExtractedMetadata] = Field(default_factory=list)
    unclear_position_emails: List[ExtractedMetadata] = Field(default_factory=list)
    confirm_emails: List[ExtractedMetadata] = Field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {name: len(getattr(self, name)) for name in type(self).model_fields}


class ReplyDispatch(BaseModel):
    """What to do for one record: reply with a template (None = label only), then relabel."""
    template_id: Optional[str] = None
    add_labels: List[str] = Field(default_factory=list)
    remove_labels: List[str] = Field(default_factory=list)
    thread_id: str
    message_id: str


class DispatchOutcome(BaseModel):
    bucket: Bucket
    sent: int = 0
    # Sent, but the response lacked the SENT label; labels left unchanged
    unconfirmed: int = 0
    labelled: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)


class PipelineTrigger(BaseModel):
    """Start signal. `inputData` mirrors the workflow start payload `{"inputData": true}`."""
    input_data: bool = Field(default=True, alias="inputData")
    source: str = "direct"
    triggered_by: str = "manual"  # manual | cron | signal

    class Config:
        populate_by_name = True


class PipelineRunResult(BaseModel):
    source: str
    triggered_by: str
    found: int = 0
    deduplicated: int = 0
    extracted: int = 0
    buckets: dict[str, int] = Field(default_factory=dict)
    dispatch: List[DispatchOutcome] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class WorkflowStartResponse(BaseModel):
    message: str
    status: str
    source: str
