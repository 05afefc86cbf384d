"""Gmail API integration: search, message/thread fetch, threaded replies, labels, draft templates."""
import base64
import logging
import os
import pickle
import time
from email.message import EmailMessage
from typing import Iterable, List, Optional

from google.auth.transport.requests import Request
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .config import Settings
from .exceptions import GmailAuthRequiredError
from .schemas import Attachment, InboundMessage, MessageRef

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.readonly",
]

# System labels are addressed by name; user labels need an id lookup.
SYSTEM_LABELS = {"INBOX", "UNREAD", "STARRED", "IMPORTANT", "SENT", "SPAM", "TRASH", "DRAFT"}


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(backend_dir, path)


def get_gmail_service(settings: Settings, allow_interactive_oauth: bool = False):
    """
    Return Gmail API service. If allow_interactive_oauth is False (default) and
    we would need to open a browser (run_local_server), raises GmailAuthRequiredError
    so a scheduled run fails fast instead of blocking forever.
    """
    creds = None
    token_path = _resolve_path(settings.token_path)
    creds_path = _resolve_path(settings.credentials_path)

    if os.path.exists(token_path):
        with open(token_path, "rb") as token:
            creds = pickle.load(token)

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
            except Exception as e:
                if not allow_interactive_oauth:
                    raise GmailAuthRequiredError(
                        "Gmail token expired and refresh failed. Run scripts/authorize_gmail.py to sign in again."
                    ) from e
                raise
        else:
            if not os.path.exists(creds_path):
                raise FileNotFoundError(
                    f"Gmail credentials not found at {creds_path}. "
                    "Download from Google Cloud Console and save as credentials.json"
                )
            if not allow_interactive_oauth:
                raise GmailAuthRequiredError(
                    "Gmail authorization required. Run scripts/authorize_gmail.py once to sign in."
                )
            flow = InstalledAppFlow.from_client_secrets_file(creds_path, SCOPES)
            creds = flow.run_local_server(port=0)
        with open(token_path, "wb") as token:
            pickle.dump(creds, token)
        try:
            os.chmod(token_path, 0o600)
        except OSError:
            pass

    return build("gmail", "v1", credentials=creds)


# Rate limiting: exponential backoff
def _with_backoff(fn, max_retries: int = 5):
    for attempt in range(max_retries):
        try:
            return fn()
        except HttpError as e:
            if e.resp.status in (429, 500, 503) and attempt < max_retries - 1:
                time.sleep(2 ** attempt)
                continue
            raise


def decode_body_data(data: Optional[str]) -> str:
    """Decode a Gmail base64url body. Gmail strips padding, so restore it."""
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def _find_part(payload: dict, mime_type: str) -> Optional[dict]:
    """multipart/alternative children first, then direct parts, then a single-part payload."""
    parts = payload.get("parts") or []
    for part in parts:
        if part.get("mimeType") == "multipart/alternative":
            for child in part.get("parts") or []:
                if child.get("mimeType") == mime_type:
                    return child
    for part in parts:
        if part.get("mimeType") == mime_type:
            return part
    if not parts and payload.get("mimeType") == mime_type:
        return payload
    return None


def _get_headers(email: dict) -> dict:
    return {h["name"].lower(): h["value"] for h in email.get("payload", {}).get("headers", [])}


def _get_attachments(payload: dict) -> List[Attachment]:
    out: List[Attachment] = []
    for part in payload.get("parts") or []:
        if part.get("filename"):
            out.append(
                Attachment(
                    filename=part["filename"],
                    attachment_id=(part.get("body") or {}).get("attachmentId"),
                    mime_type=part.get("mimeType"),
                )
            )
    return out


def parse_message(email: dict) -> InboundMessage:
    """Decode a raw Gmail message (format=full) into an InboundMessage."""
    payload = email.get("payload", {}) or {}
    text_part = _find_part(payload, "text/plain")
    html_part = _find_part(payload, "text/html")
    return InboundMessage(
        id=email.get("id", ""),
        thread_id=email.get("threadId", ""),
        headers=_get_headers(email),
        text_body=decode_body_data((text_part or {}).get("body", {}).get("data")),
        html_body=decode_body_data((html_part or {}).get("body", {}).get("data")),
        attachments=_get_attachments(payload),
        label_ids=email.get("labelIds", []) or [],
    )


def list_messages(
    service,
    query: str,
    max_results: int = 50,
    label_ids: Optional[List[str]] = None,
    page_token: Optional[str] = None,
) -> dict:
    """List message IDs (one page)."""
    return _with_backoff(
        lambda: service.users()
        .messages()
        .list(
            userId="me",
            q=query,
            labelIds=label_ids or None,
            maxResults=max_results,
            pageToken=page_token or None,
        )
        .execute()
    )


def get_message(service, msg_id: str) -> dict:
    """Get full message by ID."""
    return _with_backoff(
        lambda: service.users()
        .messages()
        .get(userId="me", id=msg_id, format="full")
        .execute()
    )


def get_thread(service, thread_id: str) -> dict:
    """Get a thread with minimal message data (ids and labels only)."""
    return _with_backoff(
        lambda: service.users()
        .threads()
        .get(userId="me", id=thread_id, format="minimal")
        .execute()
    )


def build_reply_raw(
    to: str,
    subject: str,
    body: str,
    in_reply_to: Optional[str] = None,
    references: Optional[Iterable[str]] = None,
) -> str:
    """RFC 2822 reply, base64url encoded for messages.send."""
    msg = EmailMessage()
    msg["To"] = to
    msg["Subject"] = subject
    if in_reply_to:
        msg["In-Reply-To"] = in_reply_to
    refs = [r for r in (references or []) if r]
    if refs:
        msg["References"] = " ".join(refs)
    msg.set_content(body)
    return base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii")


class GmailClient:
    """Mailbox capability set used by the pipeline: search, fetch, send, relabel, draft templates."""

    def __init__(self, service, settings: Settings):
        self.service = service
        self.settings = settings
        self._label_ids: Optional[dict[str, str]] = None

    def search_messages(
        self,
        query: str,
        label_ids: Optional[List[str]] = None,
        max_results: Optional[int] = None,
    ) -> List[MessageRef]:
        result = list_messages(
            self.service,
            query,
            max_results=max_results or self.settings.gmail_messages_max_results,
            label_ids=label_ids,
        )
        return [
            MessageRef(id=m.get("id"), thread_id=m.get("threadId"))
            for m in result.get("messages", []) or []
        ]

    def get_message(self, message_id: str) -> InboundMessage:
        return parse_message(get_message(self.service, message_id))

    def get_thread_message_ids(self, thread_id: str) -> List[str]:
        thread = get_thread(self.service, thread_id)
        return [m.get("id") for m in thread.get("messages", []) or []]

    def send_reply(
        self,
        to: str,
        subject: str,
        body: str,
        thread_id: Optional[str] = None,
        in_reply_to: Optional[str] = None,
        references: Optional[Iterable[str]] = None,
    ) -> dict:
        if not to or not subject or not body:
            raise ValueError("Email data is required")
        request_body = {"raw": build_reply_raw(to, subject, body, in_reply_to, references)}
        if thread_id:
            request_body["threadId"] = thread_id
        return _with_backoff(
            lambda: self.service.users()
            .messages()
            .send(userId="me", body=request_body)
            .execute()
        )

    def _load_labels(self) -> dict[str, str]:
        if self._label_ids is None:
            result = _with_backoff(lambda: self.service.users().labels().list(userId="me").execute())
            self._label_ids = {l["name"]: l["id"] for l in result.get("labels", []) or []}
        return self._label_ids

    def _create_label(self, name: str) -> str:
        logger.warning(f"Label not found, creating: {name}")
        created = _with_backoff(
            lambda: self.service.users()
            .labels()
            .create(
                userId="me",
                body={"name": name, "labelListVisibility": "labelShow", "messageListVisibility": "show"},
            )
            .execute()
        )
        self._load_labels()[name] = created["id"]
        return created["id"]

    def resolve_label_ids(self, names: Iterable[str], create_missing: bool = False) -> List[str]:
        labels = self._load_labels()
        ids: List[str] = []
        for name in names:
            if name in SYSTEM_LABELS:
                ids.append(name)
            elif name in labels:
                ids.append(labels[name])
            elif create_missing:
                ids.append(self._create_label(name))
            else:
                logger.warning(f"Label not found: {name}")
        return ids

    def modify_labels(
        self,
        message_id: str,
        add_labels: Iterable[str] = (),
        remove_labels: Iterable[str] = (),
    ) -> dict:
        """Add labels (created on demand) and remove labels (unknown names ignored) by name."""
        body = {
            "addLabelIds": self.resolve_label_ids(add_labels, create_missing=True),
            "removeLabelIds": self.resolve_label_ids(remove_labels),
        }
        return _with_backoff(
            lambda: self.service.users()
            .messages()
            .modify(userId="me", id=message_id, body=body)
            .execute()
        )

    def get_draft_text(self, query: str) -> str:
        """Plain-text body of the first draft matching query, '' when there is none."""
        result = _with_backoff(
            lambda: self.service.users().drafts().list(userId="me", q=query, maxResults=1).execute()
        )
        drafts = result.get("drafts", []) or []
        draft_message_id = (drafts[0].get("message") or {}).get("id") if drafts else None
        if not draft_message_id:
            return ""
        return self.get_message(draft_message_id).text_body
