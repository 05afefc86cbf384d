"""Pytest fixtures: settings, fake Gmail/Redis/LLM, message factory."""
import os
os.environ.setdefault("RECRUITMENT_MAIL", "jobs@example.com")
os.environ.setdefault("CONSULTING_MAIL", "consulting@example.com")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

from typing import Optional

import pytest

from recruit_triage.config import Settings
from recruit_triage.schemas import Attachment, InboundMessage, MessageRef

COVER_LETTER_BODY = (
    "Dear Team,\n\n"
    "I am writing to express my enthusiasm for joining your company. I have 3 years of "
    "experience building responsive web applications with React, TypeScript and modern tooling. "
    "In my current job I led the migration of a large dashboard to a shared component library "
    "and improved load times considerably. I am passionate about accessible interfaces and clean "
    "code, and I would love the opportunity to contribute to your team.\n\n"
    "Thank you for considering my application.\n\n"
    "Sincerely,\nJane Doe"
)


class FakeRedis:
    """Just enough of redis.Redis for the dedupe cache: SET with EX/NX, GET and EXISTS."""

    def __init__(self, fail: bool = False):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = fail

    def set(self, key, value, ex=None, nx=False):
        if self.fail:
            raise ConnectionError("redis down")
        if nx and key in self.store:
            return None
        self.store[key] = value
        self.ttls[key] = ex
        return True

    def get(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return self.store.get(key)

    def exists(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return int(key in self.store)


class FakeGmail:
    """In-memory GmailClient stand-in. Records sends and label changes."""

    def __init__(self):
        self.messages: dict[str, InboundMessage] = {}
        self.threads: dict[str, list] = {}
        self.sent: list[dict] = []
        self.modified: list[tuple] = []
        self.queries: list[str] = []
        self.drafts: dict[str, str] = {}
        self.send_label_ids = ["SENT"]
        self.fail_send_for: set[str] = set()

    def add(self, *messages: InboundMessage) -> "FakeGmail":
        for m in messages:
            self.messages[m.id] = m
        return self

    def search_messages(self, query, label_ids=None, max_results=None):
        self.queries.append(query)
        return [MessageRef(id=m.id, thread_id=m.thread_id) for m in self.messages.values()]

    def get_thread_message_ids(self, thread_id):
        if thread_id in self.threads:
            return self.threads[thread_id]
        return [m.id for m in self.messages.values() if m.thread_id == thread_id]

    def get_message(self, message_id):
        return self.messages[message_id]

    def send_reply(self, to, subject, body, thread_id=None, in_reply_to=None, references=None):
        if to in self.fail_send_for:
            raise RuntimeError("send failed")
        self.sent.append(
            {
                "to": to,
                "subject": subject,
                "body": body,
                "thread_id": thread_id,
                "in_reply_to": in_reply_to,
                "references": list(references or []),
            }
        )
        return {"id": f"sent-{len(self.sent)}", "labelIds": list(self.send_label_ids)}

    def modify_labels(self, message_id, add_labels=(), remove_labels=()):
        self.modified.append((message_id, list(add_labels), list(remove_labels)))
        return {}

    def get_draft_text(self, query):
        self.queries.append(query)
        return self.drafts.get(query, "")


class FakeLLM:
    def __init__(self):
        self.responses: list[str] = []
        self.error: Optional[Exception] = None
        self.prompts: list[str] = []

    def generate(self, prompt, instructions=None, max_tokens=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.responses.pop(0) if self.responses else "{}"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        recruitment_mail="jobs@example.com",
        consulting_mail="consulting@example.com",
        openai_api_key="test-key",
        llm_retry_delay_s=0,
        llm_failure_backoff_s=0,
    )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_gmail():
    return FakeGmail()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def cover_letter_body():
    return COVER_LETTER_BODY


@pytest.fixture
def make_message():
    def _make(
        id: str = "m1",
        thread_id: Optional[str] = None,
        subject: str = "Application for Frontend Developer",
        body: str = COVER_LETTER_BODY,
        sender: str = "Jane Doe <jane@example.com>",
        reply_to: Optional[str] = None,
        attachments=("Jane_Doe_Resume.pdf",),
        html: str = "",
        rfc822_id: Optional[str] = None,
    ) -> InboundMessage:
        headers = {
            "from": sender,
            "subject": subject,
            "message-id": rfc822_id or f"<{id}@mail.example.com>",
        }
        if reply_to:
            headers["reply-to"] = reply_to
        return InboundMessage(
            id=id,
            thread_id=thread_id or f"t-{id}",
            headers=headers,
            text_body=body,
            html_body=html,
            attachments=[Attachment(filename=f, attachment_id=f"att-{i}") for i, f in enumerate(attachments)],
            label_ids=["INBOX"],
        )

    return _make
