"""Per-bucket actions: templated threaded replies and Gmail label changes."""
import logging
from typing import Iterable, List

from ..config import Settings
from ..email_classifier import DEVELOPER, FRESHER, RECRUITER, SALES_MARKETING, WEB_DESIGNER
from ..gmail_service import GmailClient
from ..schemas import Bucket, DispatchOutcome, ExtractedMetadata, ReplyDispatch, SortedBuckets
from . import templates as t
from .sorter import BUCKET_FIELDS, records_in

logger = logging.getLogger(__name__)

PRE_STAGE = "Pre-Stage"
UNCLEAR_APPLICATIONS = "Unclear Applications"
STAGE1_INTERVIEW = "Stage1 Interview"
SENT_LABEL = "SENT"

# Rejection-style buckets: (template id, labels to add)
BUCKET_ACTIONS = {
    Bucket.MULTIPLE_MISSING: (t.REJECTION_MISSING_MULTIPLE, [PRE_STAGE]),
    Bucket.MISSING_RESUME: (t.REJECTION_NO_RESUME, [PRE_STAGE]),
    Bucket.MISSING_COVER_LETTER: (t.REJECTION_NO_COVER_LETTER, [PRE_STAGE]),
    Bucket.UNCLEAR_POSITION: (t.REJECTION_NO_CLEAR_POSITION, [PRE_STAGE, UNCLEAR_APPLICATIONS]),
}

CATEGORY_TEMPLATES = {
    RECRUITER: t.KEY_DETAILS_NON_TECH,
    SALES_MARKETING: t.KEY_DETAILS_NON_TECH,
    WEB_DESIGNER: t.KEY_DETAILS_CREATIVE,
}


def confirmed_template_id(record: ExtractedMetadata):
    """Request-key-details template for a confirmed record, None for an unclear category."""
    if record.category == DEVELOPER:
        if record.experience_status == FRESHER:
            return t.KEY_DETAILS_DEVELOPER_FRESHER
        return t.KEY_DETAILS_DEVELOPER_EXPERIENCED
    return CATEGORY_TEMPLATES.get(record.category)


def plan_for(bucket: Bucket, record: ExtractedMetadata) -> ReplyDispatch:
    if bucket == Bucket.CONFIRMED:
        template_id = confirmed_template_id(record)
        if template_id is None:
            # Unknown category: park for manual review, no reply.
            return ReplyDispatch(
                template_id=None,
                add_labels=[UNCLEAR_APPLICATIONS, PRE_STAGE],
                thread_id=record.thread_id,
                message_id=record.message_id,
            )
        return ReplyDispatch(
            template_id=template_id,
            add_labels=[record.category, STAGE1_INTERVIEW],
            remove_labels=[PRE_STAGE],
            thread_id=record.thread_id,
            message_id=record.message_id,
        )

    template_id, add_labels = BUCKET_ACTIONS[bucket]
    return ReplyDispatch(
        template_id=template_id,
        add_labels=list(add_labels),
        thread_id=record.thread_id,
        message_id=record.message_id,
    )


class Dispatcher:
    """Sends replies and relabels, one record at a time. A failed record never stops the bucket."""

    def __init__(self, settings: Settings, gmail: GmailClient, templates: t.TemplateStore):
        self.settings = settings
        self.gmail = gmail
        self.templates = templates

    def dispatch(self, sorted_buckets: SortedBuckets) -> List[DispatchOutcome]:
        outcomes = []
        for bucket in BUCKET_FIELDS:
            records = records_in(sorted_buckets, bucket)
            if records:
                outcomes.append(self.dispatch_bucket(bucket, records))
        return outcomes

    def dispatch_bucket(self, bucket: Bucket, records: Iterable[ExtractedMetadata]) -> DispatchOutcome:
        outcome = DispatchOutcome(bucket=bucket)
        for record in records:
            if not record.sender_email:
                logger.warning(f"[{bucket.value}] No sender address for {record.message_id}, skipping")
                outcome.skipped += 1
                continue

            plan = plan_for(bucket, record)
            if self.settings.dry_run:
                logger.info(
                    f"[dry-run] [{bucket.value}] {record.message_id} -> {record.sender_email}: "
                    f"template={plan.template_id} add={plan.add_labels} remove={plan.remove_labels}"
                )
                outcome.skipped += 1
                continue

            try:
                self._apply(plan, record, outcome)
            except Exception as e:
                logger.error(f"[{bucket.value}] Failed to process {record.message_id}: {e}")
                outcome.failed += 1
                outcome.errors.append(f"{record.message_id}: {e}")

        logger.info(
            f"[{bucket.value}] sent={outcome.sent} unconfirmed={outcome.unconfirmed} labelled={outcome.labelled} "
            f"skipped={outcome.skipped} failed={outcome.failed}"
        )
        return outcome

    def _apply(self, plan: ReplyDispatch, record: ExtractedMetadata, outcome: DispatchOutcome) -> None:
        if plan.template_id:
            body = self.templates.render(plan.template_id, record.sender_name, record.position)
            response = self.gmail.send_reply(
                to=record.sender_email,
                subject=f"Re: {record.subject or ''}".strip(),
                body=body,
                thread_id=plan.thread_id,
                in_reply_to=record.rfc822_message_id or None,
                references=[record.rfc822_message_id],
            )
            if SENT_LABEL not in (response or {}).get("labelIds", []):
                outcome.unconfirmed += 1
                logger.warning(f"Reply to {record.message_id} not confirmed as sent, labels unchanged")
                return
            outcome.sent += 1

        self.gmail.modify_labels(plan.message_id, add_labels=plan.add_labels, remove_labels=plan.remove_labels)
        outcome.labelled += 1
        logger.info(f"Labels updated for {plan.message_id}: +{plan.add_labels} -{plan.remove_labels}")
