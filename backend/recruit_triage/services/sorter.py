"""Bucket assignment for extracted applications. Pure and stable."""
from typing import Iterable, Optional

from ..schemas import Bucket, ExtractedMetadata, SortedBuckets

BUCKET_FIELDS = {
    Bucket.MULTIPLE_MISSING: "multiple_missing_details_emails",
    Bucket.MISSING_RESUME: "missing_resume_emails",
    Bucket.MISSING_COVER_LETTER: "missing_cover_letter_emails",
    Bucket.UNCLEAR_POSITION: "unclear_position_emails",
    Bucket.CONFIRMED: "confirm_emails",
}


def bucket_for(record: ExtractedMetadata, require_cover_letter: bool = True) -> Bucket:
    """Two or more gaps -> multiple_missing; one gap -> that gap (resume, cover letter, position); none -> confirmed."""
    flags = [
        (Bucket.MISSING_RESUME, not record.has_resume),
        (Bucket.MISSING_COVER_LETTER, require_cover_letter and not record.has_cover_letter),
        (Bucket.UNCLEAR_POSITION, not record.position_is_clear),
    ]
    missing = [bucket for bucket, is_missing in flags if is_missing]
    if len(missing) >= 2:
        return Bucket.MULTIPLE_MISSING
    if missing:
        return missing[0]
    return Bucket.CONFIRMED


def sort_records(
    records: Iterable[Optional[ExtractedMetadata]],
    require_cover_letter: bool = True,
) -> SortedBuckets:
    """Partition records into buckets, keeping input order. None entries are dropped."""
    sorted_buckets = SortedBuckets()
    for record in records:
        if record is None:
            continue
        bucket = bucket_for(record, require_cover_letter=require_cover_letter)
        getattr(sorted_buckets, BUCKET_FIELDS[bucket]).append(record)
    return sorted_buckets


def records_in(sorted_buckets: SortedBuckets, bucket: Bucket) -> list[ExtractedMetadata]:
    return getattr(sorted_buckets, BUCKET_FIELDS[bucket])
