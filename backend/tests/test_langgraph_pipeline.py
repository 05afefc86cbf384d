"""End-to-end pipeline runs over fake Gmail/Redis/LLM (no network)."""
import json

from recruit_triage.langgraph_pipeline import RecruitmentPipeline, build_pipeline
from recruit_triage.schemas import Bucket, PipelineTrigger
from recruit_triage.services import templates as t
from recruit_triage.services.dispatcher import Dispatcher
from recruit_triage.services.metadata_extractor import MetadataExtractor
from recruit_triage.services.redis_cache import DedupeCache
from recruit_triage.services.sources import DirectApplicationSource


def _pipeline(settings, gmail, redis_client, llm):
    source = DirectApplicationSource(settings)
    return RecruitmentPipeline(
        settings,
        source,
        gmail,
        DedupeCache(redis_client),
        MetadataExtractor(settings, gmail, llm, source, sleep=lambda s: None),
        Dispatcher(settings, gmail, t.TemplateStore(settings, gmail)),
    )


def _inbox(fake_gmail, make_message):
    fake_gmail.add(
        make_message("confirmed"),
        make_message("noresume", subject="Application for Backend Developer", attachments=()),
        make_message("hello", subject="Hello"),
        make_message("sparse", subject="Job application", body="Please consider me.", attachments=()),
    )


def test_full_run_sorts_and_dispatches(settings, fake_gmail, fake_redis, fake_llm, make_message):
    _inbox(fake_gmail, make_message)
    result = _pipeline(settings, fake_gmail, fake_redis, fake_llm).run(PipelineTrigger(triggered_by="cron"))

    assert result.source == "direct"
    assert result.triggered_by == "cron"
    assert result.found == 4
    assert result.deduplicated == 0
    assert result.extracted == 3
    assert result.buckets["confirm_emails"] == 1
    assert result.buckets["missing_resume_emails"] == 1
    assert result.buckets["multiple_missing_details_emails"] == 1
    assert [o.bucket for o in result.dispatch] == [Bucket.MULTIPLE_MISSING, Bucket.MISSING_RESUME, Bucket.CONFIRMED]
    assert result.errors == []

    assert fake_gmail.queries == ["label:inbox -label:pre-stage"]
    assert len(fake_llm.prompts) == 1  # only the message without a title
    assert {s["to"] for s in fake_gmail.sent} == {"jane@example.com"}
    assert len(fake_gmail.sent) == 3
    assert ("confirmed", ["Developer", "Stage1 Interview"], ["Pre-Stage"]) in fake_gmail.modified
    assert ("noresume", ["Pre-Stage"], []) in fake_gmail.modified


def test_second_run_within_ttl_is_deduplicated(settings, fake_gmail, fake_redis, fake_llm, make_message):
    _inbox(fake_gmail, make_message)
    pipeline = _pipeline(settings, fake_gmail, fake_redis, fake_llm)
    pipeline.run()
    sent_after_first = len(fake_gmail.sent)

    again = pipeline.run()
    assert again.found == 4
    assert again.deduplicated == 4
    assert again.extracted == 0
    assert again.dispatch == []
    assert len(fake_gmail.sent) == sent_after_first


def test_empty_inbox(settings, fake_gmail, fake_redis, fake_llm):
    result = _pipeline(settings, fake_gmail, fake_redis, fake_llm).run()
    assert result.found == 0
    assert result.dispatch == []
    assert sum(result.buckets.values()) == 0


def test_llm_outage_lands_in_unclear_position(settings, fake_gmail, fake_redis, fake_llm, make_message):
    fake_gmail.add(make_message("m1", subject="Job application"))
    fake_llm.error = RuntimeError("provider down")
    result = _pipeline(settings, fake_gmail, fake_redis, fake_llm).run()
    assert result.buckets["unclear_position_emails"] == 1
    assert fake_gmail.sent[0]["body"].startswith("Dear Jane Doe,")
    assert ("m1", ["Pre-Stage", "Unclear Applications"], []) in fake_gmail.modified


def test_parallel_extraction_keeps_order(settings, fake_gmail, fake_redis, fake_llm, make_message):
    for i in range(5):
        fake_gmail.add(make_message(f"m{i}"))
    wide = settings.model_copy(update={"extraction_workers": 3})
    result = _pipeline(wide, fake_gmail, fake_redis, fake_llm).run()
    assert result.extracted == 5
    assert [s["thread_id"] for s in fake_gmail.sent] == [f"t-m{i}" for i in range(5)]


def test_llm_json_classification_feeds_confirmed_routing(settings, fake_gmail, fake_redis, fake_llm, make_message):
    fake_gmail.add(make_message("m1", subject="Job application"))
    fake_llm.responses = [json.dumps({"job_title": "UI Designer", "experience_status": "experienced", "category": "Web Designer"})]
    _pipeline(settings, fake_gmail, fake_redis, fake_llm).run()
    assert "UI Designer position" in fake_gmail.sent[0]["body"]
    assert ("m1", ["Web Designer", "Stage1 Interview"], ["Pre-Stage"]) in fake_gmail.modified


def test_build_pipeline_wires_source(settings, fake_gmail, fake_llm):
    pipeline = build_pipeline(settings, "indeed", gmail=fake_gmail, dedupe=DedupeCache(None), llm=fake_llm)
    pipeline.run()
    assert fake_gmail.queries == ["label:inbox -label:pre-stage from:indeedemail.com"]


def test_dry_run_leaves_no_dedupe_markers(settings, fake_gmail, fake_redis, fake_llm, make_message):
    fake_gmail.add(make_message("m1"))
    dry = settings.model_copy(update={"dry_run": True})

    preview = _pipeline(dry, fake_gmail, fake_redis, fake_llm).run()
    assert preview.extracted == 1
    assert fake_redis.store == {}
    assert fake_gmail.sent == []

    real = _pipeline(settings, fake_gmail, fake_redis, fake_llm).run()
    assert real.deduplicated == 0
    assert len(fake_gmail.sent) == 1
    assert "processed_email:m1" in fake_redis.store


def test_dry_run_still_skips_already_processed(settings, fake_gmail, fake_redis, fake_llm, make_message):
    fake_gmail.add(make_message("m1"))
    _pipeline(settings, fake_gmail, fake_redis, fake_llm).run()

    preview = _pipeline(settings.model_copy(update={"dry_run": True}), fake_gmail, fake_redis, fake_llm).run()
    assert preview.deduplicated == 1
    assert preview.extracted == 0
