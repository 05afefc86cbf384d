"""Celery app for scheduled pipeline runs. Uses Redis; beat fires one run per configured source."""
from typing import Optional

from celery import Celery
from celery.schedules import crontab

from .config import Settings, load_settings


def parse_crontab(expression: str) -> crontab:
    """Five-field crontab string (minute hour day-of-month month day-of-week)."""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"Expected 5 crontab fields, got {len(fields)}: {expression!r}")
    minute, hour, day_of_month, month_of_year, day_of_week = fields
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


def beat_schedule(settings: Settings) -> dict:
    schedule = parse_crontab(settings.pipeline_schedule)
    return {
        f"recruitment-pipeline-{source}": {
            "task": "recruit_triage.tasks.run_recruitment_pipeline",
            "schedule": schedule,
            "kwargs": {"source": source, "triggered_by": "cron"},
        }
        for source in settings.pipeline_sources
    }


def create_celery_app(settings: Optional[Settings] = None) -> Celery:
    settings = settings or load_settings()
    app = Celery(
        "recruit_triage",
        broker=settings.celery_broker,
        backend=settings.redis_url,
        include=["recruit_triage.tasks"],
    )
    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        beat_schedule=beat_schedule(settings),
    )
    return app


celery_app = create_celery_app()
