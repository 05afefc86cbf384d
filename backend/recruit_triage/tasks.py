"""Celery tasks: one recruitment pipeline pass per call, retried on failure."""
import logging

from celery import shared_task

from .config import configure_logging, load_settings
from .exceptions import ConfigurationError, GmailAuthRequiredError
from .langgraph_pipeline import run_pipeline
from .schemas import PipelineTrigger

logger = logging.getLogger(__name__)


@shared_task(bind=True, name="recruit_triage.tasks.run_recruitment_pipeline")
def run_recruitment_pipeline(self, source: str = "direct", triggered_by: str = "cron"):
    """
    Run the pipeline for one source. Failures are retried up to
    pipeline_retry_attempts total attempts, pipeline_retry_delay_s apart.
    Missing configuration and Gmail authorization are not retried.
    """
    settings = load_settings()
    configure_logging(settings)
    trigger = PipelineTrigger(source=source, triggered_by=triggered_by)
    try:
        result = run_pipeline(settings, trigger)
    except (ConfigurationError, GmailAuthRequiredError):
        raise
    except Exception as e:
        logger.error(f"Pipeline run for {source} failed (attempt {self.request.retries + 1}): {e}")
        raise self.retry(
            exc=e,
            countdown=settings.pipeline_retry_delay_s,
            max_retries=max(0, settings.pipeline_retry_attempts - 1),
        )
    return result.model_dump(mode="json")
