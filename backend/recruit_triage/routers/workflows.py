"""Workflow trigger API: POST /api/workflows/{source}/start-async starts a pipeline run in the background."""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from .. import langgraph_pipeline
from ..auth import get_settings, require_api_key
from ..config import Settings
from ..exceptions import GmailAuthRequiredError
from ..schemas import PipelineTrigger, WorkflowStartResponse
from ..services.sources import SOURCES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workflows", tags=["workflows"], dependencies=[Depends(require_api_key)])


def _run_workflow_task(settings: Settings, trigger: PipelineTrigger) -> None:
    try:
        result = langgraph_pipeline.run_pipeline(settings, trigger)
        logger.info(f"Workflow {trigger.source} finished: {result.buckets}")
    except GmailAuthRequiredError as e:
        logger.error(f"Workflow {trigger.source} needs Gmail authorization: {e}")
    except Exception as e:
        logger.exception(f"Workflow {trigger.source} failed: {e}")


@router.post("/{source}/start-async", response_model=WorkflowStartResponse, status_code=202)
def start_workflow(
    source: str,
    background_tasks: BackgroundTasks,
    payload: Optional[PipelineTrigger] = None,
    settings: Settings = Depends(get_settings),
):
    if source not in SOURCES:
        raise HTTPException(status_code=404, detail=f"Unknown workflow source: {source}")
    payload = payload or PipelineTrigger()
    if not payload.input_data:
        raise HTTPException(status_code=400, detail="inputData must be true to start the workflow")

    trigger = PipelineTrigger(source=source, triggered_by=payload.triggered_by)
    background_tasks.add_task(_run_workflow_task, settings, trigger)
    return WorkflowStartResponse(message="Workflow started", status="started", source=source)
