"""
/api/v1/verifications endpoints.
Accepts verify-document requests, either queued for the worker or run inline.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError

from docverify.dependencies import get_pipeline, verify_api_key
from docverify.pipeline.orchestrator import VerificationPipeline
from docverify.schemas.events import VerificationRequest
from docverify.worker.jobs import enqueue_verification

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/verifications", tags=["verifications"], dependencies=[Depends(verify_api_key)])


def _parse(payload: dict[str, Any]) -> VerificationRequest:
    try:
        return VerificationRequest.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        ) from e


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def submit_verification(payload: dict[str, Any] = Body(...)):
    """Validate a verify-document request and queue it for the worker."""
    request = _parse(payload)
    message = request.model_dump(by_alias=True, mode="json")
    try:
        job_id = enqueue_verification(message)
    except Exception as e:
        logger.error("enqueue_failed", application_id=request.application_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Job queue unavailable",
        ) from e

    return {
        "job_id": job_id,
        "application_id": request.application_id,
        "event_id": request.event_id,
        "status": "QUEUED",
    }


@router.post("/run")
async def run_verification(
    payload: dict[str, Any] = Body(...),
    pipeline: VerificationPipeline = Depends(get_pipeline),
):
    """Run a verify-document request inline and return the published outcome."""
    request = _parse(payload)
    outcome = await pipeline.run(request)
    return outcome.to_message()
