"""Job management API routes."""

from __future__ import annotations

from typing import NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from http_job_scheduler.models import Job
from http_job_scheduler.schemas import (
    AlertRead,
    ExecutionRead,
    JobAlertsResponse,
    JobCreate,
    JobExecutionsResponse,
    JobMutationResponse,
    JobRead,
    JobTriggerResponse,
    JobUpdate,
)
from http_job_scheduler.services.execution_recorder import DEFAULT_HISTORY_LIMIT
from http_job_scheduler.services.job_service import JobService
from http_job_scheduler.services.validation import JobValidationError

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


def _get_job_service(request: Request) -> JobService:
    job_service = getattr(request.app.state, "job_service", None)
    if isinstance(job_service, JobService):
        return job_service

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Job service is unavailable",
    )


def _raise_not_found() -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Job not found",
    )


def _raise_validation_error(error: JobValidationError) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=str(error),
    ) from error


@router.post(
    "", response_model=JobMutationResponse, status_code=status.HTTP_201_CREATED
)
async def create_job(
    payload: JobCreate,
    job_service: JobService = Depends(_get_job_service),
) -> JobMutationResponse:
    try:
        job = await job_service.create_job(
            schedule=payload.schedule,
            target_url=payload.target_url,
            delivery_mode=payload.delivery_mode,
            is_active=payload.is_active,
        )
    except JobValidationError as error:
        _raise_validation_error(error)

    return JobMutationResponse(job_id=job.id, message="Job created successfully")


@router.get("", response_model=list[JobRead], status_code=status.HTTP_200_OK)
async def list_active_jobs(
    job_service: JobService = Depends(_get_job_service),
) -> list[Job]:
    return await job_service.list_active_jobs()


@router.get("/{job_id}", response_model=JobRead, status_code=status.HTTP_200_OK)
async def get_job(
    job_id: UUID,
    job_service: JobService = Depends(_get_job_service),
) -> Job:
    job = await job_service.get_job(job_id)
    if job is None:
        _raise_not_found()
    return job


@router.put(
    "/{job_id}", response_model=JobMutationResponse, status_code=status.HTTP_200_OK
)
async def update_job(
    job_id: UUID,
    payload: JobUpdate,
    job_service: JobService = Depends(_get_job_service),
) -> JobMutationResponse:
    try:
        job = await job_service.update_job(
            job_id, payload.model_dump(exclude_unset=True)
        )
    except JobValidationError as error:
        _raise_validation_error(error)

    if job is None:
        _raise_not_found()
    return JobMutationResponse(job_id=job_id, message="Job updated successfully")


@router.delete(
    "/{job_id}", response_model=JobMutationResponse, status_code=status.HTTP_200_OK
)
async def delete_job(
    job_id: UUID,
    job_service: JobService = Depends(_get_job_service),
) -> JobMutationResponse:
    deleted = await job_service.delete_job(job_id)
    if not deleted:
        _raise_not_found()
    return JobMutationResponse(job_id=job_id, message="Job deleted successfully")


@router.get(
    "/{job_id}/executions",
    response_model=JobExecutionsResponse,
    status_code=status.HTTP_200_OK,
)
async def list_job_executions(
    job_id: UUID,
    limit: int = Query(default=DEFAULT_HISTORY_LIMIT, ge=1, le=100),
    job_service: JobService = Depends(_get_job_service),
) -> JobExecutionsResponse:
    executions = await job_service.job_executions(job_id, limit=limit)
    if executions is None:
        _raise_not_found()

    return JobExecutionsResponse(
        job_id=job_id,
        executions=[ExecutionRead.model_validate(item) for item in executions],
    )


@router.post(
    "/{job_id}/trigger",
    response_model=JobTriggerResponse,
    status_code=status.HTTP_200_OK,
)
async def trigger_job(
    job_id: UUID,
    job_service: JobService = Depends(_get_job_service),
) -> JobTriggerResponse:
    job = await job_service.get_job(job_id)
    if job is None:
        _raise_not_found()
    if not job.is_active:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Job is inactive",
        )

    execution = await job_service.trigger_job(job_id)
    if execution is None:
        # Deleted or deactivated while the request was in flight.
        _raise_not_found()

    return JobTriggerResponse(
        job_id=job_id,
        message=f"Job execution finished with status {execution.status.value}",
        execution=ExecutionRead.model_validate(execution),
    )


@router.get(
    "/{job_id}/alerts",
    response_model=JobAlertsResponse,
    status_code=status.HTTP_200_OK,
)
async def list_job_alerts(
    job_id: UUID,
    job_service: JobService = Depends(_get_job_service),
) -> JobAlertsResponse:
    return JobAlertsResponse(
        job_id=job_id,
        alerts=[
            AlertRead.model_validate(alert) for alert in job_service.job_alerts(job_id)
        ],
    )
