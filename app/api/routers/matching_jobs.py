"""
Spreadsheet upload, job status and artifact download endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_spreadsheet_upload
from app.schemas.matching_jobs import (
    MatchingJobAcceptedResponse,
    MatchingJobListResponse,
    MatchingJobStatusResponse,
)
from app.services.matching_job_service import (
    DownloadNotAvailableError,
    FastAPIBackgroundTaskExecutor,
    JobNotCompletedError,
    MatchingJobService,
    get_matching_job_service,
)
from app.services.spreadsheet_codec import UnsupportedSpreadsheetError
from db.models.matching_job import MatchingJob, MatchingJobStatus
from db.repositories.errors import FileStorageError, JobNotFoundError
from db.session import get_db

router = APIRouter(tags=["matching-jobs"])


@router.post(
    "/upload",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=MatchingJobAcceptedResponse,
)
def upload_spreadsheet(
    background_tasks: BackgroundTasks,
    file: UploadFile = Depends(get_spreadsheet_upload),
    email: str | None = Form(default=None, description="Optional address notified on completion"),
    db: Session = Depends(get_db),
    service: MatchingJobService = Depends(get_matching_job_service),
) -> MatchingJobAcceptedResponse:
    notify_email = (email or "").strip() or None
    try:
        job = service.submit(
            db=db,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            upload_file=file,
            notify_email=notify_email,
        )
    except UnsupportedSpreadsheetError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except FileStorageError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    finally:
        file.file.close()

    return MatchingJobAcceptedResponse(
        job_id=job.id,
        status=job.status,
        message="File uploaded successfully. Processing started.",
    )


@router.get("/status/{job_id}", response_model=MatchingJobStatusResponse)
def get_job_status(
    job_id: str,
    db: Session = Depends(get_db),
    service: MatchingJobService = Depends(get_matching_job_service),
) -> MatchingJobStatusResponse:
    job = service.get_job_status(db=db, job_id=job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Matching job not found: {job_id}",
        )
    return _to_status_response(job)


@router.get("/jobs", response_model=MatchingJobListResponse)
def list_jobs(
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max jobs returned"),
    db: Session = Depends(get_db),
    service: MatchingJobService = Depends(get_matching_job_service),
) -> MatchingJobListResponse:
    if status_filter is not None and status_filter not in MatchingJobStatus.ALL:
        expected = ", ".join(sorted(MatchingJobStatus.ALL))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown status filter: {status_filter}. Expected one of: {expected}.",
        )
    jobs = service.list_job_statuses(db=db, limit=limit, status=status_filter)
    return MatchingJobListResponse(jobs=[_to_status_response(job) for job in jobs])


@router.get("/download/{job_id}/{kind}")
def download_artifact(
    job_id: str,
    kind: str,
    db: Session = Depends(get_db),
    service: MatchingJobService = Depends(get_matching_job_service),
) -> FileResponse:
    try:
        path = service.download_path(db=db, job_id=job_id, kind=kind)
    except (JobNotFoundError, JobNotCompletedError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DownloadNotAvailableError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return FileResponse(path, filename=path.name)


def _to_status_response(job: MatchingJob) -> MatchingJobStatusResponse:
    return MatchingJobStatusResponse(
        job_id=job.id,
        status=job.status,
        progress=job.progress,
        file_name=job.file_name,
        total_rows=job.total_rows,
        processed_rows=job.processed_rows,
        created_at=job.created_at,
        updated_at=job.updated_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        download_links=job.download_links,
        result_summary=job.result_summary,
        error_message=job.error_message,
    )
