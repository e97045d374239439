from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hirelane.api.deps import get_db, get_storage, require_admin
from hirelane.api.routes import http_error
from hirelane.api.schemas import (
    AdminApplicationResponse,
    ApplicationResponse,
    ApplicationStateRequest,
    CvDownloadResponse,
)
from hirelane.core.auth import Principal
from hirelane.core.cv_profiles import CvProfileService
from hirelane.core.errors import HirelaneError
from hirelane.core.lifecycle import ApplicationLifecycleService
from hirelane.db.repositories import Repository
from hirelane.storage.drive import GoogleDriveStorage
from hirelane.types import AdminListFilters

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/applications", response_model=list[AdminApplicationResponse])
def list_applications(
    state: str | None = Query(default=None),
    job_posting_id: str | None = Query(default=None),
    q: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[AdminApplicationResponse]:
    filters = AdminListFilters(state=state, job_posting_id=job_posting_id, q=q, limit=limit, offset=offset)
    try:
        rows = ApplicationLifecycleService(db).admin_list(filters)
    except HirelaneError as exc:
        raise http_error(exc) from exc
    return [AdminApplicationResponse.model_validate(row) for row in rows]


@router.patch("/applications/{application_id}", response_model=ApplicationResponse)
def transition_application(
    application_id: int,
    payload: ApplicationStateRequest,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    try:
        data = ApplicationLifecycleService(db).transition(application_id, payload.state)
    except HirelaneError as exc:
        raise http_error(exc, invalid_state_status=status.HTTP_409_CONFLICT) from exc
    return ApplicationResponse.model_validate(data)


@router.get("/cvs/{cv_id}/download-url", response_model=CvDownloadResponse)
def cv_download_url(
    cv_id: int,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: GoogleDriveStorage = Depends(get_storage),
) -> CvDownloadResponse:
    cv = Repository(db).get_cv(cv_id)
    url = CvProfileService(db, storage).download_url(cv) if cv else None
    if cv is None or not url:
        raise HTTPException(status_code=404, detail="no CV document on file")
    return CvDownloadResponse(cv_id=cv.id, download_url=url)
