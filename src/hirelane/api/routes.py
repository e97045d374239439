from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from hirelane.api.deps import get_current_principal, get_db, get_storage
from hirelane.api.schemas import (
    ApplicationCreateRequest,
    ApplicationResponse,
    CvDownloadResponse,
    CvResponse,
    MyApplicationResponse,
    WithdrawResponse,
)
from hirelane.core.auth import Principal
from hirelane.core.cv_profiles import CvProfileService, UploadedDocument
from hirelane.core.errors import (
    ConflictError,
    HirelaneError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    StorageConfigurationError,
    UpstreamFailureError,
)
from hirelane.core.lifecycle import ApplicationLifecycleService
from hirelane.storage.drive import GoogleDriveStorage
from hirelane.types import CvPayload

router = APIRouter(prefix="/api", tags=["api"])


def http_error(exc: HirelaneError, *, invalid_state_status: int = status.HTTP_400_BAD_REQUEST) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidArgumentError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, InvalidStateError):
        return HTTPException(status_code=invalid_state_status, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, UpstreamFailureError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": exc.message, "kind": exc.kind},
        )
    if isinstance(exc, StorageConfigurationError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/applications", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def submit_application(
    payload: ApplicationCreateRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    service = ApplicationLifecycleService(db)
    try:
        data = service.submit(
            candidate_id=principal.user_id,
            job_posting_id=payload.job_posting_id,
            message=payload.message,
        )
    except HirelaneError as exc:
        raise http_error(exc) from exc
    return ApplicationResponse.model_validate(data)


@router.get("/applications/mine", response_model=list[MyApplicationResponse])
def list_my_applications(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[MyApplicationResponse]:
    rows = ApplicationLifecycleService(db).list_mine(principal.user_id)
    return [MyApplicationResponse.model_validate(row) for row in rows]


@router.delete("/applications/{application_id}", response_model=WithdrawResponse)
def withdraw_application(
    application_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> WithdrawResponse:
    try:
        ApplicationLifecycleService(db).withdraw(application_id=application_id, candidate_id=principal.user_id)
    except HirelaneError as exc:
        raise http_error(exc) from exc
    return WithdrawResponse(id=application_id)


@router.get("/cv/me", response_model=CvResponse)
def get_my_cv(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    storage: GoogleDriveStorage = Depends(get_storage),
) -> CvResponse:
    cv = CvProfileService(db, storage).get_cv(principal.user_id)
    if cv is None:
        raise HTTPException(status_code=404, detail="CV not found")
    return CvResponse.model_validate(CvProfileService.serialize_cv(cv))


@router.put("/cv/me", response_model=CvResponse)
def save_my_cv(
    payload: str = Form(...),
    file: UploadFile | None = File(default=None),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    storage: GoogleDriveStorage = Depends(get_storage),
) -> CvResponse:
    try:
        values = CvPayload.model_validate_json(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors(include_url=False)) from exc

    document = None
    if file is not None and file.filename:
        document = UploadedDocument(
            data=file.file.read(),
            filename=file.filename,
            mime_type=file.content_type or "application/octet-stream",
        )

    service = CvProfileService(db, storage)
    try:
        cv = service.save_cv(principal.user_id, values, document=document)
    except HirelaneError as exc:
        raise http_error(exc) from exc
    return CvResponse.model_validate(CvProfileService.serialize_cv(cv))


@router.delete("/cv/me/document", response_model=CvResponse)
def remove_my_cv_document(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    storage: GoogleDriveStorage = Depends(get_storage),
) -> CvResponse:
    try:
        cv = CvProfileService(db, storage).remove_document(principal.user_id)
    except HirelaneError as exc:
        raise http_error(exc) from exc
    return CvResponse.model_validate(CvProfileService.serialize_cv(cv))


@router.get("/cv/me/download-url", response_model=CvDownloadResponse)
def my_cv_download_url(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    storage: GoogleDriveStorage = Depends(get_storage),
) -> CvDownloadResponse:
    service = CvProfileService(db, storage)
    cv = service.get_cv(principal.user_id)
    url = service.download_url(cv) if cv else None
    if cv is None or not url:
        raise HTTPException(status_code=404, detail="no CV document on file")
    return CvDownloadResponse(cv_id=cv.id, download_url=url)
