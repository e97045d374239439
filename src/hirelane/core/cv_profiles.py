from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hirelane.core.errors import NotFoundError, UpstreamFailureError
from hirelane.core.snapshots import document_of
from hirelane.db.models import CvRecord
from hirelane.db.repositories import Repository
from hirelane.storage.drive import GoogleDriveStorage
from hirelane.types import CvPayload

logger = logging.getLogger(__name__)

DELETE_FAILED = "remote delete failed"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(slots=True)
class UploadedDocument:
    data: bytes
    filename: str
    mime_type: str = "application/octet-stream"


def storage_filename(user_id: int, filename: str) -> str:
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", filename).strip("._") or "cv"
    return f"cv-{user_id}-{uuid.uuid4().hex[:8]}-{cleaned}"


class CvProfileService:
    """Maintains a candidate's CV and its document in remote storage.

    The database is authoritative. A document reference is only written after
    the upload succeeded, and remote deletes never block a local update: a
    failed delete is queued as a ``StorageDeletion`` for the reconciler.
    """

    def __init__(self, session: Session, storage: GoogleDriveStorage):
        self.session = session
        self.storage = storage
        self.repo = Repository(session)

    def get_cv(self, user_id: int) -> CvRecord | None:
        return self.repo.get_cv_by_owner(user_id)

    def save_cv(self, user_id: int, payload: CvPayload, *, document: UploadedDocument | None = None) -> CvRecord:
        if self.repo.get_user(user_id) is None:
            raise NotFoundError("user not found")

        existing = self.repo.get_cv_by_owner(user_id)
        previous_provider_id = existing.document_provider_id if existing else None

        values: dict[str, Any] = {
            "name": payload.name,
            "surname": payload.surname,
            "email": payload.email,
            "phone": payload.phone,
            "links_json": payload.links.model_dump(),
            "summary": payload.summary,
            "education_json": [entry.model_dump() for entry in payload.education],
            "experience_json": [entry.model_dump() for entry in payload.experience],
        }

        uploaded = None
        if document is not None:
            try:
                uploaded = self.storage.upload(
                    document.data,
                    storage_filename(user_id, document.filename),
                    mime_type=document.mime_type,
                )
            except UpstreamFailureError as exc:
                if exc.orphaned_provider_id:
                    logger.warning(
                        "Queued remote delete for reconciliation provider_id=%s reason=orphaned_upload",
                        exc.orphaned_provider_id,
                    )
                    self.repo.record_storage_deletion(
                        provider_id=exc.orphaned_provider_id,
                        reason="orphaned_upload",
                        error=DELETE_FAILED,
                    )
                raise
            values["document_provider_id"] = uploaded.provider_id
            values["document_url"] = uploaded.url
            values["document_filename"] = document.filename

        try:
            cv = self.repo.upsert_cv(user_id, values)
        except SQLAlchemyError:
            self.session.rollback()
            if uploaded is not None:
                self._discard_remote(uploaded.provider_id, reason="orphaned_upload")
            raise

        if uploaded is not None and previous_provider_id and previous_provider_id != uploaded.provider_id:
            self._discard_remote(previous_provider_id, reason="replaced_document")

        logger.info("CV saved user_id=%s cv_id=%s new_document=%s", user_id, cv.id, uploaded is not None)
        return cv

    def remove_document(self, user_id: int) -> CvRecord:
        cv = self.repo.get_cv_by_owner(user_id)
        if cv is None or not cv.document_provider_id:
            raise NotFoundError("no CV document on file")

        provider_id = cv.document_provider_id
        cv = self.repo.upsert_cv(
            user_id,
            {"document_provider_id": None, "document_url": None, "document_filename": ""},
        )
        self._discard_remote(provider_id, reason="removed_document")
        return cv

    def download_url(self, cv: CvRecord) -> str | None:
        document = document_of(cv)
        if document is None:
            return None
        # A provider hiccup degrades to the URL captured at upload time.
        return self.storage.resolve_download_url(document.provider_id) or document.url

    def _discard_remote(self, provider_id: str, *, reason: str) -> None:
        if self.storage.delete(provider_id):
            return
        logger.warning("Queued remote delete for reconciliation provider_id=%s reason=%s", provider_id, reason)
        self.repo.record_storage_deletion(provider_id=provider_id, reason=reason, error=DELETE_FAILED)

    @staticmethod
    def serialize_cv(cv: CvRecord) -> dict[str, Any]:
        document = document_of(cv)
        return {
            "id": cv.id,
            "user_id": cv.user_id,
            "name": cv.name,
            "surname": cv.surname,
            "email": cv.email,
            "phone": cv.phone,
            "links": dict(cv.links_json or {}),
            "summary": cv.summary,
            "education": list(cv.education_json or []),
            "experience": list(cv.experience_json or []),
            "document": document.model_dump() if document else None,
            "created_at": cv.created_at,
            "updated_at": cv.updated_at,
        }
