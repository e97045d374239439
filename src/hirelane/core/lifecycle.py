from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from hirelane.config import Settings, get_settings
from hirelane.core.errors import ConflictError, InvalidArgumentError, InvalidStateError, NotFoundError
from hirelane.core.snapshots import build_cv_snapshot
from hirelane.db.models import Application, JobPosting, User
from hirelane.db.repositories import Repository
from hirelane.types import (
    ACCEPTING_STATUS,
    APPLICATION_STATES,
    CV_SNAPSHOT_VERSION,
    INITIAL_STATE,
    AdminListFilters,
    is_application_state,
    is_transition_allowed,
)

logger = logging.getLogger(__name__)

APPLICATION_NOT_FOUND = "application not found"


def parse_identifier(value: str) -> int | None:
    candidate = value.strip()
    if not candidate.isascii() or not candidate.isdigit():
        return None
    parsed = int(candidate)
    return parsed if parsed > 0 else None


class ApplicationLifecycleService:
    """Creates, lists, moves and withdraws job applications."""

    def __init__(self, session: Session, *, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)

    def submit(self, *, candidate_id: int, job_posting_id: int, message: str = "") -> dict[str, Any]:
        posting = self.repo.get_job_posting(job_posting_id)
        if posting is None:
            raise NotFoundError("job posting not found")
        if posting.status != ACCEPTING_STATUS:
            raise InvalidStateError("job posting is not accepting applications")

        candidate = self.repo.get_user(candidate_id)
        if candidate is None:
            raise NotFoundError("candidate not found")

        cv = self.repo.get_cv_by_owner(candidate_id)
        snapshot = build_cv_snapshot(cv, candidate)

        # Uniqueness is left to the database constraint; no pre-check here.
        application = self.repo.create_application(
            job_posting_id=job_posting_id,
            candidate_id=candidate_id,
            message=(message or "").strip(),
            cv_record_id=cv.id if cv else None,
            cv_snapshot=snapshot.model_dump(mode="json"),
            cv_snapshot_version=CV_SNAPSHOT_VERSION,
            state=INITIAL_STATE,
        )
        logger.info(
            "Application %s submitted candidate_id=%s job_posting_id=%s has_cv=%s",
            application.id,
            candidate_id,
            job_posting_id,
            cv is not None,
        )
        return self.serialize_application(application)

    def list_mine(self, candidate_id: int) -> list[dict[str, Any]]:
        rows = self.repo.list_candidate_applications(candidate_id)
        return [
            {**self.serialize_application(application), "job_posting": _posting_summary(posting)}
            for application, posting in rows
        ]

    def admin_list(self, filters: AdminListFilters | None = None) -> list[dict[str, Any]]:
        filters = filters or AdminListFilters()

        state = filters.state or None
        if state is not None and not is_application_state(state):
            raise InvalidArgumentError(f"invalid state {state!r}; expected one of {list(APPLICATION_STATES)}")

        job_posting_id = None
        if filters.job_posting_id:
            job_posting_id = parse_identifier(filters.job_posting_id)
            if job_posting_id is None:
                return []

        text = (filters.q or "").strip() or None
        limit = filters.limit
        if limit is not None:
            limit = min(limit, self.settings.admin_list_max_limit)

        rows = self.repo.search_applications(
            state=state,
            job_posting_id=job_posting_id,
            text=text,
            limit=limit,
            offset=filters.offset,
        )
        return [
            {
                **self.serialize_application(application),
                "candidate": _candidate_summary(candidate, current_cv_id),
                "job_posting": _posting_detail(posting),
            }
            for application, candidate, posting, current_cv_id in rows
        ]

    def transition(self, application_id: int, new_state: str) -> dict[str, Any]:
        if not is_application_state(new_state):
            raise InvalidArgumentError(f"invalid state {new_state!r}; expected one of {list(APPLICATION_STATES)}")

        application = self.repo.get_application(application_id)
        if application is None:
            raise NotFoundError(APPLICATION_NOT_FOUND)

        current = application.state
        expected_state = None
        if self.settings.enforce_state_transitions:
            if not is_transition_allowed(current, new_state):
                raise InvalidStateError(f"cannot move application from {current} to {new_state}")
            expected_state = current

        if not self.repo.set_application_state(application_id, new_state, expected_state=expected_state):
            if self.repo.get_application(application_id) is None:
                raise NotFoundError(APPLICATION_NOT_FOUND)
            raise ConflictError("application state changed concurrently; reload and retry")

        logger.info("Application %s state %s -> %s", application_id, current, new_state)
        refreshed = self.repo.get_application(application_id)
        if refreshed is None:
            raise NotFoundError(APPLICATION_NOT_FOUND)
        return self.serialize_application(refreshed)

    def withdraw(self, *, application_id: int, candidate_id: int) -> None:
        # Missing and foreign applications are reported identically.
        if not self.repo.delete_candidate_application(application_id, candidate_id):
            raise NotFoundError(APPLICATION_NOT_FOUND)
        logger.info("Application %s withdrawn by candidate_id=%s", application_id, candidate_id)

    @staticmethod
    def serialize_application(application: Application) -> dict[str, Any]:
        return {
            "id": application.id,
            "job_posting_id": application.job_posting_id,
            "candidate_id": application.candidate_id,
            "message": application.message,
            "cv_record_id": application.cv_record_id,
            "cv_snapshot": dict(application.cv_snapshot_json or {}),
            "cv_snapshot_version": application.cv_snapshot_version,
            "state": application.state,
            "created_at": application.created_at,
            "updated_at": application.updated_at,
        }


def _posting_summary(posting: JobPosting | None) -> dict[str, Any] | None:
    if posting is None:
        return None
    return {
        "id": posting.id,
        "title": posting.title,
        "area": posting.area,
        "status": posting.status,
        "location": posting.location,
    }


def _posting_detail(posting: JobPosting | None) -> dict[str, Any] | None:
    summary = _posting_summary(posting)
    if summary is None or posting is None:
        return None
    return {**summary, "description": posting.description}


def _candidate_summary(candidate: User | None, current_cv_id: int | None) -> dict[str, Any] | None:
    if candidate is None:
        return None
    return {
        "id": candidate.id,
        "name": candidate.name,
        "surname": candidate.surname,
        "email": candidate.email,
        "role": candidate.role,
        "phone": candidate.phone,
        "address": candidate.address,
        "cv_id": current_cv_id,
    }
