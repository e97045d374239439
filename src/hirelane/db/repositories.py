from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hirelane.core.errors import ConflictError
from hirelane.db.models import Application, CvRecord, JobPosting, StorageDeletion, User

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text is matched literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def create_user(
        self,
        *,
        name: str,
        surname: str,
        email: str,
        role: str = "candidate",
        phone: str = "",
        address: str = "",
    ) -> User:
        user = User(name=name, surname=surname, email=email, role=role, phone=phone, address=address)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError(f"a user with email {email!r} already exists") from exc
        self.session.refresh(user)
        return user

    def get_user(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def list_users(self) -> list[User]:
        return list(self.session.scalars(select(User).order_by(User.id.asc())).all())

    def get_cv(self, cv_id: int) -> CvRecord | None:
        return self.session.get(CvRecord, cv_id)

    def get_cv_by_owner(self, user_id: int) -> CvRecord | None:
        return self.session.scalar(select(CvRecord).where(CvRecord.user_id == user_id))

    def upsert_cv(self, user_id: int, values: dict[str, Any]) -> CvRecord:
        existing = self.get_cv_by_owner(user_id)
        if existing:
            for key, value in values.items():
                setattr(existing, key, value)
            obj = existing
        else:
            obj = CvRecord(user_id=user_id, **values)
            self.session.add(obj)

        self.session.commit()
        self.session.refresh(obj)
        return obj

    def create_job_posting(
        self,
        *,
        title: str,
        area: str = "",
        status: str = "open",
        location: str = "",
        description: str = "",
        created_by: int | None = None,
    ) -> JobPosting:
        posting = JobPosting(
            title=title,
            area=area,
            status=status,
            location=location,
            description=description,
            created_by=created_by,
        )
        self.session.add(posting)
        self.session.commit()
        self.session.refresh(posting)
        return posting

    def get_job_posting(self, posting_id: int) -> JobPosting | None:
        return self.session.get(JobPosting, posting_id)

    def list_job_postings(self, status: str | None = None) -> list[JobPosting]:
        statement = select(JobPosting).order_by(JobPosting.created_at.desc(), JobPosting.id.desc())
        if status is not None:
            statement = statement.where(JobPosting.status == status)
        return list(self.session.scalars(statement).all())

    def set_job_posting_status(self, posting_id: int, status: str) -> JobPosting:
        posting = self.session.get(JobPosting, posting_id)
        if not posting:
            raise ValueError(f"job posting {posting_id} not found")
        posting.status = status
        self.session.commit()
        self.session.refresh(posting)
        return posting

    def create_application(
        self,
        *,
        job_posting_id: int,
        candidate_id: int,
        message: str,
        cv_record_id: int | None,
        cv_snapshot: dict[str, Any],
        cv_snapshot_version: int,
        state: str,
    ) -> Application:
        application = Application(
            job_posting_id=job_posting_id,
            candidate_id=candidate_id,
            message=message,
            cv_record_id=cv_record_id,
            cv_snapshot_json=cv_snapshot,
            cv_snapshot_version=cv_snapshot_version,
            snapshot_name=cv_snapshot.get("name", ""),
            snapshot_surname=cv_snapshot.get("surname", ""),
            snapshot_email=cv_snapshot.get("email", ""),
            state=state,
        )
        self.session.add(application)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.info(
                "Duplicate application rejected candidate_id=%s job_posting_id=%s",
                candidate_id,
                job_posting_id,
            )
            raise ConflictError("already applied to this job posting") from exc
        self.session.refresh(application)
        return application

    def get_application(self, application_id: int) -> Application | None:
        return self.session.get(Application, application_id)

    def list_candidate_applications(self, candidate_id: int) -> list[tuple[Application, JobPosting | None]]:
        statement = (
            select(Application, JobPosting)
            .outerjoin(JobPosting, JobPosting.id == Application.job_posting_id)
            .where(Application.candidate_id == candidate_id)
            .order_by(Application.created_at.desc(), Application.id.desc())
        )
        return [(row[0], row[1]) for row in self.session.execute(statement).all()]

    def search_applications(
        self,
        *,
        state: str | None = None,
        job_posting_id: int | None = None,
        text: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[tuple[Application, User | None, JobPosting | None, int | None]]:
        statement = (
            select(Application, User, JobPosting, CvRecord.id)
            .outerjoin(User, User.id == Application.candidate_id)
            .outerjoin(JobPosting, JobPosting.id == Application.job_posting_id)
            .outerjoin(CvRecord, CvRecord.user_id == Application.candidate_id)
            .order_by(Application.created_at.desc(), Application.id.desc())
        )

        if state is not None:
            statement = statement.where(Application.state == state)
        if job_posting_id is not None:
            statement = statement.where(Application.job_posting_id == job_posting_id)
        if text:
            pattern = f"%{escape_like(text)}%"
            statement = statement.where(
                or_(
                    Application.snapshot_name.ilike(pattern, escape=LIKE_ESCAPE),
                    Application.snapshot_surname.ilike(pattern, escape=LIKE_ESCAPE),
                    Application.snapshot_email.ilike(pattern, escape=LIKE_ESCAPE),
                    Application.message.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        if offset:
            statement = statement.offset(offset)
        if limit is not None:
            statement = statement.limit(limit)

        return [(row[0], row[1], row[2], row[3]) for row in self.session.execute(statement).all()]

    def set_application_state(
        self,
        application_id: int,
        state: str,
        *,
        expected_state: str | None = None,
    ) -> bool:
        """Single-statement state update; ``expected_state`` makes it a compare-and-set."""
        conditions = [Application.id == application_id]
        if expected_state is not None:
            conditions.append(Application.state == expected_state)

        result = self.session.execute(
            update(Application)
            .where(and_(*conditions))
            .values(state=state, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    def delete_candidate_application(self, application_id: int, candidate_id: int) -> bool:
        result = self.session.execute(
            delete(Application)
            .where(and_(Application.id == application_id, Application.candidate_id == candidate_id))
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    def record_storage_deletion(self, *, provider_id: str, reason: str, error: str = "") -> StorageDeletion:
        item = StorageDeletion(provider_id=provider_id, reason=reason, attempts=1, last_error=error)
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def list_pending_storage_deletions(self, limit: int = 50) -> list[StorageDeletion]:
        statement = (
            select(StorageDeletion)
            .where(StorageDeletion.resolved_at.is_(None))
            .order_by(StorageDeletion.id.asc())
            .limit(limit)
        )
        return list(self.session.scalars(statement).all())

    def mark_storage_deletion(self, deletion_id: int, *, resolved: bool, error: str = "") -> StorageDeletion:
        item = self.session.get(StorageDeletion, deletion_id)
        if not item:
            raise ValueError(f"storage deletion {deletion_id} not found")
        item.attempts += 1
        if resolved:
            item.resolved_at = datetime.now(UTC)
            item.last_error = ""
        else:
            item.last_error = error
        self.session.commit()
        self.session.refresh(item)
        return item
