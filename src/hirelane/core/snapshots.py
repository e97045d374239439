from __future__ import annotations

from typing import Any

from hirelane.db.models import CvRecord, User
from hirelane.types import CvDocument, CvLinks, CvSnapshot, EducationEntry, ExperienceEntry


def document_of(cv: CvRecord) -> CvDocument | None:
    if cv.document_provider_id and cv.document_url:
        return CvDocument(
            provider_id=cv.document_provider_id,
            url=cv.document_url,
            filename=cv.document_filename,
        )
    return None


def _entries(raw: Any, model: type) -> list:
    if not isinstance(raw, list):
        return []
    return [model.model_validate(item) for item in raw if isinstance(item, dict)]


def build_cv_snapshot(cv: CvRecord | None, user: User) -> CvSnapshot:
    """Copy the candidate's current CV into a frozen snapshot.

    Fields are copied one by one through the snapshot schema. Identity fields
    left empty on the CV, or a missing CV altogether, fall back to the account.
    """
    if cv is None:
        return CvSnapshot(name=user.name, surname=user.surname, email=user.email)

    links = cv.links_json if isinstance(cv.links_json, dict) else {}
    return CvSnapshot(
        name=cv.name or user.name,
        surname=cv.surname or user.surname,
        email=cv.email or user.email,
        phone=cv.phone,
        links=CvLinks.model_validate(links),
        summary=cv.summary,
        education=_entries(cv.education_json, EducationEntry),
        experience=_entries(cv.experience_json, ExperienceEntry),
        document=document_of(cv),
    )
