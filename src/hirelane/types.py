from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator

ApplicationState = Literal["Submitted", "InReview", "Shortlisted", "Rejected", "Hired"]
PostingStatus = Literal["open", "paused", "closed"]
UserRole = Literal["candidate", "admin", "rrhh"]

APPLICATION_STATES: tuple[str, ...] = get_args(ApplicationState)
POSTING_STATUSES: tuple[str, ...] = get_args(PostingStatus)
INITIAL_STATE: ApplicationState = "Submitted"
ACCEPTING_STATUS: PostingStatus = "open"
ADMIN_ROLES = frozenset({"admin", "rrhh"})

# Inferred hiring pipeline. Only consulted when enforce_state_transitions is on.
STATE_TRANSITIONS: dict[str, frozenset[str]] = {
    "Submitted": frozenset({"InReview"}),
    "InReview": frozenset({"Shortlisted"}),
    "Shortlisted": frozenset({"Rejected", "Hired"}),
    "Rejected": frozenset(),
    "Hired": frozenset(),
}

CV_SNAPSHOT_VERSION = 1


def is_application_state(value: Any) -> bool:
    return isinstance(value, str) and value in APPLICATION_STATES


def is_transition_allowed(current: str, target: str) -> bool:
    if current == target:
        return True
    return target in STATE_TRANSITIONS.get(current, frozenset())


class EducationEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    institution: str = ""
    degree: str = ""
    academic_level: str = ""
    field: str = ""
    start: str = ""
    end: str = ""


class ExperienceEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    company: str = ""
    position: str = ""
    start: str = ""
    end: str = ""
    description: str = ""


class CvLinks(BaseModel):
    model_config = ConfigDict(extra="ignore")

    linkedin: str = ""
    github: str = ""
    portfolio: str = ""
    website: str = ""


class CvDocument(BaseModel):
    """Reference to a CV file held by the storage provider.

    Both identifiers are required; a half-populated reference is never valid.
    """

    model_config = ConfigDict(extra="ignore")

    provider_id: str = Field(min_length=1)
    url: str = Field(min_length=1)
    filename: str = ""


class CvPayload(BaseModel):
    """Editable CV fields as submitted by the candidate."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    surname: str = ""
    email: str = ""
    phone: str = ""
    links: CvLinks = Field(default_factory=CvLinks)
    summary: str = ""
    education: list[EducationEntry] = Field(default_factory=list)
    experience: list[ExperienceEntry] = Field(default_factory=list)


class CvSnapshot(CvPayload):
    """Frozen copy of a CV captured when an application is submitted.

    The field list is fixed; anything else present on the source record is
    dropped rather than carried into the snapshot.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    document: CvDocument | None = None

    @model_validator(mode="before")
    @classmethod
    def drop_incomplete_document(cls, data: Any) -> Any:
        if isinstance(data, dict):
            document = data.get("document")
            if isinstance(document, dict) and not (document.get("provider_id") and document.get("url")):
                data = {**data, "document": None}
        return data


class StoredDocument(BaseModel):
    provider_id: str
    url: str
    filename: str = ""


class AdminListFilters(BaseModel):
    state: str | None = None
    job_posting_id: str | None = None
    q: str | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)
