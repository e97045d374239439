from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ApplicationCreateRequest(BaseModel):
    job_posting_id: int
    message: str = ""


class ApplicationStateRequest(BaseModel):
    state: str


class ApplicationResponse(BaseModel):
    id: int
    job_posting_id: int
    candidate_id: int
    message: str
    cv_record_id: int | None = None
    cv_snapshot: dict[str, Any] = Field(default_factory=dict)
    cv_snapshot_version: int
    state: str
    created_at: datetime
    updated_at: datetime


class PostingSummaryResponse(BaseModel):
    id: int
    title: str
    area: str
    status: str
    location: str


class PostingDetailResponse(PostingSummaryResponse):
    description: str


class CandidateSummaryResponse(BaseModel):
    id: int
    name: str
    surname: str
    email: str
    role: str
    phone: str
    address: str
    cv_id: int | None = None


class MyApplicationResponse(ApplicationResponse):
    job_posting: PostingSummaryResponse | None = None


class AdminApplicationResponse(ApplicationResponse):
    candidate: CandidateSummaryResponse | None = None
    job_posting: PostingDetailResponse | None = None


class WithdrawResponse(BaseModel):
    id: int
    withdrawn: bool = True


class CvDocumentResponse(BaseModel):
    provider_id: str
    url: str
    filename: str = ""


class CvResponse(BaseModel):
    id: int
    user_id: int
    name: str
    surname: str
    email: str
    phone: str
    links: dict[str, str] = Field(default_factory=dict)
    summary: str
    education: list[dict[str, Any]] = Field(default_factory=list)
    experience: list[dict[str, Any]] = Field(default_factory=list)
    document: CvDocumentResponse | None = None
    created_at: datetime
    updated_at: datetime


class CvDownloadResponse(BaseModel):
    cv_id: int
    download_url: str
