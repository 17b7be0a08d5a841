from __future__ import annotations

import base64
import binascii
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from tailor.errors import ValidationFailed
from tailor.types import Bullet, BulletState, GapAnalysisResult, JobDescription, Profile, Snapshot


class ContactUpdateRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    summary: str | None = None


class ExperienceRequest(BaseModel):
    company: str | None = None
    role: str | None = None
    location: str | None = None
    start_date: str | None = None
    end_date: str | None = None


class BulletCreateRequest(BaseModel):
    content: str = ""


class BulletContentRequest(BaseModel):
    content: str


class BulletFlagRequest(BaseModel):
    value: bool


class JobUpdateRequest(BaseModel):
    company: str | None = None
    title: str | None = None
    text: str | None = None


class GapFillRequest(BaseModel):
    skill: str
    experience_id: str
    user_context: str


class ConfirmRequest(BaseModel):
    confirmed: bool = False


class ImportTextRequest(BaseModel):
    raw_text: str


class DataImportRequest(BaseModel):
    data: str


class CoverLetterRequest(BaseModel):
    text: str


class ProposalResponse(BaseModel):
    bullet_id: str
    state: BulletState
    content: str
    proposal: str | None = None


class ProposalListResponse(BaseModel):
    proposals: dict[str, str] = Field(default_factory=dict)
    optimizing: list[str] = Field(default_factory=list)


class ScoreAllResponse(BaseModel):
    scored: int
    profile: Profile


class RankedExperience(BaseModel):
    experience_id: str
    company: str
    role: str
    visible: int
    bullets: list[Bullet]


class GapFillResponse(BaseModel):
    bullet: Bullet | None
    gaps: GapAnalysisResult | None


class CoverLetterResponse(BaseModel):
    letter: str


class SnapshotSummary(BaseModel):
    id: str
    created_at: datetime
    company: str
    job_title: str
    has_cover_letter: bool

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> SnapshotSummary:
        return cls(
            id=snapshot.id,
            created_at=snapshot.created_at,
            company=snapshot.company,
            job_title=snapshot.job_title,
            has_cover_letter=bool(snapshot.cover_letter),
        )


class SnapshotLoadResponse(BaseModel):
    snapshot_id: str
    profile: Profile
    job: JobDescription
    cover_letter: str


class SessionStateResponse(BaseModel):
    mode: Literal["tracking_master", "tailoring"]
    job: JobDescription
    tailored: Profile
    proposals: dict[str, str]
    gaps: GapAnalysisResult | None
    cover_letter: str
    notices: list[str] = Field(default_factory=list)


class ImportPdfRequest(BaseModel):
    data_base64: str
    filename: str = "resume.pdf"

    def decoded(self) -> bytes:
        try:
            return base64.b64decode(self.data_base64, validate=True)
        except binascii.Error as exc:
            raise ValidationFailed("Uploaded document is not valid base64.") from exc
