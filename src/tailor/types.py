from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

ProfileTarget = Literal["master", "tailored"]
BulletState = Literal["stable", "optimizing", "proposed"]


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


def _validate_score(value: int | None) -> int | None:
    if value is None:
        return value
    if value < 0 or value > 100:
        raise ValueError("relevance score must be between 0 and 100")
    return value


class Bullet(BaseModel):
    id: str = Field(default_factory=lambda: new_id("b"))
    content: str = ""
    is_visible: bool = True
    is_locked: bool = False
    relevance_score: int | None = None
    relevance_reason: str | None = None

    @field_validator("relevance_score")
    @classmethod
    def validate_relevance_score(cls, value: int | None) -> int | None:
        return _validate_score(value)

    @property
    def is_scored(self) -> bool:
        return self.relevance_score is not None

    def clone(self) -> Bullet:
        return Bullet(
            id=self.id,
            content=self.content,
            is_visible=self.is_visible,
            is_locked=self.is_locked,
            relevance_score=self.relevance_score,
            relevance_reason=self.relevance_reason,
        )


class Experience(BaseModel):
    id: str = Field(default_factory=lambda: new_id("exp"))
    company: str = ""
    role: str = ""
    location: str = ""
    start_date: str = ""
    end_date: str = ""
    bullets: list[Bullet] = Field(default_factory=list)

    def clone(self) -> Experience:
        return Experience(
            id=self.id,
            company=self.company,
            role=self.role,
            location=self.location,
            start_date=self.start_date,
            end_date=self.end_date,
            bullets=[bullet.clone() for bullet in self.bullets],
        )

    def find_bullet(self, bullet_id: str) -> Bullet | None:
        for bullet in self.bullets:
            if bullet.id == bullet_id:
                return bullet
        return None


class Profile(BaseModel):
    """A resume: contact block, summary and ordered experiences.

    Both the master profile and every tailored fork share this shape. Forks are
    made with :meth:`clone`, which rebuilds every nested object so no list or
    bullet is shared between the original and the copy.
    """

    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    summary: str = ""
    experiences: list[Experience] = Field(default_factory=list)

    def clone(self) -> Profile:
        return Profile(
            name=self.name,
            email=self.email,
            phone=self.phone,
            location=self.location,
            summary=self.summary,
            experiences=[experience.clone() for experience in self.experiences],
        )

    def find_experience(self, experience_id: str) -> Experience | None:
        for experience in self.experiences:
            if experience.id == experience_id:
                return experience
        return None

    def find_bullet(self, bullet_id: str) -> tuple[Experience, Bullet] | None:
        for experience in self.experiences:
            bullet = experience.find_bullet(bullet_id)
            if bullet is not None:
                return experience, bullet
        return None

    def iter_bullets(self) -> Iterator[Bullet]:
        for experience in self.experiences:
            yield from experience.bullets

    def ids(self) -> set[str]:
        values = {experience.id for experience in self.experiences}
        values.update(bullet.id for bullet in self.iter_bullets())
        return values

    def visible_view(self) -> Profile:
        """Copy holding only the bullets that end up in the rendered resume."""
        view = self.clone()
        for experience in view.experiences:
            experience.bullets = [bullet for bullet in experience.bullets if bullet.is_visible]
        return view


class JobDescription(BaseModel):
    id: str = Field(default_factory=lambda: new_id("job"))
    company: str = ""
    title: str = ""
    text: str = ""
    keywords: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.company and not self.title and not self.text

    def clone(self) -> JobDescription:
        return JobDescription(
            id=self.id,
            company=self.company,
            title=self.title,
            text=self.text,
            keywords=list(self.keywords),
        )


class BulletScore(BaseModel):
    id: str
    score: int
    reason: str = ""

    @field_validator("score")
    @classmethod
    def validate_score(cls, value: int) -> int:
        return _validate_score(value)


class GapAnalysisResult(BaseModel):
    missing: list[str] = Field(default_factory=list)
    present: list[str] = Field(default_factory=list)

    def mark_filled(self, skill: str) -> None:
        self.missing = [item for item in self.missing if item != skill]
        if skill not in self.present:
            self.present.append(skill)


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("snap"))
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    company: str = ""
    job_title: str = ""
    profile: Profile
    job: JobDescription
    cover_letter: str = ""

    def clone(self) -> Snapshot:
        return Snapshot(
            id=self.id,
            created_at=self.created_at,
            company=self.company,
            job_title=self.job_title,
            profile=self.profile.clone(),
            job=self.job.clone(),
            cover_letter=self.cover_letter,
        )


class ModelResponse(BaseModel):
    content: str
    raw: dict[str, Any] = Field(default_factory=dict)
