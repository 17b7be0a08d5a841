from __future__ import annotations

import logging
from typing import Any

from tailor.core.events import EventBus
from tailor.core.profile_store import ProfileStore
from tailor.errors import ValidationFailed
from tailor.llm.router import AnalysisProvider
from tailor.types import Bullet, Experience, Profile, new_id

logger = logging.getLogger(__name__)

UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_ROLE = "Unknown Role"

_CONTACT_KEYS = ("name", "email", "phone", "location", "summary")


def sanitize_parsed_profile(data: Any) -> dict[str, Any]:
    """Normalize a parsed resume into profile fields and typed experiences.

    Missing ids are generated, missing bullet lists become empty, visibility
    defaults to shown and lock to unlocked, and missing company or role get a
    placeholder. ``experiences`` is only present in the result when the parsed
    data carried an experience list.
    """
    if not isinstance(data, dict) or not data:
        return {}

    result: dict[str, Any] = {}
    for key in _CONTACT_KEYS:
        value = data.get(key)
        if isinstance(value, str):
            result[key] = value

    raw_experiences = data.get("experiences")
    if not isinstance(raw_experiences, list):
        return result

    experiences: list[Experience] = []
    seen: set[str] = set()
    for raw in raw_experiences:
        if not isinstance(raw, dict):
            continue
        experience_id = _claim_id(raw.get("id"), "exp", seen)
        bullets = []
        raw_bullets = raw.get("bullets")
        for raw_bullet in raw_bullets if isinstance(raw_bullets, list) else []:
            bullet = _sanitize_bullet(raw_bullet, seen)
            if bullet is not None:
                bullets.append(bullet)

        experiences.append(
            Experience(
                id=experience_id,
                company=_text(raw.get("company")) or UNKNOWN_COMPANY,
                role=_text(raw.get("role")) or UNKNOWN_ROLE,
                start_date=_text(_first(raw, "start_date", "startDate")),
                end_date=_text(_first(raw, "end_date", "endDate")),
                location=_text(raw.get("location")),
                bullets=bullets,
            )
        )

    result["experiences"] = experiences
    return result


def merge_parsed_profile(master: Profile, parsed: dict[str, Any]) -> Profile | None:
    """Overlay a sanitized import onto the master profile.

    Contact fields present in the import overwrite the master's; experiences
    are replaced wholesale. Returns None when the import has no experiences
    list, leaving the master as it was.
    """
    if "experiences" not in parsed:
        return None

    merged = master.clone()
    for key in _CONTACT_KEYS:
        if key in parsed:
            setattr(merged, key, parsed[key])
    merged.experiences = [experience.clone() for experience in parsed["experiences"]]
    return merged


class ResumeImporter:
    def __init__(self, *, store: ProfileStore, provider: AnalysisProvider, events: EventBus):
        self.store = store
        self.provider = provider
        self.events = events

    async def import_text(self, raw_text: str) -> Profile | None:
        if not raw_text.strip():
            raise ValidationFailed("Paste resume text or upload a PDF to import.")
        data = await self.provider.parse_resume_from_text(raw_text=raw_text)
        return self._merge(data, source="text")

    async def import_pdf(self, data: bytes) -> Profile | None:
        if not data:
            raise ValidationFailed("Paste resume text or upload a PDF to import.")
        parsed = await self.provider.parse_resume_from_pdf(data=data)
        return self._merge(parsed, source="pdf")

    def _merge(self, data: dict[str, Any], *, source: str) -> Profile | None:
        parsed = sanitize_parsed_profile(data)
        merged = merge_parsed_profile(self.store.master, parsed)
        if merged is None:
            logger.warning("Resume import from %s produced no experiences; master unchanged", source)
            self.events.publish("notice", {"message": "Failed to parse resume. Please try again."})
            return None

        self.store.set_master(merged)
        self.events.publish("master.imported", {"source": source, "experiences": len(merged.experiences)})
        return self.store.master


def _sanitize_bullet(raw: Any, seen: set[str]) -> Bullet | None:
    if isinstance(raw, str):
        return Bullet(id=_claim_id(None, "b", seen), content=raw)
    if not isinstance(raw, dict):
        return None

    visible = _first(raw, "is_visible", "isVisible")
    locked = _first(raw, "is_locked", "isLocked")
    return Bullet(
        id=_claim_id(raw.get("id"), "b", seen),
        content=_text(raw.get("content")),
        is_visible=visible is not False,
        is_locked=bool(locked),
    )


def _claim_id(candidate: Any, prefix: str, seen: set[str]) -> str:
    value = str(candidate).strip() if isinstance(candidate, (str, int)) else ""
    while not value or value in seen:
        value = new_id(prefix)
    seen.add(value)
    return value


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""
