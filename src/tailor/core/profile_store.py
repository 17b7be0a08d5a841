from __future__ import annotations

import asyncio
import hashlib
import logging
from collections import Counter
from dataclasses import dataclass

from tailor.core.events import EventBus
from tailor.core.job_context import JobContext
from tailor.db.repositories import ProfileRepository
from tailor.errors import ConfirmationRequired, NotFound, PersistenceError, ValidationFailed
from tailor.types import Bullet, Experience, Profile, ProfileTarget, new_id

logger = logging.getLogger(__name__)


def hash_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


CONTACT_FIELDS = frozenset({"name", "email", "phone", "location", "summary"})
EXPERIENCE_FIELDS = frozenset({"company", "role", "location", "start_date", "end_date"})


@dataclass(frozen=True, slots=True)
class EditToken:
    """Identifies the exact tailored text an async request was issued for."""

    bullet_id: str
    epoch: int
    generation: int
    fingerprint: str


class ProfileStore:
    """Owns the master profile, its tailored fork, and the sync rule between them.

    While the job description is empty the tailored profile is a fresh clone of
    the master after every change. Once any job field is filled in, the fork
    point is passed: master edits no longer reach the tailored profile until
    :meth:`reset_tailored_from_master` or :meth:`set_tailored` is called.

    Every change to tailored bullet text bumps that bullet's generation, and
    every wholesale replacement of the tailored profile bumps the epoch. An
    :class:`EditToken` captured before an async call is compared against both
    when the call returns, so results computed for older text are dropped.
    """

    def __init__(
        self,
        *,
        master: Profile,
        job_context: JobContext,
        events: EventBus,
        repository: ProfileRepository | None = None,
    ):
        check_unique_ids(master)
        self.job_context = job_context
        self.events = events
        self.repository = repository
        self._master = master.clone()
        self._tailored = master.clone()
        self._epoch = 0
        self._generations: dict[str, int] = {}
        self._persist_task: asyncio.Task[None] | None = None
        self._persist_dirty = False
        self.events.add_listener("job.changed", self._on_job_changed)

    @property
    def master(self) -> Profile:
        return self._master.clone()

    @property
    def tailored(self) -> Profile:
        return self._tailored.clone()

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def is_tracking_master(self) -> bool:
        return self.job_context.is_empty

    def set_master(self, profile: Profile) -> Profile:
        check_unique_ids(profile)
        self._master = profile.clone()
        self._after_master_change("replaced")
        return self.master

    def set_tailored(self, profile: Profile) -> Profile:
        check_unique_ids(profile)
        self._replace_tailored(profile.clone(), reason="set")
        if self.is_tracking_master:
            self.sync()
        return self.tailored

    def reset_tailored_from_master(self, *, confirmed: bool = False) -> Profile:
        if not confirmed:
            raise ConfirmationRequired("Resetting overwrites the tailored resume with the master profile.")
        self._replace_tailored(self._master.clone(), reason="reset")
        return self.tailored

    def sync(self) -> bool:
        if not self.is_tracking_master:
            return False
        self._replace_tailored(self._master.clone(), reason="sync")
        return True

    def get_experience(self, experience_id: str, *, target: ProfileTarget = "tailored") -> Experience:
        return self._experience(target, experience_id).clone()

    def get_bullet(self, bullet_id: str, *, target: ProfileTarget = "tailored") -> Bullet:
        return self._locate(target, bullet_id)[1].clone()

    def update_contact(self, *, target: ProfileTarget = "master", **fields: str) -> Profile:
        unknown = set(fields) - CONTACT_FIELDS
        if unknown:
            raise ValidationFailed(f"unknown profile fields: {sorted(unknown)}")
        profile = self._editable(target)
        for key, value in fields.items():
            setattr(profile, key, value)
        self._changed(target, "contact")
        return profile.clone()

    def add_experience(self, *, target: ProfileTarget = "master", **fields: str) -> Experience:
        unknown = set(fields) - EXPERIENCE_FIELDS
        if unknown:
            raise ValidationFailed(f"unknown experience fields: {sorted(unknown)}")
        profile = self._editable(target)
        experience = Experience(id=_unique_id(profile, "exp"), **fields)
        profile.experiences.insert(0, experience)
        self._changed(target, "experience_added", experience_id=experience.id)
        return experience.clone()

    def update_experience(self, experience_id: str, *, target: ProfileTarget = "master", **fields: str) -> Experience:
        unknown = set(fields) - EXPERIENCE_FIELDS
        if unknown:
            raise ValidationFailed(f"unknown experience fields: {sorted(unknown)}")
        self._editable(target)
        experience = self._experience(target, experience_id)
        for key, value in fields.items():
            setattr(experience, key, value)
        self._changed(target, "experience_updated", experience_id=experience_id)
        return experience.clone()

    def delete_experience(self, experience_id: str, *, target: ProfileTarget = "master") -> None:
        profile = self._editable(target)
        experience = self._experience(target, experience_id)
        profile.experiences.remove(experience)
        for bullet in experience.bullets:
            self._forget_bullet(target, bullet.id)
            self.events.publish("bullet.deleted", {"target": target, "bullet_id": bullet.id})
        self._changed(target, "experience_deleted", experience_id=experience_id)

    def add_bullet(self, experience_id: str, content: str = "", *, target: ProfileTarget = "master") -> Bullet:
        return self.insert_bullet(experience_id, Bullet(content=content), target=target, at_start=False)

    def insert_bullet(
        self,
        experience_id: str,
        bullet: Bullet,
        *,
        target: ProfileTarget = "tailored",
        at_start: bool = True,
    ) -> Bullet:
        """Insert a new bullet, keeping any score the caller seeded on it."""
        profile = self._editable(target)
        experience = self._experience(target, experience_id)
        bullet = bullet.clone()
        if bullet.id in profile.ids():
            bullet.id = _unique_id(profile, "b")
        if at_start:
            experience.bullets.insert(0, bullet)
        else:
            experience.bullets.append(bullet)
        self._bump(target, bullet.id)
        self._changed(target, "bullet_added", experience_id=experience_id, bullet_id=bullet.id)
        return bullet.clone()

    def delete_bullet(self, bullet_id: str, *, target: ProfileTarget = "master") -> None:
        self._editable(target)
        experience, bullet = self._locate(target, bullet_id)
        experience.bullets.remove(bullet)
        self._forget_bullet(target, bullet_id)
        self.events.publish("bullet.deleted", {"target": target, "bullet_id": bullet_id})
        self._changed(target, "bullet_deleted", bullet_id=bullet_id)

    def set_bullet_content(self, bullet_id: str, content: str, *, target: ProfileTarget = "tailored") -> Bullet:
        self._editable(target)
        _, bullet = self._locate(target, bullet_id)
        bullet.content = content
        bullet.relevance_score = None
        bullet.relevance_reason = None
        self._bump(target, bullet_id)
        self.events.publish("bullet.content_changed", {"target": target, "bullet_id": bullet_id})
        self._changed(target, "bullet_content", bullet_id=bullet_id)
        return bullet.clone()

    def set_bullet_visibility(self, bullet_id: str, visible: bool, *, target: ProfileTarget = "tailored") -> Bullet:
        self._editable(target)
        _, bullet = self._locate(target, bullet_id)
        bullet.is_visible = visible
        self._changed(target, "bullet_visibility", bullet_id=bullet_id)
        return bullet.clone()

    def toggle_bullet_visibility(self, bullet_id: str, *, target: ProfileTarget = "tailored") -> Bullet:
        _, bullet = self._locate(target, bullet_id)
        return self.set_bullet_visibility(bullet_id, not bullet.is_visible, target=target)

    def set_bullet_locked(self, bullet_id: str, locked: bool, *, target: ProfileTarget = "tailored") -> Bullet:
        self._editable(target)
        _, bullet = self._locate(target, bullet_id)
        bullet.is_locked = locked
        self._changed(target, "bullet_lock", bullet_id=bullet_id)
        return bullet.clone()

    def token_for(self, bullet_id: str) -> EditToken:
        _, bullet = self._locate("tailored", bullet_id)
        return EditToken(
            bullet_id=bullet_id,
            epoch=self._epoch,
            generation=self._generations.get(bullet_id, 0),
            fingerprint=hash_text(bullet.content),
        )

    def is_current(self, token: EditToken) -> bool:
        if token.epoch != self._epoch:
            return False
        if token.generation != self._generations.get(token.bullet_id, 0):
            return False
        located = self._tailored.find_bullet(token.bullet_id)
        if located is None:
            return False
        return hash_text(located[1].content) == token.fingerprint

    def apply_score(self, token: EditToken, score: int | None, reason: str | None) -> bool:
        """Stamp a score onto a tailored bullet if its text is still what was scored."""
        if not self.is_current(token):
            logger.debug("Dropping stale score for bullet=%s", token.bullet_id)
            return False
        _, bullet = self._locate("tailored", token.bullet_id)
        bullet.relevance_score = score
        bullet.relevance_reason = reason if score is not None else None
        self.events.publish("bullet.scored", {"bullet_id": token.bullet_id, "score": score})
        return True

    async def wait_persisted(self) -> None:
        task = self._persist_task
        if task is None or task.done():
            return
        await task

    def flush(self) -> bool:
        """Write the master profile now. Returns False when the write failed."""
        if self.repository is None:
            return True
        self._persist_dirty = False
        try:
            self.repository.save_master(self._master.clone())
        except PersistenceError as exc:
            self._report_persist_failure(exc)
            return False
        return True

    def _editable(self, target: ProfileTarget) -> Profile:
        if target == "tailored" and self.is_tracking_master:
            raise ValidationFailed(
                "The tailored resume follows the master profile until a job is entered; edit the master instead."
            )
        return self._profile(target)

    def _profile(self, target: ProfileTarget) -> Profile:
        if target == "master":
            return self._master
        if target == "tailored":
            return self._tailored
        raise ValidationFailed(f"unknown profile target '{target}'")

    def _experience(self, target: ProfileTarget, experience_id: str) -> Experience:
        experience = self._profile(target).find_experience(experience_id)
        if experience is None:
            raise NotFound(f"experience '{experience_id}' not found in {target} profile")
        return experience

    def _locate(self, target: ProfileTarget, bullet_id: str) -> tuple[Experience, Bullet]:
        located = self._profile(target).find_bullet(bullet_id)
        if located is None:
            raise NotFound(f"bullet '{bullet_id}' not found in {target} profile")
        return located

    def _bump(self, target: ProfileTarget, bullet_id: str) -> None:
        if target == "tailored":
            self._generations[bullet_id] = self._generations.get(bullet_id, 0) + 1

    def _forget_bullet(self, target: ProfileTarget, bullet_id: str) -> None:
        if target == "tailored":
            self._bump(target, bullet_id)

    def _changed(self, target: ProfileTarget, change: str, **detail: str) -> None:
        if target == "master":
            self._after_master_change(change, **detail)
        else:
            self.events.publish("tailored.changed", {"change": change, **detail})

    def _after_master_change(self, change: str, **detail: str) -> None:
        self.events.publish("master.changed", {"change": change, **detail})
        self._schedule_persist()
        self.sync()

    def _replace_tailored(self, profile: Profile, *, reason: str) -> None:
        self._tailored = profile
        self._epoch += 1
        self._generations.clear()
        self.events.publish("tailored.replaced", {"reason": reason, "epoch": self._epoch})

    def _on_job_changed(self, event: dict) -> None:
        if event.get("is_empty"):
            self.sync()

    def _schedule_persist(self) -> None:
        if self.repository is None:
            return
        self._persist_dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return
        if self._persist_task is None or self._persist_task.done():
            self._persist_task = loop.create_task(self._persist_pending())

    async def _persist_pending(self) -> None:
        # Yield once so that several edits made in the same step share one write.
        await asyncio.sleep(0)
        while self._persist_dirty:
            self._persist_dirty = False
            profile = self._master.clone()
            try:
                await asyncio.to_thread(self.repository.save_master, profile)
            except PersistenceError as exc:
                self._report_persist_failure(exc)

    def _report_persist_failure(self, exc: PersistenceError) -> None:
        logger.error("Failed to persist master profile: %s", exc)
        self.events.publish(
            "persistence.failed",
            {"what": "master_profile", "message": f"Master profile was not saved: {exc}"},
        )


def check_unique_ids(profile: Profile) -> None:
    ids = [experience.id for experience in profile.experiences]
    ids.extend(bullet.id for bullet in profile.iter_bullets())
    duplicates = sorted(key for key, count in Counter(ids).items() if count > 1)
    if duplicates:
        raise ValidationFailed(f"duplicate ids in profile: {duplicates}")


def _unique_id(profile: Profile, prefix: str) -> str:
    taken = profile.ids()
    candidate = new_id(prefix)
    while candidate in taken:
        candidate = new_id(prefix)
    return candidate
