from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from tailor.core.events import EventBus
from tailor.db.repositories import SnapshotRepository
from tailor.errors import NotFound, PersistenceError, ValidationFailed
from tailor.types import JobDescription, Profile, Snapshot, new_id

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SnapshotStore:
    """Append-only history of saved applications, most recent first.

    Snapshots hold their own copies of the profile and job; nothing handed in
    or handed out shares state with the stored records.
    """

    def __init__(
        self,
        repository: SnapshotRepository,
        *,
        events: EventBus,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.events = events
        self.clock = clock
        try:
            self._snapshots = repository.load_all()
        except PersistenceError as exc:
            logger.error("Failed to load snapshots: %s", exc)
            self._snapshots = []
            self._report_failure("load", exc)

    def list(self) -> list[Snapshot]:
        return [snapshot.clone() for snapshot in self._snapshots]

    def get(self, snapshot_id: str) -> Snapshot:
        for snapshot in self._snapshots:
            if snapshot.id == snapshot_id:
                return snapshot.clone()
        raise NotFound(f"snapshot '{snapshot_id}' not found")

    def save(self, profile: Profile, job: JobDescription, cover_letter: str = "") -> list[Snapshot]:
        if not job.company and not job.title:
            raise ValidationFailed("Enter a company name or job title before saving.")

        taken = {snapshot.id for snapshot in self._snapshots}
        snapshot_id = new_id("snap")
        while snapshot_id in taken:
            snapshot_id = new_id("snap")

        snapshot = Snapshot(
            id=snapshot_id,
            created_at=self.clock(),
            company=job.company,
            job_title=job.title,
            profile=profile.clone(),
            job=job.clone(),
            cover_letter=cover_letter,
        )
        self._snapshots = [snapshot, *self._snapshots]
        self._persist("save")
        self.events.publish("snapshot.saved", {"snapshot_id": snapshot.id, "company": snapshot.company})
        return self.list()

    def load(self, snapshot_id: str) -> tuple[Profile, JobDescription, str]:
        snapshot = self.get(snapshot_id)
        return snapshot.profile, snapshot.job, snapshot.cover_letter

    def delete(self, snapshot_id: str) -> list[Snapshot]:
        remaining = [snapshot for snapshot in self._snapshots if snapshot.id != snapshot_id]
        if len(remaining) == len(self._snapshots):
            return self.list()

        self._snapshots = remaining
        self._persist("delete")
        self.events.publish("snapshot.deleted", {"snapshot_id": snapshot_id})
        return self.list()

    def replace_all(self, snapshots: list[Snapshot]) -> list[Snapshot]:
        self._snapshots = [snapshot.clone() for snapshot in snapshots]
        self._persist("import")
        return self.list()

    def _persist(self, action: str) -> None:
        try:
            self.repository.save_all(self._snapshots)
        except PersistenceError as exc:
            logger.error("Failed to persist snapshots after %s: %s", action, exc)
            self._report_failure(action, exc)

    def _report_failure(self, action: str, exc: PersistenceError) -> None:
        self.events.publish(
            "persistence.failed",
            {"what": "snapshots", "action": action, "message": f"Saved applications were not stored: {exc}"},
        )
