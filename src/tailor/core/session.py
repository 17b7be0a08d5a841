from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from pydantic import TypeAdapter, ValidationError

from tailor.config import Settings, get_settings
from tailor.core.cover_letter import CoverLetterWriter
from tailor.core.events import EventBus
from tailor.core.gaps import GapAnalyzer
from tailor.core.importer import ResumeImporter
from tailor.core.job_context import JobContext
from tailor.core.profile_store import ProfileStore, check_unique_ids
from tailor.core.proposals import BulletProposalManager
from tailor.core.scoring import RelevanceScorer
from tailor.core.snapshots import SnapshotStore
from tailor.db.repositories import KeyValueStore, ProfileRepository, SnapshotRepository
from tailor.db.seed import default_master_profile
from tailor.errors import ConfirmationRequired, PersistenceError, ValidationFailed
from tailor.llm.router import AnalysisProvider
from tailor.types import JobDescription, Profile, Snapshot

logger = logging.getLogger(__name__)

_SNAPSHOT_LIST = TypeAdapter(list[Snapshot])


class TailoringSession:
    """One user's editing session: every component, wired explicitly.

    Failures that should reach the user without interrupting work
    (persistence errors, empty generations) are collected in ``notices``.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        provider: AnalysisProvider | None = None,
        kv_store: KeyValueStore | None = None,
    ):
        self.settings = settings or get_settings()
        self.events = EventBus()
        self.notices: list[str] = []
        self.events.add_listener("persistence.failed", self._on_notice)
        self.events.add_listener("notice", self._on_notice)

        self.provider = provider or AnalysisProvider(self.settings)
        self.kv_store = kv_store or KeyValueStore.from_settings(self.settings)
        self.profile_repository = ProfileRepository(self.kv_store, key=self.settings.master_profile_key)
        self.snapshot_repository = SnapshotRepository(self.kv_store, key=self.settings.snapshots_key)

        self.job = JobContext(events=self.events, provider=self.provider)
        self.profiles = ProfileStore(
            master=self._load_master(),
            job_context=self.job,
            events=self.events,
            repository=self.profile_repository,
        )
        self.scorer = RelevanceScorer(
            store=self.profiles, job_context=self.job, provider=self.provider, events=self.events
        )
        self.proposals = BulletProposalManager(
            store=self.profiles,
            job_context=self.job,
            provider=self.provider,
            scorer=self.scorer,
            events=self.events,
        )
        self.gaps = GapAnalyzer(
            store=self.profiles,
            job_context=self.job,
            provider=self.provider,
            events=self.events,
            settings=self.settings,
        )
        self.letters = CoverLetterWriter(
            store=self.profiles, job_context=self.job, provider=self.provider, events=self.events
        )
        self.importer = ResumeImporter(store=self.profiles, provider=self.provider, events=self.events)
        self.snapshots = SnapshotStore(self.snapshot_repository, events=self.events)

    def save_snapshot(self) -> list[Snapshot]:
        return self.snapshots.save(self.profiles.tailored, self.job.job, self.letters.letter)

    def load_snapshot(self, snapshot_id: str, *, confirmed: bool = False) -> Snapshot:
        if not confirmed:
            raise ConfirmationRequired("Loading a saved application replaces the current tailoring session.")
        profile, job, letter = self.snapshots.load(snapshot_id)
        check_unique_ids(profile)
        # Job first: a non-empty job keeps the sync rule from overwriting the loaded profile.
        self.job.replace(job)
        self.profiles.set_tailored(profile)
        self.letters.set_letter(letter)
        return self.snapshots.get(snapshot_id)

    def reset_tailored_from_master(self, *, confirmed: bool = False) -> Profile:
        return self.profiles.reset_tailored_from_master(confirmed=confirmed)

    def new_job(self) -> JobDescription:
        """Start over with an empty job; the tailored profile tracks the master again."""
        self.letters.set_letter("")
        return self.job.clear()

    def export_data(self) -> str:
        payload = {
            "master_profile": self.profiles.master.model_dump(mode="json"),
            "snapshots": [snapshot.model_dump(mode="json") for snapshot in self.snapshots.list()],
            "exported_at": datetime.now(UTC).isoformat(),
        }
        return json.dumps(payload, indent=2)

    def import_data(self, raw: str) -> bool:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Import data is not valid JSON")
            return False
        if not isinstance(data, dict):
            return False

        try:
            master = Profile.model_validate(data["master_profile"]) if data.get("master_profile") else None
            snapshots = _SNAPSHOT_LIST.validate_python(data["snapshots"]) if "snapshots" in data else None
        except ValidationError:
            logger.warning("Import data does not match the profile or snapshot schema")
            return False

        try:
            for snapshot in snapshots or []:
                check_unique_ids(snapshot.profile)
        except ValidationFailed as exc:
            logger.warning("Imported saved application rejected: %s", exc)
            return False

        if master is not None:
            try:
                self.profiles.set_master(master)
            except ValidationFailed as exc:
                logger.warning("Imported master profile rejected: %s", exc)
                return False
        if snapshots is not None:
            self.snapshots.replace_all(snapshots)
        return master is not None or snapshots is not None

    def drain_notices(self) -> list[str]:
        notices, self.notices = self.notices, []
        return notices

    async def aclose(self) -> None:
        await self.profiles.wait_persisted()

    def _load_master(self) -> Profile:
        try:
            stored = self.profile_repository.load_master()
        except PersistenceError as exc:
            logger.error("Failed to load master profile: %s", exc)
            self.notices.append(f"Master profile could not be loaded: {exc}")
            stored = None
        return stored or default_master_profile()

    def _on_notice(self, event: dict) -> None:
        message = event.get("message")
        if message:
            self.notices.append(str(message))
