from __future__ import annotations

import logging

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tailor.config import Settings
from tailor.db.init import init_database
from tailor.db.models import KVEntry
from tailor.db.session import build_engine, build_session_factory
from tailor.errors import PersistenceError, StorageQuotaExceeded
from tailor.types import Profile, Snapshot

logger = logging.getLogger(__name__)

_SNAPSHOT_LIST = TypeAdapter(list[Snapshot])


class KeyValueStore:
    """String values under string keys, backed by one SQL table.

    Values larger than ``max_value_bytes`` are refused the way a browser's
    local storage refuses writes past its quota.
    """

    def __init__(self, session_factory: sessionmaker[Session], *, max_value_bytes: int):
        self.session_factory = session_factory
        self.max_value_bytes = max_value_bytes

    @classmethod
    def from_settings(cls, settings: Settings) -> KeyValueStore:
        engine = build_engine(settings.database_url)
        try:
            init_database(engine, settings)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to initialize storage: {exc}") from exc
        return cls(build_session_factory(engine), max_value_bytes=settings.storage_max_value_bytes)

    def get(self, key: str) -> str | None:
        try:
            with self.session_factory() as session:
                entry = session.get(KVEntry, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to read '{key}': {exc}") from exc

    def set(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        if size > self.max_value_bytes:
            raise StorageQuotaExceeded(
                f"value for '{key}' is {size} bytes, quota is {self.max_value_bytes} bytes"
            )

        try:
            with self.session_factory() as session:
                entry = session.get(KVEntry, key)
                if entry is None:
                    session.add(KVEntry(key=key, value=value))
                else:
                    entry.value = value
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to write '{key}': {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            with self.session_factory() as session:
                session.execute(delete(KVEntry).where(KVEntry.key == key))
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to delete '{key}': {exc}") from exc


class ProfileRepository:
    def __init__(self, store: KeyValueStore, *, key: str):
        self.store = store
        self.key = key

    def load_master(self) -> Profile | None:
        raw = self.store.get(self.key)
        if raw is None:
            return None
        try:
            return Profile.model_validate_json(raw)
        except ValidationError:
            logger.warning("Stored master profile under '%s' is malformed; ignoring it", self.key)
            return None

    def save_master(self, profile: Profile) -> None:
        self.store.set(self.key, profile.model_dump_json())


class SnapshotRepository:
    def __init__(self, store: KeyValueStore, *, key: str):
        self.store = store
        self.key = key

    def load_all(self) -> list[Snapshot]:
        raw = self.store.get(self.key)
        if raw is None:
            return []
        try:
            return _SNAPSHOT_LIST.validate_json(raw)
        except ValidationError:
            logger.warning("Stored snapshot list under '%s' is malformed; ignoring it", self.key)
            return []

    def save_all(self, snapshots: list[Snapshot]) -> None:
        self.store.set(self.key, _SNAPSHOT_LIST.dump_json(snapshots).decode("utf-8"))
