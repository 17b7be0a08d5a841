from __future__ import annotations

import pytest

from tailor.db.repositories import KeyValueStore, ProfileRepository, SnapshotRepository
from tailor.db.seed import default_master_profile
from tailor.errors import StorageQuotaExceeded
from tailor.types import JobDescription, Snapshot


def test_key_value_roundtrip_and_delete(kv_store: KeyValueStore) -> None:
    assert kv_store.get("missing") is None

    kv_store.set("k", "one")
    kv_store.set("k", "two")
    assert kv_store.get("k") == "two"

    kv_store.delete("k")
    kv_store.delete("k")
    assert kv_store.get("k") is None


def test_values_over_quota_are_refused(kv_store: KeyValueStore) -> None:
    kv_store.max_value_bytes = 16
    kv_store.set("k", "small")

    with pytest.raises(StorageQuotaExceeded):
        kv_store.set("k", "x" * 17)
    assert kv_store.get("k") == "small"


def test_profile_repository_persists_master(kv_store: KeyValueStore) -> None:
    repository = ProfileRepository(kv_store, key="resume_tailor_master_profile")
    profile = default_master_profile()
    profile.experiences[0].bullets[0].is_locked = True

    assert repository.load_master() is None
    repository.save_master(profile)

    assert repository.load_master() == profile


def test_malformed_stored_values_read_as_missing(kv_store: KeyValueStore) -> None:
    kv_store.set("master", "{not json")
    kv_store.set("snapshots", '[{"id": 3}]')

    assert ProfileRepository(kv_store, key="master").load_master() is None
    assert SnapshotRepository(kv_store, key="snapshots").load_all() == []


def test_snapshot_repository_preserves_order(kv_store: KeyValueStore) -> None:
    repository = SnapshotRepository(kv_store, key="resume_tailor_snapshots")
    snapshots = [
        Snapshot(company="B", profile=default_master_profile(), job=JobDescription(company="B")),
        Snapshot(company="A", profile=default_master_profile(), job=JobDescription(company="A")),
    ]

    repository.save_all(snapshots)

    assert repository.load_all() == snapshots
