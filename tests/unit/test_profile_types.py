from __future__ import annotations

import pytest
from pydantic import ValidationError

from tailor.db.seed import default_master_profile
from tailor.types import Bullet, GapAnalysisResult, JobDescription, Snapshot


def test_clone_is_deep_and_equal() -> None:
    profile = default_master_profile()
    copy = profile.clone()

    assert copy == profile
    assert copy.experiences is not profile.experiences
    assert copy.experiences[0].bullets[0] is not profile.experiences[0].bullets[0]

    copy.experiences[0].bullets[0].is_visible = False
    assert profile.experiences[0].bullets[0].is_visible is True


def test_bullet_defaults() -> None:
    bullet = Bullet(content="Shipped it")

    assert bullet.is_visible is True
    assert bullet.is_locked is False
    assert bullet.relevance_score is None
    assert bullet.id.startswith("b-")


@pytest.mark.parametrize("score", [-1, 101])
def test_relevance_score_range_enforced(score) -> None:
    with pytest.raises(ValidationError):
        Bullet(content="x", relevance_score=score)


def test_visible_view_drops_hidden_bullets_only() -> None:
    profile = default_master_profile()
    profile.experiences[0].bullets[1].is_visible = False

    view = profile.visible_view()

    assert [bullet.id for bullet in view.experiences[0].bullets] == ["b1", "b3"]
    assert len(profile.experiences[0].bullets) == 3


def test_job_is_empty_only_when_all_fields_blank() -> None:
    assert JobDescription().is_empty
    assert not JobDescription(title="Engineer").is_empty
    assert JobDescription(keywords=["Python"]).is_empty


def test_snapshot_fields_are_frozen() -> None:
    snapshot = Snapshot(profile=default_master_profile(), job=JobDescription(company="Acme"))

    with pytest.raises(ValidationError):
        snapshot.company = "Other"


def test_mark_filled_moves_skill() -> None:
    result = GapAnalysisResult(missing=["Go", "Rust"], present=["Python"])

    result.mark_filled("Go")
    result.mark_filled("Go")

    assert result.missing == ["Rust"]
    assert result.present == ["Python", "Go"]
