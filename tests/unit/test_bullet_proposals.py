from __future__ import annotations

import asyncio

import pytest

from tailor.errors import ValidationFailed


def start_job(session) -> None:
    session.job.update(company="Acme", title="Backend Engineer", text="Python, Kubernetes, PostgreSQL")


def test_optimize_holds_candidate_apart_from_content(session) -> None:
    start_job(session)
    original = session.profiles.get_bullet("b1").content

    candidate = asyncio.run(session.proposals.optimize("b1"))

    assert candidate == f"{original} for the role"
    assert session.proposals.proposals == {"b1": candidate}
    assert session.proposals.state("b1") == "proposed"
    assert session.profiles.get_bullet("b1").content == original


def test_accept_commits_and_clears_score_before_rescore(session, fake_provider) -> None:
    start_job(session)
    asyncio.run(session.scorer.score_all())
    assert session.profiles.get_bullet("b1").relevance_score is not None

    async def scenario() -> None:
        candidate = await session.proposals.optimize("b1")
        gate = fake_provider.hold("score_one_bullet")
        task = asyncio.create_task(session.proposals.accept("b1"))
        await asyncio.sleep(0)

        pending = session.profiles.get_bullet("b1")
        assert pending.content == candidate
        assert pending.relevance_score is None
        assert pending.relevance_reason is None
        assert "b1" not in session.proposals.proposals

        gate.set()
        accepted = await task
        assert accepted.content == candidate
        assert accepted.relevance_score is not None
        assert accepted.relevance_reason.startswith("rescored")

    asyncio.run(scenario())
    assert session.proposals.state("b1") == "stable"


def test_discard_keeps_content(session) -> None:
    start_job(session)
    original = session.profiles.get_bullet("b2").content
    asyncio.run(session.proposals.optimize("b2"))

    assert session.proposals.discard("b2") is True
    assert session.proposals.discard("b2") is False
    assert session.profiles.get_bullet("b2").content == original
    assert session.proposals.proposals == {}


def test_stale_rescore_does_not_overwrite_newer_edit(session, fake_provider) -> None:
    start_job(session)

    async def scenario() -> None:
        await session.proposals.optimize("b3")
        gate = fake_provider.hold("score_one_bullet")
        task = asyncio.create_task(session.proposals.accept("b3"))
        await asyncio.sleep(0)

        session.proposals.edit("b3", "Hand-written replacement")
        gate.set()
        result = await task
        assert result.content == "Hand-written replacement"

    asyncio.run(scenario())

    bullet = session.profiles.get_bullet("b3")
    assert bullet.content == "Hand-written replacement"
    assert bullet.relevance_score is None
    assert bullet.relevance_reason is None


def test_rewrite_for_edited_bullet_is_dropped(session, fake_provider) -> None:
    start_job(session)

    async def scenario() -> str | None:
        gate = fake_provider.hold("optimize_bullet")
        task = asyncio.create_task(session.proposals.optimize("b1"))
        await asyncio.sleep(0)
        assert session.proposals.state("b1") == "optimizing"

        session.proposals.edit("b1", "Edited while waiting")
        gate.set()
        return await task

    assert asyncio.run(scenario()) is None
    assert session.proposals.state("b1") == "stable"
    assert session.profiles.get_bullet("b1").content == "Edited while waiting"


def test_only_latest_rewrite_request_applies(session, fake_provider) -> None:
    start_job(session)
    replies = iter(["First rewrite", "Second rewrite"])
    fake_provider.rewrite = lambda text: next(replies)

    async def scenario() -> tuple[str | None, str | None]:
        gate = fake_provider.hold("optimize_bullet")
        first = asyncio.create_task(session.proposals.optimize("b1"))
        second = asyncio.create_task(session.proposals.optimize("b1"))
        await asyncio.sleep(0)
        gate.set()
        return await first, await second

    first, second = asyncio.run(scenario())

    assert first is None
    assert second == "Second rewrite"
    assert session.proposals.proposals == {"b1": "Second rewrite"}


def test_unchanged_rewrite_leaves_bullet_stable(session, fake_provider) -> None:
    start_job(session)
    fake_provider.rewrite = lambda text: text

    assert asyncio.run(session.proposals.optimize("b4")) is None
    assert session.proposals.state("b4") == "stable"


def test_optimize_guards(session) -> None:
    with pytest.raises(ValidationFailed):
        asyncio.run(session.proposals.optimize("b1"))

    start_job(session)
    session.profiles.set_bullet_locked("b1", True)
    with pytest.raises(ValidationFailed):
        asyncio.run(session.proposals.optimize("b1"))
    with pytest.raises(ValidationFailed):
        asyncio.run(session.proposals.accept("b2"))


def test_optimize_all_skips_hidden_and_locked_bullets(session) -> None:
    start_job(session)
    session.profiles.set_bullet_visibility("b2", False)
    session.profiles.set_bullet_locked("b3", True)

    proposals = asyncio.run(session.proposals.optimize_all())

    assert set(proposals) == {"b1", "b4", "b5"}


def test_replacing_tailored_profile_clears_proposals(session) -> None:
    start_job(session)
    asyncio.run(session.proposals.optimize_all())
    assert session.proposals.proposals

    session.reset_tailored_from_master(confirmed=True)

    assert session.proposals.proposals == {}
    assert session.proposals.optimizing == set()


def test_accept_returns_committed_bullet_when_profile_replaced_during_rescore(session, fake_provider) -> None:
    start_job(session)

    async def scenario() -> None:
        candidate = await session.proposals.optimize("b1")
        gate = fake_provider.hold("score_one_bullet")
        task = asyncio.create_task(session.proposals.accept("b1"))
        await asyncio.sleep(0)

        session.reset_tailored_from_master(confirmed=True)
        gate.set()
        accepted = await task

        assert accepted.content == candidate
        assert session.profiles.get_bullet("b1").content == session.profiles.master.find_bullet("b1")[1].content

    asyncio.run(scenario())
