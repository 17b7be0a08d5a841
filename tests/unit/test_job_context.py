from __future__ import annotations

import asyncio

import pytest

from tailor.core.events import EventBus
from tailor.errors import ValidationFailed


def test_keywords_are_stored_on_the_job(session) -> None:
    session.job.update(company="Acme", text="Python and Kubernetes")

    keywords = asyncio.run(session.job.analyze_keywords())

    assert keywords == ["Python", "Kubernetes", "PostgreSQL"]
    assert session.job.job.keywords == keywords


def test_empty_keyword_result_keeps_previous(session, fake_provider) -> None:
    session.job.update(text="Python and Kubernetes")
    asyncio.run(session.job.analyze_keywords())
    fake_provider.keywords = []

    assert asyncio.run(session.job.analyze_keywords()) == ["Python", "Kubernetes", "PostgreSQL"]


def test_keywords_require_job_text(session) -> None:
    session.job.update(title="Engineer")

    with pytest.raises(ValidationFailed):
        asyncio.run(session.job.analyze_keywords())


def test_job_changed_event_reports_emptiness(session) -> None:
    seen: list[dict] = []
    session.events.add_listener("job.changed", seen.append)

    session.job.update(company="Acme")
    session.new_job()

    assert [(event["was_empty"], event["is_empty"]) for event in seen] == [(True, False), (False, True)]


def test_cover_letter_generation_and_failure(session, fake_provider) -> None:
    session.job.update(company="Acme", title="Engineer", text="Python")

    letter = asyncio.run(session.letters.generate())
    assert letter.startswith("Dear Hiring Manager")

    fake_provider.cover_letter = ""
    assert asyncio.run(session.letters.generate()) == letter
    assert session.drain_notices() == ["Error generating cover letter. Please try again."]


def test_new_job_clears_cover_letter(session) -> None:
    session.job.update(company="Acme", text="Python")
    session.letters.set_letter("Dear Acme")

    session.new_job()

    assert session.letters.letter == ""
    assert session.job.is_empty


def test_event_bus_listener_errors_do_not_stop_delivery() -> None:
    events = EventBus()
    received: list[str] = []

    def broken(event: dict) -> None:
        raise RuntimeError("listener bug")

    events.add_listener("topic", broken)
    remove = events.add_listener("*", lambda event: received.append(event["topic"]))

    events.publish("topic", {"value": 1})
    remove()
    events.publish("topic")

    assert received == ["topic"]


def test_event_bus_subscription_receives_events() -> None:
    events = EventBus()

    async def scenario() -> dict:
        stream = events.subscribe("bullet.scored")
        first = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        events.publish("other")
        events.publish("bullet.scored", {"bullet_id": "b1"})
        event = await first
        await stream.aclose()
        return event

    assert asyncio.run(scenario()) == {"topic": "bullet.scored", "bullet_id": "b1"}


def test_repeated_keywords_are_kept_once_in_order(session, fake_provider) -> None:
    fake_provider.keywords = ["Python", "Python", "AWS", "Python"]
    session.job.update(text="Python on AWS")

    assert asyncio.run(session.job.analyze_keywords()) == ["Python", "AWS"]
    assert session.job.job.keywords == ["Python", "AWS"]
