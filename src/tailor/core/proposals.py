from __future__ import annotations

import asyncio
import itertools
import logging

from tailor.core.events import EventBus
from tailor.core.job_context import JobContext
from tailor.core.profile_store import ProfileStore
from tailor.core.scoring import RelevanceScorer
from tailor.errors import NotFound, ValidationFailed
from tailor.llm.router import AnalysisProvider
from tailor.types import Bullet, BulletState

logger = logging.getLogger(__name__)


class BulletProposalManager:
    """Suggested rewrites for tailored bullets, held apart from committed text.

    A bullet is ``optimizing`` while a rewrite request is in flight,
    ``proposed`` once a candidate is waiting for accept or discard, and
    ``stable`` otherwise. Any change to the bullet's text, or a wholesale
    replacement of the tailored profile, cancels both: the pending candidate
    is dropped and a rewrite still in flight is ignored when it returns.
    """

    def __init__(
        self,
        *,
        store: ProfileStore,
        job_context: JobContext,
        provider: AnalysisProvider,
        scorer: RelevanceScorer,
        events: EventBus,
    ):
        self.store = store
        self.job_context = job_context
        self.provider = provider
        self.scorer = scorer
        self.events = events
        self._proposals: dict[str, str] = {}
        self._optimizing: dict[str, int] = {}
        self._requests = itertools.count(1)
        events.add_listener("bullet.content_changed", self._on_bullet_invalidated)
        events.add_listener("bullet.deleted", self._on_bullet_invalidated)
        events.add_listener("tailored.replaced", self._on_tailored_replaced)

    @property
    def proposals(self) -> dict[str, str]:
        return dict(self._proposals)

    @property
    def optimizing(self) -> set[str]:
        return set(self._optimizing)

    def state(self, bullet_id: str) -> BulletState:
        if bullet_id in self._optimizing:
            return "optimizing"
        if bullet_id in self._proposals:
            return "proposed"
        return "stable"

    async def optimize(self, bullet_id: str) -> str | None:
        """Request a rewrite and hold it as a proposal.

        Returns the candidate, or None when the provider gave nothing better
        than the current text or the request went stale.
        """
        job_text = self.job_context.text
        if not job_text:
            raise ValidationFailed("Enter a job description before requesting a rewrite.")
        bullet = self.store.get_bullet(bullet_id)
        if bullet.is_locked:
            raise ValidationFailed(f"bullet '{bullet_id}' is locked against rewrites")

        token = self.store.token_for(bullet_id)
        request_id = next(self._requests)
        self._optimizing[bullet_id] = request_id
        self.events.publish("proposal.optimizing", {"bullet_id": bullet_id})

        try:
            candidate = await self.provider.optimize_bullet(bullet_text=bullet.content, job_text=job_text)
        finally:
            is_latest = self._optimizing.get(bullet_id) == request_id
            if is_latest:
                del self._optimizing[bullet_id]

        if not is_latest or not self.store.is_current(token):
            logger.debug("Dropping stale rewrite for bullet=%s", bullet_id)
            return None

        candidate = candidate.strip()
        if not candidate or candidate == bullet.content:
            self._proposals.pop(bullet_id, None)
            self.events.publish("proposal.unchanged", {"bullet_id": bullet_id})
            return None

        self._proposals[bullet_id] = candidate
        self.events.publish("proposal.created", {"bullet_id": bullet_id})
        return candidate

    async def optimize_all(self) -> dict[str, str]:
        """Request rewrites for every visible, unlocked tailored bullet at once."""
        if not self.job_context.text:
            raise ValidationFailed("Enter a job description before requesting rewrites.")
        bullet_ids = [
            bullet.id
            for bullet in self.store.tailored.iter_bullets()
            if bullet.is_visible and not bullet.is_locked
        ]
        results = await asyncio.gather(*(self.optimize(bullet_id) for bullet_id in bullet_ids))
        return {bullet_id: candidate for bullet_id, candidate in zip(bullet_ids, results) if candidate}

    async def accept(self, bullet_id: str) -> Bullet:
        """Commit the proposal, then rescore the new text.

        The commit happens before the first suspension point, so the bullet is
        already unscored while the rescore request is outstanding.
        """
        candidate = self._proposals.get(bullet_id)
        if candidate is None:
            raise ValidationFailed(f"bullet '{bullet_id}' has no pending proposal")

        committed = self.store.set_bullet_content(bullet_id, candidate)
        epoch = self.store.epoch
        self._proposals.pop(bullet_id, None)
        self.events.publish("proposal.accepted", {"bullet_id": bullet_id})

        if not self.job_context.text:
            return committed
        await self.scorer.score_one(bullet_id)
        if self.store.epoch != epoch:
            # The tailored profile was replaced; the same id may now name another bullet.
            return committed
        try:
            return self.store.get_bullet(bullet_id)
        except NotFound:
            return committed

    def discard(self, bullet_id: str) -> bool:
        removed = self._proposals.pop(bullet_id, None) is not None
        if removed:
            self.events.publish("proposal.discarded", {"bullet_id": bullet_id})
        return removed

    def edit(self, bullet_id: str, content: str) -> Bullet:
        return self.store.set_bullet_content(bullet_id, content)

    def _on_bullet_invalidated(self, event: dict) -> None:
        if event.get("target") != "tailored":
            return
        bullet_id = event["bullet_id"]
        self._proposals.pop(bullet_id, None)
        self._optimizing.pop(bullet_id, None)

    def _on_tailored_replaced(self, event: dict) -> None:
        self._proposals.clear()
        self._optimizing.clear()
