from __future__ import annotations

import logging

from tailor.core.events import EventBus
from tailor.core.job_context import JobContext
from tailor.core.profile_store import ProfileStore
from tailor.errors import ValidationFailed
from tailor.llm.router import AnalysisProvider
from tailor.types import Bullet, BulletScore, Experience

logger = logging.getLogger(__name__)


class RelevanceScorer:
    def __init__(
        self,
        *,
        store: ProfileStore,
        job_context: JobContext,
        provider: AnalysisProvider,
        events: EventBus,
    ):
        self.store = store
        self.job_context = job_context
        self.provider = provider
        self.events = events

    async def score_all(self) -> int:
        """Score every tailored bullet in one request.

        Bullets the provider leaves out end up unscored. An empty or unusable
        response changes nothing. Returns how many bullets received a score.
        """
        job_text = self._require_job_text()
        profile = self.store.tailored
        tokens = {bullet.id: self.store.token_for(bullet.id) for bullet in profile.iter_bullets()}
        if not tokens:
            return 0

        scores = await self.provider.score_bullets(
            bullets=[(bullet.id, bullet.content) for bullet in profile.iter_bullets()],
            job_text=job_text,
        )
        if not scores:
            logger.info("Scoring returned no results; keeping existing scores")
            return 0
        if self.job_context.text != job_text:
            logger.debug("Dropping batch scores computed for outdated job text")
            return 0

        by_id: dict[str, BulletScore] = {score.id: score for score in scores}
        applied = 0
        for bullet_id, token in tokens.items():
            result = by_id.get(bullet_id)
            if result is None:
                self.store.apply_score(token, None, None)
                continue
            if self.store.apply_score(token, result.score, result.reason):
                applied += 1

        self.events.publish("scores.refreshed", {"scored": applied, "requested": len(tokens)})
        return applied

    async def score_one(self, bullet_id: str) -> BulletScore | None:
        job_text = self._require_job_text()
        bullet = self.store.get_bullet(bullet_id)
        token = self.store.token_for(bullet_id)

        result = await self.provider.score_one_bullet(bullet_id=bullet_id, content=bullet.content, job_text=job_text)
        if result is None:
            return None
        if self.job_context.text != job_text:
            logger.debug("Dropping score for bullet=%s computed for outdated job text", bullet_id)
            return None
        if not self.store.apply_score(token, result.score, result.reason):
            return None
        return result

    def ranked_view(self) -> list[tuple[Experience, list[Bullet]]]:
        return [(experience, ranked_bullets(experience)) for experience in self.store.tailored.experiences]

    def _require_job_text(self) -> str:
        job_text = self.job_context.text
        if not job_text:
            raise ValidationFailed("Enter a job description before scoring relevance.")
        return job_text


def ranked_bullets(experience: Experience) -> list[Bullet]:
    """Display order: highest score first, unscored bullets ranked as 0."""
    return sorted(
        experience.bullets,
        key=lambda bullet: bullet.relevance_score if bullet.relevance_score is not None else 0,
        reverse=True,
    )
