from __future__ import annotations

import logging

from tailor.config import Settings
from tailor.core.events import EventBus
from tailor.core.job_context import JobContext
from tailor.core.profile_store import ProfileStore
from tailor.errors import NotFound, ValidationFailed
from tailor.llm.router import AnalysisProvider, serialize_experiences
from tailor.types import Bullet, GapAnalysisResult

logger = logging.getLogger(__name__)


class GapAnalyzer:
    def __init__(
        self,
        *,
        store: ProfileStore,
        job_context: JobContext,
        provider: AnalysisProvider,
        events: EventBus,
        settings: Settings,
    ):
        self.store = store
        self.job_context = job_context
        self.provider = provider
        self.events = events
        self.settings = settings
        self._result: GapAnalysisResult | None = None
        events.add_listener("tailored.replaced", self._on_tailored_replaced)

    @property
    def result(self) -> GapAnalysisResult | None:
        return self._result.model_copy(deep=True) if self._result is not None else None

    async def analyze(self) -> GapAnalysisResult:
        job_text = self.job_context.text
        if not job_text:
            raise ValidationFailed("Enter a job description before running a gap analysis.")

        epoch = self.store.epoch
        profile_text = serialize_experiences(self.store.tailored)
        result = await self.provider.analyze_gaps(profile_text=profile_text, job_text=job_text)

        if self.job_context.text != job_text or self.store.epoch != epoch:
            logger.debug("Dropping gap analysis computed for an outdated profile or job")
            return self.result or GapAnalysisResult()

        self._result = result
        self.events.publish("gaps.analyzed", {"missing": len(result.missing), "present": len(result.present)})
        return self.result

    async def fill_gap(self, skill: str, target_experience_id: str, user_context: str) -> Bullet | None:
        """Generate a bridging bullet for ``skill`` and put it first in the target experience.

        Returns the inserted bullet, or None when the provider produced nothing,
        in which case neither the profile nor the gap lists change.
        """
        skill = skill.strip()
        user_context = user_context.strip()
        if not skill or not target_experience_id or not user_context:
            raise ValidationFailed("Choose a skill, a target role, and describe how you used it.")
        if self.store.is_tracking_master:
            raise ValidationFailed("Enter a job description before filling gaps.")
        self.store.get_experience(target_experience_id)

        epoch = self.store.epoch
        text = await self.provider.generate_bridging_bullet(
            skill=skill,
            user_context=user_context,
            job_text=self.job_context.text,
        )
        if not text:
            logger.info("No bridging bullet generated for skill=%s", skill)
            return None
        if self.store.epoch != epoch:
            logger.debug("Dropping bridging bullet for skill=%s; tailored profile was replaced", skill)
            return None

        bullet = Bullet(
            content=text,
            is_visible=True,
            is_locked=False,
            relevance_score=self.settings.gap_fill_score,
            relevance_reason=self.settings.gap_fill_reason,
        )
        try:
            inserted = self.store.insert_bullet(target_experience_id, bullet, at_start=True)
        except NotFound:
            logger.debug("Target experience %s disappeared before the bridging bullet arrived", target_experience_id)
            return None

        if self._result is not None:
            self._result.mark_filled(skill)
        self.events.publish("gaps.filled", {"skill": skill, "bullet_id": inserted.id})
        return inserted

    def _on_tailored_replaced(self, event: dict) -> None:
        self._result = None
