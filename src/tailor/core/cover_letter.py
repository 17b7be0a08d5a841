from __future__ import annotations

import logging

from tailor.core.events import EventBus
from tailor.core.job_context import JobContext
from tailor.core.profile_store import ProfileStore
from tailor.errors import ValidationFailed
from tailor.llm.router import AnalysisProvider

logger = logging.getLogger(__name__)


class CoverLetterWriter:
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
        self.letter = ""

    async def generate(self) -> str:
        job = self.job_context.job
        if not job.text:
            raise ValidationFailed("Enter a job description before generating a cover letter.")

        # The letter speaks from the master profile's summary and history.
        letter = await self.provider.generate_cover_letter(
            profile=self.store.master,
            job_title=job.title,
            company=job.company,
            job_text=job.text,
        )
        if not letter:
            logger.warning("Cover letter generation returned nothing; keeping previous letter")
            self.events.publish(
                "notice",
                {"message": "Error generating cover letter. Please try again."},
            )
            return self.letter

        self.letter = letter
        self.events.publish("cover_letter.generated", {"length": len(letter)})
        return letter

    def set_letter(self, text: str) -> str:
        self.letter = text
        return self.letter
