from __future__ import annotations

import logging

from tailor.core.events import EventBus
from tailor.errors import ValidationFailed
from tailor.llm.router import AnalysisProvider
from tailor.types import JobDescription

logger = logging.getLogger(__name__)


class JobContext:
    """The job description currently being tailored against."""

    def __init__(self, *, events: EventBus, provider: AnalysisProvider, job: JobDescription | None = None):
        self.events = events
        self.provider = provider
        self._job = job.clone() if job is not None else JobDescription()

    @property
    def job(self) -> JobDescription:
        return self._job.clone()

    @property
    def text(self) -> str:
        return self._job.text

    @property
    def is_empty(self) -> bool:
        return self._job.is_empty

    def update(
        self,
        *,
        company: str | None = None,
        title: str | None = None,
        text: str | None = None,
    ) -> JobDescription:
        was_empty = self._job.is_empty
        if company is not None:
            self._job.company = company
        if title is not None:
            self._job.title = title
        if text is not None:
            self._job.text = text
        self._announce(was_empty)
        return self.job

    def replace(self, job: JobDescription) -> JobDescription:
        was_empty = self._job.is_empty
        self._job = job.clone()
        self._announce(was_empty)
        return self.job

    def clear(self) -> JobDescription:
        return self.replace(JobDescription())

    async def analyze_keywords(self) -> list[str]:
        job_text = self._job.text
        if not job_text:
            raise ValidationFailed("Enter a job description before extracting keywords.")

        keywords = await self.provider.analyze_job_description(job_text=job_text)
        if self._job.text != job_text:
            logger.debug("Dropping keyword result for outdated job text")
            return list(self._job.keywords)
        if not keywords:
            logger.info("No keywords extracted; keeping previous keywords")
            return list(self._job.keywords)

        keywords = list(dict.fromkeys(keywords))
        self._job.keywords = keywords
        self.events.publish("job.keywords", {"keywords": list(keywords)})
        return list(keywords)

    def _announce(self, was_empty: bool) -> None:
        self.events.publish(
            "job.changed",
            {"was_empty": was_empty, "is_empty": self._job.is_empty, "job_id": self._job.id},
        )
