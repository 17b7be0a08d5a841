from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from tailor.config import Settings, get_settings
from tailor.llm.prompts import (
    BRIDGING_BULLET_PROMPT,
    COVER_LETTER_PROMPT,
    GAP_ANALYSIS_PROMPT,
    KEYWORDS_PROMPT,
    OPTIMIZE_BULLET_PROMPT,
    RESUME_PARSING_PROMPT,
    RESUME_TEXT_PROMPT,
    SCORE_BULLETS_PROMPT,
    SCORE_ONE_BULLET_PROMPT,
)
from tailor.llm.providers import LLMProvider, ProviderPool
from tailor.types import BulletScore, GapAnalysisResult, Profile

logger = logging.getLogger(__name__)


class AnalysisProvider:
    """Text generation and analysis calls used by the tailoring workflow.

    Every public coroutine returns a usable value: when no provider is
    configured, a call fails, or a reply does not have the expected shape, the
    operation's fallback comes back instead of an exception.
    """

    def __init__(self, settings: Settings | None = None, pool: ProviderPool | None = None):
        self.settings = settings or get_settings()
        self.pool = pool or ProviderPool(self.settings)

    async def optimize_bullet(self, *, bullet_text: str, job_text: str) -> str:
        prompt = OPTIMIZE_BULLET_PROMPT.format(
            job_excerpt=job_text[: self.settings.job_excerpt_chars],
            bullet_text=bullet_text,
        )
        text = await self._call_text(task="writer", prompt=prompt)
        rewritten = clean_bullet_text(text)
        return rewritten or bullet_text

    async def analyze_job_description(self, *, job_text: str) -> list[str]:
        prompt = KEYWORDS_PROMPT.format(
            max_keywords=self.settings.max_keywords,
            job_text=job_text[: self.settings.job_excerpt_chars],
        )
        data = await self._call_json(task="analyst", prompt=prompt)
        if isinstance(data, dict):
            data = first_list_value(data)
        if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
            logger.warning("Invalid keyword payload; returning no keywords")
            return []
        keywords = list(dict.fromkeys(item.strip() for item in data if item.strip()))
        return keywords[: self.settings.max_keywords]

    async def score_bullets(self, *, bullets: list[tuple[str, str]], job_text: str) -> list[BulletScore]:
        if not bullets:
            return []

        bullet_list = "\n\n".join(f"ID: {bullet_id}\nContent: {content}" for bullet_id, content in bullets)
        prompt = SCORE_BULLETS_PROMPT.format(
            job_excerpt=job_text[: self.settings.job_excerpt_chars],
            bullet_list=bullet_list,
        )
        data = await self._call_json(task="analyst", prompt=prompt)
        if isinstance(data, dict):
            data = first_list_value(data)
        if not isinstance(data, list):
            if data is not None:
                logger.warning("Invalid scoring payload shape; ignoring response")
            return []

        try:
            return [BulletScore.model_validate(item) for item in data]
        except ValidationError:
            logger.warning("Invalid scoring entries in provider response; ignoring response")
            return []

    async def score_one_bullet(self, *, bullet_id: str, content: str, job_text: str) -> BulletScore | None:
        prompt = SCORE_ONE_BULLET_PROMPT.format(
            job_excerpt=job_text[: self.settings.job_excerpt_chars],
            bullet_id=bullet_id,
            content=content,
        )
        data = await self._call_json(task="analyst", prompt=prompt)
        if not isinstance(data, dict):
            return None

        try:
            score = BulletScore.model_validate({"id": bullet_id, **data})
        except ValidationError:
            logger.warning("Invalid single score payload for bullet=%s", bullet_id)
            return None
        if score.id != bullet_id:
            logger.warning("Single score returned for bullet=%s, expected %s", score.id, bullet_id)
            return None
        return score

    async def analyze_gaps(self, *, profile_text: str, job_text: str) -> GapAnalysisResult:
        prompt = GAP_ANALYSIS_PROMPT.format(
            profile_text=profile_text[: self.settings.resume_excerpt_chars],
            job_excerpt=job_text[: self.settings.job_excerpt_chars],
        )
        data = await self._call_json(task="analyst", prompt=prompt)
        if not isinstance(data, dict):
            return GapAnalysisResult()

        missing = data.get("missing", data.get("missingSkills", []))
        present = data.get("present", data.get("presentSkills", []))
        try:
            return GapAnalysisResult(missing=missing, present=present)
        except ValidationError:
            logger.warning("Invalid gap analysis payload; returning empty result")
            return GapAnalysisResult()

    async def generate_bridging_bullet(self, *, skill: str, user_context: str, job_text: str) -> str:
        prompt = BRIDGING_BULLET_PROMPT.format(
            skill=skill,
            user_context=user_context,
            job_excerpt=job_text[: self.settings.job_excerpt_chars],
        )
        text = await self._call_text(task="writer", prompt=prompt)
        return clean_bullet_text(text)

    async def generate_cover_letter(
        self,
        *,
        profile: Profile,
        job_title: str,
        company: str,
        job_text: str,
    ) -> str:
        history = ", ".join(
            f"{experience.role} at {experience.company} ({len(experience.bullets)} achievements)"
            for experience in profile.experiences[:3]
        )
        prompt = COVER_LETTER_PROMPT.format(
            name=profile.name,
            job_title=job_title,
            company=company,
            job_excerpt=job_text[: self.settings.job_excerpt_chars],
            summary=profile.summary,
            history=history,
        )
        text = await self._call_text(task="writer", prompt=prompt)
        return text.strip()

    async def parse_resume_from_text(self, *, raw_text: str) -> dict[str, Any]:
        prompt = RESUME_TEXT_PROMPT.format(
            instructions=RESUME_PARSING_PROMPT.format(),
            raw_text=raw_text[: self.settings.resume_excerpt_chars],
        )
        data = await self._call_json(task="parser", prompt=prompt)
        return data if isinstance(data, dict) else {}

    async def parse_resume_from_pdf(self, *, data: bytes) -> dict[str, Any]:
        prompt = RESUME_PARSING_PROMPT.format()
        for provider in self._candidates("parser"):
            try:
                payload = await provider.complete_document_json(
                    model=self._model_for(provider, "parser"),
                    prompt=prompt,
                    data=data,
                )
            except Exception as exc:
                logger.warning("LLM document call failed provider=%s error=%s", provider.config.name, exc)
                continue
            return payload if isinstance(payload, dict) else {}
        return {}

    def _provider_for(self, task: str) -> tuple[LLMProvider, LLMProvider]:
        provider_name = {
            "writer": self.settings.llm_router_writer_provider,
            "analyst": self.settings.llm_router_analyst_provider,
            "parser": self.settings.llm_router_parser_provider,
        }.get(task, self.settings.llm_router_default)

        if provider_name == "local":
            return self.pool.local(), self.pool.openai()
        return self.pool.openai(), self.pool.local()

    def _candidates(self, task: str) -> list[LLMProvider]:
        providers = []
        for provider in self._provider_for(task):
            if provider.config.name == "openai" and not self.settings.openai_api_key:
                continue
            if provider.config.name == "local" and not self.settings.local_llm_enabled:
                continue
            providers.append(provider)
        return providers

    def _model_for(self, provider: LLMProvider, task: str) -> str:
        if provider.config.name == "local":
            return self.settings.local_llm_model
        if task == "writer":
            return self.settings.openai_model_writer
        return self.settings.openai_model_analyst

    async def _call_json(self, *, task: str, prompt: str) -> Any:
        for provider in self._candidates(task):
            try:
                return await provider.complete_json(model=self._model_for(provider, task), prompt=prompt)
            except Exception as exc:
                logger.warning("LLM JSON call failed provider=%s error=%s", provider.config.name, exc)
        return None

    async def _call_text(self, *, task: str, prompt: str) -> str:
        for provider in self._candidates(task):
            try:
                response = await provider.complete_text(model=self._model_for(provider, task), prompt=prompt)
                return response.content
            except Exception as exc:
                logger.warning("LLM text call failed provider=%s error=%s", provider.config.name, exc)
        return ""


def clean_bullet_text(text: str) -> str:
    value = _strip_quotes(text.strip())
    for prefix in ("- ", "* ", "• "):
        if value.startswith(prefix):
            value = value[len(prefix) :].strip()
    return _strip_quotes(value)


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1].strip()
    return value


def first_list_value(data: dict[str, Any]) -> Any:
    # Models sometimes wrap an array as {"items": [...]}.
    for value in data.values():
        if isinstance(value, list):
            return value
    return None


def serialize_experiences(profile: Profile) -> str:
    return json.dumps(
        [
            {"role": experience.role, "bullets": [bullet.content for bullet in experience.bullets]}
            for experience in profile.experiences
        ],
        ensure_ascii=True,
    )
