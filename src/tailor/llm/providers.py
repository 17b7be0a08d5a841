from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any

from openai import AsyncOpenAI

from tailor.config import Settings
from tailor.types import ModelResponse

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProviderConfig:
    name: str
    base_url: str
    api_key: str
    timeout_sec: int


class LLMProvider:
    def __init__(self, config: ProviderConfig):
        self.config = config
        self.client = AsyncOpenAI(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=float(config.timeout_sec),
        )

    async def complete_text(self, *, model: str, prompt: str) -> ModelResponse:
        content = [{"type": "input_text", "text": prompt}]
        try:
            return await self._complete_via_responses(model=model, content=content)
        except Exception as exc:
            if not self._is_unsupported_responses_endpoint(exc):
                raise

            logger.warning(
                "Responses API unavailable for provider=%s base_url=%s; "
                "falling back to chat.completions (%s)",
                self.config.name,
                self.config.base_url,
                exc,
            )
            return await self._complete_via_chat_completions(model=model, content=prompt)

    async def complete_json(self, *, model: str, prompt: str) -> Any:
        text_response = await self.complete_text(model=model, prompt=prompt)
        return parse_json(text_response.content)

    async def complete_document_json(
        self,
        *,
        model: str,
        prompt: str,
        data: bytes,
        filename: str = "resume.pdf",
        mime_type: str = "application/pdf",
    ) -> Any:
        file_data = f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
        content = [
            {"type": "input_file", "filename": filename, "file_data": file_data},
            {"type": "input_text", "text": prompt},
        ]
        try:
            response = await self._complete_via_responses(model=model, content=content)
        except Exception as exc:
            if not self._is_unsupported_responses_endpoint(exc):
                raise

            logger.warning(
                "Responses API unavailable for provider=%s; sending document via chat.completions (%s)",
                self.config.name,
                exc,
            )
            response = await self._complete_via_chat_completions(
                model=model,
                content=[
                    {"type": "file", "file": {"filename": filename, "file_data": file_data}},
                    {"type": "text", "text": prompt},
                ],
            )
        return parse_json(response.content)

    async def _complete_via_responses(self, *, model: str, content: list[dict[str, Any]]) -> ModelResponse:
        response = await self.client.responses.create(
            model=model,
            input=[{"role": "user", "content": content}],
        )
        text = getattr(response, "output_text", "") or ""
        raw = response.model_dump() if hasattr(response, "model_dump") else {}
        if not isinstance(raw, dict):
            raw = {"raw": raw}
        raw["api_path"] = "responses"
        return ModelResponse(content=text, raw=raw)

    async def _complete_via_chat_completions(self, *, model: str, content: Any) -> ModelResponse:
        response = await self.client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": content}],
        )

        text = self._extract_chat_text(response)
        raw = response.model_dump() if hasattr(response, "model_dump") else {}
        if not isinstance(raw, dict):
            raw = {"raw": raw}
        raw["api_path"] = "chat_completions"
        return ModelResponse(content=text, raw=raw)

    @staticmethod
    def _extract_chat_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""

        message = getattr(choices[0], "message", None)
        if message is None:
            return ""

        content = getattr(message, "content", "")
        if isinstance(content, str):
            return content
        if content is None:
            return ""
        return str(content)

    @staticmethod
    def _is_unsupported_responses_endpoint(exc: Exception) -> bool:
        status_code = getattr(exc, "status_code", None)
        if status_code == 404:
            return True

        message = str(exc).strip().lower()
        if not message:
            return False

        return "not found" in message or "404" in message


def parse_json(content: str) -> Any:
    """Decode a model reply into a JSON object or array.

    Replies wrapped in markdown fences are unwrapped first. Anything that does
    not decode to a dict or list comes back as ``None``.
    """
    candidate = content.strip()
    if not candidate:
        return None

    if "```" in candidate:
        parts = candidate.split("```")
        for part in parts:
            part = part.strip()
            if part.startswith("json"):
                part = part[4:].strip()
            if (part.startswith("{") and part.endswith("}")) or (part.startswith("[") and part.endswith("]")):
                candidate = part
                break

    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        logger.warning("Failed to parse JSON model output")
        return None
    return value if isinstance(value, (dict, list)) else None


class ProviderPool:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._openai: LLMProvider | None = None
        self._local: LLMProvider | None = None

    def openai(self) -> LLMProvider:
        if self._openai is None:
            self._openai = LLMProvider(
                ProviderConfig(
                    name="openai",
                    base_url=self.settings.openai_base_url,
                    api_key=self.settings.openai_api_key,
                    timeout_sec=self.settings.openai_timeout_sec,
                )
            )
        return self._openai

    def local(self) -> LLMProvider:
        if self._local is None:
            self._local = LLMProvider(
                ProviderConfig(
                    name="local",
                    base_url=self.settings.local_llm_base_url,
                    api_key=self.settings.local_llm_api_key,
                    timeout_sec=self.settings.local_llm_timeout_sec,
                )
            )
        return self._local
