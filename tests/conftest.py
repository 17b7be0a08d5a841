from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from tailor.config import Settings, get_settings
from tailor.core.session import TailoringSession
from tailor.db.repositories import KeyValueStore
from tailor.llm.router import AnalysisProvider
from tailor.types import BulletScore, GapAnalysisResult, Profile


class FakeAnalysisProvider(AnalysisProvider):
    """Scripted stand-in for the model calls.

    Each method answers from an attribute that a test can overwrite. A method
    named in ``gates`` waits on that event before answering, so a test can
    interleave edits with an outstanding request.
    """

    def __init__(self, settings: Settings | None = None):
        super().__init__(settings or Settings(openai_api_key="", local_llm_enabled=False))
        self.rewrite: Callable[[str], str] = lambda text: f"{text} for the role"
        self.keywords: list[str] = ["Python", "Kubernetes", "PostgreSQL"]
        self.score: Callable[[str, str], int] = lambda bullet_id, content: min(100, 10 * len(content.split()))
        self.batch_scores: Callable[[list[tuple[str, str]]], list[BulletScore]] | None = None
        self.gaps = GapAnalysisResult(missing=["Kubernetes", "Terraform"], present=["Python"])
        self.bridging = "Deployed the payment service on Kubernetes with zero-downtime rollouts"
        self.cover_letter = "Dear Hiring Manager,\n\nI am excited to apply."
        self.parsed_resume: dict = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    def hold(self, method: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[method] = gate
        return gate

    async def _gate(self, method: str) -> None:
        self.calls.append(method)
        gate = self.gates.get(method)
        if gate is not None:
            await gate.wait()

    async def optimize_bullet(self, *, bullet_text: str, job_text: str) -> str:
        await self._gate("optimize_bullet")
        return self.rewrite(bullet_text)

    async def analyze_job_description(self, *, job_text: str) -> list[str]:
        await self._gate("analyze_job_description")
        return list(self.keywords)

    async def score_bullets(self, *, bullets: list[tuple[str, str]], job_text: str) -> list[BulletScore]:
        await self._gate("score_bullets")
        if self.batch_scores is not None:
            return self.batch_scores(bullets)
        return [
            BulletScore(id=bullet_id, score=self.score(bullet_id, content), reason=f"matches: {content[:20]}")
            for bullet_id, content in bullets
        ]

    async def score_one_bullet(self, *, bullet_id: str, content: str, job_text: str) -> BulletScore | None:
        await self._gate("score_one_bullet")
        return BulletScore(id=bullet_id, score=self.score(bullet_id, content), reason=f"rescored: {content[:20]}")

    async def analyze_gaps(self, *, profile_text: str, job_text: str) -> GapAnalysisResult:
        await self._gate("analyze_gaps")
        return self.gaps.model_copy(deep=True)

    async def generate_bridging_bullet(self, *, skill: str, user_context: str, job_text: str) -> str:
        await self._gate("generate_bridging_bullet")
        return self.bridging

    async def generate_cover_letter(self, *, profile: Profile, job_title: str, company: str, job_text: str) -> str:
        await self._gate("generate_cover_letter")
        return self.cover_letter

    async def parse_resume_from_text(self, *, raw_text: str) -> dict:
        await self._gate("parse_resume_from_text")
        return self.parsed_resume

    async def parse_resume_from_pdf(self, *, data: bytes) -> dict:
        await self._gate("parse_resume_from_pdf")
        return self.parsed_resume


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'tailor.db'}")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("LOCAL_LLM_ENABLED", "false")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture()
def fake_provider(isolated_settings: Settings) -> FakeAnalysisProvider:
    return FakeAnalysisProvider(isolated_settings)


@pytest.fixture()
def kv_store(isolated_settings: Settings) -> KeyValueStore:
    return KeyValueStore.from_settings(isolated_settings)


@pytest.fixture()
def make_session(isolated_settings: Settings, fake_provider: FakeAnalysisProvider, kv_store: KeyValueStore):
    def factory(**overrides) -> TailoringSession:
        kwargs = {"settings": isolated_settings, "provider": fake_provider, "kv_store": kv_store}
        kwargs.update(overrides)
        return TailoringSession(**kwargs)

    return factory


@pytest.fixture()
def session(make_session) -> TailoringSession:
    return make_session()
