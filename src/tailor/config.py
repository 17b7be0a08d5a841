from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Tailor"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8788
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/tailor.db"
    data_dir: Path = Path("./data")
    storage_max_value_bytes: int = 5 * 1024 * 1024
    master_profile_key: str = "resume_tailor_master_profile"
    snapshots_key: str = "resume_tailor_snapshots"

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model_writer: str = "gpt-5-mini"
    openai_model_analyst: str = "gpt-5-mini"
    openai_timeout_sec: int = 60

    local_llm_enabled: bool = True
    local_llm_base_url: str = "http://localhost:11434/v1"
    local_llm_api_key: str = "local"
    local_llm_model: str = "qwen2.5:14b-instruct"
    local_llm_timeout_sec: int = 90

    llm_router_default: str = "openai"
    llm_router_writer_provider: str = "openai"
    llm_router_analyst_provider: str = "openai"
    llm_router_parser_provider: str = "openai"

    job_excerpt_chars: int = 1500
    resume_excerpt_chars: int = 8000
    max_keywords: int = 5
    gap_fill_score: int = 100
    gap_fill_reason: str = "Gap filled via Strategy"

    cors_origins: str = "http://127.0.0.1:8788"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("gap_fill_score")
    @classmethod
    def validate_gap_fill_score(cls, value: int) -> int:
        if value < 0 or value > 100:
            raise ValueError("gap_fill_score must be between 0 and 100")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
