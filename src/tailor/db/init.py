from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import Engine

from tailor.config import Settings, get_settings
from tailor.db.base import Base
from tailor.db import models  # noqa: F401


def ensure_data_directories(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    paths: list[Path] = [settings.data_dir]
    if settings.database_url.startswith("sqlite:///"):
        db_path = Path(settings.database_url.removeprefix("sqlite:///"))
        if str(db_path) != ":memory:":
            paths.append(db_path.parent)
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database(engine: Engine, settings: Settings | None = None) -> dict[str, str]:
    ensure_data_directories(settings)
    Base.metadata.create_all(bind=engine)
    return {"tables": ", ".join(sorted(Base.metadata.tables))}
