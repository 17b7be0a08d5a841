from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
import uvicorn

from tailor.api.app import create_app
from tailor.config import get_settings
from tailor.core.session import TailoringSession
from tailor.db.init import init_database
from tailor.db.session import build_engine
from tailor.errors import TailorError
from tailor.logging_config import configure_logging

app = typer.Typer(help="Tailor CLI")
profile_app = typer.Typer(help="Master and tailored profiles")
snapshots_app = typer.Typer(help="Saved applications")
data_app = typer.Typer(help="Export and import all stored data")

app.add_typer(profile_app, name="profile")
app.add_typer(snapshots_app, name="snapshots")
app.add_typer(data_app, name="data")


def open_session() -> TailoringSession:
    configure_logging()
    return TailoringSession()


def report_notices(session: TailoringSession) -> None:
    for notice in session.drain_notices():
        typer.echo(f"warning: {notice}", err=True)


def echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2))


@app.command("init")
def init_cmd() -> None:
    """Initialize the data directory and storage tables."""
    configure_logging()
    settings = get_settings()
    result = init_database(build_engine(settings.database_url), settings)
    echo_json({"ok": True, **result})


@profile_app.command("show")
def profile_show(tailored: bool = typer.Option(False, "--tailored")) -> None:
    session = open_session()
    profile = session.profiles.tailored if tailored else session.profiles.master
    echo_json(profile.model_dump(mode="json"))


@profile_app.command("import")
def profile_import(file: Path = typer.Option(..., "--file", exists=True, readable=True)) -> None:
    """Parse a resume (plain text or PDF) into the master profile."""
    session = open_session()
    imported = asyncio.run(_import_resume(session, file))
    report_notices(session)
    if imported is None:
        raise typer.Exit(code=1)
    echo_json({"name": imported.name, "experiences": len(imported.experiences)})


async def _import_resume(session: TailoringSession, file: Path):
    if file.suffix.lower() == ".pdf":
        imported = await session.importer.import_pdf(file.read_bytes())
    else:
        imported = await session.importer.import_text(file.read_text(encoding="utf-8"))
    await session.aclose()
    return imported


@snapshots_app.command("list")
def snapshots_list() -> None:
    session = open_session()
    echo_json(
        [
            {
                "id": snapshot.id,
                "company": snapshot.company,
                "job_title": snapshot.job_title,
                "created_at": snapshot.created_at.isoformat(),
            }
            for snapshot in session.snapshots.list()
        ]
    )


@snapshots_app.command("show")
def snapshots_show(snapshot_id: str = typer.Argument(...)) -> None:
    session = open_session()
    try:
        snapshot = session.snapshots.get(snapshot_id)
    except TailorError as exc:
        raise typer.BadParameter(str(exc)) from exc
    echo_json(snapshot.model_dump(mode="json"))


@snapshots_app.command("delete")
def snapshots_delete(
    snapshot_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
) -> None:
    if not yes:
        typer.confirm(f"Delete saved application {snapshot_id}?", abort=True)
    session = open_session()
    remaining = session.snapshots.delete(snapshot_id)
    report_notices(session)
    echo_json({"deleted": snapshot_id, "remaining": len(remaining)})


@data_app.command("export")
def data_export(output: Path | None = typer.Option(None, "--output")) -> None:
    session = open_session()
    payload = session.export_data()
    if output is None:
        typer.echo(payload)
        return
    output.write_text(payload, encoding="utf-8")
    echo_json({"written": str(output)})


@data_app.command("import")
def data_import(file: Path = typer.Option(..., "--file", exists=True, readable=True)) -> None:
    session = open_session()
    ok = session.import_data(file.read_text(encoding="utf-8"))
    report_notices(session)
    echo_json({"ok": ok})
    if not ok:
        raise typer.Exit(code=1)


@app.command("apply")
def apply_cmd(
    company: str = typer.Option("", "--company"),
    title: str = typer.Option("", "--title"),
    job_file: Path = typer.Option(..., "--job-file", exists=True, readable=True),
    optimize: bool = typer.Option(False, "--optimize", help="Rewrite and accept every visible bullet"),
    cover_letter: bool = typer.Option(True, "--cover-letter/--no-cover-letter"),
) -> None:
    """Tailor the master profile to a job and save the result as an application."""
    session = open_session()
    session.job.update(company=company, title=title, text=job_file.read_text(encoding="utf-8"))
    try:
        result = asyncio.run(_run_pipeline(session, optimize=optimize, cover_letter=cover_letter))
        snapshots = session.save_snapshot()
    except TailorError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        report_notices(session)
    echo_json({"snapshot_id": snapshots[0].id, **result})


async def _run_pipeline(session: TailoringSession, *, optimize: bool, cover_letter: bool) -> dict:
    keywords = await session.job.analyze_keywords()
    accepted = 0
    if optimize:
        proposals = await session.proposals.optimize_all()
        for bullet_id in proposals:
            await session.proposals.accept(bullet_id)
            accepted += 1
    scored = await session.scorer.score_all()
    gaps = await session.gaps.analyze()
    letter = await session.letters.generate() if cover_letter else ""
    await session.aclose()
    return {
        "keywords": keywords,
        "accepted": accepted,
        "scored": scored,
        "missing_skills": gaps.missing,
        "cover_letter": bool(letter),
    }


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
