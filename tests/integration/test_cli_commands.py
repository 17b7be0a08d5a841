from __future__ import annotations

import json

from typer.testing import CliRunner

from tailor.cli.app import app

runner = CliRunner()


def test_init_creates_tables() -> None:
    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0
    assert "kv_entries" in json.loads(result.stdout)["tables"]


def test_profile_show_prints_default_master() -> None:
    result = runner.invoke(app, ["profile", "show"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["name"] == "Alex Mercer"


def test_apply_saves_snapshot_without_providers(tmp_path) -> None:
    job_file = tmp_path / "job.txt"
    job_file.write_text("Senior Python engineer with Kubernetes experience", encoding="utf-8")

    result = runner.invoke(
        app,
        ["apply", "--company", "Acme", "--title", "Engineer", "--job-file", str(job_file), "--no-cover-letter"],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["keywords"] == []
    assert payload["scored"] == 0

    listed = json.loads(runner.invoke(app, ["snapshots", "list"]).stdout)
    assert [item["id"] for item in listed] == [payload["snapshot_id"]]

    shown = json.loads(runner.invoke(app, ["snapshots", "show", payload["snapshot_id"]]).stdout)
    assert shown["job"]["text"].startswith("Senior Python engineer")

    deleted = runner.invoke(app, ["snapshots", "delete", payload["snapshot_id"], "--yes"])
    assert json.loads(deleted.stdout) == {"deleted": payload["snapshot_id"], "remaining": 0}


def test_data_export_and_import_roundtrip(tmp_path) -> None:
    export_file = tmp_path / "export.json"

    exported = runner.invoke(app, ["data", "export", "--output", str(export_file)])
    imported = runner.invoke(app, ["data", "import", "--file", str(export_file)])

    assert exported.exit_code == 0
    assert imported.exit_code == 0
    assert json.loads(imported.stdout) == {"ok": True}
