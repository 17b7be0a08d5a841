from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient

from tailor.api.app import create_app


@pytest.fixture()
def client(session):
    with TestClient(create_app(session)) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_master_edit_flows_to_tailored_until_job_entered(client: TestClient) -> None:
    resp = client.patch("/api/profiles/master", json={"name": "Jordan Lee"})
    assert resp.status_code == 200
    assert client.get("/api/profiles/tailored").json()["name"] == "Jordan Lee"

    client.patch("/api/job", json={"company": "Acme"})
    client.patch("/api/profiles/master", json={"name": "After Fork"})

    assert client.get("/api/profiles/tailored").json()["name"] == "Jordan Lee"
    assert client.get("/api/session").json()["mode"] == "tailoring"


def test_tailored_edit_without_job_is_rejected(client: TestClient) -> None:
    resp = client.put("/api/profiles/tailored/bullets/b1", json={"content": "nope"})

    assert resp.status_code == 400


def test_unknown_ids_return_404(client: TestClient) -> None:
    assert client.put("/api/profiles/master/bullets/zzz", json={"content": "x"}).status_code == 404
    assert client.post("/api/snapshots/snap-none/load", json={"confirmed": True}).status_code == 404


def test_destructive_operations_require_confirmation(client: TestClient) -> None:
    client.patch("/api/job", json={"title": "Engineer"})

    resp = client.post("/api/tailored/reset", json={})
    assert resp.status_code == 400
    assert resp.json()["confirmation_required"] is True

    assert client.post("/api/tailored/reset", json={"confirmed": True}).status_code == 200


def test_experience_and_bullet_management(client: TestClient) -> None:
    experience = client.post(
        "/api/profiles/master/experiences", json={"company": "Acme", "role": "Lead"}
    ).json()
    bullet = client.post(
        f"/api/profiles/master/experiences/{experience['id']}/bullets", json={"content": "Hired five engineers"}
    ).json()
    hidden = client.put(f"/api/profiles/master/bullets/{bullet['id']}/visibility", json={"value": False}).json()

    master = client.get("/api/profiles/master").json()
    visible = client.get("/api/profiles/master/visible").json()

    assert master["experiences"][0]["id"] == experience["id"]
    assert hidden["is_visible"] is False
    assert visible["experiences"][0]["bullets"] == []

    assert client.delete(f"/api/profiles/master/experiences/{experience['id']}").status_code == 200
    assert all(item["id"] != experience["id"] for item in client.get("/api/profiles/tailored").json()["experiences"])


def test_resume_import_endpoints(client: TestClient, fake_provider) -> None:
    fake_provider.parsed_resume = {"name": "Sam Rivera", "experiences": [{"company": "Initech", "role": "Analyst"}]}

    resp = client.post("/api/profiles/master/import", json={"raw_text": "Sam Rivera, Analyst"})
    assert resp.status_code == 200
    assert resp.json()["experiences"][0]["bullets"] == []

    pdf = base64.b64encode(b"%PDF-1.4 resume").decode("ascii")
    assert client.post("/api/profiles/master/import/pdf", json={"data_base64": pdf}).status_code == 200
    assert client.post("/api/profiles/master/import/pdf", json={"data_base64": "@@not base64@@"}).status_code == 400


def test_snapshot_save_requires_company_or_title(client: TestClient) -> None:
    client.patch("/api/job", json={"text": "Only a description"})

    assert client.post("/api/snapshots").status_code == 400
    assert client.get("/api/snapshots").json() == []


def test_data_export_and_import(client: TestClient) -> None:
    exported = client.get("/api/data/export").json()["data"]

    assert client.post("/api/data/import", json={"data": exported}).json() == {"ok": True}
    assert client.post("/api/data/import", json={"data": "garbage"}).json() == {"ok": False}


def test_visibility_toggle_route(client: TestClient) -> None:
    url = "/api/profiles/master/bullets/b1/visibility/toggle"

    assert client.post(url).json()["is_visible"] is False
    assert client.get("/api/profiles/tailored").json()["experiences"][0]["bullets"][0]["is_visible"] is False
    assert client.post(url).json()["is_visible"] is True
    assert client.post("/api/profiles/tailored/bullets/b1/visibility/toggle").status_code == 400
    assert client.post("/api/profiles/master/bullets/zzz/visibility/toggle").status_code == 404


def test_ranked_route_matches_scorer_view(client: TestClient, session) -> None:
    client.patch("/api/job", json={"company": "Acme", "text": "Python data platform"})
    client.post("/api/scores")
    client.put("/api/profiles/tailored/bullets/b2/visibility", json={"value": False})

    ranked = client.get("/api/scores/ranked").json()
    view = session.scorer.ranked_view()

    assert [item["experience_id"] for item in ranked] == [experience.id for experience, _ in view]
    for item, (_, bullets) in zip(ranked, view):
        assert [bullet["id"] for bullet in item["bullets"]] == [bullet.id for bullet in bullets]
        assert item["visible"] == sum(1 for bullet in bullets if bullet.is_visible)
