from __future__ import annotations

import json

import httpx
import pytest

from hr_onboarding.api import deps
from hr_onboarding.main import create_app

ADMIN = {"X-User-Email": "admin@acme.example.com", "X-User-Roles": "hr_admin"}
VIEWER = {"X-User-Email": "viewer@acme.example.com", "X-User-Roles": "viewer"}


@pytest.fixture()
async def client(session_factory):
    app = create_app(start_jobs=False)

    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[deps.get_db_session] = _session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def _template(client, email_type="HR_INDUCTION", name="HR Induction"):
    resp = await client.post(
        "/templates",
        json={"name": name, "type": email_type, "subject": "Hi {{firstName}}", "body": "Join at {{scheduledTime}}"},
        headers=ADMIN,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _step(client, template_id, title, step_number=None):
    payload = {"department": "Engineering", "step_type": "HR_INDUCTION", "title": title, "email_template_id": template_id}
    if step_number is not None:
        payload["step_number"] = step_number
    resp = await client.post("/department-steps", json=payload, headers=ADMIN)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers.get("X-Request-ID")


async def test_template_placeholders_are_extracted(client):
    template = await _template(client)
    assert template["placeholders"] == ["firstName", "scheduledTime"]


async def test_step_without_template_is_rejected(client):
    resp = await client.post(
        "/department-steps",
        json={"department": "Engineering", "step_type": "HR_INDUCTION", "title": "HR Induction"},
        headers=ADMIN,
    )
    assert resp.status_code == 422
    listing = await client.get("/department-steps/Engineering", headers=ADMIN)
    assert listing.json() == []


async def test_viewer_cannot_edit_steps(client):
    template = await _template(client)
    resp = await client.post(
        "/department-steps",
        json={"department": "Engineering", "step_type": "HR_INDUCTION", "title": "x", "email_template_id": template["template_id"]},
        headers=VIEWER,
    )
    assert resp.status_code == 403


async def test_reorder_and_move(client):
    template = await _template(client)
    a = await _step(client, template["template_id"], "A")
    b = await _step(client, template["template_id"], "B")
    c = await _step(client, template["template_id"], "C")

    resp = await client.post("/department-steps/reorder", json={"step_id_a": a["step_id"], "step_id_b": b["step_id"]}, headers=ADMIN)
    assert resp.status_code == 200
    assert [s["title"] for s in resp.json()] == ["B", "A", "C"]

    resp = await client.post(f"/department-steps/{c['step_id']}/move", json={"direction": "down"}, headers=ADMIN)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "step_move_out_of_range"

    resp = await client.post("/department-steps/reorder", json={"step_id_a": b["step_id"], "step_id_b": c["step_id"]}, headers=ADMIN)
    assert resp.json()["detail"] == "steps_not_adjacent"


async def test_template_in_use_cannot_be_deleted(client):
    template = await _template(client)
    step = await _step(client, template["template_id"], "A")
    resp = await client.delete(f"/templates/{template['template_id']}", headers=ADMIN)
    assert resp.status_code == 409
    assert resp.json()["detail"] == {"code": "template_in_use_by_active_step", "step_ids": [step["step_id"]]}


async def test_batch_schedule_form_and_workflow(client):
    template = await _template(client)
    await _step(client, template["template_id"], "HR Induction")
    ids = []
    for name, email in (("Asha", "asha@example.com"), ("Bala", None)):
        resp = await client.post(
            "/candidates",
            json={"first_name": name, "email": email, "department": "Engineering", "expected_joining_date": "2024-06-10"},
            headers=ADMIN,
        )
        assert resp.status_code == 201, resp.text
        ids.append(resp.json()["candidate_id"])

    resp = await client.post(
        "/candidates/batch/schedule",
        data={"candidate_ids": json.dumps(ids), "step_number": "1", "mode": "computed"},
        headers=ADMIN,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert (body["succeeded"], body["failed"]) == (1, 1)
    assert body["results"][1]["error"] == "missing_email"

    workflow = (await client.get(f"/candidates/{ids[0]}/workflow", headers=ADMIN)).json()
    assert workflow[0]["state"] == "scheduled"
    assert workflow[0]["scheduled_for"] == "2024-06-10T09:00:00"

    resp = await client.post(f"/candidates/{ids[0]}/steps/1/complete", json={}, headers=ADMIN)
    assert resp.status_code == 200, resp.text
    assert resp.json()["detail"] == "email_already_sent"


async def test_batch_schedule_rejects_unknown_step(client):
    resp = await client.post(
        "/candidates",
        json={"first_name": "Asha", "email": "asha@example.com", "department": "Engineering"},
        headers=ADMIN,
    )
    candidate_id = resp.json()["candidate_id"]
    resp = await client.post(
        "/candidates/batch/schedule",
        data={"candidate_ids": str(candidate_id), "step_number": "4"},
        headers=ADMIN,
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "step_not_found"


async def test_company_settings_roundtrip(client):
    resp = await client.put("/settings/company", json={"company_name": "Acme Labs"}, headers=ADMIN)
    assert resp.status_code == 200
    assert (await client.get("/settings/company", headers=VIEWER)).json()["company_name"] == "Acme Labs"


async def test_null_for_required_column_is_rejected_before_writing(client):
    template = await _template(client)
    step = await _step(client, template["template_id"], "HR Induction")

    resp = await client.put(f"/department-steps/{step['step_id']}", json={"due_date_offset": None}, headers=ADMIN)
    assert resp.status_code == 422
    assert "due_date_offset_cannot_be_null" in resp.text

    resp = await client.put(f"/templates/{template['template_id']}", json={"subject": None}, headers=ADMIN)
    assert resp.status_code == 422
    assert "subject_cannot_be_null" in resp.text

    listing = (await client.get("/department-steps/Engineering", headers=ADMIN)).json()
    assert listing[0]["due_date_offset"] == 0


async def test_signed_offer_stops_the_reminder(client):
    template = await _template(client, "OFFER_REMINDER", name="Offer Reminder")
    resp = await client.post(
        "/department-steps",
        json={
            "department": "Engineering",
            "step_type": "OFFER_REMINDER",
            "title": "Offer Reminder",
            "scheduling_method": "offer_letter",
            "due_date_offset": 3,
            "email_template_id": template["template_id"],
        },
        headers=ADMIN,
    )
    assert resp.status_code == 201, resp.text
    resp = await client.post(
        "/candidates",
        json={"first_name": "Asha", "email": "asha@example.com", "department": "Engineering"},
        headers=ADMIN,
    )
    candidate_id = resp.json()["candidate_id"]

    resp = await client.put(f"/candidates/{candidate_id}", json={"status": "OFFER_SIGNED"}, headers=ADMIN)
    assert resp.status_code == 200, resp.text
    assert resp.json()["offer_signed_at"] is not None

    resp = await client.post(f"/candidates/{candidate_id}/steps/1/complete", json={}, headers=ADMIN)
    assert resp.status_code == 200, resp.text
    assert (resp.json()["status"], resp.json()["detail"]) == ("skipped", "offer_already_signed")
