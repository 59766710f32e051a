from fastapi.testclient import TestClient

from signoff.api.app import create_app
from signoff.core.workflow import Role


def _headers(profile_ids, role: Role) -> dict[str, str]:
    return {"X-Actor-Id": profile_ids[role]}


def _submit(client: TestClient, profile_ids, draft_payload, signature_data_url, **overrides):
    return client.post(
        "/api/appraisals",
        json={**draft_payload(**overrides), "signature": signature_data_url},
        headers=_headers(profile_ids, Role.APPRAISER),
    )


def test_health_and_questions() -> None:
    client = TestClient(create_app())
    assert client.get("/health").json() == {"status": "ok"}

    catalog = client.get("/api/questions").json()
    assert catalog["version"] == "2024.1"
    assert sum(len(section["questions"]) for section in catalog["sections"]) == 14


def test_profile_create_list_and_session(profile_ids) -> None:
    client = TestClient(create_app())
    created = client.post("/api/profiles", json={"full_name": "Ngozi Umeh", "role": "docs"})
    assert created.status_code == 200
    body = created.json()
    assert body["role_name"] == "Docs"

    listing = client.get("/api/profiles").json()
    assert any(item["id"] == body["id"] for item in listing)

    anonymous = client.get("/api/session").json()
    assert anonymous == {"authenticated": False, "actor_id": None, "role": None, "role_name": None}

    session = client.get("/api/session", headers={"X-Actor-Id": body["id"]}).json()
    assert session["authenticated"] is True
    assert session["role"] == "docs"

    unknown = client.get("/api/session", headers={"X-Actor-Id": "nobody"})
    assert unknown.status_code == 403
    assert unknown.json()["errors"][0]["code"] == "PERMISSION_DENIED"


def test_score_preview() -> None:
    client = TestClient(create_app())
    response = client.post("/api/scores/preview", json={"scores": {"q1": 0, "q2": 4}})
    assert response.json() == {"average": 2.0, "percentage": 20.0, "rating": "Poor"}


def test_submit_approve_and_detail_over_http(profile_ids, draft_payload, signature_data_url) -> None:
    client = TestClient(create_app())
    submitted = _submit(client, profile_ids, draft_payload, signature_data_url)
    assert submitted.status_code == 200
    appraisal = submitted.json()
    assert appraisal["status"] == "PENDING_HR_APPROVAL"

    artifact = client.get(appraisal["hod_signature_url"])
    assert artifact.status_code == 200

    permissions = client.get(
        f"/api/appraisals/{appraisal['id']}/permissions", headers=_headers(profile_ids, Role.HR)
    ).json()
    assert permissions == {
        "appraisal_id": appraisal["id"],
        "status": "PENDING_HR_APPROVAL",
        "awaiting_role": "hr",
        "can_act": True,
    }

    approved = client.post(
        f"/api/appraisals/{appraisal['id']}/approve",
        json={"signature": signature_data_url, "comment": "Checked"},
        headers=_headers(profile_ids, Role.HR),
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "PENDING_DOCS_APPROVAL"

    detail = client.get(f"/api/appraisals/{appraisal['id']}", headers=_headers(profile_ids, Role.DOCS)).json()
    assert [item["signer_name"] for item in detail["signatures"]] == ["Demo HR Officer"]
    assert detail["signatures"][0]["comment"] == "Checked"


def test_wrong_role_is_forbidden_and_nothing_is_written(profile_ids, draft_payload, signature_data_url) -> None:
    client = TestClient(create_app())
    appraisal = _submit(client, profile_ids, draft_payload, signature_data_url).json()

    response = client.post(
        f"/api/appraisals/{appraisal['id']}/approve",
        json={"signature": signature_data_url},
        headers=_headers(profile_ids, Role.MD),
    )
    assert response.status_code == 403
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "PERMISSION_DENIED"

    detail = client.get(f"/api/appraisals/{appraisal['id']}", headers=_headers(profile_ids, Role.MD)).json()
    assert detail["status"] == "PENDING_HR_APPROVAL"
    assert detail["signatures"] == []


def test_validation_and_auth_errors(profile_ids, draft_payload, signature_data_url) -> None:
    client = TestClient(create_app())

    missing_signature = client.post(
        "/api/appraisals",
        json={**draft_payload(), "signature": ""},
        headers=_headers(profile_ids, Role.APPRAISER),
    )
    assert missing_signature.status_code == 422
    assert missing_signature.json()["errors"][0]["msg"] == "HOD signature is required."

    anonymous = client.post("/api/appraisals", json={**draft_payload(), "signature": signature_data_url})
    assert anonymous.status_code == 403

    assert client.get("/api/appraisals/nope", headers=_headers(profile_ids, Role.HR)).status_code == 404
    assert client.get("/api/appraisals/nope/permissions").status_code == 404


def test_list_and_department_summary(profile_ids, draft_payload, signature_data_url) -> None:
    client = TestClient(create_app())
    _submit(client, profile_ids, draft_payload, signature_data_url)
    _submit(client, profile_ids, draft_payload, signature_data_url, employee_name="Femi Bello", department="ICT")

    listing = client.get(
        "/api/appraisals", params={"department": "ICT"}, headers=_headers(profile_ids, Role.DOCS)
    ).json()
    assert [row["employee_name"] for row in listing] == ["Femi Bello"]

    summary = client.get("/api/departments/LAB/summary", headers=_headers(profile_ids, Role.CHAIRMAN))
    assert summary.status_code == 200
    assert summary.json()["count"] == 1
    assert summary.json()["rows"][0]["overall_score"] == "70.00%"

    denied = client.get("/api/departments/LAB/summary", headers=_headers(profile_ids, Role.DOCS))
    assert denied.status_code == 403
