import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from welltrack.api import reports as reports_api
from welltrack.api.deps import get_db, get_health_ai, get_mailer
from welltrack.config import Settings, get_settings
from welltrack.main import app
from welltrack.models.tracking import naive_local
from welltrack.notifications.email import EmailDeliveryError, ReportMailer


@pytest.fixture
def settings():
    return Settings(
        supabase_url="http://localhost:54321",
        supabase_key="test-key",
        ai_provider="disabled",
        app_base_url="https://welltrack.example/",
        cron_api_key="cron-secret",
        smtp_host="smtp.example.com",
    )


@pytest.fixture
def outbox():
    return []


@pytest.fixture
def client(db, ai, settings, outbox):
    mailer = ReportMailer(settings=settings)
    mailer._send = outbox.append

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_health_ai] = lambda: ai
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers(user):
    return {"X-User-Id": str(user.id)}


@pytest.fixture
def metrics_json(metrics_payload):
    return metrics_payload.model_dump(mode="json")


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_requests_without_identity_are_rejected(client):
    assert client.get("/api/v1/users/me").status_code == 401
    assert client.get("/api/v1/sleep", headers={"X-User-Id": "not-a-uuid"}).status_code == 401
    assert client.get("/api/v1/users/me", headers={"X-User-Id": str(uuid.uuid4())}).status_code == 404


def test_register_and_profile(client):
    response = client.post("/api/v1/users", json={"name": "Kiran", "email": "Kiran@Example.com"})
    assert response.status_code == 201
    user = response.json()
    assert user["email"] == "kiran@example.com"

    duplicate = client.post("/api/v1/users", json={"name": "Other", "email": "KIRAN@example.com"})
    assert duplicate.status_code == 409

    headers = {"X-User-Id": user["id"]}
    updated = client.patch("/api/v1/users/me", json={"name": "Kiran S"}, headers=headers)
    assert updated.json()["name"] == "Kiran S"
    assert client.get("/api/v1/users/me", headers=headers).json()["name"] == "Kiran S"


def test_health_metrics_flow(client, headers, metrics_json):
    assert client.get("/api/v1/health/latest", headers=headers).status_code == 404

    response = client.post("/api/v1/health/metrics", json=metrics_json, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["history_record_count"] == 1
    assert body["initial_health_data_submitted"] is True

    latest = client.get("/api/v1/health/latest", headers=headers).json()
    assert latest["metrics"]["weight"] == 65
    assert latest["has_historical_data"] is False
    assert len(client.get("/api/v1/health/history", headers=headers).json()) == 1

    assert client.get("/api/v1/health/insights?type=horoscope", headers=headers).status_code == 400
    insight = client.get("/api/v1/health/insights?type=lifestyle", headers=headers).json()
    assert insight["type"] == "lifestyle"
    assert insight["insights"]

    recommendations = client.get("/api/v1/health/recommendations", headers=headers).json()
    assert len(recommendations["recommendations"]) >= 4


def test_sleep_routes(client, headers):
    bad = {
        "date": "2026-10-01",
        "start_time": "2026-10-01T23:00:00",
        "end_time": "2026-10-01T22:00:00",
        "quality": "good",
    }
    assert client.post("/api/v1/sleep", json=bad, headers=headers).status_code == 400

    good = dict(bad, end_time="2026-10-02T06:30:00")
    created = client.post("/api/v1/sleep", json=good, headers=headers)
    assert created.status_code == 201
    record = created.json()
    assert record["duration"] == 450

    assert client.get(f"/api/v1/sleep/{record['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/v1/sleep/{uuid.uuid4()}", headers=headers).status_code == 404

    deleted = client.delete(f"/api/v1/sleep/{record['id']}", headers=headers)
    assert deleted.json()["message"] == "Sleep record deleted successfully"


def test_sleep_accepts_mixed_offsets(client, headers):
    start = datetime(2026, 10, 1, 23, tzinfo=timezone.utc)
    end = naive_local(start) + timedelta(hours=7, minutes=30)
    payload = {
        "date": "2026-10-01",
        "start_time": "2026-10-01T23:00:00Z",
        "end_time": end.isoformat(),
        "quality": "good",
    }
    created = client.post("/api/v1/sleep", json=payload, headers=headers)
    assert created.status_code == 201
    assert created.json()["duration"] == 450

    record_id = created.json()["id"]
    updated = client.put(
        f"/api/v1/sleep/{record_id}", json={"end_time": "2026-10-02T07:00:00Z"}, headers=headers
    )
    assert updated.status_code == 200
    assert updated.json()["duration"] == 480


def test_food_routes(client, headers):
    entry = {
        "food_name": "Masala Dosa",
        "calories": 350,
        "protein_g": 8,
        "carbs_g": 55,
        "fats_g": 11,
        "meal_type": "Breakfast",
    }
    created = client.post("/api/v1/food", json=entry, headers=headers)
    assert created.status_code == 201

    summary = client.get("/api/v1/food/summary?period=today", headers=headers).json()
    assert summary["total_calories"] == 350
    assert client.get("/api/v1/food/summary?period=decade", headers=headers).status_code == 400

    analysis = client.post("/api/v1/food/analyze", json={"description": "a bowl of oatmeal"}, headers=headers)
    assert analysis.json()["ai_generated"] is False
    assert analysis.json()["nutrition"]["food_name"] == "a bowl of oatmeal"

    missing = client.put(f"/api/v1/food/{uuid.uuid4()}", json={"calories": 100}, headers=headers)
    assert missing.status_code == 404


def test_exercise_routes(client, headers):
    logged = client.post(
        "/api/v1/exercise/log",
        json={"name": "Push-ups", "category": "chest", "sets": 3, "reps": 10},
        headers=headers,
    )
    assert logged.status_code == 201
    assert logged.json()["calories_burned"] == 15.0

    summary = client.get("/api/v1/exercise/log", headers=headers).json()
    assert summary["stats"]["completed"] == 1

    per_rep = client.post(
        "/api/v1/exercise/calories-per-rep", json={"exercise_name": "Burpees"}, headers=headers
    ).json()
    assert per_rep == {"calories_per_rep": 0.5, "note": "Used default value due to invalid AI response"}

    assert client.get("/api/v1/exercise/plan?environment=beach", headers=headers).status_code == 422


def test_insight_kinds_are_validated(client, headers):
    assert client.get("/api/v1/insights/tarot", headers=headers).status_code == 400
    assert client.get("/api/v1/insights/advanced/tarot", headers=headers).status_code == 400
    assert client.get("/api/v1/insights/nutrition/tarot", headers=headers).status_code == 400

    sleep = client.get("/api/v1/insights/sleep", headers=headers)
    assert sleep.status_code == 200


def test_report_share_pdf_and_email(client, headers, metrics_json, outbox):
    client.post("/api/v1/health/metrics", json=metrics_json, headers=headers)

    report = client.get("/api/v1/reports", headers=headers).json()
    assert report["health_score"] > 0
    assert client.get("/api/v1/reports", headers=headers).json()["id"] == report["id"]

    share = client.post("/api/v1/reports/share", json={"report_id": report["id"]}, headers=headers).json()
    assert share["share_link"] == f"https://welltrack.example/shared-report/{report['id']}"

    shared = client.get(f"/api/v1/reports/shared/{report['id']}").json()
    assert shared["id"] == report["id"]
    assert "user_id" not in shared
    assert "pdf_url" not in shared

    pdf = client.get(f"/api/v1/reports/{report['id']}/pdf", headers=headers)
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.headers["content-disposition"].startswith("attachment; filename=\"WellTrack-Health-Report-")
    assert pdf.content.startswith(b"%PDF")
    stored = client.get(f"/api/v1/reports/{report['id']}", headers=headers).json()
    assert stored["pdf_url"] == f"/api/v1/reports/{report['id']}/pdf"

    emailed = client.post(
        "/api/v1/reports/email",
        json={"report_id": report["id"], "email": "asha@example.com"},
        headers=headers,
    )
    assert emailed.json() == {"success": True, "message": "Report sent successfully"}
    assert outbox[0]["To"] == "asha@example.com"


def test_report_email_failure_is_bad_gateway(client, headers, metrics_json):
    def broken():
        mailer = ReportMailer(settings=Settings(supabase_url="http://x", supabase_key="k"))

        async def fail(*args, **kwargs):
            raise EmailDeliveryError("SMTP settings not configured")

        mailer.send_report = fail
        return mailer

    app.dependency_overrides[get_mailer] = broken
    report = client.get("/api/v1/reports", headers=headers).json()
    response = client.post(
        "/api/v1/reports/email",
        json={"report_id": report["id"], "email": "asha@example.com"},
        headers=headers,
    )
    assert response.status_code == 502


def test_malformed_addresses_are_rejected(client, headers, outbox):
    assert client.post("/api/v1/users", json={"name": "Kiran", "email": "not-an-email"}).status_code == 422
    assert client.patch("/api/v1/users/me", json={"email": "kiran@"}, headers=headers).status_code == 422

    report = client.get("/api/v1/reports", headers=headers).json()
    response = client.post(
        "/api/v1/reports/email",
        json={"report_id": report["id"], "email": "a@b.com\nBcc: evil@x.com"},
        headers=headers,
    )
    assert response.status_code == 422
    assert outbox == []


def test_other_users_cannot_read_reports(client, headers, db):
    report = client.get("/api/v1/reports", headers=headers).json()
    stranger = {"X-User-Id": str(uuid.uuid4())}
    assert client.get(f"/api/v1/reports/{report['id']}", headers=stranger).status_code == 404
    assert client.delete(f"/api/v1/reports/{report['id']}", headers=stranger).status_code == 404
    assert client.delete(f"/api/v1/reports/{report['id']}", headers=headers).status_code == 200


def test_cron_requires_bearer_key(client, user):
    assert client.post("/api/v1/reports/cron?type=weekly").status_code == 401
    wrong = {"Authorization": "Bearer nope"}
    assert client.post("/api/v1/reports/cron?type=weekly", headers=wrong).status_code == 401

    auth = {"Authorization": "Bearer cron-secret"}
    result = client.post("/api/v1/reports/cron?type=weekly", headers=auth).json()
    assert result["processed"] == 1
    assert result["errors"] == 0

    again = client.post("/api/v1/reports/cron?type=weekly", headers=auth).json()
    assert again["processed"] == 0
    assert client.post("/api/v1/reports/cron?type=daily", headers=auth).status_code == 422


def test_diet_plan_routes(client, headers, metrics_json):
    assert client.get("/api/v1/diet-plan/weekly", headers=headers).status_code == 404
    assert client.post("/api/v1/diet-plan", json={}, headers=headers).status_code == 404

    client.post("/api/v1/health/metrics", json=metrics_json, headers=headers)
    created = client.post("/api/v1/diet-plan", json={"diet_type": "vegetarian"}, headers=headers)
    assert created.status_code == 201
    plan = created.json()
    assert plan["ai_generated"] is False

    assert client.get("/api/v1/diet-plan", headers=headers).json()["id"] == plan["id"]

    weekly = client.get("/api/v1/diet-plan/weekly?cuisineType=indian", headers=headers).json()
    assert weekly["cuisine_type"] == "indian"
    assert len(weekly["weekly_plan_data"]) == 7

    assert client.delete(f"/api/v1/diet-plan/{plan['id']}", headers=headers).status_code == 200
    assert client.get("/api/v1/diet-plan", headers=headers).status_code == 404


def test_health_card_route(client, headers, metrics_json):
    missing = client.get("/api/v1/health/card", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["detail"].startswith("Health card data is incomplete")

    metrics_json.update(blood_type="O+", allergies="Peanuts, dust")
    client.post("/api/v1/health/metrics", json=metrics_json, headers=headers)
    card = client.get("/api/v1/health/card", headers=headers).json()
    assert card["personal_info"]["blood_type"] == "O+"
    assert card["medical_conditions"]["allergies"] == ["Peanuts", "dust"]
    assert card["vital_signs"]["heart_rate"] == 68


def test_saved_exercise_plans(client, headers):
    assert client.get("/api/v1/exercise/plans", headers=headers).json() == []
    assert client.post(
        "/api/v1/exercise/plans", json={"environment": "beach", "plan": "Swim"}, headers=headers
    ).status_code == 422

    saved = client.post(
        "/api/v1/exercise/plans", json={"environment": "gym", "plan": "## Day 1: Push"}, headers=headers
    )
    assert saved.status_code == 200
    client.post("/api/v1/exercise/plans", json={"environment": "gym", "plan": "## Day 1: Pull"}, headers=headers)

    plans = client.get("/api/v1/exercise/plans", headers=headers).json()
    assert len(plans) == 1
    assert plans[0]["id"] == saved.json()["id"]
    assert plans[0]["plan"] == "## Day 1: Pull"


def test_diet_plan_pdf_download(client, headers, metrics_json):
    client.post("/api/v1/health/metrics", json=metrics_json, headers=headers)
    plan = client.post("/api/v1/diet-plan", json={}, headers=headers).json()
    weekly = client.get("/api/v1/diet-plan/weekly", headers=headers).json()

    pdf = client.get(f"/api/v1/diet-plan/{weekly['id']}/pdf", headers=headers)
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.headers["content-disposition"] == (
        f'attachment; filename="weekly-meal-plan-{weekly["week_start_date"]}.pdf"'
    )
    assert pdf.content.startswith(b"%PDF")

    assert client.get(f"/api/v1/diet-plan/{plan['id']}/pdf", headers=headers).status_code == 200
    stranger = {"X-User-Id": str(uuid.uuid4())}
    assert client.get(f"/api/v1/diet-plan/{plan['id']}/pdf", headers=stranger).status_code == 404


def test_report_pdf_renders_off_the_event_loop(client, headers, monkeypatch):
    rendered_on_loop = []

    def fake_pdf(report, description=None):
        try:
            asyncio.get_running_loop()
            rendered_on_loop.append(True)
        except RuntimeError:
            rendered_on_loop.append(False)
        return b"%PDF-1.4 stub"

    monkeypatch.setattr(reports_api, "build_report_pdf", fake_pdf)
    report = client.get("/api/v1/reports", headers=headers).json()

    pdf = client.get(f"/api/v1/reports/{report['id']}/pdf", headers=headers)
    assert pdf.content == b"%PDF-1.4 stub"
    client.post(
        "/api/v1/reports/email",
        json={"report_id": report["id"], "email": "asha@example.com"},
        headers=headers,
    )
    assert rendered_on_loop == [False, False]
