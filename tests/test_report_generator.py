import asyncio
import json
import uuid
from datetime import date, datetime, timedelta

import pytest

from welltrack.models.health import HealthMetricsHistory
from welltrack.models.tracking import DailyFoodHistory, FoodEntryCreate, SleepRecordCreate
from welltrack.models.user import UserCreate
from welltrack.services.insights import FALLBACK_SUMMARY, NutritionGuidance
from welltrack.services.report_generator import ReportGenerator, _trend
from welltrack.services.tracking import TrackingService

from tests.test_health_calculator import make_metrics


@pytest.fixture
def generator(db, ai):
    return ReportGenerator(db=db, ai=ai)


def history_entry(recorded_at, **values):
    data = dict(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        height=170,
        weight=65,
        activity_level="moderate",
        recorded_at=recorded_at,
    )
    data.update(values)
    return HealthMetricsHistory(**data)


def test_trend_rules():
    assert _trend([120]) == "stable"
    assert _trend([120, 121]) == "stable"
    assert _trend([130, 120]) == "improving"
    assert _trend([120, 130]) == "worsening"
    assert _trend([90, 75], target=70) == "improving"
    assert _trend([72, 85], target=70) == "worsening"


def test_generate_without_data_uses_fallbacks(generator, user):
    report = asyncio.run(generator.generate(user.id))

    assert report.title.startswith("Health Report - ")
    assert report.health_score == 5
    assert report.bmi is None
    assert report.vital_signs == []
    assert report.narrative_summary == FALLBACK_SUMMARY
    assert report.ai_generated.summary is False
    assert report.ai_generated.predictions is False
    assert report.ai_generated.nutrition_advice is False
    assert report.nutrition_advice.summary.startswith("No food has been logged")
    assert len(report.nutrition_trends.labels) == 7
    assert report.nutrition_trends.calories == [0] * 7
    assert report.activity_data["summary"]["workouts"] == 0
    assert len(report.activity_data["weekly_chart"]) == 7


def test_generate_with_data_and_ai(generator, db, ai, provider, user, metrics_payload):
    tracking = TrackingService(db=db, ai=ai)
    tracking.record_health_metrics(user, metrics_payload)
    yesterday = date.today() - timedelta(days=1)
    start = datetime.combine(yesterday, datetime.min.time()).replace(hour=22)
    tracking.create_sleep_record(user.id, SleepRecordCreate(
        date=yesterday, start_time=start, end_time=start + timedelta(hours=8), quality="good"
    ))
    tracking.create_food_entry(user.id, FoodEntryCreate(
        food_name="Poha", calories=2000, protein_g=100, carbs_g=250, fats_g=60,
        meal_type="Breakfast", recorded_at=datetime.now() - timedelta(hours=2),
    ))

    provider.script(
        "Your health is on track.",
        json.dumps([
            {"title": "Heart", "prediction": "Stable", "recommendation": "Keep walking", "timeframe": "Long-term"},
        ]),
        json.dumps({
            "calorieTarget": 2100,
            "proteinTarget": 100,
            "carbsTarget": 250,
            "fatsTarget": 70,
            "recommendations": ["Add more vegetables"],
        }),
    )

    report = asyncio.run(generator.generate(user.id))

    assert report.health_score == 80
    assert report.bmi == 22.5
    assert report.risk_level == "Low"
    assert report.narrative_summary == "Your health is on track."
    assert report.ai_generated.summary is True
    assert report.ai_generated.predictions is True
    assert report.ai_generated.nutrition_advice is True
    assert report.ai_generated.vital_signs is False
    assert [p.title for p in report.predictions] == ["Heart"]
    assert "close to" in report.nutrition_advice.summary
    assert report.nutrition_data["consumed"] == 2000
    assert report.nutrition_data["target"] == 2100
    assert report.nutrition_data["meals"][0]["items"] == "Poha"
    assert [v.title for v in report.vital_signs] == [
        "Blood Pressure",
        "Heart Rate",
        "Body Temperature",
        "Respiratory Rate",
        "Weight",
    ]
    assert report.vital_signs[0].current == "115/75"
    assert report.vital_signs[0].last_measured == "today"
    assert report.health_metrics.height == 170


def test_get_or_generate_reuses_latest(generator, user):
    first = asyncio.run(generator.get_or_generate(user.id))
    assert asyncio.run(generator.get_or_generate(user.id)).id == first.id
    assert asyncio.run(generator.get_or_generate(user.id, regenerate=True)).id != first.id


def test_build_vital_signs_trends_from_history():
    today = date(2026, 10, 10)
    history = [
        history_entry(datetime(2026, 10, 9, 8), blood_pressure="120/80", heart_rate=72, weight=64, temperature=37.0),
        history_entry(datetime(2026, 9, 1, 8), blood_pressure="140/90", heart_rate=90, weight=70, temperature=37.8),
    ]
    vitals = ReportGenerator.build_vital_signs(make_metrics(), history, today)
    by_title = {v.title: v for v in vitals}

    assert by_title["Blood Pressure"].trend == "improving"
    assert [p.value for p in by_title["Blood Pressure"].chart_data] == [140, 120]
    assert by_title["Heart Rate"].trend == "improving"
    assert by_title["Heart Rate"].current == "68 bpm"
    assert by_title["Weight"].trend == "improving"
    assert by_title["Body Temperature"].trend == "improving"
    assert by_title["Respiratory Rate"].current == "N/A"
    assert by_title["Weight"].last_measured == "yesterday"


def test_build_nutrition_advice_comparisons():
    guidance = NutritionGuidance(
        calorie_target=2000, protein_target=100, carbs_target=250, fats_target=65, recommendations=["x"]
    )
    low = {"calories": 1500, "protein_g": 60}
    high = {"calories": 2500, "protein_g": 120}
    assert "below" in ReportGenerator.build_nutrition_advice(low, guidance).summary
    assert "above" in ReportGenerator.build_nutrition_advice(high, guidance).summary
    assert ReportGenerator.build_nutrition_advice(None, guidance).recommendations == ["x"]


def test_nutrition_trends_average_logged_days():
    user_id = uuid.uuid4()

    def day(d, calories, count=1):
        return DailyFoodHistory(
            id=uuid.uuid4(), user_id=user_id, date=d,
            total_calories=calories, total_protein=50, entry_count=count,
        )

    history = [
        day(date(2026, 10, 1), 1800),
        day(date(2026, 10, 2), 2200),
        day(date(2026, 10, 3), 0, count=0),
        day(date(2026, 8, 15), 1500),
        day(date(2025, 1, 1), 3000),
    ]
    trends = ReportGenerator.nutrition_trends(history, date(2026, 10, 10))

    assert trends.labels == ["Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct"]
    assert trends.calories == [0, 0, 0, 0, 1500, 0, 2000]
    assert trends.protein[-1] == 50


def test_historical_trends(generator, db, fake_client, user):
    start = datetime(2026, 10, 4, 23)
    db.create_sleep_record(user.id, {
        "date": "2026-10-04",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=8)).isoformat(),
        "duration": 480,
        "quality": "good",
    })
    db.create_exercise_log(user.id, {
        "name": "Run", "category": "cardio", "sets": 1, "reps": 1,
        "calories_burned": 320, "date": datetime(2026, 10, 5, 7).isoformat(),
    })
    fake_client.tables.setdefault("health_metrics_history", []).append({
        "id": str(uuid.uuid4()),
        "user_id": str(user.id),
        "height": 170,
        "weight": 66,
        "heart_rate": 70,
        "activity_level": "moderate",
        "recorded_at": datetime(2026, 9, 12, 8).isoformat(),
    })

    trends = generator.historical_trends(user.id, today=date(2026, 10, 10))

    assert len(trends.labels) == 7
    assert trends.sleep_hours[-1] == 8.0
    assert trends.sleep_quality[-1] == 3.0
    assert trends.sleep_hours[0] == 0
    assert trends.calories_burned[-1] == 320
    assert trends.weight[-2] == 66
    assert trends.heart_rate[-2] == 70
    assert trends.weight[-1] is None


def test_generate_scheduled_skips_recent_and_counts_errors(generator, db, user, monkeypatch):
    second = db.create_user(UserCreate(name="Ravi", email="ravi@example.com"))
    third = db.create_user(UserCreate(name="Meera", email="meera@example.com"))
    asyncio.run(generator.generate(user.id))

    real_generate = generator.generate

    async def flaky(user_id, title=None):
        if user_id == third.id:
            raise RuntimeError("database unavailable")
        return await real_generate(user_id, title=title)

    monkeypatch.setattr(generator, "generate", flaky)
    result = asyncio.run(generator.generate_scheduled("weekly"))

    assert result.processed == 1
    assert result.errors == 1
    assert result.message == "Generated 1 reports, with 1 errors"
    assert db.get_latest_health_report(second.id).title == "Weekly Health Report"
    assert len(db.get_health_reports(user.id)) == 1


def test_temperature_trend_moves_against_baseline():
    today = date(2026, 10, 10)

    def temperature_trend(older, newer):
        history = [
            history_entry(datetime(2026, 10, 9, 8), temperature=newer),
            history_entry(datetime(2026, 9, 1, 8), temperature=older),
        ]
        vitals = ReportGenerator.build_vital_signs(make_metrics(), history, today)
        return next(v.trend for v in vitals if v.title == "Body Temperature")

    assert temperature_trend(36.9, 38.2) == "worsening"
    assert temperature_trend(38.2, 36.9) == "improving"
    assert temperature_trend(36.8, 36.9) == "stable"
