import asyncio
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from welltrack.models.tracking import (
    ExerciseLogCreate,
    ExercisePlanSave,
    FoodEntryCreate,
    FoodEntryUpdate,
    SleepRecordCreate,
    SleepRecordUpdate,
    naive_local,
)
from welltrack.services.tracking import TrackingService, months_before, split_list


@pytest.fixture
def tracking(db, ai):
    return TrackingService(db=db, ai=ai)


def sleep_payload(night, quality="good", hours=8):
    start = datetime.combine(night, datetime.min.time()).replace(hour=23)
    return SleepRecordCreate(
        date=night,
        start_time=start,
        end_time=start + timedelta(hours=hours),
        quality=quality,
    )


def food(name, calories, when, protein=10, carbs=20, fats=5):
    return FoodEntryCreate(
        food_name=name,
        calories=calories,
        protein_g=protein,
        carbs_g=carbs,
        fats_g=fats,
        recorded_at=when,
    )


def test_months_before_clamps_to_month_end():
    assert months_before(datetime(2026, 3, 31, 9), 1) == datetime(2026, 2, 28, 9)
    assert months_before(datetime(2026, 1, 15), 1) == datetime(2025, 12, 15)
    assert months_before(datetime(2026, 10, 19), 12) == datetime(2025, 10, 19)


def test_record_health_metrics_tracks_submissions(tracking, db, user, metrics_payload):
    first = tracking.record_health_metrics(user, metrics_payload)
    assert first.history_entry.notes == "Health data from initial submission"
    assert first.history_record_count == 1

    user = db.get_user_by_id(user.id)
    assert user.initial_health_data_submitted is True
    assert user.metrics_update_count == 1

    second = tracking.record_health_metrics(user, metrics_payload.model_copy(update={"weight": 63}))
    assert second.history_entry.notes == "Health data from health form update"
    assert second.history_record_count == 2
    assert db.get_user_by_id(user.id).metrics_update_count == 2

    latest = tracking.latest_health_metrics(user.id)
    assert latest.metrics.weight == 63
    assert latest.has_historical_data is True


def test_latest_health_metrics_none_without_data(tracking, user):
    assert tracking.latest_health_metrics(user.id) is None


def test_sleep_duration_is_derived(tracking, user):
    record = tracking.create_sleep_record(user.id, sleep_payload(date(2026, 10, 1), hours=7.5))
    assert record.duration == 450

    updated = tracking.update_sleep_record(
        user.id,
        record.id,
        SleepRecordUpdate(end_time=record.start_time + timedelta(hours=6)),
    )
    assert updated.duration == 360


def test_sleep_end_before_start_is_rejected(tracking, user):
    night = date(2026, 10, 1)
    start = datetime(2026, 10, 1, 23)
    payload = SleepRecordCreate(date=night, start_time=start, end_time=start, quality="poor")
    with pytest.raises(ValueError):
        tracking.create_sleep_record(user.id, payload)


def test_aware_times_are_stored_as_naive_local(tracking, user):
    start = datetime(2026, 10, 1, 23, tzinfo=timezone.utc)
    payload = SleepRecordCreate(
        date=date(2026, 10, 1),
        start_time=start,
        end_time=naive_local(start) + timedelta(hours=7),
        quality="good",
    )
    assert payload.start_time.tzinfo is None
    assert payload.start_time == start.astimezone().replace(tzinfo=None)

    record = tracking.create_sleep_record(user.id, payload)
    assert record.duration == 420

    updated = tracking.update_sleep_record(
        user.id, record.id, SleepRecordUpdate(end_time=start + timedelta(hours=8))
    )
    assert updated.duration == 480

    entry = tracking.create_food_entry(user.id, food("Upma", 300, start))
    assert entry.recorded_at == naive_local(start)
    assert FoodEntryUpdate(recorded_at=start).recorded_at.tzinfo is None


def test_update_missing_sleep_record_returns_none(tracking, user):
    record = tracking.create_sleep_record(user.id, sleep_payload(date(2026, 10, 1)))
    other = tracking.create_sleep_record(user.id, sleep_payload(date(2026, 10, 2)))
    tracking.db.delete_sleep_record(user.id, other.id)
    assert tracking.update_sleep_record(user.id, other.id, SleepRecordUpdate(quality="fair")) is None
    assert tracking.update_sleep_record(user.id, record.id, SleepRecordUpdate()) == record


def test_sleep_stats(tracking, user):
    today = date(2026, 10, 10)
    assert tracking.sleep_stats(user.id, today=today).total_records == 0

    tracking.create_sleep_record(user.id, sleep_payload(date(2026, 10, 8), "excellent", 8))
    tracking.create_sleep_record(user.id, sleep_payload(date(2026, 10, 9), "good", 7))
    tracking.create_sleep_record(user.id, sleep_payload(date(2026, 9, 1), "poor", 4))

    stats = tracking.sleep_stats(user.id, today=today)
    assert stats.total_records == 2
    assert stats.average_duration == 450
    assert stats.quality_breakdown == {"poor": 0, "fair": 0, "good": 1, "excellent": 1}
    assert stats.average_quality == "Excellent"
    assert stats.latest_sleep.date == date(2026, 10, 9)
    assert stats.streak == 2


def test_food_entry_sets_macro_percentages_and_daily_totals(tracking, db, user):
    entry = tracking.create_food_entry(user.id, food("Oats", 300, datetime(2026, 10, 5, 8), 30, 50, 10))
    assert entry.protein_percent == 29
    assert entry.carbs_percent == 49
    assert entry.fats_percent == 22

    tracking.create_food_entry(user.id, food("Dal", 250, datetime(2026, 10, 5, 13)))
    history = db.get_daily_history(user.id)
    assert len(history) == 1
    assert history[0].total_calories == 550
    assert history[0].entry_count == 2


def test_moving_food_entry_refreshes_both_days(tracking, db, user):
    entry = tracking.create_food_entry(user.id, food("Rice", 400, datetime(2026, 10, 5, 13)))
    tracking.update_food_entry(
        user.id, entry.id, FoodEntryUpdate(recorded_at=datetime(2026, 10, 6, 13), protein_g=20)
    )

    by_day = {d.date: d for d in db.get_daily_history(user.id)}
    assert by_day[date(2026, 10, 5)].entry_count == 0
    assert by_day[date(2026, 10, 5)].total_calories == 0
    assert by_day[date(2026, 10, 6)].total_calories == 400

    updated = db.get_food_entry(user.id, entry.id)
    assert updated.protein_percent == 39


def test_delete_food_entry_zeroes_the_day(tracking, db, user):
    entry = tracking.create_food_entry(user.id, food("Idli", 150, datetime(2026, 10, 5, 8)))
    assert tracking.delete_food_entry(user.id, entry.id) is True
    assert tracking.delete_food_entry(user.id, entry.id) is False

    history = db.get_daily_history(user.id)
    assert history[0].entry_count == 0


def test_food_summary_periods(tracking, user):
    now = datetime(2026, 10, 10, 20)
    tracking.create_food_entry(user.id, food("Toast", 200, datetime(2026, 10, 10, 8)))
    tracking.create_food_entry(user.id, food("Curry", 500, datetime(2026, 10, 6, 19)))
    tracking.create_food_entry(user.id, food("Pizza", 800, datetime(2026, 8, 1, 19)))

    today = tracking.food_summary(user.id, "today", now=now)
    assert today.entry_count == 1
    assert today.total_calories == 200
    assert today.daily_avg_calories == 0

    week = tracking.food_summary(user.id, "week", now=now)
    assert week.entry_count == 2
    assert week.daily_avg_calories == 100.0

    year = tracking.food_summary(user.id, "year", now=now)
    assert year.entry_count == 3

    with pytest.raises(ValueError):
        tracking.food_summary(user.id, "decade", now=now)


def test_food_stats_streaks_and_extremes(tracking, user):
    for day, calories in ((8, 1800), (9, 2200), (10, 1500), (3, 2500)):
        tracking.create_food_entry(user.id, food("Meal", calories, datetime(2026, 10, day, 12)))

    stats = tracking.food_stats(user.id, today=date(2026, 10, 10))
    assert stats.total_entries == 4
    assert stats.current_streak == 3
    assert stats.longest_streak == 3
    assert stats.highest_calorie_day.total_calories == 2500
    assert stats.lowest_calorie_day.total_calories == 1500
    assert stats.daily_averages["calories"] == 2000
    assert stats.top_foods[0].food_name == "Meal"
    assert stats.top_foods[0].count == 4


def test_log_exercise_estimates_calories(tracking, provider, user):
    provider.script("0.6")
    log = asyncio.run(tracking.log_exercise(
        user.id, ExerciseLogCreate(name="Squats", category="legs", sets=3, reps=10)
    ))
    assert log.calories_burned == 18.0

    log = asyncio.run(tracking.log_exercise(
        user.id, ExerciseLogCreate(name="Plank", sets=1, reps=4)
    ))
    assert log.calories_burned == 2.0

    log = asyncio.run(tracking.log_exercise(
        user.id, ExerciseLogCreate(name="Rows", sets=2, reps=5, calories_burned=12)
    ))
    assert log.calories_burned == 12
    assert provider.prompts and len(provider.prompts) == 2


def test_log_exercise_requires_calories_without_ai(db, user):
    service = TrackingService(db=db)
    with pytest.raises(ValueError):
        asyncio.run(service.log_exercise(user.id, ExerciseLogCreate(name="Lunges", sets=1, reps=1)))


def test_exercise_summary_counts_today(tracking, db, user):
    db.create_exercise_log(user.id, {
        "name": "Push-ups", "category": "chest", "sets": 3, "reps": 12,
        "calories_burned": 18, "date": datetime(2026, 10, 10, 7).isoformat(),
    })
    db.create_exercise_log(user.id, {
        "name": "Burpees", "category": "cardio", "sets": 2, "reps": 10,
        "calories_burned": 20, "date": datetime(2026, 10, 9, 7).isoformat(),
    })

    summary = tracking.exercise_summary(user.id, today=date(2026, 10, 10))
    assert summary.stats.completed == 1
    assert summary.stats.total_sets == 3
    assert summary.stats.total_reps == 12
    assert summary.stats.total_calories == 18
    assert [log.name for log in summary.logs] == ["Push-ups", "Burpees"]


def test_split_list():
    assert split_list("Peanuts, penicillin;\nlatex") == ["Peanuts", "penicillin", "latex"]
    assert split_list("None") == []
    assert split_list(None) == []


def test_health_card_from_latest_metrics(tracking, db, user, metrics_payload):
    assert tracking.health_card(user) is None

    payload = metrics_payload.model_copy(update={
        "emergency_contact": "Ravi Rao",
        "emergency_phone": "+91 98765 43210",
        "allergies": "Peanuts, penicillin",
        "medications": "None",
        "surgeries": "Appendectomy",
    })
    tracking.record_health_metrics(user, payload)
    card = tracking.health_card(db.get_user_by_id(user.id))

    assert card.personal_info.full_name == "Asha Rao"
    assert card.personal_info.email == user.email
    assert card.personal_info.blood_type == "Unknown"
    assert card.personal_info.emergency_contact == "Ravi Rao"
    assert card.medical_conditions.allergies == ["Peanuts", "penicillin"]
    assert card.medical_conditions.medications == []
    assert card.medical_conditions.surgeries == ["Appendectomy"]
    assert card.vital_signs.blood_pressure == "115/75"
    assert card.vital_signs.weight == 65


def test_save_exercise_plan_keeps_one_per_environment(tracking, db, user):
    first = tracking.save_exercise_plan(user.id, ExercisePlanSave(environment="home", plan="## Day 1: Legs"))
    tracking.save_exercise_plan(user.id, ExercisePlanSave(environment="gym", plan="## Day 1: Push"))
    replaced = tracking.save_exercise_plan(user.id, ExercisePlanSave(environment="home", plan="## Day 1: Core"))

    assert replaced.id == first.id
    assert replaced.plan == "## Day 1: Core"

    plans = db.get_exercise_plans(user.id)
    assert [p.environment for p in plans] == ["home", "gym"]
    assert db.get_exercise_plans(uuid.uuid4()) == []
