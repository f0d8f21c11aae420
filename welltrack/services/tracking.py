"""Health metrics, sleep, food, and exercise tracking."""

import logging
import re
from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from typing import Optional, List, Dict, Any
from uuid import UUID

from welltrack.db.supabase import DatabaseService
from welltrack.models.user import User
from welltrack.models.health import (
    HealthCard,
    HealthCardConditions,
    HealthCardPersonalInfo,
    HealthCardVitals,
    HealthMetricsCreate,
    HealthMetricsHistory,
    LatestHealthMetrics,
    MetricsSubmissionResult,
)
from welltrack.models.tracking import (
    SleepRecord,
    SleepRecordCreate,
    SleepRecordUpdate,
    SleepStats,
    FoodEntry,
    FoodEntryCreate,
    FoodEntryUpdate,
    FoodSummary,
    FoodStats,
    ExerciseLog,
    ExerciseLogCreate,
    ExerciseStats,
    ExerciseSummary,
    ExercisePlanSave,
    SavedExercisePlan,
)
from welltrack.services.health_calculator import HealthCalculator
from welltrack.services.insights import HealthAI

logger = logging.getLogger(__name__)

FOOD_PERIODS = ("today", "week", "month", "year")
MACRO_FIELDS = ("protein_g", "carbs_g", "fats_g")
NO_ENTRY_WORDS = {"none", "n/a", "na", "no", "nil"}


def months_before(moment: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the month's end."""
    month_index = moment.year * 12 + moment.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    next_month = date(year + (month // 12), month % 12 + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def split_list(text: Optional[str]) -> List[str]:
    """Split a free-text form answer such as "peanuts, penicillin" into items."""
    if not text:
        return []
    items = [item.strip() for item in re.split(r"[,;\n]", text)]
    return [item for item in items if item and item.lower() not in NO_ENTRY_WORDS]


def average_daily_nutrition(entries: List[FoodEntry]) -> Optional[Dict[str, int]]:
    """Average intake per logged day, or None with no entries."""
    if not entries:
        return None

    days = {e.recorded_at.date() for e in entries}
    count = len(days)
    return {
        "calories": round(sum(e.calories for e in entries) / count),
        "protein_g": round(sum(e.protein_g for e in entries) / count),
        "carbs_g": round(sum(e.carbs_g for e in entries) / count),
        "fats_g": round(sum(e.fats_g for e in entries) / count),
        "days_logged": count,
    }


def summarize_activity(logs: List[ExerciseLog]) -> Dict[str, Any]:
    """Workout counts and calories over a set of exercise logs."""
    categories = list(OrderedDict.fromkeys(log.category for log in logs))
    return {
        "workouts": len(logs),
        "active_days": len({log.date.date() for log in logs}),
        "total_sets": sum(log.sets for log in logs),
        "total_reps": sum(log.reps for log in logs),
        "calories_burned": round(sum(log.calories_burned for log in logs)),
        "categories": categories,
    }


class TrackingService:
    """Record and summarize a user's health logs."""

    def __init__(self, db: Optional[DatabaseService] = None, ai: Optional[HealthAI] = None):
        self.db = db or DatabaseService()
        self.ai = ai

    # Health metrics
    def record_health_metrics(self, user: User, payload: HealthMetricsCreate) -> MetricsSubmissionResult:
        """Store a health form submission and update the profile counters."""
        is_initial = not user.initial_health_data_submitted
        note = (
            "Health data from initial submission"
            if is_initial
            else "Health data from health form update"
        )

        history_entry = self.db.add_metrics_history(user.id, payload, note)
        metrics = self.db.upsert_health_metrics(user.id, payload)
        self.db.update_user_fields(user.id, {
            "initial_health_data_submitted": True,
            "metrics_update_count": user.metrics_update_count + 1,
            "last_metrics_update": datetime.now().isoformat(),
        })
        history_count = self.db.count_metrics_history(user.id)

        logger.info("Recorded health metrics for user %s (%s)", user.id, note.lower())
        return MetricsSubmissionResult(
            health_metrics=metrics,
            history_entry=history_entry,
            history_record_count=history_count,
        )

    def latest_health_metrics(self, user_id: UUID) -> Optional[LatestHealthMetrics]:
        metrics = self.db.get_latest_health_metrics(user_id)
        if not metrics:
            return None

        history_count = self.db.count_metrics_history(user_id)
        return LatestHealthMetrics(
            metrics=metrics,
            history_count=history_count,
            has_historical_data=history_count > 1,
        )

    def health_card(self, user: User) -> Optional[HealthCard]:
        """Emergency card from the latest metrics, or None before the health form is filled in."""
        metrics = self.db.get_latest_health_metrics(user.id)
        if not metrics:
            return None

        return HealthCard(
            personal_info=HealthCardPersonalInfo(
                full_name=user.name,
                date_of_birth=metrics.date_of_birth,
                blood_type=metrics.blood_type or "Unknown",
                email=metrics.email or user.email,
                phone=metrics.phone,
                emergency_contact=metrics.emergency_contact,
                emergency_phone=metrics.emergency_phone,
                gender=metrics.gender,
                age=metrics.age,
            ),
            medical_conditions=HealthCardConditions(
                allergies=split_list(metrics.allergies),
                chronic_conditions=split_list(metrics.chronic_conditions),
                medications=split_list(metrics.medications),
                surgeries=split_list(metrics.surgeries),
            ),
            vital_signs=HealthCardVitals(
                blood_pressure=metrics.blood_pressure,
                heart_rate=metrics.heart_rate,
                height=metrics.height,
                weight=metrics.weight,
                temperature=metrics.temperature,
                respiratory_rate=metrics.respiratory_rate,
            ),
            updated_at=metrics.recorded_at,
        )

    def metrics_history(self, user_id: UUID, limit: int = 20) -> List[HealthMetricsHistory]:
        return self.db.get_metrics_history(user_id, limit=limit)

    # Sleep
    @staticmethod
    def _sleep_duration(start: datetime, end: datetime) -> int:
        if end <= start:
            raise ValueError("End time must be after start time")
        return round((end - start).total_seconds() / 60)

    def create_sleep_record(self, user_id: UUID, payload: SleepRecordCreate) -> SleepRecord:
        """Log sleep, deriving duration from start and end when not given."""
        data = payload.model_dump(mode="json")
        if payload.duration is None:
            data["duration"] = self._sleep_duration(payload.start_time, payload.end_time)
        return self.db.create_sleep_record(user_id, data)

    def update_sleep_record(
        self, user_id: UUID, record_id: UUID, payload: SleepRecordUpdate
    ) -> Optional[SleepRecord]:
        existing = self.db.get_sleep_record(user_id, record_id)
        if not existing:
            return None

        data = payload.model_dump(mode="json", exclude_none=True)
        if payload.duration is None and (payload.start_time or payload.end_time):
            data["duration"] = self._sleep_duration(
                payload.start_time or existing.start_time,
                payload.end_time or existing.end_time,
            )
        if not data:
            return existing
        return self.db.update_sleep_record(user_id, record_id, data)

    def sleep_stats(self, user_id: UUID, days: int = 7, today: Optional[date] = None) -> SleepStats:
        """Duration, quality, and streak statistics over the last `days` days."""
        today = today or date.today()
        records = self.db.get_sleep_records(user_id, start_date=today - timedelta(days=days))
        if not records:
            return SleepStats()

        breakdown = {"poor": 0, "fair": 0, "good": 0, "excellent": 0}
        for record in records:
            if record.quality in breakdown:
                breakdown[record.quality] += 1

        avg_score = HealthCalculator.average_sleep_quality(records)
        if avg_score >= 3.5:
            average_quality = "Excellent"
        elif avg_score >= 2.5:
            average_quality = "Good"
        elif avg_score >= 1.5:
            average_quality = "Fair"
        else:
            average_quality = "Poor"

        return SleepStats(
            total_records=len(records),
            average_duration=round(sum(r.duration for r in records) / len(records)),
            quality_breakdown=breakdown,
            average_quality=average_quality,
            latest_sleep=records[0],
            streak=min(len(records), days),
        )

    # Food
    @staticmethod
    def _with_macro_percentages(data: Dict[str, Any]) -> Dict[str, Any]:
        percents = HealthCalculator.macro_percentages(
            data.get("protein_g") or 0,
            data.get("carbs_g") or 0,
            data.get("fats_g") or 0,
        )
        for key, value in percents.items():
            if data.get(key) is None:
                data[key] = value
        return data

    def create_food_entry(self, user_id: UUID, payload: FoodEntryCreate) -> FoodEntry:
        """Log food and refresh that day's totals."""
        data = payload.model_dump(mode="json")
        if payload.recorded_at is None:
            data["recorded_at"] = datetime.now().isoformat()
        entry = self.db.create_food_entry(user_id, self._with_macro_percentages(data))
        self.db.recompute_daily_history(user_id, entry.recorded_at.date())
        return entry

    def update_food_entry(
        self, user_id: UUID, entry_id: UUID, payload: FoodEntryUpdate
    ) -> Optional[FoodEntry]:
        """Update an entry; both the old and new day totals are refreshed."""
        existing = self.db.get_food_entry(user_id, entry_id)
        if not existing:
            return None

        data = payload.model_dump(mode="json", exclude_none=True)
        if any(field in data for field in MACRO_FIELDS):
            merged = {field: data.get(field, getattr(existing, field)) for field in MACRO_FIELDS}
            percents = HealthCalculator.macro_percentages(
                merged["protein_g"], merged["carbs_g"], merged["fats_g"]
            )
            data.update(percents)
        if not data:
            return existing

        updated = self.db.update_food_entry(user_id, entry_id, data)
        if updated is None:
            return None

        old_day = existing.recorded_at.date()
        new_day = updated.recorded_at.date()
        self.db.recompute_daily_history(user_id, old_day)
        if new_day != old_day:
            self.db.recompute_daily_history(user_id, new_day)
        return updated

    def delete_food_entry(self, user_id: UUID, entry_id: UUID) -> bool:
        existing = self.db.get_food_entry(user_id, entry_id)
        if not existing:
            return False

        deleted = self.db.delete_food_entry(user_id, entry_id)
        if deleted:
            self.db.recompute_daily_history(user_id, existing.recorded_at.date())
        return deleted

    def food_summary(self, user_id: UUID, period: str = "today", now: Optional[datetime] = None) -> FoodSummary:
        """Totals over a period; daily averages for anything longer than today."""
        if period not in FOOD_PERIODS:
            raise ValueError(f"Invalid period '{period}'. Use one of: {', '.join(FOOD_PERIODS)}")

        now = now or datetime.now()
        if period == "week":
            start = now - timedelta(days=7)
        elif period == "month":
            start = months_before(now, 1)
        elif period == "year":
            start = months_before(now, 12)
        else:
            start = datetime.combine(now.date(), time.min)

        entries = self.db.get_food_entries(user_id, start=start, end=now)
        summary = FoodSummary(
            period=period,
            entry_count=len(entries),
            total_calories=sum(e.calories for e in entries),
            total_protein=sum(e.protein_g for e in entries),
            total_carbs=sum(e.carbs_g for e in entries),
            total_fats=sum(e.fats_g for e in entries),
        )

        if period != "today":
            days = max(1, (now - start).days)
            summary.daily_avg_calories = round(summary.total_calories / days, 1)
            summary.daily_avg_protein = round(summary.total_protein / days, 1)
            summary.daily_avg_carbs = round(summary.total_carbs / days, 1)
            summary.daily_avg_fats = round(summary.total_fats / days, 1)

        return summary

    def food_stats(self, user_id: UUID, today: Optional[date] = None) -> FoodStats:
        """Long-running logging statistics built from the daily history."""
        today = today or date.today()
        history = self.db.get_daily_history(user_id)
        recent = [d for d in history if d.date >= today - timedelta(days=30)]

        averages = {"calories": 0, "protein": 0, "carbs": 0, "fats": 0}
        if recent:
            averages = {
                "calories": round(sum(d.total_calories for d in recent) / len(recent)),
                "protein": round(sum(d.total_protein for d in recent) / len(recent)),
                "carbs": round(sum(d.total_carbs for d in recent) / len(recent)),
                "fats": round(sum(d.total_fats for d in recent) / len(recent)),
            }

        non_zero = [d for d in history if d.total_calories > 0]
        highest = max(non_zero, key=lambda d: d.total_calories) if non_zero else None
        lowest = min(non_zero, key=lambda d: d.total_calories) if non_zero else None

        logged_days = sorted({d.date for d in history if d.entry_count > 0})
        current_streak = 0
        check = today
        logged = set(logged_days)
        while check in logged:
            current_streak += 1
            check -= timedelta(days=1)

        longest_streak = 1 if logged_days else 0
        run = 1
        for previous, current in zip(logged_days, logged_days[1:]):
            if (current - previous).days == 1:
                run += 1
                longest_streak = max(longest_streak, run)
            else:
                run = 1

        return FoodStats(
            total_entries=self.db.count_food_entries(user_id),
            daily_averages=averages,
            top_foods=self.db.get_top_foods(user_id, limit=5),
            highest_calorie_day=highest,
            lowest_calorie_day=lowest,
            current_streak=current_streak,
            longest_streak=longest_streak,
        )

    def recent_nutrition(self, user_id: UUID, days: int = 30) -> Optional[Dict[str, int]]:
        """Average daily intake over the last `days` days."""
        start = datetime.now() - timedelta(days=days)
        return average_daily_nutrition(self.db.get_food_entries(user_id, start=start))

    # Exercise
    async def log_exercise(self, user_id: UUID, payload: ExerciseLogCreate) -> ExerciseLog:
        """Log an exercise, estimating calories from the AI when omitted."""
        data = payload.model_dump()
        if payload.calories_burned is None:
            if self.ai is None:
                raise ValueError("Calories burned is required")
            per_rep, used_default = await self.ai.calories_per_rep(payload.name)
            data["calories_burned"] = round(per_rep * payload.sets * payload.reps, 1)
            if used_default:
                logger.info("Used default calories per rep for %s", payload.name)

        data["date"] = datetime.now().isoformat()
        return self.db.create_exercise_log(user_id, data)

    def exercise_summary(self, user_id: UUID, today: Optional[date] = None, limit: int = 10) -> ExerciseSummary:
        """Today's totals plus the most recent logs."""
        today = today or date.today()
        start = datetime.combine(today, time.min)
        end = datetime.combine(today, time.max)

        todays_logs = self.db.get_exercise_logs(user_id, start=start, end=end)
        stats = ExerciseStats(
            completed=len(todays_logs),
            total_sets=sum(log.sets for log in todays_logs),
            total_reps=sum(log.reps for log in todays_logs),
            total_calories=round(sum(log.calories_burned for log in todays_logs), 1),
        )
        return ExerciseSummary(stats=stats, logs=self.db.get_exercise_logs(user_id, limit=limit))

    def weekly_activity(self, user_id: UUID) -> Dict[str, Any]:
        """Activity summary for the last seven days."""
        start = datetime.now() - timedelta(days=7)
        return summarize_activity(self.db.get_exercise_logs(user_id, start=start))

    def save_exercise_plan(self, user_id: UUID, payload: ExercisePlanSave) -> SavedExercisePlan:
        saved = self.db.save_exercise_plan(user_id, payload.environment, payload.plan)
        logger.info("Saved %s exercise plan for user %s", payload.environment, user_id)
        return saved
