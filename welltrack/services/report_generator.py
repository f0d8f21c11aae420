"""Health report generation."""

import logging
from datetime import date, datetime, timedelta
from typing import Optional, List, Dict, Any, Tuple, Callable
from uuid import UUID

from welltrack.db.supabase import DatabaseService
from welltrack.models.health import HealthMetrics, HealthMetricsHistory
from welltrack.models.tracking import FoodEntry, ExerciseLog, SleepRecord, DailyFoodHistory
from welltrack.models.report import (
    AIGeneratedFlags,
    ChartPoint,
    HealthReport,
    HealthReportCreate,
    HistoricalTrends,
    NutritionAdvice,
    NutritionTrends,
    ReportHealthMetrics,
    ScheduledReportResult,
    VitalSign,
)
from welltrack.services.health_calculator import HealthCalculator
from welltrack.services.insights import HealthAI, NutritionGuidance
from welltrack.services.tracking import average_daily_nutrition, summarize_activity, months_before

logger = logging.getLogger(__name__)

TREND_MONTHS = 6
WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
BODY_TEMPERATURE_BASELINE = 36.8  # °C


def _month_keys(today: date, months: int = TREND_MONTHS) -> List[Tuple[int, int]]:
    """(year, month) pairs for the last `months` months plus the current one."""
    keys = []
    for offset in range(months, -1, -1):
        index = today.year * 12 + today.month - 1 - offset
        year, month = divmod(index, 12)
        keys.append((year, month + 1))
    return keys


def _month_label(key: Tuple[int, int]) -> str:
    return date(key[0], key[1], 1).strftime("%b")


def _average(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def _trend(values: List[float], target: Optional[float] = None) -> str:
    """
    Compare the first and last reading.

    Without a target, a lower value is better. With a target, closer is better.
    """
    if len(values) < 2:
        return "stable"

    first, last = values[0], values[-1]
    if abs(last - first) <= abs(first) * 0.02:
        return "stable"
    if target is None:
        return "improving" if last < first else "worsening"
    if abs(last - target) < abs(first - target):
        return "improving"
    if abs(last - target) > abs(first - target):
        return "worsening"
    return "stable"


def _last_measured(moment: Optional[datetime], today: date) -> str:
    if moment is None:
        return "N/A"
    days = (today - moment.date()).days
    if days <= 0:
        return "today"
    if days == 1:
        return "yesterday"
    return f"{days} days ago"


class ReportGenerator:
    """Assemble, score, and persist health report snapshots."""

    def __init__(self, db: Optional[DatabaseService] = None, ai: Optional[HealthAI] = None):
        self.db = db or DatabaseService()
        self.ai = ai or HealthAI()

    async def get_or_generate(self, user_id: UUID, regenerate: bool = False) -> HealthReport:
        """Return the latest stored report unless a fresh one is requested."""
        if not regenerate:
            latest = self.db.get_latest_health_report(user_id)
            if latest:
                return latest
        return await self.generate(user_id)

    async def generate(self, user_id: UUID, title: Optional[str] = None) -> HealthReport:
        """Build a new report from the user's stored data and persist it."""
        now = datetime.now()
        today = now.date()
        logger.info("Generating health report for user %s", user_id)

        metrics = self.db.get_latest_health_metrics(user_id)
        history = self.db.get_metrics_history(user_id, limit=6)
        sleep_records = self.db.get_sleep_records(user_id, limit=30)
        food_entries = self.db.get_food_entries(user_id, start=now - timedelta(days=30))
        exercise_logs = self.db.get_exercise_logs(user_id, start=now - timedelta(days=7))

        bmi = HealthCalculator.bmi(metrics.weight, metrics.height) if metrics else None
        score = HealthCalculator.health_score(metrics, sleep_records, bmi)
        activity_level = HealthCalculator.activity_level(metrics, sleep_records)
        risk_level = HealthCalculator.risk_level(metrics, bmi, sleep_records)
        nutrition = average_daily_nutrition(food_entries)
        activity = summarize_activity(exercise_logs)

        narrative, summary_ai = await self.ai.health_summary(
            metrics, sleep_records, nutrition, activity if exercise_logs else None
        )
        predictions, predictions_ai = await self.ai.health_predictions(metrics, score, bmi)
        guidance, advice_ai = await self.ai.nutrition_advice(metrics, score, nutrition)

        report = HealthReportCreate(
            title=title or f"Health Report - {now.strftime('%m/%d/%Y')}",
            summary=HealthCalculator.report_summary(score, activity_level, bmi, risk_level),
            narrative_summary=narrative,
            health_score=score,
            bmi=bmi,
            activity_level=activity_level,
            risk_level=risk_level,
            health_metrics=ReportHealthMetrics(
                height=metrics.height if metrics else None,
                weight=metrics.weight if metrics else None,
                age=metrics.age if metrics else None,
                gender=metrics.gender if metrics else None,
            ),
            predictions=predictions,
            vital_signs=self.build_vital_signs(metrics, history, today),
            activity_data=self.build_activity_data(exercise_logs, activity, today),
            nutrition_data=self.build_nutrition_data(nutrition, guidance, food_entries),
            nutrition_advice=self.build_nutrition_advice(nutrition, guidance),
            nutrition_trends=self.nutrition_trends(
                self.db.get_daily_history(
                    user_id, start_date=date(*_month_keys(today)[0], 1)
                ),
                today,
            ),
            ai_generated=AIGeneratedFlags(
                summary=summary_ai,
                predictions=predictions_ai,
                nutrition_advice=advice_ai,
            ),
            generated_at=now,
        )

        saved = self.db.create_health_report(user_id, report)
        logger.info("Saved health report %s for user %s (score %s)", saved.id, user_id, score)
        return saved

    @staticmethod
    def build_vital_signs(
        metrics: Optional[HealthMetrics],
        history: List[HealthMetricsHistory],
        today: date,
    ) -> List[VitalSign]:
        """Current vitals with trends from the stored history (newest first)."""
        if not metrics and not history:
            return []

        chronological = list(reversed(history))
        latest_time = history[0].recorded_at if history else (metrics.recorded_at if metrics else None)
        last_measured = _last_measured(latest_time, today)

        def series(getter: Callable[[HealthMetricsHistory], Optional[float]]) -> List[ChartPoint]:
            points = []
            for h in chronological:
                value = getter(h)
                if value is not None:
                    points.append(ChartPoint(date=h.recorded_at.date().isoformat(), value=value))
            return points

        def systolic(h: HealthMetricsHistory) -> Optional[float]:
            bp = HealthCalculator.parse_blood_pressure(h.blood_pressure)
            return bp[0] if bp else None

        vitals = []

        bp_points = series(systolic)
        bp_current = (metrics.blood_pressure if metrics else None) or (
            history[0].blood_pressure if history else None
        )
        vitals.append(VitalSign(
            title="Blood Pressure",
            current=bp_current or "N/A",
            trend=_trend([p.value for p in bp_points]),
            last_measured=last_measured,
            chart_data=bp_points,
        ))

        hr_points = series(lambda h: h.heart_rate)
        hr_current = metrics.heart_rate if metrics else None
        vitals.append(VitalSign(
            title="Heart Rate",
            current=f"{hr_current} bpm" if hr_current else "N/A",
            trend=_trend([p.value for p in hr_points], target=70),
            last_measured=last_measured,
            chart_data=hr_points,
        ))

        temp_points = series(lambda h: h.temperature)
        temp_current = metrics.temperature if metrics else None
        vitals.append(VitalSign(
            title="Body Temperature",
            current=f"{temp_current}" if temp_current else "N/A",
            trend=_trend([p.value for p in temp_points], target=BODY_TEMPERATURE_BASELINE),
            last_measured=last_measured,
            chart_data=temp_points,
        ))

        rr_points = series(lambda h: h.respiratory_rate)
        rr_current = metrics.respiratory_rate if metrics else None
        vitals.append(VitalSign(
            title="Respiratory Rate",
            current=f"{rr_current} bpm" if rr_current else "N/A",
            trend=_trend([p.value for p in rr_points], target=16),
            last_measured=last_measured,
            chart_data=rr_points,
        ))

        weight_points = series(lambda h: h.weight)
        weight_current = metrics.weight if metrics else None
        vitals.append(VitalSign(
            title="Weight",
            current=f"{weight_current} kg" if weight_current else "N/A",
            trend=_trend([p.value for p in weight_points]),
            last_measured=last_measured,
            chart_data=weight_points,
        ))

        return vitals

    @staticmethod
    def build_activity_data(
        logs: List[ExerciseLog], activity: Dict[str, Any], today: date
    ) -> Dict[str, Any]:
        """Weekly activity section from exercise logs."""
        week = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
        weekly_chart = []
        for day in week:
            day_logs = [log for log in logs if log.date.date() == day]
            weekly_chart.append({
                "day": WEEKDAYS[day.weekday()],
                "date": day.isoformat(),
                "workouts": len(day_logs),
                "calories": round(sum(log.calories_burned for log in day_logs)),
            })

        types: Dict[str, Dict[str, Any]] = {}
        for log in logs:
            entry = types.setdefault(log.category, {"type": log.category, "sessions": 0, "calories": 0})
            entry["sessions"] += 1
            entry["calories"] += log.calories_burned
        for entry in types.values():
            entry["calories"] = round(entry["calories"])

        return {
            "summary": activity,
            "daily": {
                "Workouts": {"value": activity["workouts"], "target": 5},
                "Active Days": {"value": activity["active_days"], "target": 5},
                "Calories Burned": {"value": activity["calories_burned"], "target": 2500},
            },
            "weekly_chart": weekly_chart,
            "activity_types": list(types.values()),
        }

    @staticmethod
    def build_nutrition_data(
        nutrition: Optional[Dict[str, int]],
        guidance: NutritionGuidance,
        entries: List[FoodEntry],
    ) -> Dict[str, Any]:
        """Intake compared with the daily targets."""
        nutrition = nutrition or {}
        recent = sorted(entries, key=lambda e: e.recorded_at, reverse=True)[:5]
        return {
            "consumed": nutrition.get("calories", 0),
            "target": guidance.calorie_target,
            "days_logged": nutrition.get("days_logged", 0),
            "macros": {
                "Protein": {"amount": nutrition.get("protein_g", 0), "target": guidance.protein_target},
                "Carbs": {"amount": nutrition.get("carbs_g", 0), "target": guidance.carbs_target},
                "Fats": {"amount": nutrition.get("fats_g", 0), "target": guidance.fats_target},
            },
            "meals": [
                {
                    "meal": e.meal_type,
                    "time": e.recorded_at.strftime("%I:%M %p").lstrip("0"),
                    "calories": round(e.calories),
                    "items": e.food_name,
                }
                for e in recent
            ],
        }

    @staticmethod
    def build_nutrition_advice(
        nutrition: Optional[Dict[str, int]], guidance: NutritionGuidance
    ) -> NutritionAdvice:
        target = guidance.calorie_target
        if not nutrition:
            summary = (
                f"No food has been logged in the last 30 days. Your suggested daily target is "
                f"{target} kcal with {guidance.protein_target}g protein, {guidance.carbs_target}g "
                f"carbs and {guidance.fats_target}g fats."
            )
        else:
            consumed = nutrition["calories"]
            if consumed < target * 0.9:
                comparison = "below"
            elif consumed > target * 1.1:
                comparison = "above"
            else:
                comparison = "close to"
            summary = (
                f"Your average intake of {consumed} kcal per day is {comparison} your target of "
                f"{target} kcal. Protein averages {nutrition['protein_g']}g against a target of "
                f"{guidance.protein_target}g."
            )
        return NutritionAdvice(summary=summary, recommendations=guidance.recommendations)

    @staticmethod
    def nutrition_trends(history: List[DailyFoodHistory], today: date) -> NutritionTrends:
        """Monthly averages of logged days, zero where a month has no data."""
        keys = _month_keys(today)
        buckets: Dict[Tuple[int, int], List[DailyFoodHistory]] = {k: [] for k in keys}
        for day in history:
            key = (day.date.year, day.date.month)
            if key in buckets and day.entry_count > 0:
                buckets[key].append(day)

        trends = NutritionTrends(labels=[_month_label(k) for k in keys])
        for key in keys:
            days = buckets[key]
            trends.calories.append(round(_average([d.total_calories for d in days]) or 0))
            trends.protein.append(round(_average([d.total_protein for d in days]) or 0))
            trends.carbs.append(round(_average([d.total_carbs for d in days]) or 0))
            trends.fats.append(round(_average([d.total_fats for d in days]) or 0))
        return trends

    def historical_trends(self, user_id: UUID, today: Optional[date] = None) -> HistoricalTrends:
        """Monthly nutrition, sleep, activity, and vitals series."""
        today = today or date.today()
        keys = _month_keys(today)
        start = date(*keys[0], 1)
        start_dt = datetime.combine(start, datetime.min.time())

        nutrition = self.nutrition_trends(self.db.get_daily_history(user_id, start_date=start), today)
        sleep_records = self.db.get_sleep_records(user_id, start_date=start)
        exercise_logs = self.db.get_exercise_logs(user_id, start=start_dt)
        history = [
            h for h in self.db.get_metrics_history(user_id)
            if h.recorded_at >= start_dt
        ]

        def in_month(moment: date, key: Tuple[int, int]) -> bool:
            return (moment.year, moment.month) == key

        trends = HistoricalTrends(labels=nutrition.labels, nutrition=nutrition)
        for key in keys:
            month_sleep: List[SleepRecord] = [r for r in sleep_records if in_month(r.date, key)]
            hours = HealthCalculator.average_sleep_hours(month_sleep)
            quality = HealthCalculator.average_sleep_quality(month_sleep)
            trends.sleep_hours.append(round(hours, 1) if hours is not None else 0)
            trends.sleep_quality.append(round(quality, 1) if quality is not None else 0)

            burned = sum(log.calories_burned for log in exercise_logs if in_month(log.date, key))
            trends.calories_burned.append(round(burned))

            month_history = [h for h in history if in_month(h.recorded_at, key)]
            weight = _average([h.weight for h in month_history])
            heart_rate = _average([h.heart_rate for h in month_history if h.heart_rate])
            trends.weight.append(round(weight, 1) if weight is not None else None)
            trends.heart_rate.append(round(heart_rate) if heart_rate is not None else None)

        return trends

    async def generate_scheduled(
        self, cadence: str = "monthly", now: Optional[datetime] = None
    ) -> ScheduledReportResult:
        """Generate reports for every user without one since the cadence cutoff."""
        now = now or datetime.now()
        cutoff = now - timedelta(days=7) if cadence == "weekly" else months_before(now, 1)
        title = f"{'Weekly' if cadence == 'weekly' else 'Monthly'} Health Report"

        recent = self.db.get_user_ids_with_reports_since(cutoff)
        processed = 0
        errors = 0

        for user in self.db.get_all_users():
            if str(user.id) in recent:
                continue
            try:
                await self.generate(user.id, title=title)
                processed += 1
            except Exception as e:
                logger.error("Error generating %s report for user %s: %s", cadence, user.id, e)
                errors += 1

        logger.info("Scheduled %s reports: %d generated, %d errors", cadence, processed, errors)
        return ScheduledReportResult(
            processed=processed,
            errors=errors,
            message=f"Generated {processed} reports, with {errors} errors",
        )
