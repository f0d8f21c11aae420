"""Supabase client and database operations."""

from supabase import create_client, Client
from functools import lru_cache
from typing import Optional, List, Set
from datetime import date, datetime, timedelta
from collections import Counter
from uuid import UUID

from welltrack.config import get_settings
from welltrack.models.user import User, UserCreate, UserUpdate
from welltrack.models.health import HealthMetrics, HealthMetricsCreate, HealthMetricsHistory
from welltrack.models.tracking import (
    SleepRecord,
    FoodEntry,
    DailyFoodHistory,
    ExerciseLog,
    SavedExercisePlan,
    TopFood,
)
from welltrack.models.report import HealthReport, HealthReportCreate
from welltrack.models.diet import DietPlan, DietPlanCreate

HISTORY_FIELDS = (
    "height",
    "weight",
    "blood_pressure",
    "heart_rate",
    "respiratory_rate",
    "temperature",
    "sleep_duration",
    "stress_level",
    "activity_level",
)


@lru_cache()
def get_supabase_client() -> Client:
    """Get cached Supabase client."""
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_key)


def _day_bounds(day: date) -> tuple:
    start = datetime.combine(day, datetime.min.time())
    end = datetime.combine(day, datetime.max.time())
    return start.isoformat(), end.isoformat()


class DatabaseService:
    """Database operations for WellTrack."""

    def __init__(self, client: Optional[Client] = None):
        self.client = client or get_supabase_client()

    # User operations
    def create_user(self, user_data: UserCreate) -> User:
        """Create a new user."""
        data = user_data.model_dump()
        data["email"] = data["email"].lower()
        data["created_at"] = datetime.now().isoformat()
        result = self.client.table("users").insert(data).execute()
        return User(**result.data[0])

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID."""
        result = (
            self.client.table("users")
            .select("*")
            .eq("id", str(user_id))
            .execute()
        )
        if result.data:
            return User(**result.data[0])
        return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        result = (
            self.client.table("users")
            .select("*")
            .eq("email", email.lower())
            .execute()
        )
        if result.data:
            return User(**result.data[0])
        return None

    def update_user(self, user_id: UUID, user_data: UserUpdate) -> User:
        """Update user profile."""
        fields = user_data.model_dump(exclude_none=True)
        if "email" in fields:
            fields["email"] = fields["email"].lower()
        return self.update_user_fields(user_id, fields)

    def update_user_fields(self, user_id: UUID, fields: dict) -> User:
        """Update arbitrary user columns."""
        fields = dict(fields, updated_at=datetime.now().isoformat())
        result = (
            self.client.table("users")
            .update(fields)
            .eq("id", str(user_id))
            .execute()
        )
        return User(**result.data[0])

    def get_all_users(self) -> List[User]:
        """Get every registered user."""
        result = self.client.table("users").select("*").execute()
        return [User(**u) for u in result.data]

    # Health metrics operations
    def upsert_health_metrics(self, user_id: UUID, metrics: HealthMetricsCreate) -> HealthMetrics:
        """Replace the authoritative metrics row for a user."""
        data = metrics.model_dump(mode="json")
        data["user_id"] = str(user_id)
        data["recorded_at"] = datetime.now().isoformat()
        result = (
            self.client.table("health_metrics")
            .upsert(data, on_conflict="user_id")
            .execute()
        )
        return HealthMetrics(**result.data[0])

    def get_latest_health_metrics(self, user_id: UUID) -> Optional[HealthMetrics]:
        """Get the most recent metrics for a user."""
        result = (
            self.client.table("health_metrics")
            .select("*")
            .eq("user_id", str(user_id))
            .order("recorded_at", desc=True)
            .limit(1)
            .execute()
        )
        if result.data:
            return HealthMetrics(**result.data[0])
        return None

    def add_metrics_history(
        self, user_id: UUID, metrics: HealthMetricsCreate, notes: str
    ) -> HealthMetricsHistory:
        """Append a metrics snapshot to the history."""
        snapshot = metrics.model_dump(mode="json")
        data = {field: snapshot.get(field) for field in HISTORY_FIELDS}
        data["user_id"] = str(user_id)
        data["recorded_at"] = datetime.now().isoformat()
        data["notes"] = notes
        result = self.client.table("health_metrics_history").insert(data).execute()
        return HealthMetricsHistory(**result.data[0])

    def get_metrics_history(
        self, user_id: UUID, limit: Optional[int] = None
    ) -> List[HealthMetricsHistory]:
        """Get metrics history, newest first."""
        query = (
            self.client.table("health_metrics_history")
            .select("*")
            .eq("user_id", str(user_id))
            .order("recorded_at", desc=True)
        )
        if limit:
            query = query.limit(limit)
        result = query.execute()
        return [HealthMetricsHistory(**h) for h in result.data]

    def count_metrics_history(self, user_id: UUID) -> int:
        """Count stored metrics snapshots."""
        result = (
            self.client.table("health_metrics_history")
            .select("id")
            .eq("user_id", str(user_id))
            .execute()
        )
        return len(result.data)

    # Sleep operations
    def create_sleep_record(self, user_id: UUID, data: dict) -> SleepRecord:
        """Log a sleep record."""
        data = dict(data, user_id=str(user_id), created_at=datetime.now().isoformat())
        result = self.client.table("sleep_records").insert(data).execute()
        return SleepRecord(**result.data[0])

    def get_sleep_records(
        self,
        user_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[SleepRecord]:
        """Get sleep records, newest night first."""
        query = (
            self.client.table("sleep_records")
            .select("*")
            .eq("user_id", str(user_id))
        )
        if start_date:
            query = query.gte("date", start_date.isoformat())
        if end_date:
            query = query.lte("date", end_date.isoformat())
        query = query.order("date", desc=True)
        if limit:
            query = query.limit(limit)
        result = query.execute()
        return [SleepRecord(**r) for r in result.data]

    def get_sleep_record(self, user_id: UUID, record_id: UUID) -> Optional[SleepRecord]:
        """Get a single sleep record owned by the user."""
        result = (
            self.client.table("sleep_records")
            .select("*")
            .eq("id", str(record_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        if result.data:
            return SleepRecord(**result.data[0])
        return None

    def update_sleep_record(
        self, user_id: UUID, record_id: UUID, data: dict
    ) -> Optional[SleepRecord]:
        """Update a sleep record owned by the user."""
        result = (
            self.client.table("sleep_records")
            .update(data)
            .eq("id", str(record_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        if result.data:
            return SleepRecord(**result.data[0])
        return None

    def delete_sleep_record(self, user_id: UUID, record_id: UUID) -> bool:
        """Delete a sleep record owned by the user."""
        result = (
            self.client.table("sleep_records")
            .delete()
            .eq("id", str(record_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        return bool(result.data)

    # Food operations
    def create_food_entry(self, user_id: UUID, data: dict) -> FoodEntry:
        """Log a food entry."""
        data = dict(data, user_id=str(user_id))
        result = self.client.table("food_entries").insert(data).execute()
        return FoodEntry(**result.data[0])

    def get_food_entry(self, user_id: UUID, entry_id: UUID) -> Optional[FoodEntry]:
        """Get a single food entry owned by the user."""
        result = (
            self.client.table("food_entries")
            .select("*")
            .eq("id", str(entry_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        if result.data:
            return FoodEntry(**result.data[0])
        return None

    def get_food_entries(
        self,
        user_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[FoodEntry]:
        """Get food entries, newest first."""
        query = (
            self.client.table("food_entries")
            .select("*")
            .eq("user_id", str(user_id))
        )
        if start:
            query = query.gte("recorded_at", start.isoformat())
        if end:
            query = query.lte("recorded_at", end.isoformat())
        query = query.order("recorded_at", desc=True)
        if limit:
            query = query.limit(limit)
        result = query.execute()
        return [FoodEntry(**e) for e in result.data]

    def get_food_entries_for_date(self, user_id: UUID, log_date: date) -> List[FoodEntry]:
        """Get all food entries for a specific date."""
        start, end = _day_bounds(log_date)
        result = (
            self.client.table("food_entries")
            .select("*")
            .eq("user_id", str(user_id))
            .gte("recorded_at", start)
            .lte("recorded_at", end)
            .order("recorded_at")
            .execute()
        )
        return [FoodEntry(**e) for e in result.data]

    def update_food_entry(
        self, user_id: UUID, entry_id: UUID, data: dict
    ) -> Optional[FoodEntry]:
        """Update a food entry owned by the user."""
        result = (
            self.client.table("food_entries")
            .update(data)
            .eq("id", str(entry_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        if result.data:
            return FoodEntry(**result.data[0])
        return None

    def delete_food_entry(self, user_id: UUID, entry_id: UUID) -> bool:
        """Delete a food entry owned by the user."""
        result = (
            self.client.table("food_entries")
            .delete()
            .eq("id", str(entry_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        return bool(result.data)

    def count_food_entries(self, user_id: UUID) -> int:
        """Count all food entries for a user."""
        result = (
            self.client.table("food_entries")
            .select("id")
            .eq("user_id", str(user_id))
            .execute()
        )
        return len(result.data)

    def get_top_foods(self, user_id: UUID, limit: int = 5) -> List[TopFood]:
        """Most frequently logged foods with their average calories."""
        result = (
            self.client.table("food_entries")
            .select("food_name, calories")
            .eq("user_id", str(user_id))
            .execute()
        )
        counts = Counter(row["food_name"] for row in result.data)
        calories = {}
        for row in result.data:
            calories.setdefault(row["food_name"], []).append(row.get("calories") or 0)

        return [
            TopFood(
                food_name=name,
                count=count,
                avg_calories=round(sum(calories[name]) / count),
            )
            for name, count in counts.most_common(limit)
        ]

    def recompute_daily_history(self, user_id: UUID, day: date) -> DailyFoodHistory:
        """Rebuild the daily totals row from the day's entries."""
        entries = self.get_food_entries_for_date(user_id, day)
        data = {
            "user_id": str(user_id),
            "date": day.isoformat(),
            "total_calories": sum(e.calories for e in entries),
            "total_protein": sum(e.protein_g for e in entries),
            "total_carbs": sum(e.carbs_g for e in entries),
            "total_fats": sum(e.fats_g for e in entries),
            "entry_count": len(entries),
        }
        result = (
            self.client.table("daily_food_history")
            .upsert(data, on_conflict="user_id,date")
            .execute()
        )
        return DailyFoodHistory(**result.data[0])

    def get_daily_history(
        self,
        user_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[DailyFoodHistory]:
        """Get daily food totals, oldest first."""
        query = (
            self.client.table("daily_food_history")
            .select("*")
            .eq("user_id", str(user_id))
        )
        if start_date:
            query = query.gte("date", start_date.isoformat())
        if end_date:
            query = query.lte("date", end_date.isoformat())
        result = query.order("date").execute()
        return [DailyFoodHistory(**d) for d in result.data]

    # Exercise operations
    def create_exercise_log(self, user_id: UUID, data: dict) -> ExerciseLog:
        """Log an exercise."""
        data = dict(data, user_id=str(user_id))
        data.setdefault("date", datetime.now().isoformat())
        result = self.client.table("exercise_logs").insert(data).execute()
        return ExerciseLog(**result.data[0])

    def get_exercise_logs(
        self,
        user_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[ExerciseLog]:
        """Get exercise logs, newest first."""
        query = (
            self.client.table("exercise_logs")
            .select("*")
            .eq("user_id", str(user_id))
        )
        if start:
            query = query.gte("date", start.isoformat())
        if end:
            query = query.lte("date", end.isoformat())
        query = query.order("date", desc=True)
        if limit:
            query = query.limit(limit)
        result = query.execute()
        return [ExerciseLog(**log) for log in result.data]

    def save_exercise_plan(self, user_id: UUID, environment: str, plan: str) -> SavedExercisePlan:
        """Create or replace the user's plan for an environment."""
        data = {
            "user_id": str(user_id),
            "environment": environment,
            "plan": plan,
            "updated_at": datetime.now().isoformat(),
        }
        result = (
            self.client.table("exercise_plans")
            .upsert(data, on_conflict="user_id,environment")
            .execute()
        )
        return SavedExercisePlan(**result.data[0])

    def get_exercise_plans(self, user_id: UUID) -> List[SavedExercisePlan]:
        """Get saved exercise plans, most recently updated first."""
        result = (
            self.client.table("exercise_plans")
            .select("*")
            .eq("user_id", str(user_id))
            .order("updated_at", desc=True)
            .execute()
        )
        return [SavedExercisePlan(**p) for p in result.data]

    # Health report operations
    def create_health_report(self, user_id: UUID, report: HealthReportCreate) -> HealthReport:
        """Persist a generated report."""
        data = report.model_dump(mode="json")
        data["user_id"] = str(user_id)
        result = self.client.table("health_reports").insert(data).execute()
        return HealthReport(**result.data[0])

    def get_latest_health_report(self, user_id: UUID) -> Optional[HealthReport]:
        """Get the newest report for a user."""
        result = (
            self.client.table("health_reports")
            .select("*")
            .eq("user_id", str(user_id))
            .order("generated_at", desc=True)
            .limit(1)
            .execute()
        )
        if result.data:
            return HealthReport(**result.data[0])
        return None

    def get_health_report(
        self, report_id: UUID, user_id: Optional[UUID] = None
    ) -> Optional[HealthReport]:
        """Get a report by ID, optionally restricted to its owner."""
        query = (
            self.client.table("health_reports")
            .select("*")
            .eq("id", str(report_id))
        )
        if user_id:
            query = query.eq("user_id", str(user_id))
        result = query.execute()
        if result.data:
            return HealthReport(**result.data[0])
        return None

    def get_health_reports(self, user_id: UUID, limit: int = 50) -> List[HealthReport]:
        """Get report history, newest first."""
        result = (
            self.client.table("health_reports")
            .select("*")
            .eq("user_id", str(user_id))
            .order("generated_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [HealthReport(**r) for r in result.data]

    def get_user_ids_with_reports_since(self, cutoff: datetime) -> Set[str]:
        """IDs of users who already have a report newer than the cutoff."""
        result = (
            self.client.table("health_reports")
            .select("user_id")
            .gte("generated_at", cutoff.isoformat())
            .execute()
        )
        return {r["user_id"] for r in result.data}

    def set_report_pdf_url(self, user_id: UUID, report_id: UUID, pdf_url: str) -> None:
        """Remember where a report's PDF can be downloaded."""
        (
            self.client.table("health_reports")
            .update({"pdf_url": pdf_url})
            .eq("id", str(report_id))
            .eq("user_id", str(user_id))
            .execute()
        )

    def delete_health_report(self, user_id: UUID, report_id: UUID) -> bool:
        """Delete a report owned by the user."""
        result = (
            self.client.table("health_reports")
            .delete()
            .eq("id", str(report_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        return bool(result.data)

    # Diet plan operations
    def create_diet_plan(self, user_id: UUID, plan: DietPlanCreate) -> DietPlan:
        """Persist a diet plan."""
        data = plan.model_dump(mode="json")
        data["user_id"] = str(user_id)
        data["created_at"] = datetime.now().isoformat()
        result = self.client.table("diet_plans").insert(data).execute()
        return DietPlan(**result.data[0])

    def get_latest_base_plan(self, user_id: UUID) -> Optional[DietPlan]:
        """Get the newest non-weekly plan."""
        result = (
            self.client.table("diet_plans")
            .select("*")
            .eq("user_id", str(user_id))
            .eq("is_weekly_plan", False)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if result.data:
            return DietPlan(**result.data[0])
        return None

    def get_latest_weekly_plan(
        self, user_id: UUID, base_plan_id: UUID, cuisine_type: Optional[str] = None
    ) -> Optional[DietPlan]:
        """Get the newest weekly plan derived from a base plan."""
        query = (
            self.client.table("diet_plans")
            .select("*")
            .eq("user_id", str(user_id))
            .eq("is_weekly_plan", True)
            .eq("based_on_plan_id", str(base_plan_id))
        )
        if cuisine_type:
            query = query.eq("cuisine_type", cuisine_type)
        result = query.order("created_at", desc=True).limit(1).execute()
        if result.data:
            return DietPlan(**result.data[0])
        return None

    def get_diet_plans(self, user_id: UUID, limit: int = 20) -> List[DietPlan]:
        """Get diet plan history, newest first."""
        result = (
            self.client.table("diet_plans")
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [DietPlan(**p) for p in result.data]

    def get_diet_plan(self, user_id: UUID, plan_id: UUID) -> Optional[DietPlan]:
        """Get a diet plan owned by the user."""
        result = (
            self.client.table("diet_plans")
            .select("*")
            .eq("id", str(plan_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        if result.data:
            return DietPlan(**result.data[0])
        return None

    def delete_diet_plan(self, user_id: UUID, plan_id: UUID) -> bool:
        """Delete a diet plan owned by the user."""
        result = (
            self.client.table("diet_plans")
            .delete()
            .eq("id", str(plan_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        return bool(result.data)
