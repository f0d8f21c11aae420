"""Tracking models for sleep, food, and exercise."""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, Literal, List, Dict
from datetime import date, datetime
from uuid import UUID


SleepQuality = Literal["poor", "fair", "good", "excellent"]
MealType = Literal["Breakfast", "Lunch", "Dinner", "Snack"]
ExerciseEnvironment = Literal["home", "gym"]


def naive_local(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class SleepRecordCreate(BaseModel):
    """Data for logging a night of sleep."""

    date: date
    start_time: datetime
    end_time: datetime
    duration: Optional[int] = Field(None, ge=0)  # minutes
    quality: SleepQuality
    notes: Optional[str] = ""

    @field_validator("start_time", "end_time")
    @classmethod
    def to_naive_local(cls, v):
        return naive_local(v)


class SleepRecordUpdate(BaseModel):
    """Partial update of a sleep record."""

    date: Optional[date] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=0)
    quality: Optional[SleepQuality] = None
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def to_naive_local(cls, v):
        return naive_local(v)


class SleepRecord(BaseModel):
    """Sleep record entry."""

    id: UUID
    user_id: UUID
    date: date
    start_time: datetime
    end_time: datetime
    duration: int
    quality: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SleepStats(BaseModel):
    """Sleep statistics over a window of days."""

    total_records: int = 0
    average_duration: int = 0
    quality_breakdown: Dict[str, int] = {"poor": 0, "fair": 0, "good": 0, "excellent": 0}
    average_quality: str = "N/A"
    latest_sleep: Optional[SleepRecord] = None
    streak: int = 0


class FoodEntryCreate(BaseModel):
    """Data for logging food."""

    food_name: str = Field(min_length=1)
    calories: float = Field(ge=0)
    protein_g: float = Field(0, ge=0)
    carbs_g: float = Field(0, ge=0)
    fats_g: float = Field(0, ge=0)
    fiber_g: Optional[float] = Field(None, ge=0)
    protein_percent: Optional[float] = Field(None, ge=0)
    carbs_percent: Optional[float] = Field(None, ge=0)
    fats_percent: Optional[float] = Field(None, ge=0)
    meal_type: MealType = "Snack"
    recorded_at: Optional[datetime] = None

    @field_validator("recorded_at")
    @classmethod
    def to_naive_local(cls, v):
        return naive_local(v)


class FoodEntryUpdate(BaseModel):
    """Partial update of a food entry."""

    food_name: Optional[str] = Field(None, min_length=1)
    calories: Optional[float] = Field(None, ge=0)
    protein_g: Optional[float] = Field(None, ge=0)
    carbs_g: Optional[float] = Field(None, ge=0)
    fats_g: Optional[float] = Field(None, ge=0)
    fiber_g: Optional[float] = Field(None, ge=0)
    meal_type: Optional[MealType] = None
    recorded_at: Optional[datetime] = None

    @field_validator("recorded_at")
    @classmethod
    def to_naive_local(cls, v):
        return naive_local(v)


class FoodEntry(BaseModel):
    """Food log entry."""

    id: UUID
    user_id: UUID
    food_name: str
    calories: float
    protein_g: float = 0
    carbs_g: float = 0
    fats_g: float = 0
    fiber_g: Optional[float] = None
    protein_percent: Optional[float] = None
    carbs_percent: Optional[float] = None
    fats_percent: Optional[float] = None
    meal_type: str = "Snack"
    recorded_at: datetime

    class Config:
        from_attributes = True


class DailyFoodHistory(BaseModel):
    """Per-day nutrition totals for a user."""

    id: UUID
    user_id: UUID
    date: date
    total_calories: float = 0
    total_protein: float = 0
    total_carbs: float = 0
    total_fats: float = 0
    entry_count: int = 0

    class Config:
        from_attributes = True


class FoodSummary(BaseModel):
    """Totals and daily averages for a period."""

    period: str
    entry_count: int = 0
    total_calories: float = 0
    total_protein: float = 0
    total_carbs: float = 0
    total_fats: float = 0
    daily_avg_calories: float = 0
    daily_avg_protein: float = 0
    daily_avg_carbs: float = 0
    daily_avg_fats: float = 0


class TopFood(BaseModel):
    """Frequently logged food."""

    food_name: str
    count: int
    avg_calories: float


class FoodStats(BaseModel):
    """Long-running food logging statistics."""

    total_entries: int = 0
    daily_averages: Dict[str, int] = {}
    top_foods: List[TopFood] = []
    highest_calorie_day: Optional[DailyFoodHistory] = None
    lowest_calorie_day: Optional[DailyFoodHistory] = None
    current_streak: int = 0
    longest_streak: int = 0


class FoodAnalysisRequest(BaseModel):
    """Free-text description of a meal to estimate."""

    description: str = Field(min_length=1)


class ExerciseLogCreate(BaseModel):
    """Data for logging an exercise."""

    name: str = Field(min_length=1)
    category: str = "other"
    sets: int = Field(ge=1)
    reps: int = Field(ge=1)
    calories_burned: Optional[float] = Field(None, ge=0)


class ExerciseLog(BaseModel):
    """Exercise log entry."""

    id: UUID
    user_id: UUID
    name: str
    category: str = "other"
    sets: int
    reps: int
    calories_burned: float
    date: datetime

    class Config:
        from_attributes = True


class ExerciseStats(BaseModel):
    """Exercise totals for a day."""

    completed: int = 0
    total_sets: int = 0
    total_reps: int = 0
    total_calories: float = 0


class ExerciseSummary(BaseModel):
    """Today's exercise stats plus recent logs."""

    stats: ExerciseStats
    logs: List[ExerciseLog] = []


class CaloriesPerRepRequest(BaseModel):
    exercise_name: str = Field(min_length=1)


class CaloriesPerRep(BaseModel):
    calories_per_rep: float
    note: Optional[str] = None


class ExercisePlanSave(BaseModel):
    """An exercise plan to keep for one training environment."""

    environment: ExerciseEnvironment
    plan: str = Field(min_length=1)


class SavedExercisePlan(BaseModel):
    """Stored exercise plan; one per user and environment."""

    id: UUID
    user_id: UUID
    environment: str
    plan: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
