"""Diet plan models."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from uuid import UUID


class FoodItem(BaseModel):
    """Food with a portion description."""

    name: str
    portion: str = "1 serving"


class PlanMeal(BaseModel):
    """A single meal in a diet plan."""

    name: str
    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fat: int = 0
    foods: List[FoodItem] = []


class DayMeals(BaseModel):
    breakfast: PlanMeal
    lunch: PlanMeal
    dinner: PlanMeal


class WeeklyDayPlan(BaseModel):
    """Meals for one day of the week."""

    day: str
    meals: DayMeals


class DietPlanRequest(BaseModel):
    """Options for generating a diet plan."""

    goal_weight: Optional[float] = Field(None, gt=0)
    timeframe: int = Field(12, ge=1)  # weeks
    diet_type: str = "balanced"
    meal_count: int = Field(3, ge=1, le=6)
    include_snacks: bool = True
    auto_generate: bool = False


class DietPlanCreate(BaseModel):
    """Diet plan content before it is persisted."""

    daily_calories: int
    goal_weight: float
    timeframe: int
    diet_type: str
    meal_count: int
    include_snacks: bool = True
    meals: List[PlanMeal] = []
    is_weekly_plan: bool = False
    based_on_plan_id: Optional[UUID] = None
    weekly_plan_data: List[WeeklyDayPlan] = []
    week_start_date: Optional[date] = None
    cuisine_type: Optional[str] = None
    ai_generated: bool = True


class DietPlan(DietPlanCreate):
    """Persisted diet plan."""

    id: UUID
    user_id: UUID
    created_at: datetime

    class Config:
        from_attributes = True
