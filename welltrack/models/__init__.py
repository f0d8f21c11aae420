"""Data models for WellTrack."""

from .user import User, UserCreate, UserUpdate
from .health import HealthMetrics, HealthMetricsCreate, HealthMetricsHistory
from .tracking import SleepRecord, FoodEntry, DailyFoodHistory, ExerciseLog
from .report import HealthReport, Prediction, VitalSign, NutritionAdvice
from .diet import DietPlan, PlanMeal, FoodItem

__all__ = [
    "User",
    "UserCreate",
    "UserUpdate",
    "HealthMetrics",
    "HealthMetricsCreate",
    "HealthMetricsHistory",
    "SleepRecord",
    "FoodEntry",
    "DailyFoodHistory",
    "ExerciseLog",
    "HealthReport",
    "Prediction",
    "VitalSign",
    "NutritionAdvice",
    "DietPlan",
    "PlanMeal",
    "FoodItem",
]
