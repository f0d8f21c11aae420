"""Sleep, food, and exercise tracking routes."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from welltrack.api.deps import get_current_user_id, get_db, get_health_ai, get_tracking
from welltrack.db.supabase import DatabaseService
from welltrack.models.tracking import (
    CaloriesPerRep,
    CaloriesPerRepRequest,
    ExerciseLog,
    ExerciseLogCreate,
    ExercisePlanSave,
    ExerciseSummary,
    FoodAnalysisRequest,
    FoodEntry,
    FoodEntryCreate,
    FoodEntryUpdate,
    FoodStats,
    FoodSummary,
    SavedExercisePlan,
    SleepRecord,
    SleepRecordCreate,
    SleepRecordUpdate,
    SleepStats,
)
from welltrack.services.insights import HealthAI
from welltrack.services.tracking import TrackingService

sleep_router = APIRouter(prefix="/sleep", tags=["Sleep"])
food_router = APIRouter(prefix="/food", tags=["Food"])
exercise_router = APIRouter(prefix="/exercise", tags=["Exercise"])


# Sleep
@sleep_router.get("", response_model=List[SleepRecord])
async def list_sleep_records(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(30, ge=1, le=365),
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
):
    return db.get_sleep_records(user_id, start_date=start_date, end_date=end_date, limit=limit)


@sleep_router.post("", response_model=SleepRecord, status_code=201)
async def create_sleep_record(
    request: SleepRecordCreate,
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    try:
        return tracking.create_sleep_record(user_id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@sleep_router.get("/stats", response_model=SleepStats)
async def sleep_stats(
    days: int = Query(7, ge=1, le=365),
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    return tracking.sleep_stats(user_id, days=days)


@sleep_router.get("/{record_id}", response_model=SleepRecord)
async def get_sleep_record(
    record_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
):
    record = db.get_sleep_record(user_id, record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Sleep record not found")
    return record


@sleep_router.put("/{record_id}", response_model=SleepRecord)
async def update_sleep_record(
    record_id: UUID,
    request: SleepRecordUpdate,
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    try:
        record = tracking.update_sleep_record(user_id, record_id, request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not record:
        raise HTTPException(status_code=404, detail="Sleep record not found")
    return record


@sleep_router.delete("/{record_id}")
async def delete_sleep_record(
    record_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
):
    if not db.delete_sleep_record(user_id, record_id):
        raise HTTPException(status_code=404, detail="Sleep record not found")
    return {"success": True, "message": "Sleep record deleted successfully"}


# Food
@food_router.get("", response_model=List[FoodEntry])
async def list_food_entries(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = Query(50, ge=1, le=500),
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
):
    return db.get_food_entries(user_id, start=start, end=end, limit=limit)


@food_router.post("", response_model=FoodEntry, status_code=201)
async def create_food_entry(
    request: FoodEntryCreate,
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    return tracking.create_food_entry(user_id, request)


@food_router.get("/summary", response_model=FoodSummary)
async def food_summary(
    period: str = Query("today"),
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    try:
        return tracking.food_summary(user_id, period)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@food_router.get("/stats", response_model=FoodStats)
async def food_stats(
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    return tracking.food_stats(user_id)


@food_router.post("/analyze")
async def analyze_food(
    request: FoodAnalysisRequest,
    user_id: UUID = Depends(get_current_user_id),
    ai: HealthAI = Depends(get_health_ai),
):
    """Estimate nutrition for a free-text meal description."""
    nutrition, from_ai = await ai.analyze_food(request.description)
    return {"nutrition": nutrition, "ai_generated": from_ai}


@food_router.put("/{entry_id}", response_model=FoodEntry)
async def update_food_entry(
    entry_id: UUID,
    request: FoodEntryUpdate,
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    entry = tracking.update_food_entry(user_id, entry_id, request)
    if not entry:
        raise HTTPException(status_code=404, detail="Food entry not found")
    return entry


@food_router.delete("/{entry_id}")
async def delete_food_entry(
    entry_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    if not tracking.delete_food_entry(user_id, entry_id):
        raise HTTPException(status_code=404, detail="Food entry not found")
    return {"success": True, "message": "Food entry deleted successfully"}


# Exercise
@exercise_router.post("/log", response_model=ExerciseLog, status_code=201)
async def log_exercise(
    request: ExerciseLogCreate,
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    return await tracking.log_exercise(user_id, request)


@exercise_router.get("/log", response_model=ExerciseSummary)
async def exercise_summary(
    limit: int = Query(10, ge=1, le=100),
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    return tracking.exercise_summary(user_id, limit=limit)


@exercise_router.post("/calories-per-rep", response_model=CaloriesPerRep)
async def calories_per_rep(
    request: CaloriesPerRepRequest,
    user_id: UUID = Depends(get_current_user_id),
    ai: HealthAI = Depends(get_health_ai),
):
    value, used_default = await ai.calories_per_rep(request.exercise_name)
    note = "Used default value due to invalid AI response" if used_default else None
    return CaloriesPerRep(calories_per_rep=value, note=note)


@exercise_router.get("/plan")
async def exercise_plan(
    environment: str = Query("home", pattern="^(home|gym)$"),
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
    ai: HealthAI = Depends(get_health_ai),
):
    """Seven-day exercise plan for home or gym training."""
    metrics = db.get_latest_health_metrics(user_id)
    return {"environment": environment, "plan": await ai.exercise_plan(metrics, environment)}


@exercise_router.get("/plans", response_model=List[SavedExercisePlan])
async def saved_exercise_plans(
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
):
    return db.get_exercise_plans(user_id)


@exercise_router.post("/plans", response_model=SavedExercisePlan)
async def save_exercise_plan(
    request: ExercisePlanSave,
    user_id: UUID = Depends(get_current_user_id),
    tracking: TrackingService = Depends(get_tracking),
):
    """Keep a plan for its environment, replacing any earlier one."""
    return tracking.save_exercise_plan(user_id, request)
