"""AI insight routes."""

from datetime import datetime, timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from welltrack.api.deps import get_current_user_id, get_db, get_health_ai, get_tracking
from welltrack.db.supabase import DatabaseService
from welltrack.services.insights import (
    ADVANCED_INSIGHT_KINDS,
    NUTRITION_INSIGHT_KINDS,
    TRACKING_INSIGHT_KINDS,
    HealthAI,
)
from welltrack.services.tracking import TrackingService, average_daily_nutrition, summarize_activity

router = APIRouter(prefix="/insights", tags=["Insights"])


def _invalid_kind(kinds) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail=f"Invalid insight type. Use one of: {', '.join(kinds)}",
    )


@router.get("/advanced/{kind}")
async def advanced_insights(
    kind: str,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
    tracking: TrackingService = Depends(get_tracking),
    ai: HealthAI = Depends(get_health_ai),
):
    """Longer-horizon analyses over the last 30 days."""
    if kind not in ADVANCED_INSIGHT_KINDS:
        raise _invalid_kind(ADVANCED_INSIGHT_KINDS)

    if kind == "sleep-trend":
        text = await ai.sleep_trend_analysis(db.get_sleep_records(user_id, limit=30))
    elif kind == "activity-plan":
        logs = db.get_exercise_logs(user_id, start=datetime.now() - timedelta(days=30))
        text = await ai.activity_plan(summarize_activity(logs) if logs else None)
    elif kind == "diet-plan":
        text = await ai.diet_suggestions(tracking.recent_nutrition(user_id, days=30))
    else:
        summary = tracking.exercise_summary(user_id, limit=30)
        text = await ai.workout_program(summary if summary.logs else None)
    return {"type": kind, "insights": text}


@router.get("/nutrition/{kind}")
async def nutrition_insights(
    kind: str,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
    ai: HealthAI = Depends(get_health_ai),
):
    """Nutrition detail insights over the last 7 days of food logs."""
    if kind not in NUTRITION_INSIGHT_KINDS:
        raise _invalid_kind(NUTRITION_INSIGHT_KINDS)

    entries = db.get_food_entries(user_id, start=datetime.now() - timedelta(days=7))
    nutrition = average_daily_nutrition(entries) or {}

    if kind == "macro-balance":
        return {"type": kind, "insights": await ai.macro_balance_insights(nutrition)}
    if kind == "meal-timing":
        return {"type": kind, "insights": await ai.meal_timing_insights(entries)}

    metrics = db.get_latest_health_metrics(user_id)
    return {"type": kind, "recommendations": await ai.nutrition_recommendations(metrics, nutrition)}


@router.get("/{kind}")
async def tracking_insights(
    kind: str,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
    tracking: TrackingService = Depends(get_tracking),
    ai: HealthAI = Depends(get_health_ai),
):
    """Short insights over the last week of tracking data."""
    if kind not in TRACKING_INSIGHT_KINDS:
        raise _invalid_kind(TRACKING_INSIGHT_KINDS)

    if kind == "sleep":
        text = await ai.sleep_insights(db.get_sleep_records(user_id, limit=7))
    elif kind == "activity":
        logs = db.get_exercise_logs(user_id, start=datetime.now() - timedelta(days=7))
        text = await ai.activity_insights(summarize_activity(logs) if logs else None)
    elif kind == "nutrition":
        text = await ai.nutrition_insights(tracking.recent_nutrition(user_id, days=7))
    else:
        summary = tracking.exercise_summary(user_id)
        text = await ai.exercise_insights(summary if summary.logs else None)
    return {"type": kind, "insights": text}
