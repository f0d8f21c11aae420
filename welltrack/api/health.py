"""Health metrics routes."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from welltrack.api.deps import get_current_user, get_health_ai, get_tracking
from welltrack.models.health import (
    HealthCard,
    HealthMetricsCreate,
    HealthMetricsHistory,
    LatestHealthMetrics,
    MetricsSubmissionResult,
)
from welltrack.models.user import User
from welltrack.services.insights import HealthAI, METRICS_INSIGHT_KINDS
from welltrack.services.tracking import TrackingService

router = APIRouter(prefix="/health", tags=["Health Metrics"])


@router.post("/metrics", response_model=MetricsSubmissionResult)
async def submit_metrics(
    request: HealthMetricsCreate,
    user: User = Depends(get_current_user),
    tracking: TrackingService = Depends(get_tracking),
):
    """Submit the health form; every submission is also kept in history."""
    return tracking.record_health_metrics(user, request)


@router.get("/latest", response_model=LatestHealthMetrics)
async def latest_metrics(
    user: User = Depends(get_current_user),
    tracking: TrackingService = Depends(get_tracking),
):
    latest = tracking.latest_health_metrics(user.id)
    if not latest:
        raise HTTPException(status_code=404, detail="No health metrics found")
    return latest


@router.get("/history", response_model=List[HealthMetricsHistory])
async def metrics_history(
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    tracking: TrackingService = Depends(get_tracking),
):
    return tracking.metrics_history(user.id, limit=limit)


@router.get("/insights")
async def metrics_insights(
    type: str = Query("summary"),
    user: User = Depends(get_current_user),
    tracking: TrackingService = Depends(get_tracking),
    ai: HealthAI = Depends(get_health_ai),
):
    if type not in METRICS_INSIGHT_KINDS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid insight type. Use one of: {', '.join(METRICS_INSIGHT_KINDS)}",
        )

    latest = tracking.latest_health_metrics(user.id)
    if not latest:
        raise HTTPException(status_code=404, detail="No health metrics found")

    history = tracking.metrics_history(user.id, limit=5)
    text = await ai.metrics_insight(type, latest.metrics, history)
    return {"type": type, "insights": text}


@router.get("/recommendations")
async def health_recommendations(
    user: User = Depends(get_current_user),
    tracking: TrackingService = Depends(get_tracking),
    ai: HealthAI = Depends(get_health_ai),
):
    latest = tracking.latest_health_metrics(user.id)
    if not latest:
        raise HTTPException(status_code=404, detail="No health metrics found")
    return {"recommendations": await ai.health_recommendations(latest.metrics)}


@router.get("/card", response_model=HealthCard)
async def health_card(
    user: User = Depends(get_current_user),
    tracking: TrackingService = Depends(get_tracking),
):
    """Emergency health card: contacts, conditions, and latest vitals."""
    card = tracking.health_card(user)
    if not card:
        raise HTTPException(
            status_code=404,
            detail="Health card data is incomplete. Please complete your health profile.",
        )
    return card
