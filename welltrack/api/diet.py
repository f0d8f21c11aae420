"""Diet plan routes."""

import asyncio
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from welltrack.api.deps import get_current_user_id, get_db, get_diet_planner
from welltrack.db.supabase import DatabaseService
from welltrack.models.diet import DietPlan, DietPlanRequest
from welltrack.services.diet_planner import BasePlanNotFoundError, DietPlanner
from welltrack.services.pdf_report import build_diet_plan_pdf, diet_plan_filename

router = APIRouter(prefix="/diet-plan", tags=["Diet Plans"])


@router.post("", response_model=DietPlan, status_code=201)
async def create_diet_plan(
    request: DietPlanRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
    planner: DietPlanner = Depends(get_diet_planner),
):
    metrics = db.get_latest_health_metrics(user_id)
    if not metrics:
        raise HTTPException(status_code=404, detail="Health metrics not found")
    return await planner.create_plan(user_id, metrics, request)


@router.get("", response_model=DietPlan)
async def latest_diet_plan(
    user_id: UUID = Depends(get_current_user_id),
    planner: DietPlanner = Depends(get_diet_planner),
):
    plan = planner.latest_plan(user_id)
    if not plan:
        raise HTTPException(status_code=404, detail="No diet plan found")
    return plan


@router.get("/history", response_model=List[DietPlan])
async def diet_plan_history(
    limit: int = Query(20, ge=1, le=100),
    user_id: UUID = Depends(get_current_user_id),
    planner: DietPlanner = Depends(get_diet_planner),
):
    return planner.history(user_id, limit=limit)


@router.get("/weekly", response_model=DietPlan)
async def weekly_diet_plan(
    regenerate: bool = False,
    cuisine_type: Optional[str] = Query(None, alias="cuisineType"),
    user_id: UUID = Depends(get_current_user_id),
    planner: DietPlanner = Depends(get_diet_planner),
):
    """Seven-day plan derived from the latest base plan."""
    try:
        return await planner.weekly_plan(user_id, regenerate=regenerate, cuisine_type=cuisine_type)
    except BasePlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{plan_id}", response_model=DietPlan)
async def get_diet_plan(
    plan_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    planner: DietPlanner = Depends(get_diet_planner),
):
    plan = planner.get_plan(user_id, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Diet plan not found")
    return plan


@router.delete("/{plan_id}")
async def delete_diet_plan(
    plan_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    planner: DietPlanner = Depends(get_diet_planner),
):
    if not planner.delete_plan(user_id, plan_id):
        raise HTTPException(status_code=404, detail="Diet plan not found")
    return {"success": True, "message": "Diet plan deleted successfully"}


@router.get("/{plan_id}/pdf")
async def diet_plan_pdf(
    plan_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    planner: DietPlanner = Depends(get_diet_planner),
):
    """Download a diet plan as PDF."""
    plan = planner.get_plan(user_id, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Diet plan not found")

    pdf = await asyncio.to_thread(build_diet_plan_pdf, plan)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{diet_plan_filename(plan)}"'},
    )
