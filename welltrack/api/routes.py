"""API router assembly."""

from fastapi import APIRouter

from welltrack.api import diet, health, insights, reports, tracking, users

router = APIRouter(prefix="/api/v1")
router.include_router(users.router)
router.include_router(health.router)
router.include_router(tracking.sleep_router)
router.include_router(tracking.food_router)
router.include_router(tracking.exercise_router)
router.include_router(insights.router)
router.include_router(reports.router)
router.include_router(diet.router)
