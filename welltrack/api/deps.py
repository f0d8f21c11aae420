"""FastAPI dependencies shared by the routers."""

from functools import lru_cache
from uuid import UUID

from fastapi import Depends, Header, HTTPException

from welltrack.db.supabase import DatabaseService
from welltrack.models.user import User
from welltrack.notifications.email import ReportMailer
from welltrack.services.diet_planner import DietPlanner
from welltrack.services.insights import HealthAI
from welltrack.services.report_generator import ReportGenerator
from welltrack.services.tracking import TrackingService


@lru_cache()
def get_db() -> DatabaseService:
    return DatabaseService()


@lru_cache()
def get_health_ai() -> HealthAI:
    return HealthAI()


def get_mailer() -> ReportMailer:
    return ReportMailer()


def get_tracking(
    db: DatabaseService = Depends(get_db),
    ai: HealthAI = Depends(get_health_ai),
) -> TrackingService:
    return TrackingService(db=db, ai=ai)


def get_report_generator(
    db: DatabaseService = Depends(get_db),
    ai: HealthAI = Depends(get_health_ai),
) -> ReportGenerator:
    return ReportGenerator(db=db, ai=ai)


def get_diet_planner(
    db: DatabaseService = Depends(get_db),
    ai: HealthAI = Depends(get_health_ai),
) -> DietPlanner:
    return DietPlanner(db=db, provider=ai.provider)


def get_current_user_id(x_user_id: str = Header(None)) -> UUID:
    """
    Caller identity from the X-User-Id header.

    Authentication happens upstream; this service trusts the forwarded id.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_current_user(
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
) -> User:
    user = db.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
