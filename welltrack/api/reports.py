"""Health report routes."""

import asyncio
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response

from welltrack.api.deps import (
    get_current_user_id,
    get_db,
    get_health_ai,
    get_mailer,
    get_report_generator,
)
from welltrack.config import Settings, get_settings
from welltrack.db.supabase import DatabaseService
from welltrack.models.report import (
    EmailReportRequest,
    HealthReport,
    HistoricalTrends,
    ReportListItem,
    ScheduledReportResult,
    SharedReport,
    ShareReportRequest,
    ShareReportResponse,
)
from welltrack.notifications.email import EmailDeliveryError, ReportMailer
from welltrack.services.insights import HealthAI
from welltrack.services.pdf_report import build_report_pdf, report_filename
from welltrack.services.report_generator import ReportGenerator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


def _share_link(settings: Settings, report_id: UUID) -> str:
    return f"{settings.app_base_url.rstrip('/')}/shared-report/{report_id}"


def _owned_report(db: DatabaseService, user_id: UUID, report_id: UUID) -> HealthReport:
    report = db.get_health_report(report_id, user_id=user_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.get("", response_model=HealthReport)
async def get_report(
    regenerate: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    generator: ReportGenerator = Depends(get_report_generator),
):
    """Latest report, generated when none exists or when regeneration is requested."""
    return await generator.get_or_generate(user_id, regenerate=regenerate)


@router.get("/history", response_model=List[ReportListItem])
async def report_history(
    limit: int = Query(50, ge=1, le=200),
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
):
    return db.get_health_reports(user_id, limit=limit)


@router.get("/trends", response_model=HistoricalTrends)
async def report_trends(
    user_id: UUID = Depends(get_current_user_id),
    generator: ReportGenerator = Depends(get_report_generator),
):
    return generator.historical_trends(user_id)


@router.post("/share", response_model=ShareReportResponse)
async def share_report(
    request: ShareReportRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    report = _owned_report(db, user_id, request.report_id)
    return ShareReportResponse(share_link=_share_link(settings, report.id))


@router.get("/shared/{report_id}", response_model=SharedReport)
async def shared_report(report_id: UUID, db: DatabaseService = Depends(get_db)):
    """Public view of a report. Owner details are left out."""
    report = db.get_health_report(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return SharedReport(**report.model_dump(exclude={"user_id", "pdf_url"}))


@router.post("/email")
async def email_report(
    request: EmailReportRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
    ai: HealthAI = Depends(get_health_ai),
    mailer: ReportMailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    report = _owned_report(db, user_id, request.report_id)
    description = await ai.report_description(report)
    pdf = await asyncio.to_thread(build_report_pdf, report, description)

    try:
        await mailer.send_report(report, request.email, _share_link(settings, report.id), pdf)
    except EmailDeliveryError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "message": "Report sent successfully"}


@router.post("/cron", response_model=ScheduledReportResult)
async def scheduled_reports(
    type: str = Query("monthly", pattern="^(weekly|monthly)$"),
    authorization: str = Header(None),
    generator: ReportGenerator = Depends(get_report_generator),
    settings: Settings = Depends(get_settings),
):
    """Generate reports for every user due one. Called by an external cron."""
    if not settings.cron_api_key or authorization != f"Bearer {settings.cron_api_key}":
        raise HTTPException(status_code=401, detail="Unauthorized")
    return await generator.generate_scheduled(type)


@router.get("/{report_id}", response_model=HealthReport)
async def get_report_by_id(
    report_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
):
    return _owned_report(db, user_id, report_id)


@router.delete("/{report_id}")
async def delete_report(
    report_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
):
    if not db.delete_health_report(user_id, report_id):
        raise HTTPException(status_code=404, detail="Report not found")
    return {"success": True, "message": "Report deleted successfully"}


@router.get("/{report_id}/pdf")
async def report_pdf(
    report_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: DatabaseService = Depends(get_db),
    ai: HealthAI = Depends(get_health_ai),
):
    report = _owned_report(db, user_id, report_id)
    description = await ai.report_description(report)
    pdf = await asyncio.to_thread(build_report_pdf, report, description)

    if not report.pdf_url:
        db.set_report_pdf_url(user_id, report.id, f"/api/v1/reports/{report.id}/pdf")

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(report)}"'},
    )
