"""Health report models."""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from uuid import UUID


class Prediction(BaseModel):
    """A forward-looking health prediction."""

    title: str
    prediction: str
    recommendation: str
    timeframe: str


class ChartPoint(BaseModel):
    date: str
    value: float


class VitalSign(BaseModel):
    """Current value and trend for one vital."""

    title: str
    current: str
    trend: str = "stable"  # improving, worsening, stable
    last_measured: str = "N/A"
    chart_data: List[ChartPoint] = []


class NutritionAdvice(BaseModel):
    summary: str
    recommendations: List[str] = []


class NutritionTrends(BaseModel):
    """Monthly nutrition series for charting."""

    labels: List[str] = []
    calories: List[float] = []
    protein: List[float] = []
    carbs: List[float] = []
    fats: List[float] = []


class AIGeneratedFlags(BaseModel):
    """Which report sections came from the language model."""

    summary: bool = False
    vital_signs: bool = False
    nutrition_advice: bool = False
    predictions: bool = False
    activity_data: bool = False
    nutrition_trends: bool = False


class ReportHealthMetrics(BaseModel):
    height: Optional[float] = None
    weight: Optional[float] = None
    age: Optional[int] = None
    gender: Optional[str] = None


class HealthReportCreate(BaseModel):
    """Report content before it is persisted."""

    title: str = "Health Report"
    summary: str
    narrative_summary: Optional[str] = None
    health_score: int = Field(ge=0, le=100)
    bmi: Optional[float] = None
    activity_level: str
    risk_level: str
    health_metrics: ReportHealthMetrics = ReportHealthMetrics()
    predictions: List[Prediction] = []
    vital_signs: List[VitalSign] = []
    activity_data: Dict[str, Any] = {}
    nutrition_data: Dict[str, Any] = {}
    nutrition_advice: Optional[NutritionAdvice] = None
    nutrition_trends: NutritionTrends = NutritionTrends()
    ai_generated: AIGeneratedFlags = AIGeneratedFlags()
    generated_at: datetime


class HealthReport(HealthReportCreate):
    """Persisted health report snapshot."""

    id: UUID
    user_id: UUID
    pdf_url: Optional[str] = None

    class Config:
        from_attributes = True


class ReportListItem(BaseModel):
    """Report row in the history list."""

    id: UUID
    title: str
    health_score: int
    risk_level: str
    generated_at: datetime

    class Config:
        from_attributes = True


class SharedReport(HealthReportCreate):
    """Public view of a report, without owner details."""

    id: UUID


class ShareReportRequest(BaseModel):
    report_id: UUID


class ShareReportResponse(BaseModel):
    success: bool = True
    share_link: str


class EmailReportRequest(BaseModel):
    report_id: UUID
    email: EmailStr


class ScheduledReportResult(BaseModel):
    """Outcome of a scheduled report batch."""

    success: bool = True
    processed: int = 0
    errors: int = 0
    message: str = ""


class HistoricalTrends(BaseModel):
    """Monthly series across nutrition, sleep and vitals."""

    labels: List[str] = []
    nutrition: NutritionTrends = NutritionTrends()
    sleep_hours: List[float] = []
    sleep_quality: List[float] = []
    calories_burned: List[float] = []
    weight: List[Optional[float]] = []
    heart_rate: List[Optional[float]] = []
