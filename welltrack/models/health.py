"""Health metrics models."""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict
from datetime import date, datetime
from uuid import UUID


class HealthMetricsCreate(BaseModel):
    """A health form submission."""

    height: float = Field(gt=0, le=300)  # cm
    weight: float = Field(gt=0, le=500)  # kg
    age: int = Field(ge=1, le=120)
    gender: str
    activity_level: str = "moderate"
    date_of_birth: Optional[date] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    blood_type: Optional[str] = None
    smoking_status: Optional[str] = None
    diet_type: Optional[str] = None
    blood_pressure: Optional[str] = None  # "systolic/diastolic"
    heart_rate: Optional[int] = Field(None, ge=20, le=250)
    respiratory_rate: Optional[int] = Field(None, ge=4, le=60)
    temperature: Optional[float] = None
    sleep_duration: Optional[float] = Field(None, ge=0, le=24)  # hours
    stress_level: Optional[int] = Field(None, ge=0, le=10)
    chronic_conditions: Optional[str] = None
    allergies: Optional[str] = None
    medications: Optional[str] = None
    family_history: Optional[str] = None
    surgeries: Optional[str] = None
    fitness_goals: List[str] = []
    goal_deadlines: Dict[str, str] = {}


class HealthMetrics(HealthMetricsCreate):
    """The authoritative metrics snapshot for a user."""

    id: UUID
    user_id: UUID
    recorded_at: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HealthMetricsHistory(BaseModel):
    """One historical metrics submission."""

    id: UUID
    user_id: UUID
    height: float
    weight: float
    blood_pressure: Optional[str] = None
    heart_rate: Optional[int] = None
    respiratory_rate: Optional[int] = None
    temperature: Optional[float] = None
    sleep_duration: Optional[float] = None
    stress_level: Optional[int] = None
    activity_level: str
    recorded_at: datetime
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class LatestHealthMetrics(BaseModel):
    """Latest metrics plus history bookkeeping."""

    metrics: HealthMetrics
    history_count: int
    has_historical_data: bool


class MetricsSubmissionResult(BaseModel):
    """Response after a health form submission."""

    success: bool = True
    health_metrics: HealthMetrics
    history_entry: HealthMetricsHistory
    initial_health_data_submitted: bool = True
    history_record_count: int


class HealthCardPersonalInfo(BaseModel):
    full_name: str
    date_of_birth: Optional[date] = None
    blood_type: str = "Unknown"
    email: Optional[str] = None
    phone: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = None


class HealthCardConditions(BaseModel):
    allergies: List[str] = []
    chronic_conditions: List[str] = []
    medications: List[str] = []
    surgeries: List[str] = []


class HealthCardVitals(BaseModel):
    blood_pressure: Optional[str] = None
    heart_rate: Optional[int] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    temperature: Optional[float] = None
    respiratory_rate: Optional[int] = None


class HealthCard(BaseModel):
    """Emergency health card built from the latest metrics."""

    personal_info: HealthCardPersonalInfo
    medical_conditions: HealthCardConditions
    vital_signs: HealthCardVitals
    updated_at: datetime
