"""Services module."""

from .health_calculator import HealthCalculator
from .insights import HealthAI
from .tracking import TrackingService
from .report_generator import ReportGenerator
from .diet_planner import DietPlanner

__all__ = ["HealthCalculator", "HealthAI", "TrackingService", "ReportGenerator", "DietPlanner"]
