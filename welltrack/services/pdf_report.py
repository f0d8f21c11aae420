"""PDF rendering of health reports and diet plans."""

import io
import logging
from datetime import timedelta
from typing import Optional, List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, PageBreak

from welltrack.models.diet import DietPlan, PlanMeal
from welltrack.models.report import HealthReportCreate
from welltrack.services.health_calculator import HealthCalculator

logger = logging.getLogger(__name__)

PRIMARY = colors.HexColor("#1a5f7a")
HEADING = colors.HexColor("#2c3e50")
MUTED = colors.HexColor("#7f8c8d")


class NumberedCanvas(canvas.Canvas):
    """Canvas that defers page output so each footer can show the total page count."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.draw_footer(total)
            super().showPage()
        super().save()

    def draw_footer(self, total: int):
        self.setFont("Helvetica", 8)
        self.setFillColor(MUTED)
        self.drawCentredString(A4[0] / 2, 0.5 * inch, f"Page {self._pageNumber} of {total}")


def report_filename(report: HealthReportCreate) -> str:
    return f"WellTrack-Health-Report-{report.generated_at.strftime('%Y-%m-%d')}.pdf"


def _styles():
    styles = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "ReportTitle",
            parent=styles["Heading1"],
            fontSize=22,
            spaceAfter=6,
            alignment=TA_CENTER,
            textColor=PRIMARY,
        ),
        "date": ParagraphStyle(
            "ReportDate",
            parent=styles["Normal"],
            alignment=TA_CENTER,
            textColor=MUTED,
            spaceAfter=18,
        ),
        "section": ParagraphStyle(
            "Section",
            parent=styles["Heading2"],
            fontSize=14,
            spaceBefore=16,
            spaceAfter=8,
            textColor=HEADING,
        ),
        "subsection": ParagraphStyle(
            "Subsection",
            parent=styles["Heading3"],
            fontSize=11,
            spaceBefore=8,
            spaceAfter=4,
            fontName="Helvetica-Bold",
        ),
        "body": ParagraphStyle(
            "Body",
            parent=styles["Normal"],
            fontSize=10,
            leading=14,
            spaceAfter=6,
        ),
        "score": ParagraphStyle(
            "Score",
            parent=styles["Heading1"],
            fontSize=28,
            alignment=TA_CENTER,
            textColor=PRIMARY,
            spaceAfter=4,
        ),
    }


def _table(rows: List[List[str]], widths: List[float]) -> Table:
    table = Table(rows, colWidths=widths, hAlign="LEFT")
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), PRIMARY),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#d0d7de")),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f4f6f8")]),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    return table


def _text(value: Optional[str]) -> str:
    return escape(value or "").replace("\n", "<br/>")


def build_report_pdf(report: HealthReportCreate, description: Optional[str] = None) -> bytes:
    """Render a report to PDF bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.9 * inch,
        title=report.title,
    )
    s = _styles()
    content = []

    content.append(Paragraph(_text(report.title), s["title"]))
    content.append(Paragraph(f"Generated on {report.generated_at.strftime('%B %d, %Y')}", s["date"]))
    if description:
        content.append(Paragraph(_text(description), s["body"]))

    content.append(Paragraph(f"{report.health_score}/100", s["score"]))
    content.append(Paragraph(
        f"Health Score: {HealthCalculator.score_category(report.health_score)}",
        ParagraphStyle("ScoreLabel", parent=s["body"], alignment=TA_CENTER),
    ))
    content.append(Paragraph("Summary", s["section"]))
    content.append(Paragraph(_text(report.summary), s["body"]))

    m = report.health_metrics
    content.append(Paragraph("Key Metrics", s["section"]))
    content.append(_table(
        [
            ["Metric", "Value"],
            ["BMI", f"{report.bmi}" if report.bmi is not None else "N/A"],
            ["Activity Level", report.activity_level],
            ["Risk Level", report.risk_level],
            ["Height", f"{m.height} cm" if m.height else "N/A"],
            ["Weight", f"{m.weight} kg" if m.weight else "N/A"],
            ["Age", f"{m.age}" if m.age else "N/A"],
        ],
        [2.5 * inch, 3.5 * inch],
    ))

    if report.narrative_summary:
        content.append(Paragraph("Health Overview", s["section"]))
        content.append(Paragraph(_text(report.narrative_summary), s["body"]))

    if report.vital_signs:
        content.append(Paragraph("Vital Signs", s["section"]))
        rows = [["Vital", "Current", "Trend", "Last Measured"]]
        for vital in report.vital_signs:
            rows.append([vital.title, vital.current, vital.trend.title(), vital.last_measured])
        content.append(_table(rows, [1.8 * inch, 1.5 * inch, 1.2 * inch, 1.5 * inch]))

    if report.predictions:
        content.append(Paragraph("Health Predictions", s["section"]))
        for prediction in report.predictions:
            content.append(Paragraph(
                f"{_text(prediction.title)} ({_text(prediction.timeframe)})", s["subsection"]
            ))
            content.append(Paragraph(_text(prediction.prediction), s["body"]))
            content.append(Paragraph(f"<i>Recommendation:</i> {_text(prediction.recommendation)}", s["body"]))

    if report.nutrition_advice:
        content.append(Paragraph("Nutrition Advice", s["section"]))
        content.append(Paragraph(_text(report.nutrition_advice.summary), s["body"]))
        for recommendation in report.nutrition_advice.recommendations:
            content.append(Paragraph(f"&bull; {_text(recommendation)}", s["body"]))

    content.append(Spacer(1, 0.3 * inch))
    content.append(Paragraph(
        "This report is for informational purposes only and is not a substitute for professional medical advice.",
        ParagraphStyle("Disclaimer", parent=s["body"], fontSize=8, textColor=MUTED),
    ))

    doc.build(content, canvasmaker=NumberedCanvas)
    pdf = buffer.getvalue()
    report_id = getattr(report, "id", None)
    logger.info("Rendered PDF for report %s (%d bytes)", report_id, len(pdf))
    return pdf


def diet_plan_filename(plan: DietPlan) -> str:
    day = plan.week_start_date or plan.created_at.date()
    prefix = "weekly-meal-plan" if plan.is_weekly_plan else "meal-plan"
    return f"{prefix}-{day.isoformat()}.pdf"


def _meal_block(title: str, meal: PlanMeal, s: dict) -> list:
    block = [
        Paragraph(_text(title), s["subsection"]),
        Paragraph(
            f"Total: {meal.calories} kcal (P: {meal.protein}g | C: {meal.carbs}g | F: {meal.fat}g)",
            s["body"],
        ),
    ]
    for food in meal.foods:
        block.append(Paragraph(f"&bull; {_text(food.name)}: {_text(food.portion)}", s["body"]))
    return block


def build_diet_plan_pdf(plan: DietPlan) -> bytes:
    """Render a diet plan to PDF bytes; weekly plans get one page per day."""
    buffer = io.BytesIO()
    title = "Weekly Meal Plan" if plan.is_weekly_plan else "Meal Plan"
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.9 * inch,
        title=title,
    )
    s = _styles()
    content = [
        Paragraph(title, s["title"]),
        Paragraph(f"Generated on {plan.created_at.strftime('%B %d, %Y')}", s["date"]),
        Paragraph("Plan Overview", s["section"]),
        _table(
            [
                ["Detail", "Value"],
                ["Diet Type", (plan.cuisine_type or plan.diet_type or "Personalized").title()],
                ["Daily Calories", f"{plan.daily_calories} kcal"],
                ["Goal Weight", f"{plan.goal_weight:g} kg"],
                ["Timeframe", f"{plan.timeframe} weeks"],
            ],
            [2.5 * inch, 3.5 * inch],
        ),
    ]

    if plan.is_weekly_plan and plan.weekly_plan_data:
        for index, day in enumerate(plan.weekly_plan_data):
            content.append(PageBreak())
            heading = day.day
            if plan.week_start_date:
                heading += f" - {(plan.week_start_date + timedelta(days=index)).strftime('%B %d, %Y')}"
            content.append(Paragraph(_text(heading), s["section"]))
            for name in ("breakfast", "lunch", "dinner"):
                content.extend(_meal_block(name.title(), getattr(day.meals, name), s))
    else:
        content.append(Paragraph("Meals", s["section"]))
        for meal in plan.meals:
            content.extend(_meal_block(meal.name, meal, s))

    content.append(Spacer(1, 0.3 * inch))
    content.append(Paragraph(
        "This meal plan is based on the information you provided and general guidelines. "
        "It is not a substitute for professional nutritional advice.",
        ParagraphStyle("Disclaimer", parent=s["body"], fontSize=8, textColor=MUTED),
    ))

    doc.build(content, canvasmaker=NumberedCanvas)
    pdf = buffer.getvalue()
    logger.info("Rendered PDF for diet plan %s (%d bytes)", plan.id, len(pdf))
    return pdf
