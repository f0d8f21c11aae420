"""AI-generated health insights with hardcoded fallbacks."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple

from pydantic import ValidationError

from welltrack.models.health import HealthMetrics, HealthMetricsHistory
from welltrack.models.report import Prediction, HealthReport
from welltrack.models.tracking import SleepRecord, FoodEntry, ExerciseSummary
from welltrack.services.ai_service import (
    AIProvider,
    AIProviderError,
    AIResponseError,
    extract_json,
    get_provider,
)
from welltrack.services.health_calculator import HealthCalculator

logger = logging.getLogger(__name__)

AI_ERRORS = (AIProviderError, AIResponseError)

METRICS_INSIGHT_KINDS = ("summary", "predictions", "lifestyle")
TRACKING_INSIGHT_KINDS = ("sleep", "activity", "nutrition", "exercise")
ADVANCED_INSIGHT_KINDS = ("sleep-trend", "activity-plan", "diet-plan", "workout-program")
NUTRITION_INSIGHT_KINDS = ("macro-balance", "meal-timing", "recommendations")

FALLBACK_SUMMARY = (
    "Based on your current health data, you're maintaining a reasonable fitness level "
    "with opportunities for optimization in key areas. Your nutrition and activity patterns "
    "suggest a balanced approach to wellness. Consider focusing on consistency in sleep and "
    "exercise habits to maximize health benefits over time."
)

FALLBACK_PREDICTIONS = [
    Prediction(
        title="Cardiovascular Health",
        prediction="If current trends continue, your cardiovascular fitness will likely improve over the next 3-6 months.",
        recommendation="Consider adding 30 minutes of moderate cardio exercise 3-4 times per week to further enhance heart health.",
        timeframe="Short-term",
    ),
    Prediction(
        title="Metabolic Health",
        prediction="Your current health metrics suggest a lower risk for metabolic disorders if healthy habits are maintained.",
        recommendation="Continue to monitor your blood sugar levels and maintain a balanced diet rich in whole foods.",
        timeframe="Long-term",
    ),
    Prediction(
        title="Physical Fitness",
        prediction="Maintaining your current activity level could help prevent age-related muscle loss and maintain mobility.",
        recommendation="Add strength training 2-3 times per week to build muscle mass and improve bone density.",
        timeframe="Long-term",
    ),
]

FALLBACK_NUTRITION_RECOMMENDATIONS = [
    "Consider increasing your protein intake to support muscle maintenance.",
    "Try to include more fruits and vegetables in your diet for essential vitamins.",
    "Stay hydrated by drinking at least 2 liters of water daily.",
    "Monitor your portion sizes to maintain a healthy calorie balance.",
    "Include sources of healthy fats like avocados, nuts and olive oil.",
]

FALLBACK_HEALTH_RECOMMENDATIONS = [
    "Incorporate 30 minutes of moderate exercise most days of the week.",
    "Practice stress reduction techniques like meditation or deep breathing for 10 minutes daily.",
    "Ensure you get 7-8 hours of quality sleep each night.",
    "Stay hydrated by drinking water throughout the day.",
    "Schedule regular health check-ups to monitor your progress.",
]

FALLBACK_DETAIL_RECOMMENDATIONS = [
    "Increase protein intake to 0.8-1g per pound of bodyweight for muscle maintenance.",
    "Incorporate more fiber-rich vegetables to improve digestion and nutrient absorption.",
    "Stay hydrated with 2-3 liters of water daily to support metabolism.",
    "Choose complex carbs like whole grains over refined sources for sustained energy.",
]

FALLBACK_MACRO_BALANCE = (
    "Your macronutrient balance appears reasonable, but consider increasing protein intake "
    "slightly for optimal muscle maintenance. Focus on whole food carbohydrate sources and "
    "ensure adequate healthy fat consumption from sources like olive oil, avocados, and nuts."
)

FALLBACK_MEAL_TIMING = (
    "Your meal timing appears consistent. Consider spacing meals 3-4 hours apart to maintain "
    "stable energy levels and blood sugar. Include a small protein-rich snack between lunch "
    "and dinner if that gap exceeds 5 hours."
)

DEFAULT_CALORIES_PER_REP = 0.5


@dataclass
class NutritionGuidance:
    """Daily targets and advice for the nutrition section of a report."""

    calorie_target: int
    protein_target: int
    carbs_target: int
    fats_target: int
    recommendations: List[str] = field(default_factory=list)


def _sleep_payload(records: List[SleepRecord]) -> str:
    return json.dumps([
        {
            "date": r.date.isoformat(),
            "duration": r.duration,
            "quality": r.quality,
            "startTime": r.start_time.isoformat(),
            "endTime": r.end_time.isoformat(),
        }
        for r in records
    ])


def _metrics_payload(metrics: HealthMetrics, history: List[HealthMetricsHistory]) -> str:
    current = metrics.model_dump(
        mode="json",
        exclude={"id", "user_id", "email", "phone", "emergency_contact", "emergency_phone", "created_at"},
    )
    return json.dumps(
        {
            "currentMetrics": current,
            "history": [
                {
                    "weight": h.weight,
                    "bloodPressure": h.blood_pressure,
                    "heartRate": h.heart_rate,
                    "sleepDuration": h.sleep_duration,
                    "recordedAt": h.recorded_at.isoformat(),
                }
                for h in history
            ],
        },
        indent=2,
    )


def _number(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number < 0:
        return None
    return number


class HealthAI:
    """Builds prompts from user data and falls back when the model fails."""

    def __init__(self, provider: Optional[AIProvider] = None):
        self.provider = provider or get_provider()

    async def _ask(self, prompt: str, json_mode: bool = False) -> str:
        text = await self.provider.generate_text(prompt, json_mode=json_mode)
        if not text or not text.strip():
            raise AIProviderError("Empty response from AI provider")
        return text.strip()

    async def _text_or_fallback(self, prompt: str, fallback: str, what: str) -> str:
        try:
            return await self._ask(prompt)
        except AI_ERRORS as e:
            logger.warning("Failed to generate %s, using fallback: %s", what, e)
            return fallback

    # Report content
    async def health_summary(
        self,
        metrics: Optional[HealthMetrics],
        sleep_records: List[SleepRecord],
        nutrition: Optional[Dict[str, float]] = None,
        activity: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, bool]:
        """Narrative 4-5 sentence summary. Returns (text, generated_by_ai)."""
        lines = [
            "As a health analytics expert, write a concise summary (4-5 sentences) of this person's overall health status:",
            "",
            "Health Data:",
        ]
        if metrics:
            lines += [
                f"- Height: {metrics.height} cm",
                f"- Weight: {metrics.weight} kg",
                f"- Age: {metrics.age} years",
                f"- Gender: {metrics.gender}",
                f"- Activity Level: {metrics.activity_level or 'Moderate'}",
            ]
            if metrics.smoking_status:
                lines.append(f"- Smoking Status: {metrics.smoking_status}")
            if metrics.diet_type:
                lines.append(f"- Diet Type: {metrics.diet_type}")

        avg_hours = HealthCalculator.average_sleep_hours(sleep_records)
        if avg_hours is not None:
            lines.append(f"Sleep: Average of {avg_hours:.1f} hours per night")

        if nutrition:
            lines += [
                "Nutrition (Daily Average):",
                f"  - Calories: {nutrition.get('calories', 0)}",
                f"  - Protein: {nutrition.get('protein_g', 0)}g",
                f"  - Carbs: {nutrition.get('carbs_g', 0)}g",
                f"  - Fats: {nutrition.get('fats_g', 0)}g",
            ]

        if activity:
            lines += [
                "Activity (last 7 days):",
                f"  - Workouts: {activity.get('workouts', 0)}",
                f"  - Active Days: {activity.get('active_days', 0)}",
                f"  - Calories Burned: {activity.get('calories_burned', 0)}",
            ]

        lines += [
            "",
            "Create a professional, balanced health summary that highlights strengths while acknowledging areas for improvement.",
            "Keep your response between 300-350 characters without counting spaces.",
        ]

        try:
            return await self._ask("\n".join(lines)), True
        except AI_ERRORS as e:
            logger.warning("Failed to generate health summary, using fallback: %s", e)
            return FALLBACK_SUMMARY, False

    async def health_predictions(
        self, metrics: Optional[HealthMetrics], health_score: int, bmi: Optional[float] = None
    ) -> Tuple[List[Prediction], bool]:
        """Up to four predictions. Returns (predictions, generated_by_ai)."""
        m = metrics
        prompt = f"""As a predictive health AI, analyze the following health data and provide personalized health predictions:

User Profile:
- Age: {m.age if m else 'unknown'}
- Gender: {m.gender if m else 'unknown'}
- Weight: {m.weight if m else 'unknown'} kg
- Height: {m.height if m else 'unknown'} cm
- BMI: {bmi if bmi is not None else 'unknown'}
- Blood Pressure: {(m.blood_pressure if m else None) or 'unknown'}
- Heart Rate: {(m.heart_rate if m else None) or 'unknown'} bpm
- Smoking Status: {(m.smoking_status if m else None) or 'unknown'}
- Chronic Conditions: {(m.chronic_conditions if m else None) or 'None'}
- Family Medical History: {(m.family_history if m else None) or 'None'}
- Health Score: {health_score}/100

Create 3-4 personalized health predictions that are:
1. Evidence-based and realistic
2. Not alarmist but informative
3. Focused on preventive care and positive outcomes
4. Include both short-term (weeks to months) and long-term (years) timeframes

Return the data as an array of prediction objects in this JSON format:
[
  {{
    "title": "Prediction Title",
    "prediction": "Detailed prediction description",
    "recommendation": "Related recommendation",
    "timeframe": "Short-term or Long-term"
  }}
]"""

        try:
            items = extract_json(await self._ask(prompt), "array")
            predictions = []
            for item in items[:4]:
                try:
                    predictions.append(Prediction(**item))
                except (TypeError, ValidationError):
                    continue
            if not predictions:
                raise AIResponseError("No valid predictions in AI response")
            return predictions, True
        except AI_ERRORS as e:
            logger.warning("Failed to generate predictions, using fallback: %s", e)
            return list(FALLBACK_PREDICTIONS), False

    async def nutrition_advice(
        self,
        metrics: Optional[HealthMetrics],
        health_score: int,
        nutrition: Optional[Dict[str, float]] = None,
    ) -> Tuple[NutritionGuidance, bool]:
        """Daily macro targets plus advice. Returns (guidance, generated_by_ai)."""
        weight = metrics.weight if metrics else 70
        height = metrics.height if metrics else 170
        age = metrics.age if metrics else 30
        gender = metrics.gender if metrics else "unknown"
        activity_level = metrics.activity_level if metrics else "moderate"
        goals = ", ".join(metrics.fitness_goals) if metrics and metrics.fitness_goals else "General health improvement"

        prompt = f"""As a nutrition expert AI, analyze the following user data and provide personalized nutrition targets and advice:

User Profile:
- Weight: {weight} kg
- Height: {height} cm
- Age: {age}
- Gender: {gender}
- Activity Level: {activity_level}
- Health Score: {health_score}/100
- Fitness Goals: {goals}
"""
        if nutrition:
            prompt += f"""
Current Nutrition (Average):
- Average Calorie Intake: {nutrition.get('calories', 0)} kcal
- Average Protein: {nutrition.get('protein_g', 0)}g
- Average Carbs: {nutrition.get('carbs_g', 0)}g
- Average Fats: {nutrition.get('fats_g', 0)}g
"""
        prompt += """
Based on scientific guidelines and the user's profile, provide:
1. Daily calorie target
2. Daily protein target (in grams)
3. Daily carbs target (in grams)
4. Daily fats target (in grams)
5. 3-5 nutritional recommendations specific to this user

Return the data in this JSON format:
{
  "calorieTarget": 0,
  "proteinTarget": 0,
  "carbsTarget": 0,
  "fatsTarget": 0,
  "recommendations": []
}"""

        try:
            data = extract_json(await self._ask(prompt, json_mode=True), "object")
            targets = [_number(data.get(key)) for key in ("calorieTarget", "proteinTarget", "carbsTarget", "fatsTarget")]
            if any(t is None for t in targets) or targets[0] <= 0:
                raise AIResponseError("Nutrition targets missing from AI response")
            raw = data.get("recommendations")
            recommendations = [str(r) for r in raw if str(r).strip()] if isinstance(raw, list) else []
            return NutritionGuidance(
                calorie_target=round(targets[0]),
                protein_target=round(targets[1]),
                carbs_target=round(targets[2]),
                fats_target=round(targets[3]),
                recommendations=recommendations or list(FALLBACK_NUTRITION_RECOMMENDATIONS),
            ), True
        except AI_ERRORS as e:
            logger.warning("Failed to generate nutrition advice, using fallback: %s", e)
            targets = HealthCalculator.fallback_nutrition_targets(weight, height, age, gender, activity_level)
            return NutritionGuidance(
                calorie_target=targets.calories,
                protein_target=targets.protein,
                carbs_target=targets.carbs,
                fats_target=targets.fats,
                recommendations=list(FALLBACK_NUTRITION_RECOMMENDATIONS),
            ), False

    async def report_description(self, report: HealthReport) -> str:
        """Cover-page description for a report PDF."""
        generated = report.generated_at.strftime("%m/%d/%Y")
        prompt = f"""Create a brief, professional description for a health report PDF with the following details:

- Health Score: {report.health_score}/100
- Date Generated: {generated}
- BMI: {report.bmi if report.bmi is not None else 'N/A'}
- Activity Level: {report.activity_level or 'N/A'}
- Risk Level: {report.risk_level or 'Low'}

Key areas covered in the report:
- Overall health assessment
- Vital signs monitoring
- Activity tracking
- Nutrition analysis
- Health predictions and recommendations

Write a formal description that would appear on the cover of this health report PDF.
Keep your response under 150 words."""

        fallback = (
            f"Comprehensive Health Status Report generated on {generated}. This document provides "
            "an analysis of your current health metrics, including vital signs, activity patterns, "
            "and nutritional intake. It includes personalized recommendations and future health "
            "predictions based on your data trends."
        )
        return await self._text_or_fallback(prompt, fallback, "report description")

    # Health metrics
    async def health_recommendations(self, metrics: HealthMetrics) -> List[str]:
        """3-5 recommendation strings for the metrics dashboard."""
        prompt = f"""As a health recommendations AI, provide 3-5 personalized health recommendations based on these metrics:
- Blood Pressure: {metrics.blood_pressure or 'unknown'}
- Heart Rate: {metrics.heart_rate or 'unknown'} bpm
- Weight: {metrics.weight} kg
- Height: {metrics.height} cm
- Age: {metrics.age}
- Gender: {metrics.gender}

Be specific, actionable, and practical. Focus on sustainable health improvements.
Return ONLY an array of recommendation strings, no explanations or other text - just the JSON array:"""

        try:
            text = await self._ask(prompt)
        except AI_ERRORS as e:
            logger.warning("Failed to generate health recommendations, using fallback: %s", e)
            return list(FALLBACK_HEALTH_RECOMMENDATIONS)

        try:
            items = extract_json(text, "array")
            recommendations = [str(r).strip() for r in items if str(r).strip()]
            if recommendations:
                return recommendations
        except AIResponseError:
            pass

        bullets = [
            re.sub(r"^[-•*]\s*", "", line.strip())
            for line in text.splitlines()
            if line.strip().startswith(("-", "•", "*"))
        ]
        bullets = [b for b in bullets if b]
        if bullets:
            return bullets

        logger.warning("Could not parse health recommendations, using fallback")
        return list(FALLBACK_HEALTH_RECOMMENDATIONS[:4])

    async def metrics_insight(
        self,
        kind: str,
        metrics: HealthMetrics,
        history: List[HealthMetricsHistory],
    ) -> str:
        """Markdown insight about the current metrics and their history."""
        user_data = _metrics_payload(metrics, history)

        if kind == "predictions":
            prompt = f"""You are a health assistant providing health predictions and recommendations.
Based on the following health data, provide 3-5 specific predictions about potential health risks
and actionable recommendations to improve health outcomes.
Consider trends in the historical data if available. Format your response in markdown with bullet points.
Keep your response under 300 words.

User Health Data:
{user_data}"""
        elif kind == "lifestyle":
            prompt = f"""You are a health assistant providing lifestyle recommendations.
Based on the following health data, provide 3-5 specific lifestyle changes that could improve
the person's overall health and wellbeing. Consider their current metrics, activity level,
and health goals. Format your response in markdown with bullet points.
Keep your response under 250 words.

User Health Data:
{user_data}"""
        else:
            prompt = f"""You are a health assistant providing a concise health summary.
Based on the following health data, provide a brief summary of the person's current health status.
Focus on key metrics and their implications. Keep your response under 200 words and format it in markdown.

User Health Data:
{user_data}"""

        fallback = f"Unable to generate {kind} insights at this time. Please try again later."
        return await self._text_or_fallback(prompt, fallback, f"{kind} metrics insight")

    # Tracking insights
    async def sleep_insights(self, records: List[SleepRecord]) -> str:
        if not records:
            return "No sleep data available to generate insights."

        prompt = f"""You are a health coach reviewing a user's sleep data.
Based on the following sleep records for the past {len(records)} days, provide 3-4 concise bullet points of insights and personalized recommendations:

{_sleep_payload(records)}

Durations are in minutes.

Focus on:
- Patterns in sleep duration and quality
- Consistency of sleep and wake times
- Areas for improvement
- Concrete, actionable advice to improve sleep health

Format the response with bullet points and keep it under 200 words."""

        return await self._text_or_fallback(
            prompt,
            "Unable to generate sleep insights at this time. Please try again later.",
            "sleep insights",
        )

    async def activity_insights(self, activity: Optional[Dict[str, Any]]) -> str:
        if not activity or not activity.get("workouts"):
            return "No activity data available to generate insights."

        prompt = f"""You are a fitness coach analyzing a user's weekly activity data.
Based on the following activity metrics, provide 3-4 concise bullet points of insights and personalized recommendations:

- Workouts logged: {activity.get('workouts', 0)} (goal: 5)
- Active days: {activity.get('active_days', 0)} of 7 (goal: 5)
- Calories Burned: {activity.get('calories_burned', 0)} (goal: 2,500 per week)
- Categories trained: {', '.join(activity.get('categories', [])) or 'none'}

Focus on:
- Progress towards weekly goals
- How activity is spread across the week
- Areas for improvement
- Specific, actionable suggestions to increase physical activity

Format the response with bullet points and keep it under 200 words."""

        return await self._text_or_fallback(
            prompt,
            "Unable to generate activity insights at this time. Please try again later.",
            "activity insights",
        )

    async def nutrition_insights(self, nutrition: Optional[Dict[str, float]]) -> str:
        if not nutrition:
            return "No nutrition data available to generate insights."

        prompt = f"""You are a nutritionist reviewing a user's daily nutrition intake.
Based on the following macronutrient data, provide 3-4 concise bullet points of insights and personalized recommendations:

- Total Calories: {nutrition.get('calories', 0)} (goal: 2,200)
- Protein: {nutrition.get('protein_g', 0)}g (goal: 90g)
- Carbohydrates: {nutrition.get('carbs_g', 0)}g (goal: 250g)
- Fat: {nutrition.get('fats_g', 0)}g (goal: 70g)

Focus on:
- Macronutrient balance
- Areas that need improvement
- How the user's intake compares to recommended values
- Specific food suggestions to improve their nutrition

Format the response with bullet points and keep it under 200 words."""

        return await self._text_or_fallback(
            prompt,
            "Unable to generate nutrition insights at this time. Please try again later.",
            "nutrition insights",
        )

    async def exercise_insights(self, summary: Optional[ExerciseSummary]) -> str:
        if not summary or not summary.logs:
            return "No exercise data available to generate insights."

        logs = json.dumps([
            {
                "name": log.name,
                "category": log.category,
                "sets": log.sets,
                "reps": log.reps,
                "caloriesBurned": log.calories_burned,
                "date": log.date.isoformat(),
            }
            for log in summary.logs[:7]
        ])
        stats = summary.stats
        prompt = f"""You are a personal trainer analyzing a user's exercise history.
Based on the following exercise data from their recent workouts, provide 3-4 concise bullet points of insights and personalized recommendations:

Exercise stats for today:
- Exercises completed: {stats.completed}
- Total sets: {stats.total_sets}
- Total reps: {stats.total_reps}
- Calories burned: {stats.total_calories}

Recent exercise logs (up to 7):
{logs}

Focus on:
- Exercise variety and balance
- Workout intensity and volume
- Progress patterns
- Specific recommendations to improve their fitness routine

Format the response with bullet points and keep it under 200 words."""

        return await self._text_or_fallback(
            prompt,
            "Unable to generate exercise insights at this time. Please try again later.",
            "exercise insights",
        )

    # Advanced analyses
    async def sleep_trend_analysis(self, records: List[SleepRecord]) -> str:
        if len(records) < 7:
            return "Not enough sleep data for trend analysis. Please track at least 7 days of sleep."

        prompt = f"""You are a sleep scientist analyzing long-term sleep data for a user.
Based on the following {len(records)} sleep records, provide a detailed analysis focusing on:

{_sleep_payload(records)}

1. Long-term patterns and cycles detected
2. Week-over-week or month-over-month changes
3. Correlation between sleep duration and quality
4. Scientific explanation of the observed patterns
5. Three specific, evidence-based recommendations to improve their sleep health

Format your response with clear section headings, bullet points where appropriate, and conclude with actionable recommendations. Keep the analysis between 300-400 words."""

        return await self._text_or_fallback(
            prompt,
            "Unable to generate detailed sleep analysis at this time. Please try again later.",
            "sleep trend analysis",
        )

    async def activity_plan(self, activity: Optional[Dict[str, Any]]) -> str:
        if not activity:
            return "No activity data available to generate a personalized plan."

        prompt = f"""You are a certified fitness coach designing a personalized activity plan.
Based on the following weekly activity metrics, create a 7-day activity plan:

- Current Workouts: {activity.get('workouts', 0)} of 5 per week goal
- Current Active Days: {activity.get('active_days', 0)} of 5 per week goal
- Current Calories Burned: {activity.get('calories_burned', 0)} of 2,500 per week goal

Create a structured 7-day activity plan that:
1. Builds progressively on their current metrics
2. Includes specific daily targets for each metric
3. Suggests 2-3 specific activities each day (walking, jogging, cycling, etc.)
4. Balances active days with recovery days
5. Is realistic and achievable based on their current levels

Format your response as a day-by-day plan with clear targets and activities for each day.
Keep the plan under 400 words total."""

        return await self._text_or_fallback(
            prompt,
            "Unable to generate personalized activity plan at this time. Please try again later.",
            "activity plan",
        )

    async def diet_suggestions(self, nutrition: Optional[Dict[str, float]]) -> str:
        if not nutrition:
            return "No nutrition data available to generate a diet plan."

        prompt = f"""You are a registered dietitian creating a personalized meal plan.
Based on the following current macronutrient intake:

- Total Calories: {nutrition.get('calories', 0)}/2,200 goal
- Protein: {nutrition.get('protein_g', 0)}g/90g goal
- Carbohydrates: {nutrition.get('carbs_g', 0)}g/250g goal
- Fat: {nutrition.get('fats_g', 0)}g/70g goal

Create a practical 3-day meal plan that:
1. Helps the user reach their macronutrient targets
2. Includes specific meals (breakfast, lunch, dinner, and snacks)
3. Uses common, accessible ingredients
4. Provides approximate macros for each suggested meal
5. Addresses any obvious imbalances in their current intake

Present the meal plan in a clear day-by-day format with specific meal suggestions.
Keep the plan under 400 words."""

        return await self._text_or_fallback(
            prompt,
            "Unable to generate personalized diet plan at this time. Please try again later.",
            "diet suggestions",
        )

    async def workout_program(self, summary: Optional[ExerciseSummary]) -> str:
        if not summary or not summary.logs:
            return "No exercise data available to generate a workout program."

        logs = json.dumps([
            {
                "name": log.name,
                "category": log.category,
                "sets": log.sets,
                "reps": log.reps,
                "date": log.date.isoformat(),
            }
            for log in summary.logs[:5]
        ])
        stats = summary.stats
        prompt = f"""You are a certified personal trainer designing a progressive workout program.
Based on the user's exercise history and current stats:

Current stats:
- Exercises completed: {stats.completed} today
- Total sets: {stats.total_sets}
- Total reps: {stats.total_reps}
- Calories burned: {stats.total_calories}

Recent exercise logs:
{logs}

Design a structured 4-week workout program that:
1. Builds upon their current exercise patterns
2. Progressively increases volume and intensity
3. Ensures balanced training across major muscle groups
4. Includes 3-4 workout days per week with specific exercises
5. Provides specific sets, reps, and rest periods for each exercise

Present the program week by week, with specific workouts for each day.
Keep the program under 500 words."""

        return await self._text_or_fallback(
            prompt,
            "Unable to generate personalized workout program at this time. Please try again later.",
            "workout program",
        )

    async def exercise_plan(self, metrics: Optional[HealthMetrics], environment: str = "home") -> str:
        """7-day exercise plan for home or gym training."""
        if not metrics:
            return "No health metrics available to generate an exercise plan."

        bmi = HealthCalculator.bmi(metrics.weight, metrics.height)
        bmi_text = f"{bmi} ({HealthCalculator.bmi_category(bmi)})" if bmi is not None else "unknown"
        equipment = (
            "home with minimal equipment" if environment == "home"
            else "a standard gym with typical equipment"
        )
        goals = ", ".join(metrics.fitness_goals) or "General fitness improvement"

        prompt = f"""You are a certified personal trainer creating a personalized {environment} exercise plan.
Based on the following health metrics:

- Age: {metrics.age} years
- Gender: {metrics.gender}
- Weight: {metrics.weight} kg
- Height: {metrics.height} cm
- BMI: {bmi_text}
- Activity Level: {metrics.activity_level or 'moderate'}
- Fitness Goals: {goals}
- Chronic Conditions: {metrics.chronic_conditions or 'None reported'}

Create a comprehensive 7-day {environment} exercise plan. For each day, structure your response as follows:

## Day 1: [Focus Area]
Focus: [Main muscle groups targeted]

### Warm-up:
[Brief warm-up instructions]

### Exercises:
**[Exercise Name]** - [Brief description]
- Sets: [number]
- Reps: [number or range]
- Target muscles: [muscle groups]
- Form tips: [1-2 key form instructions]

[Continue with 4-6 exercises total]

### Cool-down:
[Brief cool-down instructions]

The plan should:
1. Be tailored to their current fitness level ({metrics.activity_level or 'moderate'})
2. Include specific exercises with sets, reps, and form tips
3. Provide a balanced approach targeting all major muscle groups
4. Include 1-2 rest days positioned appropriately
5. For each day, include 4-6 specific exercises that can be performed at {equipment}

For REST days, simply indicate it's a rest day and provide recovery suggestions."""

        return await self._text_or_fallback(
            prompt,
            f"Unable to generate personalized {environment} exercise plan at this time. Please try again later.",
            f"{environment} exercise plan",
        )

    # Nutrition detail
    async def macro_balance_insights(self, nutrition: Dict[str, float]) -> str:
        calories = nutrition.get("calories") or 0
        if calories <= 0:
            return "No nutrition data available to generate insights."

        protein_g = nutrition.get("protein_g", 0)
        carbs_g = nutrition.get("carbs_g", 0)
        fats_g = nutrition.get("fats_g", 0)
        prompt = f"""As a nutritionist, analyze this user's macronutrient intake:
- Calories: {calories} kcal
- Protein: {protein_g}g
- Carbohydrates: {carbs_g}g
- Fats: {fats_g}g

Calculate the percentages:
- Protein: {round(protein_g * 4 / calories * 100)}%
- Carbs: {round(carbs_g * 4 / calories * 100)}%
- Fats: {round(fats_g * 9 / calories * 100)}%

Analyze if this macronutrient distribution is optimal based on general nutritional guidelines.
Provide 3-4 actionable recommendations for improving or maintaining this balance.
Write in a professional but friendly tone, keeping your response under 300 characters."""

        return await self._text_or_fallback(prompt, FALLBACK_MACRO_BALANCE, "macro balance insights")

    async def meal_timing_insights(self, entries: List[FoodEntry]) -> str:
        if not entries:
            return "No meal data available to analyze meal timing."

        ordered = sorted(entries, key=lambda e: e.recorded_at)
        times = [e.recorded_at.strftime("%I:%M %p").lstrip("0") for e in ordered]
        gaps = [
            (later.recorded_at - earlier.recorded_at).total_seconds() / 3600
            for earlier, later in zip(ordered, ordered[1:])
            if later.recorded_at.date() == earlier.recorded_at.date()
        ]
        average_gap = f"{round(sum(gaps) / len(gaps), 1)}" if gaps else "Unknown"

        prompt = f"""As a nutrition expert, analyze this meal timing pattern:
{', '.join(times)}

Average time between meals: {average_gap} hours

Provide 2-3 concise, actionable recommendations about meal timing for optimal energy levels and metabolism.
Your response should be under 250 characters."""

        return await self._text_or_fallback(prompt, FALLBACK_MEAL_TIMING, "meal timing insights")

    async def nutrition_recommendations(
        self, metrics: Optional[HealthMetrics], nutrition: Dict[str, float]
    ) -> List[str]:
        """Exactly four short nutrition recommendations."""
        if metrics:
            bmi = HealthCalculator.bmi(metrics.weight, metrics.height)
            profile = (
                f"- Age: {metrics.age} years\n"
                f"- Gender: {metrics.gender}\n"
                f"- BMI: {bmi if bmi is not None else 'Unknown'}\n"
                f"- Activity Level: {metrics.activity_level or 'Unknown'}"
            )
            goals = ", ".join(metrics.fitness_goals) or "Not specified"
        else:
            profile = "- No health metrics available"
            goals = "Not specified"

        prompt = f"""As a nutrition expert, provide 4 specific, actionable nutrition recommendations for this user:

Health Metrics:
{profile}

Health Goals: {goals}

Current Nutrition:
- Daily Calories: {nutrition.get('calories', 0)}
- Protein: {nutrition.get('protein_g', 0)}g
- Carbs: {nutrition.get('carbs_g', 0)}g
- Fats: {nutrition.get('fats_g', 0)}g

Provide EXACTLY 4 concise, specific nutrition recommendations as a JSON array of strings:
[
  "First recommendation",
  "Second recommendation",
  "Third recommendation",
  "Fourth recommendation"
]

Each recommendation should be 15-20 words maximum. Your response should include ONLY the JSON array with no additional text or explanation."""

        try:
            items = extract_json(await self._ask(prompt), "array")
        except AI_ERRORS as e:
            logger.warning("Failed to generate nutrition recommendations, using fallback: %s", e)
            return list(FALLBACK_DETAIL_RECOMMENDATIONS)

        recommendations = [str(r).strip() for r in items if str(r).strip()][:4]
        # Top up from the defaults when the model returned fewer than four
        for default in FALLBACK_DETAIL_RECOMMENDATIONS:
            if len(recommendations) >= 4:
                break
            if default not in recommendations:
                recommendations.append(default)
        return recommendations

    # Estimation helpers
    async def calories_per_rep(self, exercise_name: str) -> Tuple[float, bool]:
        """Calories burned per repetition. Returns (value, used_default)."""
        prompt = f"""Estimate the calories burned per repetition for the exercise: {exercise_name}.
Provide only a numeric value between 0.1 and 2.0. For context, a push-up burns about 0.5 calories per rep,
and a burpee burns about 1.0 calories per rep."""

        try:
            text = await self._ask(prompt)
        except AI_ERRORS as e:
            logger.warning("Failed to estimate calories per rep for %s: %s", exercise_name, e)
            return DEFAULT_CALORIES_PER_REP, True

        match = re.search(r"\d+(?:\.\d+)?", text)
        value = float(match.group(0)) if match else None
        if value is None or not 0.1 <= value <= 2.0:
            logger.warning("Invalid calories per rep %r for %s, using default", text, exercise_name)
            return DEFAULT_CALORIES_PER_REP, True
        return value, False

    async def analyze_food(self, description: str) -> Tuple[Dict[str, Any], bool]:
        """Estimate macros for a described meal. Returns (nutrition, generated_by_ai)."""
        prompt = f"""You are a nutrition expert analyzing a meal description.
Please identify the food and provide its estimated nutritional information for one serving:
"{description}"

I need the following information in JSON format:
- food_name: The name of the food (be specific)
- calories: Estimated calories per serving
- protein_g: Estimated protein in grams
- carbs_g: Estimated carbohydrates in grams
- fats_g: Estimated fats in grams
- fiber_g: Estimated fiber in grams

Return ONLY a valid JSON object with these fields, no additional explanations or text.
Example format: {{"food_name":"Apple","calories":95,"protein_g":0.5,"carbs_g":25,"fats_g":0.3,"fiber_g":4.4}}"""

        try:
            data = extract_json(await self._ask(prompt, json_mode=True), "object")
            result = {"food_name": str(data.get("food_name") or description).strip()}
            for key in ("calories", "protein_g", "carbs_g", "fats_g"):
                value = _number(data.get(key))
                if value is None:
                    raise AIResponseError(f"Missing {key} in food analysis")
                result[key] = round(value, 1)
            result["fiber_g"] = round(_number(data.get("fiber_g")) or 0, 1)
            return result, True
        except AI_ERRORS as e:
            logger.warning("Failed to analyze food %r, using estimate: %s", description, e)
            estimate = HealthCalculator.estimate_food_nutrition(description)
            return dict(estimate, food_name=description.strip()), False
