"""Health score, BMI, and energy calculations."""

from typing import Optional, List, Dict, Tuple
from dataclasses import dataclass

from welltrack.models.health import HealthMetrics
from welltrack.models.tracking import SleepRecord


@dataclass
class NutritionTargets:
    """Daily nutrition targets."""

    calories: int
    protein: int
    carbs: int
    fats: int


RISK_ORDER = ["Low", "Moderate", "High"]


class HealthCalculator:
    """Threshold arithmetic behind scores, levels, and calorie targets."""

    # Activity level multipliers
    ACTIVITY_MULTIPLIERS = {
        "sedentary": 1.2,       # Little or no exercise
        "light": 1.375,         # Light exercise 1-3 days/week
        "moderate": 1.55,       # Moderate exercise 3-5 days/week
        "active": 1.725,        # Hard exercise 6-7 days/week
        "very active": 1.9,     # Very hard exercise, physical job
    }

    SLEEP_QUALITY_SCORES = {
        "poor": 1,
        "fair": 2,
        "good": 3,
        "excellent": 4,
    }

    # Calorie change applied for weight goals
    WEIGHT_LOSS_ADJUSTMENT = -500
    WEIGHT_GAIN_ADJUSTMENT = 300

    @staticmethod
    def bmi(weight_kg: Optional[float], height_cm: Optional[float]) -> Optional[float]:
        """Body mass index rounded to one decimal."""
        if not weight_kg or not height_cm or weight_kg <= 0 or height_cm <= 0:
            return None
        height_m = height_cm / 100
        return round(weight_kg / (height_m * height_m), 1)

    @staticmethod
    def bmi_category(bmi: float) -> str:
        if bmi < 18.5:
            return "underweight"
        if bmi < 25:
            return "normal weight"
        if bmi < 30:
            return "overweight"
        return "obese"

    @staticmethod
    def parse_blood_pressure(value: Optional[str]) -> Optional[Tuple[int, int]]:
        """Split a "120/80" reading into (systolic, diastolic)."""
        if not value:
            return None
        parts = value.strip().split("/")
        if len(parts) != 2:
            return None
        try:
            systolic, diastolic = int(parts[0].strip()), int(parts[1].strip())
        except ValueError:
            return None
        if systolic <= 0 or diastolic <= 0:
            return None
        return systolic, diastolic

    @classmethod
    def sleep_quality_score(cls, quality: str) -> int:
        return cls.SLEEP_QUALITY_SCORES.get((quality or "").lower(), 0)

    @classmethod
    def average_sleep_quality(cls, sleep_records: List[SleepRecord]) -> Optional[float]:
        if not sleep_records:
            return None
        total = sum(cls.sleep_quality_score(r.quality) for r in sleep_records)
        return total / len(sleep_records)

    @staticmethod
    def average_sleep_hours(sleep_records: List[SleepRecord]) -> Optional[float]:
        if not sleep_records:
            return None
        return sum(r.duration for r in sleep_records) / len(sleep_records) / 60

    @classmethod
    def health_score(
        cls,
        metrics: Optional[HealthMetrics],
        sleep_records: List[SleepRecord],
        bmi: Optional[float],
    ) -> int:
        """
        Sum fixed point buckets for blood pressure, heart rate, BMI, and sleep.

        Missing vitals contribute nothing. Sleep always contributes at least 5.
        """
        score = 0

        if metrics:
            bp = cls.parse_blood_pressure(metrics.blood_pressure)
            if bp:
                systolic, diastolic = bp
                if systolic < 120 and diastolic < 80:
                    score += 20
                elif systolic < 130 and diastolic < 85:
                    score += 15
                else:
                    score += 10

            if metrics.heart_rate:
                if 60 <= metrics.heart_rate <= 100:
                    score += 20
                else:
                    score += 10

        if bmi is not None:
            if 18.5 <= bmi <= 24.9:
                score += 20
            elif 25 <= bmi <= 29.9:
                score += 10
            else:
                score += 5

        avg_quality = cls.average_sleep_quality(sleep_records)
        if avg_quality is not None and avg_quality >= 3:
            score += 20
        elif avg_quality is not None and avg_quality >= 2:
            score += 10
        else:
            score += 5

        return max(0, min(100, score))

    @classmethod
    def activity_level(
        cls, metrics: Optional[HealthMetrics], sleep_records: List[SleepRecord]
    ) -> str:
        """Classify activity from average sleep hours and resting heart rate."""
        if not metrics or not sleep_records:
            return "Low"

        avg_hours = cls.average_sleep_hours(sleep_records)
        heart_rate = metrics.heart_rate
        if avg_hours >= 7 and heart_rate and 60 <= heart_rate <= 100:
            return "High"
        if avg_hours >= 5:
            return "Moderate"
        return "Low"

    @classmethod
    def risk_level(
        cls,
        metrics: Optional[HealthMetrics],
        bmi: Optional[float],
        sleep_records: List[SleepRecord],
    ) -> str:
        """
        Combine risk factors into Low, Moderate, or High.

        Each factor can only raise the level.
        """
        levels = ["Low"]

        if metrics:
            bp = cls.parse_blood_pressure(metrics.blood_pressure)
            if bp:
                systolic, diastolic = bp
                if systolic >= 140 or diastolic >= 90:
                    levels.append("High")
                elif systolic >= 130 or diastolic >= 85:
                    levels.append("Moderate")

            if metrics.heart_rate and not 60 <= metrics.heart_rate <= 100:
                levels.append("Moderate")

        if bmi is not None:
            if bmi < 18.5 or bmi >= 30:
                levels.append("High")
            elif bmi >= 25:
                levels.append("Moderate")

        avg_quality = cls.average_sleep_quality(sleep_records)
        if avg_quality is not None:
            if avg_quality < 1.5:
                levels.append("High")
            elif avg_quality < 2.5:
                levels.append("Moderate")

        return max(levels, key=RISK_ORDER.index)

    @staticmethod
    def score_category(score: int) -> str:
        if score >= 80:
            return "Excellent"
        if score >= 70:
            return "Good"
        if score >= 60:
            return "Fair"
        return "Needs Improvement"

    @classmethod
    def report_summary(
        cls, score: int, activity_level: str, bmi: Optional[float], risk_level: str
    ) -> str:
        """Deterministic summary block shown at the top of every report."""
        if bmi is not None:
            bmi_text = f"Your BMI is {bmi}, which is considered {cls.bmi_category(bmi)}."
        else:
            bmi_text = "BMI data is not available."

        return "\n".join([
            f"Health Score: {score}/100",
            f"Activity Level: {activity_level}",
            f"Risk Level: {risk_level}",
            bmi_text,
        ])

    @staticmethod
    def macro_percentages(protein_g: float, carbs_g: float, fats_g: float) -> Dict[str, int]:
        """Share of calories from each macro (protein & carbs = 4 cal/g, fat = 9 cal/g)."""
        protein_cal = protein_g * 4
        carbs_cal = carbs_g * 4
        fats_cal = fats_g * 9
        total = protein_cal + carbs_cal + fats_cal
        if total <= 0:
            return {"protein_percent": 0, "carbs_percent": 0, "fats_percent": 0}

        return {
            "protein_percent": round(protein_cal / total * 100),
            "carbs_percent": round(carbs_cal / total * 100),
            "fats_percent": round(fats_cal / total * 100),
        }

    @staticmethod
    def calculate_bmr(weight_kg: float, height_cm: float, age: int, gender: str) -> float:
        """Basal Metabolic Rate using the Mifflin-St Jeor equation."""
        if (gender or "").lower() == "female":
            return 10 * weight_kg + 6.25 * height_cm - 5 * age - 161
        return 10 * weight_kg + 6.25 * height_cm - 5 * age + 5

    @classmethod
    def activity_multiplier(cls, activity_level: Optional[str]) -> float:
        level = (activity_level or "").lower().replace("_", " ").replace("-", " ")
        return cls.ACTIVITY_MULTIPLIERS.get(level, 1.55)

    @classmethod
    def daily_calories(
        cls,
        weight_kg: float,
        height_cm: float,
        age: int,
        gender: str,
        activity_level: Optional[str],
        goal_weight: Optional[float] = None,
    ) -> int:
        """Maintenance calories shifted toward the goal weight."""
        bmr = cls.calculate_bmr(weight_kg, height_cm, age, gender)
        maintenance = round(bmr * cls.activity_multiplier(activity_level))

        if goal_weight is not None and goal_weight < weight_kg:
            return maintenance + cls.WEIGHT_LOSS_ADJUSTMENT
        if goal_weight is not None and goal_weight > weight_kg:
            return maintenance + cls.WEIGHT_GAIN_ADJUSTMENT
        return maintenance

    @classmethod
    def fallback_nutrition_targets(
        cls,
        weight_kg: Optional[float],
        height_cm: Optional[float],
        age: Optional[int],
        gender: Optional[str],
        activity_level: Optional[str] = None,
    ) -> NutritionTargets:
        """
        Targets from the Harris-Benedict equation when no AI advice is available.

        Protein is 1.6 g/kg, carbs 45% and fats 30% of calories.
        """
        weight = weight_kg or 70
        height = height_cm or 170
        age = age or 30

        if (gender or "").lower() == "male":
            bmr = 88.362 + 13.397 * weight + 4.799 * height - 5.677 * age
        else:
            bmr = 447.593 + 9.247 * weight + 3.098 * height - 4.330 * age

        calories = round(bmr * cls.activity_multiplier(activity_level))
        return NutritionTargets(
            calories=calories,
            protein=round(weight * 1.6),
            carbs=round(calories * 0.45 / 4),
            fats=round(calories * 0.3 / 9),
        )

    @staticmethod
    def estimate_food_nutrition(food_description: str) -> Dict[str, float]:
        """
        Estimate nutrition from a food description (rule-based fallback).

        Returns approximate calories and macro grams for one serving.
        """
        food_lower = food_description.lower()

        # Common food estimates per serving
        estimates = {
            # Common meals
            "salad bowl": {"calories": 300, "protein_g": 15, "carbs_g": 30, "fats_g": 12, "fiber_g": 6},
            "sandwich": {"calories": 350, "protein_g": 15, "carbs_g": 40, "fats_g": 15, "fiber_g": 3},
            "burger": {"calories": 500, "protein_g": 25, "carbs_g": 40, "fats_g": 25, "fiber_g": 2},
            "pizza": {"calories": 285, "protein_g": 12, "carbs_g": 36, "fats_g": 10, "fiber_g": 2},
            "smoothie": {"calories": 250, "protein_g": 8, "carbs_g": 45, "fats_g": 5, "fiber_g": 4},
            "protein bar": {"calories": 200, "protein_g": 20, "carbs_g": 20, "fats_g": 8, "fiber_g": 3},

            # Proteins
            "chicken": {"calories": 165, "protein_g": 31, "carbs_g": 0, "fats_g": 4, "fiber_g": 0},
            "beef": {"calories": 250, "protein_g": 26, "carbs_g": 0, "fats_g": 15, "fiber_g": 0},
            "fish": {"calories": 150, "protein_g": 25, "carbs_g": 0, "fats_g": 5, "fiber_g": 0},
            "egg": {"calories": 78, "protein_g": 6, "carbs_g": 1, "fats_g": 5, "fiber_g": 0},
            "tofu": {"calories": 80, "protein_g": 8, "carbs_g": 2, "fats_g": 4, "fiber_g": 1},
            "paneer": {"calories": 265, "protein_g": 18, "carbs_g": 4, "fats_g": 20, "fiber_g": 0},
            "dal": {"calories": 180, "protein_g": 12, "carbs_g": 30, "fats_g": 3, "fiber_g": 8},

            # Carbs
            "rice": {"calories": 200, "protein_g": 4, "carbs_g": 45, "fats_g": 0, "fiber_g": 1},
            "bread": {"calories": 80, "protein_g": 3, "carbs_g": 15, "fats_g": 1, "fiber_g": 1},
            "roti": {"calories": 120, "protein_g": 3, "carbs_g": 18, "fats_g": 4, "fiber_g": 3},
            "pasta": {"calories": 220, "protein_g": 8, "carbs_g": 43, "fats_g": 1, "fiber_g": 3},
            "potato": {"calories": 160, "protein_g": 4, "carbs_g": 37, "fats_g": 0, "fiber_g": 4},
            "oatmeal": {"calories": 150, "protein_g": 5, "carbs_g": 27, "fats_g": 3, "fiber_g": 4},

            # Dairy
            "milk": {"calories": 150, "protein_g": 8, "carbs_g": 12, "fats_g": 8, "fiber_g": 0},
            "yogurt": {"calories": 100, "protein_g": 10, "carbs_g": 6, "fats_g": 3, "fiber_g": 0},
            "cheese": {"calories": 110, "protein_g": 7, "carbs_g": 0, "fats_g": 9, "fiber_g": 0},

            # Vegetables
            "salad": {"calories": 50, "protein_g": 2, "carbs_g": 10, "fats_g": 0, "fiber_g": 3},
            "vegetables": {"calories": 50, "protein_g": 2, "carbs_g": 10, "fats_g": 0, "fiber_g": 3},
            "broccoli": {"calories": 55, "protein_g": 4, "carbs_g": 11, "fats_g": 1, "fiber_g": 5},

            # Fruits
            "apple": {"calories": 95, "protein_g": 0, "carbs_g": 25, "fats_g": 0, "fiber_g": 4},
            "banana": {"calories": 105, "protein_g": 1, "carbs_g": 27, "fats_g": 0, "fiber_g": 3},
            "orange": {"calories": 62, "protein_g": 1, "carbs_g": 15, "fats_g": 0, "fiber_g": 3},

            # Snacks
            "nuts": {"calories": 170, "protein_g": 5, "carbs_g": 6, "fats_g": 15, "fiber_g": 3},
            "cookie": {"calories": 150, "protein_g": 2, "carbs_g": 20, "fats_g": 7, "fiber_g": 1},
        }

        # First match wins, so multi-word dishes come before their ingredients
        for food, nutrition in estimates.items():
            if food in food_lower:
                return dict(nutrition)

        # Default estimate for unknown foods
        return {"calories": 200, "protein_g": 10, "carbs_g": 25, "fats_g": 8, "fiber_g": 2}
