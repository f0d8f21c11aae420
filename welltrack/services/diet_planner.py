"""Diet plan generation with a rule-based fallback."""

import logging
import random
from collections import Counter
from datetime import date, timedelta
from typing import Optional, List, Dict, Any, Tuple
from uuid import UUID

from pydantic import ValidationError

from welltrack.db.supabase import DatabaseService
from welltrack.models.diet import (
    DayMeals,
    DietPlan,
    DietPlanCreate,
    DietPlanRequest,
    FoodItem,
    PlanMeal,
    WeeklyDayPlan,
)
from welltrack.models.health import HealthMetrics
from welltrack.services.ai_service import (
    AIProvider,
    AIProviderError,
    AIResponseError,
    extract_json,
    get_provider,
)
from welltrack.services.health_calculator import HealthCalculator

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# (protein, carbs, fat) share of calories
MEAL_MACRO_SPLITS = {
    "breakfast": (0.20, 0.60, 0.20),
    "lunch": (0.30, 0.40, 0.30),
    "dinner": (0.40, 0.30, 0.30),
}

WEEKLY_DISTRIBUTION = {"breakfast": 0.25, "lunch": 0.35, "dinner": 0.40}


class BasePlanNotFoundError(LookupError):
    """A weekly plan was requested before any base plan exists."""


def meal_distribution(meal_count: int, include_snacks: bool = True) -> Dict[str, float]:
    """
    Share of daily calories for each meal slot.

    Without snacks, snack slots are dropped and the rest is rescaled to 1.0.
    """
    if meal_count == 1:
        distribution = {"dinner": 1.0}
    elif meal_count == 2:
        distribution = {"lunch": 0.45, "dinner": 0.55}
    elif meal_count == 3:
        distribution = {"breakfast": 0.25, "lunch": 0.35, "dinner": 0.40}
    elif meal_count == 4:
        distribution = {"breakfast": 0.20, "lunch": 0.30, "dinner": 0.35, "snack": 0.15}
    else:
        distribution = {
            "breakfast": 0.20,
            "mid_morning_snack": 0.10,
            "lunch": 0.25,
            "afternoon_snack": 0.10,
            "dinner": 0.30,
            "evening_snack": 0.05,
        }

    if include_snacks:
        return distribution

    meals = {slot: share for slot, share in distribution.items() if "snack" not in slot}
    total = sum(meals.values())
    return {slot: share / total for slot, share in meals.items()}


def split_macros(calories: int, meal_type: str) -> Tuple[int, int, int]:
    """Protein, carbs, and fat grams for a meal from its calories."""
    protein, carbs, fat = MEAL_MACRO_SPLITS.get(meal_type, MEAL_MACRO_SPLITS["lunch"])
    return (
        round(calories * protein / 4),
        round(calories * carbs / 4),
        round(calories * fat / 9),
    )


class TemplateMealPlanner:
    """Rule-based meal planning from fixed templates (no AI)."""

    MEAL_TEMPLATES = {
        "breakfast": [
            {"name": "Oatmeal with Berries", "calories": 350, "protein": 12, "carbs": 55, "fat": 8, "cuisines": ["american", "any"]},
            {"name": "Scrambled Eggs with Toast", "calories": 400, "protein": 20, "carbs": 30, "fat": 22, "cuisines": ["american", "any"]},
            {"name": "Greek Yogurt Parfait", "calories": 300, "protein": 18, "carbs": 40, "fat": 8, "cuisines": ["mediterranean", "any"]},
            {"name": "Avocado Toast", "calories": 320, "protein": 8, "carbs": 35, "fat": 18, "cuisines": ["american", "any"]},
            {"name": "Smoothie Bowl", "calories": 380, "protein": 15, "carbs": 60, "fat": 10, "cuisines": ["any"]},
            {"name": "Idli with Sambar", "calories": 280, "protein": 10, "carbs": 50, "fat": 4, "cuisines": ["indian"]},
            {"name": "Poha", "calories": 250, "protein": 6, "carbs": 45, "fat": 6, "cuisines": ["indian"]},
            {"name": "Vegetable Upma", "calories": 300, "protein": 8, "carbs": 48, "fat": 9, "cuisines": ["indian"]},
            {"name": "Masala Dosa", "calories": 350, "protein": 8, "carbs": 55, "fat": 11, "cuisines": ["indian"]},
            {"name": "Besan Cheela", "calories": 280, "protein": 14, "carbs": 32, "fat": 10, "cuisines": ["indian"]},
        ],
        "lunch": [
            {"name": "Grilled Chicken Salad", "calories": 450, "protein": 35, "carbs": 20, "fat": 25, "cuisines": ["american", "any"]},
            {"name": "Quinoa Buddha Bowl", "calories": 500, "protein": 18, "carbs": 65, "fat": 18, "cuisines": ["any"]},
            {"name": "Turkey Wrap", "calories": 420, "protein": 28, "carbs": 40, "fat": 16, "cuisines": ["american", "any"]},
            {"name": "Mediterranean Bowl", "calories": 520, "protein": 22, "carbs": 55, "fat": 24, "cuisines": ["mediterranean", "any"]},
            {"name": "Stir Fry with Tofu", "calories": 400, "protein": 20, "carbs": 45, "fat": 15, "cuisines": ["asian", "any"]},
            {"name": "Dal with Rice", "calories": 480, "protein": 16, "carbs": 70, "fat": 12, "cuisines": ["indian"]},
            {"name": "Rajma Chawal", "calories": 500, "protein": 18, "carbs": 78, "fat": 10, "cuisines": ["indian"]},
            {"name": "Vegetable Pulao with Raita", "calories": 460, "protein": 12, "carbs": 70, "fat": 14, "cuisines": ["indian"]},
            {"name": "Chicken Tikka with Roti", "calories": 550, "protein": 35, "carbs": 50, "fat": 20, "cuisines": ["indian"]},
        ],
        "dinner": [
            {"name": "Baked Salmon with Vegetables", "calories": 500, "protein": 40, "carbs": 25, "fat": 28, "cuisines": ["any"]},
            {"name": "Chicken Stir Fry", "calories": 480, "protein": 35, "carbs": 40, "fat": 18, "cuisines": ["asian", "any"]},
            {"name": "Grilled Steak with Sweet Potato", "calories": 600, "protein": 45, "carbs": 40, "fat": 28, "cuisines": ["american", "any"]},
            {"name": "Pasta Primavera", "calories": 480, "protein": 16, "carbs": 70, "fat": 14, "cuisines": ["italian", "any"]},
            {"name": "Lentil and Vegetable Stew", "calories": 450, "protein": 22, "carbs": 60, "fat": 10, "cuisines": ["any"]},
            {"name": "Vegetable Curry with Rice", "calories": 520, "protein": 14, "carbs": 75, "fat": 16, "cuisines": ["indian"]},
            {"name": "Palak Paneer with Naan", "calories": 550, "protein": 22, "carbs": 55, "fat": 26, "cuisines": ["indian"]},
            {"name": "Dal Tadka with Roti", "calories": 480, "protein": 20, "carbs": 65, "fat": 14, "cuisines": ["indian"]},
            {"name": "Moong Dal Khichdi", "calories": 420, "protein": 16, "carbs": 68, "fat": 9, "cuisines": ["indian"]},
        ],
        "snack": [
            {"name": "Apple with Almond Butter", "calories": 200, "protein": 5, "carbs": 25, "fat": 10, "cuisines": ["any"]},
            {"name": "Greek Yogurt", "calories": 150, "protein": 15, "carbs": 10, "fat": 5, "cuisines": ["any"]},
            {"name": "Mixed Nuts", "calories": 180, "protein": 5, "carbs": 8, "fat": 16, "cuisines": ["any"]},
            {"name": "Hummus with Veggies", "calories": 150, "protein": 6, "carbs": 15, "fat": 8, "cuisines": ["mediterranean", "any"]},
            {"name": "Roasted Chickpeas", "calories": 130, "protein": 6, "carbs": 20, "fat": 3, "cuisines": ["indian", "any"]},
        ],
    }

    @staticmethod
    def filter_by_restrictions(meals: List[Dict], restrictions: List[str]) -> List[Dict]:
        """Filter meals based on dietary restrictions."""
        if not restrictions:
            return meals

        filtered = []
        for meal in meals:
            name_lower = meal["name"].lower()
            excluded = False

            for restriction in restrictions:
                restriction_lower = restriction.lower()
                if restriction_lower in ["vegetarian", "vegan"]:
                    if any(word in name_lower for word in ["chicken", "beef", "fish", "salmon", "steak", "turkey", "meat"]):
                        excluded = True
                        break
                if restriction_lower == "vegan":
                    if any(word in name_lower for word in ["egg", "yogurt", "raita", "cheese", "paneer", "milk"]):
                        excluded = True
                        break
                if restriction_lower in ["gluten-free", "gluten free"]:
                    if any(word in name_lower for word in ["bread", "toast", "pasta", "naan", "roti", "wrap"]):
                        excluded = True
                        break

            if not excluded:
                filtered.append(meal)

        return filtered if filtered else meals[:2]  # Return at least some options

    @staticmethod
    def filter_by_cuisine(meals: List[Dict], cuisine: Optional[str]) -> List[Dict]:
        """Keep meals of the requested cuisine; "any" meals match everything else."""
        if not cuisine:
            return [m for m in meals if "any" in m["cuisines"]] or meals

        cuisine = cuisine.lower()
        filtered = [m for m in meals if cuisine in m["cuisines"]]
        if cuisine != "indian":
            filtered += [m for m in meals if "any" in m["cuisines"] and m not in filtered]
        return filtered if filtered else meals

    def options(self, meal_type: str, restrictions: List[str], cuisine: Optional[str] = None) -> List[Dict]:
        key = "snack" if "snack" in meal_type else meal_type
        options = self.filter_by_restrictions(self.MEAL_TEMPLATES[key], restrictions)
        return self.filter_by_cuisine(options, cuisine)

    @staticmethod
    def scale(template: Dict, calories: int, name: Optional[str] = None) -> PlanMeal:
        """Resize a template to a calorie target, keeping its macro ratios."""
        factor = calories / template["calories"] if template["calories"] else 1
        portion = "1 serving" if abs(factor - 1) < 0.1 else f"{factor:.1f} servings"
        return PlanMeal(
            name=name or template["name"],
            calories=calories,
            protein=round(template["protein"] * factor),
            carbs=round(template["carbs"] * factor),
            fat=round(template["fat"] * factor),
            foods=[FoodItem(name=template["name"], portion=portion)],
        )

    def daily_meals(
        self,
        daily_calories: int,
        meal_count: int,
        include_snacks: bool,
        restrictions: List[str],
    ) -> List[PlanMeal]:
        """One day of meals sized to the calorie target."""
        meals = []
        for slot, share in meal_distribution(meal_count, include_snacks).items():
            template = random.choice(self.options(slot, restrictions))
            title = slot.replace("_", " ").title()
            meals.append(self.scale(template, round(daily_calories * share), name=f"{title}: {template['name']}"))
        return meals

    def weekly_meals(
        self,
        daily_calories: int,
        restrictions: List[str],
        cuisine: Optional[str] = None,
    ) -> List[WeeklyDayPlan]:
        """Seven days of breakfast, lunch, and dinner, rotating through the options."""
        options = {
            meal_type: self.options(meal_type, restrictions, cuisine)
            for meal_type in WEEKLY_DISTRIBUTION
        }

        days = []
        for index, day in enumerate(WEEKDAY_NAMES):
            meals = {}
            for meal_type, share in WEEKLY_DISTRIBUTION.items():
                choices = options[meal_type]
                template = choices[index % len(choices)]
                calories = round(daily_calories * share)
                protein, carbs, fat = split_macros(calories, meal_type)
                meal = self.scale(template, calories, name=meal_type.title())
                meals[meal_type] = meal.model_copy(update={"protein": protein, "carbs": carbs, "fat": fat})
            days.append(WeeklyDayPlan(day=day, meals=DayMeals(**meals)))
        return days


class DietPlanner:
    """Creates base and weekly diet plans, falling back to templates when the AI fails."""

    def __init__(
        self,
        db: Optional[DatabaseService] = None,
        provider: Optional[AIProvider] = None,
        templates: Optional[TemplateMealPlanner] = None,
    ):
        self.db = db or DatabaseService()
        self.provider = provider or get_provider()
        self.templates = templates or TemplateMealPlanner()

    @staticmethod
    def _restrictions(diet_type: Optional[str]) -> List[str]:
        return [diet_type] if diet_type else []

    def _food_preferences(self, user_id: UUID) -> Tuple[str, str]:
        """Top foods and average macros from the last 50 food entries."""
        entries = self.db.get_food_entries(user_id, limit=50)
        if not entries:
            return "", ""

        top_foods = [name for name, _ in Counter(e.food_name for e in entries).most_common(5)]
        preferences = f"Preferred foods based on history: {', '.join(top_foods)}."

        avg_protein = round(sum(e.protein_g for e in entries) / len(entries))
        avg_carbs = round(sum(e.carbs_g for e in entries) / len(entries))
        avg_fats = round(sum(e.fats_g for e in entries) / len(entries))
        insights = ""
        if avg_protein > 0 or avg_carbs > 0 or avg_fats > 0:
            insights = (
                f"Current average macros: {avg_protein}g protein, {avg_carbs}g carbs, "
                f"{avg_fats}g fats per meal."
            )
        return preferences, insights

    def _plan_prompt(
        self,
        daily_calories: int,
        metrics: HealthMetrics,
        request: DietPlanRequest,
        preferences: str = "",
        insights: str = "",
    ) -> str:
        extras = "".join(f"\n- {line}" for line in (preferences, insights) if line)
        return f"""Create a detailed diet plan with the following requirements:
- Total daily calories: {daily_calories} calories
- Diet type: {request.diet_type}
- Number of meals: {request.meal_count}
- Include snacks: {'Yes' if request.include_snacks else 'No'}
- Health conditions: {metrics.chronic_conditions or 'None'}
- Allergies: {metrics.allergies or 'None'}{extras}

For each meal, provide:
1. Meal name
2. Total calories
3. Macronutrients (protein, carbs, fat in grams)
4. 2-3 specific food items with portion sizes

Format the response as a JSON object with the structure:
{{
  "meals": [
    {{
      "name": "Meal name",
      "calories": number,
      "protein": number,
      "carbs": number,
      "fat": number,
      "foods": [{{"name": "Food item name", "portion": "Portion description"}}]
    }}
  ]
}}

IMPORTANT: Your response must be a valid JSON object and nothing else."""

    async def _ai_meals(self, prompt: str) -> List[PlanMeal]:
        text = await self.provider.generate_text(prompt, json_mode=True)
        data = extract_json(text, "object")
        meals = []
        for item in data.get("meals") or []:
            try:
                meals.append(PlanMeal(**item))
            except (TypeError, ValidationError):
                continue
        if not meals:
            raise AIResponseError("AI response does not contain any meals")
        return meals

    async def create_plan(
        self, user_id: UUID, metrics: HealthMetrics, request: DietPlanRequest
    ) -> DietPlan:
        """Generate and persist a base diet plan."""
        daily_calories = HealthCalculator.daily_calories(
            metrics.weight,
            metrics.height,
            metrics.age,
            metrics.gender,
            metrics.activity_level,
            request.goal_weight,
        )

        preferences, insights = ("", "")
        if request.auto_generate:
            preferences, insights = self._food_preferences(user_id)

        prompt = self._plan_prompt(daily_calories, metrics, request, preferences, insights)
        try:
            meals = await self._ai_meals(prompt)
            ai_generated = True
        except (AIProviderError, AIResponseError) as e:
            logger.warning("AI diet plan failed, using template fallback: %s", e)
            meals = self.templates.daily_meals(
                daily_calories,
                request.meal_count,
                request.include_snacks,
                self._restrictions(request.diet_type),
            )
            ai_generated = False

        plan = DietPlanCreate(
            daily_calories=daily_calories,
            goal_weight=request.goal_weight or metrics.weight,
            timeframe=request.timeframe,
            diet_type=request.diet_type,
            meal_count=request.meal_count,
            include_snacks=request.include_snacks,
            meals=meals,
            ai_generated=ai_generated,
        )
        saved = self.db.create_diet_plan(user_id, plan)
        logger.info("Created diet plan %s for user %s (%d kcal)", saved.id, user_id, daily_calories)
        return saved

    def _weekly_prompt(self, base_plan: DietPlan, cuisine_type: Optional[str]) -> str:
        prompt = f"""Create a 7-day meal plan based on the following diet requirements:
- Diet type: {base_plan.diet_type or 'balanced'}
- Daily calories: {base_plan.daily_calories} calories
- Number of meals per day: 3 (breakfast, lunch, dinner)
"""
        if (cuisine_type or "").lower() == "indian":
            prompt += """- Cuisine type: Indian
- Use authentic Indian recipes and ingredients
- Include traditional Indian breakfast items like paratha, poha, upma, idli, dosa
- Include Indian lunch options like dal, rice, sabzi, roti, curry dishes
- Include Indian dinner items focusing on balanced nutrition
- Use Indian spices and cooking methods
"""
        prompt += """
For each day (Monday through Sunday), provide specific meal suggestions with:
1. Food items with portion sizes
2. Calories per meal

Ensure variety throughout the week and maintain the daily calorie target.

Format the response as JSON:
{
  "weeklyPlan": [
    {
      "day": "Monday",
      "meals": {
        "breakfast": {"name": "Breakfast", "calories": 400, "foods": [{"name": "Food item", "portion": "Portion size"}]},
        "lunch": {"name": "Lunch", "calories": 600, "foods": [{"name": "Food item", "portion": "Portion size"}]},
        "dinner": {"name": "Dinner", "calories": 500, "foods": [{"name": "Food item", "portion": "Portion size"}]}
      }
    }
  ]
}"""
        return prompt

    async def _ai_week(self, prompt: str) -> List[WeeklyDayPlan]:
        text = await self.provider.generate_text(prompt, json_mode=True)
        data = extract_json(text, "object")
        days = data.get("weeklyPlan") or []
        if len(days) < 7:
            raise AIResponseError(f"AI weekly plan has {len(days)} days, expected 7")

        week = []
        for day_data, day_name in zip(days, WEEKDAY_NAMES):
            try:
                meals: Dict[str, Any] = {}
                for meal_type in MEAL_MACRO_SPLITS:
                    meal = PlanMeal(**day_data["meals"][meal_type])
                    protein, carbs, fat = split_macros(meal.calories, meal_type)
                    meals[meal_type] = meal.model_copy(update={"protein": protein, "carbs": carbs, "fat": fat})
                week.append(WeeklyDayPlan(day=day_data.get("day") or day_name, meals=DayMeals(**meals)))
            except (KeyError, TypeError, ValidationError) as e:
                raise AIResponseError(f"Invalid day in AI weekly plan: {e}") from e
        return week

    async def weekly_plan(
        self,
        user_id: UUID,
        regenerate: bool = False,
        cuisine_type: Optional[str] = None,
        today: Optional[date] = None,
    ) -> DietPlan:
        """Return the current weekly plan, generating one when missing or requested."""
        base_plan = self.db.get_latest_base_plan(user_id)
        if not base_plan:
            raise BasePlanNotFoundError("No base diet plan found")

        if not regenerate:
            existing = None
            if cuisine_type:
                existing = self.db.get_latest_weekly_plan(user_id, base_plan.id, cuisine_type)
            existing = existing or self.db.get_latest_weekly_plan(user_id, base_plan.id)
            if existing:
                return existing

        today = today or date.today()
        week_start = today - timedelta(days=today.weekday())

        try:
            week = await self._ai_week(self._weekly_prompt(base_plan, cuisine_type))
            ai_generated = True
        except (AIProviderError, AIResponseError) as e:
            logger.warning("AI weekly plan failed, using template fallback: %s", e)
            week = self.templates.weekly_meals(
                base_plan.daily_calories,
                self._restrictions(base_plan.diet_type),
                cuisine_type,
            )
            ai_generated = False

        plan = DietPlanCreate(
            daily_calories=base_plan.daily_calories,
            goal_weight=base_plan.goal_weight,
            timeframe=base_plan.timeframe,
            diet_type=base_plan.diet_type,
            meal_count=3,
            include_snacks=False,
            is_weekly_plan=True,
            based_on_plan_id=base_plan.id,
            weekly_plan_data=week,
            week_start_date=week_start,
            cuisine_type=cuisine_type or base_plan.diet_type,
            ai_generated=ai_generated,
        )
        saved = self.db.create_diet_plan(user_id, plan)
        logger.info("Created weekly plan %s from base plan %s", saved.id, base_plan.id)
        return saved

    def latest_plan(self, user_id: UUID) -> Optional[DietPlan]:
        return self.db.get_latest_base_plan(user_id)

    def history(self, user_id: UUID, limit: int = 20) -> List[DietPlan]:
        return self.db.get_diet_plans(user_id, limit=limit)

    def get_plan(self, user_id: UUID, plan_id: UUID) -> Optional[DietPlan]:
        return self.db.get_diet_plan(user_id, plan_id)

    def delete_plan(self, user_id: UUID, plan_id: UUID) -> bool:
        return self.db.delete_diet_plan(user_id, plan_id)
