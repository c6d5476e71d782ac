"""
Nutrition aggregation for the tracker.

This module provides the arithmetic behind the dashboard:
- Summing foods into day and per-meal totals
- Splitting macro calories into percentages (protein and carbs 4 kcal/g, fat 9 kcal/g)
- Effective goals (global goals overlaid with a day's overrides, plus burned calories)
- Insights across days (7-day averages, logging streak, top foods, best day)
- Measurement deltas, the default meal for the time of day, and log filtering/sorting

All functions are pure: they take records and return new values.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from .models import (
    MEALS,
    MEASUREMENT_FIELDS,
    Day,
    Food,
    Goals,
    Macros,
    Measurement,
    Preferences,
    TrackerModel,
)
from .utils.numbers import number_or_zero, round_half_up
from .utils.units import to_display_water

logger = logging.getLogger(__name__)

PROTEIN_KCAL_PER_G = 4
CARBS_KCAL_PER_G = 4
FAT_KCAL_PER_G = 9

# Share of the calorie goal given to each macro
MACRO_PRESETS: Dict[str, Dict[str, float]] = {
    "Balanced": {"protein": 0.3, "carbs": 0.4, "fat": 0.3},
    "High Protein": {"protein": 0.4, "carbs": 0.3, "fat": 0.3},
    "Low Carb": {"protein": 0.35, "carbs": 0.25, "fat": 0.4},
    "Endurance": {"protein": 0.25, "carbs": 0.5, "fat": 0.25},
    "Keto": {"protein": 0.25, "carbs": 0.05, "fat": 0.7},
}

INSIGHT_WINDOW_DAYS = 7
TOP_FOODS_LIMIT = 5

SORT_KEYS = ["created_at", "food", "meal", "calories", "protein", "fat", "carbs", "servings"]


def sum_foods(foods: List[Food]) -> Macros:
    """
    Sum calories and macros over a list of foods.

    Examples:
        >>> sum_foods([Food(calories=100, protein=5), Food(calories=50)]).calories
        150.0
    """
    totals = {"calories": 0.0, "protein": 0.0, "fat": 0.0, "carbs": 0.0}
    for food in foods:
        totals["calories"] += number_or_zero(food.calories)
        totals["protein"] += number_or_zero(food.protein)
        totals["fat"] += number_or_zero(food.fat)
        totals["carbs"] += number_or_zero(food.carbs)
    return Macros(**totals)


class MealTotals(Macros):
    count: int = 0


def meal_totals(foods: List[Food]) -> Dict[str, MealTotals]:
    """
    Totals per meal.

    The four standard meals are always present (zeroed when empty). Foods with
    a non-standard meal name get their own entry.
    """
    result: Dict[str, MealTotals] = {meal: MealTotals() for meal in MEALS}
    for food in foods:
        meal = food.meal or "Snack"
        entry = result.setdefault(meal, MealTotals())
        entry.calories += number_or_zero(food.calories)
        entry.protein += number_or_zero(food.protein)
        entry.fat += number_or_zero(food.fat)
        entry.carbs += number_or_zero(food.carbs)
        entry.count += 1
    return result


@dataclass
class MacroCalories:
    """Calories contributed by each macro."""
    protein: float
    carbs: float
    fat: float

    @property
    def total(self) -> float:
        return self.protein + self.carbs + self.fat


def macro_calories(totals: Macros) -> MacroCalories:
    return MacroCalories(
        protein=totals.protein * PROTEIN_KCAL_PER_G,
        carbs=totals.carbs * CARBS_KCAL_PER_G,
        fat=totals.fat * FAT_KCAL_PER_G,
    )


def macro_split(totals: Macros) -> Dict[str, int]:
    """
    Rounded percentage of macro calories from protein, carbs and fat.

    All zeros when there are no macro calories. The percentages are rounded
    independently, so they may not add up to exactly 100.
    """
    cals = macro_calories(totals)
    if not cals.total:
        return {"protein": 0, "carbs": 0, "fat": 0}
    return {
        "protein": round_half_up(cals.protein / cals.total * 100),
        "carbs": round_half_up(cals.carbs / cals.total * 100),
        "fat": round_half_up(cals.fat / cals.total * 100),
    }


def clamp_percent(value: float, goal: float) -> float:
    """
    Progress towards a goal as a percentage capped at 100.

    Examples:
        >>> clamp_percent(50, 200)
        25.0
        >>> clamp_percent(300, 200)
        100
        >>> clamp_percent(10, 0)
        0
    """
    if not goal or goal <= 0:
        return 0
    return min(100, value / goal * 100)


def apply_macro_preset(goals: Goals, preset: str) -> Goals:
    """
    Rewrite the protein/carbs/fat goals from the calorie goal using a preset split.

    Unknown presets and a zero calorie goal leave the goals unchanged.

    Examples:
        >>> apply_macro_preset(Goals(calories=2000), "Balanced").protein
        150.0
    """
    split = MACRO_PRESETS.get(preset)
    if not split:
        return goals
    calories = number_or_zero(goals.calories)
    if not calories:
        return goals
    return goals.model_copy(
        update={
            "protein": float(round_half_up(calories * split["protein"] / PROTEIN_KCAL_PER_G)),
            "carbs": float(round_half_up(calories * split["carbs"] / CARBS_KCAL_PER_G)),
            "fat": float(round_half_up(calories * split["fat"] / FAT_KCAL_PER_G)),
        }
    )


def effective_goals(goals: Goals, day: Day) -> Goals:
    """Global goals with the day's overrides applied."""
    return goals.model_copy(update=dict(day.goal_overrides))


def calorie_goal(goals: Goals, day: Day) -> float:
    """The day's calorie goal: the effective goal plus calories burned."""
    burned = max(0.0, number_or_zero(day.burned_calories))
    return max(0.0, effective_goals(goals, day).calories + burned)


class DaySummary(TrackerModel):
    """Dashboard figures for one day."""
    totals: Macros
    meals: Dict[str, MealTotals]
    macro_split: Dict[str, int]
    goals: Goals = Field(..., description="Effective goals for the day")
    has_overrides: bool
    calorie_goal: float = Field(..., description="Effective calorie goal plus burned calories")
    calories_remaining: float
    calories_over: float = Field(..., description="Eaten minus goal (negative when under)")
    calorie_percent: float
    water_percent: float
    water_display: int = Field(..., description="Water drunk, in the preferred unit")
    water_goal_display: int
    water_remaining_display: int
    water_unit: str


def summarize_day(day: Day, goals: Goals, prefs: Optional[Preferences] = None) -> DaySummary:
    """
    Compute the dashboard summary for a day.

    Args:
        day: Day to summarize
        goals: Global goals
        prefs: Preferences (water display unit); defaults when omitted

    Returns:
        DaySummary with totals, per-meal totals, goal progress and water figures
    """
    prefs = prefs or Preferences()
    totals = sum_foods(day.foods)
    goals_for_day = effective_goals(goals, day)
    goal = calorie_goal(goals, day)
    water_display = to_display_water(day.water_oz, prefs.water_unit)
    water_goal_display = to_display_water(goals_for_day.water_oz, prefs.water_unit)

    return DaySummary(
        totals=totals,
        meals=meal_totals(day.foods),
        macro_split=macro_split(totals),
        goals=goals_for_day,
        has_overrides=bool(day.goal_overrides),
        calorie_goal=goal,
        calories_remaining=max(0.0, goal - totals.calories),
        calories_over=totals.calories - goal,
        calorie_percent=clamp_percent(totals.calories, goal),
        water_percent=clamp_percent(day.water_oz, goals_for_day.water_oz),
        water_display=water_display,
        water_goal_display=water_goal_display,
        water_remaining_display=max(0, water_goal_display - water_display),
        water_unit=prefs.water_unit,
    )


class TopFood(TrackerModel):
    food: str
    count: int


class BestDay(TrackerModel):
    index: int
    date: str
    calories: float


class Insights(TrackerModel):
    """Trends across all logged days."""
    averages: Dict[str, float] = Field(..., description="Averages over the last 7 days")
    streak: int = Field(..., description="Consecutive days with food logged, counting back from the latest day")
    top_foods: List[TopFood] = Field(default_factory=list)
    best_day: Optional[BestDay] = Field(None, description="Day closest to the calorie goal")
    water_display: int = Field(0, description="Average water, in the preferred unit")
    water_unit: str = "oz"


def compute_insights(days: List[Day], goals: Goals, prefs: Optional[Preferences] = None) -> Insights:
    """
    Compute averages, streak, top foods and best day across days.

    Args:
        days: All logged days, oldest first
        goals: Global goals (the calorie goal picks the best day)
        prefs: Preferences (water display unit); defaults when omitted

    Returns:
        Insights (zeroed averages and no best day when there are no days)
    """
    prefs = prefs or Preferences()
    averages = {"calories": 0.0, "protein": 0.0, "carbs": 0.0, "fat": 0.0, "water_oz": 0.0}
    if not days:
        return Insights(averages=averages, streak=0, water_unit=prefs.water_unit)

    summaries = [(day, sum_foods(day.foods)) for day in days]

    recent = summaries[-INSIGHT_WINDOW_DAYS:]
    for day, totals in recent:
        averages["calories"] += totals.calories
        averages["protein"] += totals.protein
        averages["carbs"] += totals.carbs
        averages["fat"] += totals.fat
        averages["water_oz"] += number_or_zero(day.water_oz)
    divisor = max(1, len(recent))
    averages = {key: value / divisor for key, value in averages.items()}

    counts: Dict[str, int] = {}
    for day, _ in summaries:
        for food in day.foods:
            name = food.food or "Unknown"
            counts[name] = counts.get(name, 0) + 1
    # sorted() is stable, so ties keep first-seen order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:TOP_FOODS_LIMIT]
    top_foods = [TopFood(food=name, count=count) for name, count in ranked]

    streak = 0
    for day, _ in reversed(summaries):
        if not day.foods:
            break
        streak += 1

    goal = number_or_zero(goals.calories)
    best_index = min(range(len(summaries)), key=lambda i: abs(summaries[i][1].calories - goal))
    best_day_record, best_totals = summaries[best_index]
    best_day = BestDay(index=best_index, date=best_day_record.display_date, calories=best_totals.calories)

    return Insights(
        averages=averages,
        streak=streak,
        top_foods=top_foods,
        best_day=best_day,
        water_display=to_display_water(averages["water_oz"], prefs.water_unit),
        water_unit=prefs.water_unit,
    )


def sort_by_date_desc(records: List[Any]) -> List[Any]:
    """Sort records with a date_iso attribute, newest first."""
    return sorted(records, key=lambda r: r.date_iso or "", reverse=True)


class MeasurementDeltas(TrackerModel):
    """Change per metric since the previous measurement (None when not comparable)."""
    weight: Optional[float] = None
    body_fat: Optional[float] = None
    waist: Optional[float] = None
    hips: Optional[float] = None
    chest: Optional[float] = None


def measurement_deltas(measurements: List[Measurement]) -> MeasurementDeltas:
    """
    Change in each metric between the two most recent measurements.

    A metric's delta is None when either measurement lacks it, or when there
    are fewer than two measurements.
    """
    ordered = sort_by_date_desc(measurements)
    deltas = MeasurementDeltas()
    if len(ordered) < 2:
        return deltas
    latest, previous = ordered[0], ordered[1]
    for field in MEASUREMENT_FIELDS:
        latest_value = getattr(latest, field)
        previous_value = getattr(previous, field)
        if latest_value is None or previous_value is None:
            continue
        setattr(deltas, field, latest_value - previous_value)
    return deltas


def format_delta(value: Optional[float]) -> str:
    """
    Format a delta with an explicit sign and one decimal.

    Examples:
        >>> format_delta(1.26)
        '+1.3'
        >>> format_delta(-2.0)
        '-2'
        >>> format_delta(None)
        ''
    """
    if value is None:
        return ""
    rounded = round_half_up(value * 10) / 10
    sign = "+" if rounded > 0 else ""
    text = f"{rounded:g}"
    return f"{sign}{text}"


def default_meal_for_hour(hour: int) -> str:
    """Breakfast before 11:00, Lunch before 15:00, Dinner before 19:00, else Snack."""
    if hour < 11:
        return "Breakfast"
    if hour < 15:
        return "Lunch"
    if hour < 19:
        return "Dinner"
    return "Snack"


def resolve_default_meal(prefs: Preferences, now: Optional[datetime] = None) -> str:
    """The meal new foods go to: the preferred meal, or by time of day when set to Auto."""
    if prefs.default_meal and prefs.default_meal != "Auto":
        return prefs.default_meal
    return default_meal_for_hour((now or datetime.now()).hour)


def visible_foods(
    foods: List[Food],
    meal_filter: str = "All",
    source_filter: str = "All",
    sort_key: str = "created_at",
    direction: str = "desc",
) -> List[Food]:
    """
    Filter and sort a day's log.

    Args:
        foods: Foods to show
        meal_filter: Meal name, or "All"
        source_filter: Food source, or "All"
        sort_key: One of SORT_KEYS; food and meal sort as text, the rest numerically
        direction: "asc" or "desc"

    Returns:
        New filtered and sorted list
    """
    result = list(foods)
    if meal_filter != "All":
        result = [f for f in result if f.meal == meal_filter]
    if source_filter != "All":
        result = [f for f in result if (f.source or "manual") == source_filter]

    if sort_key in ("food", "meal"):
        result.sort(key=lambda f: str(getattr(f, sort_key) or "").lower())
    elif sort_key in SORT_KEYS:
        result.sort(key=lambda f: number_or_zero(getattr(f, sort_key)))
    else:
        logger.debug(f"Unknown sort key {sort_key!r}, keeping log order")

    if direction == "desc":
        result.reverse()
    return result
