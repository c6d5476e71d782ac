"""
Tests for day totals, goals, insights and log filtering in calories.nutrition.
"""

from datetime import datetime

import pytest

from calories.models import Day, Food, Goals, Macros, Measurement, Preferences
from calories.nutrition import (
    apply_macro_preset,
    calorie_goal,
    clamp_percent,
    compute_insights,
    default_meal_for_hour,
    format_delta,
    macro_split,
    meal_totals,
    measurement_deltas,
    resolve_default_meal,
    sum_foods,
    summarize_day,
    visible_foods,
)


def make_food(name, calories, protein=0, carbs=0, fat=0, meal="Snack", **fields):
    return Food(food=name, calories=calories, protein=protein, carbs=carbs, fat=fat, meal=meal, **fields)


class TestTotals:
    """Test cases for summing foods."""

    def test_sum_foods(self):
        """Test summing calories and macros."""
        totals = sum_foods([make_food("Egg", 70, protein=6, fat=5), make_food("Toast", 80, carbs=15)])
        assert totals.calories == 150
        assert totals.protein == 6
        assert totals.carbs == 15
        assert totals.fat == 5

    def test_sum_of_nothing(self):
        """Test that no foods sum to zero."""
        assert sum_foods([]) == Macros()

    def test_meal_totals_cover_every_meal(self):
        """Every meal gets a total, even with no foods."""
        totals = meal_totals([make_food("Oats", 300, meal="Breakfast"), make_food("Apple", 95, meal="Breakfast")])
        assert set(totals) == {"Breakfast", "Lunch", "Dinner", "Snack"}
        assert totals["Breakfast"].calories == 395
        assert totals["Breakfast"].count == 2
        assert totals["Dinner"].count == 0


class TestMacroSplit:
    """Macro percentages come from 4/4/9 kcal per gram."""

    def test_split(self):
        """Test an even protein and carbs split."""
        split = macro_split(Macros(protein=100, carbs=100, fat=0))
        assert split == {"protein": 50, "carbs": 50, "fat": 0}

    def test_fat_weighs_more(self):
        """Fat counts 9 kcal per gram against 4."""
        split = macro_split(Macros(protein=0, carbs=9, fat=4))
        assert split == {"protein": 0, "carbs": 50, "fat": 50}

    def test_empty(self):
        """Test that no macros give an all-zero split."""
        assert macro_split(Macros()) == {"protein": 0, "carbs": 0, "fat": 0}

    def test_halves_round_up(self):
        """12.5% protein shows as 13, not 12."""
        assert macro_split(Macros(protein=1, carbs=7)) == {"protein": 13, "carbs": 88, "fat": 0}


class TestGoals:
    """Test cases for goal helpers."""

    def test_clamp_percent(self):
        """Test progress capped at 100 and 0 for no goal."""
        assert clamp_percent(50, 200) == 25.0
        assert clamp_percent(300, 200) == 100
        assert clamp_percent(10, 0) == 0

    def test_balanced_preset(self):
        """Test the Balanced preset on a 2000 kcal goal."""
        goals = apply_macro_preset(Goals(calories=2000), "Balanced")
        assert goals.protein == 150.0
        assert goals.carbs == 200.0
        assert goals.fat == 67.0
        assert goals.calories == 2000

    def test_preset_halves_round_up(self):
        """200.5 g of carbs becomes 201."""
        assert apply_macro_preset(Goals(calories=2005), "Balanced").carbs == 201.0

    def test_unknown_preset_leaves_goals(self):
        """Test that an unknown preset changes nothing."""
        goals = Goals(calories=2000, protein=1)
        assert apply_macro_preset(goals, "Carnivore") == goals

    def test_calorie_goal_adds_burned_and_overrides(self):
        """The day's goal is the override plus calories burned."""
        day = Day(burned_calories=300, goal_overrides={"calories": 1800})
        assert calorie_goal(Goals(calories=2000), day) == 2100

    def test_negative_burned_ignored(self):
        """Test that negative burned calories are ignored."""
        day = Day(burned_calories=-500)
        assert calorie_goal(Goals(calories=2000), day) == 2000


class TestSummarizeDay:
    """Test cases for the dashboard summary."""

    def test_under_goal(self):
        """Test the summary for a day under its goal."""
        day = Day(foods=[make_food("Pasta", 1500, carbs=300)], water_oz=32)
        summary = summarize_day(day, Goals(calories=2000, water_oz=64))
        assert summary.calories_remaining == 500
        assert summary.calories_over == -500
        assert summary.calorie_percent == 75
        assert summary.water_percent == 50
        assert summary.water_display == 32
        assert summary.has_overrides is False

    def test_over_goal(self):
        """Test the summary for a day over its goal."""
        day = Day(foods=[make_food("Pizza", 2600)])
        summary = summarize_day(day, Goals(calories=2000))
        assert summary.calories_remaining == 0
        assert summary.calories_over == 600
        assert summary.calorie_percent == 100

    def test_water_in_ml(self):
        """Test water figures shown in ml."""
        day = Day(water_oz=8)
        summary = summarize_day(day, Goals(water_oz=64), Preferences(water_unit="ml"))
        assert summary.water_display == 237
        assert summary.water_goal_display == 1893
        assert summary.water_unit == "ml"

    def test_serialized_with_camel_case(self):
        """Test that the summary dumps with camelCase keys."""
        dumped = summarize_day(Day(), Goals()).model_dump(by_alias=True)
        assert "caloriesRemaining" in dumped
        assert "macroSplit" in dumped
        assert "waterGoalDisplay" in dumped


class TestInsights:
    """Test cases for compute_insights."""

    def test_no_days(self):
        """Test insights with no days."""
        insights = compute_insights([], Goals())
        assert insights.streak == 0
        assert insights.best_day is None
        assert insights.averages["calories"] == 0

    def test_averages_streak_and_top_foods(self):
        """Test averages, streak, top foods and best day."""
        days = [
            Day(foods=[make_food("Apple", 100)], water_oz=10),
            Day(foods=[]),
            Day(foods=[make_food("Apple", 100), make_food("Rice", 1900)], water_oz=30),
            Day(foods=[make_food("Apple", 100)], water_oz=20),
        ]
        insights = compute_insights(days, Goals(calories=2000))
        assert insights.averages["calories"] == pytest.approx(2200 / 4)
        assert insights.averages["water_oz"] == pytest.approx(15)
        assert insights.streak == 2
        assert insights.top_foods[0].food == "Apple"
        assert insights.top_foods[0].count == 3
        assert insights.best_day.index == 2
        assert insights.best_day.calories == 2000

    def test_only_last_seven_days_averaged(self):
        """Only the last seven days count towards averages."""
        days = [Day(foods=[make_food("Big", 7000)])] + [Day(foods=[make_food("Small", 100)]) for _ in range(7)]
        insights = compute_insights(days, Goals())
        assert insights.averages["calories"] == pytest.approx(100)

    def test_average_water_in_preferred_unit(self):
        """Average water follows the water unit preference."""
        days = [Day(water_oz=8), Day(water_oz=8)]
        insights = compute_insights(days, Goals(), Preferences(water_unit="ml"))
        assert insights.water_display == 237
        assert insights.water_unit == "ml"

        assert compute_insights(days, Goals()).water_display == 8
        assert compute_insights(days, Goals()).water_unit == "oz"


class TestMeasurementDeltas:
    """Test cases for measurement deltas."""

    def test_delta_between_latest_two(self):
        """Deltas compare the two latest dates, per metric."""
        measurements = [
            Measurement(date_iso="2024-01-01", weight=80, waist=90),
            Measurement(date_iso="2024-01-15", weight=78.5),
            Measurement(date_iso="2023-12-01", weight=82),
        ]
        deltas = measurement_deltas(measurements)
        assert deltas.weight == pytest.approx(-1.5)
        assert deltas.waist is None

    def test_single_measurement(self):
        """Test that one measurement has no deltas."""
        assert measurement_deltas([Measurement(date_iso="2024-01-01", weight=80)]).weight is None

    def test_format_delta(self):
        """Test signed formatting to one decimal."""
        assert format_delta(1.26) == "+1.3"
        assert format_delta(-2.0) == "-2"
        assert format_delta(None) == ""


class TestDefaultMeal:
    """Test cases for the default meal."""

    def test_by_hour(self):
        """Test the meal picked for each time of day."""
        assert default_meal_for_hour(7) == "Breakfast"
        assert default_meal_for_hour(11) == "Lunch"
        assert default_meal_for_hour(18) == "Dinner"
        assert default_meal_for_hour(22) == "Snack"

    def test_preference_wins(self):
        """A preferred meal overrides the time of day."""
        assert resolve_default_meal(Preferences(default_meal="Dinner"), datetime(2024, 1, 1, 8)) == "Dinner"

    def test_auto(self):
        """Test that Auto falls back to the time of day."""
        assert resolve_default_meal(Preferences(), datetime(2024, 1, 1, 12)) == "Lunch"


class TestVisibleFoods:
    """Test cases for filtering and sorting the log."""

    @pytest.fixture
    def foods(self):
        return [
            make_food("banana", 100, meal="Breakfast", source="usda", created_at=1),
            make_food("Apple", 50, meal="Snack", source="custom", created_at=2),
            make_food("Cake", 400, meal="Snack", source="quick", created_at=3),
        ]

    def test_default_newest_first(self, foods):
        """Test the default newest first order."""
        assert [f.food for f in visible_foods(foods)] == ["Cake", "Apple", "banana"]

    def test_filter_by_meal_and_source(self, foods):
        """Test filtering by meal and by source."""
        assert [f.food for f in visible_foods(foods, meal_filter="Snack")] == ["Cake", "Apple"]
        assert [f.food for f in visible_foods(foods, source_filter="usda")] == ["banana"]

    def test_sort_by_name_ignores_case(self, foods):
        """Test that name sorting ignores case."""
        result = visible_foods(foods, sort_key="food", direction="asc")
        assert [f.food for f in result] == ["Apple", "banana", "Cake"]

    def test_sort_by_calories(self, foods):
        """Test sorting by calories."""
        result = visible_foods(foods, sort_key="calories", direction="desc")
        assert [f.calories for f in result] == [400, 100, 50]

    def test_input_untouched(self, foods):
        """Test that sorting leaves the input list alone."""
        visible_foods(foods, sort_key="calories", direction="asc")
        assert foods[0].food == "banana"
