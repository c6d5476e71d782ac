"""
Day log operations for the calorie tracker.

Every operation takes a session_id, loads the tracker state, applies one change
and saves it back (see calories.state.edit_state). Validation failures raise
TrackerError with a message meant for the user; missing days or foods raise
NotFoundError.

Covers:
- Days: new, copy, clear, delete, switch, notes/label/burned calories
- Per-day goal overrides and water
- Foods: custom, quick add, USDA, barcode, edit, duplicate, remove and undo
- Global goals, macro presets, preferences and TDEE
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from .errors import NotFoundError, TrackerError
from .models import (
    MEALS,
    OVERRIDE_KEYS,
    CustomFoodInput,
    Day,
    EditFoodInput,
    Food,
    Goals,
    Macros,
    Preferences,
    QuickAddInput,
    TrackerModel,
    UsdaFoodInput,
    create_day,
)
from .nutrition import MACRO_PRESETS, apply_macro_preset, effective_goals, resolve_default_meal
from .state import TrackerState, edit_state, load_state
from .tdee import TdeeRequest
from .utils.numbers import new_id, now_ms, number_or_zero, round_half_up
from .utils.units import (
    build_usda_serving_options,
    convert_amount,
    normalize_serving_unit,
    servings_from_amount,
    to_water_oz,
)

logger = logging.getLogger(__name__)

MIN_SERVINGS = 0.25

USDA_NUTRIENT_NAMES = {
    "calories": "Energy",
    "protein": "Protein",
    "fat": "Total lipid (fat)",
    "carbs": "Carbohydrate, by difference",
}

OFF_NUTRIMENT_KEYS = {
    "calories": "energy-kcal_100g",
    "protein": "proteins_100g",
    "fat": "fat_100g",
    "carbs": "carbohydrates_100g",
}


class FoodRemoval(TrackerModel):
    """Everything needed to undo a food removal."""
    item: Food
    index: int
    day_index: int


class TdeeResult(TrackerModel):
    tdee: int
    applied: bool
    goals: Goals


# ============================================================================
# Helpers
# ============================================================================

def resolve_meal(state: TrackerState, meal: Optional[str]) -> str:
    if not meal:
        return resolve_default_meal(state.prefs)
    if meal not in MEALS:
        raise TrackerError(f"Unknown meal: {meal}")
    return meal


def _find_food_index(day: Day, food_id: str) -> int:
    for index, food in enumerate(day.foods):
        if food.id == food_id:
            return index
    raise NotFoundError(f"Food {food_id} not found")


def _servings_for_amount(
    amount_value: float,
    amount_unit: str,
    serving_size: float,
    serving_unit: str,
    current: float = 1,
) -> float:
    """
    Turn an amount entered in a form into servings (at least MIN_SERVINGS).

    A zero amount keeps the current servings.

    Raises:
        TrackerError: If the amount is negative, or a unit amount cannot be
            converted because the serving size is missing
    """
    if amount_value < 0:
        raise TrackerError("Amount cannot be negative.")
    if amount_value == 0:
        return current
    computed = servings_from_amount(amount_value, amount_unit, serving_size, serving_unit)
    if computed:
        return max(MIN_SERVINGS, computed)
    if amount_unit != "servings":
        raise TrackerError("Enter a serving size to convert g/oz/cup.")
    return current


def _check_not_negative(*values: float) -> None:
    if any(value < 0 for value in values):
        raise TrackerError("Values cannot be negative.")


def append_food(state: TrackerState, food: Food) -> Food:
    """Append a food to the current day's log."""
    state.current_day.foods.append(food)
    return food


# ============================================================================
# Days
# ============================================================================

def get_day(session_id: str, index: Optional[int] = None) -> Day:
    """Get a day by index (the current day when index is None)."""
    state = load_state(session_id)
    if index is None:
        return state.current_day
    if not 0 <= index < len(state.days):
        raise NotFoundError(f"Day {index} not found")
    return state.days[index]


def new_day(session_id: str) -> Day:
    """Append an empty day dated today and select it."""
    with edit_state(session_id) as state:
        day = create_day()
        state.days.append(day)
        state.current_day_index = len(state.days) - 1
    return day


def copy_day(session_id: str) -> Day:
    """
    Append a copy of the current day, dated today, and select it.

    Copied foods get new ids and timestamps; notes, water, burned calories and
    goal overrides are carried over.
    """
    with edit_state(session_id) as state:
        source = state.current_day
        day = create_day()
        day.foods = [food.model_copy(update={"id": new_id(), "created_at": now_ms()}) for food in source.foods]
        day.notes = source.notes
        day.water_oz = source.water_oz
        day.burned_calories = number_or_zero(source.burned_calories)
        day.goal_overrides = dict(source.goal_overrides)
        state.days.append(day)
        state.current_day_index = len(state.days) - 1
    return day


def clear_day(session_id: str) -> Day:
    """Remove all foods and reset notes, water and burned calories on the current day."""
    with edit_state(session_id) as state:
        day = state.current_day
        day.foods = []
        day.notes = ""
        day.water_oz = 0
        day.burned_calories = 0
    return day


def delete_day(session_id: str) -> int:
    """
    Delete the current day.

    Returns:
        Index of the day selected afterwards

    Raises:
        TrackerError: If it is the only day
    """
    with edit_state(session_id) as state:
        if len(state.days) <= 1:
            raise TrackerError("You must keep at least one day.")
        index = state.current_day_index
        del state.days[index]
        state.current_day_index = max(0, min(index, len(state.days) - 1))
        return state.current_day_index


def switch_day(session_id: str, index: int) -> Day:
    """Select the day at index."""
    with edit_state(session_id) as state:
        if not 0 <= index < len(state.days):
            raise NotFoundError(f"Day {index} not found")
        state.current_day_index = index
        return state.days[index]


def update_day_meta(
    session_id: str,
    notes: Optional[str] = None,
    burned_calories: Optional[Any] = None,
    date_label: Optional[str] = None,
) -> Day:
    """Update notes, burned calories and/or the label of the current day. None leaves a field as-is."""
    with edit_state(session_id) as state:
        day = state.current_day
        if notes is not None:
            day.notes = notes
        if burned_calories is not None:
            day.burned_calories = max(0.0, number_or_zero(burned_calories))
        if date_label is not None:
            day.date_label = date_label.strip()
    return day


def set_day_goal(session_id: str, field: str, value: Any) -> Day:
    """
    Set (or with a value <= 0, clear) one goal override on the current day.

    Water is entered in the preferred water unit and stored in ounces.
    """
    if field not in OVERRIDE_KEYS:
        raise TrackerError(f"Unknown goal: {field}")
    with edit_state(session_id) as state:
        numeric = number_or_zero(value)
        if field == "water_oz":
            numeric = to_water_oz(numeric, state.prefs.water_unit)
        day = state.current_day
        if numeric <= 0:
            day.goal_overrides.pop(field, None)
        else:
            day.goal_overrides[field] = numeric
    return day


def enable_day_overrides(session_id: str) -> Day:
    """Start per-day goals from the current effective goals."""
    with edit_state(session_id) as state:
        day = state.current_day
        goals = effective_goals(state.goals, day)
        day.goal_overrides = {key: getattr(goals, key) for key in OVERRIDE_KEYS}
    return day


def clear_day_overrides(session_id: str) -> Day:
    with edit_state(session_id) as state:
        day = state.current_day
        day.goal_overrides = {}
    return day


def adjust_water(session_id: str, delta: Any) -> Day:
    """Add (or with a negative delta, remove) water in the preferred unit. Never goes below 0."""
    with edit_state(session_id) as state:
        day = state.current_day
        delta_oz = to_water_oz(delta, state.prefs.water_unit)
        day.water_oz = max(0.0, number_or_zero(day.water_oz) + delta_oz)
    return day


# ============================================================================
# Foods
# ============================================================================

def add_custom_food(session_id: str, data: CustomFoodInput) -> Food:
    """
    Log a custom food.

    Macros are per serving; the amount (in servings or any serving unit) is
    turned into a number of servings.

    Raises:
        TrackerError: If the name is missing, a value is negative or the amount
            cannot be converted
    """
    name = data.name.strip()
    if not name:
        raise TrackerError("Food name is required")
    _check_not_negative(data.serving_size, data.calories, data.protein, data.fat, data.carbs)
    servings = _servings_for_amount(data.amount_value, data.amount_unit, data.serving_size, data.serving_unit)

    with edit_state(session_id) as state:
        food = Food.from_per_serving(
            Macros(calories=data.calories, protein=data.protein, fat=data.fat, carbs=data.carbs),
            servings,
            food=name,
            brand=data.brand.strip(),
            serving_size=data.serving_size,
            serving_unit=data.serving_unit,
            notes=data.notes.strip(),
            meal=resolve_meal(state, data.meal),
            source="custom",
        )
        append_food(state, food)
    logger.debug(f"Added custom food {name!r} ({servings} servings)")
    return food


def quick_add(session_id: str, data: QuickAddInput) -> Food:
    """Log a calories-only entry. The label defaults to "Quick Add"."""
    calories = number_or_zero(data.calories)
    if calories <= 0:
        raise TrackerError("Calories are required")

    with edit_state(session_id) as state:
        food = Food.from_per_serving(
            Macros(calories=calories),
            1,
            food=data.name.strip() or "Quick Add",
            notes=data.notes.strip(),
            meal=resolve_meal(state, data.meal),
            source="quick",
        )
        append_food(state, food)
    return food


def usda_nutrients(food: Dict[str, Any]) -> Macros:
    """
    Read calories and macros from a FoodData Central food's nutrient list.

    Nutrients are matched by name; missing ones count as 0.
    """
    nutrients = food.get("foodNutrients")
    by_name: Dict[str, Any] = {}
    for nutrient in nutrients if isinstance(nutrients, list) else []:
        name = nutrient.get("nutrientName")
        if name and name not in by_name:
            by_name[name] = nutrient.get("value")
    return Macros(**{key: number_or_zero(by_name.get(name)) for key, name in USDA_NUTRIENT_NAMES.items()})


def build_usda_food(data: UsdaFoodInput, meal: str) -> Food:
    """
    Build a log entry from a FoodData Central result.

    FoodData Central reports nutrients for the food's own serving size. When a
    different serving option is picked, the nutrients are scaled by the ratio
    of the picked serving to the base serving.
    """
    raw = data.food
    options = build_usda_serving_options(raw)
    index = data.serving_option if data.serving_option < len(options) else 0
    selected = options[index] if options else {}

    base_size = number_or_zero(raw.get("servingSize"))
    base_unit = normalize_serving_unit(raw.get("servingSizeUnit")) or (raw.get("servingSizeUnit") or "")
    serving_size = number_or_zero(selected.get("size")) or base_size
    serving_unit = normalize_serving_unit(selected.get("unit")) or selected.get("unit") or base_unit

    amount = number_or_zero(data.amount_value)
    if data.amount_unit != "servings":
        if not serving_size or not serving_unit:
            raise TrackerError("Select a serving size to convert units.")
        computed = servings_from_amount(amount, data.amount_unit, serving_size, serving_unit)
        if not computed:
            raise TrackerError("Conversion failed. Check the serving size.")
        servings = max(MIN_SERVINGS, computed)
    else:
        servings = max(MIN_SERVINGS, amount if amount > 0 else 1)

    per_serving = usda_nutrients(raw)
    if base_size and base_unit and serving_size and serving_unit:
        ratio = convert_amount(serving_size, serving_unit, base_unit) / base_size
        if ratio > 0:
            per_serving = per_serving.scaled(ratio)

    return Food.from_per_serving(
        per_serving,
        servings,
        food=raw.get("description") or "Unknown",
        brand=raw.get("brandOwner") or raw.get("brandName") or "",
        serving_size=serving_size,
        serving_unit=serving_unit,
        meal=meal,
        source="usda",
    )


def add_usda_food(session_id: str, data: UsdaFoodInput) -> Food:
    """Log a FoodData Central search result (see build_usda_food)."""
    with edit_state(session_id) as state:
        food = build_usda_food(data, resolve_meal(state, data.meal))
        append_food(state, food)
    return food


def add_barcode_product(session_id: str, product: Dict[str, Any], grams: float, meal: Optional[str] = None) -> Food:
    """
    Log an Open Food Facts product.

    Nutriments are given per 100 g and scaled to the grams eaten. The entry is
    one serving of that amount.
    """
    if number_or_zero(grams) <= 0:
        raise TrackerError("Enter a serving size in grams.")
    nutriments = product.get("nutriments") or {}
    multiplier = number_or_zero(grams) / 100
    per_serving = Macros(
        **{key: number_or_zero(nutriments.get(name)) * multiplier for key, name in OFF_NUTRIMENT_KEYS.items()}
    )

    with edit_state(session_id) as state:
        food = Food.from_per_serving(
            per_serving,
            1,
            food=product.get("product_name") or "Unknown",
            meal=resolve_meal(state, meal),
            source="barcode",
        )
        append_food(state, food)
    return food


def edit_food(session_id: str, food_id: str, data: EditFoodInput) -> Food:
    """
    Replace a food's details on the current day.

    A zero amount keeps the food's current servings.
    """
    name = data.name.strip()
    if not name:
        raise TrackerError("Food name is required")
    _check_not_negative(data.serving_size, data.calories, data.protein, data.fat, data.carbs)

    with edit_state(session_id) as state:
        day = state.current_day
        index = _find_food_index(day, food_id)
        current = day.foods[index]
        servings = _servings_for_amount(
            data.amount_value,
            data.amount_unit,
            data.serving_size,
            data.serving_unit,
            current=max(MIN_SERVINGS, current.servings or 1),
        )
        updated = Food.from_per_serving(
            Macros(calories=data.calories, protein=data.protein, fat=data.fat, carbs=data.carbs),
            servings,
            id=current.id,
            food=name,
            brand=data.brand.strip(),
            serving_size=data.serving_size,
            serving_unit=data.serving_unit,
            notes=data.notes.strip(),
            tags=current.tags,
            meal=resolve_meal(state, data.meal or current.meal),
            created_at=current.created_at,
            source=current.source,
        )
        day.foods[index] = updated
    return updated


def duplicate_food(session_id: str, food_id: str) -> Food:
    """Append a copy of a food (new id and timestamp) to the current day."""
    with edit_state(session_id) as state:
        day = state.current_day
        source = day.foods[_find_food_index(day, food_id)]
        copy = source.model_copy(update={"id": new_id(), "created_at": now_ms()}, deep=True)
        append_food(state, copy)
    return copy


def remove_food(session_id: str, food_id: str) -> FoodRemoval:
    """
    Remove a food from the current day.

    Returns:
        FoodRemoval token that undo_removal() accepts
    """
    with edit_state(session_id) as state:
        day = state.current_day
        index = _find_food_index(day, food_id)
        item = day.foods.pop(index)
        return FoodRemoval(item=item, index=index, day_index=state.current_day_index)


def undo_removal(session_id: str, removal: FoodRemoval) -> Food:
    """
    Put a removed food back at its original position on its original day.

    The position is clamped to the end of the log if foods were removed since.
    """
    with edit_state(session_id) as state:
        if not 0 <= removal.day_index < len(state.days):
            raise NotFoundError(f"Day {removal.day_index} not found")
        foods = state.days[removal.day_index].foods
        foods.insert(min(removal.index, len(foods)), removal.item)
    return removal.item


def list_foods(session_id: str, day_index: Optional[int] = None) -> List[Food]:
    return get_day(session_id, day_index).foods


# ============================================================================
# Goals, preferences and TDEE
# ============================================================================

def update_goal(session_id: str, field: str, value: Any) -> Goals:
    """
    Update one global goal (clamped at 0).

    Water is entered in the preferred water unit and stored in ounces.
    """
    if field not in Goals.model_fields:
        raise TrackerError(f"Unknown goal: {field}")
    with edit_state(session_id) as state:
        numeric = number_or_zero(value)
        if field == "water_oz":
            numeric = to_water_oz(numeric, state.prefs.water_unit)
        setattr(state.goals, field, max(0.0, numeric))
        return state.goals


def apply_preset(session_id: str, preset: str) -> Goals:
    """Rewrite macro goals from the calorie goal with a named preset."""
    if preset not in MACRO_PRESETS:
        raise TrackerError(f"Unknown macro preset: {preset}")
    with edit_state(session_id) as state:
        state.goals = apply_macro_preset(state.goals, preset)
        return state.goals


def update_prefs(session_id: str, changes: Dict[str, Any]) -> Preferences:
    """
    Update preferences.

    Raises:
        TrackerError: If a value is not allowed (e.g. an unknown theme)
    """
    with edit_state(session_id) as state:
        merged = {**state.prefs.model_dump(by_alias=True), **{to_camel(key): value for key, value in changes.items()}}
        try:
            state.prefs = Preferences.model_validate(merged)
        except ValidationError as e:
            raise TrackerError(f"Invalid preferences: {e.errors()[0]['msg']}") from e
        return state.prefs


def estimate_tdee(session_id: str, request: TdeeRequest, set_goal: bool = False) -> TdeeResult:
    """
    Estimate TDEE and optionally make it the calorie goal.

    When set_goal is True the rounded TDEE becomes the calorie goal and is
    remembered as the saved TDEE.

    Raises:
        TrackerError: If the formula gives no result for these inputs
    """
    value = request.estimate()
    if not value:
        raise TrackerError("Unable to calculate. Check your inputs.")
    rounded = round_half_up(value)

    with edit_state(session_id) as state:
        if set_goal:
            state.global_tdee = rounded
            state.goals.calories = rounded
        goals = state.goals
    return TdeeResult(tdee=rounded, applied=set_goal, goals=goals)


def apply_saved_tdee(session_id: str) -> Goals:
    """Set the calorie goal back to the saved TDEE."""
    with edit_state(session_id) as state:
        if not state.global_tdee:
            raise TrackerError("No saved TDEE yet.")
        state.goals.calories = round_half_up(state.global_tdee)
        return state.goals
