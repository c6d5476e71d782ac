"""
Saved foods and meal planning: favourites, search history, recipes and plans.
"""

import logging
from typing import Dict, List, Optional

from .errors import NotFoundError, TrackerError
from .log import MIN_SERVINGS, append_food, resolve_meal
from .models import Favorite, Food, PlanItem, PlanItemInput, Recipe, RecipeInput, ServingsInput
from .state import edit_state, load_state
from .utils.numbers import new_id, now_ms, number_or_zero

logger = logging.getLogger(__name__)

MAX_FAVORITES = 12
MAX_SEARCH_HISTORY = 8


# ============================================================================
# Favourites
# ============================================================================

def list_favorites(session_id: str) -> List[Favorite]:
    return load_state(session_id).favorites


def toggle_favorite(session_id: str, food_id: str) -> Optional[Favorite]:
    """
    Star or unstar a food from the current day's log.

    Favourites are identified by food name. Starring puts the food first and
    keeps at most MAX_FAVORITES.

    Returns:
        The new favourite, or None if the food was unstarred
    """
    with edit_state(session_id) as state:
        food = next((f for f in state.current_day.foods if f.id == food_id), None)
        if food is None:
            raise NotFoundError(f"Food {food_id} not found")

        if any(fav.food == food.food for fav in state.favorites):
            state.favorites = [fav for fav in state.favorites if fav.food != food.food]
            return None

        favorite = Favorite(
            food=food.food,
            brand=food.brand,
            serving_size=food.serving_size,
            serving_unit=food.serving_unit,
            notes=food.notes,
            per_serving=food.per_serving,
        )
        state.favorites = [favorite] + state.favorites
        state.favorites = state.favorites[:MAX_FAVORITES]
        return favorite


def remove_favorite(session_id: str, food_name: str) -> None:
    with edit_state(session_id) as state:
        state.favorites = [fav for fav in state.favorites if fav.food != food_name]


def add_from_favorite(session_id: str, favorite_id: str, data: ServingsInput) -> Food:
    """Log a favourite with the given servings (at least MIN_SERVINGS)."""
    servings = max(MIN_SERVINGS, number_or_zero(data.servings))
    with edit_state(session_id) as state:
        favorite = next((fav for fav in state.favorites if fav.id == favorite_id), None)
        if favorite is None:
            raise NotFoundError(f"Favorite {favorite_id} not found")
        food = Food.from_per_serving(
            favorite.per_serving,
            servings,
            food=favorite.food,
            brand=favorite.brand,
            serving_size=favorite.serving_size,
            serving_unit=favorite.serving_unit,
            notes=favorite.notes,
            meal=resolve_meal(state, data.meal),
            source="favorite",
        )
        return append_food(state, food)


# ============================================================================
# Search history
# ============================================================================

def record_search(session_id: str, term: str) -> List[str]:
    """Put a search term first in the history (trimmed, no duplicates, at most MAX_SEARCH_HISTORY)."""
    cleaned = term.strip()
    with edit_state(session_id) as state:
        if cleaned:
            history = [cleaned] + [t for t in state.search_history if t != cleaned]
            state.search_history = history[:MAX_SEARCH_HISTORY]
        return state.search_history


def clear_search_history(session_id: str) -> None:
    with edit_state(session_id) as state:
        state.search_history = []


# ============================================================================
# Recipes
# ============================================================================

def add_recipe(session_id: str, data: RecipeInput) -> Recipe:
    """
    Save a recipe. Ingredients are given one per line; blank lines are dropped.

    Raises:
        TrackerError: If the recipe has no name
    """
    name = data.name.strip()
    if not name:
        raise TrackerError("Give your recipe a name.")
    recipe = Recipe(
        name=name,
        servings=max(1.0, number_or_zero(data.servings)),
        calories=data.calories,
        protein=data.protein,
        fat=data.fat,
        carbs=data.carbs,
        ingredients=[line.strip() for line in data.ingredients.split("\n") if line.strip()],
        notes=data.notes.strip(),
    )
    with edit_state(session_id) as state:
        state.recipes = [recipe] + state.recipes
    return recipe


def remove_recipe(session_id: str, recipe_id: str) -> None:
    with edit_state(session_id) as state:
        state.recipes = [r for r in state.recipes if r.id != recipe_id]


def _find_recipe(recipes: List[Recipe], recipe_id: str) -> Recipe:
    for recipe in recipes:
        if recipe.id == recipe_id:
            return recipe
    raise NotFoundError(f"Recipe {recipe_id} not found")


def duplicate_recipe(session_id: str, recipe_id: str) -> Recipe:
    """Save a copy of a recipe named "<name> (Copy)" at the top of the list."""
    with edit_state(session_id) as state:
        source = _find_recipe(state.recipes, recipe_id)
        copy = source.model_copy(
            update={"id": new_id(), "name": f"{source.name} (Copy)", "created_at": now_ms()},
            deep=True,
        )
        state.recipes = [copy] + state.recipes
        return copy


def add_recipe_to_day(session_id: str, recipe_id: str, data: ServingsInput) -> Food:
    """Log servings of a recipe (at least MIN_SERVINGS) on the current day."""
    servings = max(MIN_SERVINGS, number_or_zero(data.servings))
    with edit_state(session_id) as state:
        recipe = _find_recipe(state.recipes, recipe_id)
        food = Food.from_per_serving(
            recipe.per_serving,
            servings,
            food=recipe.name,
            notes=recipe.notes,
            meal=resolve_meal(state, data.meal),
            source="recipe",
        )
        return append_food(state, food)


# ============================================================================
# Meal plans
# ============================================================================

def add_plan_item(session_id: str, data: PlanItemInput) -> PlanItem:
    """Plan a meal for a date (servings at least MIN_SERVINGS)."""
    name = data.name.strip()
    if not name:
        raise TrackerError("Add a meal name first.")
    item = PlanItem(
        date_iso=data.date_iso,
        meal=data.meal,
        name=name,
        calories=data.calories,
        protein=data.protein,
        fat=data.fat,
        carbs=data.carbs,
        servings=max(MIN_SERVINGS, number_or_zero(data.servings)),
        notes=data.notes.strip(),
    )
    with edit_state(session_id) as state:
        state.plans = [item] + state.plans
    return item


def remove_plan_item(session_id: str, item_id: str) -> None:
    with edit_state(session_id) as state:
        state.plans = [item for item in state.plans if item.id != item_id]


def remove_plan_date(session_id: str, date_iso: str) -> None:
    with edit_state(session_id) as state:
        state.plans = [item for item in state.plans if item.date_iso != date_iso]


def plans_by_date(plans: List[PlanItem]) -> Dict[str, List[PlanItem]]:
    """
    Group plan items by date, newest date first.

    Items without a date are grouped under "unscheduled".
    """
    grouped: Dict[str, List[PlanItem]] = {}
    for item in plans:
        grouped.setdefault(item.date_iso or "unscheduled", []).append(item)
    return {key: grouped[key] for key in sorted(grouped, reverse=True)}


def apply_plan(session_id: str, date_iso: str) -> List[Food]:
    """
    Log every item planned for a date on the current day.

    Raises:
        TrackerError: If nothing is planned for that date
    """
    with edit_state(session_id) as state:
        items = [item for item in state.plans if item.date_iso == date_iso]
        if not items:
            raise TrackerError("No entries planned for that day.")
        added = []
        for item in items:
            food = Food.from_per_serving(
                item.per_serving,
                item.servings,
                food=item.name,
                notes=item.notes,
                meal=item.meal,
                source="plan",
            )
            added.append(append_food(state, food))
    logger.debug(f"Applied {len(added)} planned items for {date_iso}")
    return added
