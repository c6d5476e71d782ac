"""
Calorie tracker router.

Endpoints are grouped as:
- /calories/state, /calories/days/...: Day list, current day, notes, per-day goals and water
- /calories/foods/...: Logging foods (custom, quick add, USDA, barcode), editing and undo
- /calories/goals, /calories/prefs, /calories/tdee: Goals, preferences and TDEE
- /calories/favorites, /calories/recipes, /calories/plans: Saved foods and meal planning
- /calories/measurements, /calories/workouts: Progress tracking
- /calories/insights, /calories/export, /calories/import: Trends and data transfer
- /calories/search, /calories/barcode/{code}: Food data lookups

Every endpoint works on the tracker stored for the X-Session-ID session.
TrackerError and NotFoundError raised by the calories package are turned
into 400/404 responses by the handlers in api.main.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_snake

from api.dependencies import get_session
from api.schemas import (
    DayListItem,
    DayMetaUpdate,
    DayView,
    FieldValueUpdate,
    FoodSearchResponse,
    ImportRequest,
    MeasurementsView,
    PresetRequest,
    TdeeEstimateRequest,
    TrackerStateView,
    WaterDelta,
)
from calories import library, log, progress, transfer
from calories.connectors.base import ConnectorError, ProductNotFoundError
from calories.connectors.openfoodfacts_connector import OpenFoodFactsConnector
from calories.connectors.usda_connector import RESULTS_PAGE_SIZE, UsdaConnector
from calories.log import FoodRemoval, TdeeResult
from calories.models import (
    BarcodeFoodInput,
    CustomFoodInput,
    EditFoodInput,
    Favorite,
    Food,
    Goals,
    Measurement,
    MeasurementInput,
    PlanItem,
    PlanItemInput,
    Preferences,
    QuickAddInput,
    Recipe,
    RecipeInput,
    ServingsInput,
    UsdaFoodInput,
    Workout,
    WorkoutInput,
)
from calories.nutrition import (
    MACRO_PRESETS,
    Insights,
    compute_insights,
    resolve_default_meal,
    sum_foods,
    summarize_day,
    visible_foods,
)
from calories.state import TrackerState, load_state
from calories.tdee import ACTIVITY_LEVELS, TDEE_FORMULAS
from calories.transfer import ImportSummary
from calories.utils.units import build_usda_serving_options

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calories", tags=["calories"])

FOOD_SERVICE_UNAVAILABLE = "Food data service is unavailable. Please try again later."


def get_usda_connector() -> UsdaConnector:
    return UsdaConnector()


def get_openfoodfacts_connector() -> OpenFoodFactsConnector:
    return OpenFoodFactsConnector()


def _day_view(state: TrackerState, index: Optional[int] = None) -> DayView:
    if index is None:
        index = state.current_day_index
    day = state.days[index]
    return DayView(index=index, day=day, summary=summarize_day(day, state.goals, state.prefs))


def _state_view(state: TrackerState) -> TrackerStateView:
    days = [
        DayListItem(
            index=i,
            date=day.date,
            date_iso=day.date_iso,
            date_label=day.date_label,
            food_count=len(day.foods),
            calories=sum_foods(day.foods).calories,
        )
        for i, day in enumerate(state.days)
    ]
    return TrackerStateView(
        current_day_index=state.current_day_index,
        days=days,
        current=_day_view(state),
        goals=state.goals,
        prefs=state.prefs,
        global_tdee=state.global_tdee,
        favorites=state.favorites,
        search_history=state.search_history,
        default_meal=resolve_default_meal(state.prefs),
    )


def _current_view(session_id: str) -> DayView:
    return _day_view(load_state(session_id))


# ============================================================================
# State and days
# ============================================================================

@router.get(
    "/state",
    response_model=TrackerStateView,
    summary="Get the tracker overview",
    description="Day list, current day with its summary, goals, preferences, favourites and search history.",
)
def get_state(session_id: str = Depends(get_session)) -> TrackerStateView:
    """
    Get everything the tracker page needs in one call.

    Args:
        session_id: Session ID from X-Session-ID header

    Returns:
        TrackerStateView for the session (a fresh tracker with one empty day
        dated today if nothing was stored yet)
    """
    return _state_view(load_state(session_id))


@router.get("/days/{index}", response_model=DayView, summary="Get a day with its summary")
def get_day(index: int, session_id: str = Depends(get_session)) -> DayView:
    state = load_state(session_id)
    log.get_day(session_id, index)
    return _day_view(state, index)


@router.post("/days", response_model=DayView, status_code=status.HTTP_201_CREATED, summary="Start a new day")
def new_day(session_id: str = Depends(get_session)) -> DayView:
    """Append an empty day dated today and select it."""
    log.new_day(session_id)
    return _current_view(session_id)


@router.post(
    "/days/copy",
    response_model=DayView,
    status_code=status.HTTP_201_CREATED,
    summary="Copy the current day",
)
def copy_day(session_id: str = Depends(get_session)) -> DayView:
    """Append a copy of the current day dated today (foods get new ids) and select it."""
    log.copy_day(session_id)
    return _current_view(session_id)


@router.post("/days/current/clear", response_model=DayView, summary="Clear the current day")
def clear_day(session_id: str = Depends(get_session)) -> DayView:
    log.clear_day(session_id)
    return _current_view(session_id)


@router.delete(
    "/days/current",
    response_model=TrackerStateView,
    summary="Delete the current day",
    description="Deleting the only remaining day is refused with 400.",
)
def delete_day(session_id: str = Depends(get_session)) -> TrackerStateView:
    log.delete_day(session_id)
    return _state_view(load_state(session_id))


@router.post("/days/{index}/select", response_model=DayView, summary="Switch to another day")
def select_day(index: int, session_id: str = Depends(get_session)) -> DayView:
    log.switch_day(session_id, index)
    return _current_view(session_id)


@router.patch("/days/current", response_model=DayView, summary="Update notes, label or burned calories")
def update_day(update: DayMetaUpdate, session_id: str = Depends(get_session)) -> DayView:
    log.update_day_meta(
        session_id,
        notes=update.notes,
        burned_calories=update.burned_calories,
        date_label=update.date_label,
    )
    return _current_view(session_id)


@router.put(
    "/days/current/goals",
    response_model=DayView,
    summary="Set one per-day goal",
    description="Overrides one global goal for the current day. A value of 0 removes the override. "
                "Water is given in the preferred water unit.",
)
def set_day_goal(update: FieldValueUpdate, session_id: str = Depends(get_session)) -> DayView:
    log.set_day_goal(session_id, to_snake(update.field), update.value)
    return _current_view(session_id)


@router.post("/days/current/goals", response_model=DayView, summary="Enable per-day goals")
def enable_day_goals(session_id: str = Depends(get_session)) -> DayView:
    """Start per-day goals from the goals currently in effect."""
    log.enable_day_overrides(session_id)
    return _current_view(session_id)


@router.delete("/days/current/goals", response_model=DayView, summary="Go back to the global goals")
def clear_day_goals(session_id: str = Depends(get_session)) -> DayView:
    log.clear_day_overrides(session_id)
    return _current_view(session_id)


@router.post("/days/current/water", response_model=DayView, summary="Add or remove water")
def adjust_water(update: WaterDelta, session_id: str = Depends(get_session)) -> DayView:
    log.adjust_water(session_id, update.delta)
    return _current_view(session_id)


# ============================================================================
# Foods
# ============================================================================

@router.get("/foods", response_model=List[Food], summary="List the current day's foods")
def list_foods(
    meal: str = Query("All", description="Meal name, or All"),
    source: str = Query("All", description="Food source (custom, usda, barcode...), or All"),
    sort: str = Query("created_at", description="Sort key: created_at, food, meal, calories, protein, fat, carbs"),
    direction: str = Query("desc", pattern="^(asc|desc)$"),
    session_id: str = Depends(get_session),
) -> List[Food]:
    return visible_foods(log.list_foods(session_id), meal, source, sort, direction)


@router.post("/foods", response_model=Food, status_code=status.HTTP_201_CREATED, summary="Log a custom food")
def add_custom_food(data: CustomFoodInput, session_id: str = Depends(get_session)) -> Food:
    """
    Log a custom food on the current day.

    Macros are per serving. The amount eaten may be given in servings or in
    any serving unit (g, oz, cup...), in which case it is converted to
    servings through the serving size.

    Raises:
        HTTPException 400: If the name is missing, a value is negative, or a
            unit amount is given without a serving size
    """
    return log.add_custom_food(session_id, data)


@router.post("/foods/quick", response_model=Food, status_code=status.HTTP_201_CREATED, summary="Quick add calories")
def quick_add(data: QuickAddInput, session_id: str = Depends(get_session)) -> Food:
    return log.quick_add(session_id, data)


@router.post(
    "/foods/usda",
    response_model=Food,
    status_code=status.HTTP_201_CREATED,
    tags=["food-data"],
    summary="Log a FoodData Central result",
)
def add_usda_food(data: UsdaFoodInput, session_id: str = Depends(get_session)) -> Food:
    return log.add_usda_food(session_id, data)


@router.post(
    "/foods/barcode",
    response_model=Food,
    status_code=status.HTTP_201_CREATED,
    tags=["food-data"],
    summary="Log a product by barcode",
    description="Looks the barcode up on Open Food Facts and logs the given grams of it.",
)
def add_barcode_food(
    data: BarcodeFoodInput,
    session_id: str = Depends(get_session),
    connector: OpenFoodFactsConnector = Depends(get_openfoodfacts_connector),
) -> Food:
    """
    Log an Open Food Facts product.

    Raises:
        HTTPException 404: If the product is not in Open Food Facts
        HTTPException 502: If Open Food Facts cannot be reached
    """
    try:
        product = connector.get_product(data.barcode)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ConnectorError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=FOOD_SERVICE_UNAVAILABLE) from e
    return log.add_barcode_product(session_id, product, data.grams, data.meal)


@router.put("/foods/{food_id}", response_model=Food, summary="Edit a food")
def edit_food(food_id: str, data: EditFoodInput, session_id: str = Depends(get_session)) -> Food:
    return log.edit_food(session_id, food_id, data)


@router.post(
    "/foods/{food_id}/duplicate",
    response_model=Food,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate a food",
)
def duplicate_food(food_id: str, session_id: str = Depends(get_session)) -> Food:
    return log.duplicate_food(session_id, food_id)


@router.delete(
    "/foods/{food_id}",
    response_model=FoodRemoval,
    summary="Remove a food",
    description="Returns an undo token; POST it to /calories/foods/undo to put the food back.",
)
def remove_food(food_id: str, session_id: str = Depends(get_session)) -> FoodRemoval:
    return log.remove_food(session_id, food_id)


@router.post("/foods/undo", response_model=Food, summary="Undo a removal")
def undo_removal(removal: FoodRemoval, session_id: str = Depends(get_session)) -> Food:
    return log.undo_removal(session_id, removal)


@router.post(
    "/foods/{food_id}/favorite",
    summary="Star or unstar a food",
    description="Favourites are matched by food name; at most 12 are kept, newest first.",
)
def toggle_favorite(food_id: str, session_id: str = Depends(get_session)) -> Dict[str, Any]:
    favorite = library.toggle_favorite(session_id, food_id)
    return {
        "favorite": favorite is not None,
        "item": favorite,
        "favorites": library.list_favorites(session_id),
    }


# ============================================================================
# Goals, preferences and TDEE
# ============================================================================

@router.get("/goals", response_model=Goals, summary="Get the global goals")
def get_goals(session_id: str = Depends(get_session)) -> Goals:
    return load_state(session_id).goals


@router.put(
    "/goals",
    response_model=Goals,
    summary="Update one global goal",
    description="Water is given in the preferred water unit and stored in ounces.",
)
def update_goal(update: FieldValueUpdate, session_id: str = Depends(get_session)) -> Goals:
    return log.update_goal(session_id, to_snake(update.field), update.value)


@router.get("/goals/presets", summary="List macro presets")
def list_presets() -> Dict[str, Dict[str, float]]:
    return MACRO_PRESETS


@router.post("/goals/preset", response_model=Goals, summary="Apply a macro preset")
def apply_preset(request: PresetRequest, session_id: str = Depends(get_session)) -> Goals:
    """Rewrite protein, carbs and fat goals from the calorie goal."""
    return log.apply_preset(session_id, request.preset)


@router.get("/prefs", response_model=Preferences, summary="Get preferences")
def get_prefs(session_id: str = Depends(get_session)) -> Preferences:
    return load_state(session_id).prefs


@router.patch("/prefs", response_model=Preferences, summary="Update preferences")
def update_prefs(
    changes: Dict[str, Any] = Body(..., examples=[{"waterUnit": "ml", "theme": "tide"}]),
    session_id: str = Depends(get_session),
) -> Preferences:
    return log.update_prefs(session_id, changes)


@router.get("/tdee/options", summary="List TDEE formulas and activity levels")
def tdee_options() -> Dict[str, Any]:
    return {"formulas": TDEE_FORMULAS, "activity_levels": ACTIVITY_LEVELS}


@router.post(
    "/tdee",
    response_model=TdeeResult,
    summary="Estimate TDEE",
    description="Estimates TDEE with the chosen formula. With set_goal the rounded value becomes "
                "the calorie goal and is remembered as the saved TDEE. Missing inputs give 422.",
)
def estimate_tdee(request: TdeeEstimateRequest, session_id: str = Depends(get_session)) -> TdeeResult:
    return log.estimate_tdee(session_id, request, set_goal=request.set_goal)


@router.post("/tdee/apply-saved", response_model=Goals, summary="Use the saved TDEE as the calorie goal")
def apply_saved_tdee(session_id: str = Depends(get_session)) -> Goals:
    return log.apply_saved_tdee(session_id)


# ============================================================================
# Food data
# ============================================================================

@router.get(
    "/search",
    response_model=FoodSearchResponse,
    tags=["food-data"],
    summary="Search FoodData Central",
    description="Returns foods 5 at a time; ask for the next page to load more. "
                "The first page of a search is added to the search history.",
)
def search_foods(
    q: str = Query(..., min_length=1, description="Search text (e.g. 'greek yogurt')"),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    session_id: str = Depends(get_session),
    connector: UsdaConnector = Depends(get_usda_connector),
) -> FoodSearchResponse:
    """
    Search FoodData Central.

    Args:
        q: Search text
        page: Page of RESULTS_PAGE_SIZE results
        session_id: Session ID from X-Session-ID header

    Returns:
        FoodSearchResponse with the raw foods and their serving options

    Raises:
        HTTPException 502: If FoodData Central cannot be reached
    """
    try:
        foods = connector.search_foods(q, page_size=RESULTS_PAGE_SIZE, page_number=page)
    except ConnectorError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=FOOD_SERVICE_UNAVAILABLE) from e

    if page == 1:
        history = library.record_search(session_id, q)
    else:
        history = load_state(session_id).search_history

    return FoodSearchResponse(
        query=q.strip(),
        page=page,
        page_size=RESULTS_PAGE_SIZE,
        foods=foods,
        serving_options=[build_usda_serving_options(food) for food in foods],
        history=history,
    )


@router.get("/search/history", tags=["food-data"], summary="Recent search terms")
def get_search_history(session_id: str = Depends(get_session)) -> List[str]:
    return load_state(session_id).search_history


@router.delete("/search/history", status_code=status.HTTP_204_NO_CONTENT, tags=["food-data"])
def clear_search_history(session_id: str = Depends(get_session)) -> None:
    library.clear_search_history(session_id)


@router.get(
    "/barcode/{code}",
    tags=["food-data"],
    summary="Look up a barcode",
    description="Returns the Open Food Facts product (product_name, nutriments per 100 g) without logging it.",
)
def lookup_barcode(
    code: str,
    connector: OpenFoodFactsConnector = Depends(get_openfoodfacts_connector),
) -> Dict[str, Any]:
    try:
        return connector.get_product(code)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ConnectorError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=FOOD_SERVICE_UNAVAILABLE) from e


# ============================================================================
# Favourites, recipes and plans
# ============================================================================

@router.get("/favorites", response_model=List[Favorite], summary="List favourites")
def list_favorites(session_id: str = Depends(get_session)) -> List[Favorite]:
    return library.list_favorites(session_id)


@router.delete("/favorites", status_code=status.HTTP_204_NO_CONTENT, summary="Remove a favourite")
def remove_favorite(
    food: str = Query(..., description="Food name of the favourite"),
    session_id: str = Depends(get_session),
) -> None:
    library.remove_favorite(session_id, food)


@router.post(
    "/favorites/{favorite_id}/log",
    response_model=Food,
    status_code=status.HTTP_201_CREATED,
    summary="Log a favourite",
)
def log_favorite(favorite_id: str, data: ServingsInput, session_id: str = Depends(get_session)) -> Food:
    return library.add_from_favorite(session_id, favorite_id, data)


@router.get("/recipes", response_model=List[Recipe], summary="List recipes")
def list_recipes(session_id: str = Depends(get_session)) -> List[Recipe]:
    return load_state(session_id).recipes


@router.post("/recipes", response_model=Recipe, status_code=status.HTTP_201_CREATED, summary="Save a recipe")
def add_recipe(data: RecipeInput, session_id: str = Depends(get_session)) -> Recipe:
    return library.add_recipe(session_id, data)


@router.delete("/recipes/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a recipe")
def remove_recipe(recipe_id: str, session_id: str = Depends(get_session)) -> None:
    library.remove_recipe(session_id, recipe_id)


@router.post(
    "/recipes/{recipe_id}/duplicate",
    response_model=Recipe,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate a recipe",
)
def duplicate_recipe(recipe_id: str, session_id: str = Depends(get_session)) -> Recipe:
    return library.duplicate_recipe(session_id, recipe_id)


@router.post(
    "/recipes/{recipe_id}/log",
    response_model=Food,
    status_code=status.HTTP_201_CREATED,
    summary="Log servings of a recipe",
)
def log_recipe(recipe_id: str, data: ServingsInput, session_id: str = Depends(get_session)) -> Food:
    return library.add_recipe_to_day(session_id, recipe_id, data)


@router.get(
    "/plans",
    summary="List planned meals by date",
    description="Plan items grouped by date (newest first); undated items are under 'unscheduled'.",
)
def list_plans(session_id: str = Depends(get_session)) -> Dict[str, List[PlanItem]]:
    return library.plans_by_date(load_state(session_id).plans)


@router.post("/plans", response_model=PlanItem, status_code=status.HTTP_201_CREATED, summary="Plan a meal")
def add_plan_item(data: PlanItemInput, session_id: str = Depends(get_session)) -> PlanItem:
    return library.add_plan_item(session_id, data)


@router.delete("/plans/{item_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove a planned meal")
def remove_plan_item(item_id: str, session_id: str = Depends(get_session)) -> None:
    library.remove_plan_item(session_id, item_id)


@router.delete(
    "/plans/date/{date_iso}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove every meal planned for a date",
)
def remove_plan_date(date_iso: str, session_id: str = Depends(get_session)) -> None:
    library.remove_plan_date(session_id, date_iso)


@router.post(
    "/plans/date/{date_iso}/apply",
    response_model=List[Food],
    summary="Log a day's plan",
    description="Adds every meal planned for the date to the current day.",
)
def apply_plan(date_iso: str, session_id: str = Depends(get_session)) -> List[Food]:
    return library.apply_plan(session_id, date_iso)


# ============================================================================
# Progress
# ============================================================================

@router.get("/measurements", response_model=MeasurementsView, summary="List measurements with the latest changes")
def list_measurements(session_id: str = Depends(get_session)) -> MeasurementsView:
    return MeasurementsView(
        measurements=progress.list_measurements(session_id),
        deltas=progress.latest_deltas(session_id),
    )


@router.post(
    "/measurements",
    response_model=Measurement,
    status_code=status.HTTP_201_CREATED,
    summary="Record measurements",
)
def add_measurement(data: MeasurementInput, session_id: str = Depends(get_session)) -> Measurement:
    return progress.add_measurement(session_id, data)


@router.delete("/measurements/{measurement_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_measurement(measurement_id: str, session_id: str = Depends(get_session)) -> None:
    progress.remove_measurement(session_id, measurement_id)


@router.get("/workouts", response_model=List[Workout], summary="List workouts, newest first")
def list_workouts(session_id: str = Depends(get_session)) -> List[Workout]:
    return progress.list_workouts(session_id)


@router.post("/workouts", response_model=Workout, status_code=status.HTTP_201_CREATED, summary="Log a workout")
def add_workout(data: WorkoutInput, session_id: str = Depends(get_session)) -> Workout:
    return progress.add_workout(session_id, data)


@router.delete("/workouts/{workout_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_workout(workout_id: str, session_id: str = Depends(get_session)) -> None:
    progress.remove_workout(session_id, workout_id)


# ============================================================================
# Insights and data transfer
# ============================================================================

@router.get("/insights", response_model=Insights, summary="Trends across days")
def get_insights(session_id: str = Depends(get_session)) -> Insights:
    state = load_state(session_id)
    return compute_insights(state.days, state.goals, state.prefs)


@router.get(
    "/export",
    summary="Export all tracker data",
    description="Version 2 export bundle, served as a calorie-counter-YYYY-MM-DD.json download.",
)
def export_data(session_id: str = Depends(get_session)) -> JSONResponse:
    bundle = transfer.export_bundle(session_id)
    return JSONResponse(
        content=bundle.to_storage(),
        headers={"Content-Disposition": f'attachment; filename="{transfer.export_filename()}"'},
    )


@router.post(
    "/import",
    response_model=ImportSummary,
    summary="Import tracker data",
    description="Accepts a version 2 bundle or a bare list of days. Sections present in the "
                "import replace the stored ones. Malformed input gives 400.",
)
def import_data(request: ImportRequest, session_id: str = Depends(get_session)) -> ImportSummary:
    return transfer.import_data(session_id, request.payload)
