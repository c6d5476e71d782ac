"""
Backend API Client Module.

This module is the **single source of truth** for all backend API communication.
All HTTP calls to the FastAPI backend should go through functions in this module.

Key principles:
- Centralized error handling for network issues
- Graceful degradation when backend is unavailable
- Backend validation messages (the "detail" of a 400/404) are shown to the user as-is

# NOTE: When adding new endpoints, follow this pattern:
    - Create a function that takes the session_id and the parameters the endpoint needs
    - Call _request() with the method and path
    - Return parsed JSON or None on error (the error has already been shown)
    - Never let exceptions bubble up to crash the Streamlit app
"""

import os
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
import streamlit as st

from ui.feedback import show_error

DEFAULT_TIMEOUT = 10
# Food searches go through to USDA / Open Food Facts
FOOD_DATA_TIMEOUT = 30


def get_backend_url() -> str:
    """
    Get the backend API base URL from environment variable or use default.

    Returns:
        Backend URL string with trailing slash removed. Defaults to http://localhost:8000 for local development.

    For local development:
        - If BACKEND_URL is set in .env, use that value
        - Otherwise, default to http://localhost:8000

    For production:
        - Set BACKEND_URL to the backend service URL
        - Trailing slashes are automatically removed
    """
    url = os.getenv("BACKEND_URL", "http://localhost:8000")
    return url.rstrip("/")


def _deck_path(name: str) -> str:
    return quote(name, safe="")


def _session_headers(session_id: str) -> Dict[str, str]:
    return {"X-Session-ID": session_id}


def _error_detail(response: requests.Response) -> str:
    """Pull the message out of a FastAPI error response."""
    try:
        detail = response.json().get("detail")
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(detail, list):
        # Request validation errors: report the first one
        first = detail[0] if detail else {}
        message = str(first.get("msg", "Invalid input"))
        return message.replace("Value error, ", "")
    return str(detail or f"HTTP {response.status_code}")


def _request(
    method: str,
    path: str,
    session_id: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    quiet: bool = False,
    **kwargs: Any,
) -> Optional[Any]:
    """
    Call the backend and decode the JSON response.

    Args:
        method: HTTP method
        path: Path starting with "/"
        session_id: Sent as the X-Session-ID header when given
        timeout: Request timeout in seconds
        quiet: Don't show errors to the user
        **kwargs: Passed to requests.request (params, json...)

    Returns:
        Decoded JSON, {} for an empty response, or None on error
    """
    headers = _session_headers(session_id) if session_id else None
    try:
        response = requests.request(
            method,
            f"{get_backend_url()}{path}",
            headers=headers,
            timeout=timeout,
            **kwargs,
        )
    except requests.exceptions.Timeout:
        if not quiet:
            show_error("Request timed out. The backend may be slow or unreachable.")
        return None
    except requests.exceptions.ConnectionError:
        if not quiet:
            show_error(
                "Could not connect to backend.",
                hint="Check that the backend is running (uvicorn api.main:app).",
            )
        return None
    except requests.exceptions.RequestException as e:
        if not quiet:
            show_error(f"An error occurred while contacting the backend: {str(e)}")
        return None

    if response.status_code >= 400:
        if not quiet:
            show_error(_error_detail(response))
        return None
    if response.status_code == 204 or not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        if not quiet:
            show_error("Backend returned an invalid response.")
        return None


@st.cache_data(ttl=60)  # Cache for 60 seconds to avoid hitting backend too frequently
def get_health_status() -> Optional[Dict[str, Any]]:
    """
    Check backend health status by calling /health endpoint.

    Returns:
        Dictionary with normalized status info:
        {
            "status": "ok",
            "raw": {...},  # Full response from /health endpoint
            "docs_url": "/docs"
        }
        Or None if backend is unreachable.
    """
    try:
        response = requests.get(f"{get_backend_url()}/health", timeout=5)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException:
        return None
    except ValueError:
        return None

    if data.get("status") != "ok":
        return None
    return {"status": "ok", "raw": data, "docs_url": "/docs"}


# ============================================================================
# Calorie tracker: state and days
# ============================================================================

def get_tracker_state(session_id: str) -> Optional[Dict[str, Any]]:
    """
    Get the tracker overview for a session.

    Returns:
        Dictionary with currentDayIndex, days, current ({index, day, summary}),
        goals, prefs, globalTDEE, favorites, searchHistory and defaultMeal,
        or None on error.
    """
    return _request("GET", "/calories/state", session_id)


def new_day(session_id: str) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/days", session_id)


def copy_day(session_id: str) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/days/copy", session_id)


def clear_day(session_id: str) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/days/current/clear", session_id)


def delete_day(session_id: str) -> Optional[Dict[str, Any]]:
    return _request("DELETE", "/calories/days/current", session_id)


def select_day(session_id: str, index: int) -> Optional[Dict[str, Any]]:
    return _request("POST", f"/calories/days/{index}/select", session_id)


def update_day(
    session_id: str,
    notes: Optional[str] = None,
    burned_calories: Optional[float] = None,
    date_label: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Update notes, burned calories or label of the current day (None leaves a field unchanged)."""
    payload = {"notes": notes, "burnedCalories": burned_calories, "dateLabel": date_label}
    return _request("PATCH", "/calories/days/current", session_id, json=payload)


def set_day_goal(session_id: str, field: str, value: float) -> Optional[Dict[str, Any]]:
    return _request("PUT", "/calories/days/current/goals", session_id, json={"field": field, "value": value})


def enable_day_goals(session_id: str) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/days/current/goals", session_id)


def clear_day_goals(session_id: str) -> Optional[Dict[str, Any]]:
    return _request("DELETE", "/calories/days/current/goals", session_id)


def adjust_water(session_id: str, delta: float) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/days/current/water", session_id, json={"delta": delta})


# ============================================================================
# Calorie tracker: foods
# ============================================================================

def list_foods(
    session_id: str,
    meal: str = "All",
    source: str = "All",
    sort: str = "created_at",
    direction: str = "desc",
) -> Optional[List[Dict[str, Any]]]:
    params = {"meal": meal, "source": source, "sort": sort, "direction": direction}
    return _request("GET", "/calories/foods", session_id, params=params)


def add_custom_food(session_id: str, food: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Log a custom food.

    Args:
        session_id: Session identifier
        food: Form values (name, brand, servingSize, servingUnit, calories,
              protein, fat, carbs, amountValue, amountUnit, notes, meal)

    Returns:
        The logged food, or None on error.
    """
    return _request("POST", "/calories/foods", session_id, json=food)


def quick_add(session_id: str, name: str, calories: float, meal: Optional[str] = None) -> Optional[Dict[str, Any]]:
    payload = {"name": name, "calories": calories, "meal": meal}
    return _request("POST", "/calories/foods/quick", session_id, json=payload)


def add_usda_food(
    session_id: str,
    food: Dict[str, Any],
    serving_option: int = 0,
    amount_value: float = 1,
    amount_unit: str = "servings",
    meal: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    payload = {
        "food": food,
        "servingOption": serving_option,
        "amountValue": amount_value,
        "amountUnit": amount_unit,
        "meal": meal,
    }
    return _request("POST", "/calories/foods/usda", session_id, json=payload)


def add_barcode_food(
    session_id: str,
    barcode: str,
    grams: float = 100,
    meal: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    payload = {"barcode": barcode, "grams": grams, "meal": meal}
    return _request("POST", "/calories/foods/barcode", session_id, json=payload, timeout=FOOD_DATA_TIMEOUT)


def edit_food(session_id: str, food_id: str, food: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _request("PUT", f"/calories/foods/{food_id}", session_id, json=food)


def duplicate_food(session_id: str, food_id: str) -> Optional[Dict[str, Any]]:
    return _request("POST", f"/calories/foods/{food_id}/duplicate", session_id)


def remove_food(session_id: str, food_id: str) -> Optional[Dict[str, Any]]:
    """
    Remove a food.

    Returns:
        Undo token ({item, index, dayIndex}) to pass to undo_removal, or None on error.
    """
    return _request("DELETE", f"/calories/foods/{food_id}", session_id)


def undo_removal(session_id: str, removal: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/foods/undo", session_id, json=removal)


def toggle_favorite(session_id: str, food_id: str) -> Optional[Dict[str, Any]]:
    return _request("POST", f"/calories/foods/{food_id}/favorite", session_id)


# ============================================================================
# Calorie tracker: goals, preferences and TDEE
# ============================================================================

def update_goal(session_id: str, field: str, value: float) -> Optional[Dict[str, Any]]:
    return _request("PUT", "/calories/goals", session_id, json={"field": field, "value": value})


def apply_preset(session_id: str, preset: str) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/goals/preset", session_id, json={"preset": preset})


@st.cache_data(ttl=3600)
def get_presets() -> Optional[Dict[str, Any]]:
    return _request("GET", "/calories/goals/presets", quiet=True)


def update_prefs(session_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _request("PATCH", "/calories/prefs", session_id, json=changes)


@st.cache_data(ttl=3600)
def get_tdee_options() -> Optional[Dict[str, Any]]:
    """Formulas and activity levels for the TDEE calculator."""
    return _request("GET", "/calories/tdee/options", quiet=True)


def estimate_tdee(session_id: str, inputs: Dict[str, Any], set_goal: bool = False) -> Optional[Dict[str, Any]]:
    """
    Estimate TDEE.

    Args:
        session_id: Session identifier
        inputs: formula, sex, age, height, height_unit, weight, weight_unit, body_fat, activity
        set_goal: Make the rounded TDEE the calorie goal

    Returns:
        Dictionary with tdee, applied and goals, or None on error.
    """
    return _request("POST", "/calories/tdee", session_id, json={**inputs, "set_goal": set_goal})


def apply_saved_tdee(session_id: str) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/tdee/apply-saved", session_id)


# ============================================================================
# Calorie tracker: food data
# ============================================================================

def search_foods(session_id: str, query: str, page: int = 1) -> Optional[Dict[str, Any]]:
    """
    Search USDA FoodData Central through the backend.

    Returns:
        Dictionary with foods, servingOptions (one list per food) and history,
        or None on error.
    """
    return _request(
        "GET",
        "/calories/search",
        session_id,
        params={"q": query, "page": page},
        timeout=FOOD_DATA_TIMEOUT,
    )


def clear_search_history(session_id: str) -> bool:
    return _request("DELETE", "/calories/search/history", session_id) is not None


# ============================================================================
# Calorie tracker: favourites, recipes and plans
# ============================================================================

def remove_favorite(session_id: str, food_name: str) -> bool:
    return _request("DELETE", "/calories/favorites", session_id, params={"food": food_name}) is not None


def log_favorite(session_id: str, favorite_id: str, servings: float, meal: Optional[str] = None):
    payload = {"servings": servings, "meal": meal}
    return _request("POST", f"/calories/favorites/{favorite_id}/log", session_id, json=payload)


def list_recipes(session_id: str) -> Optional[List[Dict[str, Any]]]:
    return _request("GET", "/calories/recipes", session_id)


def add_recipe(session_id: str, recipe: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/recipes", session_id, json=recipe)


def remove_recipe(session_id: str, recipe_id: str) -> bool:
    return _request("DELETE", f"/calories/recipes/{recipe_id}", session_id) is not None


def duplicate_recipe(session_id: str, recipe_id: str) -> Optional[Dict[str, Any]]:
    return _request("POST", f"/calories/recipes/{recipe_id}/duplicate", session_id)


def log_recipe(session_id: str, recipe_id: str, servings: float, meal: Optional[str] = None):
    payload = {"servings": servings, "meal": meal}
    return _request("POST", f"/calories/recipes/{recipe_id}/log", session_id, json=payload)


def list_plans(session_id: str) -> Optional[Dict[str, List[Dict[str, Any]]]]:
    """Planned meals grouped by date, newest date first."""
    return _request("GET", "/calories/plans", session_id)


def add_plan_item(session_id: str, item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/plans", session_id, json=item)


def remove_plan_item(session_id: str, item_id: str) -> bool:
    return _request("DELETE", f"/calories/plans/{item_id}", session_id) is not None


def remove_plan_date(session_id: str, date_iso: str) -> bool:
    return _request("DELETE", f"/calories/plans/date/{date_iso}", session_id) is not None


def apply_plan(session_id: str, date_iso: str) -> Optional[List[Dict[str, Any]]]:
    return _request("POST", f"/calories/plans/date/{date_iso}/apply", session_id)


# ============================================================================
# Calorie tracker: progress, insights and data transfer
# ============================================================================

def list_measurements(session_id: str) -> Optional[Dict[str, Any]]:
    """Measurements (newest first) and the change between the latest two."""
    return _request("GET", "/calories/measurements", session_id)


def add_measurement(session_id: str, entry: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/measurements", session_id, json=entry)


def remove_measurement(session_id: str, measurement_id: str) -> bool:
    return _request("DELETE", f"/calories/measurements/{measurement_id}", session_id) is not None


def list_workouts(session_id: str) -> Optional[List[Dict[str, Any]]]:
    return _request("GET", "/calories/workouts", session_id)


def add_workout(session_id: str, workout: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _request("POST", "/calories/workouts", session_id, json=workout)


def remove_workout(session_id: str, workout_id: str) -> bool:
    return _request("DELETE", f"/calories/workouts/{workout_id}", session_id) is not None


def get_insights(session_id: str) -> Optional[Dict[str, Any]]:
    return _request("GET", "/calories/insights", session_id)


def export_tracker(session_id: str) -> Optional[Dict[str, Any]]:
    """The version 2 export bundle, or None on error."""
    return _request("GET", "/calories/export", session_id)


def import_tracker(session_id: str, payload: Any) -> Optional[Dict[str, Any]]:
    """
    Import tracker data.

    Args:
        session_id: Session identifier
        payload: File contents (text) or a parsed bundle / list of days

    Returns:
        Import summary ({days, currentDayIndex, sections}), or None on error.
    """
    return _request("POST", "/calories/import", session_id, json={"payload": payload})


# ============================================================================
# Flashcards
# ============================================================================

def list_decks(session_id: str) -> Optional[List[Dict[str, Any]]]:
    return _request("GET", "/study/decks", session_id)


def get_deck(session_id: str, name: str, search: Optional[str] = None) -> Optional[Dict[str, Any]]:
    params = {"q": search} if search else None
    return _request("GET", f"/study/decks/{_deck_path(name)}", session_id, params=params)


def create_deck(session_id: str, name: str) -> Optional[Dict[str, Any]]:
    return _request("POST", "/study/decks", session_id, json={"name": name})


def rename_deck(session_id: str, name: str, new_name: str) -> Optional[Dict[str, Any]]:
    path = f"/study/decks/{_deck_path(name)}"
    return _request("PATCH", path, session_id, json={"newName": new_name})


def delete_deck(session_id: str, name: str) -> Optional[str]:
    """Delete a deck. Returns the name of the deck to show next, or None on error."""
    data = _request("DELETE", f"/study/decks/{_deck_path(name)}", session_id)
    return data.get("selected") if data else None


def clear_deck(session_id: str, name: str) -> Optional[Dict[str, Any]]:
    return _request("POST", f"/study/decks/{_deck_path(name)}/clear", session_id)


def add_card(session_id: str, deck: str, card: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Add a card to a deck.

    Args:
        session_id: Session identifier
        deck: Deck name
        card: front, back, multipleChoice and choices

    Returns:
        The new card, or None on error (e.g. a multiple-choice back that is not one of the choices).
    """
    return _request("POST", f"/study/decks/{_deck_path(deck)}/cards", session_id, json=card)


def edit_card(session_id: str, deck: str, card_id: str, card: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    path = f"/study/decks/{_deck_path(deck)}/cards/{card_id}"
    return _request("PUT", path, session_id, json=card)


def delete_card(session_id: str, deck: str, card_id: str) -> bool:
    path = f"/study/decks/{_deck_path(deck)}/cards/{card_id}"
    return _request("DELETE", path, session_id) is not None


def export_deck(session_id: str, deck: str) -> Optional[List[Dict[str, Any]]]:
    return _request("GET", f"/study/decks/{_deck_path(deck)}/export", session_id)


def import_deck(session_id: str, payload: Any, name: str = "Imported") -> Optional[Dict[str, Any]]:
    return _request("POST", "/study/decks/import", session_id, json={"name": name, "payload": payload})


def start_study_session(
    session_id: str,
    deck: str,
    mode: str = "view",
    shuffle: bool = False,
    timer_type: str = "none",
    time_limit: int = 30,
) -> Optional[Dict[str, Any]]:
    """
    Start a view or test session over a deck.

    Returns:
        Session snapshot (deck, mode, index, total, card, flipped, score,
        finished, percent, timerType, timeLimit, timeLeft), or None on error.
    """
    payload = {
        "deck": deck,
        "mode": mode,
        "shuffle": shuffle,
        "timerType": timer_type,
        "timeLimit": time_limit,
    }
    return _request("POST", "/study/session", session_id, json=payload)


def get_study_session(session_id: str) -> Optional[Dict[str, Any]]:
    """The running session, or None when there is none."""
    return _request("GET", "/study/session", session_id, quiet=True)


def study_action(session_id: str, action: str) -> Optional[Dict[str, Any]]:
    """Run flip, next, previous or restart on the running session."""
    return _request("POST", f"/study/session/{action}", session_id)


def submit_answer(session_id: str, answer: str) -> Optional[Dict[str, Any]]:
    """Returns {correct, expected, session}, or None on error."""
    return _request("POST", "/study/session/answer", session_id, json={"answer": answer})


def set_study_timer(session_id: str, timer_type: str, time_limit: Optional[int] = None):
    payload = {"timerType": timer_type, "timeLimit": time_limit}
    return _request("PUT", "/study/session/timer", session_id, json=payload)


def end_study_session(session_id: str) -> bool:
    return _request("DELETE", "/study/session", session_id, quiet=True) is not None
