"""
Tracker state persistence.

The tracker keeps one JSON blob per concern in the session's key-value store:

    calorieDays           list of days (oldest first)
    currentDayIndex       index of the selected day
    globalTDEE            last TDEE applied as the calorie goal (or null)
    calorieGoals          global goals
    caloriePrefs          preferences
    calorieFavorites      favourites (newest first)
    calorieSearchHistory  recent search terms (newest first)
    calorieRecipes        recipes
    caloriePlans          planned meals
    calorieMeasurements   body measurements
    calorieWorkouts       workouts

Malformed blobs or records fall back to defaults instead of failing the
request. There is always at least one day and the current day index is kept
in range.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from storage.store import get_store

from .models import (
    Day,
    Favorite,
    Goals,
    Measurement,
    PlanItem,
    Preferences,
    Recipe,
    Workout,
    create_day,
)
from .utils.numbers import optional_number

logger = logging.getLogger(__name__)

DAYS_KEY = "calorieDays"
CURRENT_DAY_KEY = "currentDayIndex"
TDEE_KEY = "globalTDEE"
GOALS_KEY = "calorieGoals"
PREFS_KEY = "caloriePrefs"
FAVORITES_KEY = "calorieFavorites"
SEARCH_HISTORY_KEY = "calorieSearchHistory"
RECIPES_KEY = "calorieRecipes"
PLANS_KEY = "caloriePlans"
MEASUREMENTS_KEY = "calorieMeasurements"
WORKOUTS_KEY = "calorieWorkouts"

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class TrackerState:
    """Everything the tracker stores for one session."""
    days: List[Day] = field(default_factory=lambda: [create_day()])
    current_day_index: int = 0
    global_tdee: Optional[float] = None
    goals: Goals = field(default_factory=Goals)
    prefs: Preferences = field(default_factory=Preferences)
    favorites: List[Favorite] = field(default_factory=list)
    search_history: List[str] = field(default_factory=list)
    recipes: List[Recipe] = field(default_factory=list)
    plans: List[PlanItem] = field(default_factory=list)
    measurements: List[Measurement] = field(default_factory=list)
    workouts: List[Workout] = field(default_factory=list)

    def clamp_index(self) -> None:
        """Ensure there is a day and the current index points at one."""
        if not self.days:
            self.days = [create_day()]
        self.current_day_index = max(0, min(self.current_day_index, len(self.days) - 1))

    @property
    def current_day(self) -> Day:
        self.clamp_index()
        return self.days[self.current_day_index]


def parse_records(raw: Any, model: Type[ModelT], key: str = "") -> List[ModelT]:
    """
    Validate a stored list of records, skipping entries that do not validate.

    Non-list values give an empty list.
    """
    if not isinstance(raw, list):
        return []
    records: List[ModelT] = []
    for entry in raw:
        try:
            records.append(model.model_validate(entry))
        except ValidationError as e:
            logger.debug(f"Skipping malformed {model.__name__} record in {key or 'payload'}: {e}")
    return records


def parse_model(raw: Any, model: Type[ModelT], key: str = "") -> ModelT:
    """
    Validate a stored object merged over the model defaults.

    Falls back to the defaults when the value is not an object or does not validate.
    """
    if not isinstance(raw, dict):
        return model()
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Stored {key or model.__name__} is malformed, using defaults: {e}")
        return model()


def load_state(session_id: str) -> TrackerState:
    """
    Load the tracker state for a session.

    Args:
        session_id: Session identifier

    Returns:
        TrackerState (defaults for anything missing or malformed)
    """
    store = get_store()

    days = parse_records(store.load_json(session_id, DAYS_KEY, []), Day, DAYS_KEY)
    index = optional_number(store.load_json(session_id, CURRENT_DAY_KEY))
    history = store.load_json(session_id, SEARCH_HISTORY_KEY, [])

    state = TrackerState(
        days=days,
        current_day_index=int(index) if index is not None else 0,
        global_tdee=optional_number(store.load_json(session_id, TDEE_KEY)),
        goals=parse_model(store.load_json(session_id, GOALS_KEY), Goals, GOALS_KEY),
        prefs=parse_model(store.load_json(session_id, PREFS_KEY), Preferences, PREFS_KEY),
        favorites=parse_records(store.load_json(session_id, FAVORITES_KEY, []), Favorite, FAVORITES_KEY),
        search_history=[t for t in history if isinstance(t, str)] if isinstance(history, list) else [],
        recipes=parse_records(store.load_json(session_id, RECIPES_KEY, []), Recipe, RECIPES_KEY),
        plans=parse_records(store.load_json(session_id, PLANS_KEY, []), PlanItem, PLANS_KEY),
        measurements=parse_records(
            store.load_json(session_id, MEASUREMENTS_KEY, []), Measurement, MEASUREMENTS_KEY
        ),
        workouts=parse_records(store.load_json(session_id, WORKOUTS_KEY, []), Workout, WORKOUTS_KEY),
    )
    state.clamp_index()
    return state


def state_to_blobs(state: TrackerState) -> Dict[str, Any]:
    """Map the state to the JSON values stored under each key."""
    state.clamp_index()
    return {
        DAYS_KEY: [day.to_storage() for day in state.days],
        CURRENT_DAY_KEY: state.current_day_index,
        TDEE_KEY: state.global_tdee,
        GOALS_KEY: state.goals.to_storage(),
        PREFS_KEY: state.prefs.to_storage(),
        FAVORITES_KEY: [fav.to_storage() for fav in state.favorites],
        SEARCH_HISTORY_KEY: list(state.search_history),
        RECIPES_KEY: [recipe.to_storage() for recipe in state.recipes],
        PLANS_KEY: [item.to_storage() for item in state.plans],
        MEASUREMENTS_KEY: [entry.to_storage() for entry in state.measurements],
        WORKOUTS_KEY: [workout.to_storage() for workout in state.workouts],
    }


def save_state(session_id: str, state: TrackerState) -> None:
    """Write every tracker blob for a session (whole-blob replacement)."""
    store = get_store()
    for key, value in state_to_blobs(state).items():
        store.save_json(session_id, key, value)


@contextmanager
def edit_state(session_id: str) -> Iterator[TrackerState]:
    """
    Load the state, let the caller modify it, then save it.

    Nothing is saved if the block raises.

    Example:
        >>> with edit_state(session_id) as state:
        ...     state.current_day.notes = "rest day"
    """
    state = load_state(session_id)
    yield state
    save_state(session_id, state)
