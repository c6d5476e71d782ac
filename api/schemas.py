"""
Pydantic schemas for FastAPI request and response models.

Most request bodies are the form models from calories.models and
study.models; this module adds the small bodies and response wrappers that
only exist at the HTTP boundary:

- Day and goal updates (DayMetaUpdate, FieldValueUpdate, WaterDelta, PresetRequest)
- TDEE estimation (TdeeEstimateRequest, saved TDEE in TrackerStateView)
- Food search (FoodSearchResponse)
- Import payloads (ImportRequest, DeckImportRequest)
- Study decks and sessions (DeckCreateRequest, SessionStartRequest, AnswerResponse)

# NOTE: Responses use camelCase keys (dateISO, perServing, waterOz...), the same
    shape the records have in storage and in export files.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from calories.models import Day, Favorite, Goals, Measurement, Preferences
from calories.nutrition import DaySummary, MeasurementDeltas
from calories.tdee import TdeeRequest
from study.models import DEFAULT_DECK, Flashcard
from study.session import DEFAULT_TIME_LIMIT, Mode, SessionSnapshot, TimerType


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Calories
# ============================================================================

class DayView(ApiModel):
    """A day together with its dashboard summary."""
    index: int = Field(..., description="Position of the day in the day list")
    day: Day
    summary: DaySummary


class DayListItem(ApiModel):
    index: int
    date: str
    date_iso: str = Field(..., alias="dateISO")
    date_label: str = ""
    food_count: int
    calories: float


class TrackerStateView(ApiModel):
    """Overview used to render the tracker page."""
    current_day_index: int
    days: List[DayListItem]
    current: DayView
    goals: Goals
    prefs: Preferences
    global_tdee: Optional[float] = Field(None, alias="globalTDEE", description="Saved TDEE, if any")
    favorites: List[Favorite]
    search_history: List[str]
    default_meal: str = Field(..., description="Meal new foods go to when none is given")


class DayMetaUpdate(ApiModel):
    """Fields left as None are not changed."""
    notes: Optional[str] = None
    burned_calories: Optional[float] = Field(None, ge=0)
    date_label: Optional[str] = None


class FieldValueUpdate(ApiModel):
    """Set one goal. Water is given in the preferred water unit."""
    field: str = Field(..., description="calories, protein, fat, carbs or water_oz")
    value: float = Field(..., description="New value (0 clears a per-day override)")


class WaterDelta(ApiModel):
    delta: float = Field(..., description="Amount to add, in the preferred water unit (negative removes)")


class PresetRequest(ApiModel):
    preset: str = Field(..., description="Balanced, High Protein, Low Carb, Endurance or Keto")


class TdeeEstimateRequest(TdeeRequest):
    """TDEE inputs plus whether to make the result the calorie goal."""
    set_goal: bool = Field(False, description="Use the rounded TDEE as the calorie goal")


class FoodSearchResponse(ApiModel):
    """
    A page of FoodData Central results.

    Results come in pages of 5; request the next page to "load more".
    """
    query: str
    page: int
    page_size: int
    foods: List[Dict[str, Any]]
    serving_options: List[List[Dict[str, Any]]] = Field(
        default_factory=list,
        description="Serving options per food, in the same order as foods",
    )
    history: List[str] = Field(default_factory=list, description="Recent search terms")


class MeasurementsView(ApiModel):
    """Measurements, newest first, with the change since the previous entry."""
    measurements: List[Measurement]
    deltas: MeasurementDeltas


class ImportRequest(ApiModel):
    """Either JSON text (a file's contents) or the parsed bundle/day list."""
    payload: Any = Field(..., description="Export bundle, list of days, or JSON text")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "payload": {
                    "version": 2,
                    "days": [{"date": "3/9/2024", "dateISO": "2024-03-09", "foods": []}],
                    "goals": {"calories": 2000},
                }
            }
        },
    )


# ============================================================================
# Study
# ============================================================================

class DeckCreateRequest(ApiModel):
    name: str = Field(..., description="Deck name")


class DeckRenameRequest(ApiModel):
    new_name: str = Field(..., description="New deck name")


class DeckImportRequest(ApiModel):
    """A deck file: JSON text or an already-parsed list of cards."""
    name: str = Field("Imported", description="Name of the imported deck")
    payload: Any = Field(..., description="JSON array of cards, or its text")


class DeckDetail(ApiModel):
    name: str
    count: int
    cards: List[Flashcard]


class SessionStartRequest(ApiModel):
    deck: str = DEFAULT_DECK
    mode: Mode = "view"
    shuffle: bool = False
    timer_type: TimerType = "none"
    time_limit: int = Field(DEFAULT_TIME_LIMIT, ge=1, description="Seconds per question, or minutes in total")


class TimerRequest(ApiModel):
    timer_type: TimerType
    time_limit: Optional[int] = Field(None, ge=1)


class AnswerRequest(ApiModel):
    answer: str = Field(..., description="Typed answer, or the chosen index for multiple choice")


class AnswerResponse(ApiModel):
    correct: bool
    expected: str = Field(..., description="The card's answer")
    session: SessionSnapshot
