"""
Tracker record models.

Records are persisted as JSON with camelCase keys (servingSize, perServing,
dateISO, waterOz, ...), which is also the shape of export files. Python code uses
the snake_case field names; both spellings are accepted on input.

Every model normalizes the loosely-typed values it may find in stored blobs or
imported files: non-numeric numbers become 0, missing ids and timestamps are
filled in, and legacy fields are folded into their current equivalents.
"""

import re
from datetime import date, datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .utils.numbers import new_id, now_ms, number_or_zero, optional_number
from .utils.units import normalize_serving_unit

MEALS: List[str] = ["Breakfast", "Lunch", "Dinner", "Snack"]
MEAL_PREFERENCES: List[str] = ["Auto"] + MEALS
FOOD_SOURCES: List[str] = ["manual", "custom", "quick", "usda", "barcode", "favorite", "recipe", "plan"]
OVERRIDE_KEYS: List[str] = ["calories", "protein", "fat", "carbs", "water_oz"]
MACRO_KEYS: List[str] = ["calories", "protein", "fat", "carbs"]

DEFAULT_GOALS: Dict[str, float] = {
    "calories": 2000,
    "protein": 150,
    "fat": 70,
    "carbs": 250,
    "water_oz": 64,
}

DEFAULT_PREFS: Dict[str, Any] = {
    "water_step": 8,
    "water_unit": "oz",
    "theme": "aurora",
    "density": "comfy",
    "default_meal": "Auto",
}

# Lenient numeric field: anything that is not a finite number becomes 0
Number = Annotated[float, BeforeValidator(number_or_zero)]
OptionalNumber = Annotated[Optional[float], BeforeValidator(optional_number)]


def _pick(data: Dict[str, Any], field: str) -> Any:
    """Read a field by its camelCase alias or its snake_case name."""
    alias = to_camel(field)
    if alias in data:
        return data[alias]
    return data.get(field)


def _put(data: Dict[str, Any], field: str, value: Any) -> None:
    """Set a field under its snake_case name, dropping any aliased copy."""
    data.pop(to_camel(field), None)
    data[field] = value


def _drop_blank(data: Dict[str, Any], *fields: str) -> None:
    """Remove falsy values so the field default applies instead."""
    for field in fields:
        if not _pick(data, field):
            data.pop(to_camel(field), None)
            data.pop(field, None)


def format_display_date(value: date) -> str:
    """Format a date the way the day list shows it (M/D/YYYY)."""
    return f"{value.month}/{value.day}/{value.year}"


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a stored date string.

    Accepts ISO dates (YYYY-MM-DD, optionally with a time part) and the
    M/D/YYYY display format. Returns None when the value cannot be parsed.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    match = re.match(r"^(\d{1,2})/(\d{1,2})/(\d{4})$", text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    return None


class TrackerModel(BaseModel):
    """Base model: camelCase aliases on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_storage(self) -> Dict[str, Any]:
        """Dump to the camelCase dictionary that is written to the store."""
        return self.model_dump(by_alias=True)


class Macros(TrackerModel):
    """Calories and macro grams, either per serving or as totals."""
    calories: Number = 0
    protein: Number = 0
    fat: Number = 0
    carbs: Number = 0

    def scaled(self, factor: float) -> "Macros":
        return Macros(
            calories=self.calories * factor,
            protein=self.protein * factor,
            fat=self.fat * factor,
            carbs=self.carbs * factor,
        )


class Food(TrackerModel):
    """
    One entry in a day's food log.

    calories/protein/fat/carbs are totals for the entry (per_serving x servings).
    """
    id: str = Field(default_factory=new_id, description="Entry id")
    food: str = Field("Unknown", description="Food name")
    brand: str = ""
    serving_size: Number = Field(0, description="Size of one serving in serving_unit")
    serving_unit: str = Field("", description="Canonical unit, or the free text the source used")
    notes: str = ""
    tags: List[str] = Field(default_factory=list)
    calories: Number = 0
    protein: Number = 0
    fat: Number = 0
    carbs: Number = 0
    servings: float = Field(1, gt=0)
    per_serving: Macros = Field(default_factory=Macros)
    meal: str = "Snack"
    created_at: int = Field(default_factory=now_ms, description="Epoch milliseconds")
    source: str = Field("manual", description="Where the entry came from (see FOOD_SOURCES)")

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        # Legacy entries stored a separate item count next to servings
        legacy_items = number_or_zero(data.pop("items", None)) or 1
        servings = (number_or_zero(_pick(data, "servings")) or 1) * legacy_items
        if servings <= 0:
            servings = 1
        _put(data, "servings", servings)

        for field in ("calories", "protein", "fat", "carbs", "serving_size"):
            _put(data, field, number_or_zero(_pick(data, field)))

        per_serving = _pick(data, "per_serving")
        if isinstance(per_serving, Macros):
            per_serving = per_serving.model_dump()
        if not isinstance(per_serving, dict):
            per_serving = {key: number_or_zero(data[key]) / servings for key in MACRO_KEYS}
        _put(data, "per_serving", per_serving)

        unit = _pick(data, "serving_unit")
        _put(data, "serving_unit", normalize_serving_unit(unit) or (unit if isinstance(unit, str) else ""))

        if not isinstance(_pick(data, "tags"), list):
            _put(data, "tags", [])
        _drop_blank(data, "id", "food", "brand", "notes", "meal", "created_at", "source")
        return data

    @property
    def totals(self) -> Macros:
        return Macros(calories=self.calories, protein=self.protein, fat=self.fat, carbs=self.carbs)

    @classmethod
    def from_per_serving(cls, per_serving: Macros, servings: float, **fields: Any) -> "Food":
        """Build an entry whose totals are per_serving scaled by servings."""
        totals = per_serving.scaled(servings)
        return cls(
            servings=servings,
            per_serving=per_serving,
            calories=totals.calories,
            protein=totals.protein,
            fat=totals.fat,
            carbs=totals.carbs,
            **fields,
        )


class Day(TrackerModel):
    """A logged day: foods plus water, burned calories, notes and goal overrides."""
    date: str = Field("", description="Display date (M/D/YYYY)")
    date_iso: str = Field("", alias="dateISO", description="ISO date (YYYY-MM-DD)")
    date_label: str = ""
    foods: List[Food] = Field(default_factory=list)
    notes: str = ""
    water_oz: Number = Field(0, description="Water drunk, in fluid ounces")
    burned_calories: Number = 0
    goal_overrides: Dict[str, float] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if not isinstance(data.get("foods"), list):
            data["foods"] = []
        data["goal_overrides"] = normalize_goal_overrides(
            data.pop("goalOverrides", data.pop("goal_overrides", None))
        )

        iso = data.get("dateISO") or data.pop("date_iso", None)
        if not iso:
            parsed = parse_date(data.get("date"))
            iso = (parsed or date.today()).isoformat()
        data["dateISO"] = iso
        if not data.get("date"):
            parsed = parse_date(iso)
            data["date"] = format_display_date(parsed or date.today())
        _drop_blank(data, "notes", "date_label")
        return data

    @property
    def display_date(self) -> str:
        """Label if set, else the ISO date formatted for display, else the raw date."""
        if self.date_label:
            return self.date_label
        parsed = parse_date(self.date_iso)
        if parsed:
            return format_display_date(parsed)
        return self.date


def normalize_goal_overrides(overrides: Any) -> Dict[str, float]:
    """
    Keep only known override keys with strictly positive values.

    Accepts waterOz as well as water_oz.
    """
    if not isinstance(overrides, dict):
        return {}
    cleaned: Dict[str, float] = {}
    for key in OVERRIDE_KEYS:
        value = number_or_zero(overrides.get(key, overrides.get(to_camel(key))))
        if value > 0:
            cleaned[key] = value
    return cleaned


def create_day(today: Optional[date] = None) -> Day:
    """Create an empty day dated today."""
    today = today or date.today()
    return Day(date=format_display_date(today), date_iso=today.isoformat())


class Goals(TrackerModel):
    """Global daily goals."""
    calories: Number = DEFAULT_GOALS["calories"]
    protein: Number = DEFAULT_GOALS["protein"]
    fat: Number = DEFAULT_GOALS["fat"]
    carbs: Number = DEFAULT_GOALS["carbs"]
    water_oz: Number = DEFAULT_GOALS["water_oz"]


class Preferences(TrackerModel):
    """Display and logging preferences."""
    water_step: Number = DEFAULT_PREFS["water_step"]
    water_unit: Literal["oz", "ml"] = "oz"
    theme: Literal["aurora", "sunset", "tide", "mono"] = "aurora"
    density: Literal["comfy", "compact"] = "comfy"
    default_meal: Literal["Auto", "Breakfast", "Lunch", "Dinner", "Snack"] = "Auto"


class Favorite(TrackerModel):
    """A saved food, identified by its name."""
    id: str = Field(default_factory=new_id)
    food: str
    brand: str = ""
    serving_size: Number = 0
    serving_unit: str = ""
    notes: str = ""
    per_serving: Macros = Field(default_factory=Macros)


class Recipe(TrackerModel):
    """A saved recipe with per-serving macros."""
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    servings: float = Field(1, ge=1, description="Servings the recipe makes")
    calories: Number = 0
    protein: Number = 0
    fat: Number = 0
    carbs: Number = 0
    ingredients: List[str] = Field(default_factory=list)
    notes: str = ""
    created_at: int = Field(default_factory=now_ms)

    @property
    def per_serving(self) -> Macros:
        return Macros(calories=self.calories, protein=self.protein, fat=self.fat, carbs=self.carbs)


class PlanItem(TrackerModel):
    """A planned meal for a date."""
    id: str = Field(default_factory=new_id)
    date_iso: str = Field(..., alias="dateISO")
    meal: str = "Breakfast"
    name: str = Field(..., min_length=1)
    calories: Number = 0
    protein: Number = 0
    fat: Number = 0
    carbs: Number = 0
    servings: float = Field(1, ge=0.25)
    notes: str = ""

    @property
    def per_serving(self) -> Macros:
        return Macros(calories=self.calories, protein=self.protein, fat=self.fat, carbs=self.carbs)


MEASUREMENT_FIELDS: List[str] = ["weight", "body_fat", "waist", "hips", "chest"]


class Measurement(TrackerModel):
    """Body measurements for a date. Metrics that were not entered are None."""
    id: str = Field(default_factory=new_id)
    date_iso: str = Field(..., alias="dateISO")
    weight: OptionalNumber = None
    body_fat: OptionalNumber = None
    waist: OptionalNumber = None
    hips: OptionalNumber = None
    chest: OptionalNumber = None
    notes: str = ""


class Exercise(TrackerModel):
    name: str = Field(..., min_length=1)
    sets: Number = 0
    reps: Number = 0
    weight: Number = 0


class Workout(TrackerModel):
    """A logged workout session."""
    id: str = Field(default_factory=new_id)
    date_iso: str = Field(..., alias="dateISO")
    title: str = "Workout"
    duration: Number = Field(0, description="Minutes")
    calories: Number = 0
    notes: str = ""
    exercises: List[Exercise] = Field(default_factory=list)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ExportBundle(TrackerModel):
    """Full tracker export (file format version 2)."""
    version: int = 2
    exported_at: str = Field(default_factory=_utc_timestamp)
    days: List[Day] = Field(default_factory=list)
    goals: Goals = Field(default_factory=Goals)
    favorites: List[Favorite] = Field(default_factory=list)
    prefs: Preferences = Field(default_factory=Preferences)
    recipes: List[Recipe] = Field(default_factory=list)
    plans: List[PlanItem] = Field(default_factory=list)
    measurements: List[Measurement] = Field(default_factory=list)
    workouts: List[Workout] = Field(default_factory=list)


# ============================================================================
# Form inputs
# ============================================================================

AmountUnit = Literal[
    "servings", "g", "kg", "oz", "lb", "ml", "l", "cup", "tbsp", "tsp", "fl oz", "pint", "quart", "gal"
]


class CustomFoodInput(TrackerModel):
    """Custom food form: per-serving values plus the amount eaten."""
    name: str = Field(..., description="Food name")
    brand: str = ""
    serving_size: float = Field(0, description="Serving size per serving")
    serving_unit: str = "g"
    calories: float = 0
    protein: float = 0
    fat: float = 0
    carbs: float = 0
    amount_value: float = Field(1, description="Amount eaten, in amount_unit")
    amount_unit: AmountUnit = "servings"
    notes: str = ""
    meal: Optional[str] = Field(None, description="Meal (default from preferences)")


class QuickAddInput(TrackerModel):
    name: str = ""
    calories: float = 0
    notes: str = ""
    meal: Optional[str] = None


class EditFoodInput(CustomFoodInput):
    """Edit form: same fields as a custom food, with the meal editable."""


class UsdaFoodInput(TrackerModel):
    """A FoodData Central search result picked for logging."""
    food: Dict[str, Any] = Field(..., description="Raw FoodData Central food")
    serving_option: int = Field(0, ge=0, description="Index into the food's serving options")
    amount_value: float = 1
    amount_unit: AmountUnit = "servings"
    meal: Optional[str] = None


class BarcodeFoodInput(TrackerModel):
    barcode: str = Field(..., min_length=1)
    grams: float = Field(100, gt=0, description="Amount eaten in grams")
    meal: Optional[str] = None


class ServingsInput(TrackerModel):
    """Servings to log for a favourite or recipe."""
    servings: float = 1
    meal: Optional[str] = None


class RecipeInput(TrackerModel):
    name: str = ""
    servings: float = 1
    calories: float = 0
    protein: float = 0
    fat: float = 0
    carbs: float = 0
    ingredients: str = Field("", description="One ingredient per line")
    notes: str = ""


class PlanItemInput(TrackerModel):
    date_iso: str = Field(default_factory=lambda: date.today().isoformat(), alias="dateISO")
    meal: str = "Breakfast"
    name: str = ""
    calories: float = 0
    protein: float = 0
    fat: float = 0
    carbs: float = 0
    servings: float = 1
    notes: str = ""


class MeasurementInput(TrackerModel):
    date_iso: str = Field(default_factory=lambda: date.today().isoformat(), alias="dateISO")
    weight: OptionalNumber = None
    body_fat: OptionalNumber = None
    waist: OptionalNumber = None
    hips: OptionalNumber = None
    chest: OptionalNumber = None
    notes: str = ""


class ExerciseInput(TrackerModel):
    name: str = ""
    sets: Number = 0
    reps: Number = 0
    weight: Number = 0


class WorkoutInput(TrackerModel):
    date_iso: str = Field(default_factory=lambda: date.today().isoformat(), alias="dateISO")
    title: str = ""
    duration: Number = 0
    calories: Number = 0
    notes: str = ""
    exercises: List[ExerciseInput] = Field(default_factory=list)
