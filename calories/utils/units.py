"""
Serving unit normalization and conversion utilities.

This module provides pure helper functions for turning the many ways people
write serving units into a canonical unit, and for converting amounts between
units through a gram-equivalence table. All functions are stateless and have
no side effects (no I/O, no network calls).

# NOTE: Volume units are converted as if 1 ml weighs 1 g. This is the same
    approximation food labels use for water-like foods.
"""

import re
from typing import Any, Dict, List, Optional

from .numbers import number_or_zero, round_half_up

OZ_TO_G = 28.3495
LB_TO_G = 453.592
KG_TO_G = 1000.0
ML_TO_G = 1.0
L_TO_G = 1000.0
WATER_ML_PER_OZ = 29.5735
FL_OZ_TO_G = WATER_ML_PER_OZ
TBSP_TO_G = 14.7868
TSP_TO_G = 4.92892
CUP_TO_G = 236.588
PINT_TO_G = 473.176
QUART_TO_G = 946.353
GAL_TO_G = 3785.41

# Canonical unit -> grams per unit
UNIT_TO_G: Dict[str, float] = {
    "g": 1.0,
    "kg": KG_TO_G,
    "oz": OZ_TO_G,
    "lb": LB_TO_G,
    "ml": ML_TO_G,
    "l": L_TO_G,
    "cup": CUP_TO_G,
    "tbsp": TBSP_TO_G,
    "tsp": TSP_TO_G,
    "fl oz": FL_OZ_TO_G,
    "pint": PINT_TO_G,
    "quart": QUART_TO_G,
    "gal": GAL_TO_G,
}

SERVING_UNITS: List[str] = list(UNIT_TO_G.keys())
AMOUNT_UNITS: List[str] = ["servings"] + SERVING_UNITS

_UNIT_ALIASES: Dict[str, str] = {
    # Mass
    "g": "g",
    "gram": "g",
    "grams": "g",
    "grm": "g",
    "kg": "kg",
    "kilogram": "kg",
    "kilograms": "kg",
    "oz": "oz",
    "ounce": "oz",
    "ounces": "oz",
    "lb": "lb",
    "lbs": "lb",
    "pound": "lb",
    "pounds": "lb",

    # Volume
    "ml": "ml",
    "milliliter": "ml",
    "milliliters": "ml",
    "millilitre": "ml",
    "millilitres": "ml",
    "l": "l",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "litres": "l",
    "cup": "cup",
    "cups": "cup",
    "tbsp": "tbsp",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "tsp": "tsp",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "floz": "fl oz",
    "fl oz": "fl oz",
    "fluid ounce": "fl oz",
    "fluid ounces": "fl oz",
    "pint": "pint",
    "pints": "pint",
    "pt": "pint",
    "pts": "pint",
    "quart": "quart",
    "quarts": "quart",
    "qt": "quart",
    "qts": "quart",
    "gal": "gal",
    "gallon": "gal",
    "gallons": "gal",
}


def normalize_serving_unit(unit: Any) -> str:
    """
    Normalize a serving unit string to its canonical form.

    Underscores and dashes count as spaces, repeated whitespace is collapsed
    and matching is case-insensitive.

    Args:
        unit: Unit string (or any value, which is stringified)

    Returns:
        Canonical unit (g, kg, oz, lb, ml, l, cup, tbsp, tsp, fl oz, pint, quart, gal),
        or "" if the unit is not recognized

    Examples:
        >>> normalize_serving_unit("Tablespoons")
        'tbsp'
        >>> normalize_serving_unit("fluid_ounce")
        'fl oz'
        >>> normalize_serving_unit("handful")
        ''
    """
    if unit is None:
        return ""
    raw = re.sub(r"[_-]", " ", str(unit)).strip().lower()
    raw = re.sub(r"\s+", " ", raw)
    if not raw:
        return ""
    return _UNIT_ALIASES.get(raw, "")


def convert_amount(value: Any, from_unit: Any, to_unit: Any) -> float:
    """
    Convert an amount between two serving units.

    The amount is returned unchanged when it is 0, when either unit is unknown,
    or when both units are the same.

    Examples:
        >>> convert_amount(1, "kg", "g")
        1000.0
        >>> round(convert_amount(1, "cup", "tbsp"), 2)
        16.0
    """
    amount = number_or_zero(value)
    source = normalize_serving_unit(from_unit)
    target = normalize_serving_unit(to_unit)
    if not amount or not source or not target or source == target:
        return amount

    from_factor = UNIT_TO_G.get(source)
    to_factor = UNIT_TO_G.get(target)
    if not from_factor or not to_factor:
        return amount
    return (amount * from_factor) / to_factor


def servings_from_amount(
    amount: Any,
    amount_unit: str,
    serving_size: Any,
    serving_unit: Any,
) -> Optional[float]:
    """
    Work out how many servings an eaten amount corresponds to.

    Args:
        amount: Amount eaten
        amount_unit: "servings" or any serving unit
        serving_size: Size of one serving
        serving_unit: Unit of serving_size

    Returns:
        Number of servings, or None when it cannot be computed (zero amount,
        missing serving size or unknown unit)

    Examples:
        >>> servings_from_amount(2, "servings", 0, "")
        2.0
        >>> servings_from_amount(200, "g", 100, "g")
        2.0
    """
    amt = number_or_zero(amount)
    if not amt:
        return None
    if amount_unit == "servings":
        return amt
    size = number_or_zero(serving_size)
    unit = normalize_serving_unit(serving_unit)
    if not size or not unit:
        return None
    converted = convert_amount(amt, amount_unit, unit)
    if not converted:
        return None
    return converted / size


def format_count(value: Any) -> str:
    """
    Format a quantity for display: integers as-is, otherwise up to 2 decimals.

    Examples:
        >>> format_count(3.0)
        '3'
        >>> format_count(2.50)
        '2.5'
        >>> format_count(1.333)
        '1.33'
    """
    num = number_or_zero(value)
    if num % 1 == 0:
        return str(int(num))
    text = f"{num:.2f}".rstrip("0").rstrip(".")
    return text


def serving_conversions(size: Any, unit: Any) -> str:
    """
    Build the "approx ..." helper line showing a serving in common units.

    Returns:
        Helper string, or "" when the size or unit is unusable

    Examples:
        >>> serving_conversions(100, "g")
        'approx 100 g | 3.53 oz | 0.22 lb | 100 ml | 0.42 cup'
    """
    amount = number_or_zero(size)
    if amount <= 0:
        return ""
    factor = UNIT_TO_G.get(normalize_serving_unit(unit))
    if not factor:
        return ""

    grams = amount * factor
    ounces = grams / OZ_TO_G
    pounds = grams / LB_TO_G
    milliliters = grams / ML_TO_G
    cups = grams / CUP_TO_G
    if milliliters >= 1000:
        ml_display = f"{format_count(milliliters / 1000)} l"
    else:
        ml_display = f"{format_count(milliliters)} ml"

    return (
        f"approx {format_count(grams)} g | {format_count(ounces)} oz | "
        f"{format_count(pounds)} lb | {ml_display} | {format_count(cups)} cup"
    )


def to_display_water(oz: Any, unit: str) -> int:
    """Convert a stored water amount (oz) to the user's display unit, rounded."""
    value = number_or_zero(oz)
    if unit == "ml":
        return round_half_up(value * WATER_ML_PER_OZ)
    return round_half_up(value)


def to_water_oz(value: Any, unit: str) -> float:
    """Convert a water amount in the user's unit back to ounces."""
    amount = number_or_zero(value)
    return amount / WATER_ML_PER_OZ if unit == "ml" else amount


def build_usda_serving_options(food: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Build the list of serving choices for a FoodData Central search result.

    The first option is the food's own serving size (with its household text
    when present), followed by every portion that lists a gram weight. Foods
    without any serving information get a single "Serving size not listed"
    option measured in servings.

    Args:
        food: Raw FoodData Central food dictionary

    Returns:
        List of {"label", "size", "unit"} dictionaries
    """
    if not food:
        return []

    options: List[Dict[str, Any]] = []
    base_size = number_or_zero(food.get("servingSize"))
    base_unit = normalize_serving_unit(food.get("servingSizeUnit")) or (food.get("servingSizeUnit") or "")
    if base_size and base_unit:
        household = food.get("householdServingFullText")
        if household:
            label = f"{household} ({format_count(base_size)} {base_unit})"
        else:
            label = f"{format_count(base_size)} {base_unit}"
        options.append({"label": label, "size": base_size, "unit": base_unit})

    portions = food.get("foodPortions")
    for portion in portions if isinstance(portions, list) else []:
        grams = number_or_zero(portion.get("gramWeight"))
        if not grams:
            continue
        desc = " ".join(
            part for part in (portion.get("portionDescription"), portion.get("modifier")) if part
        )
        options.append({"label": f"{desc or 'Portion'} ({format_count(grams)} g)", "size": grams, "unit": "g"})

    if not options:
        options.append({"label": "Serving size not listed", "size": 1, "unit": "servings"})
    return options
