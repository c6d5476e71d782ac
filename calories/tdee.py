"""
TDEE (Total Daily Energy Expenditure) estimation.

A BMR formula is picked by name and multiplied by an activity factor. The
formulas differ in which body measurements they need, so TdeeRequest validates
the inputs for the chosen formula before anything is computed.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .utils.numbers import number_or_zero

TDEE_FORMULAS: List[Dict[str, str]] = [
    {"value": "mifflin", "label": "Mifflin-St Jeor"},
    {"value": "harris", "label": "Harris-Benedict (1919)"},
    {"value": "revised", "label": "Revised Harris-Benedict (1984)"},
    {"value": "katch", "label": "Katch-McArdle"},
    {"value": "cunningham", "label": "Cunningham"},
    {"value": "owen", "label": "Owen"},
    {"value": "schofield", "label": "Schofield (18-30)"},
    {"value": "who", "label": "WHO"},
]

ACTIVITY_LEVELS: List[Dict[str, Any]] = [
    {"value": 1.2, "label": "Sedentary (1.20)"},
    {"value": 1.375, "label": "Light (1.375)"},
    {"value": 1.55, "label": "Moderate (1.55)"},
    {"value": 1.725, "label": "Very Active (1.725)"},
    {"value": 1.9, "label": "Extremely Active (1.90)"},
]

FORMULA_NAMES = {item["value"] for item in TDEE_FORMULAS}
SEX_FORMULAS = {"mifflin", "harris", "revised", "owen", "schofield", "who"}
AGE_FORMULAS = {"mifflin", "harris", "revised", "schofield"}
HEIGHT_FORMULAS = {"mifflin", "harris", "revised"}
BODY_FAT_FORMULAS = {"katch", "cunningham"}

LB_TO_KG = 0.453592
IN_TO_CM = 2.54


def _normalize_sex(sex: Any) -> str:
    return "male" if sex and str(sex).lower().startswith("m") else "female"


def calculate_bmr(
    formula: str,
    sex: Any,
    age: Any,
    weight_kg: Any,
    height_cm: Any,
    body_fat: Any = None,
) -> Optional[float]:
    """
    Calculate basal metabolic rate with the named formula.

    Returns:
        BMR in kcal/day, or None for an unknown formula or a non-positive result
    """
    weight = number_or_zero(weight_kg)
    height = number_or_zero(height_cm)
    years = number_or_zero(age)
    male = _normalize_sex(sex) == "male"

    if formula == "mifflin":
        bmr = 10 * weight + 6.25 * height - 5 * years + (5 if male else -161)
    elif formula == "harris":
        if male:
            bmr = 66.5 + 13.75 * weight + 5.003 * height - 6.755 * years
        else:
            bmr = 655.1 + 9.563 * weight + 1.85 * height - 4.676 * years
    elif formula == "revised":
        if male:
            bmr = 88.362 + 13.397 * weight + 4.799 * height - 5.677 * years
        else:
            bmr = 447.593 + 9.247 * weight + 3.098 * height - 4.33 * years
    elif formula == "katch":
        lean_mass = weight * (1 - number_or_zero(body_fat) / 100)
        bmr = 370 + 21.6 * lean_mass
    elif formula == "cunningham":
        lean_mass = weight * (1 - number_or_zero(body_fat) / 100)
        bmr = 500 + 22 * lean_mass
    elif formula == "owen":
        bmr = 879 + 10.2 * weight if male else 795 + 7.18 * weight
    elif formula == "schofield":
        bmr = 15.057 * weight + 692.2 if male else 14.818 * weight + 486.6
    elif formula == "who":
        bmr = (0.063 * weight + 2.896) * 239 if male else (0.062 * weight + 2.036) * 239
    else:
        return None

    if bmr <= 0:
        return None
    return bmr


def calculate_tdee(
    formula: str,
    sex: Any,
    age: Any,
    weight_kg: Any,
    height_cm: Any,
    body_fat: Any = None,
    activity: Any = 1.2,
) -> Optional[float]:
    """
    Estimate TDEE as BMR times the activity factor.

    An activity factor of 0 (or missing) is treated as 1.

    Examples:
        >>> round(calculate_tdee("mifflin", "male", 30, 80, 180, activity=1.2))
        2136
    """
    bmr = calculate_bmr(formula, sex, age, weight_kg, height_cm, body_fat)
    if bmr is None:
        return None
    return bmr * (number_or_zero(activity) or 1)


class TdeeError(ValueError):
    """Raised when TDEE inputs are missing or out of range for a formula."""


class TdeeRequest(BaseModel):
    """
    Inputs for a TDEE estimate, as entered in the calculator form.

    Weight may be entered in kg or lb and height in cm or in; weight_kg and
    height_cm give the metric values used by the formulas.
    """
    formula: str = Field("mifflin", description="Formula key (see TDEE_FORMULAS)")
    sex: str = Field("female", description="'male' or 'female'")
    age: float = Field(0, ge=0)
    height: float = Field(0, ge=0)
    height_unit: str = Field("cm", pattern="^(cm|in)$")
    weight: float = Field(0, ge=0)
    weight_unit: str = Field("kg", pattern="^(kg|lb)$")
    body_fat: Optional[float] = Field(None, ge=0, le=70, description="Body fat percentage")
    activity: float = Field(1.2, ge=0)

    @model_validator(mode="after")
    def _check_required_inputs(self) -> "TdeeRequest":
        if self.formula not in FORMULA_NAMES:
            raise TdeeError(f"Unknown formula: {self.formula}")
        if self.weight <= 0:
            raise TdeeError("Enter a valid weight.")
        if self.formula in HEIGHT_FORMULAS and self.height <= 0:
            raise TdeeError("Enter a valid height.")
        if self.formula in AGE_FORMULAS and self.age <= 0:
            raise TdeeError("Enter a valid age.")
        if self.formula in BODY_FAT_FORMULAS and not self.body_fat:
            raise TdeeError("Enter a valid body fat %.")
        if self.formula == "schofield" and not 18 <= self.age <= 30:
            raise TdeeError("Schofield formula here is set for ages 18-30.")
        if self.formula in SEX_FORMULAS and not self.sex:
            raise TdeeError("Select a sex.")
        return self

    @property
    def weight_kg(self) -> float:
        return self.weight * LB_TO_KG if self.weight_unit == "lb" else self.weight

    @property
    def height_cm(self) -> float:
        return self.height * IN_TO_CM if self.height_unit == "in" else self.height

    def estimate(self) -> Optional[float]:
        """Compute TDEE for these inputs (None if the formula gives no result)."""
        return calculate_tdee(
            self.formula,
            self.sex,
            self.age,
            self.weight_kg,
            self.height_cm,
            self.body_fat if self.formula in BODY_FAT_FORMULAS else None,
            self.activity,
        )
