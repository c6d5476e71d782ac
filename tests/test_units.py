"""
Tests for serving unit normalization and conversion utilities.

This module tests the helper functions in calories.utils.units and
calories.utils.numbers used by the food forms, USDA serving options and
water display.
"""

import pytest

from calories.utils.numbers import number_or_zero, optional_number, round_half_up
from calories.utils.units import (
    build_usda_serving_options,
    convert_amount,
    format_count,
    normalize_serving_unit,
    serving_conversions,
    servings_from_amount,
    to_display_water,
    to_water_oz,
)


class TestNumberParsing:
    """Test cases for lenient number parsing."""

    def test_number_or_zero(self):
        """Test lenient parsing with 0 as the fallback."""
        assert number_or_zero("12.5") == 12.5
        assert number_or_zero(3) == 3.0
        assert number_or_zero("abc") == 0.0
        assert number_or_zero(None) == 0.0
        assert number_or_zero("") == 0.0
        assert number_or_zero(float("nan")) == 0.0
        assert number_or_zero(float("inf")) == 0.0

    def test_round_half_up(self):
        """Halves go up where round() would go to the even neighbour."""
        assert round_half_up(12.5) == 13
        assert round_half_up(2.5) == 3
        assert round_half_up(4.49) == 4
        assert round_half_up(0) == 0

    def test_optional_number_keeps_blank_as_none(self):
        """Blank input parses to None."""
        assert optional_number("") is None
        assert optional_number(None) is None
        assert optional_number("x") is None
        assert optional_number("0") == 0.0
        assert optional_number("72.4") == 72.4


class TestNormalizeServingUnit:
    """Test cases for normalize_serving_unit function."""

    def test_mass_units(self):
        """Test mass unit normalization."""
        assert normalize_serving_unit("g") == "g"
        assert normalize_serving_unit("Grams") == "g"
        assert normalize_serving_unit("GRM") == "g"
        assert normalize_serving_unit("kilogram") == "kg"
        assert normalize_serving_unit("ounces") == "oz"
        assert normalize_serving_unit("lbs") == "lb"

    def test_volume_units(self):
        """Test volume unit normalization."""
        assert normalize_serving_unit("mL") == "ml"
        assert normalize_serving_unit("litre") == "l"
        assert normalize_serving_unit("Tablespoons") == "tbsp"
        assert normalize_serving_unit("tsp") == "tsp"
        assert normalize_serving_unit("cups") == "cup"
        assert normalize_serving_unit("qt") == "quart"
        assert normalize_serving_unit("gallon") == "gal"

    def test_separators_and_whitespace(self):
        """Underscores, dashes and repeated spaces count as single spaces."""
        assert normalize_serving_unit("fluid_ounce") == "fl oz"
        assert normalize_serving_unit("fl-oz") == "fl oz"
        assert normalize_serving_unit("  fl    oz ") == "fl oz"
        assert normalize_serving_unit("floz") == "fl oz"

    def test_unknown_units(self):
        """Unknown units normalize to an empty string."""
        assert normalize_serving_unit("handful") == ""
        assert normalize_serving_unit("") == ""
        assert normalize_serving_unit(None) == ""


class TestConvertAmount:
    """Test cases for convert_amount function."""

    def test_simple_conversions(self):
        """Test conversions within mass and within volume."""
        assert convert_amount(1, "kg", "g") == 1000.0
        assert convert_amount(1000, "g", "kg") == 1.0
        assert round(convert_amount(1, "cup", "tbsp"), 2) == 16.0
        assert round(convert_amount(3, "tsp", "tbsp"), 2) == 1.0

    def test_volume_counts_as_weight(self):
        """1 ml is treated as 1 g."""
        assert convert_amount(250, "ml", "g") == 250.0

    def test_unchanged_cases(self):
        """Same or unknown units leave the amount as is."""
        assert convert_amount(5, "g", "g") == 5.0
        assert convert_amount(5, "handful", "g") == 5.0
        assert convert_amount(0, "kg", "g") == 0.0


class TestServingsFromAmount:
    """Test cases for servings_from_amount function."""

    def test_servings_unit_passes_through(self):
        """An amount in servings is already a serving count."""
        assert servings_from_amount(2, "servings", 0, "") == 2.0

    def test_amount_in_serving_unit(self):
        """Test an amount in the serving's own unit."""
        assert servings_from_amount(200, "g", 100, "g") == 2.0

    def test_amount_in_other_unit(self):
        """Test an amount converted from another unit."""
        servings = servings_from_amount(1, "oz", 28.3495, "g")
        assert servings == pytest.approx(1.0)

    def test_cannot_compute(self):
        """Zero amounts or serving sizes give None."""
        assert servings_from_amount(0, "g", 100, "g") is None
        assert servings_from_amount(100, "g", 0, "g") is None
        assert servings_from_amount(100, "g", 100, "handful") is None


class TestFormatting:
    """Test cases for display helpers."""

    def test_format_count(self):
        """Test that whole numbers drop the decimal."""
        assert format_count(3.0) == "3"
        assert format_count(2.5) == "2.5"
        assert format_count(1.333) == "1.33"

    def test_serving_conversions(self):
        """Test the conversion line for a gram serving."""
        assert serving_conversions(100, "g") == "approx 100 g | 3.53 oz | 0.22 lb | 100 ml | 0.42 cup"

    def test_serving_conversions_large_volume_in_litres(self):
        """Large volumes are shown in litres."""
        assert "| 2 l |" in serving_conversions(2, "l")

    def test_serving_conversions_unusable(self):
        """Test that unusable servings give no conversion line."""
        assert serving_conversions(0, "g") == ""
        assert serving_conversions(100, "handful") == ""


class TestWaterUnits:
    """Water is stored in ounces and shown in oz or ml."""

    def test_display_in_ml(self):
        """Test water display in ml and oz."""
        assert to_display_water(8, "ml") == 237
        assert to_display_water(8, "oz") == 8

    def test_display_halves_round_up(self):
        """4.5 oz shows as 5."""
        assert to_display_water(4.5, "oz") == 5

    def test_back_to_ounces(self):
        """Test converting displayed water back to ounces."""
        assert to_water_oz(8, "oz") == 8
        assert to_water_oz(29.5735, "ml") == pytest.approx(1.0)


class TestUsdaServingOptions:
    """Test cases for build_usda_serving_options function."""

    def test_base_serving_with_household_text(self):
        """Test the base serving labelled with household text."""
        food = {"servingSize": 170, "servingSizeUnit": "GRM", "householdServingFullText": "1 container"}
        options = build_usda_serving_options(food)
        assert options[0] == {"label": "1 container (170 g)", "size": 170.0, "unit": "g"}

    def test_portions_with_gram_weight(self):
        """Test that portions with a gram weight become options."""
        food = {
            "foodPortions": [
                {"portionDescription": "1 cup", "modifier": "chopped", "gramWeight": 128},
                {"portionDescription": "1 slice", "gramWeight": 0},
                {"gramWeight": 50},
            ]
        }
        options = build_usda_serving_options(food)
        assert [option["label"] for option in options] == ["1 cup chopped (128 g)", "Portion (50 g)"]
        assert all(option["unit"] == "g" for option in options)

    def test_no_serving_information(self):
        """A food without serving data gets one generic option."""
        options = build_usda_serving_options({"description": "Apple"})
        assert options == [{"label": "Serving size not listed", "size": 1, "unit": "servings"}]

    def test_missing_food(self):
        """Test that a missing food gives no options."""
        assert build_usda_serving_options(None) == []
