"""
Pantry quantity arithmetic.

Quantities are (value, unit) pairs. Conversion only happens inside the
mass family (g, kg, oz, lb) or the volume family (ml, l, cups, tbsp, tsp);
counts ("pcs") never convert to or from weights.
"""

import math
import re
from typing import NamedTuple, Optional

MASS_FACTORS = {"g": 1.0, "kg": 1000.0, "oz": 28.3495, "lb": 453.592}
VOLUME_FACTORS = {"ml": 1.0, "l": 1000.0, "cups": 236.588, "tbsp": 14.7868, "tsp": 4.9289}

USED_UP_FRACTION = 0.05

_UNIT_ALIASES = {
    "g": ("g", "gram", "grams", "gms"),
    "kg": ("kg", "kilo", "kilogram", "kilograms"),
    "ml": ("ml", "milliliter", "milliliters"),
    "l": ("l", "liter", "liters"),
    "lb": ("lb", "lbs", "pound", "pounds"),
    "oz": ("oz", "ounce", "ounces"),
    "cups": ("cup", "cups"),
    "tbsp": ("tbsp", "tablespoon", "tablespoons"),
    "tsp": ("tsp", "teaspoon", "teaspoons"),
    "pcs": ("pcs", "pc", "piece", "pieces", "whole"),
}
_ALIAS_TO_UNIT = {alias: unit for unit, aliases in _UNIT_ALIASES.items() for alias in aliases}

_FRACTION_RE = re.compile(r"^(\d+)/(\d+)\s*([a-zA-Z]+)?")
_DECIMAL_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([a-zA-Z%]+)?")


class Quantity(NamedTuple):
    value: float
    unit: str


def normalize_unit(unit: str) -> str:
    """Map a unit spelling to its canonical code; unknown units are lowercased."""
    u = unit.lower().replace(".", "").strip()
    return _ALIAS_TO_UNIT.get(u, u)


def parse_quantity(text: str) -> Quantity:
    """
    Parse an amount like "200g", "1.5 kg" or "1/2 cup".

    Anything unparseable is treated as one piece.
    """
    text = text.strip()

    match = _FRACTION_RE.match(text)
    if match and int(match.group(2)) != 0:
        return Quantity(int(match.group(1)) / int(match.group(2)), normalize_unit(match.group(3) or "pcs"))

    match = _DECIMAL_RE.match(text)
    if match:
        return Quantity(float(match.group(1)), normalize_unit(match.group(2) or "pcs"))

    return Quantity(1.0, "pcs")


def convert(quantity: Quantity, target_unit: str) -> Optional[float]:
    """Convert to target_unit, or None if the units are in different families."""
    base = normalize_unit(quantity.unit)
    target = normalize_unit(target_unit)

    if base == target:
        return quantity.value

    for factors in (MASS_FACTORS, VOLUME_FACTORS):
        if base in factors and target in factors:
            return quantity.value * factors[base] / factors[target]

    return None


def format_quantity(value: float) -> str:
    """Integers as-is, everything else to one decimal place."""
    if float(value).is_integer():
        return str(int(value))
    formatted = f"{value:.1f}"
    return formatted[:-2] if formatted.endswith(".0") else formatted


def _parse_number(text) -> float:
    match = _DECIMAL_RE.match(str(text).strip())
    return float(match.group(1)) if match else math.nan


def calculate_new_inventory(pantry_quantity: str, pantry_unit: Optional[str], used_amount: str):
    """
    Deduct a recipe's used amount from a pantry quantity.

    When the units cannot be converted, one pantry unit is deducted instead
    of removing the item. Five percent or less remaining counts as used up.

    Returns:
        (new_quantity, should_remove) tuple
    """
    current = _parse_number(pantry_quantity)
    if math.isnan(current):
        return "0", True

    current_unit = normalize_unit(pantry_unit or "pcs")
    used = convert(parse_quantity(used_amount), current_unit)

    remaining = current - (1 if used is None else used)

    if remaining <= 0 or remaining <= USED_UP_FRACTION * current:
        return "0", True

    return format_quantity(remaining), False


def is_low_stock(quantity: str, unit: Optional[str], category: str) -> bool:
    """Category-aware low-stock check."""
    qty = _parse_number(quantity)
    if math.isnan(qty):
        return False
    u = normalize_unit(unit or "pcs")

    # Small amounts of spices are normal
    if category == "Spices":
        if u in ("g", "ml"):
            return qty <= 10
        if u == "oz":
            return qty <= 0.5
        if u == "tbsp":
            return qty <= 1
        return False

    if category in ("Dairy", "Beverages", "Grains"):
        if u in ("ml", "g"):
            return qty <= 250
        if u in ("l", "kg"):
            return qty <= 0.25

    thresholds = {
        "g": 150, "ml": 150,
        "kg": 0.2, "l": 0.2,
        "lb": 0.5,
        "oz": 6,
        "cups": 0.5,
        "tbsp": 2,
        "tsp": 5,
    }
    if u in thresholds:
        return qty <= thresholds[u]

    # Countable items
    return qty <= 2


def merge_quantities(qty1: str, unit1: Optional[str], qty2: str, unit2: Optional[str]) -> Optional[str]:
    """
    Add two pantry quantities in the first item's unit.

    Returns:
        Merged quantity string, or None if the units are incompatible
    """
    u1 = normalize_unit(unit1 or "pcs")
    u2 = normalize_unit(unit2 or "pcs")
    val1 = _parse_number(qty1)
    val2 = _parse_number(qty2)
    val1 = 0.0 if math.isnan(val1) else val1
    val2 = 0.0 if math.isnan(val2) else val2

    converted = convert(Quantity(val2, u2), u1)
    if converted is None:
        return None
    return format_quantity(val1 + converted)
