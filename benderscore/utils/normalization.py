"""
Value coercion utilities shared by the scoring, adapter and overlay layers.

Catalog and overlay data arrive loosely typed: numbers as strings with units,
money with currency symbols and thousands separators, booleans as "YES"/"no".
Every coercion in the project goes through this module so there is exactly
one truth table per kind of value.
"""
import math
import re
from typing import Any, List, Optional, Tuple

TRUE_TOKENS = frozenset({"yes", "y", "true", "1"})

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_LEADING_INT = re.compile(r"^(\d+)")
_MONEY = re.compile(r"\d[\d,]*(?:\.\d+)?")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_bool_flag(value: Any) -> bool:
    """
    Coerce a capability flag to a bool.

    - bool: returned as-is
    - str: "yes", "y", "true", "1" (any case, surrounding whitespace ignored) -> True
    - int/float: exactly 1 -> True
    - anything else, including "no", "n", "false", "0", "", None -> False
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUE_TOKENS
    if isinstance(value, (int, float)):
        return value == 1
    return False


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings"""
    return value is None or (isinstance(value, str) and not value.strip())


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a number from a number or a numeric-looking string.

    Strings are read from the left the way a spec sheet is written:
    '2.5" OD' -> 2.5, ".156" -> 0.156, "195°" -> 195.0.
    Returns None when nothing numeric leads the value.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_NUMBER.match(value.strip())
        if match:
            number = float(match.group(0))
            return number if math.isfinite(number) else None
    return None


def parse_money_values(value: Any) -> List[float]:
    """All dollar amounts in a value: "$1,545 – $1,895" -> [1545.0, 1895.0]"""
    if isinstance(value, bool) or value is None:
        return []
    if isinstance(value, (int, float)):
        return [float(value)] if math.isfinite(value) and value >= 0 else []
    if isinstance(value, str):
        return [float(token.replace(",", "")) for token in _MONEY.findall(value)]
    return []


def parse_money(value: Any) -> Optional[float]:
    """First dollar amount in a value, or None"""
    amounts = parse_money_values(value)
    return amounts[0] if amounts else None


def parse_tier(value: Any, maximum: int) -> Tuple[int, Optional[str]]:
    """
    Read an admin-entered tier such as "3 – frame and dies made in USA" or 3.

    Returns (tier, unparseable_raw). The tier is clamped to [0, maximum].
    When a non-blank value carries no leading integer, the tier is 0 and the
    raw value is returned so callers can report it.
    """
    if is_blank(value):
        return 0, None
    if isinstance(value, bool):
        return 0, str(value)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return 0, str(value)
        return max(0, min(maximum, int(value))), None
    text = str(value).strip()
    match = _LEADING_INT.match(text)
    if not match:
        return 0, text
    return max(0, min(maximum, int(match.group(1)))), None


def split_list(value: Any) -> List[str]:
    """Split a comma-separated string into trimmed, non-empty tokens; lists pass through"""
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return []


def camel_to_snake(name: str) -> str:
    """hasPowerUpgradePath -> has_power_upgrade_path"""
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives"""
    return int(math.floor(value + 0.5))


_MIXED_FRACTION = re.compile(r"(\d+)\s*[-\s]\s*(\d+)\s*/\s*(\d+)")
_SIMPLE_FRACTION = re.compile(r"(\d+)\s*/\s*(\d+)")
_ANY_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def parse_inches(value: Any) -> Optional[float]:
    """
    Read a tube size in inches as written on spec sheets.

    '2-3/8" OD' -> 2.375, '1 1/2"' -> 1.5, '3/4"' -> 0.75, '2.0" OD' -> 2.0.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return parse_number(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    mixed = _MIXED_FRACTION.search(text)
    if mixed and int(mixed.group(3)):
        return int(mixed.group(1)) + int(mixed.group(2)) / int(mixed.group(3))
    simple = _SIMPLE_FRACTION.search(text)
    if simple and int(simple.group(2)):
        return int(simple.group(1)) / int(simple.group(2))
    number = _ANY_NUMBER.search(text)
    return float(number.group(0)) if number else None
