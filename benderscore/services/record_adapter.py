"""
Record adapter
Maps loosely-typed catalog/overlay records onto the strict ScoringInput
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from benderscore.core.logging import log
from benderscore.schemas.score import ScoringInput
from benderscore.utils.normalization import (
    camel_to_snake,
    is_blank,
    parse_money,
    parse_money_values,
    parse_number,
    to_bool_flag,
)

PRICE_COMPONENTS = ("frame", "die", "hydraulic", "stand")

# ScoringInput field -> accepted record keys (snake_case), first present wins
FIELD_ALIASES: Dict[str, tuple] = {
    "power_type": ("power_type", "type", "power"),
    "portability": ("portability", "mobility"),
    "max_capacity": ("max_capacity", "capacity", "max_od"),
    "mandrel": ("mandrel", "mandrel_bender"),
    "bend_angle": ("bend_angle", "max_bend_angle"),
    "wall_thickness_capacity": ("wall_thickness_capacity", "max_wall"),
    "has_power_upgrade_path": ("has_power_upgrade_path", "power_upgrade_path"),
    "length_stop": ("length_stop", "has_length_stop"),
    "rotation_indexing": ("rotation_indexing", "has_rotation_indexing"),
    "angle_measurement": ("angle_measurement", "has_angle_measurement"),
    "auto_stop": ("auto_stop", "has_auto_stop"),
    "thick_wall_upgrade": ("thick_wall_upgrade", "has_thick_wall_upgrade"),
    "thin_wall_upgrade": ("thin_wall_upgrade", "has_thin_wall_upgrade"),
    "wiper_die_support": ("wiper_die_support", "has_wiper_die_support"),
    "s_bend_capability": ("s_bend_capability", "s_bend"),
}

TEXT_FIELDS = ("id", "brand", "model", "power_type", "portability", "max_capacity", "mandrel")
NUMERIC_FIELDS = ("bend_angle", "wall_thickness_capacity")
LIST_FIELDS = ("materials", "die_shapes", "upgrade_flags")
FLAG_FIELDS = (
    "has_power_upgrade_path",
    "length_stop",
    "rotation_indexing",
    "angle_measurement",
    "auto_stop",
    "thick_wall_upgrade",
    "thin_wall_upgrade",
    "wiper_die_support",
    "s_bend_capability",
)
TIER_FIELDS = (
    "usa_manufacturing_tier",
    "origin_transparency_tier",
    "single_source_system_tier",
    "warranty_tier",
)


class RecordAdapter:
    """
    Converts a merged product record into a ScoringInput.

    Records use camelCase (catalog/overlay) or snake_case (API) keys; both are
    accepted. Anything that cannot be coerced is left unset rather than
    guessed, so the engine reports it as not specified.
    """

    def adapt(self, raw: Optional[Mapping[str, Any]]) -> ScoringInput:
        record = self._snake_keys(raw)
        values: Dict[str, Any] = {}

        for field in TEXT_FIELDS:
            values[field] = self._text(self._lookup(record, field))

        for field in NUMERIC_FIELDS:
            values[field] = self._numeric(self._lookup(record, field))

        for field in LIST_FIELDS:
            values[field] = self._string_list(record.get(field))

        for field in FLAG_FIELDS:
            flag = self._lookup(record, field)
            values[field] = None if is_blank(flag) else to_bool_flag(flag)

        for field in TIER_FIELDS:
            values[field] = self._tier(record.get(field))

        values["price_range"] = self._price_range(record)
        values["entry_price"] = self.entry_price(record)

        return ScoringInput(**values)

    def entry_price(self, record: Mapping[str, Any]) -> Optional[float]:
        """
        Complete-setup entry price.

        Sum of the known component minimums (frame, die, hydraulic, stand);
        failing that the sum of component maximums; failing that the legacy
        single price, whose lower bound is used when it is a range.
        """
        for suffix in ("price_min", "price_max"):
            amounts = [parse_money(record.get(f"{component}_{suffix}")) for component in PRICE_COMPONENTS]
            amounts = [amount for amount in amounts if amount is not None]
            if amounts:
                return sum(amounts)

        for key in ("price_min", "price"):
            amounts = parse_money_values(record.get(key))
            if amounts:
                return min(amounts)
        return None

    @staticmethod
    def _snake_keys(raw: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        if not isinstance(raw, Mapping):
            if raw is not None:
                log.warning("Record is not a mapping, scoring it as empty", record_type=type(raw).__name__)
            return {}
        record: Dict[str, Any] = {}
        for key, value in raw.items():
            if not isinstance(key, str):
                continue
            snake = camel_to_snake(key)
            # An explicit snake_case key beats its camelCase spelling
            if snake in record and key != snake:
                continue
            record[snake] = value
        return record

    @staticmethod
    def _lookup(record: Mapping[str, Any], field: str) -> Any:
        for key in FIELD_ALIASES.get(field, (field,)):
            value = record.get(key)
            if not is_blank(value):
                return value
        return None

    @staticmethod
    def _text(value: Any) -> Optional[str]:
        if is_blank(value) or isinstance(value, (bool, list, dict)):
            return None
        return str(value).strip()

    @staticmethod
    def _numeric(value: Any) -> Optional[Union[float, str]]:
        if is_blank(value) or isinstance(value, (list, dict)):
            return None
        number = parse_number(value)
        if number is not None:
            return number
        return str(value).strip()

    @staticmethod
    def _string_list(value: Any) -> Optional[List[str]]:
        if not isinstance(value, (list, tuple)):
            return None
        return [str(item).strip() for item in value if not is_blank(item)]

    @staticmethod
    def _tier(value: Any) -> Optional[Union[int, str]]:
        if is_blank(value) or isinstance(value, (list, dict)):
            return None
        if isinstance(value, bool):
            return str(value)
        if isinstance(value, (int, float)):
            number = parse_number(value)
            return int(number) if number is not None else str(value)
        return str(value).strip()

    @staticmethod
    def _price_range(record: Mapping[str, Any]) -> Optional[str]:
        for key in ("price_range", "price"):
            value = record.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None


record_adapter = RecordAdapter()


def adapt(raw: Optional[Mapping[str, Any]]) -> ScoringInput:
    """Adapt with the default adapter"""
    return record_adapter.adapt(raw)


def adapt_many(records: Iterable[Mapping[str, Any]]) -> List[ScoringInput]:
    return [record_adapter.adapt(record) for record in records]
