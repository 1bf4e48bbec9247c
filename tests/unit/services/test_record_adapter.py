"""
Unit tests for the record adapter
"""

import pytest

from benderscore.services.record_adapter import RecordAdapter, adapt, adapt_many


class TestEntryPrice:

    def test_sums_component_minimums(self):
        record = {
            "framePriceMin": "$1,250",
            "diePriceMin": 300,
            "hydraulicPriceMin": "$600 – $850",
            "standPriceMax": "$400",
        }
        assert adapt(record).entry_price == 2150.0

    def test_falls_back_to_component_maximums(self):
        record = {"framePriceMax": "$1,400", "diePriceMax": "$350"}
        assert adapt(record).entry_price == 1750.0

    def test_falls_back_to_legacy_price_lower_bound(self):
        inp = adapt({"price": "$1,545 – $1,895"})
        assert inp.entry_price == 1545.0
        assert inp.price_range == "$1,545 – $1,895"

    def test_no_price(self):
        inp = adapt({"price": "Typical starter configuration pricing"})
        assert inp.entry_price is None

    def test_entry_price_reads_snake_keys(self):
        assert RecordAdapter().entry_price({"frame_price_min": 900, "price": 5000}) == 900.0


class TestFieldMapping:

    def test_aliases(self):
        inp = adapt({"type": "Hydraulic", "capacity": "2-3/8\" OD", "mobility": "Rolling cart"})
        assert inp.power_type == "Hydraulic"
        assert inp.max_capacity == "2-3/8\" OD"
        assert inp.portability == "Rolling cart"

    def test_explicit_snake_key_wins_over_camel_case(self):
        assert adapt({"bendAngle": 90, "bend_angle": 195}).bend_angle == 195.0
        assert adapt({"bend_angle": 195, "bendAngle": 90}).bend_angle == 195.0

    def test_numeric_strings_are_coerced(self):
        inp = adapt({"bendAngle": "195°", "wallThicknessCapacity": ".120"})
        assert inp.bend_angle == 195.0
        assert inp.wall_thickness_capacity == pytest.approx(0.12)

    def test_unparseable_numbers_keep_raw_value(self):
        assert adapt({"bendAngle": "depends on die"}).bend_angle == "depends on die"

    @pytest.mark.parametrize(
        "raw,expected",
        [("yes", True), ("Y", True), ("TRUE", True), ("1", True), (1, True), (True, True),
         ("no", False), ("n", False), ("0", False), ("maybe", False), (0, False)],
    )
    def test_capability_flags(self, raw, expected):
        inp = adapt({"sBendCapability": raw, "hasLengthStop": raw})
        assert inp.s_bend_capability is expected
        assert inp.length_stop is expected

    def test_blank_flags_stay_unset(self):
        inp = adapt({"sBendCapability": "", "autoStop": None})
        assert inp.s_bend_capability is None
        assert inp.auto_stop is None

    def test_lists_only_pass_through_when_lists(self):
        inp = adapt({"materials": "mild steel, 4130", "dieShapes": ["Round tube", " ", "Pipe"]})
        assert inp.materials is None
        assert inp.die_shapes == ["Round tube", "Pipe"]

    def test_tiers(self):
        inp = adapt({"usaManufacturingTier": "3 – frame made in USA", "warrantyTier": 2.0})
        assert inp.usa_manufacturing_tier == "3 – frame made in USA"
        assert inp.warranty_tier == 2


@pytest.mark.parametrize("raw", [None, {}, [], "not a record", 42, {"brand": ["odd"], 7: "x"}])
def test_any_shape_adapts_without_raising(raw):
    inp = adapt(raw)
    assert inp.brand is None


def test_adapt_many():
    inputs = adapt_many([{"id": "a", "brand": "JD2"}, {"id": "b"}])
    assert [inp.id for inp in inputs] == ["a", "b"]
    assert inputs[0].brand == "JD2"
