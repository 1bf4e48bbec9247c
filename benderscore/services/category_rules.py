"""
Tube bender scoring categories

Fourteen independent rules, each turning a subset of ScoringInput fields into
a bounded number of points plus the reasoning shown to readers. Budgets sum
to 100.

Every rule follows one of three shapes:
- tier: the first matching bracket of an ordered table wins
- checklist: weighted sub-signals summed, normalised to the category budget
- binary: full points iff one condition holds
"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from benderscore.schemas.score import ScoreBreakdownItem, ScoringInput
from benderscore.utils.normalization import is_blank, parse_inches, parse_number, parse_tier, round_half_up

NOT_SPECIFIED = "not specified"


@dataclass(frozen=True)
class CategoryRule:
    """One scoring category and the function that evaluates it"""

    index: int
    key: str
    name: str
    max_points: int
    method: str
    description: str
    evaluate: Callable[["CategoryRule", ScoringInput], Tuple[int, str]]

    def apply(self, inp: ScoringInput) -> ScoreBreakdownItem:
        points, reasoning = self.evaluate(self, inp)
        points = max(0, min(self.max_points, int(points)))
        return ScoreBreakdownItem(
            key=self.key,
            criteria=self.name,
            points=points,
            max_points=self.max_points,
            reasoning=reasoning,
        )


@dataclass(frozen=True)
class ChecklistSignal:
    """A weighted sub-signal of a checklist category"""

    label: str
    weight: float
    matches: Callable[[str], bool]


def weighted_checklist(
    tokens: Iterable[str],
    signals: Sequence[ChecklistSignal],
    budget: int,
    other: Optional[ChecklistSignal] = None,
) -> Tuple[int, List[str]]:
    """
    Score a list of tokens against weighted signals.

    Each signal counts once no matter how many tokens hit it. ``other`` is
    credited when a token matches none of ``signals``. The raw weight is
    normalised against the maximum possible weight and scaled to ``budget``.
    """
    slugs = [str(token).strip().lower() for token in tokens if str(token).strip()]
    matched = [signal for signal in signals if any(signal.matches(slug) for slug in slugs)]
    if other is not None and any(not any(s.matches(slug) for s in signals) for slug in slugs):
        matched.append(other)

    all_signals = list(signals) + ([other] if other is not None else [])
    max_weight = sum(signal.weight for signal in all_signals)
    raw_weight = sum(signal.weight for signal in matched)
    if max_weight <= 0:
        return 0, []

    points = round_half_up(budget * raw_weight / max_weight)
    return max(0, min(budget, points)), [signal.label for signal in matched]


# --- 1. Value for money ------------------------------------------------------

# Upper bound of the complete-setup entry price -> points
ENTRY_PRICE_TIERS: Sequence[Tuple[float, int]] = (
    (885, 20),
    (970, 19),
    (1250, 17),
    (1755, 16),
    (1895, 15),
    (2895, 12),
    (5000, 8),
)
ENTRY_PRICE_ABOVE_TIERS = 4

# Legacy published price-range brackets, matched as substrings
PRICE_RANGE_BRACKETS: Sequence[Tuple[Tuple[str, ...], int]] = (
    (("$780", "$885"), 20),
    (("$839", "$970"), 19),
    (("$1,000", "$1,250"), 17),
    (("$1,105", "$1,755"), 16),
    (("$1,609", "$1,895"), 15),
    (("$2,050", "$2,895"), 12),
    (("$3,850", "$5,000"), 8),
)


def _value_for_money(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    if inp.entry_price is not None and inp.entry_price > 0:
        price = inp.entry_price
        for ceiling, points in ENTRY_PRICE_TIERS:
            if price <= ceiling:
                return points, f"Complete entry setup at ${price:,.0f} falls in the up-to-${ceiling:,.0f} price tier."
        return ENTRY_PRICE_ABOVE_TIERS, f"Complete entry setup at ${price:,.0f} is above every value tier."

    if not is_blank(inp.price_range):
        price_range = inp.price_range.lower()
        for tokens, points in PRICE_RANGE_BRACKETS:
            if any(token in price_range for token in tokens):
                return points, f"Published price range {inp.price_range} matches a known value bracket."
        return 0, f"Price range {inp.price_range!r} does not match a known bracket; value {NOT_SPECIFIED}."

    return 0, f"Entry price {NOT_SPECIFIED}; value for money is not scored."


# --- 2. Ease of use & setup --------------------------------------------------

BRAND_EASE_TIERS = {
    "roguefab": 11,
    "swag off road": 10,
    "jd2": 9,
}

PORTABILITY_FIXED_LABEL = "fixed base that must be mounted to use"


def _portability_tier(raw: Optional[str]) -> Tuple[int, str]:
    if is_blank(raw):
        return 0, f"portability {NOT_SPECIFIED}"
    text = raw.strip().lower()
    if "rolling" in text and any(word in text for word in ("standard", "included", "built-in")):
        return 3, "rolling base as a standard feature"
    if "rolling" in text or "cart" in text:
        return 2, "portable with optional rolling base/cart"
    if "portable" in text:
        return 1, "portable (no rolling option)"
    if any(word in text for word in ("fixed", "floor", "bench")):
        return 0, PORTABILITY_FIXED_LABEL
    return 0, f"unrecognised portability {raw!r}, treated as fixed"


def _ease_of_use(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    brand = (inp.brand or "").strip()
    power_type = (inp.power_type or "").strip()
    if not brand and not power_type and is_blank(inp.portability):
        return 0, f"Brand, power type and portability {NOT_SPECIFIED}; ease of use is not scored."

    base = BRAND_EASE_TIERS.get(brand.lower())
    if base is not None:
        base_label = f"{brand} ergonomics"
    elif "manual" in power_type.lower():
        base, base_label = 8, "manual operation"
    elif "hydraulic" in power_type.lower():
        base, base_label = 9, "hydraulic operation"
    elif power_type:
        base, base_label = 7, f"{power_type} operation"
    else:
        base, base_label = 0, f"operation {NOT_SPECIFIED}"

    portability_points, portability_label = _portability_tier(inp.portability)
    points = min(rule.max_points, base + portability_points)
    return points, (
        f"{base_label} (base {base}/{rule.max_points}) and portability tier: "
        f"{portability_label} (+{portability_points})."
    )


# --- 3. Max diameter & CLR ---------------------------------------------------

# Minimum round tube OD in inches -> points
CAPACITY_TIERS: Sequence[Tuple[float, int]] = (
    (2.5, 10),
    (2.375, 9),
    (2.25, 8),
    (2.0, 7),
    (1.75, 5),
    (1.5, 3),
)
CAPACITY_OTHER_POINTS = 2


def _max_diameter(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    if is_blank(inp.max_capacity):
        return 0, f"Maximum round tube capacity {NOT_SPECIFIED}."
    inches = parse_inches(inp.max_capacity)
    if inches is None:
        return 0, f"Max diameter {NOT_SPECIFIED}: unparseable value {inp.max_capacity!r}."
    for minimum, points in CAPACITY_TIERS:
        if inches >= minimum:
            return points, (
                f"{inp.max_capacity} maximum round tube capacity from published specs "
                "(OD only; CLR is not yet part of the score)."
            )
    return CAPACITY_OTHER_POINTS, f"{inp.max_capacity} maximum capacity is below the scored OD tiers."


# --- 4. Bend angle -----------------------------------------------------------

BEND_ANGLE_TIERS: Sequence[Tuple[float, int]] = (
    (195, 9),
    (180, 7),
    (120, 4),
)
BEND_ANGLE_FLOOR_POINTS = 2


def _bend_angle(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    if is_blank(inp.bend_angle):
        return 0, f"Maximum bend angle {NOT_SPECIFIED}."
    angle = parse_number(inp.bend_angle)
    if angle is None or angle <= 0:
        return 0, f"Maximum bend angle {NOT_SPECIFIED}: unparseable value {inp.bend_angle!r}."
    for minimum, points in BEND_ANGLE_TIERS:
        if angle >= minimum:
            return points, f"{angle:g}° maximum bend angle (tier ≥{minimum:g}°)."
    return BEND_ANGLE_FLOOR_POINTS, f"{angle:g}° maximum bend angle (below 120°)."


# --- 5. Wall thickness incl. materials ---------------------------------------

WALL_THICKNESS_TIERS: Sequence[Tuple[float, int]] = (
    (0.156, 6),
    (0.120, 5),
    (0.095, 4),
)
WALL_THICKNESS_FLOOR_POINTS = 3
WALL_THICKNESS_POINTS = 6
MATERIALS_POINTS = 3

MATERIAL_SIGNALS: Sequence[ChecklistSignal] = (
    ChecklistSignal("mild steel", 2, lambda s: "mild" in s),
    ChecklistSignal("4130 chromoly", 2, lambda s: "4130" in s or "chromoly" in s),
    ChecklistSignal("stainless (304/316)", 1.5, lambda s: "stainless" in s or "304" in s or "316" in s),
    ChecklistSignal("aluminum", 1.5, lambda s: "alum" in s),
    ChecklistSignal("titanium", 1, lambda s: "titanium" in s or s == "ti"),
    ChecklistSignal("copper/brass/bronze", 1, lambda s: "copper" in s or "brass" in s or "bronze" in s),
)
OTHER_MATERIAL = ChecklistSignal("other documented alloys", 1, lambda s: False)


def _wall_thickness(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    raw = inp.wall_thickness_capacity
    if is_blank(raw):
        return 0, (
            f'Max wall thickness for 1.75" OD DOM {NOT_SPECIFIED}; '
            "the category scores 0 rather than guessing."
        )

    thickness = parse_number(raw)
    if thickness is None:
        thickness_points = 0
        thickness_reason = f"Wall thickness {NOT_SPECIFIED}: unparseable value {raw!r}."
    else:
        thickness_points = 0
        for minimum, points in WALL_THICKNESS_TIERS:
            if thickness >= minimum:
                thickness_points = points
                break
        else:
            if thickness > 0:
                thickness_points = WALL_THICKNESS_FLOOR_POINTS
        thickness_reason = f'{thickness:g}" wall capacity for 1.75" OD DOM ({thickness_points}/{WALL_THICKNESS_POINTS}).'

    materials = inp.materials or []
    if not materials:
        material_points = 0
        material_reason = "No published material compatibility list; materials not scored."
    else:
        material_points, labels = weighted_checklist(materials, MATERIAL_SIGNALS, MATERIALS_POINTS, OTHER_MATERIAL)
        material_reason = (
            f"Documented materials: {', '.join(labels)} ({material_points}/{MATERIALS_POINTS})."
            if labels
            else "Materials list could not be mapped to known categories."
        )

    return thickness_points + material_points, f"{thickness_reason} {material_reason}"


# --- 6. Die selection & shapes -----------------------------------------------

DIE_SHAPE_SIGNALS: Sequence[ChecklistSignal] = (
    ChecklistSignal("round tube", 1, lambda s: "round" in s and "tube" in s),
    ChecklistSignal("pipe", 1, lambda s: "pipe" in s),
    ChecklistSignal("square tube", 1, lambda s: "square" in s and "tube" in s),
    ChecklistSignal("EMT", 1, lambda s: "emt" in s),
    ChecklistSignal("metric round", 1, lambda s: "metric" in s and ("round" in s or "od" in s)),
    ChecklistSignal("metric square/rectangular", 1, lambda s: "metric" in s and ("square" in s or "rect" in s)),
    ChecklistSignal("plastic/urethane pressure dies", 1, lambda s: "plastic" in s or "urethane" in s),
    ChecklistSignal(
        "other documented shapes",
        1,
        lambda s: "other" in s or "hex" in s or ("rectangular" in s and "tube" not in s),
    ),
)


def _die_shapes(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    shapes = inp.die_shapes or []
    if not shapes:
        return 0, f"Die coverage {NOT_SPECIFIED}; not scored rather than assuming a default."
    points, labels = weighted_checklist(shapes, DIE_SHAPE_SIGNALS, rule.max_points)
    if not labels:
        return 0, "Listed dies do not match any scored die family."
    return points, f"Documented die coverage for: {', '.join(labels)}."


# --- 7. Years in business ----------------------------------------------------

BRAND_TRACK_RECORD = {
    "hossfeld": 3,
    "jd2": 2,
    "pro-tools": 2,
    "baileigh": 2,
    "roguefab": 1,
    "swag off road": 1,
}


def _years_in_business(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    brand = (inp.brand or "").strip()
    if not brand:
        return 0, f"Brand {NOT_SPECIFIED}; track record is not scored."
    points = BRAND_TRACK_RECORD.get(brand.lower())
    if points is None:
        return 0, f"Track record for {brand} {NOT_SPECIFIED} in the brand table."
    if points >= 2:
        return points, f"{brand} is an established manufacturer with a long operating history."
    return points, f"{brand} has a proven, shorter track record."


# --- 8. Upgrade path & modularity --------------------------------------------

# (ScoringInput field, upgrade_flags token, label)
UPGRADE_FLAGS: Sequence[Tuple[str, str, str]] = (
    ("has_power_upgrade_path", "powerupgradepath", "power upgrade path"),
    ("length_stop", "lengthstop", "length backstop"),
    ("rotation_indexing", "rotationindexing", "rotation indexing"),
    ("angle_measurement", "anglemeasurement", "machine-mounted angle readout"),
    ("auto_stop", "autostop", "auto-stop for bend angle"),
    ("thick_wall_upgrade", "thickwallupgrade", "thick-wall tooling upgrades"),
    ("thin_wall_upgrade", "thinwallupgrade", "thin-wall bend-quality upgrades"),
    ("wiper_die_support", "wiperdiesupport", "wiper die support"),
)


def _flag_token(value: str) -> str:
    token = "".join(ch for ch in value.lower() if ch.isalnum())
    return token[3:] if token.startswith("has") else token


def _upgrade_path(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    listed = {_flag_token(flag) for flag in (inp.upgrade_flags or [])}
    values = [getattr(inp, field) for field, _, _ in UPGRADE_FLAGS]
    if all(value is None for value in values) and not listed:
        return 0, f"Upgrade path {NOT_SPECIFIED}."

    present = [
        label
        for (field, token, label), value in zip(UPGRADE_FLAGS, values)
        if value is True or _flag_token(token) in listed
    ]
    if not present:
        return 0, "No documented upgrade path beyond the base configuration."
    return len(present), f"Documented upgrade path covering: {', '.join(present)}."


# --- 9. Mandrel compatibility ------------------------------------------------

def _mandrel(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    raw = inp.mandrel
    if is_blank(raw):
        return 0, f"Mandrel capability {NOT_SPECIFIED}."
    if raw.strip().lower() == "available":
        return rule.max_points, "Manufacturer documents a mandrel system for this frame."
    return 0, f"Mandrel listed as {raw!r}; only a documented available mandrel system earns points."


# --- 10. S-bend capability ---------------------------------------------------

def _s_bend(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    if inp.s_bend_capability is None:
        return 0, f"S-bend capability {NOT_SPECIFIED}."
    if inp.s_bend_capability:
        return rule.max_points, 'Forms opposite-direction bends with ≤0.125" tangent between them.'
    return 0, 'No documented back-to-back opposite bends with ≤0.125" tangent.'


# --- 11-14. Disclosure-based tiers -------------------------------------------

def _tier_rule(field: str, subject: str, positive: str, zero: str):
    def evaluate(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
        raw = getattr(inp, field)
        if is_blank(raw):
            return 0, f"{subject} {NOT_SPECIFIED}."
        tier, unparseable = parse_tier(raw, rule.max_points)
        if unparseable is not None:
            return 0, f"{subject} {NOT_SPECIFIED}: unparseable tier {unparseable!r}."
        if tier > 0:
            return tier, f"Tier {tier}/{rule.max_points}: {positive}"
        return 0, zero

    return evaluate


def _single_source(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    raw = inp.single_source_system_tier
    if is_blank(raw):
        return 0, f"Single-source system {NOT_SPECIFIED}."
    tier, unparseable = parse_tier(raw, rule.max_points)
    if unparseable is not None:
        return 0, f"Single-source system {NOT_SPECIFIED}: unparseable tier {unparseable!r}."
    if tier == rule.max_points:
        return rule.max_points, "Complete system (frame, dies, hydraulics/lever) available from one primary source."
    return 0, "One or more required components must be sourced elsewhere."


WARRANTY_REASONS = {
    3: "Clear multi-year or lifetime coverage on major structural components.",
    2: "Clear written warranty of roughly 1-2 years.",
    1: "Some warranty language, but short or vague.",
}


def _warranty(rule: CategoryRule, inp: ScoringInput) -> Tuple[int, str]:
    raw = inp.warranty_tier
    if is_blank(raw):
        return 0, f"Warranty terms {NOT_SPECIFIED}."
    tier, unparseable = parse_tier(raw, rule.max_points)
    if unparseable is not None:
        return 0, f"Warranty terms {NOT_SPECIFIED}: unparseable tier {unparseable!r}."
    reason = WARRANTY_REASONS.get(tier, "No meaningful written warranty, or sold as-is.")
    return tier, f"{reason} Based on published terms only."


CATEGORY_RULES: List[CategoryRule] = [
    CategoryRule(1, "value_for_money", "Value for Money", 20, "tier",
                 "Tier-based scoring on the complete entry setup price.", _value_for_money),
    CategoryRule(2, "ease_of_use", "Ease of Use & Setup", 11, "tier",
                 "Operation ergonomics plus a portability tier.", _ease_of_use),
    CategoryRule(3, "max_diameter", "Max Diameter & CLR Capability", 10, "tier",
                 "Tier-based scoring on maximum round tube OD.", _max_diameter),
    CategoryRule(4, "bend_angle", "Bend Angle Capability", 9, "tier",
                 "Tier-based scoring on documented maximum bend angle.", _bend_angle),
    CategoryRule(5, "wall_thickness", "Wall Thickness Capability", 9, "tier",
                 'Thickest published 1.75" OD DOM wall plus documented material coverage.', _wall_thickness),
    CategoryRule(6, "die_shapes", "Die Selection & Shapes", 8, "checklist",
                 "Coverage across eight documented die families.", _die_shapes),
    CategoryRule(7, "years_in_business", "Track Record (Years in Business)", 3, "tier",
                 "Lightly weighted company longevity.", _years_in_business),
    CategoryRule(8, "upgrade_path", "Upgrade Path & Modularity", 8, "checklist",
                 "One point per documented power, LRA-control or tooling upgrade.", _upgrade_path),
    CategoryRule(9, "mandrel", "Mandrel Compatibility", 4, "binary",
                 "Full points when a mandrel system is available for the frame.", _mandrel),
    CategoryRule(10, "s_bend", "S-Bend Capability", 3, "binary",
                 'S-bends under a strict ≤0.125" tangent rule.', _s_bend),
    CategoryRule(11, "usa_manufacturing", "USA Manufacturing (Disclosure-Based)", 5, "tier",
                 "Tier based on what the manufacturer publicly claims about origin.",
                 _tier_rule(
                     "usa_manufacturing_tier",
                     "USA manufacturing disclosure",
                     "based solely on the manufacturer's own origin claims; not a legal opinion.",
                     "No disclosed USA manufacturing claims.",
                 )),
    CategoryRule(12, "origin_transparency", "Origin Transparency", 5, "tier",
                 "How clearly the manufacturer documents origin of major components.",
                 _tier_rule(
                     "origin_transparency_tier",
                     "Origin transparency",
                     "scores documentation quality only, not any specific country.",
                     "No meaningful origin disclosure.",
                 )),
    CategoryRule(13, "single_source", "Single-Source System", 2, "binary",
                 "Full points when the whole system comes from one primary source.", _single_source),
    CategoryRule(14, "warranty", "Warranty (Published Terms Only)", 3, "tier",
                 "Published warranty strength, not how it is honoured.", _warranty),
]
