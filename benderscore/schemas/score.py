"""
Score schemas for the tube bender scoring engine
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

MAX_TOTAL_SCORE = 100


class ScoringInput(BaseModel):
    """Strict, flat input record consumed by the scoring engine.

    Every field is optional. Numeric fields keep the raw string when it could
    not be parsed so the engine can name the bad value in its reasoning.
    """

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None

    # Price signals
    entry_price: Optional[float] = None
    price_range: Optional[str] = None

    # Descriptive strings
    power_type: Optional[str] = None
    portability: Optional[str] = None
    max_capacity: Optional[str] = None
    mandrel: Optional[str] = None

    # Numeric specs
    bend_angle: Optional[Union[float, str]] = None
    wall_thickness_capacity: Optional[Union[float, str]] = None

    # List-valued specs
    materials: Optional[List[str]] = None
    die_shapes: Optional[List[str]] = None
    upgrade_flags: Optional[List[str]] = None

    # Upgrade path & modularity flags
    has_power_upgrade_path: Optional[bool] = None
    length_stop: Optional[bool] = None
    rotation_indexing: Optional[bool] = None
    angle_measurement: Optional[bool] = None
    auto_stop: Optional[bool] = None
    thick_wall_upgrade: Optional[bool] = None
    thin_wall_upgrade: Optional[bool] = None
    wiper_die_support: Optional[bool] = None

    s_bend_capability: Optional[bool] = None

    # Disclosure-based tiers entered by admins ("3 – ..." or 3)
    usa_manufacturing_tier: Optional[Union[int, str]] = None
    origin_transparency_tier: Optional[Union[int, str]] = None
    single_source_system_tier: Optional[Union[int, str]] = None
    warranty_tier: Optional[Union[int, str]] = None


class ScoreBreakdownItem(BaseModel):
    """Points awarded for one category, with the reasoning behind them"""

    key: str = Field(..., description="Stable category key")
    criteria: str = Field(..., description="Human-facing category name")
    points: int = Field(..., ge=0)
    max_points: int = Field(..., ge=0)
    reasoning: str


class ScoreResult(BaseModel):
    """Engine output for one input record"""

    total: int = Field(..., ge=0, le=MAX_TOTAL_SCORE)
    raw_total: int = Field(..., ge=0, description="Sum of breakdown points before clamping")
    clamped: bool = Field(False, description="True when raw_total exceeded the maximum and total was capped")
    max_total: int = MAX_TOTAL_SCORE
    breakdown: List[ScoreBreakdownItem]


class ProductScore(BaseModel):
    """Score view for a product; recomputed on every read, never stored"""

    product_id: str
    total: Optional[int] = Field(None, ge=0, le=MAX_TOTAL_SCORE)
    source: Literal["computed", "none"] = "none"
    raw_total: Optional[int] = None
    clamped: bool = False
    max_total: int = MAX_TOTAL_SCORE
    published_version: Optional[int] = Field(None, description="Published version the score was computed from")
    breakdown: List[ScoreBreakdownItem] = Field(default_factory=list)


class ScoringCategoryRead(BaseModel):
    """Public description of a scoring category"""

    index: int
    key: str
    name: str
    max_points: int
    method: Literal["tier", "checklist", "binary"]
    description: str


class ScoringMethodologyRead(BaseModel):
    """Full scoring framework as shown on the methodology page"""

    total_points: int = MAX_TOTAL_SCORE
    categories: List[ScoringCategoryRead]


class ProductSummary(BaseModel):
    """Merged catalog entry with its current score"""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    name: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    score: ProductScore
