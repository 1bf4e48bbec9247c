"""
Tube bender scoring engine
Turns a ScoringInput into a 0-100 score with a per-category breakdown
"""

from typing import List, Optional, Sequence

from benderscore.schemas.score import (
    MAX_TOTAL_SCORE,
    ScoreResult,
    ScoringCategoryRead,
    ScoringInput,
    ScoringMethodologyRead,
)
from benderscore.services.category_rules import CATEGORY_RULES, CategoryRule


class ScoringEngine:
    """
    Pure scorer over the category rule table.

    Categories are evaluated independently and always reported in table
    order. When the raw sum exceeds the maximum the total is capped and the
    result says so rather than hiding it.
    """

    def __init__(self, rules: Optional[Sequence[CategoryRule]] = None, max_total: int = MAX_TOTAL_SCORE):
        self.rules: List[CategoryRule] = list(rules if rules is not None else CATEGORY_RULES)
        self.max_total = max_total

    def score(self, inp: ScoringInput) -> ScoreResult:
        """Score one input record"""
        breakdown = [rule.apply(inp) for rule in self.rules]
        raw_total = sum(item.points for item in breakdown)
        return ScoreResult(
            total=min(raw_total, self.max_total),
            raw_total=raw_total,
            clamped=raw_total > self.max_total,
            max_total=self.max_total,
            breakdown=breakdown,
        )

    def methodology(self) -> ScoringMethodologyRead:
        """Describe the category table the engine scores with"""
        return ScoringMethodologyRead(
            total_points=self.max_total,
            categories=[
                ScoringCategoryRead(
                    index=rule.index,
                    key=rule.key,
                    name=rule.name,
                    max_points=rule.max_points,
                    method=rule.method,
                    description=rule.description,
                )
                for rule in self.rules
            ],
        )


scoring_engine = ScoringEngine()


def score(inp: ScoringInput) -> ScoreResult:
    """Score with the default category table"""
    return scoring_engine.score(inp)
