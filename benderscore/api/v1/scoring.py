"""
Scoring methodology endpoint
"""

from fastapi import APIRouter

from benderscore.api.deps import ScoringEngineDep
from benderscore.schemas.score import ScoringMethodologyRead

router = APIRouter()


@router.get("/methodology", response_model=ScoringMethodologyRead)
async def get_methodology(engine: ScoringEngineDep) -> ScoringMethodologyRead:
    """Category table the engine scores with, in breakdown order"""
    return engine.methodology()
