"""Partnership, calculation, export and health check route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from padel_league.api.routes import to_http_exception
from padel_league.database.db import get_db_session
from padel_league.models.schemas import (
    CalculateResponse,
    ExportResponse,
    HealthResponse,
    MatchResponse,
    PartnershipResponse,
    PlayerResponse,
)
from padel_league.services import data_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/partnerships", response_model=List[PartnershipResponse])
async def list_partnerships(session: AsyncSession = Depends(get_db_session)):
    """Get every partnership from the latest stats pass."""
    try:
        partnerships = await data_service.list_partnerships(session)
        return [PartnershipResponse.model_validate(p) for p in partnerships]
    except Exception as e:
        raise to_http_exception(e, "loading partnerships")


@router.post("/api/calculate", response_model=CalculateResponse)
async def calculate_stats(session: AsyncSession = Depends(get_db_session)):
    """
    Recompute all player and partnership stats from match history.

    Safe to call repeatedly; the result only depends on stored matches.
    """
    try:
        state = await data_service.recompute_stats(session)
        return CalculateResponse(
            status="success",
            message="Stats recalculated",
            player_count=len(state.players),
            match_count=len(state.matches),
            partnership_count=len(state.partnerships),
        )
    except Exception as e:
        raise to_http_exception(e, "calculating stats")


@router.get("/api/export", response_model=ExportResponse)
async def export_league(session: AsyncSession = Depends(get_db_session)):
    """Download players, matches and partnerships as one JSON document."""
    try:
        data = await data_service.export_league(session)
        return ExportResponse(
            players=[PlayerResponse.model_validate(p) for p in data["players"]],
            matches=[MatchResponse.model_validate(m) for m in data["matches"]],
            partnerships=[PartnershipResponse.model_validate(p) for p in data["partnerships"]],
            exported_at=data["exported_at"],
        )
    except Exception as e:
        raise to_http_exception(e, "exporting league")


@router.get("/api/health", response_model=HealthResponse)
async def health():
    """Liveness check."""
    return HealthResponse(status="ok", message="Padel league API is running")
