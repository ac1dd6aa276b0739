"""Match CRUD route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from padel_league.api.routes import limiter, to_http_exception, WRITE_RATE_LIMIT
from padel_league.database.db import get_db_session
from padel_league.models.schemas import (
    CreateMatchRequest,
    MatchPreviewRequest,
    MatchPreviewResponse,
    MatchResponse,
    UpdateMatchRequest,
)
from padel_league.services import data_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/matches", response_model=List[MatchResponse])
async def list_matches(session: AsyncSession = Depends(get_db_session)):
    """Get all matches in the order they were recorded."""
    try:
        matches = await data_service.list_matches(session)
        return [MatchResponse.model_validate(m) for m in matches]
    except Exception as e:
        raise to_http_exception(e, "loading matches")


@router.post("/api/matches", response_model=MatchResponse, status_code=201)
@limiter.limit(WRITE_RATE_LIMIT)
async def create_match(
    request: Request,
    match_request: CreateMatchRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Record a match and update ratings.

    Request body:
        {
            "date": "2025-03-24",
            "playerA1": "Marvin",
            "playerA2": "Obi",
            "playerB1": "James",
            "playerB2": "Jack",
            "scoreA": 2,
            "scoreB": 6
        }

    Returns:
        MatchResponse with the ELO change applied to each player (201)
    """
    try:
        match = await data_service.create_match(session, **match_request.model_dump())
        return MatchResponse.model_validate(match)
    except Exception as e:
        raise to_http_exception(e, "creating match")


@router.post("/api/matches/preview", response_model=MatchPreviewResponse)
@limiter.limit(WRITE_RATE_LIMIT)
async def preview_match(
    request: Request,
    preview_request: MatchPreviewRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Price a result against current ratings without recording it.

    Request body: same as POST /api/matches, without the date.

    Returns:
        MatchPreviewResponse with both team ratings, team A's win
        probability and the ELO change each side would receive
    """
    try:
        preview = await data_service.preview_match(session, **preview_request.model_dump())
        return MatchPreviewResponse(**preview._asdict())
    except Exception as e:
        raise to_http_exception(e, "previewing match")


@router.get("/api/matches/{match_id}", response_model=MatchResponse)
async def get_match(match_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get a single match."""
    try:
        return MatchResponse.model_validate(await data_service.get_match(session, match_id))
    except Exception as e:
        raise to_http_exception(e, "loading match")


@router.patch("/api/matches/{match_id}", response_model=MatchResponse)
async def update_match(
    match_id: int,
    match_request: UpdateMatchRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Update a match.

    Changing teams or scores re-prices the match: its old ELO changes are
    reversed and new ones computed from the players' current ratings.
    """
    try:
        fields = match_request.model_dump(exclude_none=True)
        match = await data_service.update_match(session, match_id, **fields)
        return MatchResponse.model_validate(match)
    except Exception as e:
        raise to_http_exception(e, "updating match")


@router.delete("/api/matches/{match_id}", status_code=204)
async def delete_match(match_id: int, session: AsyncSession = Depends(get_db_session)):
    """Delete a match and reverse its ELO changes."""
    try:
        await data_service.delete_match(session, match_id)
        return Response(status_code=204)
    except Exception as e:
        raise to_http_exception(e, "deleting match")
