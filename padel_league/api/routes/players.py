"""Player list, create, update and delete route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from padel_league.api.routes import limiter, to_http_exception, WRITE_RATE_LIMIT
from padel_league.database.db import get_db_session
from padel_league.models.schemas import (
    CreatePlayerRequest,
    DeletePlayerResponse,
    PlayerResponse,
    RatingHistoryResponse,
    RatingPointResponse,
    UpdatePlayerRequest,
)
from padel_league.services import data_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/players", response_model=List[PlayerResponse])
async def list_players(
    active_only: bool = False,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Get all players with their derived stats.

    Query params: active_only (bool, default false)
    """
    try:
        players = await data_service.list_players(session, active_only=active_only)
        return [PlayerResponse.model_validate(p) for p in players]
    except Exception as e:
        raise to_http_exception(e, "loading players")


@router.post("/api/players", response_model=PlayerResponse, status_code=201)
@limiter.limit(WRITE_RATE_LIMIT)
async def create_player(
    request: Request,
    player_request: CreatePlayerRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a player.

    Request body:
        {
            "name": "Obi",
            "active": true   // Optional, defaults to true
        }

    Returns:
        PlayerResponse (201); 400 if the name is taken or invalid
    """
    try:
        player = await data_service.create_player(
            session, player_request.name, active=player_request.active
        )
        return PlayerResponse.model_validate(player)
    except Exception as e:
        raise to_http_exception(e, "creating player")


@router.get("/api/players/{player_id}", response_model=PlayerResponse)
async def get_player(player_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get a single player."""
    try:
        return PlayerResponse.model_validate(await data_service.get_player(session, player_id))
    except Exception as e:
        raise to_http_exception(e, "loading player")


@router.patch("/api/players/{player_id}", response_model=PlayerResponse)
async def update_player(
    player_id: int,
    player_request: UpdatePlayerRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Update a player's name and/or active flag.

    Renaming a player does not rewrite existing matches, which keep the
    old name.
    """
    try:
        fields = player_request.model_dump(exclude_none=True)
        player = await data_service.update_player(session, player_id, **fields)
        return PlayerResponse.model_validate(player)
    except Exception as e:
        raise to_http_exception(e, "updating player")


@router.get("/api/players/{player_id}/history", response_model=RatingHistoryResponse)
async def get_player_history(player_id: int, session: AsyncSession = Depends(get_db_session)):
    """
    Rating after each of the player's matches, oldest first.

    Built from the ELO changes stored on the matches, so the last entry
    matches the player's current rating.
    """
    try:
        player, history = await data_service.get_player_rating_history(session, player_id)
        return RatingHistoryResponse(
            player_id=player.id,
            name=player.name,
            rating=player.rating,
            history=[RatingPointResponse(**point._asdict()) for point in history],
        )
    except Exception as e:
        raise to_http_exception(e, "loading rating history")


@router.delete("/api/players/{player_id}", response_model=DeletePlayerResponse)
async def delete_player(player_id: int, session: AsyncSession = Depends(get_db_session)):
    """
    Delete a player.

    Players who appear in any match are marked inactive instead of removed.
    """
    try:
        result = await data_service.delete_player(session, player_id)
        if result.deleted:
            message = f"Player {result.player.name} deleted"
        else:
            message = (
                f"Player {result.player.name} appears in existing matches "
                "and was marked inactive instead"
            )
        return DeletePlayerResponse(
            status="deleted" if result.deleted else "deactivated",
            message=message,
            player=PlayerResponse.model_validate(result.player),
        )
    except Exception as e:
        raise to_http_exception(e, "deleting player")
