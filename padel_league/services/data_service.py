"""
Data service layer for database operations.

Every write loads the full league state, applies one LeagueStore mutation
(which recomputes all derived fields) and saves the result in the same
transaction, so raw changes and derived stats commit or roll back together.
Writes are serialized with a process-wide lock.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Tuple, TypeVar

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from padel_league.database import models
from padel_league.models.league import LeagueState, Match, Partnership, Player
from padel_league.services.calculation_service import MatchPreview, RatingPoint
from padel_league.services.league_store import (
    DeletePlayerResult,
    LeagueStore,
    MatchNotFoundError,
    PlayerNotFoundError,
)
from padel_league.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLAYER_COUNTER = "players"
MATCH_COUNTER = "matches"

_write_lock = asyncio.Lock()


# ============================================================================
# Row <-> domain conversion
# ============================================================================

def _player_from_row(row: models.Player) -> Player:
    return Player(
        id=row.id,
        name=row.name,
        active=row.active,
        rating=row.elo,
        games_played=row.games_played,
        wins=row.wins,
        losses=row.losses,
        points_for=row.points_for,
        points_against=row.points_against,
        point_diff=row.point_diff,
        win_percentage=row.win_percentage,
        power_ranking=row.power_ranking,
    )


def _copy_player_to_row(player: Player, row: models.Player) -> None:
    row.name = player.name
    row.active = player.active
    row.elo = player.rating
    row.games_played = player.games_played
    row.wins = player.wins
    row.losses = player.losses
    row.points_for = player.points_for
    row.points_against = player.points_against
    row.point_diff = player.point_diff
    row.win_percentage = player.win_percentage
    row.power_ranking = player.power_ranking


def _match_from_row(row: models.Match) -> Match:
    return Match(
        id=row.id,
        date=row.date,
        player_a1=row.player_a1,
        player_a2=row.player_a2,
        player_b1=row.player_b1,
        player_b2=row.player_b2,
        score_a=row.score_a,
        score_b=row.score_b,
        elo_change_a1=row.elo_change_a1,
        elo_change_a2=row.elo_change_a2,
        elo_change_b1=row.elo_change_b1,
        elo_change_b2=row.elo_change_b2,
    )


def _copy_match_to_row(match: Match, row: models.Match) -> None:
    row.date = match.date
    row.player_a1 = match.player_a1
    row.player_a2 = match.player_a2
    row.player_b1 = match.player_b1
    row.player_b2 = match.player_b2
    row.score_a = match.score_a
    row.score_b = match.score_b
    row.elo_change_a1 = match.elo_change_a1
    row.elo_change_a2 = match.elo_change_a2
    row.elo_change_b1 = match.elo_change_b1
    row.elo_change_b2 = match.elo_change_b2


def _partnership_from_row(row: models.Partnership) -> Partnership:
    return Partnership(
        id=row.partnership_id,
        player1=row.player1,
        player2=row.player2,
        games_played=row.games_played,
        wins=row.wins,
        losses=row.losses,
        points_for=row.points_for,
        points_against=row.points_against,
        point_diff=row.point_diff,
        win_percentage=row.win_percentage,
        chemistry_rating=row.chemistry_rating,
        rating=row.elo,
    )


def _partnership_to_row(partnership: Partnership) -> models.Partnership:
    return models.Partnership(
        partnership_id=partnership.id,
        player1=partnership.player1,
        player2=partnership.player2,
        games_played=partnership.games_played,
        wins=partnership.wins,
        losses=partnership.losses,
        points_for=partnership.points_for,
        points_against=partnership.points_against,
        point_diff=partnership.point_diff,
        win_percentage=partnership.win_percentage,
        chemistry_rating=partnership.chemistry_rating,
        elo=partnership.rating,
    )


# ============================================================================
# Snapshot load / save
# ============================================================================

async def load_league_state(session: AsyncSession) -> LeagueState:
    """
    Load players, matches, partnerships and id counters into a LeagueState.

    Args:
        session: Database session

    Returns:
        LeagueState with players and matches in id order
    """
    player_rows = (
        await session.execute(select(models.Player).order_by(models.Player.id))
    ).scalars().all()
    match_rows = (
        await session.execute(select(models.Match).order_by(models.Match.id))
    ).scalars().all()
    partnership_rows = (
        await session.execute(select(models.Partnership).order_by(models.Partnership.id))
    ).scalars().all()
    counters = {
        row.name: row.next_id
        for row in (await session.execute(select(models.LeagueCounter))).scalars().all()
    }

    state = LeagueState()
    for row in player_rows:
        state.players[row.id] = _player_from_row(row)
    for row in match_rows:
        state.matches[row.id] = _match_from_row(row)
    for row in partnership_rows:
        state.partnerships[row.partnership_id] = _partnership_from_row(row)

    state.next_player_id = max(
        counters.get(PLAYER_COUNTER, 1), max(state.players, default=0) + 1
    )
    state.next_match_id = max(
        counters.get(MATCH_COUNTER, 1), max(state.matches, default=0) + 1
    )
    return state


async def _save_counter(session: AsyncSession, name: str, next_id: int) -> None:
    counter = await session.get(models.LeagueCounter, name)
    if counter is None:
        session.add(models.LeagueCounter(name=name, next_id=next_id))
    else:
        counter.next_id = next_id


async def save_league_state(session: AsyncSession, state: LeagueState) -> None:
    """
    Write a LeagueState back: upsert players and matches, delete removed
    rows and replace every partnership row. Flushes but does not commit.

    Args:
        session: Database session
        state: State to persist
    """
    player_rows = {
        row.id: row
        for row in (await session.execute(select(models.Player))).scalars().all()
    }
    removed_players = [pid for pid in player_rows if pid not in state.players]
    if removed_players:
        await session.execute(delete(models.Player).where(models.Player.id.in_(removed_players)))
    # Flush deletes before renames/inserts so the unique name index never sees both
    await session.flush()

    for player in state.player_list():
        row = player_rows.get(player.id)
        if row is None:
            row = models.Player(id=player.id)
            session.add(row)
        _copy_player_to_row(player, row)

    match_rows = {
        row.id: row
        for row in (await session.execute(select(models.Match))).scalars().all()
    }
    removed_matches = [mid for mid in match_rows if mid not in state.matches]
    if removed_matches:
        await session.execute(delete(models.Match).where(models.Match.id.in_(removed_matches)))

    for match in state.match_list():
        row = match_rows.get(match.id)
        if row is None:
            row = models.Match(id=match.id)
            session.add(row)
        _copy_match_to_row(match, row)

    await session.execute(delete(models.Partnership))
    session.add_all(_partnership_to_row(p) for p in state.partnership_list())

    await _save_counter(session, PLAYER_COUNTER, state.next_player_id)
    await _save_counter(session, MATCH_COUNTER, state.next_match_id)
    await session.flush()


def league_lock_statement():
    """SELECT ... FOR UPDATE on the player counter row, the league-wide write lock."""
    return (
        select(models.LeagueCounter)
        .where(models.LeagueCounter.name == PLAYER_COUNTER)
        .with_for_update()
    )


async def _lock_league(session: AsyncSession) -> None:
    """
    Take the database-level write lock for this transaction.

    Serializes writers across processes (e.g. several uvicorn workers);
    SQLite ignores FOR UPDATE and relies on its own single-writer lock.
    """
    counter = (await session.execute(league_lock_statement())).scalar_one_or_none()
    if counter is None:
        # First write to an empty database: create the row, then lock it
        session.add(models.LeagueCounter(name=PLAYER_COUNTER, next_id=1))
        await session.flush()
        await session.execute(league_lock_statement())


async def _mutate(session: AsyncSession, operation: Callable[[LeagueStore], T]) -> T:
    """
    Run one store mutation against the persisted league and commit it.

    The store raises before changing anything on invalid input, in which
    case nothing is written.
    """
    async with _write_lock:
        try:
            await _lock_league(session)
            store = LeagueStore(await load_league_state(session))
            result = operation(store)
            await save_league_state(session, store.snapshot())
            await session.commit()
            return result
        except Exception:
            await session.rollback()
            raise


# ============================================================================
# Players
# ============================================================================

async def list_players(session: AsyncSession, active_only: bool = False) -> List[Player]:
    """Get all players in id order."""
    query = select(models.Player).order_by(models.Player.id)
    if active_only:
        query = query.where(models.Player.active.is_(True))
    rows = (await session.execute(query)).scalars().all()
    return [_player_from_row(row) for row in rows]


async def get_player(session: AsyncSession, player_id: int) -> Player:
    """
    Get a player by id.

    Raises:
        PlayerNotFoundError: If no such player exists
    """
    row = await session.get(models.Player, player_id)
    if row is None:
        raise PlayerNotFoundError(player_id)
    return _player_from_row(row)


async def create_player(session: AsyncSession, name: str, active: bool = True) -> Player:
    """Create a player at the initial rating."""
    player = await _mutate(session, lambda store: store.create_player(name, active=active))
    logger.info(f"Created player {player.id} ({player.name})")
    return player


async def update_player(session: AsyncSession, player_id: int, **fields: Any) -> Player:
    """Update a player's name and/or active flag."""
    player = await _mutate(session, lambda store: store.update_player(player_id, **fields))
    logger.info(f"Updated player {player_id}: {sorted(fields)}")
    return player


async def get_player_rating_history(
    session: AsyncSession, player_id: int
) -> Tuple[Player, List[RatingPoint]]:
    """
    Get a player and their rating after each of their matches.

    Raises:
        PlayerNotFoundError: If no such player exists
    """
    store = LeagueStore(await load_league_state(session))
    return store.get_player(player_id), store.get_rating_history(player_id)


async def delete_player(session: AsyncSession, player_id: int) -> DeletePlayerResult:
    """Delete a player, or deactivate them if they appear in any match."""
    result = await _mutate(session, lambda store: store.delete_player(player_id))
    if result.deleted:
        logger.info(f"Deleted player {player_id}")
    else:
        logger.info(f"Player {player_id} is referenced by matches; marked inactive")
    return result


# ============================================================================
# Matches
# ============================================================================

async def list_matches(session: AsyncSession) -> List[Match]:
    """Get all matches in the order they were recorded."""
    rows = (
        await session.execute(select(models.Match).order_by(models.Match.id))
    ).scalars().all()
    return [_match_from_row(row) for row in rows]


async def get_match(session: AsyncSession, match_id: int) -> Match:
    """
    Get a match by id.

    Raises:
        MatchNotFoundError: If no such match exists
    """
    row = await session.get(models.Match, match_id)
    if row is None:
        raise MatchNotFoundError(match_id)
    return _match_from_row(row)


async def create_match(session: AsyncSession, **match_data: Any) -> Match:
    """
    Record a match, apply its ELO deltas and recompute all stats.

    Args:
        session: Database session
        **match_data: date, player_a1, player_a2, player_b1, player_b2,
            score_a, score_b

    Returns:
        The persisted match with its deltas
    """
    match = await _mutate(session, lambda store: store.create_match(**match_data))
    logger.info(
        f"Created match {match.id}: {match.player_a1}/{match.player_a2} "
        f"{match.score_a}-{match.score_b} {match.player_b1}/{match.player_b2} "
        f"(delta A {match.elo_change_a1:+d})"
    )
    return match


async def preview_match(session: AsyncSession, **match_data: Any) -> MatchPreview:
    """
    Price a result against current ratings without recording anything.

    Args:
        session: Database session
        **match_data: player_a1, player_a2, player_b1, player_b2, score_a, score_b
    """
    store = LeagueStore(await load_league_state(session))
    return store.preview_match(**match_data)


async def update_match(session: AsyncSession, match_id: int, **fields: Any) -> Match:
    """Edit a match, re-pricing it if teams or scores change."""
    match = await _mutate(session, lambda store: store.update_match(match_id, **fields))
    logger.info(f"Updated match {match_id}: {sorted(fields)}")
    return match


async def delete_match(session: AsyncSession, match_id: int) -> None:
    """Reverse a match's deltas and delete it."""
    await _mutate(session, lambda store: store.delete_match(match_id))
    logger.info(f"Deleted match {match_id}")


# ============================================================================
# Stats
# ============================================================================

async def list_partnerships(session: AsyncSession) -> List[Partnership]:
    """Get the partnership snapshot from the last stats pass."""
    rows = (
        await session.execute(select(models.Partnership).order_by(models.Partnership.id))
    ).scalars().all()
    return [_partnership_from_row(row) for row in rows]


async def recompute_stats(session: AsyncSession) -> LeagueState:
    """Run a full stats pass and persist it."""
    state = await _mutate(session, lambda store: store.recompute_stats())
    logger.info(
        f"Recomputed stats: {len(state.players)} players, {len(state.matches)} matches, "
        f"{len(state.partnerships)} partnerships"
    )
    return state


async def export_league(session: AsyncSession) -> Dict[str, Any]:
    """Everything in the league plus an export timestamp."""
    state = await load_league_state(session)
    return {
        "players": state.player_list(),
        "matches": state.match_list(),
        "partnerships": state.partnership_list(),
        "exported_at": utcnow(),
    }
