#!/usr/bin/env python3
"""
Seed a sample league.
Run on startup when SEED_SAMPLE_DATA=true, or directly as a script.
Does nothing if the database already has players.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from padel_league.database.db import AsyncSessionLocal, init_database
from padel_league.services import data_service

logger = logging.getLogger(__name__)

SAMPLE_PLAYERS = [
    "Obi",
    "Jack",
    "Marvin",
    "James",
    "Dallas",
    "Dylan",
    "Nick",
    "Remi",
    "Alex",
]

SAMPLE_MATCHES = [
    {
        "date": "2025-03-24",
        "player_a1": "Marvin",
        "player_a2": "Obi",
        "player_b1": "James",
        "player_b2": "Jack",
        "score_a": 2,
        "score_b": 6,
    },
    {
        "date": "2025-03-24",
        "player_a1": "Jack",
        "player_a2": "Obi",
        "player_b1": "Marvin",
        "player_b2": "James",
        "score_a": 6,
        "score_b": 4,
    },
    {
        "date": "2025-03-24",
        "player_a1": "Jack",
        "player_a2": "Marvin",
        "player_b1": "James",
        "player_b2": "Obi",
        "score_a": 6,
        "score_b": 1,
    },
]


async def seed_league(session: AsyncSession) -> bool:
    """
    Insert the sample players and matches through the normal write path, so
    each match is priced against the ratings before it.

    Returns:
        True if data was seeded, False if the league already had players
    """
    if await data_service.list_players(session):
        logger.info("League already has players; skipping sample data")
        return False

    for name in SAMPLE_PLAYERS:
        await data_service.create_player(session, name)
    for match_data in SAMPLE_MATCHES:
        await data_service.create_match(session, **match_data)

    logger.info(
        f"Seeded sample league: {len(SAMPLE_PLAYERS)} players, {len(SAMPLE_MATCHES)} matches"
    )
    return True


async def seed_sample_league() -> bool:
    """Seed the sample league using a fresh session."""
    async with AsyncSessionLocal() as session:
        return await seed_league(session)


async def _main():
    await init_database()
    await seed_sample_league()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(_main())
