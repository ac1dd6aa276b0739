"""
SQLAlchemy ORM models for the padel league.

Matches reference players by name, not by foreign key, so the name columns
on matches are plain text.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Float,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from padel_league.database.db import Base
from padel_league.utils.constants import INITIAL_ELO


class Player(Base):
    """League players with their derived statistics."""

    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False, unique=True)
    active = Column(Boolean, default=True, nullable=False)
    elo = Column(Integer, default=INITIAL_ELO, nullable=False)
    games_played = Column(Integer, nullable=True)
    wins = Column(Integer, nullable=True)
    losses = Column(Integer, nullable=True)
    points_for = Column(Integer, nullable=True)
    points_against = Column(Integer, nullable=True)
    point_diff = Column(Integer, nullable=True)
    win_percentage = Column(Float, nullable=True)
    power_ranking = Column(Integer, nullable=True)

    __table_args__ = (Index("idx_players_active", "active"),)


class Match(Base):
    """All match results, with the ELO deltas stored when each was priced."""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=False)
    date = Column(String, nullable=False)
    player_a1 = Column(String, nullable=False)
    player_a2 = Column(String, nullable=False)
    player_b1 = Column(String, nullable=False)
    player_b2 = Column(String, nullable=False)
    score_a = Column(Integer, nullable=False)
    score_b = Column(Integer, nullable=False)
    elo_change_a1 = Column(Integer, nullable=False)
    elo_change_a2 = Column(Integer, nullable=False)
    elo_change_b1 = Column(Integer, nullable=False)
    elo_change_b2 = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("score_a <> score_b", name="ck_matches_no_draws"),
        Index("idx_matches_date", "date"),
    )


class Partnership(Base):
    """How each unordered pair performs together. Rebuilt on every stats pass."""

    __tablename__ = "partnerships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    partnership_id = Column(String, nullable=False)
    player1 = Column(String, nullable=False)
    player2 = Column(String, nullable=False)
    games_played = Column(Integer, default=0, nullable=False)
    wins = Column(Integer, default=0, nullable=False)
    losses = Column(Integer, default=0, nullable=False)
    points_for = Column(Integer, default=0, nullable=False)
    points_against = Column(Integer, default=0, nullable=False)
    point_diff = Column(Integer, default=0, nullable=False)
    win_percentage = Column(Float, default=0.0, nullable=False)
    chemistry_rating = Column(Float, default=0.0, nullable=False)
    elo = Column(Integer, default=INITIAL_ELO, nullable=False)

    __table_args__ = (
        UniqueConstraint("partnership_id", name="uq_partnerships_partnership_id"),
        Index("idx_partnerships_player1", "player1"),
        Index("idx_partnerships_player2", "player2"),
    )


class LeagueCounter(Base):
    """Next id to hand out per entity, so ids are never reused."""

    __tablename__ = "league_counters"

    name = Column(String, primary_key=True)
    next_id = Column(Integer, nullable=False, default=1)
