"""
Pydantic models for API request/response validation.

Field names on the wire are camelCase (scoreA, eloChangeA1, gamesPlayed, ...);
requests also accept the snake_case names.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_serializer, field_validator, model_validator

from padel_league.utils.constants import PARTNERSHIP_KEY_SEPARATOR

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def _check_name(value: Optional[str]) -> Optional[str]:
    if value is not None and PARTNERSHIP_KEY_SEPARATOR in value:
        raise ValueError(f"Player name cannot contain '{PARTNERSHIP_KEY_SEPARATOR}'")
    return value


def _format_percentage(value: Optional[float]) -> Optional[str]:
    """Win percentages travel as two-decimal strings, e.g. "66.67"."""
    if value is None:
        return None
    return f"{value:.2f}"


# ============================================================================
# Players
# ============================================================================

class CreatePlayerRequest(BaseModel):
    """Request to create a player."""

    name: str = Field(min_length=2, max_length=30)
    active: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("name")
    @classmethod
    def reject_separator(cls, value):
        return _check_name(value)


class UpdatePlayerRequest(BaseModel):
    """Partial player update. Ratings and stats are derived and not editable."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=30)
    active: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("name")
    @classmethod
    def reject_separator(cls, value):
        return _check_name(value)


class PlayerResponse(BaseModel):
    """Player with derived statistics."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    name: str
    active: bool
    rating: int
    games_played: Optional[int] = Field(default=None, alias="gamesPlayed")
    wins: Optional[int] = None
    losses: Optional[int] = None
    points_for: Optional[int] = Field(default=None, alias="pointsFor")
    points_against: Optional[int] = Field(default=None, alias="pointsAgainst")
    point_diff: Optional[int] = Field(default=None, alias="pointDiff")
    win_percentage: Optional[float] = Field(default=None, alias="winPercentage")
    power_ranking: Optional[int] = Field(default=None, alias="powerRanking")

    @field_serializer("win_percentage")
    def serialize_win_percentage(self, value: Optional[float]) -> Optional[str]:
        return _format_percentage(value)


class RatingPointResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    match_id: int = Field(alias="matchId")
    date: str
    elo_change: int = Field(alias="eloChange")
    elo_after: int = Field(alias="eloAfter")


class RatingHistoryResponse(BaseModel):
    """A player's rating after each of their matches, oldest first."""

    model_config = ConfigDict(populate_by_name=True)

    player_id: int = Field(alias="playerId")
    name: str
    rating: int
    history: List[RatingPointResponse]


class DeletePlayerResponse(BaseModel):
    """Outcome of a player delete request."""

    status: str  # "deleted" or "deactivated"
    message: str
    player: PlayerResponse


# ============================================================================
# Matches
# ============================================================================

class MatchResultRequest(BaseModel):
    """Two teams and a final score."""

    model_config = ConfigDict(populate_by_name=True)

    player_a1: str = Field(min_length=1, alias="playerA1")
    player_a2: str = Field(min_length=1, alias="playerA2")
    player_b1: str = Field(min_length=1, alias="playerB1")
    player_b2: str = Field(min_length=1, alias="playerB2")
    score_a: int = Field(ge=0, le=99, alias="scoreA")
    score_b: int = Field(ge=0, le=99, alias="scoreB")

    @model_validator(mode="after")
    def validate_match(self):
        players = [self.player_a1, self.player_a2, self.player_b1, self.player_b2]
        if len(set(players)) != len(players):
            raise ValueError("All four players must be distinct")
        if self.score_a == self.score_b:
            raise ValueError("Scores cannot be equal (draws are not allowed)")
        return self


class CreateMatchRequest(MatchResultRequest):
    """Request to record a match."""

    date: str = Field(pattern=DATE_PATTERN)


class MatchPreviewRequest(MatchResultRequest):
    """Request to price a result without recording it."""


class UpdateMatchRequest(BaseModel):
    """Partial match update."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    player_a1: Optional[str] = Field(default=None, min_length=1, alias="playerA1")
    player_a2: Optional[str] = Field(default=None, min_length=1, alias="playerA2")
    player_b1: Optional[str] = Field(default=None, min_length=1, alias="playerB1")
    player_b2: Optional[str] = Field(default=None, min_length=1, alias="playerB2")
    score_a: Optional[int] = Field(default=None, ge=0, le=99, alias="scoreA")
    score_b: Optional[int] = Field(default=None, ge=0, le=99, alias="scoreB")


class MatchResponse(BaseModel):
    """Match result with the ELO change recorded for each slot."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    date: str
    player_a1: str = Field(alias="playerA1")
    player_a2: str = Field(alias="playerA2")
    player_b1: str = Field(alias="playerB1")
    player_b2: str = Field(alias="playerB2")
    score_a: int = Field(alias="scoreA")
    score_b: int = Field(alias="scoreB")
    elo_change_a1: int = Field(alias="eloChangeA1")
    elo_change_a2: int = Field(alias="eloChangeA2")
    elo_change_b1: int = Field(alias="eloChangeB1")
    elo_change_b2: int = Field(alias="eloChangeB2")


class MatchPreviewResponse(BaseModel):
    """Team ratings, win probability and the deltas a result would apply."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    team_a_rating: int = Field(alias="teamARating")
    team_b_rating: int = Field(alias="teamBRating")
    expected_a: float = Field(alias="expectedA")
    elo_change_a: int = Field(alias="eloChangeA")
    elo_change_b: int = Field(alias="eloChangeB")


# ============================================================================
# Partnerships and stats
# ============================================================================

class PartnershipResponse(BaseModel):
    """Aggregate stats for an unordered pair of players."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    player1: str
    player2: str
    games_played: int = Field(alias="gamesPlayed")
    wins: int
    losses: int
    points_for: int = Field(alias="pointsFor")
    points_against: int = Field(alias="pointsAgainst")
    point_diff: int = Field(alias="pointDiff")
    win_percentage: float = Field(alias="winPercentage")
    chemistry_rating: float = Field(alias="chemistryRating")
    rating: int

    @field_serializer("win_percentage")
    def serialize_win_percentage(self, value: float) -> str:
        return _format_percentage(value)


class CalculateResponse(BaseModel):
    """Response from calculate endpoint."""

    status: str
    message: str
    player_count: int
    match_count: int
    partnership_count: int


class ExportResponse(BaseModel):
    """Full league export."""

    model_config = ConfigDict(populate_by_name=True)

    players: List[PlayerResponse]
    matches: List[MatchResponse]
    partnerships: List[PartnershipResponse]
    exported_at: datetime = Field(alias="exportedAt")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str
