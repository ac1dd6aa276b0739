"""
Domain values for the padel league: players, matches, partnerships and the
league state aggregate that carries them between the store and the stats
calculation.
"""

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from padel_league.utils.constants import INITIAL_ELO


@dataclass
class Player:
    """A league player. Derived fields stay None until the first stats pass."""

    id: int
    name: str
    active: bool = True
    rating: int = INITIAL_ELO
    games_played: Optional[int] = None
    wins: Optional[int] = None
    losses: Optional[int] = None
    points_for: Optional[int] = None
    points_against: Optional[int] = None
    point_diff: Optional[int] = None
    win_percentage: Optional[float] = None
    power_ranking: Optional[int] = None

    def reset_stats(self) -> None:
        """Clear every derived field back to its pre-calculation value."""
        self.rating = INITIAL_ELO
        self.games_played = None
        self.wins = None
        self.losses = None
        self.points_for = None
        self.points_against = None
        self.point_diff = None
        self.win_percentage = None
        self.power_ranking = None


@dataclass
class Match:
    """A recorded doubles match with the ELO deltas frozen when it was priced."""

    id: int
    date: str
    player_a1: str
    player_a2: str
    player_b1: str
    player_b2: str
    score_a: int
    score_b: int
    elo_change_a1: int = 0
    elo_change_a2: int = 0
    elo_change_b1: int = 0
    elo_change_b2: int = 0

    @property
    def team_a(self) -> Tuple[str, str]:
        return (self.player_a1, self.player_a2)

    @property
    def team_b(self) -> Tuple[str, str]:
        return (self.player_b1, self.player_b2)

    @property
    def player_names(self) -> List[str]:
        """All four player names, team A first."""
        return [self.player_a1, self.player_a2, self.player_b1, self.player_b2]

    @property
    def winner(self) -> str:
        """'A' or 'B'. Matches never end level."""
        return "A" if self.score_a > self.score_b else "B"

    def slot_deltas(self) -> List[Tuple[str, int]]:
        """(player name, stored delta) for each of the four slots."""
        return [
            (self.player_a1, self.elo_change_a1),
            (self.player_a2, self.elo_change_a2),
            (self.player_b1, self.elo_change_b1),
            (self.player_b2, self.elo_change_b2),
        ]

    def delta_for(self, name: str) -> int:
        """Stored delta for a player name, 0 if the name is not in this match."""
        for slot_name, delta in self.slot_deltas():
            if slot_name == name:
                return delta
        return 0

    def references(self, name: str) -> bool:
        return name in self.player_names


@dataclass
class Partnership:
    """Aggregate record for an unordered pair who played on the same team."""

    id: str
    player1: str
    player2: str
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0
    point_diff: int = 0
    win_percentage: float = 0.0
    chemistry_rating: float = 0.0
    rating: int = INITIAL_ELO


@dataclass
class LeagueState:
    """
    Everything the league knows at one point in time.

    Players and matches are kept in insertion order; match order is the
    order their deltas were committed in.
    """

    players: Dict[int, Player] = field(default_factory=dict)
    matches: Dict[int, Match] = field(default_factory=dict)
    partnerships: Dict[str, Partnership] = field(default_factory=dict)
    next_player_id: int = 1
    next_match_id: int = 1

    def copy(self) -> "LeagueState":
        """Return an independent deep copy."""
        return copy.deepcopy(self)

    def player_list(self) -> List[Player]:
        return list(self.players.values())

    def match_list(self) -> List[Match]:
        return list(self.matches.values())

    def partnership_list(self) -> List[Partnership]:
        return list(self.partnerships.values())
