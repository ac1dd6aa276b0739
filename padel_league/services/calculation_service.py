"""
ELO calculation service.
Prices matches and recomputes every derived statistic from match history.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence

from padel_league.models.league import LeagueState, Match, Partnership, Player
from padel_league.utils.constants import (
    CHEMISTRY_BASE,
    CHEMISTRY_EXPECTED_WIN_PCT,
    CHEMISTRY_FULL_SAMPLE_GAMES,
    CHEMISTRY_POINT_DIFF_WEIGHT,
    CHEMISTRY_SMALL_SAMPLE_BASE,
    CHEMISTRY_SMALL_SAMPLE_PER_GAME,
    CHEMISTRY_WIN_PCT_WEIGHT,
    INITIAL_ELO,
    K,
    MARGIN_DIVISOR,
    MAX_MARGIN_MULTIPLIER,
    PARTNERSHIP_KEY_SEPARATOR,
    POWER_RANKING_ELO_WEIGHT,
    POWER_RANKING_POINT_DIFF_WEIGHT,
    POWER_RANKING_WIN_PCT_WEIGHT,
)


# ============================================================================
# Rounding Helpers
# ============================================================================

def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity."""
    return int(math.floor(value + 0.5))


def round_places(value: float, places: int) -> float:
    """Round to a fixed number of decimals, halves away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


# ============================================================================
# Helper Functions (ELO Calculations)
# ============================================================================

class EloChange(NamedTuple):
    """Per-player delta for each team of one match."""

    team_a: int
    team_b: int


class MatchPreview(NamedTuple):
    """What a match would do to ratings, without recording it."""

    team_a_rating: int
    team_b_rating: int
    expected_a: float
    elo_change_a: int
    elo_change_b: int


class RatingPoint(NamedTuple):
    """A player's rating right after one match."""

    match_id: int
    date: str
    elo_change: int
    elo_after: int


def expected_score(elo_a: float, elo_b: float) -> float:
    """
    Calculate expected score for side A against side B using the ELO formula.

    Formula: P(A beats B) = 1 / (1 + 10^((elo_B - elo_A) / 400))
    If elo_A > elo_B, result > 0.5 (A is favored)
    """
    return 1 / (1 + 10 ** ((elo_b - elo_a) / 400))


def team_rating(rating1: float, rating2: float) -> float:
    """A doubles team is rated as the mean of its two players."""
    return (rating1 + rating2) / 2


def margin_multiplier(score_diff: int) -> float:
    """Margin-of-victory multiplier, capped so blowouts count at most 1.5x."""
    return min(MAX_MARGIN_MULTIPLIER, 1 + abs(score_diff) / MARGIN_DIVISOR)


def rating_delta(k: float, actual: float, expected: float, multiplier: float) -> int:
    """Rounded rating change for one side."""
    return round_half_up(k * multiplier * (actual - expected))


def find_player_by_name(players: Iterable[Player], name: str) -> Optional[Player]:
    """
    Resolve a match slot to a player.

    Matches reference players by name, so this is the single place where
    that join happens.
    """
    for player in players:
        if player.name == name:
            return player
    return None


def partnership_key(name1: str, name2: str) -> str:
    """Canonical key for an unordered pair of players."""
    return PARTNERSHIP_KEY_SEPARATOR.join(sorted([name1, name2]))


def calculate_elo_changes(
    team_a: Sequence[str],
    team_b: Sequence[str],
    score_a: int,
    score_b: int,
    players: Iterable[Player],
    ratings: Optional[Mapping[str, float]] = None,
    k: float = K,
) -> Optional[EloChange]:
    """
    Price a match from the current ratings of its four players.

    Args:
        team_a: Names of the two team A players
        team_b: Names of the two team B players
        score_a: Team A score
        score_b: Team B score
        players: Players to resolve the names against
        ratings: Optional per-name rating overrides (used to price a match
            against ratings that have not been written back yet)
        k: K-factor

    Returns:
        EloChange, or None if any of the four names cannot be resolved.
        Team B always receives the exact negation of team A's delta.
    """
    players = list(players)
    overrides = ratings or {}

    current: Dict[str, float] = {}
    for name in list(team_a) + list(team_b):
        player = find_player_by_name(players, name)
        if player is None:
            return None
        current[name] = overrides.get(name, player.rating)

    team_a_elo = team_rating(current[team_a[0]], current[team_a[1]])
    team_b_elo = team_rating(current[team_b[0]], current[team_b[1]])

    expected_a = expected_score(team_a_elo, team_b_elo)
    actual_a = 1.0 if score_a > score_b else 0.0

    delta_a = rating_delta(k, actual_a, expected_a, margin_multiplier(score_a - score_b))
    return EloChange(team_a=delta_a, team_b=-delta_a)


def preview_match(
    team_a: Sequence[str],
    team_b: Sequence[str],
    score_a: int,
    score_b: int,
    players: Iterable[Player],
) -> Optional[MatchPreview]:
    """
    Price a hypothetical result against current ratings.

    Returns:
        MatchPreview with rounded team ratings, team A's win probability and
        the per-player deltas, or None if any name cannot be resolved
    """
    players = list(players)
    resolved = [find_player_by_name(players, name) for name in list(team_a) + list(team_b)]
    if any(player is None for player in resolved):
        return None

    team_a_elo = team_rating(resolved[0].rating, resolved[1].rating)
    team_b_elo = team_rating(resolved[2].rating, resolved[3].rating)
    change = calculate_elo_changes(team_a, team_b, score_a, score_b, players)
    return MatchPreview(
        team_a_rating=round_half_up(team_a_elo),
        team_b_rating=round_half_up(team_b_elo),
        expected_a=expected_score(team_a_elo, team_b_elo),
        elo_change_a=change.team_a,
        elo_change_b=change.team_b,
    )


def win_percentage(wins: int, games: int) -> float:
    """Win percentage on a 0-100 scale, two decimals; 0 with no games."""
    if not games:
        return 0.0
    return round_places(wins / games * 100, 2)


def power_ranking(rating: float, point_diff: int, win_pct: float) -> int:
    """Composite score blending rating deviation, point differential and win rate."""
    elo_factor = (rating - INITIAL_ELO) * POWER_RANKING_ELO_WEIGHT
    point_diff_factor = point_diff * POWER_RANKING_POINT_DIFF_WEIGHT
    win_percentage_factor = win_pct * POWER_RANKING_WIN_PCT_WEIGHT
    return round_half_up(elo_factor + point_diff_factor + win_percentage_factor)


def sample_size_factor(games: int) -> float:
    """Dampening applied to chemistry for partnerships with few games."""
    if games >= CHEMISTRY_FULL_SAMPLE_GAMES:
        return 1.0
    return CHEMISTRY_SMALL_SAMPLE_BASE + games * CHEMISTRY_SMALL_SAMPLE_PER_GAME


def chemistry_rating(win_pct: float, point_diff: int, games: int) -> float:
    """How much better a pair performs than a 50% baseline, one decimal."""
    chemistry_factor = (
        CHEMISTRY_BASE
        + (win_pct - CHEMISTRY_EXPECTED_WIN_PCT) * CHEMISTRY_WIN_PCT_WEIGHT
        + point_diff * CHEMISTRY_POINT_DIFF_WEIGHT
    )
    return round_places(chemistry_factor * sample_size_factor(games), 1)


# ============================================================================
# PlayerStats Class
# ============================================================================

class PlayerStats:
    """Accumulates the counters for a single player across a stats pass."""

    def __init__(self, name: str):
        self.name = name
        self.elo_delta = 0
        self.game_count = 0
        self.win_count = 0
        self.loss_count = 0
        self.points_for = 0
        self.points_against = 0
        self.elo_history: List[RatingPoint] = []

    @property
    def elo(self) -> int:
        return INITIAL_ELO + self.elo_delta

    @property
    def point_diff(self) -> int:
        return self.points_for - self.points_against

    @property
    def win_percentage(self) -> float:
        return win_percentage(self.win_count, self.game_count)

    def record_game(self, points_for: int, points_against: int) -> None:
        """Record one game and its score from this player's side."""
        self.game_count += 1
        self.points_for += points_for
        self.points_against += points_against
        if points_for > points_against:
            self.win_count += 1
        else:
            self.loss_count += 1

    def apply_delta(self, delta: int, match: Match) -> None:
        self.elo_delta += delta
        self.elo_history.append(RatingPoint(match.id, match.date, delta, self.elo))


class PartnershipTracker(PlayerStats):
    """Same counters as a player, keyed by an unordered pair of names."""

    def __init__(self, name1: str, name2: str):
        super().__init__(partnership_key(name1, name2))
        self.player1, self.player2 = sorted([name1, name2])


# ============================================================================
# StatsTracker Class
# ============================================================================

class StatsTracker:
    """Tracks statistics for every player and partnership across all matches."""

    def __init__(self, players: Iterable[Player]):
        self.known_players = list(players)
        self.players: Dict[str, PlayerStats] = {}
        self.partnerships: Dict[str, PartnershipTracker] = {}
        for player in self.known_players:
            self.players.setdefault(player.name, PlayerStats(player.name))

    def get_player(self, name: str) -> Optional[PlayerStats]:
        """Stats for a known player name; None for names with no player."""
        return self.players.get(name)

    def get_partnership(self, name1: str, name2: str) -> PartnershipTracker:
        """Get or create the tracker for a pair."""
        key = partnership_key(name1, name2)
        if key not in self.partnerships:
            self.partnerships[key] = PartnershipTracker(name1, name2)
        return self.partnerships[key]

    def process_match(self, match: Match) -> None:
        """
        Fold one match into the running totals.

        Unknown player names are skipped; the match still counts for the
        partnership keyed by those names.
        """
        self._record_games(match)
        self._record_partnerships(match)
        self._apply_elo_deltas(match)

    def _record_games(self, match: Match) -> None:
        """Record games, wins/losses and points for all four players."""
        for team, points_for, points_against in (
            (match.team_a, match.score_a, match.score_b),
            (match.team_b, match.score_b, match.score_a),
        ):
            for name in team:
                player = self.get_player(name)
                if player is not None:
                    player.record_game(points_for, points_against)

    def _record_partnerships(self, match: Match) -> None:
        """Record the match for both pairs."""
        self.get_partnership(*match.team_a).record_game(match.score_a, match.score_b)
        self.get_partnership(*match.team_b).record_game(match.score_b, match.score_a)

    def _apply_elo_deltas(self, match: Match) -> None:
        """Apply the deltas stored on the match; never re-prices it."""
        for name, delta in match.slot_deltas():
            player = self.get_player(name)
            if player is not None:
                player.apply_delta(delta, match)


# ============================================================================
# Main Processing Function
# ============================================================================

def _build_partnership(
    tracker: PartnershipTracker, players: List[Player]
) -> Partnership:
    partnership = Partnership(
        id=tracker.name,
        player1=tracker.player1,
        player2=tracker.player2,
        games_played=tracker.game_count,
        wins=tracker.win_count,
        losses=tracker.loss_count,
        points_for=tracker.points_for,
        points_against=tracker.points_against,
        point_diff=tracker.point_diff,
        win_percentage=tracker.win_percentage,
    )

    player1 = find_player_by_name(players, tracker.player1)
    player2 = find_player_by_name(players, tracker.player2)
    if player1 is not None and player2 is not None:
        partnership.rating = round_half_up(team_rating(player1.rating, player2.rating))
        partnership.chemistry_rating = chemistry_rating(
            partnership.win_percentage, partnership.point_diff, partnership.games_played
        )
    return partnership


def calculate_stats(state: LeagueState) -> LeagueState:
    """
    Recompute every derived field from scratch.

    Ratings are rebuilt as INITIAL_ELO plus the sum of the deltas stored on
    each match; the rating formula is not replayed. The input state is not
    modified.

    Args:
        state: League state with authoritative players and matches

    Returns:
        A new LeagueState with derived player fields and a rebuilt
        partnership set
    """
    result = state.copy()
    players = result.player_list()

    tracker = StatsTracker(players)
    for match in result.match_list():
        tracker.process_match(match)

    for player in players:
        player.reset_stats()
        stats = tracker.get_player(player.name)
        player.rating = stats.elo
        player.games_played = stats.game_count
        player.wins = stats.win_count
        player.losses = stats.loss_count
        player.points_for = stats.points_for
        player.points_against = stats.points_against
        player.point_diff = stats.point_diff
        player.win_percentage = stats.win_percentage
        player.power_ranking = power_ranking(
            player.rating, player.point_diff, player.win_percentage
        )

    result.partnerships = {
        key: _build_partnership(partnership_tracker, players)
        for key, partnership_tracker in tracker.partnerships.items()
    }
    return result


def player_rating_from_history(name: str, matches: Iterable[Match]) -> int:
    """INITIAL_ELO plus every stored delta for this name."""
    return INITIAL_ELO + sum(match.delta_for(name) for match in matches)


def rating_history(state: LeagueState, name: str) -> List[RatingPoint]:
    """
    A player's rating after each of their matches, in match order.

    Built from the stored deltas, so the last point always equals the
    player's current rating.
    """
    tracker = StatsTracker(state.player_list())
    for match in state.match_list():
        tracker.process_match(match)
    stats = tracker.get_player(name)
    return list(stats.elo_history) if stats is not None else []
