"""
League store.

Owns one LeagueState and exposes the mutations that change it. Every
mutation validates first, then applies the raw change, then runs a full
stats pass, so a failed call leaves the state untouched.

Ratings are maintained with the reversal protocol: creating a match applies
its deltas, editing or deleting a match first subtracts the deltas it stored.
The stats pass then rebuilds each rating as INITIAL_ELO plus the stored
deltas, which always agrees with the incremental result.
"""

import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from datetime import date

from padel_league.models.league import LeagueState, Match, Partnership, Player
from padel_league.services import calculation_service
from padel_league.utils.constants import PARTNERSHIP_KEY_SEPARATOR
from padel_league.utils.datetime_utils import format_match_date


# --- Custom exceptions ---


class LeagueError(ValueError):
    """Base class for every error raised by the league store."""


class ValidationError(LeagueError):
    """Raised when input is malformed; nothing has been changed."""


class DuplicatePlayerNameError(ValidationError):
    """Raised when a player name is already taken."""

    def __init__(self, name: str):
        super().__init__(f"Player name '{name}' already exists")
        self.name = name


class NotFoundError(LeagueError):
    """Raised when an id does not match any record."""


class PlayerNotFoundError(NotFoundError):
    def __init__(self, player_id: int):
        super().__init__(f"Player {player_id} not found")
        self.player_id = player_id


class MatchNotFoundError(NotFoundError):
    def __init__(self, match_id: int):
        super().__init__(f"Match {match_id} not found")
        self.match_id = match_id


class ReferentialIntegrityError(LeagueError):
    """A player cannot be hard-deleted while matches reference their name."""


PLAYER_UPDATABLE_FIELDS = ("name", "active")
MATCH_PLAYER_FIELDS = ("player_a1", "player_a2", "player_b1", "player_b2")
MATCH_SCORE_FIELDS = ("score_a", "score_b")
MATCH_UPDATABLE_FIELDS = ("date",) + MATCH_PLAYER_FIELDS + MATCH_SCORE_FIELDS


@dataclass
class DeletePlayerResult:
    """Outcome of delete_player: hard delete, or soft delete if referenced."""

    player: Player
    deleted: bool

    @property
    def deactivated(self) -> bool:
        return not self.deleted


class LeagueStore:
    """
    In-memory league with a single serialization point.

    All public methods take the store lock, so concurrent callers see each
    mutation (raw change, rating reversal and stats pass) as one step.
    """

    def __init__(self, state: Optional[LeagueState] = None):
        self._state = state.copy() if state is not None else LeagueState()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> LeagueState:
        """Independent copy of the current state."""
        with self._lock:
            return self._state.copy()

    def list_players(self, active_only: bool = False) -> List[Player]:
        with self._lock:
            players = self._state.copy().player_list()
        if active_only:
            players = [p for p in players if p.active]
        return players

    def get_player(self, player_id: int) -> Player:
        with self._lock:
            player = self._state.players.get(player_id)
            if player is None:
                raise PlayerNotFoundError(player_id)
            return Player(**vars(player))

    def get_player_by_name(self, name: str) -> Optional[Player]:
        with self._lock:
            player = calculation_service.find_player_by_name(
                self._state.player_list(), name
            )
            return Player(**vars(player)) if player else None

    def list_matches(self) -> List[Match]:
        with self._lock:
            return self._state.copy().match_list()

    def get_match(self, match_id: int) -> Match:
        with self._lock:
            match = self._state.matches.get(match_id)
            if match is None:
                raise MatchNotFoundError(match_id)
            return Match(**vars(match))

    def list_partnerships(self) -> List[Partnership]:
        with self._lock:
            return self._state.copy().partnership_list()

    def get_partnership(self, key: str) -> Optional[Partnership]:
        with self._lock:
            partnership = self._state.partnerships.get(key)
            return Partnership(**vars(partnership)) if partnership else None

    def get_rating_history(self, player_id: int) -> List[calculation_service.RatingPoint]:
        """Rating after each match the player's current name appears in."""
        with self._lock:
            player = self._state.players.get(player_id)
            if player is None:
                raise PlayerNotFoundError(player_id)
            return calculation_service.rating_history(self._state, player.name)

    def preview_match(
        self,
        player_a1: str,
        player_a2: str,
        player_b1: str,
        player_b2: str,
        score_a: int,
        score_b: int,
    ) -> calculation_service.MatchPreview:
        """
        Price a result against current ratings without recording it.

        Raises:
            ValidationError: Same checks as create_match, except the date
        """
        with self._lock:
            match = Match(
                id=0,
                date="",
                player_a1=player_a1,
                player_a2=player_a2,
                player_b1=player_b1,
                player_b2=player_b2,
                score_a=score_a,
                score_b=score_b,
            )
            self._validate_match(match)
            for name in match.player_names:
                self._rating_of(self._state, name)
            return calculation_service.preview_match(
                match.team_a, match.team_b, score_a, score_b, self._state.player_list()
            )

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def create_player(self, name: str, active: bool = True) -> Player:
        """
        Add a player at the initial rating.

        Raises:
            ValidationError: If the name is blank
            DuplicatePlayerNameError: If the name is already taken
        """
        with self._lock:
            name = self._clean_name(name)
            state = self._state.copy()
            self._ensure_name_available(state, name)

            player = Player(id=state.next_player_id, name=name, active=bool(active))
            state.players[player.id] = player
            state.next_player_id += 1

            self._commit(state)
            return self.get_player(player.id)

    def update_player(self, player_id: int, **fields: Any) -> Player:
        """
        Update a player's name and/or active flag.

        Renaming does not touch match history: matches that used the old
        name stop counting for this player.
        """
        with self._lock:
            unknown = set(fields) - set(PLAYER_UPDATABLE_FIELDS)
            if unknown:
                raise ValidationError(
                    f"Cannot update player field(s): {', '.join(sorted(unknown))}"
                )

            state = self._state.copy()
            player = state.players.get(player_id)
            if player is None:
                raise PlayerNotFoundError(player_id)

            if fields.get("name") is not None:
                name = self._clean_name(fields["name"])
                if name != player.name:
                    self._ensure_name_available(state, name)
                    player.name = name
            if fields.get("active") is not None:
                player.active = bool(fields["active"])

            self._commit(state)
            return self.get_player(player_id)

    def delete_player(self, player_id: int) -> DeletePlayerResult:
        """
        Remove a player, or mark them inactive if any match references them.
        """
        with self._lock:
            state = self._state.copy()
            player = state.players.get(player_id)
            if player is None:
                raise PlayerNotFoundError(player_id)

            try:
                self._ensure_unreferenced(state, player)
            except ReferentialIntegrityError:
                player.active = False
                self._commit(state)
                return DeletePlayerResult(player=self.get_player(player_id), deleted=False)

            del state.players[player_id]
            self._commit(state)
            return DeletePlayerResult(player=player, deleted=True)

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def create_match(
        self,
        date: Union[str, date],
        player_a1: str,
        player_a2: str,
        player_b1: str,
        player_b2: str,
        score_a: int,
        score_b: int,
    ) -> Match:
        """
        Record a match, price it against current ratings and apply the deltas.

        Raises:
            ValidationError: On duplicate players, a level score, bad scores
                or a name that does not resolve to a player
        """
        with self._lock:
            state = self._state.copy()
            match = Match(
                id=state.next_match_id,
                date=self._clean_date(date),
                player_a1=player_a1,
                player_a2=player_a2,
                player_b1=player_b1,
                player_b2=player_b2,
                score_a=score_a,
                score_b=score_b,
            )
            self._validate_match(match)
            self._price_match(state, match, ratings=None)

            state.matches[match.id] = match
            state.next_match_id += 1
            self._apply_deltas(state, match, sign=1)

            self._commit(state)
            return self.get_match(match.id)

    def update_match(self, match_id: int, **fields: Any) -> Match:
        """
        Edit a match.

        If the teams or scores change, the stored deltas are reversed, the
        match is re-priced against the post-reversal ratings and the new
        deltas are applied. A date-only edit keeps the stored deltas.
        """
        with self._lock:
            unknown = set(fields) - set(MATCH_UPDATABLE_FIELDS)
            if unknown:
                raise ValidationError(
                    f"Cannot update match field(s): {', '.join(sorted(unknown))}"
                )

            state = self._state.copy()
            original = state.matches.get(match_id)
            if original is None:
                raise MatchNotFoundError(match_id)

            changes = {k: v for k, v in fields.items() if v is not None}
            updated = Match(**vars(original))
            for key, value in changes.items():
                setattr(updated, key, value)
            updated.date = self._clean_date(updated.date)
            self._validate_match(updated)

            reprice = any(
                getattr(updated, key) != getattr(original, key)
                for key in MATCH_PLAYER_FIELDS + MATCH_SCORE_FIELDS
            )
            if reprice:
                post_reversal = {
                    name: self._rating_of(state, name) - original.delta_for(name)
                    for name in updated.player_names
                }
                self._price_match(state, updated, ratings=post_reversal)
                self._apply_deltas(state, original, sign=-1)
                self._apply_deltas(state, updated, sign=1)

            state.matches[match_id] = updated
            self._commit(state)
            return self.get_match(match_id)

    def delete_match(self, match_id: int) -> None:
        """Reverse a match's deltas and remove it."""
        with self._lock:
            state = self._state.copy()
            match = state.matches.get(match_id)
            if match is None:
                raise MatchNotFoundError(match_id)

            self._apply_deltas(state, match, sign=-1)
            del state.matches[match_id]
            self._commit(state)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def recompute_stats(self) -> LeagueState:
        """Run a full stats pass. Idempotent."""
        with self._lock:
            self._commit(self._state.copy())
            return self._state.copy()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self, state: LeagueState) -> None:
        self._state = calculation_service.calculate_stats(state)

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Player name is required")
        # Partnership ids join two names with the separator
        if PARTNERSHIP_KEY_SEPARATOR in name:
            raise ValidationError(
                f"Player name cannot contain '{PARTNERSHIP_KEY_SEPARATOR}'"
            )
        return name.strip()

    @staticmethod
    def _clean_date(value: Union[str, date, None]) -> str:
        if value is None:
            raise ValidationError("Match date is required")
        try:
            return format_match_date(value)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    @staticmethod
    def _ensure_name_available(state: LeagueState, name: str) -> None:
        if calculation_service.find_player_by_name(state.player_list(), name):
            raise DuplicatePlayerNameError(name)

    @staticmethod
    def _ensure_unreferenced(state: LeagueState, player: Player) -> None:
        for match in state.match_list():
            if match.references(player.name):
                raise ReferentialIntegrityError(
                    f"Player '{player.name}' is referenced by match {match.id}"
                )

    @staticmethod
    def _validate_match(match: Match) -> None:
        names = match.player_names
        if any(not isinstance(name, str) or not name.strip() for name in names):
            raise ValidationError("All four players are required")
        if len(set(names)) != len(names):
            raise ValidationError("All four players must be distinct")
        for score in (match.score_a, match.score_b):
            if isinstance(score, bool) or not isinstance(score, int):
                raise ValidationError("Scores must be whole numbers")
            if score < 0:
                raise ValidationError("Scores cannot be negative")
        if match.score_a == match.score_b:
            raise ValidationError("Scores cannot be equal (draws are not allowed)")

    @staticmethod
    def _rating_of(state: LeagueState, name: str) -> int:
        player = calculation_service.find_player_by_name(state.player_list(), name)
        if player is None:
            raise ValidationError(f"Unknown player '{name}'")
        return player.rating

    @staticmethod
    def _price_match(
        state: LeagueState, match: Match, ratings: Optional[Dict[str, int]]
    ) -> None:
        """Compute and store the four deltas on the match."""
        for name in match.player_names:
            if calculation_service.find_player_by_name(state.player_list(), name) is None:
                raise ValidationError(f"Unknown player '{name}'")

        change = calculation_service.calculate_elo_changes(
            match.team_a,
            match.team_b,
            match.score_a,
            match.score_b,
            state.player_list(),
            ratings=ratings,
        )
        if change is None:
            raise ValidationError("Could not resolve all four players")

        match.elo_change_a1 = change.team_a
        match.elo_change_a2 = change.team_a
        match.elo_change_b1 = change.team_b
        match.elo_change_b2 = change.team_b

    @staticmethod
    def _apply_deltas(state: LeagueState, match: Match, sign: int) -> None:
        """Add (sign=1) or reverse (sign=-1) a match's stored deltas."""
        for name, delta in match.slot_deltas():
            player = calculation_service.find_player_by_name(state.player_list(), name)
            if player is not None:
                player.rating += sign * delta
