"""Error taxonomy for score entry, round closing and game-level checks.

Every error here is a user-correctable condition: the caller shows the message
and keeps its previous state. Nothing in this module is fatal.
"""
from __future__ import annotations


class ErrorMessages:
    GAME_NOT_FOUND = "Game not found"
    PLAYER_NOT_FOUND = "Player not found"

    EXCEEDS_MAX = "You are entering a score that is greater than full count"
    COMPULSORY_PLAY = "No packs left: player must play a Rummy or Full-Count"
    NEGATIVE_SCORE = "Score cannot be negative"
    PLAYER_NOT_CONTENDING = "Player is no longer in the game"
    ROUND_NOT_OPEN = "Round is not open for scoring"
    UNKNOWN_PLAYER = "Unknown player"

    NO_RUMMY = "At least one player must have a Rummy (0 points) in each round"
    MULTIPLE_RUMMY = "Only one player can have a Rummy (0 points) in a round"
    UNKNOWN_ROUND = "Round does not exist"

    INSUFFICIENT_ACTIVE_PLAYERS = "Not enough players in the game"
    TOO_MANY_CONTENDERS = "Settlement is only available when 4 or fewer players remain"
    RE_ENTRY_NOT_ALLOWED = "Re-entry is disabled for this game"
    NO_PACKS_REMAINING = "No packs remaining for re-entry"
    ALREADY_RE_ENTERED = "Player has already re-entered"
    PLAYER_NOT_OUT = "Only a player who is out can re-enter"
    INVALID_CONFIG = "Invalid game configuration"


class RummyError(ValueError):
    """Base for expected scoring failures. ``code`` is stable, ``message`` is for people."""

    def __init__(self, code: str, message: str | None = None):
        self.code = code
        self.message = message or getattr(ErrorMessages, code.upper(), code)
        super().__init__(self.message)

    def as_detail(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ScoreError(RummyError):
    EXCEEDS_MAX = "exceeds_max"
    COMPULSORY_PLAY = "compulsory_play"
    NEGATIVE_SCORE = "negative_score"
    PLAYER_NOT_CONTENDING = "player_not_contending"
    ROUND_NOT_OPEN = "round_not_open"
    UNKNOWN_PLAYER = "unknown_player"


class RoundError(RummyError):
    NO_RUMMY = "no_rummy"
    MULTIPLE_RUMMY = "multiple_rummy"
    UNKNOWN_ROUND = "unknown_round"


class GameError(RummyError):
    INSUFFICIENT_ACTIVE_PLAYERS = "insufficient_active_players"
    TOO_MANY_CONTENDERS = "too_many_contenders"
    RE_ENTRY_NOT_ALLOWED = "re_entry_not_allowed"
    NO_PACKS_REMAINING = "no_packs_remaining"
    ALREADY_RE_ENTERED = "already_re_entered"
    PLAYER_NOT_OUT = "player_not_out"
    INVALID_CONFIG = "invalid_config"
