from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..core.exceptions import GameError

JOKER_TYPES = ("open", "opposite", "all")
MIN_PLAYERS = 2
MAX_PLAYERS = 7
FULL_COUNT_CAP = 80


class PlayerState(str, Enum):
    WINNER = "Winner"
    OUT = "Out"
    COMPULSORY = "Compulsory"
    LEAST = "Least"
    NONE = "None"


class ScoreOption(str, Enum):
    RUMMY = "rummy"
    PACK = "pack"
    MID_PACK = "mid_pack"
    FULL_COUNT = "full_count"


@dataclass(frozen=True)
class GameConfig:
    for_points: int = 101
    pack_points: int = 25
    mid_pack_points: int = 50
    full_count_points: int = 80
    buy_in_amount: float = 0.0
    currency: str = "$"
    re_entry_allowed: bool = True
    player_count: int = 3
    joker_type: str = "opposite"
    sequence_count: int = 2
    all_trips_double_points: bool = True
    all_seqs_double_points: bool = False
    all_jokers_full_money: bool = False

    def __post_init__(self) -> None:
        problems = []
        if self.for_points <= 0:
            problems.append("for_points must be positive")
        if self.pack_points <= 0:
            problems.append("pack_points must be positive")
        elif self.pack_points >= self.for_points:
            problems.append("pack_points must be below for_points")
        if self.mid_pack_points <= 0:
            problems.append("mid_pack_points must be positive")
        if self.full_count_points <= 0:
            problems.append("full_count_points must be positive")
        if self.buy_in_amount < 0:
            problems.append("buy_in_amount cannot be negative")
        if not self.currency:
            problems.append("currency is required")
        if not MIN_PLAYERS <= self.player_count <= MAX_PLAYERS:
            problems.append(f"player_count must be between {MIN_PLAYERS} and {MAX_PLAYERS}")
        if self.joker_type not in JOKER_TYPES:
            problems.append(f"joker_type must be one of {', '.join(JOKER_TYPES)}")
        if self.sequence_count < 1:
            problems.append("sequence_count must be at least 1")
        if not problems:
            for field_name in ("pack_points", "mid_pack_points", "full_count_points"):
                if getattr(self, field_name) > self.max_score:
                    problems.append(f"{field_name} cannot exceed the score limit of {self.max_score}")
        if problems:
            raise GameError(GameError.INVALID_CONFIG, "; ".join(problems))

    @property
    def max_score(self) -> int:
        """Highest single-round entry: the full-count cap when it is 80, else for_points."""
        return FULL_COUNT_CAP if self.full_count_points == FULL_COUNT_CAP else self.for_points


@dataclass(frozen=True)
class PlayerEntity:
    id: int
    name: str
    position: int
    is_active: bool = True
    has_re_entered: bool = False


@dataclass(frozen=True)
class GameSnapshot:
    """Everything the engine needs about one game.

    ``scores`` maps player id -> round number -> points. A missing round means
    the player has not scored it yet. ``current_round`` is the open round.
    """

    config: GameConfig
    players: tuple[PlayerEntity, ...]
    scores: dict[int, dict[int, int]] = field(default_factory=dict)
    current_round: int = 1

    def player(self, player_id: int) -> PlayerEntity | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def round_numbers(self) -> list[int]:
        rounds = {r for per_player in self.scores.values() for r in per_player}
        return sorted(rounds)


@dataclass(frozen=True)
class PlayerMetrics:
    player_id: int
    name: str
    total_score: int
    points_left: int
    packs_remaining: int
    residual_points: int
    pack_safe: int
    state: PlayerState
