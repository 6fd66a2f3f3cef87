from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .entities import PlayerState, ScoreOption
from ..services.scoring import parse_score


GameStatus = Literal["active", "completed", "cancelled"]
JokerType = Literal["open", "opposite", "all"]


class GameCreateIn(BaseModel):
    name: str = Field(default="Rummy", min_length=1, max_length=120)
    player_count: int = Field(default=3, ge=2, le=7)
    for_points: int = Field(default=101, gt=0)
    buy_in_amount: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    currency: str = Field(default="$", min_length=1, max_length=8)
    pack_points: int = Field(default=25, gt=0)
    mid_pack_points: int = Field(default=50, gt=0)
    full_count_points: int = Field(default=80, gt=0)
    joker_type: JokerType = "opposite"
    sequence_count: int = Field(default=2, ge=1)
    all_trips_double_points: bool = True
    all_seqs_double_points: bool = False
    all_jokers_full_money: bool = False
    re_entry_allowed: bool = True
    # Optional: seat players in this order right away
    player_names: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_players(self):
        names = [n.strip() for n in self.player_names]
        if any(not n for n in names):
            raise ValueError("Player names cannot be blank")
        if names and len(names) != self.player_count:
            raise ValueError("Please enter names for all players")
        self.player_names = names
        return self


class GameOut(BaseModel):
    id: int
    name: str
    player_count: int
    for_points: int
    buy_in_amount: Decimal | None
    currency: str
    pack_points: int
    mid_pack_points: int
    full_count_points: int
    joker_type: str
    sequence_count: int
    all_trips_double_points: bool
    all_seqs_double_points: bool
    all_jokers_full_money: bool
    re_entry_allowed: bool
    status: str
    current_round: int
    packs_per_game: int = 0
    created_at: dt.datetime

    class Config:
        from_attributes = True


class GameStatusIn(BaseModel):
    status: GameStatus


class PlayerCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    position: int = Field(ge=1)


class PlayerOut(BaseModel):
    id: int
    game_id: int
    name: str
    position: int
    is_active: bool
    has_re_entered: bool

    class Config:
        from_attributes = True


class PlayerStatusIn(BaseModel):
    is_active: bool
    has_re_entered: bool | None = None


class RoundOut(BaseModel):
    id: int
    round_number: int
    created_at: dt.datetime

    class Config:
        from_attributes = True


class ScoreCreateIn(BaseModel):
    player_id: int
    round_number: int | None = None  # defaults to the open round
    score: int | None = None
    option: ScoreOption | None = None

    @field_validator("score", mode="before")
    @classmethod
    def _parse_score(cls, v):
        if v is None:
            return None
        score = parse_score(v)
        if score is None:
            raise ValueError("Score must be a whole number of 0 or more")
        return score

    @model_validator(mode="after")
    def _score_or_option(self):
        if self.score is None and self.option is None:
            raise ValueError("Either score or option is required")
        return self


class ScoreOut(BaseModel):
    player_id: int
    round_number: int
    score: int


class ScoreResultOut(BaseModel):
    score: ScoreOut
    round_closed: bool
    current_round: int


class PlayerMetricsOut(BaseModel):
    player_id: int
    name: str
    position: int
    is_active: bool
    has_re_entered: bool
    total_score: int
    points_left: int
    packs_remaining: int
    residual_points: int
    pack_safe: int
    state: PlayerState
    scores: dict[int, int]


class RoundBreakdownOut(BaseModel):
    round_number: int
    scores: dict[int, int]


class GameStateOut(BaseModel):
    game: GameOut
    players: list[PlayerMetricsOut]
    rounds: list[RoundBreakdownOut]
    current_round: int
    is_complete: bool


class SettlementOut(BaseModel):
    player_id: int
    player_name: str
    final_score: int
    points_left: int
    packs_remaining: int
    residual_points: int
    settlement_amount: float
    is_winner: bool


class SettlementSummaryOut(BaseModel):
    winner: str
    total_money: float
    max_loss: float
    max_gain: float
    player_count: int


class SettlementResultOut(BaseModel):
    settlements: list[SettlementOut]
    summary: SettlementSummaryOut
    share_text: str
