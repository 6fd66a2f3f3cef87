"""
Scoring and player-state engine.

Pure functions over a ``GameSnapshot``. Nothing here touches the database or
mutates the snapshot it is given: updates come back as a new snapshot, and
rejected input raises a ``ScoreError``/``RoundError``/``GameError`` with the
input snapshot left as it was.

Points left is always ``max(0, for_points - total)``. There is no extra
one-point margin on the live table; ``packs_per_game`` is the only place the
"reaching for_points means out" offset shows up, and it describes a fresh
player at setup, not a running total.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from ..core.exceptions import GameError, RoundError, ScoreError
from ..models.entities import (
    GameConfig,
    GameSnapshot,
    PlayerEntity,
    PlayerMetrics,
    PlayerState,
    ScoreOption,
)

MIN_RE_ENTRY_CONTENDERS = 3


def _require_player(snapshot: GameSnapshot, player_id: int) -> PlayerEntity:
    player = snapshot.player(player_id)
    if player is None:
        raise ScoreError(ScoreError.UNKNOWN_PLAYER)
    return player


def total_for(snapshot: GameSnapshot, player_id: int, through_round: int | None = None) -> int:
    """Sum of a player's entered scores, optionally only rounds ``<= through_round``."""
    entries = snapshot.scores.get(player_id, {})
    return sum(v for r, v in entries.items() if through_round is None or r <= through_round)


def points_left_for(snapshot: GameSnapshot, player_id: int, through_round: int | None = None) -> int:
    return max(0, snapshot.config.for_points - total_for(snapshot, player_id, through_round))


def packs_remaining_for(snapshot: GameSnapshot, player_id: int, through_round: int | None = None) -> int:
    return points_left_for(snapshot, player_id, through_round) // snapshot.config.pack_points


def residual_points_for(snapshot: GameSnapshot, player_id: int, through_round: int | None = None) -> int:
    return points_left_for(snapshot, player_id, through_round) % snapshot.config.pack_points


def pack_safe_for(snapshot: GameSnapshot, player_id: int) -> int:
    """Points a player can still take before losing a pack; 0 once no packs are left."""
    if packs_remaining_for(snapshot, player_id) == 0:
        return 0
    return snapshot.config.pack_points - residual_points_for(snapshot, player_id)


def packs_per_game(for_points: int, pack_points: int) -> int:
    """Packs a fresh player can afford. Landing exactly on for_points is out, hence the -1."""
    return (for_points - 1) // pack_points


def is_contending(snapshot: GameSnapshot, player: PlayerEntity, through_round: int | None = None) -> bool:
    """Active and under for_points. A re-entered player plays on while active, whatever the total."""
    if not player.is_active:
        return False
    return player.has_re_entered or total_for(snapshot, player.id, through_round) < snapshot.config.for_points


def contending_players(snapshot: GameSnapshot, before_round: int | None = None) -> list[PlayerEntity]:
    """Players still in the game, judged on rounds before ``before_round``."""
    through = None if before_round is None else before_round - 1
    return [p for p in snapshot.players if is_contending(snapshot, p, through)]


def is_round_fully_scored(
    snapshot: GameSnapshot,
    round_number: int,
    players: Iterable[PlayerEntity] | None = None,
) -> bool:
    players = list(snapshot.players if players is None else players)
    if not players:
        return False
    return all(round_number in snapshot.scores.get(p.id, {}) for p in players)


def _strict_leader(snapshot: GameSnapshot, players: list[PlayerEntity]) -> int | None:
    """Id of the single player holding the lowest total, or None on a tie."""
    totals = [(total_for(snapshot, p.id), p.id) for p in players]
    if not totals:
        return None
    lowest = min(t for t, _ in totals)
    leaders = [pid for t, pid in totals if t == lowest]
    return leaders[0] if len(leaders) == 1 else None


def player_state(snapshot: GameSnapshot, player_id: int) -> PlayerState:
    """Status label for one player; first matching rule wins.

    Winner, then Out, then Compulsory, then Least. Least needs round 1 scored
    by every active player and a strict minimum: tied leaders get no label.
    """
    player = _require_player(snapshot, player_id)

    contenders = contending_players(snapshot)
    if len(contenders) == 1 and contenders[0].id == player_id:
        return PlayerState.WINNER

    # a re-entered player keeps the old total but has no packs left
    if total_for(snapshot, player_id) >= snapshot.config.for_points and not is_contending(snapshot, player):
        return PlayerState.OUT

    if packs_remaining_for(snapshot, player_id) == 0:
        return PlayerState.COMPULSORY

    active = [p for p in snapshot.players if p.is_active]
    if is_round_fully_scored(snapshot, 1, active) and _strict_leader(snapshot, active) == player_id:
        return PlayerState.LEAST

    return PlayerState.NONE


def player_metrics(snapshot: GameSnapshot, player_id: int) -> PlayerMetrics:
    player = _require_player(snapshot, player_id)
    return PlayerMetrics(
        player_id=player.id,
        name=player.name,
        total_score=total_for(snapshot, player_id),
        points_left=points_left_for(snapshot, player_id),
        packs_remaining=packs_remaining_for(snapshot, player_id),
        residual_points=residual_points_for(snapshot, player_id),
        pack_safe=pack_safe_for(snapshot, player_id),
        state=player_state(snapshot, player_id),
    )


def all_player_metrics(snapshot: GameSnapshot) -> list[PlayerMetrics]:
    ordered = sorted(snapshot.players, key=lambda p: p.position)
    return [player_metrics(snapshot, p.id) for p in ordered]


def round_breakdown(snapshot: GameSnapshot) -> list[tuple[int, dict[int, int]]]:
    """Per-round scores for every round with at least one entry, oldest first."""
    out = []
    for r in snapshot.round_numbers():
        row = {
            pid: entries[r]
            for pid, entries in snapshot.scores.items()
            if r in entries
        }
        out.append((r, row))
    return out


def is_game_complete(snapshot: GameSnapshot) -> bool:
    limit = snapshot.config.for_points
    return any(total_for(snapshot, p.id) >= limit for p in snapshot.players)


def validate_round(snapshot: GameSnapshot, round_number: int) -> bool:
    """Check the one-Rummy rule for a round.

    Returns False while some contender has not scored yet, True once every
    contender has and exactly one of them scored 0. Raises ``RoundError``
    when the round is complete with no zero or several zeros.
    """
    contenders = contending_players(snapshot, before_round=round_number)
    if not is_round_fully_scored(snapshot, round_number, contenders):
        return False

    rummies = sum(1 for p in contenders if snapshot.scores[p.id][round_number] == 0)
    if rummies == 0:
        raise RoundError(RoundError.NO_RUMMY)
    if rummies > 1:
        raise RoundError(RoundError.MULTIPLE_RUMMY)
    return True


def score_ceiling(config: GameConfig) -> int:
    return config.max_score


def score_for_option(config: GameConfig, option: ScoreOption) -> int:
    if option == ScoreOption.RUMMY:
        return 0
    if option == ScoreOption.PACK:
        return config.pack_points
    if option == ScoreOption.MID_PACK:
        return config.mid_pack_points
    return config.full_count_points


def parse_score(raw) -> int | None:
    """Turn typed input into a score. Anything that is not a whole number >= 0 gives None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return value if value >= 0 else None


def validate_score(
    snapshot: GameSnapshot,
    player_id: int,
    round_number: int,
    score: int,
    option: ScoreOption | None = None,
) -> None:
    _require_player(snapshot, player_id)

    if round_number < 1 or round_number > snapshot.current_round:
        raise ScoreError(ScoreError.ROUND_NOT_OPEN)
    if score < 0:
        raise ScoreError(ScoreError.NEGATIVE_SCORE)
    if score > score_ceiling(snapshot.config):
        raise ScoreError(ScoreError.EXCEEDS_MAX)

    contenders = contending_players(snapshot, before_round=round_number)
    if player_id not in {p.id for p in contenders}:
        raise ScoreError(ScoreError.PLAYER_NOT_CONTENDING)

    if option in (ScoreOption.PACK, ScoreOption.MID_PACK):
        if packs_remaining_for(snapshot, player_id, through_round=round_number - 1) == 0:
            raise ScoreError(ScoreError.COMPULSORY_PLAY)


def _copy_scores(snapshot: GameSnapshot) -> dict[int, dict[int, int]]:
    return {pid: dict(entries) for pid, entries in snapshot.scores.items()}


def record_score(
    snapshot: GameSnapshot,
    player_id: int,
    round_number: int,
    score: int,
    option: ScoreOption | None = None,
) -> GameSnapshot:
    """Enter (or replace) one score and return the updated snapshot.

    When the entry completes the open round and the round passes the one-Rummy
    rule, the returned snapshot points at the next round.
    """
    validate_score(snapshot, player_id, round_number, score, option)

    scores = _copy_scores(snapshot)
    scores.setdefault(player_id, {})[round_number] = score
    candidate = replace(snapshot, scores=scores)

    closed = validate_round(candidate, round_number)
    if closed and round_number == snapshot.current_round:
        candidate = replace(candidate, current_round=round_number + 1)
    return candidate


def remove_round(snapshot: GameSnapshot, round_number: int) -> GameSnapshot:
    """Drop every player's entry for a round.

    Removing the most recently closed round reopens it as the current round.
    """
    if round_number < 1 or round_number > snapshot.current_round:
        raise RoundError(RoundError.UNKNOWN_ROUND)

    scores = {
        pid: {r: v for r, v in entries.items() if r != round_number}
        for pid, entries in snapshot.scores.items()
    }
    current = snapshot.current_round
    if round_number == current - 1:
        current = round_number
    return replace(snapshot, scores=scores, current_round=current)


def validate_re_entry(snapshot: GameSnapshot, player_id: int) -> None:
    player = _require_player(snapshot, player_id)
    cfg = snapshot.config

    if not cfg.re_entry_allowed:
        raise GameError(GameError.RE_ENTRY_NOT_ALLOWED)
    if player.has_re_entered:
        raise GameError(GameError.ALREADY_RE_ENTERED)
    if player.is_active and total_for(snapshot, player_id) < cfg.for_points:
        raise GameError(GameError.PLAYER_NOT_OUT)

    contenders = contending_players(snapshot)
    if len(contenders) < MIN_RE_ENTRY_CONTENDERS:
        raise GameError(GameError.INSUFFICIENT_ACTIVE_PLAYERS, "At least 3 players must be active for re-entry")
    if max(packs_remaining_for(snapshot, p.id) for p in contenders) < 1:
        raise GameError(GameError.NO_PACKS_REMAINING)


def re_enter(snapshot: GameSnapshot, player_id: int) -> GameSnapshot:
    """Bring a player back in. Only the flags change; the score history stays."""
    validate_re_entry(snapshot, player_id)
    players = tuple(
        replace(p, is_active=True, has_re_entered=True) if p.id == player_id else p
        for p in snapshot.players
    )
    return replace(snapshot, players=players)
