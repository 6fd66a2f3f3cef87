"""
Settlement calculator.

The lowest total wins. Every other player pays one buy-in per full pack they
finished behind the winner; the winner collects exactly what the others pay,
so the amounts always net to zero.

All players passed in take part, including those who went out: an out player
pays like anyone else but only wins when every player is out.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..core.exceptions import GameError
from ..models.entities import GameConfig, GameSnapshot
from .scoring import contending_players, total_for

BALANCE_TOLERANCE = 0.01
MAX_SETTLING_CONTENDERS = 4


@dataclass(frozen=True)
class PlayerTotal:
    player_id: int
    name: str
    total_score: int


@dataclass
class PlayerSettlement:
    player_id: int
    player_name: str
    final_score: int
    points_left: int
    packs_remaining: int
    residual_points: int
    settlement_amount: float
    is_winner: bool


@dataclass(frozen=True)
class SettlementSummary:
    winner: str
    total_money: float
    max_loss: float
    max_gain: float
    player_count: int


def calculate_settlement(totals: Sequence[PlayerTotal], config: GameConfig) -> list[PlayerSettlement]:
    """One record per player, in the order given.

    Players tied on the lowest total are all flagged ``is_winner``; the first
    of them in the given order collects. The others have no excess packs, so
    they neither pay nor receive.
    """
    if not totals:
        return []

    # an out player can only take the pot when everyone is out
    eligible = [t for t in totals if t.total_score < config.for_points] or list(totals)
    lowest = min(t.total_score for t in eligible)
    buy_in = float(config.buy_in_amount or 0)

    settlements = []
    for t in totals:
        points_left = max(0, config.for_points - t.total_score)
        is_winner = t.total_score == lowest
        amount = 0.0
        if buy_in > 0 and not is_winner:
            excess_packs = max(0, (t.total_score - lowest) // config.pack_points)
            amount = -(excess_packs * buy_in)
        settlements.append(
            PlayerSettlement(
                player_id=t.player_id,
                player_name=t.name,
                final_score=t.total_score,
                points_left=points_left,
                packs_remaining=points_left // config.pack_points,
                residual_points=points_left % config.pack_points,
                settlement_amount=amount,
                is_winner=is_winner,
            )
        )

    winner = next(s for s in settlements if s.is_winner)
    if buy_in > 0:
        winner.settlement_amount = -sum(s.settlement_amount for s in settlements if s is not winner)

    drift = sum(s.settlement_amount for s in settlements)
    if abs(drift) > BALANCE_TOLERANCE:
        winner.settlement_amount -= drift

    return settlements


def settlement_summary(settlements: Sequence[PlayerSettlement]) -> SettlementSummary:
    if not settlements:
        return SettlementSummary(winner="Unknown", total_money=0.0, max_loss=0.0, max_gain=0.0, player_count=0)

    winner = next((s for s in settlements if s.is_winner), None)
    amounts = [s.settlement_amount for s in settlements]
    # each transfer shows up once on the payer and once on the payee
    total_money = sum(abs(a) for a in amounts) / 2
    return SettlementSummary(
        winner=winner.player_name if winner else "Unknown",
        total_money=total_money,
        max_loss=abs(min(amounts)),
        max_gain=max(amounts),
        player_count=len(settlements),
    )


def check_settlement_ready(snapshot: GameSnapshot) -> None:
    if len([p for p in snapshot.players if p.is_active]) < 2:
        raise GameError(GameError.INSUFFICIENT_ACTIVE_PLAYERS)
    if len(contending_players(snapshot)) > MAX_SETTLING_CONTENDERS:
        raise GameError(GameError.TOO_MANY_CONTENDERS)


def settle_snapshot(snapshot: GameSnapshot) -> list[PlayerSettlement]:
    """Check readiness and settle every player of the game, in seating order."""
    check_settlement_ready(snapshot)
    ordered = sorted(snapshot.players, key=lambda p: p.position)
    totals = [PlayerTotal(p.id, p.name, total_for(snapshot, p.id)) for p in ordered]
    return calculate_settlement(totals, snapshot.config)


def format_currency(amount, currency: str) -> str:
    """Signed money string, e.g. ``+$12.50`` or ``-$3.00``. Unparseable input reads as zero."""
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return f"{currency}0"
    sign = "+" if value >= 0 else "-"
    return f"{sign}{currency}{abs(value):.2f}"


def results_text(settlements: Sequence[PlayerSettlement], currency: str) -> str:
    summary = settlement_summary(settlements)
    lines = ["Rummy Game Results", "", f"Winner: {summary.winner}", "", "Final Scores:"]
    for s in settlements:
        marker = " (winner)" if s.is_winner else ""
        lines.append(f"{s.player_name}: {s.final_score} pts{marker}")
    lines += ["", "Money Distribution:"]
    for s in settlements:
        lines.append(f"{s.player_name}: {format_currency(s.settlement_amount, currency)}")
    return "\n".join(lines)
