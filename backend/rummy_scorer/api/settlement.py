from __future__ import annotations

import logging
from typing import Sequence, cast

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DBSession

from ..core.deps import get_db, get_game, rejected
from ..core.exceptions import RummyError
from ..models.db import Game, GamePlayer, GameSettlement
from ..models.schemas import SettlementOut, SettlementResultOut, SettlementSummaryOut
from ..services.game_service import GameService
from ..services.settlement import PlayerSettlement, results_text, settle_snapshot, settlement_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/games", tags=["settlement"])


def _result(settlements: Sequence[PlayerSettlement], currency: str) -> SettlementResultOut:
    summary = settlement_summary(settlements)
    return SettlementResultOut(
        settlements=[
            SettlementOut(
                player_id=s.player_id,
                player_name=s.player_name,
                final_score=s.final_score,
                points_left=s.points_left,
                packs_remaining=s.packs_remaining,
                residual_points=s.residual_points,
                settlement_amount=round(s.settlement_amount, 2),
                is_winner=s.is_winner,
            )
            for s in settlements
        ],
        summary=SettlementSummaryOut(
            winner=summary.winner,
            total_money=round(summary.total_money, 2),
            max_loss=round(summary.max_loss, 2),
            max_gain=round(summary.max_gain, 2),
            player_count=summary.player_count,
        ),
        share_text=results_text(settlements, currency),
    )


@router.post("/{game_id}/calculate-settlement", response_model=SettlementResultOut)
def calculate(game: Game = Depends(get_game), db: DBSession = Depends(get_db)) -> SettlementResultOut:
    """Preview the money distribution without storing it."""
    snapshot = GameService.build_snapshot(db, game)
    try:
        settlements = settle_snapshot(snapshot)
    except RummyError as e:
        raise rejected(e)
    return _result(settlements, snapshot.config.currency)


@router.post("/{game_id}/settlements", response_model=SettlementResultOut)
def settle(game: Game = Depends(get_game), db: DBSession = Depends(get_db)) -> SettlementResultOut:
    try:
        settlements = GameService.settle(db, game)
    except RummyError as e:
        db.rollback()
        logger.warning(f"Game {game.id}: settlement refused: {e.code}")
        raise rejected(e)
    return _result(settlements, cast(str, game.currency))


def stored_settlements(db: DBSession, game: Game) -> list[PlayerSettlement]:
    rows = (
        db.query(GameSettlement, GamePlayer)
        .join(GamePlayer, GameSettlement.player_id == GamePlayer.id)
        .filter(GameSettlement.game_id == game.id)
        .order_by(GamePlayer.position.asc())
        .all()
    )
    return [
        PlayerSettlement(
            player_id=int(cast(int, s.player_id)),
            player_name=cast(str, p.name),
            final_score=int(cast(int, s.final_score)),
            points_left=int(cast(int, s.points_left)),
            packs_remaining=int(cast(int, s.packs_remaining)),
            residual_points=int(cast(int, s.residual_points)),
            settlement_amount=float(s.settlement_amount),
            is_winner=bool(s.is_winner),
        )
        for s, p in rows
    ]


@router.get("/{game_id}/settlements", response_model=SettlementResultOut)
def list_settlements(game: Game = Depends(get_game), db: DBSession = Depends(get_db)) -> SettlementResultOut:
    return _result(stored_settlements(db, game), cast(str, game.currency))
