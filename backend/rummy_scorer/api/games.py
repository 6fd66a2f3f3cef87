from __future__ import annotations

import logging
from typing import Any, cast

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from ..core.deps import get_db, get_game, rejected
from ..core.exceptions import ErrorMessages, RummyError
from ..models.db import Game, GamePlayer, GameRound, GameScore
from ..models.schemas import (
    GameCreateIn,
    GameOut,
    GameStateOut,
    GameStatusIn,
    PlayerCreateIn,
    PlayerMetricsOut,
    PlayerOut,
    PlayerStatusIn,
    RoundBreakdownOut,
    RoundOut,
    ScoreCreateIn,
    ScoreOut,
    ScoreResultOut,
)
from ..services import scoring
from ..services.game_service import GameService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["games"])


def _game_out(game: Game) -> GameOut:
    out = GameOut.model_validate(game)
    out.packs_per_game = scoring.packs_per_game(out.for_points, out.pack_points)
    return out


def _get_player(db: DBSession, game: Game, player_id: int) -> GamePlayer:
    p = (
        db.query(GamePlayer)
        .filter(GamePlayer.id == player_id, GamePlayer.game_id == game.id)
        .first()
    )
    if p is None:
        raise HTTPException(status_code=404, detail=ErrorMessages.PLAYER_NOT_FOUND)
    return p


@router.post("/games", response_model=GameOut)
def create_game(payload: GameCreateIn, db: DBSession = Depends(get_db)) -> GameOut:
    try:
        game = GameService.create_game(db, payload)
    except RummyError as e:
        db.rollback()
        raise rejected(e)
    return _game_out(game)


@router.get("/games/{game_id}", response_model=GameOut)
def get_game_detail(game: Game = Depends(get_game)) -> GameOut:
    return _game_out(game)


@router.put("/games/{game_id}/status", response_model=GameOut)
def update_game_status(
    payload: GameStatusIn,
    game: Game = Depends(get_game),
    db: DBSession = Depends(get_db),
) -> GameOut:
    game.status = cast(Any, payload.status)
    db.commit()
    db.refresh(game)
    return _game_out(game)


@router.post("/games/{game_id}/players", response_model=PlayerOut)
def add_player(
    payload: PlayerCreateIn,
    game: Game = Depends(get_game),
    db: DBSession = Depends(get_db),
) -> PlayerOut:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Player name is required")

    p = GamePlayer(game_id=game.id, name=name, position=payload.position)
    db.add(p)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Seat position already taken")
    db.refresh(p)
    return PlayerOut.model_validate(p)


@router.get("/games/{game_id}/players", response_model=list[PlayerOut])
def list_players(game: Game = Depends(get_game), db: DBSession = Depends(get_db)) -> list[PlayerOut]:
    players = (
        db.query(GamePlayer)
        .filter(GamePlayer.game_id == game.id)
        .order_by(GamePlayer.position.asc())
        .all()
    )
    return [PlayerOut.model_validate(p) for p in players]


@router.put("/players/{player_id}/status", response_model=PlayerOut)
def update_player_status(
    player_id: int,
    payload: PlayerStatusIn,
    db: DBSession = Depends(get_db),
) -> PlayerOut:
    p = db.query(GamePlayer).filter(GamePlayer.id == player_id).first()
    if p is None:
        raise HTTPException(status_code=404, detail=ErrorMessages.PLAYER_NOT_FOUND)

    p.is_active = cast(Any, payload.is_active)
    if payload.has_re_entered is not None:
        p.has_re_entered = cast(Any, payload.has_re_entered)
    db.commit()
    db.refresh(p)
    return PlayerOut.model_validate(p)


@router.post("/games/{game_id}/players/{player_id}/re-entry", response_model=PlayerOut)
def re_enter_player(
    player_id: int,
    game: Game = Depends(get_game),
    db: DBSession = Depends(get_db),
) -> PlayerOut:
    p = _get_player(db, game, player_id)
    try:
        p = GameService.re_enter(db, game, p)
    except RummyError as e:
        logger.warning(f"Game {game.id}: re-entry refused for player {player_id}: {e.code}")
        raise rejected(e)
    return PlayerOut.model_validate(p)


@router.get("/games/{game_id}/rounds", response_model=list[RoundOut])
def list_rounds(game: Game = Depends(get_game), db: DBSession = Depends(get_db)) -> list[RoundOut]:
    rounds = (
        db.query(GameRound)
        .filter(GameRound.game_id == game.id)
        .order_by(GameRound.round_number.asc())
        .all()
    )
    return [RoundOut.model_validate(r) for r in rounds]


@router.delete("/games/{game_id}/rounds/{round_number}", response_model=GameOut)
def remove_round(
    round_number: int,
    game: Game = Depends(get_game),
    db: DBSession = Depends(get_db),
) -> GameOut:
    try:
        GameService.remove_round(db, game, round_number)
    except RummyError as e:
        raise rejected(e)
    db.refresh(game)
    return _game_out(game)


@router.post("/games/{game_id}/scores", response_model=ScoreResultOut)
def create_score(
    payload: ScoreCreateIn,
    game: Game = Depends(get_game),
    db: DBSession = Depends(get_db),
) -> ScoreResultOut:
    try:
        round_number, score, closed = GameService.record_score(
            db, game, payload.player_id, payload.round_number, payload.score, payload.option
        )
    except RummyError as e:
        db.rollback()
        logger.warning(f"Game {game.id}: score rejected for player {payload.player_id}: {e.code}")
        raise rejected(e)

    db.refresh(game)
    return ScoreResultOut(
        score=ScoreOut(player_id=payload.player_id, round_number=round_number, score=score),
        round_closed=closed,
        current_round=int(cast(int, game.current_round)),
    )


@router.get("/games/{game_id}/scores", response_model=list[ScoreOut])
def list_scores(game: Game = Depends(get_game), db: DBSession = Depends(get_db)) -> list[ScoreOut]:
    rows = (
        db.query(GameScore.player_id, GameRound.round_number, GameScore.score)
        .join(GameRound, GameScore.round_id == GameRound.id)
        .filter(GameScore.game_id == game.id)
        .order_by(GameRound.round_number.asc(), GameScore.player_id.asc())
        .all()
    )
    return [ScoreOut(player_id=pid, round_number=r, score=s) for pid, r, s in rows]


@router.get("/games/{game_id}/state", response_model=GameStateOut)
def get_state(game: Game = Depends(get_game), db: DBSession = Depends(get_db)) -> GameStateOut:
    snapshot = GameService.build_snapshot(db, game)
    by_id = {p.id: p for p in snapshot.players}

    players = []
    for m in scoring.all_player_metrics(snapshot):
        p = by_id[m.player_id]
        players.append(
            PlayerMetricsOut(
                player_id=m.player_id,
                name=m.name,
                position=p.position,
                is_active=p.is_active,
                has_re_entered=p.has_re_entered,
                total_score=m.total_score,
                points_left=m.points_left,
                packs_remaining=m.packs_remaining,
                residual_points=m.residual_points,
                pack_safe=m.pack_safe,
                state=m.state,
                scores=dict(snapshot.scores.get(m.player_id, {})),
            )
        )

    return GameStateOut(
        game=_game_out(game),
        players=players,
        rounds=[
            RoundBreakdownOut(round_number=r, scores=row)
            for r, row in scoring.round_breakdown(snapshot)
        ],
        current_round=snapshot.current_round,
        is_complete=scoring.is_game_complete(snapshot),
    )
