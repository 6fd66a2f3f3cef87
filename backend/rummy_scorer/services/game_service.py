from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy.orm import Session as DBSession

from ..models.db import Game, GamePlayer, GameRound, GameScore, GameSettlement
from ..models.entities import GameConfig, GameSnapshot, PlayerEntity, ScoreOption
from ..models.schemas import GameCreateIn
from . import scoring
from .settlement import PlayerSettlement, settle_snapshot

logger = logging.getLogger(__name__)


def _as_int(v, default=0):
    if v is None:
        return int(default)
    return int(cast(int, v))


class GameService:
    """Moves data between the tables and the engine.

    Every write follows the same shape: build a snapshot from the rows, let the
    engine produce the next snapshot (or raise), then copy the difference back.
    A rejected operation never reaches ``db.commit()``.
    """

    @staticmethod
    def config_for(game: Game) -> GameConfig:
        return GameConfig(
            for_points=_as_int(game.for_points),
            pack_points=_as_int(game.pack_points),
            mid_pack_points=_as_int(game.mid_pack_points),
            full_count_points=_as_int(game.full_count_points),
            buy_in_amount=float(game.buy_in_amount or 0),
            currency=cast(str, game.currency),
            re_entry_allowed=bool(game.re_entry_allowed),
            player_count=_as_int(game.player_count),
            joker_type=cast(str, game.joker_type),
            sequence_count=_as_int(game.sequence_count),
            all_trips_double_points=bool(game.all_trips_double_points),
            all_seqs_double_points=bool(game.all_seqs_double_points),
            all_jokers_full_money=bool(game.all_jokers_full_money),
        )

    @staticmethod
    def build_snapshot(db: DBSession, game: Game) -> GameSnapshot:
        players = (
            db.query(GamePlayer)
            .filter(GamePlayer.game_id == game.id)
            .order_by(GamePlayer.position.asc())
            .all()
        )
        rows = (
            db.query(GameScore.player_id, GameRound.round_number, GameScore.score)
            .join(GameRound, GameScore.round_id == GameRound.id)
            .filter(GameScore.game_id == game.id)
            .all()
        )
        scores: dict[int, dict[int, int]] = {}
        for player_id, round_number, score in rows:
            scores.setdefault(int(player_id), {})[int(round_number)] = int(score)

        return GameSnapshot(
            config=GameService.config_for(game),
            players=tuple(
                PlayerEntity(
                    id=_as_int(p.id),
                    name=cast(str, p.name),
                    position=_as_int(p.position),
                    is_active=bool(p.is_active),
                    has_re_entered=bool(p.has_re_entered),
                )
                for p in players
            ),
            scores=scores,
            current_round=_as_int(game.current_round, 1),
        )

    @staticmethod
    def create_game(db: DBSession, payload: GameCreateIn) -> Game:
        data = payload.model_dump(exclude={"player_names"})
        # Validates the option set before anything is written
        options = payload.model_dump(exclude={"name", "player_names"})
        GameConfig(**{**options, "buy_in_amount": float(payload.buy_in_amount or 0)})

        game = Game(**data, status="active", current_round=1)
        db.add(game)
        db.flush()

        db.add(GameRound(game_id=game.id, round_number=1))
        for position, name in enumerate(payload.player_names, 1):
            db.add(GamePlayer(game_id=game.id, name=name, position=position))

        db.commit()
        db.refresh(game)
        logger.info(f"Created game {game.id} for {game.for_points} points with {len(payload.player_names)} players")
        return game

    @staticmethod
    def _get_or_create_round(db: DBSession, game: Game, round_number: int) -> GameRound:
        r = (
            db.query(GameRound)
            .filter(GameRound.game_id == game.id, GameRound.round_number == round_number)
            .first()
        )
        if r is None:
            r = GameRound(game_id=game.id, round_number=round_number)
            db.add(r)
            db.flush()
        return r

    @staticmethod
    def record_score(
        db: DBSession,
        game: Game,
        player_id: int,
        round_number: int | None,
        score: int | None,
        option: ScoreOption | None = None,
    ) -> tuple[int, int, bool]:
        """Validate and store one score. Returns (round_number, score, round_closed)."""
        snapshot = GameService.build_snapshot(db, game)
        if round_number is None:
            round_number = snapshot.current_round
        if option is not None:
            score = scoring.score_for_option(snapshot.config, option)

        updated = scoring.record_score(snapshot, player_id, round_number, cast(int, score), option)
        round_closed = scoring.validate_round(updated, round_number)

        r = GameService._get_or_create_round(db, game, round_number)
        row = (
            db.query(GameScore)
            .filter(GameScore.player_id == player_id, GameScore.round_id == r.id)
            .first()
        )
        if row is None:
            db.add(GameScore(game_id=game.id, player_id=player_id, round_id=r.id, score=score))
        else:
            row.score = cast(Any, score)

        if updated.current_round != snapshot.current_round:
            game.current_round = cast(Any, updated.current_round)
            GameService._get_or_create_round(db, game, updated.current_round)
            logger.info(f"Game {game.id}: round {round_number} closed, round {updated.current_round} open")

        db.commit()
        return round_number, cast(int, score), round_closed

    @staticmethod
    def remove_round(db: DBSession, game: Game, round_number: int) -> GameSnapshot:
        snapshot = GameService.build_snapshot(db, game)
        updated = scoring.remove_round(snapshot, round_number)

        r = (
            db.query(GameRound)
            .filter(GameRound.game_id == game.id, GameRound.round_number == round_number)
            .first()
        )
        if r is not None:
            db.query(GameScore).filter(GameScore.round_id == r.id).delete(synchronize_session=False)

        game.current_round = cast(Any, updated.current_round)
        db.commit()
        logger.info(f"Game {game.id}: removed round {round_number}, current round {updated.current_round}")
        return updated

    @staticmethod
    def re_enter(db: DBSession, game: Game, player: GamePlayer) -> GamePlayer:
        snapshot = GameService.build_snapshot(db, game)
        scoring.re_enter(snapshot, _as_int(player.id))

        player.is_active = cast(Any, True)
        player.has_re_entered = cast(Any, True)
        db.commit()
        db.refresh(player)
        logger.info(f"Game {game.id}: player {player.name} re-entered")
        return player

    @staticmethod
    def settle(db: DBSession, game: Game) -> list[PlayerSettlement]:
        """Compute, store and close out the game's settlement. Replaces any earlier one."""
        snapshot = GameService.build_snapshot(db, game)
        settlements = settle_snapshot(snapshot)

        db.query(GameSettlement).filter(GameSettlement.game_id == game.id).delete(synchronize_session=False)
        for s in settlements:
            db.add(
                GameSettlement(
                    game_id=game.id,
                    player_id=s.player_id,
                    final_score=s.final_score,
                    points_left=s.points_left,
                    packs_remaining=s.packs_remaining,
                    residual_points=s.residual_points,
                    settlement_amount=round(s.settlement_amount, 2),
                    is_winner=s.is_winner,
                )
            )
        game.status = cast(Any, "completed")
        db.commit()
        logger.info(f"Game {game.id}: settled {len(settlements)} players")
        return settlements
