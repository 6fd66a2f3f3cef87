from __future__ import annotations

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session as DBSession

from .db import SessionLocal
from .exceptions import ErrorMessages, RummyError
from ..models.db import Game


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_game(game_id: int, db: DBSession = Depends(get_db)) -> Game:
    game = db.query(Game).filter(Game.id == game_id).first()
    if game is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ErrorMessages.GAME_NOT_FOUND)
    return game


def rejected(err: RummyError) -> HTTPException:
    """Map an engine rejection to a 400 the client can show as a notice."""
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=err.as_detail())
