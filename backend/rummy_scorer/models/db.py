from __future__ import annotations

import datetime as dt

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Game(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    player_count = Column(Integer, nullable=False)
    for_points = Column(Integer, nullable=False)
    buy_in_amount = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(8), nullable=False, default="$")
    pack_points = Column(Integer, nullable=False, default=25)
    mid_pack_points = Column(Integer, nullable=False, default=50)
    full_count_points = Column(Integer, nullable=False, default=80)
    joker_type = Column(String(16), nullable=False, default="opposite")
    sequence_count = Column(Integer, nullable=False, default=2)
    all_trips_double_points = Column(Boolean, nullable=False, default=True)
    all_seqs_double_points = Column(Boolean, nullable=False, default=False)
    all_jokers_full_money = Column(Boolean, nullable=False, default=False)
    re_entry_allowed = Column(Boolean, nullable=False, default=True)
    status = Column(String(16), nullable=False, default="active")  # active|completed|cancelled
    current_round = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=lambda: dt.datetime.utcnow())
    updated_at = Column(DateTime, nullable=False, default=lambda: dt.datetime.utcnow(), onupdate=lambda: dt.datetime.utcnow())

    players = relationship(
        "GamePlayer", back_populates="game", cascade="all, delete-orphan", order_by="GamePlayer.position"
    )
    rounds = relationship(
        "GameRound", back_populates="game", cascade="all, delete-orphan", order_by="GameRound.round_number"
    )
    scores = relationship("GameScore", back_populates="game", cascade="all, delete-orphan")
    settlements = relationship("GameSettlement", back_populates="game", cascade="all, delete-orphan")


class GamePlayer(Base):
    __tablename__ = "game_players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    position = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    has_re_entered = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=lambda: dt.datetime.utcnow())

    game = relationship("Game", back_populates="players")

    __table_args__ = (
        UniqueConstraint("game_id", "position", name="uq_game_player_position"),
    )


class GameRound(Base):
    __tablename__ = "game_rounds"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    round_number = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=lambda: dt.datetime.utcnow())

    game = relationship("Game", back_populates="rounds")
    scores = relationship("GameScore", back_populates="round", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("game_id", "round_number", name="uq_game_round_number"),
    )


class GameScore(Base):
    __tablename__ = "game_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("game_players.id"), nullable=False, index=True)
    round_id = Column(Integer, ForeignKey("game_rounds.id"), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=lambda: dt.datetime.utcnow())

    game = relationship("Game", back_populates="scores")
    player = relationship("GamePlayer")
    round = relationship("GameRound", back_populates="scores")

    __table_args__ = (
        UniqueConstraint("player_id", "round_id", name="uq_game_score_player_round"),
    )


class GameSettlement(Base):
    __tablename__ = "game_settlements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("game_players.id"), nullable=False)
    final_score = Column(Integer, nullable=False)
    points_left = Column(Integer, nullable=False)
    packs_remaining = Column(Integer, nullable=False)
    residual_points = Column(Integer, nullable=False)
    settlement_amount = Column(Numeric(10, 2), nullable=False)
    is_winner = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=lambda: dt.datetime.utcnow())

    game = relationship("Game", back_populates="settlements")
    player = relationship("GamePlayer")
