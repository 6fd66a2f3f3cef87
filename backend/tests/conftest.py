import os
import sys

import pytest

# Ensure the backend root (containing the `rummy_scorer` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from rummy_scorer.core.db import make_engine
from rummy_scorer.core.deps import get_db
from rummy_scorer.main import create_app
from rummy_scorer.models.db import Base
from rummy_scorer.models.entities import GameConfig, GameSnapshot, PlayerEntity


@pytest.fixture()
def snapshot_factory():
    """Build a snapshot from per-player score lists.

    ``scores`` maps a player name to its round scores in order; ``None`` marks
    a round the player has not scored. Players get ids 1, 2, 3... in the order
    of ``names``. ``current_round`` defaults to one past the longest list.
    """

    def _make(scores=None, names=("A", "B", "C"), current_round=None,
              inactive=(), re_entered=(), **config):
        scores = scores or {}
        ids = {name: i for i, name in enumerate(names, 1)}
        players = tuple(
            PlayerEntity(
                id=ids[name],
                name=name,
                position=ids[name],
                is_active=name not in inactive,
                has_re_entered=name in re_entered,
            )
            for name in names
        )
        table = {}
        for name, rounds in scores.items():
            table[ids[name]] = {r: v for r, v in enumerate(rounds, 1) if v is not None}
        if current_round is None:
            current_round = max((len(v) for v in scores.values()), default=0) + 1
        return GameSnapshot(
            config=GameConfig(**config),
            players=players,
            scores=table,
            current_round=current_round,
        )

    return _make


@pytest.fixture()
def db_engine():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def client(db_engine):
    TestingSession = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    application = create_app()

    def _get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = _get_db
    return TestClient(application)
