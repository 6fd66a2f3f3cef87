import pytest

from rummy_scorer.core.exceptions import GameError
from rummy_scorer.models.entities import GameConfig
from rummy_scorer.services.settlement import (
    PlayerTotal,
    calculate_settlement,
    check_settlement_ready,
    format_currency,
    results_text,
    settle_snapshot,
    settlement_summary,
)


def _totals(**scores):
    return [PlayerTotal(i, name, total) for i, (name, total) in enumerate(scores.items(), 1)]


def _by_name(settlements):
    return {s.player_name: s for s in settlements}


def test_three_player_game_with_an_out_player():
    cfg = GameConfig(buy_in_amount=10)
    result = _by_name(calculate_settlement(_totals(A=20, B=110, C=70), cfg))

    assert result["A"].is_winner
    assert not result["B"].is_winner and not result["C"].is_winner
    assert result["C"].settlement_amount == -20  # 50 behind -> 2 packs
    assert result["B"].settlement_amount == -30  # 90 behind -> 3 packs
    assert result["A"].settlement_amount == 50
    assert result["B"].points_left == 0
    assert result["B"].packs_remaining == 0


def test_pack_columns_follow_points_left():
    cfg = GameConfig(buy_in_amount=5)
    result = _by_name(calculate_settlement(_totals(A=101, B=40, C=65), cfg))

    assert result["B"].packs_remaining == 2
    assert result["C"].packs_remaining == 1
    assert result["A"].points_left == 0
    assert result["A"].packs_remaining == 0
    assert result["B"].residual_points == 11
    assert result["B"].is_winner


def test_no_buy_in_means_no_money():
    result = calculate_settlement(_totals(A=20, B=110, C=70), GameConfig(buy_in_amount=0))
    assert [s.settlement_amount for s in result] == [0, 0, 0]
    assert result[0].is_winner


@pytest.mark.parametrize("buy_in,totals", [
    (10, {"A": 0, "B": 26, "C": 51, "D": 99}),
    (2.5, {"A": 33, "B": 80, "C": 140}),
    (0.1, {"A": 12, "B": 37, "C": 62, "D": 87, "E": 112}),
    (7.35, {"A": 5, "B": 5, "C": 104}),
])
def test_amounts_always_net_to_zero(buy_in, totals):
    result = calculate_settlement(_totals(**totals), GameConfig(buy_in_amount=buy_in))
    assert abs(sum(s.settlement_amount for s in result)) <= 0.01


def test_shared_lowest_total_pays_the_first_seat():
    result = calculate_settlement(_totals(A=20, B=20, C=70), GameConfig(buy_in_amount=10))
    a, b, c = result

    assert a.is_winner and b.is_winner
    assert a.settlement_amount == 20
    assert b.settlement_amount == 0
    assert c.settlement_amount == -20


def test_empty_input():
    assert calculate_settlement([], GameConfig(buy_in_amount=10)) == []
    summary = settlement_summary([])
    assert summary.winner == "Unknown"
    assert summary.player_count == 0


def test_summary():
    result = calculate_settlement(_totals(A=20, B=110, C=70), GameConfig(buy_in_amount=10))
    summary = settlement_summary(result)

    assert summary.winner == "A"
    assert summary.total_money == 50
    assert summary.max_loss == 30
    assert summary.max_gain == 50
    assert summary.player_count == 3


@pytest.mark.parametrize("amount,expected", [
    (12.5, "+$12.50"),
    (-3, "-$3.00"),
    (0, "+$0.00"),
    ("7.25", "+$7.25"),
    ("abc", "$0"),
])
def test_format_currency(amount, expected):
    assert format_currency(amount, "$") == expected


def test_results_text():
    result = calculate_settlement(_totals(A=20, B=110, C=70), GameConfig(buy_in_amount=10))
    text = results_text(result, "$")

    assert "Winner: A" in text
    assert "A: 20 pts (winner)" in text
    assert "B: -$30.00" in text
    assert "A: +$50.00" in text


def test_settle_snapshot_uses_seat_order(snapshot_factory):
    snap = snapshot_factory({"A": [0, 20], "B": [80, 30], "C": [30, 0]}, buy_in_amount=10)
    result = settle_snapshot(snap)

    assert [s.player_name for s in result] == ["A", "B", "C"]
    assert [s.final_score for s in result] == [20, 110, 30]
    assert result[1].settlement_amount == -30


def test_settlement_needs_two_players(snapshot_factory):
    snap = snapshot_factory({"A": [0]}, names=("A",), player_count=2)
    with pytest.raises(GameError) as exc:
        check_settlement_ready(snap)
    assert exc.value.code == GameError.INSUFFICIENT_ACTIVE_PLAYERS


def test_settlement_refused_with_five_contenders(snapshot_factory):
    names = ("A", "B", "C", "D", "E")
    snap = snapshot_factory({"A": [0], "B": [10], "C": [20], "D": [30], "E": [40]}, names=names, player_count=5)
    with pytest.raises(GameError) as exc:
        settle_snapshot(snap)
    assert exc.value.code == GameError.TOO_MANY_CONTENDERS


def test_everyone_out_falls_back_to_lowest_total():
    result = calculate_settlement(_totals(A=120, B=150), GameConfig(buy_in_amount=10))
    a, b = result

    assert a.is_winner and not b.is_winner
    assert b.settlement_amount == -10  # 30 behind -> 1 pack
    assert a.settlement_amount == 10


def test_settlement_counts_only_active_players(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [30], "C": [45]}, inactive=("B", "C"))
    with pytest.raises(GameError) as exc:
        check_settlement_ready(snap)
    assert exc.value.code == GameError.INSUFFICIENT_ACTIVE_PLAYERS
