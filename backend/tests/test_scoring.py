import pytest

from rummy_scorer.core.exceptions import GameError, RoundError, ScoreError
from rummy_scorer.models.entities import GameConfig, PlayerState, ScoreOption
from rummy_scorer.services import scoring


# --- totals and pack budget -------------------------------------------------

def test_pack_metrics_for_mixed_totals(snapshot_factory):
    snap = snapshot_factory({"A": [101], "B": [40], "C": [65]})

    assert scoring.packs_remaining_for(snap, 2) == 2  # (101 - 40) // 25
    assert scoring.packs_remaining_for(snap, 3) == 1  # (101 - 65) // 25
    assert scoring.points_left_for(snap, 1) == 0
    assert scoring.packs_remaining_for(snap, 1) == 0
    assert scoring.residual_points_for(snap, 2) == 11
    assert scoring.residual_points_for(snap, 3) == 11


def test_total_ignores_missing_rounds(snapshot_factory):
    snap = snapshot_factory({"A": [10, None, 5], "B": [0, 20, 0]})
    assert scoring.total_for(snap, 1) == 15
    assert scoring.total_for(snap, 3) == 0
    assert scoring.total_for(snap, 2, through_round=2) == 20


def test_points_left_has_no_extra_margin(snapshot_factory):
    # One point short of for_points still leaves exactly one point
    snap = snapshot_factory({"A": [100], "B": [76], "C": [90]})
    assert scoring.points_left_for(snap, 1) == 1
    assert scoring.packs_remaining_for(snap, 1) == 0
    assert scoring.points_left_for(snap, 2) == 25
    assert scoring.packs_remaining_for(snap, 2) == 1
    assert scoring.residual_points_for(snap, 2) == 0


def test_pack_safe(snapshot_factory):
    snap = snapshot_factory({"A": [76], "B": [90], "C": [40]})
    assert scoring.pack_safe_for(snap, 1) == 25
    assert scoring.pack_safe_for(snap, 2) == 0
    assert scoring.pack_safe_for(snap, 3) == 14  # 61 left, residual 11


@pytest.mark.parametrize("totals", [
    [0, 0, 0],
    [24, 25, 26],
    [99, 100, 101],
    [150, 7, 51],
])
def test_pack_invariants(snapshot_factory, totals):
    snap = snapshot_factory({"A": [totals[0]], "B": [totals[1]], "C": [totals[2]]})
    for pid, total in zip((1, 2, 3), totals):
        left = scoring.points_left_for(snap, pid)
        assert left == max(0, 101 - total)
        assert scoring.packs_remaining_for(snap, pid) == left // 25
        assert 0 <= scoring.residual_points_for(snap, pid) < 25


def test_packs_per_game():
    assert scoring.packs_per_game(101, 25) == 4
    assert scoring.packs_per_game(100, 25) == 3


# --- player state -------------------------------------------------------------

def test_last_contender_is_winner(snapshot_factory):
    snap = snapshot_factory({"A": [110], "B": [120], "C": [30]})
    assert scoring.player_state(snap, 3) == PlayerState.WINNER
    assert scoring.player_state(snap, 1) == PlayerState.OUT
    assert scoring.player_state(snap, 2) == PlayerState.OUT


def test_out_takes_precedence_over_compulsory(snapshot_factory):
    snap = snapshot_factory({"A": [101], "B": [10], "C": [20]})
    assert scoring.player_state(snap, 1) == PlayerState.OUT


def test_compulsory_when_no_packs_left(snapshot_factory):
    snap = snapshot_factory({"A": [80], "B": [10], "C": [0]})
    assert scoring.player_state(snap, 1) == PlayerState.COMPULSORY


def test_least_needs_strict_minimum(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [30], "C": [45]})
    assert scoring.player_state(snap, 1) == PlayerState.LEAST
    assert scoring.player_state(snap, 2) == PlayerState.NONE


def test_tied_leaders_get_no_label(snapshot_factory):
    snap = snapshot_factory({"A": [0, 20], "B": [20, 0], "C": [45, 30]})
    assert scoring.player_state(snap, 1) == PlayerState.NONE
    assert scoring.player_state(snap, 2) == PlayerState.NONE


def test_least_waits_for_first_round(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [30]})
    assert scoring.player_state(snap, 1) == PlayerState.NONE


def test_inactive_players_do_not_count_as_contenders(snapshot_factory):
    snap = snapshot_factory({"A": [10], "B": [105], "C": [40]}, inactive=("A",))
    assert scoring.player_state(snap, 3) == PlayerState.WINNER
    assert scoring.player_state(snap, 1) == PlayerState.NONE


def test_state_for_unknown_player(snapshot_factory):
    snap = snapshot_factory({"A": [0]})
    with pytest.raises(ScoreError) as exc:
        scoring.player_state(snap, 42)
    assert exc.value.code == ScoreError.UNKNOWN_PLAYER


def test_player_metrics_bundle(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [30], "C": [45]})
    metrics = scoring.all_player_metrics(snap)
    assert [m.name for m in metrics] == ["A", "B", "C"]
    b = metrics[1]
    assert (b.total_score, b.points_left, b.packs_remaining, b.residual_points) == (30, 71, 2, 21)
    assert b.pack_safe == 4
    assert metrics[0].state == PlayerState.LEAST


# --- round validation -----------------------------------------------------------

def test_round_with_one_rummy_closes(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [30], "C": [45]})
    assert scoring.validate_round(snap, 1) is True


def test_round_waits_for_all_contenders(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [30], "C": [None]})
    assert scoring.validate_round(snap, 1) is False


def test_round_without_rummy_is_rejected(snapshot_factory):
    snap = snapshot_factory({"A": [10], "B": [30], "C": [45]})
    with pytest.raises(RoundError) as exc:
        scoring.validate_round(snap, 1)
    assert exc.value.code == RoundError.NO_RUMMY


def test_round_with_two_rummies_is_rejected(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [0], "C": [45]})
    with pytest.raises(RoundError) as exc:
        scoring.validate_round(snap, 1)
    assert exc.value.code == RoundError.MULTIPLE_RUMMY


def test_player_out_before_round_is_not_awaited(snapshot_factory):
    snap = snapshot_factory({
        "A": [0, 25, 0],
        "B": [80, 25, None],
        "C": [30, 0, 10],
    })
    assert scoring.validate_round(snap, 3) is True


# --- score entry ----------------------------------------------------------------

def test_score_ceiling_follows_full_count():
    assert scoring.score_ceiling(GameConfig()) == 80
    assert scoring.score_ceiling(GameConfig(full_count_points=60)) == 101


def test_score_above_ceiling_rejected(snapshot_factory):
    snap = snapshot_factory(current_round=1)
    with pytest.raises(ScoreError) as exc:
        scoring.record_score(snap, 1, 1, 81)
    assert exc.value.code == ScoreError.EXCEEDS_MAX


def test_score_ceiling_is_for_points_without_standard_full_count(snapshot_factory):
    snap = snapshot_factory(current_round=1, full_count_points=60)
    updated = scoring.record_score(snap, 1, 1, 90)
    assert updated.scores[1][1] == 90


def test_negative_score_rejected(snapshot_factory):
    snap = snapshot_factory(current_round=1)
    with pytest.raises(ScoreError) as exc:
        scoring.record_score(snap, 1, 1, -5)
    assert exc.value.code == ScoreError.NEGATIVE_SCORE


def test_compulsory_player_cannot_pack(snapshot_factory):
    snap = snapshot_factory({"A": [80], "B": [0], "C": [10]}, current_round=2)
    for option in (ScoreOption.PACK, ScoreOption.MID_PACK):
        score = scoring.score_for_option(snap.config, option)
        with pytest.raises(ScoreError) as exc:
            scoring.record_score(snap, 1, 2, score, option)
        assert exc.value.code == ScoreError.COMPULSORY_PLAY

    # a full count or a counted hand is still fine
    scoring.record_score(snap, 1, 2, 80, ScoreOption.FULL_COUNT)
    scoring.record_score(snap, 1, 2, 25)


def test_out_player_cannot_score(snapshot_factory):
    snap = snapshot_factory({"A": [101], "B": [0], "C": [10]}, current_round=2)
    with pytest.raises(ScoreError) as exc:
        scoring.record_score(snap, 1, 2, 10)
    assert exc.value.code == ScoreError.PLAYER_NOT_CONTENDING


def test_future_round_rejected(snapshot_factory):
    snap = snapshot_factory(current_round=1)
    with pytest.raises(ScoreError) as exc:
        scoring.record_score(snap, 1, 2, 10)
    assert exc.value.code == ScoreError.ROUND_NOT_OPEN


def test_score_options():
    cfg = GameConfig(pack_points=20, mid_pack_points=40, full_count_points=80)
    assert scoring.score_for_option(cfg, ScoreOption.RUMMY) == 0
    assert scoring.score_for_option(cfg, ScoreOption.PACK) == 20
    assert scoring.score_for_option(cfg, ScoreOption.MID_PACK) == 40
    assert scoring.score_for_option(cfg, ScoreOption.FULL_COUNT) == 80


def test_recording_a_round_advances_current_round(snapshot_factory):
    snap = snapshot_factory(current_round=1)
    snap = scoring.record_score(snap, 1, 1, 0)
    snap = scoring.record_score(snap, 2, 1, 30)
    assert snap.current_round == 1

    closed = scoring.record_score(snap, 3, 1, 45)
    assert closed.current_round == 2
    # the input snapshot is untouched
    assert snap.current_round == 1
    assert 3 not in snap.scores


def test_invalid_closing_entry_leaves_snapshot_unchanged(snapshot_factory):
    snap = snapshot_factory(current_round=1)
    snap = scoring.record_score(snap, 1, 1, 10)
    snap = scoring.record_score(snap, 2, 1, 30)
    before = {pid: dict(e) for pid, e in snap.scores.items()}

    with pytest.raises(RoundError):
        scoring.record_score(snap, 3, 1, 45)
    assert snap.scores == before
    assert snap.current_round == 1


def test_editing_closed_round_is_revalidated(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [30], "C": [45]})
    assert snap.current_round == 2

    with pytest.raises(RoundError) as exc:
        scoring.record_score(snap, 2, 1, 0)
    assert exc.value.code == RoundError.MULTIPLE_RUMMY

    edited = scoring.record_score(snap, 2, 1, 20)
    assert edited.scores[2][1] == 20
    assert edited.current_round == 2


@pytest.mark.parametrize("raw,expected", [
    ("12", 12),
    (" 7 ", 7),
    (0, 0),
    ("abc", None),
    ("", None),
    ("-3", None),
    ("4.5", None),
    (None, None),
    (True, None),
])
def test_parse_score(raw, expected):
    assert scoring.parse_score(raw) == expected


# --- round removal --------------------------------------------------------------

def test_removing_last_closed_round_reopens_it(snapshot_factory):
    snap = snapshot_factory({"A": [0, 20], "B": [30, 0], "C": [45, 10]})
    assert snap.current_round == 3

    updated = scoring.remove_round(snap, 2)
    assert updated.current_round == 2
    assert all(2 not in entries for entries in updated.scores.values())
    assert scoring.total_for(updated, 1) == 0
    assert snap.current_round == 3


def test_removing_older_round_keeps_pointer(snapshot_factory):
    snap = snapshot_factory({"A": [0, 20], "B": [30, 0], "C": [45, 10]})
    updated = scoring.remove_round(snap, 1)
    assert updated.current_round == 3
    assert updated.scores[2] == {2: 0}


def test_removing_unknown_round(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [30], "C": [45]})
    with pytest.raises(RoundError) as exc:
        scoring.remove_round(snap, 5)
    assert exc.value.code == RoundError.UNKNOWN_ROUND


# --- re-entry ---------------------------------------------------------------------

FOUR = ("A", "B", "C", "D")


def test_re_entry_flips_flags_only(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [25], "C": [25], "D": [105]}, names=FOUR)
    updated = scoring.re_enter(snap, 4)

    d = updated.player(4)
    assert d.is_active and d.has_re_entered
    assert scoring.total_for(updated, 4) == 105
    assert not snap.player(4).has_re_entered


def test_re_entered_player_plays_the_next_round(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [25], "C": [25], "D": [105]}, names=FOUR)
    assert scoring.player_state(snap, 4) == PlayerState.OUT

    back = scoring.re_enter(snap, 4)
    assert [p.id for p in scoring.contending_players(back)] == [1, 2, 3, 4]
    assert scoring.player_state(back, 4) == PlayerState.COMPULSORY

    for pid, score in ((1, 10), (2, 0), (3, 30)):
        back = scoring.record_score(back, pid, 2, score)
    assert back.current_round == 2  # still waiting on D

    with pytest.raises(ScoreError) as exc:
        scoring.record_score(back, 4, 2, 25, ScoreOption.PACK)
    assert exc.value.code == ScoreError.COMPULSORY_PLAY

    back = scoring.record_score(back, 4, 2, 10)
    assert back.current_round == 3
    assert scoring.total_for(back, 4) == 115


def test_re_entered_player_marked_inactive_is_out(snapshot_factory):
    snap = snapshot_factory(
        {"A": [0], "B": [25], "C": [25], "D": [105]}, names=FOUR, re_entered=("D",), inactive=("D",)
    )
    assert scoring.player_state(snap, 4) == PlayerState.OUT
    assert 4 not in {p.id for p in scoring.contending_players(snap)}


def test_re_entry_twice_refused(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [25], "C": [25], "D": [105]}, names=FOUR, re_entered=("D",))
    with pytest.raises(GameError) as exc:
        scoring.re_enter(snap, 4)
    assert exc.value.code == GameError.ALREADY_RE_ENTERED


def test_re_entry_needs_player_out(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [25], "C": [25], "D": [50]}, names=FOUR)
    with pytest.raises(GameError) as exc:
        scoring.re_enter(snap, 4)
    assert exc.value.code == GameError.PLAYER_NOT_OUT


def test_re_entry_disabled(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [25], "C": [25], "D": [105]}, names=FOUR, re_entry_allowed=False)
    with pytest.raises(GameError) as exc:
        scoring.re_enter(snap, 4)
    assert exc.value.code == GameError.RE_ENTRY_NOT_ALLOWED


def test_re_entry_needs_three_contenders(snapshot_factory):
    snap = snapshot_factory({"A": [0], "B": [25], "C": [105]})
    with pytest.raises(GameError) as exc:
        scoring.re_enter(snap, 3)
    assert exc.value.code == GameError.INSUFFICIENT_ACTIVE_PLAYERS


def test_re_entry_needs_a_pack_left(snapshot_factory):
    snap = snapshot_factory({"A": [80], "B": [85], "C": [90], "D": [105]}, names=FOUR)
    with pytest.raises(GameError) as exc:
        scoring.re_enter(snap, 4)
    assert exc.value.code == GameError.NO_PACKS_REMAINING


# --- config and helpers ----------------------------------------------------------

@pytest.mark.parametrize("options", [
    {"pack_points": 0},
    {"pack_points": 101},
    {"for_points": 0},
    {"joker_type": "wild"},
    {"player_count": 8},
    {"buy_in_amount": -1},
    {"currency": ""},
    {"mid_pack_points": 90},
    {"full_count_points": 120},
])
def test_invalid_config_rejected(options):
    with pytest.raises(GameError) as exc:
        GameConfig(**options)
    assert exc.value.code == GameError.INVALID_CONFIG


def test_round_breakdown_and_completion(snapshot_factory):
    snap = snapshot_factory({"A": [0, 20], "B": [30, 0], "C": [45, None]})
    assert scoring.round_breakdown(snap) == [
        (1, {1: 0, 2: 30, 3: 45}),
        (2, {1: 20, 2: 0}),
    ]
    assert scoring.is_game_complete(snap) is False
    assert scoring.is_game_complete(snapshot_factory({"A": [101]})) is True
