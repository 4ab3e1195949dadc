from __future__ import annotations

import pytest

from tradeguide.models import MarketSnapshot, ScoreResult, Signal
from tradeguide.scoring import as_number, confidence_score, score_snapshot, top_probability


@pytest.mark.parametrize("ratio,slow_ma", [(None, 1.0), (1.0, None), (None, None), ("", 0.5), ("n/a", 0.5), (float("nan"), 0.5)])
def test_confidence_zero_when_inputs_absent(ratio, slow_ma):
    for sig in ("BUY", "SELL", "HOLD"):
        assert confidence_score(sig, ratio, slow_ma) == 0


def test_confidence_buy_above_ma_stays_at_floor():
    assert confidence_score("BUY", 105, 100) == 10


def test_confidence_buy_far_below_ma_caps_at_100():
    assert confidence_score("BUY", 50, 100) == 100


def test_confidence_buy_partial_distance():
    # distance 10 over half of 100 -> 20%
    assert confidence_score(Signal.BUY, 90, 100) == 20


def test_confidence_small_distance_is_lifted_to_floor():
    assert confidence_score("BUY", 99, 100) == 10


def test_confidence_sell_mirrors_buy():
    assert confidence_score("SELL", 95, 100) == 10
    assert confidence_score("SELL", 130, 100) == 60
    assert confidence_score("SELL", 500, 100) == 100


def test_confidence_hold_and_unknown_signals_use_floor():
    assert confidence_score("HOLD", 50, 100) == 10
    assert confidence_score("WAIT", 50, 100) == 10
    assert confidence_score(None, 50, 100) == 10


def test_confidence_signal_is_case_insensitive_and_accepts_strings():
    assert confidence_score("buy", "0.60", "0.80") == 50


def test_confidence_equal_ratio_and_ma():
    assert confidence_score("BUY", 0.67, 0.67) == 10
    assert confidence_score("SELL", 0.67, 0.67) == 10


def test_confidence_zero_slow_ma():
    assert confidence_score("BUY", -1, 0) == 100
    assert confidence_score("BUY", 0, 0) == 10


def test_confidence_rounds_half_up():
    # distance 1 over half of 16 -> 12.5%
    assert confidence_score("BUY", 15, 16) == 13


@pytest.mark.parametrize("ratio,slow_ma", [(0.1, 0.2), (3.0, 1.0), (0.65, 0.67), (1e6, 1e-6), (-5, 3), (7, -2)])
def test_confidence_range_for_numeric_inputs(ratio, slow_ma):
    for sig in ("BUY", "SELL", "HOLD"):
        assert 10 <= confidence_score(sig, ratio, slow_ma) <= 100


def test_top_probability_anchor_points():
    assert top_probability(100, 100) == 10
    assert top_probability(118, 100) == 60
    assert top_probability(136, 100) == 90


def test_top_probability_below_one_is_zero():
    assert top_probability(90, 100) == 0
    assert top_probability(99.99, 100) == 0


def test_top_probability_saturates():
    assert top_probability(200, 100) == 90
    assert top_probability(10_000, 1) == 90


def test_top_probability_interpolates():
    assert top_probability(109, 100) == 35
    assert top_probability(127, 100) == 75
    assert top_probability(150000, 125000) == 63


@pytest.mark.parametrize("price,srp", [(None, 100), (100, None), (0, 100), (100, 0), ("", 100), (float("nan"), 100)])
def test_top_probability_falsy_inputs(price, srp):
    assert top_probability(price, srp) == 0


def test_scores_are_pure():
    args = ("SELL", 0.91, 0.67)
    assert {confidence_score(*args) for _ in range(5)} == {confidence_score(*args)}
    assert {top_probability(131000, 101000) for _ in range(5)} == {top_probability(131000, 101000)}


def test_score_snapshot():
    snap = MarketSnapshot(Signal.BUY, 0.6, 0.8, 150000.0, 125000.0)
    assert score_snapshot(snap) == ScoreResult(confidence_score=50, top_probability=63)
    assert score_snapshot(MarketSnapshot()) == ScoreResult(0, 0)


def test_as_number():
    assert as_number("123,456.5") == 123456.5
    assert as_number(" 0.65 ") == 0.65
    assert as_number(True) is None
    assert as_number(float("inf")) is None
    assert as_number(object()) is None
