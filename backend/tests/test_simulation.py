import math

import numpy as np
import pytest
from pydantic import ValidationError

from suitsim.data.presets import DEFAULT_PAYOUTS
from suitsim.engine.errors import SimulationCancelled
from suitsim.engine.simulation import SimulationChunk, aggregate_chunks, simulate
from suitsim.models import SimulationRequest


def test_same_seed_gives_identical_summary():
    s1 = simulate(500, DEFAULT_PAYOUTS, 9, seed=987654321)
    s2 = simulate(500, DEFAULT_PAYOUTS, 9, seed=987654321)
    assert s1.model_dump_json() == s2.model_dump_json()
    assert s1.reproducible


def test_text_seed_is_reproducible():
    s1 = simulate(200, DEFAULT_PAYOUTS, 9, seed="high roller")
    s2 = simulate(200, DEFAULT_PAYOUTS, 9, seed="high roller")
    assert s1 == s2


def test_different_seeds_differ():
    s1 = simulate(300, DEFAULT_PAYOUTS, 9, seed=1)
    s2 = simulate(300, DEFAULT_PAYOUTS, 9, seed=2)
    assert s1.results != s2.results


def test_small_run_end_to_end():
    summary = simulate(20, DEFAULT_PAYOUTS, 9, seed=42)
    dist = summary.hand_distribution
    assert dist.total_hands == 20
    assert dist.above_minimum + dist.below_minimum == 20
    assert math.isclose(dist.above_minimum_percentage + dist.below_minimum_percentage, 100.0)
    assert [r.bet_type for r in summary.results] == ["Base Game", "Flush Rush Bonus", "Super Flush Rush Bonus"]
    for result in summary.results:
        assert math.isfinite(result.total_bet) and result.total_bet >= 0
        assert math.isfinite(result.total_won) and result.total_won >= 0
        assert 0 <= result.win_rate <= 100
    base, flush_rush, super_flush_rush = summary.results
    # every hand antes one unit; side bets are one unit each
    assert base.total_bet >= 20
    assert flush_rush.total_bet == 20
    assert super_flush_rush.total_bet == 20
    assert flush_rush.hands_won + flush_rush.hands_lost == 20


def test_unseeded_run_is_flagged_non_reproducible():
    summary = simulate(10, DEFAULT_PAYOUTS, 9)
    assert not summary.reproducible
    assert summary.hand_distribution.total_hands == 10


def test_lower_threshold_never_folds_more():
    strict = simulate(400, DEFAULT_PAYOUTS, 14, seed=5)
    loose = simulate(400, DEFAULT_PAYOUTS, 0, seed=5)
    assert loose.hand_distribution.below_minimum <= strict.hand_distribution.below_minimum
    # side bets see the same deals regardless of the fold threshold
    assert loose.results[1] == strict.results[1]
    assert loose.results[2] == strict.results[2]


def test_three_card_breakdown_is_consistent():
    summary = simulate(2000, DEFAULT_PAYOUTS, 0, seed=11)
    stats = summary.three_card_flush_stats
    assert stats
    assert sum(s.total_hands for s in stats) <= summary.hand_distribution.above_minimum
    for s in stats:
        assert s.wins + s.losses <= s.total_hands
    # best high cards first
    assert stats[0].high_cards.startswith("A-")


def test_progress_reports_climb_to_100():
    seen = []
    simulate(250, DEFAULT_PAYOUTS, 9, seed=3, on_progress=seen.append)
    assert seen[0] == 0
    assert seen[-1] == 100.0
    assert seen == sorted(seen)
    assert all(0 <= p <= 100 for p in seen)


def test_progress_does_not_change_outcome():
    quiet = simulate(300, DEFAULT_PAYOUTS, 9, seed=8)
    noisy = simulate(300, DEFAULT_PAYOUTS, 9, seed=8, on_progress=lambda p: None)
    assert quiet == noisy


def test_cancel_check_stops_run():
    with pytest.raises(SimulationCancelled):
        simulate(1000, DEFAULT_PAYOUTS, 9, seed=1, cancel_check=lambda: True)


def test_timeout_stops_run():
    with pytest.raises(SimulationCancelled):
        simulate(1000, DEFAULT_PAYOUTS, 9, seed=1, timeout=0)


@pytest.mark.parametrize("hands", [0, -5])
def test_rejects_non_positive_hand_count(hands):
    with pytest.raises(ValidationError):
        simulate(hands, DEFAULT_PAYOUTS, 9, seed=1)


@pytest.mark.parametrize("rank", [-1, 1, 4, 15])
def test_rejects_unknown_threshold(rank):
    with pytest.raises(ValidationError):
        simulate(10, DEFAULT_PAYOUTS, rank, seed=1)


def test_rejects_malformed_payouts():
    bad = DEFAULT_PAYOUTS.model_dump()
    del bad["flush_rush"]["six_card"]
    with pytest.raises(ValidationError):
        simulate(10, bad, 9, seed=1)

    bad = DEFAULT_PAYOUTS.model_dump()
    bad["super_flush_rush"]["three_card_straight"] = "lots"
    with pytest.raises(ValidationError):
        SimulationRequest(hands=10, payouts=bad)

    bad = DEFAULT_PAYOUTS.model_dump()
    bad["flush_rush"]["four_card"] = -1
    with pytest.raises(ValidationError):
        SimulationRequest(hands=10, payouts=bad)


def test_empty_totals_derive_zero_not_nan():
    chunk = SimulationChunk(hands=0, tallies=np.zeros((3, 4)))
    summary = aggregate_chunks([chunk])
    for result in summary.results:
        assert result.expected_return == 0.0
        assert result.win_rate == 0.0
    assert summary.hand_distribution.above_minimum_percentage == 0.0
    assert summary.three_card_flush_stats == []


def test_cancel_is_honoured_at_the_next_hand():
    calls = []

    def cancel_after_five():
        calls.append(1)
        return len(calls) > 5

    with pytest.raises(SimulationCancelled, match="after 5 of 1000 hands"):
        simulate(1000, DEFAULT_PAYOUTS, 9, seed=1, cancel_check=cancel_after_five)
