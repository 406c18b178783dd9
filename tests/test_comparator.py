"""Tests for the price change decision rules."""

import pytest

from price_tracker.comparator import decide, decide_observation, drop_percent, is_sticky
from price_tracker.models import PriceDrop, PriceObservation, TargetReached


@pytest.mark.parametrize(
    "old, new",
    [(None, 450), (0, 450), (-5, 450), (600, 0), (600, -1), (0, 0)],
)
def test_unknown_prices_never_notify(old, new):
    assert decide(old, new, 500) is None


def test_crossing_target_from_above():
    assert decide(600, 450, 500) == TargetReached(current=450, target=500)


def test_landing_exactly_on_target_counts_as_reached():
    assert decide(510, 500, 500) == TargetReached(current=500, target=500)


def test_plain_drop_above_target():
    decision = decide(600, 550, 500)

    assert isinstance(decision, PriceDrop)
    assert decision.old_price == 600
    assert decision.new_price == 550
    assert decision.savings == 50
    assert decision.percent == 8.3
    assert decision.at_target is False


def test_drop_that_crosses_target_is_only_target_reached():
    decision = decide(600, 480, 500)

    assert decision == TargetReached(current=480, target=500)
    assert not isinstance(decision, PriceDrop)


def test_further_drop_while_already_below_target():
    decision = decide(480, 456, 500)

    assert isinstance(decision, PriceDrop)
    assert decision.at_target is True
    assert decision.savings == pytest.approx(24)
    assert decision.percent == 5.0


def test_drop_from_exactly_target_is_a_drop_not_a_crossing():
    decision = decide(500, 450, 500)

    assert isinstance(decision, PriceDrop)
    assert decision.at_target is True


@pytest.mark.parametrize("old, new", [(500, 520), (500, 500), (450, 450), (450, 470)])
def test_no_change_or_increase(old, new):
    assert decide(old, new, 500) is None


def test_savings_keep_full_precision():
    decision = decide(199.99, 149.49, 100)

    assert decision.savings == pytest.approx(50.5)
    assert decision.percent == 25.3


def test_target_reached_does_not_repeat_on_later_checks():
    prices = [600, 480, 480, 480]
    decisions = [decide(old, new, 500) for old, new in zip(prices, prices[1:])]

    assert decisions == [TargetReached(current=480, target=500), None, None]


def test_target_reached_only_on_crossing():
    target = 500
    for old in (0, 300, 499, 500, 501, 800):
        for new in (0, 300, 499, 500, 501, 800):
            decision = decide(old, new, target)
            crossed = old > 0 and new > 0 and old > target >= new
            assert isinstance(decision, TargetReached) == crossed


def test_decide_observation_matches_decide():
    observation = PriceObservation(old_price=600, new_price=550, target_price=500)

    assert decide_observation(observation) == decide(600, 550, 500)


def test_sticky_decisions():
    assert is_sticky(TargetReached(current=450, target=500))
    assert is_sticky(decide(480, 456, 500))
    assert not is_sticky(decide(600, 550, 500))
    assert not is_sticky(None)


@pytest.mark.parametrize(
    "old, new, percent",
    [(112, 77, 31.3), (112, 105, 6.3), (128, 56, 56.3), (160, 158, 1.3)],
)
def test_percent_ties_round_up(old, new, percent):
    assert decide(old, new, 0).percent == percent


def test_drop_percent_uses_exact_decimal_prices():
    assert drop_percent(199.99, 149.49) == 25.3
    assert drop_percent(20.0, 19.97) == 0.2
