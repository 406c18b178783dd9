"""Price comparison and notification decision logic."""

from decimal import ROUND_HALF_UP, Decimal

from price_tracker.models import (
    NotificationDecision,
    PriceDrop,
    PriceObservation,
    TargetReached,
)


def drop_percent(old_price: float, new_price: float) -> float:
    """Percentage drop to one decimal place, ties rounded up."""
    old = Decimal(repr(old_price))
    percent = (old - Decimal(repr(new_price))) / old * 100
    return float(percent.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def decide(old_price: float | None, new_price: float, target_price: float) -> NotificationDecision:
    """
    Decide which notification, if any, a price change warrants.

    A price of 0 means "not known yet" and is never compared. Crossing the
    target from above wins over a plain drop, so one observation yields at
    most one decision.
    """
    if old_price is None or old_price <= 0 or new_price <= 0:
        return None

    if new_price <= target_price < old_price:
        return TargetReached(current=new_price, target=target_price)

    if new_price < old_price:
        return PriceDrop(
            old_price=old_price,
            new_price=new_price,
            target_price=target_price,
            savings=old_price - new_price,
            percent=drop_percent(old_price, new_price),
            at_target=new_price <= target_price,
        )

    return None


def decide_observation(observation: PriceObservation) -> NotificationDecision:
    """Apply decide() to a PriceObservation."""
    return decide(observation.old_price, observation.new_price, observation.target_price)


def is_sticky(decision: NotificationDecision) -> bool:
    """Target notifications stay on screen until the user dismisses them."""
    if isinstance(decision, TargetReached):
        return True
    return isinstance(decision, PriceDrop) and decision.at_target
