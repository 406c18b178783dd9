"""Notification text for price changes."""

from price_tracker.models import NotificationDecision, PriceDrop, TargetReached

CURRENCY = "₹"

WELCOME_TITLE = "Price Tracker"
WELCOME_BODY = "Desktop notifications enabled! You'll be notified when prices drop."


def money(value: float) -> str:
    return f"{CURRENCY}{value:.2f}"


def format_title(decision: NotificationDecision, product_name: str) -> str:
    if isinstance(decision, TargetReached):
        return f"Target Price Reached: {product_name}"
    if isinstance(decision, PriceDrop):
        if decision.at_target:
            return f"Target Reached: {product_name}"
        return f"Price Drop: {product_name}"
    raise ValueError(f"No notification text for decision {decision!r}")


def format_body(decision: NotificationDecision) -> str:
    if isinstance(decision, TargetReached):
        return f"Price is now {money(decision.current)} (Your target: {money(decision.target)})"
    if isinstance(decision, PriceDrop):
        body = (
            f"Price dropped! Was {money(decision.old_price)}, now {money(decision.new_price)} "
            f"(Save {money(decision.savings)} - {decision.percent:.1f}%)"
        )
        if decision.at_target:
            body += f"\nPrice is at or below your target of {money(decision.target_price)}"
        return body
    raise ValueError(f"No notification text for decision {decision!r}")
