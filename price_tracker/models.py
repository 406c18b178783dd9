"""Data models for price tracking."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PermissionState(str, Enum):
    """Desktop notification permission."""

    UNSUPPORTED = "unsupported"
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class CheckState(str, Enum):
    """Stage of a single price-check cycle."""

    IDLE = "idle"
    FETCHING = "fetching"
    CHECKING = "checking"
    DECIDING = "deciding"
    NOTIFYING = "notifying"
    FAILED = "failed"


def _as_price(value) -> float:
    """Backend prices may be null before the first check; treat that as 0."""
    if value is None:
        return 0.0
    return float(value)


@dataclass
class Product:
    """Snapshot of a tracked product as returned by the backend."""

    id: int
    name: str
    url: str
    current_price: float = 0.0
    target_price: float = 0.0
    description: str | None = None
    price_selector: str | None = None
    notification_email: str | None = None
    is_active: bool = True

    @classmethod
    def from_api(cls, data: dict) -> "Product":
        """Build a Product from the backend's camelCase JSON."""
        is_active = data.get("isActive")
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            url=data.get("url") or "",
            current_price=_as_price(data.get("currentPrice")),
            target_price=_as_price(data.get("targetPrice")),
            description=data.get("description"),
            price_selector=data.get("priceSelector"),
            notification_email=data.get("notificationEmail"),
            is_active=True if is_active is None else bool(is_active),
        )


@dataclass
class ProductDraft:
    """Fields a user submits when adding or editing a product."""

    name: str
    url: str
    target_price: float
    description: str = ""
    price_selector: str | None = None
    notification_email: str | None = None
    is_active: bool = True

    def to_payload(self) -> dict:
        """Request body for create/update. New products start with an unknown price."""
        return {
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "targetPrice": float(self.target_price),
            "priceSelector": self.price_selector or None,
            "notificationEmail": self.notification_email or None,
            "currentPrice": 0.0,
            "isActive": self.is_active,
        }


@dataclass
class PricePoint:
    """One entry of a product's price history."""

    price: float
    recorded_at: datetime | None = None

    @classmethod
    def from_api(cls, data: dict) -> "PricePoint":
        recorded_at = None
        recorded = data.get("recordedAt")
        if recorded:
            try:
                recorded_at = datetime.fromisoformat(recorded)
            except ValueError:
                recorded_at = None
        return cls(price=_as_price(data.get("price")), recorded_at=recorded_at)


@dataclass(frozen=True)
class PriceObservation:
    """Prices seen before and after one check."""

    old_price: float | None
    new_price: float
    target_price: float


@dataclass(frozen=True)
class PriceDrop:
    """The price went down since the previous check."""

    old_price: float
    new_price: float
    target_price: float
    savings: float
    percent: float
    at_target: bool


@dataclass(frozen=True)
class TargetReached:
    """The price crossed the target from above."""

    current: float
    target: float


NotificationDecision = PriceDrop | TargetReached | None


@dataclass(frozen=True)
class NotificationRequest:
    """What to put on screen for one notification."""

    title: str
    body: str
    tag: str
    require_interaction: bool = False
    url: str | None = None
