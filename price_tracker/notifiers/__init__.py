"""Notification backends."""

from price_tracker.notifiers.desktop import NotificationResult, Notifier
from price_tracker.notifiers.platform import DesktopPlatform, NotificationPlatform

__all__ = ["Notifier", "NotificationResult", "NotificationPlatform", "DesktopPlatform"]
