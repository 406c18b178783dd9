"""Desktop notification surface."""

import logging
import webbrowser
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from price_tracker.models import NotificationRequest, PermissionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClickEvent:
    """Passed to the click handler when the user clicks a notification."""

    tag: str
    url: str | None = None
    token: Any = None


ClickHandler = Callable[[ClickEvent], None]


class NotificationPlatform(ABC):
    """What the Notifier needs from the operating system."""

    @abstractmethod
    def is_supported(self) -> bool:
        """Whether notifications can be shown at all."""

    @abstractmethod
    def current_permission(self) -> PermissionState:
        """Permission as known before any request is made."""

    async def stored_permission(self) -> PermissionState:
        """Permission the system already holds, checked before prompting."""
        return self.current_permission()

    @abstractmethod
    async def request_permission(self) -> PermissionState:
        """Ask the user for permission."""

    @abstractmethod
    async def show(self, request: NotificationRequest, on_click: ClickHandler) -> Any:
        """Put a notification on screen and return a platform token for it."""

    @abstractmethod
    async def close(self, token: Any) -> None:
        """Remove a notification from the screen."""

    @abstractmethod
    def open_url(self, url: str) -> None:
        """Open a URL in a new browser tab."""

    @abstractmethod
    def focus(self) -> None:
        """Bring the originating window to the front."""


class NotificationHandle:
    """A notification currently (or formerly) on screen."""

    def __init__(self, request: NotificationRequest, token: Any, platform: NotificationPlatform):
        self.request = request
        self.token = token
        self.platform = platform
        self.closed = False

    @property
    def tag(self) -> str:
        return self.request.tag

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self.platform.close(self.token)

    def __repr__(self) -> str:
        return f"<NotificationHandle tag={self.tag!r} title={self.request.title!r} closed={self.closed}>"


class DesktopPlatform(NotificationPlatform):
    """
    Native desktop notifications via desktop-notifier.

    Sticky requests are sent with critical urgency so they stay until
    dismissed. If the library is missing or notifications are disabled the
    platform reports itself unsupported.
    """

    def __init__(self, app_name: str = "Price Tracker", enabled: bool = True):
        self._notifier = None
        self._urgency = None

        if not enabled:
            logger.debug("Desktop notifications are disabled")
            return

        try:
            from desktop_notifier import DesktopNotifier, Urgency
        except ImportError:
            logger.warning("desktop-notifier not installed. Run: pip install desktop-notifier")
            return

        self._notifier = DesktopNotifier(app_name=app_name)
        self._urgency = Urgency

    def is_supported(self) -> bool:
        return self._notifier is not None

    def current_permission(self) -> PermissionState:
        if not self.is_supported():
            return PermissionState.UNSUPPORTED
        return PermissionState.DEFAULT

    async def stored_permission(self) -> PermissionState:
        if await self._notifier.has_authorisation():
            return PermissionState.GRANTED
        return PermissionState.DEFAULT

    async def request_permission(self) -> PermissionState:
        granted = await self._notifier.request_authorisation()
        return PermissionState.GRANTED if granted else PermissionState.DENIED

    async def show(self, request: NotificationRequest, on_click: ClickHandler) -> Any:
        urgency = self._urgency.Critical if request.require_interaction else self._urgency.Normal
        token = None

        def clicked():
            on_click(ClickEvent(tag=request.tag, url=request.url, token=token))

        token = await self._notifier.send(
            title=request.title,
            message=request.body,
            urgency=urgency,
            on_clicked=clicked,
        )
        return token

    async def close(self, token: Any) -> None:
        await self._notifier.clear(token)

    def open_url(self, url: str) -> None:
        webbrowser.open_new_tab(url)

    def focus(self) -> None:
        # A terminal session has no window of its own to raise.
        logger.debug("Focus requested; nothing to raise")
