"""Desktop notifications for price changes."""

import asyncio
import logging
from dataclasses import dataclass

from price_tracker.comparator import is_sticky
from price_tracker.errors import NotificationUnsupported, PermissionDenied
from price_tracker.models import (
    NotificationDecision,
    NotificationRequest,
    PermissionState,
    Product,
)
from price_tracker.notifiers.formatters import (
    WELCOME_BODY,
    WELCOME_TITLE,
    format_body,
    format_title,
)
from price_tracker.notifiers.platform import ClickEvent, NotificationHandle, NotificationPlatform

logger = logging.getLogger(__name__)

DEFAULT_TAG = "price-tracker"


@dataclass
class NotificationResult:
    """Result of showing a notification."""

    success: bool
    handle: NotificationHandle | None = None
    error: Exception | None = None


class Notifier:
    """
    Shows price notifications on an injected platform.

    Owns the permission state, keeps at most one visible notification per
    tag (a new one replaces the old), and closes non-sticky notifications
    after `timeout` seconds if the platform has not already done so.
    Nothing here raises into the caller: failures come back as a
    NotificationResult.
    """

    def __init__(
        self,
        platform: NotificationPlatform,
        timeout: float = 5.0,
        tag_per_product: bool = False,
    ):
        self.platform = platform
        self.timeout = timeout
        self.tag_per_product = tag_per_product
        if platform.is_supported():
            self.permission = platform.current_permission()
        else:
            self.permission = PermissionState.UNSUPPORTED

        self._permission_request: asyncio.Task | None = None
        self._visible: dict[str, NotificationHandle] = {}
        self._tasks: set[asyncio.Task] = set()
        self._warned_unsupported = False

    def tag_for(self, product: Product) -> str:
        if self.tag_per_product:
            return f"{DEFAULT_TAG}-{product.id}"
        return DEFAULT_TAG

    def visible(self) -> list[NotificationHandle]:
        return list(self._visible.values())

    # -- permission ------------------------------------------------------

    def ensure_permission(self) -> PermissionState:
        """
        Return the current permission, asking the user once if it is undecided.

        The request runs in the background; call wait_for_permission() to
        block on it. Later calls never prompt again.
        """
        if self.permission is PermissionState.UNSUPPORTED:
            if not self._warned_unsupported:
                logger.warning("This system does not support desktop notifications")
                self._warned_unsupported = True
            return self.permission

        if self.permission is PermissionState.DEFAULT and self._permission_request is None:
            logger.info("Requesting notification permission...")
            self._permission_request = self._spawn(self._request_permission())

        return self.permission

    async def wait_for_permission(self) -> PermissionState:
        if self._permission_request is not None:
            await self._permission_request
        return self.permission

    async def _request_permission(self) -> PermissionState:
        try:
            stored = await self.platform.stored_permission()
            if stored in (PermissionState.GRANTED, PermissionState.DENIED):
                logger.debug("Notification permission already %s", stored.value)
                self.permission = stored
                return stored
            state = await self.platform.request_permission()
        except Exception as e:
            logger.error("Error requesting notification permission: %s", e)
            return self.permission

        self.permission = state
        if state is PermissionState.GRANTED:
            logger.info("Desktop notifications enabled")
            await self._show(NotificationRequest(title=WELCOME_TITLE, body=WELCOME_BODY, tag=DEFAULT_TAG))
        else:
            logger.info("Desktop notifications denied")
        return state

    # -- showing ---------------------------------------------------------

    async def notify(self, decision: NotificationDecision, product: Product) -> NotificationResult:
        """Show the notification for a decision, if permission allows."""
        if decision is None:
            return NotificationResult(success=False)

        if self.permission is PermissionState.UNSUPPORTED:
            logger.debug("Skipping notification for %s: unsupported", product.name)
            return NotificationResult(
                success=False,
                error=NotificationUnsupported("Desktop notifications are not supported"),
            )
        if self.permission is not PermissionState.GRANTED:
            logger.debug("Skipping notification for %s: permission %s", product.name, self.permission.value)
            return NotificationResult(
                success=False,
                error=PermissionDenied(f"Notification permission not granted ({self.permission.value})"),
            )

        try:
            request = NotificationRequest(
                title=format_title(decision, product.name),
                body=format_body(decision),
                tag=self.tag_for(product),
                require_interaction=is_sticky(decision),
                url=product.url or None,
            )
        except ValueError as e:
            logger.error("Cannot build notification for %s: %s", product.name, e)
            return NotificationResult(success=False, error=e)

        return await self._show(request)

    async def _show(self, request: NotificationRequest) -> NotificationResult:
        previous = self._visible.pop(request.tag, None)
        if previous is not None:
            await self._close(previous)

        try:
            token = await self.platform.show(request, self.handle_click)
        except Exception as e:
            logger.error("Error showing notification: %s", e, exc_info=True)
            return NotificationResult(success=False, error=e)

        handle = NotificationHandle(request, token, self.platform)
        # Another notification with this tag may have landed while we awaited.
        stale = self._visible.get(request.tag)
        self._visible[request.tag] = handle
        if stale is not None:
            self._spawn(self._close(stale))

        if not request.require_interaction and self.timeout > 0:
            self._spawn(self._auto_close(handle))

        logger.debug("Notification shown: %s", request.title)
        return NotificationResult(success=True, handle=handle)

    def handle_click(self, event: ClickEvent) -> None:
        """Open the product page, return to the app, and close the notification."""
        if event.url:
            try:
                self.platform.open_url(event.url)
            except Exception as e:
                logger.error("Failed to open %s: %s", event.url, e)
        self.platform.focus()

        handle = self._visible.get(event.tag)
        if handle is not None and handle.token == event.token:
            self._spawn(self._close(handle))
        elif event.token is not None:
            # A replaced notification; the one now showing under this tag stays.
            self._spawn(self._close_token(event.token))

    # -- cleanup ---------------------------------------------------------

    async def _auto_close(self, handle: NotificationHandle) -> None:
        await asyncio.sleep(self.timeout)
        await self._close(handle)

    async def _close(self, handle: NotificationHandle) -> None:
        if self._visible.get(handle.tag) is handle:
            del self._visible[handle.tag]
        try:
            await handle.close()
        except Exception as e:
            logger.warning("Failed to close notification %r: %s", handle.request.title, e)

    async def _close_token(self, token) -> None:
        try:
            await self.platform.close(token)
        except Exception as e:
            logger.warning("Failed to close notification %r: %s", token, e)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def shutdown(self) -> None:
        """Cancel pending timers and requests. Visible notifications are left alone."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
