"""Shared fakes for the price tracker tests."""

import asyncio

import pytest

from price_tracker.errors import CheckError, FetchError
from price_tracker.models import PermissionState, Product
from price_tracker.notifiers.desktop import Notifier
from price_tracker.notifiers.platform import ClickEvent, NotificationPlatform


class FakePlatform(NotificationPlatform):
    """In-memory notification surface that records what it was asked to do."""

    def __init__(
        self,
        supported: bool = True,
        permission: PermissionState = PermissionState.DEFAULT,
        answer=PermissionState.GRANTED,
        fail_show: bool = False,
        stored: PermissionState | None = None,
    ):
        self.supported = supported
        self.permission = permission
        self.answer = answer
        self.fail_show = fail_show
        self.stored = stored
        self.permission_requests = 0
        self.shown = []
        self.visible = {}
        self.opened = []
        self.focused = 0
        self._handlers = {}
        self._requests = {}
        self._next_token = 0

    def is_supported(self) -> bool:
        return self.supported

    def current_permission(self) -> PermissionState:
        return self.permission

    async def stored_permission(self) -> PermissionState:
        return self.stored or self.permission

    async def request_permission(self) -> PermissionState:
        self.permission_requests += 1
        await asyncio.sleep(0)
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer

    async def show(self, request, on_click):
        if self.fail_show:
            raise RuntimeError("notification daemon unavailable")
        self._next_token += 1
        token = self._next_token
        self.shown.append(request)
        self.visible[token] = request
        self._requests[token] = request
        self._handlers[token] = on_click
        return token

    async def close(self, token) -> None:
        self.visible.pop(token, None)

    def open_url(self, url: str) -> None:
        self.opened.append(url)

    def focus(self) -> None:
        self.focused += 1

    def click(self, token) -> None:
        request = self._requests[token]
        self._handlers[token](ClickEvent(tag=request.tag, url=request.url, token=token))


class FakeBackend:
    """Backend stand-in: get_product returns the 'before' snapshot, check_product the 'after' one."""

    def __init__(self):
        self.before = {}
        self.after = {}
        self.fail_get = set()
        self.fail_check = set()
        self.calls = []

    def add(self, before: Product, after: Product) -> None:
        self.before[before.id] = before
        self.after[after.id] = after

    def list_products(self):
        self.calls.append(("list",))
        return list(self.before.values())

    def get_product(self, product_id):
        self.calls.append(("get", product_id))
        if product_id in self.fail_get:
            raise FetchError(f"GET /products/{product_id} returned 503: unavailable", status_code=503)
        return self.before[product_id]

    def check_product(self, product_id):
        self.calls.append(("check", product_id))
        if product_id in self.fail_check:
            raise CheckError(f"POST /products/{product_id}/check returned 400: ", status_code=400)
        return self.after[product_id]


def make_product(product_id=1, price=600.0, target=500.0, name="Noise Cancelling Headphones", **kwargs) -> Product:
    return Product(
        id=product_id,
        name=name,
        url=kwargs.pop("url", f"https://shop.example.com/item/{product_id}"),
        current_price=price,
        target_price=target,
        **kwargs,
    )


@pytest.fixture
def platform():
    return FakePlatform(permission=PermissionState.GRANTED)


@pytest.fixture
def notifier(platform):
    return Notifier(platform, timeout=0)


@pytest.fixture
def backend():
    return FakeBackend()
