"""Tests for the price check cycle."""

import pytest

from price_tracker.checker import CheckCycle, PriceChecker
from price_tracker.errors import CheckError, FetchError, PermissionDenied
from price_tracker.models import CheckState, PermissionState, PriceDrop, TargetReached
from price_tracker.notifiers.desktop import Notifier

from tests.conftest import FakePlatform, make_product


def make_checker(backend, notifier):
    return PriceChecker(backend, notifier, batch_size=2, batch_delay=0)


@pytest.mark.asyncio
async def test_crossing_target_notifies_once(backend, notifier, platform):
    backend.add(make_product(price=600), make_product(price=450))

    result = await make_checker(backend, notifier).check_price(1)

    assert result.decision == TargetReached(current=450, target=500)
    assert result.notified is True
    assert [r.title for r in platform.shown] == ["Target Price Reached: Noise Cancelling Headphones"]
    assert result.states == [
        CheckState.IDLE,
        CheckState.FETCHING,
        CheckState.CHECKING,
        CheckState.DECIDING,
        CheckState.NOTIFYING,
        CheckState.IDLE,
    ]
    assert backend.calls == [("get", 1), ("check", 1)]


@pytest.mark.asyncio
async def test_target_comes_from_post_check_snapshot(backend, notifier):
    backend.add(make_product(price=600, target=400), make_product(price=450, target=500))

    result = await make_checker(backend, notifier).check_price(1)

    assert result.observation.target_price == 500
    assert result.decision == TargetReached(current=450, target=500)


@pytest.mark.asyncio
async def test_plain_drop(backend, notifier, platform):
    backend.add(make_product(price=600), make_product(price=550))

    result = await make_checker(backend, notifier).check_price(1)

    assert isinstance(result.decision, PriceDrop)
    assert platform.shown[0].body == "Price dropped! Was ₹600.00, now ₹550.00 (Save ₹50.00 - 8.3%)"


@pytest.mark.asyncio
async def test_unchanged_price_succeeds_without_notification(backend, notifier, platform):
    backend.add(make_product(price=600), make_product(price=600))

    result = await make_checker(backend, notifier).check_price(1)

    assert result.decision is None
    assert result.notification is None
    assert CheckState.NOTIFYING not in result.states
    assert platform.shown == []


@pytest.mark.asyncio
async def test_first_check_never_notifies(backend, notifier, platform):
    backend.add(make_product(price=0), make_product(price=450))

    result = await make_checker(backend, notifier).check_price(1)

    assert result.decision is None
    assert platform.shown == []


@pytest.mark.asyncio
async def test_fetch_failure_aborts_cycle(backend, notifier, platform):
    backend.add(make_product(price=600), make_product(price=450))
    backend.fail_get.add(1)
    cycle = CheckCycle(1)

    with pytest.raises(FetchError):
        await make_checker(backend, notifier).check_price(1, cycle=cycle)

    assert cycle.state is CheckState.FAILED
    assert cycle.history == [CheckState.IDLE, CheckState.FETCHING, CheckState.FAILED]
    assert backend.calls == [("get", 1)]
    assert platform.shown == []


@pytest.mark.asyncio
async def test_check_failure_aborts_cycle(backend, notifier, platform):
    backend.add(make_product(price=600), make_product(price=450))
    backend.fail_check.add(1)
    cycle = CheckCycle(1)

    with pytest.raises(CheckError):
        await make_checker(backend, notifier).check_price(1, cycle=cycle)

    assert cycle.history[-2:] == [CheckState.CHECKING, CheckState.FAILED]
    assert platform.shown == []


@pytest.mark.asyncio
async def test_broken_notifications_do_not_fail_the_check(backend):
    notifier = Notifier(FakePlatform(permission=PermissionState.GRANTED, fail_show=True))
    backend.add(make_product(price=600), make_product(price=450))

    result = await make_checker(backend, notifier).check_price(1)

    assert result.product.current_price == 450
    assert result.notified is False
    assert isinstance(result.notification.error, RuntimeError)


@pytest.mark.asyncio
async def test_denied_permission_still_reports_success(backend):
    notifier = Notifier(FakePlatform(permission=PermissionState.DENIED))
    backend.add(make_product(price=600), make_product(price=450))

    result = await make_checker(backend, notifier).check_price(1)

    assert result.decision == TargetReached(current=450, target=500)
    assert isinstance(result.notification.error, PermissionDenied)


@pytest.mark.asyncio
async def test_check_all_isolates_failures(backend, notifier):
    for pid in (1, 2, 3):
        backend.add(make_product(pid, price=600), make_product(pid, price=550))
    backend.fail_check.add(2)

    results = await make_checker(backend, notifier).check_all([1, 2, 3])

    assert sorted(r.product.id for r in results) == [1, 3]


@pytest.mark.asyncio
async def test_concurrent_checks_share_one_notification_slot(backend, notifier, platform):
    backend.add(make_product(1, price=600), make_product(1, price=450))
    backend.add(make_product(2, price=200, target=150, name="Kettle"), make_product(2, price=140, target=150, name="Kettle"))

    results = await make_checker(backend, notifier).check_all([1, 2])

    assert all(r.notified for r in results)
    assert len(platform.shown) == 2
    assert len(platform.visible) == 1


@pytest.mark.asyncio
async def test_check_active_products_skips_paused(backend, notifier):
    backend.add(make_product(1, price=600), make_product(1, price=550))
    backend.add(make_product(2, price=600, is_active=False), make_product(2, price=550, is_active=False))

    results = await make_checker(backend, notifier).check_active_products()

    assert [r.product.id for r in results] == [1]
    assert ("get", 2) not in backend.calls
