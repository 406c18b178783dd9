"""Command-line client and scheduler for the price tracker."""

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parents[1] / ".env")

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from price_tracker.backend import BackendClient
from price_tracker.checker import PriceChecker
from price_tracker.comparator import drop_percent
from price_tracker.config import Settings
from price_tracker.errors import BackendError
from price_tracker.models import PriceDrop, ProductDraft, TargetReached
from price_tracker.notifiers.desktop import Notifier
from price_tracker.notifiers.formatters import money
from price_tracker.notifiers.platform import DesktopPlatform

logger = logging.getLogger(__name__)


def _price(value: str) -> float:
    try:
        price = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a price: {value!r}")
    if price < 0:
        raise argparse.ArgumentTypeError("price must be zero or more")
    return price


def build_client(settings: Settings) -> BackendClient:
    return BackendClient(settings.api_url, timeout=settings.request_timeout)


def build_notifier(settings: Settings) -> Notifier:
    platform = DesktopPlatform(enabled=settings.desktop_notifications)
    return Notifier(
        platform,
        timeout=settings.notification_timeout,
        tag_per_product=settings.tag_per_product,
    )


def build_checker(settings: Settings) -> PriceChecker:
    return PriceChecker(
        build_client(settings),
        build_notifier(settings),
        batch_size=settings.check_batch_size,
    )


async def _prepare_notifications(notifier: Notifier) -> None:
    """Ask for notification permission up front so the first check can use it."""
    notifier.ensure_permission()
    await notifier.wait_for_permission()


# ── Product management ─────────────────────────────────────────────────────


async def cmd_list(args, settings: Settings) -> int:
    client = build_client(settings)
    products = await asyncio.to_thread(client.list_products)
    if not products:
        logger.info("No products tracked yet")
    for p in products:
        status = "active" if p.is_active else "paused"
        logger.info(
            "#%s %s: %s (target %s) [%s] %s",
            p.id, p.name, money(p.current_price), money(p.target_price), status, p.url,
        )
    return 0


async def cmd_add(args, settings: Settings) -> int:
    client = build_client(settings)
    draft = ProductDraft(
        name=args.name,
        url=args.url,
        target_price=args.target,
        description=args.description or "",
        price_selector=args.selector,
        notification_email=args.email,
    )
    product = await asyncio.to_thread(client.create_product, draft)
    logger.info("Product added successfully! #%s %s (current price %s)", product.id, product.name, money(product.current_price))
    return 0


async def cmd_update(args, settings: Settings) -> int:
    client = build_client(settings)
    current = await asyncio.to_thread(client.get_product, args.product_id)
    draft = ProductDraft(
        name=args.name or current.name,
        url=args.url or current.url,
        target_price=current.target_price if args.target is None else args.target,
        description=(current.description or "") if args.description is None else args.description,
        price_selector=current.price_selector if args.selector is None else args.selector,
        notification_email=current.notification_email if args.email is None else args.email,
        is_active=current.is_active if args.active is None else args.active,
    )
    product = await asyncio.to_thread(client.update_product, args.product_id, draft)
    logger.info("Product #%s updated (target %s)", product.id, money(product.target_price))
    return 0


async def cmd_delete(args, settings: Settings) -> int:
    if not args.yes:
        answer = input(f"Are you sure you want to delete product {args.product_id}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            logger.info("Delete cancelled")
            return 0
    client = build_client(settings)
    text = await asyncio.to_thread(client.delete_product, args.product_id)
    logger.info("Product deleted successfully%s", f": {text}" if text else "")
    return 0


async def cmd_history(args, settings: Settings) -> int:
    client = build_client(settings)
    history = await asyncio.to_thread(client.get_price_history, args.product_id)
    if not history:
        logger.info("No price history for product %s", args.product_id)
    for point in history:
        when = point.recorded_at.isoformat(sep=" ", timespec="seconds") if point.recorded_at else "?"
        logger.info("%s  %s", when, money(point.price))
    return 0


# ── Price checks ───────────────────────────────────────────────────────────


async def cmd_check(args, settings: Settings) -> int:
    checker = build_checker(settings)
    await _prepare_notifications(checker.notifier)

    outcomes = await asyncio.gather(
        *[checker.check_price(pid) for pid in args.product_ids],
        return_exceptions=True,
    )

    status = 0
    for pid, outcome in zip(args.product_ids, outcomes):
        if isinstance(outcome, BackendError):
            logger.error("Error checking price for product %s: %s", pid, outcome)
            status = 1
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            logger.info(
                "Price checked successfully! %s current price: %s",
                outcome.product.name, money(outcome.product.current_price),
            )

    await checker.notifier.shutdown()
    return status


async def cmd_test_notification(args, settings: Settings) -> int:
    """Show sample drop and target notifications for a product."""
    client = build_client(settings)
    notifier = build_notifier(settings)
    await _prepare_notifications(notifier)

    product = await asyncio.to_thread(client.get_product, args.product_id)
    if product.current_price <= 0:
        logger.error("Product doesn't have a valid price. Please check the price first.")
        return 1

    old_price = product.current_price + 100
    drop = PriceDrop(
        old_price=old_price,
        new_price=product.current_price,
        target_price=product.target_price,
        savings=100.0,
        percent=drop_percent(old_price, product.current_price),
        at_target=False,
    )
    target = TargetReached(current=product.current_price, target=product.target_price)
    status = 0
    for decision in (drop, target):
        result = await notifier.notify(decision, product)
        if not result.success:
            logger.warning("Test notification not shown: %s", result.error)
            status = 1

    await notifier.shutdown()
    return status


async def cmd_test_email(args, settings: Settings) -> int:
    """Ask the backend to send a sample price drop email for a product."""
    client = build_client(settings)
    message = await asyncio.to_thread(client.send_test_email, args.product_id)
    logger.info("%s", message or "Test email requested")
    return 0


async def cmd_watch(args, settings: Settings) -> int:
    checker = build_checker(settings)
    await _prepare_notifications(checker.notifier)

    async def run_check() -> None:
        try:
            if args.product_ids:
                await checker.check_all(args.product_ids)
            else:
                await checker.check_active_products()
        except BackendError as e:
            logger.error("Scheduled price check failed: %s", e)

    async def run_check_with_jitter() -> None:
        delay = random.uniform(0, settings.jitter_max_seconds)
        logger.debug("Jitter: sleeping %.1f s before check", delay)
        await asyncio.sleep(delay)
        await run_check()

    logger.info(
        "Scheduler: every ~%d min ± %d s jitter",
        settings.check_interval_minutes, settings.jitter_max_seconds,
    )

    # Run once immediately, without jitter
    await run_check()

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_check_with_jitter,
        trigger=IntervalTrigger(minutes=settings.check_interval_minutes),
        id="price_check",
        max_instances=1,
        misfire_grace_time=300,
    )
    try:
        scheduler.start()
        await asyncio.Event().wait()
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)
        await checker.notifier.shutdown()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="price-tracker",
        description="Track product prices and get desktop alerts when they drop",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List tracked products")
    p.set_defaults(handler=cmd_list)

    p = sub.add_parser("add", help="Start tracking a product")
    p.add_argument("name")
    p.add_argument("url")
    p.add_argument("--target", type=_price, required=True, help="Target price")
    p.add_argument("--description")
    p.add_argument("--selector", help="CSS selector for the price element")
    p.add_argument("--email", help="Email for price drop alerts")
    p.set_defaults(handler=cmd_add)

    p = sub.add_parser("update", help="Edit a tracked product")
    p.add_argument("product_id", type=int)
    p.add_argument("--name")
    p.add_argument("--url")
    p.add_argument("--target", type=_price)
    p.add_argument("--description")
    p.add_argument("--selector")
    p.add_argument("--email")
    active = p.add_mutually_exclusive_group()
    active.add_argument("--active", dest="active", action="store_true", default=None)
    active.add_argument("--inactive", dest="active", action="store_false")
    p.set_defaults(active=None, handler=cmd_update)

    p = sub.add_parser("delete", help="Stop tracking a product")
    p.add_argument("product_id", type=int)
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(handler=cmd_delete)

    p = sub.add_parser("history", help="Show a product's price history")
    p.add_argument("product_id", type=int)
    p.set_defaults(handler=cmd_history)

    p = sub.add_parser("check", help="Check prices now")
    p.add_argument("product_ids", type=int, nargs="+")
    p.set_defaults(handler=cmd_check)

    p = sub.add_parser("test-notification", help="Show sample notifications for a product")
    p.add_argument("product_id", type=int)
    p.set_defaults(handler=cmd_test_notification)

    p = sub.add_parser("test-email", help="Have the backend send a sample alert email")
    p.add_argument("product_id", type=int)
    p.set_defaults(handler=cmd_test_email)

    p = sub.add_parser("watch", help="Check prices on a schedule")
    p.add_argument("product_ids", type=int, nargs="*", help="Defaults to all active products")
    p.set_defaults(handler=cmd_watch)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, configure logging and run the chosen command."""
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        return asyncio.run(args.handler(args, settings))
    except BackendError as e:
        logger.error("Error: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Stopped")
        return 0


if __name__ == "__main__":
    sys.exit(main())
