"""Price check cycle: snapshot, check, decide, notify."""

import asyncio
import logging
from dataclasses import dataclass, field

from price_tracker.backend import BackendClient
from price_tracker.comparator import decide_observation
from price_tracker.errors import BackendError, NotificationUnsupported, PermissionDenied
from price_tracker.models import (
    CheckState,
    NotificationDecision,
    PriceObservation,
    Product,
)
from price_tracker.notifiers.desktop import NotificationResult, Notifier

logger = logging.getLogger(__name__)


class CheckCycle:
    """Tracks the stage of one product's check."""

    def __init__(self, product_id: int):
        self.product_id = product_id
        self.state = CheckState.IDLE
        self.history: list[CheckState] = [CheckState.IDLE]

    def advance(self, state: CheckState) -> None:
        logger.debug("Product %s: %s -> %s", self.product_id, self.state.value, state.value)
        self.state = state
        self.history.append(state)


@dataclass
class CheckResult:
    """Outcome of a successful check cycle."""

    product: Product
    observation: PriceObservation
    decision: NotificationDecision
    notification: NotificationResult | None = None
    states: list[CheckState] = field(default_factory=list)

    @property
    def notified(self) -> bool:
        return self.notification is not None and self.notification.success


class PriceChecker:
    """Runs price checks against the backend and notifies on drops."""

    def __init__(
        self,
        client: BackendClient,
        notifier: Notifier,
        batch_size: int = 10,
        batch_delay: float = 1.0,
    ):
        self.client = client
        self.notifier = notifier
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def check_price(self, product_id: int, cycle: CheckCycle | None = None) -> CheckResult:
        """
        Run one check cycle for a product.

        Raises FetchError / CheckError if the backend fails; in that case no
        notification is shown. A notification that fails to show does not
        fail the cycle.
        """
        cycle = cycle or CheckCycle(product_id)
        try:
            cycle.advance(CheckState.FETCHING)
            before = await asyncio.to_thread(self.client.get_product, product_id)

            cycle.advance(CheckState.CHECKING)
            after = await asyncio.to_thread(self.client.check_product, product_id)
        except BackendError:
            cycle.advance(CheckState.FAILED)
            raise

        cycle.advance(CheckState.DECIDING)
        observation = PriceObservation(
            old_price=before.current_price,
            new_price=after.current_price,
            target_price=after.target_price,
        )
        decision = decide_observation(observation)

        notification = None
        if decision is not None:
            cycle.advance(CheckState.NOTIFYING)
            notification = await self.notifier.notify(decision, after)
            self._log_notification(after, notification)

        cycle.advance(CheckState.IDLE)
        logger.info(
            "%s: %.2f -> %.2f (target %.2f)",
            after.name, observation.old_price or 0, observation.new_price, observation.target_price,
        )
        return CheckResult(
            product=after,
            observation=observation,
            decision=decision,
            notification=notification,
            states=list(cycle.history),
        )

    @staticmethod
    def _log_notification(product: Product, result: NotificationResult) -> None:
        if result.success:
            logger.info("Notification shown for %s", product.name)
        elif isinstance(result.error, (NotificationUnsupported, PermissionDenied)):
            logger.debug("No notification for %s: %s", product.name, result.error)
        elif result.error is not None:
            logger.warning("Notification for %s failed: %s", product.name, result.error)

    async def check_all(self, product_ids: list[int]) -> list[CheckResult]:
        """
        Check several products concurrently, in batches.

        A failing product is logged and skipped; it does not affect the rest.
        """
        results: list[CheckResult] = []

        for i in range(0, len(product_ids), self.batch_size):
            batch = product_ids[i : i + self.batch_size]
            outcomes = await asyncio.gather(
                *[self.check_price(pid) for pid in batch],
                return_exceptions=True,
            )

            for pid, outcome in zip(batch, outcomes):
                if isinstance(outcome, CheckResult):
                    results.append(outcome)
                elif isinstance(outcome, BackendError):
                    logger.error("Error checking price for product %s: %s", pid, outcome)
                else:
                    logger.error(
                        "Unexpected error checking product %s: %s", pid, outcome,
                        exc_info=outcome,
                    )

            if i + self.batch_size < len(product_ids):
                await asyncio.sleep(self.batch_delay)

        return results

    async def check_active_products(self) -> list[CheckResult]:
        """Check every active product known to the backend."""
        products = await asyncio.to_thread(self.client.list_products)
        active = [p.id for p in products if p.is_active]
        logger.info("Starting price check for %d active products", len(active))
        results = await self.check_all(active)
        logger.info("Completed price check: %d/%d succeeded", len(results), len(active))
        return results
