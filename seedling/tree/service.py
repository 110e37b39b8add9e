"""Authoritative tree service backed by the garden store."""

import hmac
import logging
from collections.abc import Callable
from datetime import date
from typing import TYPE_CHECKING

from ..errors import AuthError
from .state import (
    HarvestResult,
    TreeState,
    WaterResult,
    apply_harvest,
    apply_water,
    utc_today,
)

if TYPE_CHECKING:
    from ..storage import GardenStore

logger = logging.getLogger(__name__)


def check_credential(credential: str | None, admin_password: str) -> None:
    """Raise AuthError unless ``credential`` matches the admin password."""
    if credential is None or not hmac.compare_digest(
        credential.encode(), admin_password.encode()
    ):
        raise AuthError("unauthorized")


class TreeService:
    """Server-side owner of the single shared tree.

    Each operation is a short read-then-conditionally-write against the store.
    There is no cross-request locking: two same-day waterings racing each
    other can undercount by one, which is accepted.
    """

    def __init__(
        self,
        store: "GardenStore",
        admin_password: str,
        clock: Callable[[], date] = utc_today,
    ):
        """Initialize the service.

        Args:
            store: Connected GardenStore holding the tree row.
            admin_password: Shared secret required for harvest and reset.
            clock: Returns "today" as a calendar date. Defaults to UTC.
        """
        self.store = store
        self.admin_password = admin_password
        self.clock = clock

    def get_state(self) -> TreeState:
        return self.store.load_tree()

    def water(self) -> WaterResult:
        """Water the tree once for today, if the rules allow it."""
        today = self.clock()
        state = self.store.load_tree()
        next_state, result = apply_water(state, today)

        if result.allowed:
            self.store.save_tree(next_state)
            logger.info(
                f"Watered on {today}: count={result.water_count}, "
                f"ready={result.ready_for_harvest}"
            )
        else:
            logger.debug(f"Water rejected on {today}: {result.reason}")

        return result

    def harvest(self, credential: str | None) -> HarvestResult:
        """Harvest a ripe tree. The credential is checked before any read."""
        try:
            check_credential(credential, self.admin_password)
        except AuthError:
            logger.warning("Harvest rejected: bad admin credential")
            raise

        state = self.store.load_tree()
        next_state, result = apply_harvest(state)

        if result.ok:
            self.store.save_tree(next_state)
            logger.info(f"Harvested, lifetime harvests={result.harvest_count}")

        return result

    def reset(self, credential: str | None) -> TreeState:
        """Reinitialize the tree to the zero state."""
        try:
            check_credential(credential, self.admin_password)
        except AuthError:
            logger.warning("Reset rejected: bad admin credential")
            raise

        state = TreeState()
        self.store.save_tree(state)
        logger.info("Tree reset to zero state")
        return state
