"""Local mirror of the tree state machine.

Runs the same water/harvest transitions as the server against a locally
cached copy, so the client keeps working without a connection.
"""

import json
import logging
from collections.abc import Callable
from datetime import date

from ..tree.state import (
    HarvestResult,
    TreeState,
    WaterResult,
    apply_harvest,
    apply_water,
    utc_today,
)
from .cache import KeyValueStorage

logger = logging.getLogger(__name__)

STORAGE_KEY = "tree_state_v1"


class LocalTreeMirror:
    """Cached tree state with offline water/harvest."""

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Callable[[], date] = utc_today,
        key: str = STORAGE_KEY,
    ):
        self.storage = storage
        self.clock = clock
        self.key = key

    def read(self) -> TreeState:
        """Return the cached state.

        Missing or malformed cache data yields the zero state instead of
        raising.
        """
        raw = self.storage.get_item(self.key)
        if not raw:
            return TreeState()

        try:
            return TreeState.from_dict(json.loads(raw))
        except (json.JSONDecodeError, ValueError, TypeError) as e:
            logger.warning(f"Discarding malformed tree cache: {e}")
            return TreeState()

    def write(self, state: TreeState) -> None:
        """Replace the cached state."""
        self.storage.set_item(self.key, json.dumps(state.to_dict()))

    def reset(self) -> TreeState:
        state = TreeState()
        self.write(state)
        return state

    def can_water_today(self) -> bool:
        return self.read().can_water(self.clock())

    def water(self) -> WaterResult:
        """Water the cached tree, persisting only on success."""
        next_state, result = apply_water(self.read(), self.clock())
        if result.allowed:
            self.write(next_state)
        return result

    def complete_harvest(self) -> HarvestResult:
        """Harvest the cached tree. No credential check happens here."""
        next_state, result = apply_harvest(self.read())
        if result.ok:
            self.write(next_state)
        return result
