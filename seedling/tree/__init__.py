"""Tree state machine shared by the server and the client mirror."""

from .state import (
    HARVEST_THRESHOLD,
    HarvestResult,
    TreeState,
    WaterResult,
    apply_harvest,
    apply_water,
    utc_today,
)

__all__ = [
    "HARVEST_THRESHOLD",
    "HarvestResult",
    "TreeState",
    "WaterResult",
    "apply_harvest",
    "apply_water",
    "utc_today",
]
