"""Tree state and the water/harvest state machine.

The transitions are pure functions of ``(state, today)`` so the server-side
service and the client-side mirror share a single implementation. Callers
wrap them with their own persistence.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any

HARVEST_THRESHOLD = 10

# Rejection reasons. These are ordinary results, not errors.
NEED_HARVEST = "need_harvest"
ALREADY_TODAY = "already_today"
NOT_READY = "not_ready"


def utc_today() -> date:
    """Return the current UTC calendar date."""
    return datetime.now(timezone.utc).date()


@dataclass(frozen=True)
class TreeState:
    """The shared seedling's watering and harvest progress."""

    watered_count: int = 0
    last_watered: date | None = None
    harvest_count: int = 0
    ready_for_harvest: bool = False

    @property
    def phase(self) -> str:
        """Informal phase name: "ripe" while awaiting harvest, else "growing"."""
        return "ripe" if self.ready_for_harvest else "growing"

    def can_water(self, today: date) -> bool:
        """Whether a water attempt on ``today`` would be accepted."""
        return self.last_watered != today and not self.ready_for_harvest

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire/cache shape."""
        return {
            "wateredCount": self.watered_count,
            "lastWatered": self.last_watered.isoformat() if self.last_watered else None,
            "harvestCount": self.harvest_count,
            "readyForHarvest": self.ready_for_harvest,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TreeState":
        """Create from the JSON wire/cache shape.

        Missing fields take their zero value. Fields of the wrong type or out
        of range raise ``ValueError``.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        watered = data.get("wateredCount") or 0
        harvests = data.get("harvestCount") or 0
        ready = data.get("readyForHarvest", False)
        last = data.get("lastWatered")

        for name, value in (("wateredCount", watered), ("harvestCount", harvests)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if not 0 <= watered <= HARVEST_THRESHOLD:
            raise ValueError(f"wateredCount out of range: {watered}")
        if harvests < 0:
            raise ValueError(f"harvestCount must be non-negative: {harvests}")
        if not isinstance(ready, bool):
            raise ValueError(f"readyForHarvest must be a boolean, got {ready!r}")
        if ready and watered != HARVEST_THRESHOLD:
            raise ValueError(
                f"readyForHarvest requires wateredCount {HARVEST_THRESHOLD}, got {watered}"
            )
        if last is not None and not isinstance(last, str):
            raise ValueError(f"lastWatered must be a date string, got {last!r}")

        return cls(
            watered_count=watered,
            last_watered=date.fromisoformat(last) if last else None,
            harvest_count=harvests,
            ready_for_harvest=bool(ready),
        )


@dataclass(frozen=True)
class WaterResult:
    """Outcome of a water attempt."""

    allowed: bool
    water_count: int
    ready_for_harvest: bool
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"allowed": self.allowed}
        if self.reason:
            data["reason"] = self.reason
        data["waterCount"] = self.water_count
        data["readyForHarvest"] = self.ready_for_harvest
        return data


@dataclass(frozen=True)
class HarvestResult:
    """Outcome of a harvest attempt."""

    ok: bool
    harvest_count: int
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"ok": self.ok}
        if self.message:
            data["message"] = self.message
        data["harvestCount"] = self.harvest_count
        return data


def apply_water(state: TreeState, today: date) -> tuple[TreeState, WaterResult]:
    """Attempt to water ``state`` on ``today``.

    Returns the next state (unchanged on rejection) and the result.
    """
    if state.ready_for_harvest:
        return state, WaterResult(
            allowed=False,
            water_count=state.watered_count,
            ready_for_harvest=True,
            reason=NEED_HARVEST,
        )

    if state.last_watered == today:
        return state, WaterResult(
            allowed=False,
            water_count=state.watered_count,
            ready_for_harvest=False,
            reason=ALREADY_TODAY,
        )

    next_count = min(state.watered_count + 1, HARVEST_THRESHOLD)
    ready = next_count == HARVEST_THRESHOLD
    next_state = replace(
        state,
        watered_count=next_count,
        last_watered=today,
        ready_for_harvest=ready,
    )
    return next_state, WaterResult(
        allowed=True,
        water_count=next_count,
        ready_for_harvest=ready,
    )


def apply_harvest(state: TreeState) -> tuple[TreeState, HarvestResult]:
    """Attempt to harvest ``state``. Credential checks are the caller's job."""
    if not state.ready_for_harvest:
        return state, HarvestResult(
            ok=False,
            harvest_count=state.harvest_count,
            message=NOT_READY,
        )

    next_state = TreeState(harvest_count=state.harvest_count + 1)
    return next_state, HarvestResult(ok=True, harvest_count=next_state.harvest_count)
