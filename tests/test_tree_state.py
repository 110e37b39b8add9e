"""Tests for the tree state machine."""

import pytest
from datetime import date, timedelta

from seedling.tree import (
    HARVEST_THRESHOLD,
    TreeState,
    apply_harvest,
    apply_water,
)

DAY1 = date(2026, 3, 1)


class TestApplyWater:
    """Tests for the water transition."""

    def test_first_water_from_zero(self):
        """Test watering the zero state."""
        state, result = apply_water(TreeState(), DAY1)

        assert result.allowed is True
        assert result.water_count == 1
        assert result.ready_for_harvest is False
        assert result.reason is None
        assert state == TreeState(watered_count=1, last_watered=DAY1)

    def test_same_day_rejected(self):
        """Test a second water on the same day is rejected without change."""
        start = TreeState(watered_count=3, last_watered=DAY1, harvest_count=2)

        state, result = apply_water(start, DAY1)

        assert result.allowed is False
        assert result.reason == "already_today"
        assert result.water_count == 3
        assert state == start

    def test_ripe_rejected_on_any_day(self):
        """Test watering a ripe tree is rejected with need_harvest."""
        start = TreeState(
            watered_count=HARVEST_THRESHOLD,
            last_watered=DAY1,
            ready_for_harvest=True,
        )

        for offset in (0, 1, 30):
            state, result = apply_water(start, DAY1 + timedelta(days=offset))
            assert result.allowed is False
            assert result.reason == "need_harvest"
            assert result.water_count == HARVEST_THRESHOLD
            assert result.ready_for_harvest is True
            assert state == start

    def test_need_harvest_checked_before_same_day(self):
        """Test need_harvest wins when both rules would reject."""
        start = TreeState(watered_count=10, last_watered=DAY1, ready_for_harvest=True)

        _, result = apply_water(start, DAY1)

        assert result.reason == "need_harvest"

    def test_ten_days_reach_ripe(self):
        """Test ten waterings on distinct days make the tree ripe."""
        state = TreeState()
        for i in range(HARVEST_THRESHOLD):
            previous = state.watered_count
            state, result = apply_water(state, DAY1 + timedelta(days=i))
            assert result.allowed is True
            assert state.watered_count == previous + 1
            assert result.ready_for_harvest is (i == HARVEST_THRESHOLD - 1)

        assert state.watered_count == HARVEST_THRESHOLD
        assert state.ready_for_harvest is True
        assert state.phase == "ripe"

    def test_ninth_to_tenth(self):
        """Test the step from nine waterings to ripe."""
        start = TreeState(watered_count=9, last_watered=DAY1)

        state, result = apply_water(start, DAY1 + timedelta(days=1))
        assert result.to_dict() == {
            "allowed": True,
            "waterCount": 10,
            "readyForHarvest": True,
        }

        _, again = apply_water(state, DAY1 + timedelta(days=5))
        assert again.to_dict() == {
            "allowed": False,
            "reason": "need_harvest",
            "waterCount": 10,
            "readyForHarvest": True,
        }

    def test_day_scenario(self):
        """Test water day 1, again day 1, then day 2."""
        state, r1 = apply_water(TreeState(), DAY1)
        state, r2 = apply_water(state, DAY1)
        state, r3 = apply_water(state, DAY1 + timedelta(days=1))

        assert (r1.allowed, r1.water_count, r1.ready_for_harvest) == (True, 1, False)
        assert (r2.allowed, r2.reason, r2.water_count) == (False, "already_today", 1)
        assert (r3.allowed, r3.water_count, r3.ready_for_harvest) == (True, 2, False)


class TestApplyHarvest:
    """Tests for the harvest transition."""

    def test_not_ready(self):
        """Test harvesting a growing tree is rejected."""
        start = TreeState(watered_count=4, last_watered=DAY1, harvest_count=7)

        state, result = apply_harvest(start)

        assert result.ok is False
        assert result.message == "not_ready"
        assert result.harvest_count == 7
        assert state == start

    def test_ripe_harvest_resets(self):
        """Test harvesting a ripe tree resets and counts."""
        start = TreeState(
            watered_count=10, last_watered=DAY1, harvest_count=2, ready_for_harvest=True
        )

        state, result = apply_harvest(start)

        assert result.ok is True
        assert result.harvest_count == 3
        assert result.to_dict() == {"ok": True, "harvestCount": 3}
        assert state == TreeState(harvest_count=3)
        assert state.phase == "growing"

        _, again = apply_harvest(state)
        assert again.ok is False
        assert again.message == "not_ready"
        assert again.harvest_count == 3


class TestTreeStateSerialization:
    """Tests for the JSON wire/cache shape."""

    def test_to_dict(self):
        state = TreeState(watered_count=2, last_watered=DAY1, harvest_count=1)

        assert state.to_dict() == {
            "wateredCount": 2,
            "lastWatered": "2026-03-01",
            "harvestCount": 1,
            "readyForHarvest": False,
        }

    @pytest.mark.parametrize(
        "state",
        [
            TreeState(),
            TreeState(watered_count=5, last_watered=DAY1, harvest_count=3),
            TreeState(watered_count=10, last_watered=DAY1, ready_for_harvest=True),
        ],
    )
    def test_roundtrip(self, state):
        assert TreeState.from_dict(state.to_dict()) == state

    def test_missing_fields_default(self):
        assert TreeState.from_dict({}) == TreeState()

    @pytest.mark.parametrize(
        "data",
        [
            {"wateredCount": "3"},
            {"wateredCount": 11},
            {"wateredCount": -1},
            {"harvestCount": -2},
            {"harvestCount": 1.5},
            {"lastWatered": "not-a-date"},
            {"lastWatered": 20260301},
            {"readyForHarvest": "yes"},
            {"readyForHarvest": 5, "wateredCount": 10},
            {"readyForHarvest": True, "wateredCount": 3},
        ],
    )
    def test_malformed_raises(self, data):
        with pytest.raises(ValueError):
            TreeState.from_dict(data)

    def test_non_object_raises(self):
        with pytest.raises(ValueError):
            TreeState.from_dict([1, 2, 3])

    def test_can_water(self):
        state = TreeState(watered_count=1, last_watered=DAY1)

        assert state.can_water(DAY1) is False
        assert state.can_water(DAY1 + timedelta(days=1)) is True
        assert TreeState(ready_for_harvest=True, watered_count=10).can_water(DAY1) is False
