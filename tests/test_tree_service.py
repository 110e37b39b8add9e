"""Tests for the authoritative TreeService."""

import pytest
from datetime import date
from unittest.mock import MagicMock

from seedling.errors import AuthError, StorageError
from seedling.storage import GardenStore
from seedling.tree import HARVEST_THRESHOLD, TreeState
from seedling.tree.service import TreeService, check_credential

ADMIN_PW = "secret-pw"


@pytest.fixture
def service(store, clock):
    return TreeService(store, ADMIN_PW, clock=clock)


def ripe_state(harvests: int = 0) -> TreeState:
    return TreeState(
        watered_count=HARVEST_THRESHOLD,
        last_watered=date(2026, 2, 1),
        harvest_count=harvests,
        ready_for_harvest=True,
    )


class TestCheckCredential:
    def test_match(self):
        check_credential("abc", "abc")

    @pytest.mark.parametrize("credential", [None, "", "abd", "abc "])
    def test_mismatch(self, credential):
        with pytest.raises(AuthError):
            check_credential(credential, "abc")


class TestWater:
    """Tests for TreeService.water."""

    def test_water_persists(self, service, store, clock):
        result = service.water()

        assert result.allowed is True
        assert store.load_tree() == TreeState(watered_count=1, last_watered=clock.today)

    def test_same_day_scenario(self, service, clock):
        """Test day 1, day 1 again, day 2."""
        first = service.water()
        second = service.water()
        clock.advance()
        third = service.water()

        assert first.to_dict() == {"allowed": True, "waterCount": 1, "readyForHarvest": False}
        assert second.to_dict() == {
            "allowed": False,
            "reason": "already_today",
            "waterCount": 1,
            "readyForHarvest": False,
        }
        assert third.to_dict() == {"allowed": True, "waterCount": 2, "readyForHarvest": False}

    def test_ten_days_then_need_harvest(self, service, store, clock):
        for _ in range(HARVEST_THRESHOLD):
            result = service.water()
            clock.advance()

        assert result.ready_for_harvest is True
        state = store.load_tree()
        assert state.watered_count == HARVEST_THRESHOLD
        assert state.ready_for_harvest is True

        rejected = service.water()
        assert rejected.allowed is False
        assert rejected.reason == "need_harvest"
        assert store.load_tree() == state

    def test_rejection_does_not_write(self, clock):
        store = MagicMock(spec=GardenStore)
        store.load_tree.return_value = ripe_state()
        service = TreeService(store, ADMIN_PW, clock=clock)

        service.water()

        store.save_tree.assert_not_called()

    def test_storage_error_propagates(self, clock):
        store = MagicMock(spec=GardenStore)
        store.load_tree.side_effect = StorageError("disk gone")
        service = TreeService(store, ADMIN_PW, clock=clock)

        with pytest.raises(StorageError):
            service.water()


class TestHarvest:
    """Tests for TreeService.harvest."""

    def test_not_ready(self, service, store):
        store.save_tree(TreeState(watered_count=3, harvest_count=2))

        result = service.harvest(ADMIN_PW)

        assert result.ok is False
        assert result.message == "not_ready"
        assert result.harvest_count == 2
        assert store.load_tree().watered_count == 3

    def test_ready_harvest_then_not_ready(self, service, store):
        store.save_tree(ripe_state(harvests=4))

        result = service.harvest(ADMIN_PW)

        assert result.ok is True
        assert result.harvest_count == 5
        assert store.load_tree() == TreeState(harvest_count=5)

        again = service.harvest(ADMIN_PW)
        assert again.ok is False
        assert again.message == "not_ready"
        assert again.harvest_count == 5

    @pytest.mark.parametrize("state", [TreeState(), ripe_state()])
    def test_wrong_credential_never_touches_state(self, clock, state):
        store = MagicMock(spec=GardenStore)
        store.load_tree.return_value = state
        service = TreeService(store, ADMIN_PW, clock=clock)

        with pytest.raises(AuthError):
            service.harvest("wrong")

        store.load_tree.assert_not_called()
        store.save_tree.assert_not_called()

    def test_harvest_cycle_repeats(self, service, store, clock):
        for cycle in range(1, 3):
            for _ in range(HARVEST_THRESHOLD):
                service.water()
                clock.advance()
            assert service.harvest(ADMIN_PW).harvest_count == cycle

        assert store.load_tree() == TreeState(harvest_count=2)


class TestReset:
    def test_reset(self, service, store):
        store.save_tree(ripe_state(harvests=9))

        state = service.reset(ADMIN_PW)

        assert state == TreeState()
        assert store.load_tree() == TreeState()

    def test_reset_requires_credential(self, service, store):
        store.save_tree(ripe_state(harvests=9))

        with pytest.raises(AuthError):
            service.reset(None)

        assert store.load_tree().harvest_count == 9
