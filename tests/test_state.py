import pytest

from quotabar.errors import NotYetAvailable
from quotabar.models import UsageMeter, UsageSnapshot
from quotabar.state import SharedState


class TestSharedState:
    def test_empty_state_raises_not_yet_available(self) -> "None":
        state = SharedState()
        with pytest.raises(NotYetAvailable):
            state.get_latest()

    def test_update_replaces_latest(self) -> "None":
        state = SharedState()
        first = UsageSnapshot(UsageMeter(1.0), UsageMeter(2.0))
        second = UsageSnapshot(UsageMeter(3.0), UsageMeter(4.0))

        state.update(first)
        assert state.get_latest() is first

        state.update(second)
        assert state.get_latest() is second
