import threading

from quotabar.errors import NotYetAvailable
from quotabar.models import UsageSnapshot


class SharedState:
    """
    SharedState holds the last successfully fetched primary snapshot.

    Only the coordinator writes, under a lock. Readers get the current
    reference without locking: snapshots are immutable, so a reader sees
    either the previous or the new value, never a partial one. The value
    is never cleared, a failed cycle leaves the last known good snapshot
    in place.
    """

    def __init__(self) -> "None":
        self._lock: "threading.Lock" = threading.Lock()
        self._latest: "UsageSnapshot | None" = None

    def update(self, snapshot: "UsageSnapshot") -> "None":
        with self._lock:
            self._latest = snapshot

    def get_latest(self) -> "UsageSnapshot":
        """
        returns the latest primary snapshot or raises NotYetAvailable
        if no cycle has succeeded since start.
        """
        latest = self._latest
        if latest is None:
            raise NotYetAvailable("No usage data available yet")
        return latest
