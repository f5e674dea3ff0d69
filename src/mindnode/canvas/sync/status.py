import logging
from collections.abc import Callable
from datetime import datetime
from typing import Literal

from pydantic import BaseModel

logger = logging.getLogger(__name__)

SyncStatusType = Literal["synced", "syncing", "pending", "error", "offline"]


class SyncState(BaseModel):
    status: SyncStatusType = "synced"
    pending_count: int = 0
    last_sync_time: datetime | None = None
    last_error: str | None = None
    is_online: bool = True


SyncListener = Callable[[SyncState], None]


class SyncStatus:
    """Tracks persistence sync state and notifies subscribers of changes.

    Instances are created by the caller and handed to whatever needs them;
    there is no shared module level tracker.
    """

    def __init__(self, is_online: bool = True):
        self._state = SyncState(
            status="synced" if is_online else "offline", is_online=is_online
        )
        self._listeners: list[SyncListener] = []

    def get_state(self) -> SyncState:
        return self._state.model_copy()

    def subscribe(self, listener: SyncListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)
        state = self.get_state()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.exception(f"Sync status listener failed: {e}")

    def set_online(self, is_online: bool) -> None:
        if is_online:
            status = "pending" if self._state.pending_count > 0 else "synced"
        else:
            status = "offline"
        self._update(is_online=is_online, status=status)

    def set_syncing(self) -> None:
        if not self._state.is_online:
            return
        self._update(status="syncing")

    def set_synced(self) -> None:
        self._update(
            status="synced" if self._state.is_online else "offline",
            last_sync_time=datetime.now(),
            last_error=None,
        )

    def set_pending(self, count: int) -> None:
        if not self._state.is_online:
            status = "offline"
        elif count > 0:
            status = "pending"
        else:
            status = "synced"
        self._update(pending_count=count, status=status)

    def set_error(self, error: str) -> None:
        logger.error(f"Sync failed: {error}")
        self._update(status="error", last_error=error)

    def close(self) -> None:
        self._listeners.clear()
