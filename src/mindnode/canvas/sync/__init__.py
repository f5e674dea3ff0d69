from mindnode.canvas.sync.offline import OfflineQueue, ProcessResult, QueuedOperation
from mindnode.canvas.sync.status import SyncState, SyncStatus

__all__ = [
    "OfflineQueue",
    "ProcessResult",
    "QueuedOperation",
    "SyncState",
    "SyncStatus",
]
