import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from mindnode.canvas.config.models import SyncConfig

logger = logging.getLogger(__name__)

OperationType = Literal["create", "update", "delete"]
EntityType = Literal["node", "workspace"]


class QueuedOperation(BaseModel):
    """A persistence write waiting to be replayed.

    Attributes:
        id: Queue entry identifier
        type: Kind of write
        entity: Kind of record written
        entity_id: Id of the record written
        data: Payload handed to the sync callback
        timestamp: Milliseconds since the epoch of the last enqueue or attempt
        retry_count: Failed attempts so far
        last_error: Message of the most recent failure
    """

    id: str
    type: OperationType
    entity: EntityType
    entity_id: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: float
    retry_count: int = 0
    last_error: str | None = None


class ProcessResult(BaseModel):
    success: int = 0
    failed: int = 0


SyncCallback = Callable[[QueuedOperation], Awaitable[bool]]
StatusCallback = Callable[[int], None]


def _now_ms() -> float:
    return time.time() * 1000


class OfflineQueue:
    """In-memory queue of failed writes, replayed with exponential backoff.

    The sync callback performs the actual write and returns True on success.
    An operation that failed ``retry_count`` times becomes due again
    ``base_backoff_ms * 2 ** retry_count`` milliseconds after its last
    attempt, and is abandoned once ``max_retries`` is reached.
    """

    def __init__(
        self,
        on_sync: SyncCallback | None = None,
        on_status_change: StatusCallback | None = None,
        config: SyncConfig | None = None,
        clock: Callable[[], float] = _now_ms,
    ):
        self._config = config or SyncConfig()
        self._on_sync = on_sync
        self._on_status_change = on_status_change
        self._clock = clock
        self._operations: dict[str, QueuedOperation] = {}
        self._processing = False

    def set_on_sync(self, callback: SyncCallback) -> None:
        self._on_sync = callback

    def set_on_status_change(self, callback: StatusCallback) -> None:
        self._on_status_change = callback

    @property
    def pending_count(self) -> int:
        return len(self._operations)

    def _notify(self) -> None:
        if self._on_status_change is not None:
            self._on_status_change(self.pending_count)

    def enqueue(
        self,
        type: OperationType,
        entity: EntityType,
        entity_id: str,
        data: dict[str, Any] | None = None,
    ) -> str:
        operation = QueuedOperation(
            id=f"{entity}-{entity_id}-{uuid4().hex[:8]}",
            type=type,
            entity=entity,
            entity_id=entity_id,
            data=data or {},
            timestamp=self._clock(),
        )
        self._operations[operation.id] = operation
        logger.debug(f"Queued {type} for {entity} {entity_id}")
        self._notify()
        return operation.id

    def dequeue(self, operation_id: str) -> None:
        if self._operations.pop(operation_id, None) is not None:
            self._notify()

    def pending_operations(self) -> list[QueuedOperation]:
        return sorted(self._operations.values(), key=lambda op: op.timestamp)

    def clear_entity_operations(self, entity_id: str) -> None:
        stale = [
            op_id for op_id, op in self._operations.items() if op.entity_id == entity_id
        ]
        for op_id in stale:
            del self._operations[op_id]
        if stale:
            self._notify()

    def clear(self) -> None:
        self._operations.clear()
        self._notify()

    def backoff_delay(self, operation: QueuedOperation) -> float:
        return self._config.base_backoff_ms * (2**operation.retry_count)

    def _record_failure(self, operation: QueuedOperation, error: str) -> None:
        operation.retry_count += 1
        operation.last_error = error
        operation.timestamp = self._clock()
        logger.warning(
            f"Sync of {operation.entity} {operation.entity_id} failed "
            f"(attempt {operation.retry_count}): {error}"
        )

    async def process_queue(self) -> ProcessResult:
        """Replay every due operation through the sync callback.

        Returns immediately with zero counts when no callback is set or a
        replay is already running.
        """
        result = ProcessResult()
        if self._processing or self._on_sync is None:
            return result

        self._processing = True
        try:
            for operation in self.pending_operations():
                if operation.retry_count >= self._config.max_retries:
                    result.failed += 1
                    continue

                elapsed = self._clock() - operation.timestamp
                if operation.retry_count > 0 and elapsed < self.backoff_delay(operation):
                    continue

                try:
                    synced = await self._on_sync(operation)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self._record_failure(operation, str(e) or type(e).__name__)
                    result.failed += 1
                    continue

                if synced:
                    self._operations.pop(operation.id, None)
                    result.success += 1
                else:
                    self._record_failure(operation, "Sync returned false")
                    result.failed += 1
        finally:
            self._processing = False
            self._notify()

        return result
