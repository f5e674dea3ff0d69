import asyncio

import pytest

from mindnode.canvas.config import SyncConfig
from mindnode.canvas.sync import OfflineQueue, ProcessResult, SyncState, SyncStatus


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSyncStatus:
    def test_initial_state(self):
        status = SyncStatus()
        state = status.get_state()
        assert state.status == "synced"
        assert state.is_online is True
        assert state.pending_count == 0

    def test_subscribe_and_unsubscribe(self):
        status = SyncStatus()
        seen: list[SyncState] = []
        unsubscribe = status.subscribe(seen.append)

        status.set_syncing()
        status.set_synced()
        assert [s.status for s in seen] == ["syncing", "synced"]
        assert seen[-1].last_sync_time is not None

        unsubscribe()
        status.set_error("boom")
        assert len(seen) == 2
        unsubscribe()

    def test_get_state_returns_copy(self):
        status = SyncStatus()
        state = status.get_state()
        state.status = "error"
        assert status.get_state().status == "synced"

    def test_pending_and_offline(self):
        status = SyncStatus()
        status.set_pending(3)
        assert status.get_state().status == "pending"

        status.set_online(False)
        assert status.get_state().status == "offline"

        status.set_syncing()
        assert status.get_state().status == "offline"

        status.set_online(True)
        assert status.get_state().status == "pending"

        status.set_pending(0)
        assert status.get_state().status == "synced"

    def test_error_records_message(self):
        status = SyncStatus()
        status.set_error("network down")
        state = status.get_state()
        assert state.status == "error"
        assert state.last_error == "network down"

        status.set_synced()
        assert status.get_state().last_error is None

    def test_failing_listener_does_not_block_others(self):
        status = SyncStatus()
        seen: list[str] = []

        def broken(state: SyncState) -> None:
            raise RuntimeError("listener bug")

        status.subscribe(broken)
        status.subscribe(lambda state: seen.append(state.status))
        status.set_syncing()
        assert seen == ["syncing"]

    def test_instances_are_independent(self):
        first, second = SyncStatus(), SyncStatus(is_online=False)
        first.set_pending(2)
        assert second.get_state().pending_count == 0
        assert second.get_state().status == "offline"

    def test_close_drops_listeners(self):
        status = SyncStatus()
        seen: list[SyncState] = []
        status.subscribe(seen.append)
        status.close()
        status.set_syncing()
        assert seen == []


class TestOfflineQueue:
    def test_enqueue_and_dequeue(self):
        counts: list[int] = []
        queue = OfflineQueue(on_status_change=counts.append)
        op_id = queue.enqueue("update", "node", "n1", {"content": "x"})
        assert queue.pending_count == 1
        assert queue.pending_operations()[0].data == {"content": "x"}

        queue.dequeue(op_id)
        assert queue.pending_count == 0
        assert counts == [1, 0]

    def test_pending_operations_ordered_by_timestamp(self):
        clock = FakeClock(100)
        queue = OfflineQueue(clock=clock)
        queue.enqueue("create", "node", "late")
        clock.now = 50
        queue.enqueue("create", "node", "early")
        assert [op.entity_id for op in queue.pending_operations()] == ["early", "late"]

    def test_clear_entity_operations(self):
        queue = OfflineQueue()
        queue.enqueue("create", "node", "n1")
        queue.enqueue("update", "node", "n1")
        queue.enqueue("update", "node", "n2")
        queue.clear_entity_operations("n1")
        assert [op.entity_id for op in queue.pending_operations()] == ["n2"]

    def test_backoff_delay_doubles(self):
        queue = OfflineQueue(config=SyncConfig(base_backoff_ms=1000))
        queue.enqueue("create", "node", "n1")
        op = queue.pending_operations()[0]
        assert queue.backoff_delay(op) == 1000
        op.retry_count = 3
        assert queue.backoff_delay(op) == 8000

    @pytest.mark.asyncio
    async def test_successful_sync_dequeues(self):
        synced: list[str] = []

        async def on_sync(op) -> bool:
            synced.append(op.entity_id)
            return True

        queue = OfflineQueue(on_sync=on_sync)
        queue.enqueue("create", "node", "n1")
        queue.enqueue("create", "node", "n2")

        result = await queue.process_queue()
        assert result.success == 2
        assert result.failed == 0
        assert sorted(synced) == ["n1", "n2"]
        assert queue.pending_count == 0

    @pytest.mark.asyncio
    async def test_failures_retry_with_backoff(self):
        clock = FakeClock(0)
        attempts = 0

        async def on_sync(op) -> bool:
            nonlocal attempts
            attempts += 1
            raise ConnectionError("offline")

        queue = OfflineQueue(
            on_sync=on_sync,
            config=SyncConfig(base_backoff_ms=1000, max_retries=5),
            clock=clock,
        )
        queue.enqueue("update", "node", "n1")

        result = await queue.process_queue()
        assert result.failed == 1
        op = queue.pending_operations()[0]
        assert op.retry_count == 1
        assert op.last_error == "offline"

        # Backoff after one failure is 2000ms
        clock.now = 1500
        result = await queue.process_queue()
        assert (result.success, result.failed) == (0, 0)
        assert attempts == 1

        clock.now = 2000
        await queue.process_queue()
        assert attempts == 2
        assert queue.pending_operations()[0].retry_count == 2

    @pytest.mark.asyncio
    async def test_false_result_counts_as_failure(self):
        async def on_sync(op) -> bool:
            return False

        queue = OfflineQueue(on_sync=on_sync)
        queue.enqueue("delete", "node", "n1")
        result = await queue.process_queue()
        assert result.failed == 1
        assert queue.pending_operations()[0].last_error == "Sync returned false"

    @pytest.mark.asyncio
    async def test_max_retries_stops_attempts(self):
        calls = 0

        async def on_sync(op) -> bool:
            nonlocal calls
            calls += 1
            return True

        queue = OfflineQueue(on_sync=on_sync, config=SyncConfig(max_retries=2))
        queue.enqueue("update", "node", "n1")
        queue.pending_operations()[0].retry_count = 2

        result = await queue.process_queue()
        assert result.failed == 1
        assert calls == 0
        assert queue.pending_count == 1

    @pytest.mark.asyncio
    async def test_without_callback_nothing_happens(self):
        queue = OfflineQueue()
        queue.enqueue("update", "node", "n1")
        result = await queue.process_queue()
        assert (result.success, result.failed) == (0, 0)
        assert queue.pending_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_processing_is_skipped(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def on_sync(op) -> bool:
            started.set()
            await release.wait()
            return True

        queue = OfflineQueue(on_sync=on_sync)
        queue.enqueue("create", "node", "n1")

        first = asyncio.create_task(queue.process_queue())
        await started.wait()

        second = await queue.process_queue()
        assert second == ProcessResult(success=0, failed=0)
        assert queue.pending_count == 1

        release.set()
        result = await first
        assert result.success == 1
        assert queue.pending_count == 0

    @pytest.mark.asyncio
    async def test_status_callback_feeds_sync_status(self):
        status = SyncStatus()

        async def on_sync(op) -> bool:
            return True

        queue = OfflineQueue(on_sync=on_sync, on_status_change=status.set_pending)
        queue.enqueue("create", "node", "n1")
        assert status.get_state().status == "pending"

        await queue.process_queue()
        assert status.get_state().status == "synced"
        assert status.get_state().pending_count == 0
