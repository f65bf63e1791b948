"""最慢调用跟踪器与后台监听任务测试。"""
import asyncio

import pytest

from logquery.core.exceptions import BackendUnavailableError
from logquery.services.worst_calls import TrackerState, WorstCallsTracker
from logquery.tasks.worst_calls_listener import worst_calls_listener_loop


def entry(entry_id, ms):
    return {"id": entry_id, "ms": ms, "level": 30}


class TestTracker:
    def test_starts_bootstrapping_and_empty(self):
        tracker = WorstCallsTracker(capacity=5)
        assert tracker.state == TrackerState.BOOTSTRAPPING
        assert tracker.snapshot() == []

    def test_bootstrap_orders_descending_and_caps(self):
        tracker = WorstCallsTracker(capacity=3)
        tracker.bootstrap([entry("a", 10), entry("b", 300), entry("c", "50"), entry("d", 200)])
        assert [e["id"] for e in tracker.snapshot()] == ["b", "d", "c"]
        assert tracker.state == TrackerState.LIVE

    def test_change_replaces_old_entry(self):
        tracker = WorstCallsTracker(capacity=3)
        tracker.bootstrap([entry("a", 300), entry("b", 200), entry("c", 100)])
        tracker.apply_change(entry("c", 100), entry("d", 250))
        assert [e["id"] for e in tracker.snapshot()] == ["a", "d", "b"]

    def test_insert_without_old_entry_never_exceeds_capacity(self):
        tracker = WorstCallsTracker(capacity=50)
        tracker.bootstrap([entry(str(i), i) for i in range(50)])
        for i in range(50, 120):
            tracker.apply_change(None, entry(str(i), i))
        snapshot = tracker.snapshot()
        assert len(snapshot) == 50
        assert snapshot[0]["id"] == "119"
        assert snapshot[-1]["id"] == "70"

    def test_update_of_same_entry_is_not_duplicated(self):
        tracker = WorstCallsTracker(capacity=5)
        tracker.bootstrap([entry("a", 100)])
        tracker.apply_change(None, entry("a", 500))
        assert tracker.snapshot() == [entry("a", 500)]

    def test_deletion_event(self):
        tracker = WorstCallsTracker(capacity=5)
        tracker.bootstrap([entry("a", 100), entry("b", 50)])
        tracker.apply_change(entry("a", 100), None)
        assert [e["id"] for e in tracker.snapshot()] == ["b"]

    def test_snapshot_is_a_copy(self):
        tracker = WorstCallsTracker(capacity=5)
        tracker.bootstrap([entry("a", 100)])
        snapshot = tracker.snapshot()
        snapshot.clear()
        assert len(tracker) == 1


class FakeFeedBackend:
    """提供初始扫描结果和有限变更流的假 RethinkDB 后端。"""

    def __init__(self, initial, changes, bootstrap_error=None, feed_error=None):
        self.initial = initial
        self.changes = changes
        self.bootstrap_error = bootstrap_error
        self.feed_error = feed_error
        self.requested_limits = []

    async def top_by_latency(self, limit):
        self.requested_limits.append(limit)
        if self.bootstrap_error is not None:
            raise self.bootstrap_error
        return self.initial

    async def watch_top_by_latency(self, limit):
        for change in self.changes:
            yield change
        if self.feed_error is not None:
            raise self.feed_error


class TestListener:
    async def test_bootstrap_then_apply_changes(self):
        tracker = WorstCallsTracker(capacity=2)
        backend = FakeFeedBackend(
            initial=[entry("a", 300), entry("b", 200)],
            changes=[(entry("b", 200), entry("c", 400))],
        )

        await worst_calls_listener_loop(backend, tracker)

        assert backend.requested_limits == [2]
        assert [e["id"] for e in tracker.snapshot()] == ["c", "a"]
        # 变更流结束后继续提供最后的集合
        assert tracker.state == TrackerState.STALE

    async def test_bootstrap_failure_serves_empty_set(self):
        tracker = WorstCallsTracker(capacity=2)
        backend = FakeFeedBackend([], [], bootstrap_error=BackendUnavailableError("RethinkDB query failed"))

        await worst_calls_listener_loop(backend, tracker)

        assert tracker.snapshot() == []
        assert tracker.state == TrackerState.STALE

    async def test_feed_failure_keeps_last_known_set(self):
        tracker = WorstCallsTracker(capacity=3)
        backend = FakeFeedBackend(
            initial=[entry("a", 300)],
            changes=[(None, entry("b", 350))],
            feed_error=BackendUnavailableError("RethinkDB change feed failed"),
        )

        await worst_calls_listener_loop(backend, tracker)

        assert [e["id"] for e in tracker.snapshot()] == ["b", "a"]
        assert tracker.state == TrackerState.STALE

    async def test_cancellation_propagates(self):
        tracker = WorstCallsTracker(capacity=3)
        started = asyncio.Event()

        class BlockingBackend(FakeFeedBackend):
            async def watch_top_by_latency(self, limit):
                started.set()
                await asyncio.Event().wait()
                yield None, None

        task = asyncio.create_task(worst_calls_listener_loop(BlockingBackend([entry("a", 1)], []), tracker))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert tracker.snapshot() == [entry("a", 1)]
