"""Tests for the dependency queue."""

from __future__ import annotations

from hiveflow.models import WorkItem
from hiveflow.swarm.queue import DependencyQueue


def _item(item_id: str, *deps: str, status: str = "ready") -> WorkItem:
    return WorkItem(id=item_id, title=item_id, dependencies=deps, status=status)  # type: ignore[arg-type]


class TestEnqueueDequeue:
    def test_fifo_order(self) -> None:
        q = DependencyQueue().enqueue(_item("A")).enqueue(_item("B"))
        head, q = q.dequeue_next()
        assert head.id == "A"
        head, q = q.dequeue_next()
        assert head.id == "B"
        head, q = q.dequeue_next()
        assert head is None

    def test_enqueue_is_idempotent_by_id(self) -> None:
        q = DependencyQueue().enqueue(_item("A"))
        assert q.enqueue(_item("A")) is q
        assert q.enqueue(_item("X"), known_ids={"X"}) is q

    def test_enqueue_skips_blocked_ids(self) -> None:
        q = DependencyQueue(blocked=(_item("A", "Z"),))
        assert q.enqueue(_item("A")) is q

    def test_operations_do_not_mutate(self) -> None:
        q = DependencyQueue().enqueue(_item("A"))
        _, rest = q.dequeue_next()
        assert len(q.backlog) == 1
        assert rest.backlog == ()


class TestReclassify:
    def test_ready_when_dependencies_completed(self) -> None:
        q, ready = DependencyQueue().reclassify(_item("B", "A"), {"A"})
        assert ready is True
        assert q.blocked == ()

    def test_blocked_when_dependency_pending(self) -> None:
        q, ready = DependencyQueue().reclassify(_item("B", "A"), set())
        assert ready is False
        assert q.blocked_ids == ["B"]

    def test_mark_blocked_once(self) -> None:
        q = DependencyQueue().mark_blocked(_item("B", "A"))
        assert q.mark_blocked(_item("B", "A")) is q


class TestTryUnblock:
    def test_moves_ready_items_to_front(self) -> None:
        q = DependencyQueue(backlog=(_item("X"),), blocked=(_item("B", "A"), _item("C", "Z")))
        q, unblocked = q.try_unblock({"A"})
        assert [i.id for i in unblocked] == ["B"]
        assert [i.id for i in q.backlog] == ["B", "X"]
        assert q.blocked_ids == ["C"]
        assert q.backlog[0].status == "draft"

    def test_keeps_blocked_order(self) -> None:
        q = DependencyQueue(blocked=(_item("C", "A"), _item("B", "A")))
        q, _ = q.try_unblock({"A"})
        assert [i.id for i in q.backlog] == ["C", "B"]

    def test_idempotent(self) -> None:
        q = DependencyQueue(backlog=(_item("X"),), blocked=(_item("B", "A"), _item("C", "B")))
        once, _ = q.try_unblock({"A"})
        twice, second = once.try_unblock({"A"})
        assert second == []
        assert twice == once

    def test_chain_unblocks_one_link_per_call(self) -> None:
        q = DependencyQueue(blocked=(_item("B", "A"), _item("C", "B")))
        q, unblocked = q.try_unblock({"A"})
        assert [i.id for i in unblocked] == ["B"]
        assert q.blocked_ids == ["C"]
        q, unblocked = q.try_unblock({"A", "B"})
        assert [i.id for i in unblocked] == ["C"]

    def test_nothing_to_unblock_returns_same_queue(self) -> None:
        q = DependencyQueue(blocked=(_item("B", "A"),))
        same, unblocked = q.try_unblock(set())
        assert same is q
        assert unblocked == []


def test_requeue_appends_once() -> None:
    q = DependencyQueue(backlog=(_item("A"),)).requeue(_item("B"))
    assert [i.id for i in q.backlog] == ["A", "B"]
    assert q.requeue(_item("B")) is q
