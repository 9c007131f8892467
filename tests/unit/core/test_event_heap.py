"""Unit tests for EventHeap and Wakeup ordering."""

from resiliencesim.core.event_heap import EventHeap, Wakeup


def _noop():
    return None


class TestWakeupOrdering:
    def test_orders_by_time(self):
        early = Wakeup(1.0, _noop)
        late = Wakeup(2.0, _noop)
        assert early < late
        assert not late < early

    def test_same_time_keeps_insertion_order(self):
        first = Wakeup(5.0, _noop)
        second = Wakeup(5.0, _noop)
        assert first < second

    def test_cancel(self):
        w = Wakeup(1.0, _noop)
        assert not w.cancelled
        w.cancel()
        assert w.cancelled


class TestEventHeap:
    def test_pops_in_time_order(self):
        heap = EventHeap()
        heap.push([Wakeup(3.0, _noop), Wakeup(1.0, _noop)])
        heap.push(Wakeup(2.0, _noop))

        assert heap.size() == 3
        assert [heap.pop().time for _ in range(3)] == [1.0, 2.0, 3.0]
        assert not heap.has_events()

    def test_initial_wakeups_are_heapified(self):
        heap = EventHeap([Wakeup(9.0, _noop), Wakeup(4.0, _noop)])
        assert heap.pop().time == 4.0

    def test_clear(self):
        heap = EventHeap([Wakeup(1.0, _noop)])
        heap.clear()
        assert heap.size() == 0
