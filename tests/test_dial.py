import threading

import pytest

from edgenet.common import AddrInfo, DialPriority
from edgenet.dial import DialQueue


def test_dial_queue():
    q = DialQueue()

    info0 = AddrInfo("a")
    q.add_task(info0, 1)
    assert q.heap_size() == 1

    info1 = AddrInfo("b")
    q.add_task(info1, 1)
    assert q.heap_size() == 2

    assert q.try_pop().addr_info.id == "a"
    assert q.try_pop().addr_info.id == "b"
    assert q.heap_size() == 0
    assert q.try_pop() is None

    done = threading.Event()
    popped = []

    def worker():
        popped.append(q.pop_task())
        done.set()

    thread = threading.Thread(target=worker, daemon=True)
    thread.start()

    assert not done.wait(0.3)

    q.add_task(info0, 1)
    assert done.wait(1.0)
    assert popped[0].addr_info.id == "a"


@pytest.mark.parametrize(
    "tasks, expected_len",
    [
        pytest.param([("a", "add")], 1, id="should be able to push element"),
        pytest.param([("a", "add"), ("a", "delete")], 0, id="should be able to delete"),
        pytest.param(
            [("a", "add"), ("b", "delete")], 1, id="should succeed on removing non-exist data"
        ),
        pytest.param([("a", "add"), ("a", "pop")], 0, id="should be able to pop"),
        pytest.param(
            [("a", "add"), ("a", "pop"), ("a", "delete")],
            0,
            id="should be able to delete popped data",
        ),
    ],
)
def test_del(tasks, expected_len):
    q = DialQueue()
    for peer_id, action in tasks:
        if action == "add":
            q.add_task(AddrInfo(peer_id), 1)
        elif action == "delete":
            q.delete_task(peer_id)
        elif action == "pop":
            task = q.pop_task(timeout=1.0)
            assert task.addr_info.id == peer_id
    assert q.heap_size() == expected_len


def test_lower_priority_value_pops_first():
    q = DialQueue()
    q.add_task(AddrInfo("random"), DialPriority.RANDOM_DIAL)
    q.add_task(AddrInfo("requested"), DialPriority.REQUESTED_DIAL)
    first = q.try_pop()
    assert first.peer_id == "requested"
    assert first.priority == DialPriority.REQUESTED_DIAL
    assert q.try_pop().peer_id == "random"


def test_close_unblocks_pop():
    q = DialQueue()
    result = []

    def worker():
        result.append(q.pop_task())

    thread = threading.Thread(target=worker, daemon=True)
    thread.start()
    q.close()
    thread.join(1.0)
    assert not thread.is_alive()
    assert result == [None]
    assert q.pop_task() is None
    assert len(q) == 0


def test_pop_task_times_out():
    q = DialQueue()
    assert q.pop_task(timeout=0.05) is None


def test_closed_queue_still_returns_pending_task():
    q = DialQueue()
    q.add_task(AddrInfo("a"), 1)
    q.close()
    assert q.pop_task().peer_id == "a"
    assert q.pop_task() is None


def test_len_tracks_tasks_until_deleted():
    q = DialQueue()
    q.add_task(AddrInfo("a"), 1)
    q.try_pop()
    assert len(q) == 1
    assert q.heap_size() == 0
    q.delete_task("a")
    assert len(q) == 0