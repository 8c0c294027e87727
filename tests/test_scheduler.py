import pytest

from conftest import run_head
from errors import InternalConsistencyError, NotRemovable
from models import JobState, SlotState


def running_count(spooler):
    jobs = spooler.store.active_jobs() + spooler.store.finished_jobs()
    return sum(1 for j in jobs if j.state == JobState.RUNNING)


def test_poll_on_empty_queue_is_a_noop(spooler):
    assert spooler.scheduler.poll_next() is None
    assert spooler.scheduler.poll_next() is None
    assert spooler.scheduler.state == SlotState.FREE


def test_poll_dispatches_head_once(spooler):
    a = spooler.submit("a")
    spooler.submit("b")
    assert spooler.scheduler.poll_next() == a
    assert spooler.scheduler.state == SlotState.WAITING
    assert spooler.scheduler.current_job_id == a
    assert spooler.find(a).state == JobState.RUNNING
    # slot is busy
    assert spooler.scheduler.poll_next() is None
    assert running_count(spooler) == 1


def test_two_phase_dispatch(spooler):
    a = spooler.submit("a")
    assert spooler.scheduler.reserve_next() == a
    assert spooler.find(a).state == JobState.QUEUED
    spooler.scheduler.mark_running()
    assert spooler.find(a).state == JobState.RUNNING
    with pytest.raises(InternalConsistencyError):
        spooler.scheduler.mark_running()


def test_mark_running_without_reservation(spooler):
    spooler.submit("a")
    with pytest.raises(InternalConsistencyError):
        spooler.scheduler.mark_running()


def test_fifo_order(spooler):
    for name in ("A", "B", "C"):
        spooler.submit(f"echo {name}")
    ran = []
    while True:
        job = spooler.poll_next()
        if job is None:
            break
        ran.append(job.command)
        assert running_count(spooler) == 1
        spooler.completed(0)
    assert ran == ["echo A", "echo B", "echo C"]


def test_completed_moves_job_to_finished(spooler):
    a = spooler.submit("a")
    job = run_head(spooler, exit_code=5)
    assert job.id == a
    assert spooler.scheduler.state == SlotState.FREE
    assert spooler.scheduler.current_job_id is None
    assert spooler.store.active_jobs() == []
    finished = spooler.store.finished_jobs()
    assert [j.id for j in finished] == [a]
    assert finished[0].exit_code == 5


def test_completed_while_free_is_refused(spooler):
    spooler.submit("a")
    with pytest.raises(InternalConsistencyError):
        spooler.completed(0)
    assert spooler.store.finished_jobs() == []
    assert spooler.store.head().state == JobState.QUEUED


def test_completed_before_mark_running_is_refused(spooler):
    a = spooler.submit("a")
    spooler.scheduler.reserve_next()
    with pytest.raises(InternalConsistencyError):
        spooler.completed(0)
    assert spooler.find(a).state == JobState.QUEUED
    assert spooler.scheduler.state == SlotState.WAITING


def test_completed_fires_waiters(spooler, channel):
    a = spooler.submit("a")
    spooler.poll_next()
    spooler.wait(channel, a)
    spooler.completed(2)
    assert channel.answers == [("exit_code", 2)]


def test_reserved_job_cannot_be_removed(spooler):
    a = spooler.submit("a")
    spooler.scheduler.reserve_next()
    with pytest.raises(NotRemovable):
        spooler.remove(a)
