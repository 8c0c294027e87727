import pytest

from conftest import run_head
from errors import CannotMove, NoOutputStored, NotFound, NotRemovable
from models import LAST, JobState


def test_remove_last_before_anything_runs(spooler):
    first = spooler.submit("first")
    spooler.submit("second")
    spooler.remove(LAST)
    assert [j.id for j in spooler.store.active_jobs()] == [first]
    assert spooler.find(first).state == JobState.QUEUED


def test_remove_queued_job_disappears_from_listing(spooler):
    spooler.submit("keep me")
    gone = spooler.submit("drop me")
    spooler.remove(gone)
    assert "drop me" not in spooler.render()


def test_remove_running_or_finished_fails(spooler):
    a = spooler.submit("a")
    run_head(spooler)
    b = spooler.submit("b")
    spooler.poll_next()
    with pytest.raises(NotRemovable):
        spooler.remove(a)
    with pytest.raises(NotRemovable):
        spooler.remove(b)
    with pytest.raises(NotRemovable):
        spooler.remove(LAST)


def test_urgent_moves_behind_running_job(spooler):
    a = spooler.submit("a")
    spooler.submit("b")
    c = spooler.submit("c")
    spooler.poll_next()
    spooler.urgent(c)
    assert [j.command for j in spooler.store.active_jobs()] == ["a", "c", "b"]
    assert spooler.scheduler.current_job_id == a
    spooler.completed(0)
    assert spooler.poll_next().id == c


def test_urgent_on_running_job_fails(spooler):
    a = spooler.submit("a")
    spooler.poll_next()
    with pytest.raises(CannotMove):
        spooler.urgent(a)


def test_state_query(spooler):
    with pytest.raises(NotFound) as exc:
        spooler.state(LAST)
    assert exc.value.message == "No jobs."
    a = spooler.submit("a")
    assert spooler.state(a) == (a, JobState.QUEUED)
    run_head(spooler)
    assert spooler.state(LAST) == (a, JobState.FINISHED)
    with pytest.raises(NotFound):
        spooler.state(42)


def test_output_of_running_job(spooler):
    a = spooler.submit("a")
    spooler.poll_next()
    info = spooler.output(LAST)
    assert (info.job_id, info.pid, info.output_path) == (a, None, None)
    spooler.attach_execution_info(a, "/tmp/out", 55)
    info = spooler.output(a)
    assert (info.pid, info.output_path) == (55, "/tmp/out")


def test_output_last_uses_finished_tail_when_free(spooler):
    spooler.submit("a")
    run_head(spooler, output_path="/tmp/a")
    b = spooler.submit("b")
    run_head(spooler, output_path="/tmp/b")
    info = spooler.output(LAST)
    assert (info.job_id, info.output_path) == (b, "/tmp/b")


def test_output_errors(spooler):
    with pytest.raises(NotFound) as exc:
        spooler.output(LAST)
    assert exc.value.message == "No jobs."

    a = spooler.submit("a")
    with pytest.raises(NotFound) as exc:
        spooler.output(a)
    assert exc.value.message == f"Job {a} not finished or not running."

    spooler.remove(a)
    b = spooler.submit("b", store_output=False)
    run_head(spooler)
    with pytest.raises(NoOutputStored) as exc:
        spooler.output(b)
    assert exc.value.message == "The job hasn't output stored."


def test_work_available_tracks_queue(spooler):
    assert not spooler.work_available.is_set()
    spooler.submit("a")
    assert spooler.work_available.is_set()
    spooler.submit("b")
    spooler.poll_next()
    spooler.completed(0)
    assert spooler.work_available.is_set()
    spooler.poll_next()
    spooler.completed(0)
    assert spooler.poll_next() is None
    assert not spooler.work_available.is_set()


def test_remove_tells_waiters_the_job_is_gone(spooler, channel):
    spooler.submit("a")
    b = spooler.submit("b")
    spooler.wait(channel, b)
    spooler.remove(b)
    assert channel.answers == [("line", f"The job {b} cannot be waited.")]
    assert spooler.registry.pending() == []
    run_head(spooler)
    assert channel.answers == [("line", f"The job {b} cannot be waited.")]
