"""Shared test fixtures."""

import pytest

from spooler import Spooler


class RecordingChannel:
    """Channel that keeps every answer it is sent."""

    def __init__(self):
        self.answers = []

    def send_exit_code(self, exit_code):
        self.answers.append(("exit_code", exit_code))

    def send_line(self, text):
        self.answers.append(("line", text))


@pytest.fixture()
def spooler():
    return Spooler()


@pytest.fixture()
def channel():
    return RecordingChannel()


def run_head(spooler, exit_code=0, output_path=None, pid=100):
    """Dispatch the head job and report it finished, like the worker does."""
    job = spooler.poll_next()
    assert job is not None
    spooler.attach_execution_info(job.id, output_path, pid)
    return spooler.completed(exit_code)
