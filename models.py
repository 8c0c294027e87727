# models.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

# Sentinel job id: "the implicit target", resolved differently per operation
LAST = -1


class JobState(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    FINISHED = "finished"


class SlotState(str, Enum):
    FREE = "free"         # no job is running
    WAITING = "waiting"   # a job holds the slot, waiting for it to finish


@dataclass
class Job:
    id: int
    command: str
    store_output: bool = True
    state: JobState = JobState.QUEUED
    output_path: Optional[str] = None
    pid: Optional[int] = None
    exit_code: Optional[int] = None

    @property
    def has_execution_info(self) -> bool:
        return self.pid is not None


class Channel(Protocol):
    """Where the answer to a blocked wait is delivered."""

    def send_exit_code(self, exit_code: int) -> None: ...

    def send_line(self, text: str) -> None: ...


@dataclass
class NotifyEntry:
    channel: Channel
    job_id: int


@dataclass
class OutputInfo:
    job_id: int
    pid: Optional[int]
    output_path: Optional[str]
