# storage.py
from collections import deque
from itertools import count

from errors import CannotMove, InternalConsistencyError, NotRemovable
from models import LAST, Job, JobState


class JobStore:
    """Owns every Job: the active list (queued/running, FIFO) and the
    finished list (append-ordered, cleared only in bulk).

    Jobs are moved from one list to the other, never copied, so an id is in
    at most one of them.
    """

    def __init__(self, first_id=1):
        self._active = deque()
        self._finished = deque()
        self._ids = count(first_id)

    # ---------------- Lookups ----------------
    def head(self):
        return self._active[0] if self._active else None

    def active_tail(self):
        return self._active[-1] if self._active else None

    def finished_tail(self):
        return self._finished[-1] if self._finished else None

    def find_active(self, job_id):
        for job in self._active:
            if job.id == job_id:
                return job
        return None

    def find_finished(self, job_id):
        for job in self._finished:
            if job.id == job_id:
                return job
        return None

    def find(self, job_id):
        job = self.find_active(job_id)
        if job is None:
            job = self.find_finished(job_id)
        return job

    def active_jobs(self):
        return list(self._active)

    def finished_jobs(self):
        return list(self._finished)

    # ---------------- Mutations ----------------
    def submit(self, command, store_output=True):
        job = Job(id=next(self._ids), command=command, store_output=store_output)
        self._active.append(job)
        return job.id

    def remove(self, job_id, protected_id=None):
        """Drop a still-queued job from the active list and return it.

        LAST means the tail of the active list. `protected_id` is the job the
        run slot has reserved; it is never removable.
        """
        job = self.active_tail() if job_id == LAST else self.find_active(job_id)
        if job is None or job.state != JobState.QUEUED or job.id == protected_id:
            raise NotRemovable.for_job(job_id)
        self._active.remove(job)
        return job

    def move_to_front(self, job_id, protected_id=None):
        """Reposition a queued job to the head of the active list.

        When the run slot holds the head, the job goes right behind it.
        """
        job = self.active_tail() if job_id == LAST else self.find_active(job_id)
        if job is None or job.state != JobState.QUEUED or job.id == protected_id:
            raise CannotMove.for_job(job_id)
        self._active.remove(job)
        head = self.head()
        if head is not None and head.id == protected_id:
            self._active.insert(1, job)
        else:
            self._active.appendleft(job)
        return job

    def finish_head(self, job_id, exit_code):
        head = self.head()
        if head is None or head.id != job_id or head.state != JobState.RUNNING:
            raise InternalConsistencyError(
                f"job {job_id} is not the running head of the queue"
            )
        self._active.popleft()
        head.state = JobState.FINISHED
        head.exit_code = exit_code
        self._finished.append(head)
        return head

    def clear_finished(self):
        self._finished = deque()

    def attach_execution_info(self, job_id, output_path, pid):
        job = self.find_active(job_id)
        if job is None or job.state != JobState.RUNNING:
            raise InternalConsistencyError(f"job {job_id} is not running")
        if job.has_execution_info:
            raise InternalConsistencyError(
                f"job {job_id} already has execution info (pid={job.pid})"
            )
        job.output_path = output_path
        job.pid = pid
        return job
