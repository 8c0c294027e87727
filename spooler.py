# spooler.py
import logging
import threading

import listing
from errors import NoOutputStored, NotFound
from models import LAST, JobState, OutputInfo, SlotState
from notify import NotificationRegistry
from scheduler import Scheduler
from storage import JobStore

logger = logging.getLogger(__name__)


class Spooler:
    """Owning context for one queue: store, run slot and waiters.

    Every operation takes the same lock, so request handlers and the
    execution engine thread never run two core operations at once.
    """

    def __init__(self, first_id=1):
        self.lock = threading.RLock()
        self.store = JobStore(first_id=first_id)
        self.registry = NotificationRegistry(self.store)
        self.scheduler = Scheduler(self.store, self.registry)
        self.work_available = threading.Event()

    # ---------------- Client requests ----------------
    def submit(self, command, store_output=True):
        with self.lock:
            job_id = self.store.submit(command, store_output)
        logger.info("Job %s queued: %s", job_id, command)
        self.work_available.set()
        return job_id

    def remove(self, job_id):
        with self.lock:
            job = self.store.remove(job_id, protected_id=self.scheduler.current_job_id)
            self.registry.drop(job.id)
        logger.info("Job %s removed", job.id)
        return job

    def urgent(self, job_id):
        with self.lock:
            job = self.store.move_to_front(job_id, protected_id=self.scheduler.current_job_id)
        logger.info("Job %s moved to the front of the queue", job.id)
        return job

    def find(self, job_id):
        with self.lock:
            return self.store.find(job_id)

    def clear_finished(self):
        with self.lock:
            self.store.clear_finished()

    def render(self):
        with self.lock:
            return listing.render(self.store)

    def wait(self, channel, job_id):
        with self.lock:
            return self.registry.wait(channel, job_id)

    def cancel_wait(self, channel):
        with self.lock:
            self.registry.cancel(channel)

    def state(self, job_id):
        with self.lock:
            if job_id == LAST:
                job = self.store.active_tail() or self.store.finished_tail()
            else:
                job = self.store.find(job_id)
            if job is None:
                raise NotFound.for_job(job_id)
            return job.id, job.state

    def output(self, job_id):
        """Where the output of a running or finished job goes.

        LAST is the running job, or the most recently finished one when the
        run slot is free.
        """
        with self.lock:
            running = self.scheduler.running_job
            if job_id == LAST:
                if self.scheduler.state == SlotState.WAITING:
                    job = running
                else:
                    job = self.store.finished_tail()
                    if job is None:
                        raise NotFound("No jobs.")
            elif running is not None and running.id == job_id:
                job = running
            else:
                job = self.store.find_finished(job_id)

            if job is None or job.state == JobState.QUEUED:
                raise NotFound(f"Job {job_id} not finished or not running.")
            if not job.store_output:
                raise NoOutputStored()
            if job.state == JobState.FINISHED and job.output_path is None:
                # never spawned, so no file was kept
                raise NoOutputStored(f"Job {job.id} finished without an output file.")
            return OutputInfo(job_id=job.id, pid=job.pid, output_path=job.output_path)

    # ---------------- Execution engine ----------------
    def poll_next(self):
        with self.lock:
            job_id = self.scheduler.poll_next()
            if job_id is None:
                self.work_available.clear()
                return None
            return self.store.find_active(job_id)

    def attach_execution_info(self, job_id, output_path, pid):
        with self.lock:
            self.store.attach_execution_info(job_id, output_path, pid)

    def completed(self, exit_code):
        with self.lock:
            job = self.scheduler.completed(exit_code)
            if self.store.head() is not None:
                self.work_available.set()
        return job
