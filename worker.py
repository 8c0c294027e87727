# worker.py
import logging
import os
import subprocess
import tempfile

from config import settings
from errors import InternalConsistencyError

logger = logging.getLogger(__name__)

SPAWN_FAILED = -1


class Worker:
    """Execution engine: runs the job the scheduler hands out, one at a time."""

    def __init__(self, spooler, output_dir=None, poll_interval=None, stop_event=None):
        self.spooler = spooler
        self.output_dir = output_dir or settings.output_dir
        self.poll_interval = settings.poll_interval if poll_interval is None else poll_interval
        self.stop_event = stop_event  # threading.Event() passed in by the server

    def run(self):
        while not (self.stop_event and self.stop_event.is_set()):
            if not self.run_once():
                self.spooler.work_available.wait(self.poll_interval)

    def run_once(self):
        """Dispatch and run the next queued job. Returns False when idle."""
        job = self.spooler.poll_next()
        if job is None:
            return False
        self._log_transition(job.id, "queued", "running")
        exit_code = self._process_job(job)
        try:
            self.spooler.completed(exit_code)
        except InternalConsistencyError:
            logger.exception("Refused completion report for job %s", job.id)
            return True
        self._log_transition(job.id, "running", "finished", f"(exit_code={exit_code})")
        return True

    def _log_transition(self, job_id, old_state, new_state, extra=""):
        logger.info("Job %s: %s → %s %s", job_id, old_state, new_state, extra)

    def _open_output(self):
        fd, path = tempfile.mkstemp(prefix="ts-out.", dir=self.output_dir)
        return os.fdopen(fd, "wb"), path

    def _process_job(self, job):
        out, path = (None, None)
        if job.store_output:
            try:
                out, path = self._open_output()
            except OSError as e:
                logger.error("Job %s: cannot create output file: %s", job.id, e)
                return SPAWN_FAILED
        try:
            try:
                proc = subprocess.Popen(
                    job.command,
                    shell=True,
                    stdin=subprocess.DEVNULL,
                    stdout=out,
                    stderr=subprocess.STDOUT if out is not None else None,
                )
            except OSError as e:
                logger.error("Job %s: cannot spawn %r: %s", job.id, job.command, e)
                if path is not None:
                    out.close()
                    out = None
                    os.unlink(path)
                return SPAWN_FAILED
            self.spooler.attach_execution_info(job.id, path, proc.pid)
            logger.debug("Job %s: pid=%s output=%s", job.id, proc.pid, path or "stdout")
            return proc.wait()
        finally:
            if out is not None:
                out.close()
