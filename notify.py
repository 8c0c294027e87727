# notify.py
import logging

from errors import CannotWait
from models import LAST, JobState, NotifyEntry

logger = logging.getLogger(__name__)


class NotificationRegistry:
    """Clients blocked on "wait until job X finishes"."""

    def __init__(self, store):
        self.store = store
        self._entries = []

    def _resolve(self, job_id):
        if job_id == LAST:
            return self.store.active_tail() or self.store.finished_tail()
        return self.store.find(job_id)

    def wait(self, channel, job_id):
        """Answer right away when possible, otherwise register a waiter.

        Returns True when an entry was registered.
        """
        job = self._resolve(job_id)
        if job is None:
            channel.send_line(CannotWait.for_job(job_id).message)
            return False
        if job.state == JobState.FINISHED:
            channel.send_exit_code(job.exit_code)
            return False
        # one entry per channel: a new wait replaces the old one
        self.cancel(channel)
        self._entries.append(NotifyEntry(channel=channel, job_id=job.id))
        logger.debug("Waiter registered on job %s", job.id)
        return True

    def fire(self, job_id):
        """Deliver the exit code to every waiter of a finished job."""
        job = self.store.find_finished(job_id)
        if job is None:
            return 0
        matching = [e for e in self._entries if e.job_id == job_id]
        self._entries = [e for e in self._entries if e.job_id != job_id]
        for entry in matching:
            try:
                entry.channel.send_exit_code(job.exit_code)
            except Exception:
                logger.exception("Failed to notify a waiter of job %s", job_id)
        return len(matching)

    def drop(self, job_id):
        """Tell the waiters of a job that left the queue unfinished."""
        matching = [e for e in self._entries if e.job_id == job_id]
        self._entries = [e for e in self._entries if e.job_id != job_id]
        for entry in matching:
            try:
                entry.channel.send_line(CannotWait.for_job(job_id).message)
            except Exception:
                logger.exception("Failed to notify a waiter of job %s", job_id)
        return len(matching)

    def cancel(self, channel):
        self._entries = [e for e in self._entries if e.channel is not channel]

    def pending(self, job_id=None):
        if job_id is None:
            return list(self._entries)
        return [e for e in self._entries if e.job_id == job_id]
