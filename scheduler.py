# scheduler.py
from errors import InternalConsistencyError
from models import JobState, SlotState


class Scheduler:
    """Single run slot deciding which job the execution engine runs next.

    The slot remembers the id of the job holding it instead of relying on
    the head of the active list being that job.
    """

    def __init__(self, store, registry):
        self.store = store
        self.registry = registry
        self.state = SlotState.FREE
        self.current_job_id = None

    def reserve_next(self):
        """First dispatch phase: occupy the slot with the head job."""
        if self.state == SlotState.WAITING:
            return None
        head = self.store.head()
        if head is None:
            return None
        self.state = SlotState.WAITING
        self.current_job_id = head.id
        return head.id

    def mark_running(self):
        """Second dispatch phase: flip the reserved head job to running."""
        head = self.store.head()
        if self.state != SlotState.WAITING or head is None or head.id != self.current_job_id:
            raise InternalConsistencyError("no reserved job at the head of the queue")
        if head.state != JobState.QUEUED:
            raise InternalConsistencyError(f"job {head.id} is already {head.state.value}")
        head.state = JobState.RUNNING
        return head

    def poll_next(self):
        job_id = self.reserve_next()
        if job_id is not None:
            self.mark_running()
        return job_id

    def completed(self, exit_code):
        if self.state != SlotState.WAITING:
            raise InternalConsistencyError("completion reported while the run slot is free")
        job = self.store.finish_head(self.current_job_id, exit_code)
        self.state = SlotState.FREE
        self.current_job_id = None
        self.registry.fire(job.id)
        return job

    @property
    def running_job(self):
        if self.current_job_id is None:
            return None
        return self.store.find_active(self.current_job_id)
