# errors.py
from models import LAST


class SpoolerError(Exception):
    """User-facing error; its message is what the client gets to see."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFound(SpoolerError):
    @classmethod
    def for_job(cls, job_id):
        if job_id == LAST:
            return cls("No jobs.")
        return cls(f"Job {job_id} not found.")


class NotRemovable(SpoolerError):
    @classmethod
    def for_job(cls, job_id):
        if job_id == LAST:
            return cls("The last job cannot be removed.")
        return cls(f"The job {job_id} cannot be removed.")


class CannotMove(SpoolerError):
    @classmethod
    def for_job(cls, job_id):
        if job_id == LAST:
            return cls("The last job cannot be urgent.")
        return cls(f"The job {job_id} cannot be urgent.")


class CannotWait(SpoolerError):
    @classmethod
    def for_job(cls, job_id):
        if job_id == LAST:
            return cls("The last job cannot be waited.")
        return cls(f"The job {job_id} cannot be waited.")


class NoOutputStored(SpoolerError):
    def __init__(self, message="The job hasn't output stored."):
        super().__init__(message)


class InternalConsistencyError(RuntimeError):
    """The execution engine broke the scheduler contract.

    Raised before anything is mutated, so the job store still satisfies its
    invariants when this propagates.
    """
