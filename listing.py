# listing.py
from models import JobState

ROW_FORMAT = "{:<4}{:<10}{:<20}{:<8}{:<37}"
NOT_YET_ASSIGNED = "(...)"


def output_descriptor(job):
    if job.state == JobState.FINISHED:
        return job.output_path or "stdout"
    if not job.store_output:
        return "stdout"
    if job.state == JobState.QUEUED:
        return "(file)"
    # running, the engine may not have attached the path yet
    return job.output_path or NOT_YET_ASSIGNED


def render_lines(store):
    lines = [ROW_FORMAT.format("ID", "State", "Output", "E-Level", "Command")]
    for job in store.active_jobs():
        lines.append(ROW_FORMAT.format(job.id, job.state.value, output_descriptor(job), "", job.command))
    for job in store.finished_jobs():
        lines.append(ROW_FORMAT.format(job.id, job.state.value, output_descriptor(job), job.exit_code, job.command))
    return lines


def render(store):
    """Human-readable job table: active jobs first, then finished ones."""
    return "".join(line + "\n" for line in render_lines(store))
