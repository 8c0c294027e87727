# dashboard.py
import asyncio
import html
import logging

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from config import settings
from errors import SpoolerError
from listing import output_descriptor
from models import JobState

logger = logging.getLogger(__name__)


class NewJob(BaseModel):
    command: str
    store_output: bool = True


class FutureChannel:
    """Delivers one wait answer into an asyncio future, from any thread."""

    def __init__(self, loop):
        self.loop = loop
        self.future = loop.create_future()

    def _resolve(self, answer):
        if not self.future.done():
            self.future.set_result(answer)

    def send_exit_code(self, exit_code):
        self.loop.call_soon_threadsafe(self._resolve, {"kind": "waitjob_ok", "exit_code": exit_code})

    def send_line(self, text):
        self.loop.call_soon_threadsafe(self._resolve, line(text))


def line(text):
    return {"kind": "list_line", "text": text}


# ---------- Shared UI ----------
BASE_STYLE = """
  body { font-family: Arial, sans-serif; margin: 0; background: #f9f9f9; color: #333; }
  h1 { background: #2196F3; color: white; padding: 15px; margin: 0; }
  h2 { margin-top: 30px; color: #2196F3; }
  .container { padding: 20px; }
  table { border-collapse: collapse; width: 100%; margin-top: 10px; background: white; }
  th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
  th { background-color: #2196F3; color: white; }
  tr:nth-child(even) { background-color: #f2f2f2; }
  .muted { color: #555; }
"""


def page(title: str, body_html: str) -> str:
    return f"""
    <html>
    <head>
      <title>{title}</title>
      <style>{BASE_STYLE}</style>
    </head>
    <body>
      <h1>{title}</h1>
      <div class="container">
        {body_html}
      </div>
    </body>
    </html>
    """


def jobs_table(title, jobs):
    body = f"""
      <h2>{title}</h2>
      <table>
        <tr><th>ID</th><th>State</th><th>Output</th><th>Exit code</th><th>Command</th></tr>
    """
    if not jobs:
        return body + "</table><p class='muted'>No jobs.</p>"
    for j in jobs:
        exit_code = j.exit_code if j.state == JobState.FINISHED else "-"
        output = output_descriptor(j)
        body += f"<tr><td>{j.id}</td><td>{j.state.value}</td><td>{html.escape(output)}</td><td>{exit_code}</td><td>{html.escape(j.command)}</td></tr>"
    return body + "</table>"


def create_app(spooler, on_shutdown=None, wait_poll=None):
    app = FastAPI(title="taskspool")
    app.state.spooler = spooler
    disconnect_poll = settings.wait_poll if wait_poll is None else wait_poll

    @app.exception_handler(SpoolerError)
    async def spooler_error_handler(request: Request, exc: SpoolerError):
        return JSONResponse(line(exc.message))

    # ---------- Status page ----------
    @app.get("/", response_class=HTMLResponse)
    def home():
        with spooler.lock:
            active = spooler.store.active_jobs()
            finished = spooler.store.finished_jobs()
            slot = spooler.scheduler.state.value
        body = f"<p class='muted'>Run slot: {slot}</p>"
        body += jobs_table("Queue", active)
        body += jobs_table("Finished", finished)
        return page("Task spooler", body)

    # ---------- Jobs ----------
    @app.post("/jobs")
    def new_job(job: NewJob):
        job_id = spooler.submit(job.command, job.store_output)
        return {"kind": "new_job_ok", "job_id": job_id}

    @app.get("/jobs")
    def list_jobs():
        return {"kind": "list", "text": spooler.render()}

    @app.delete("/jobs/{job_id}")
    def remove_job(job_id: int):
        job = spooler.remove(job_id)
        return {"kind": "remove_job_ok", "job_id": job.id}

    @app.post("/jobs/{job_id}/urgent")
    def urgent(job_id: int):
        job = spooler.urgent(job_id)
        return {"kind": "urgent_ok", "job_id": job.id}

    @app.get("/jobs/{job_id}/state")
    def job_state(job_id: int):
        resolved, state = spooler.state(job_id)
        return {"kind": "job_state", "job_id": resolved, "state": state.value}

    @app.get("/jobs/{job_id}/output")
    def output(job_id: int):
        info = spooler.output(job_id)
        return {"kind": "answer_output", "job_id": info.job_id, "pid": info.pid, "output_path": info.output_path}

    @app.get("/jobs/{job_id}/wait")
    async def wait_job(job_id: int, request: Request):
        channel = FutureChannel(asyncio.get_running_loop())
        await run_in_threadpool(spooler.wait, channel, job_id)
        try:
            while True:
                done, _ = await asyncio.wait({channel.future}, timeout=disconnect_poll)
                if done:
                    return channel.future.result()
                if await request.is_disconnected():
                    logger.debug("Waiter on job %s disconnected", job_id)
                    await run_in_threadpool(spooler.cancel_wait, channel)
                    return None
        except asyncio.CancelledError:
            # cannot await once cancelled, the lock is only held briefly
            spooler.cancel_wait(channel)
            raise

    # ---------- Maintenance ----------
    @app.post("/finished/clear")
    def clear_finished():
        spooler.clear_finished()
        return {"kind": "clear_finished_ok"}

    @app.post("/shutdown")
    def shutdown():
        logger.info("Shutdown requested")
        if on_shutdown is not None:
            on_shutdown()
        return {"kind": "shutdown_ok"}

    return app
