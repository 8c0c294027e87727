# cli.py
import logging
import threading

import click

from client import ServerUnavailable, SpoolerClient, follow_job
from config import settings
from models import LAST

VERSION = "taskspool 0.1.0"

job_id_argument = click.argument("job_id", type=int, required=False, default=LAST)
# lets "-1" through as a job id instead of an option
JOB_ID_CONTEXT = {"ignore_unknown_options": True}


@click.group(invoke_without_command=True)
@click.option("--host", default=None, help="Server host (TS_HOST)")
@click.option("--port", default=None, type=int, help="Server port (TS_PORT)")
@click.version_option(VERSION, "-V", "--version", message="%(version)s")
@click.pass_context
def cli(ctx, host, port):
    """ts - a task spooler: queue shell commands and run them one at a time.

    A job id of -1 (or no id) means the last job.
    """
    ctx.ensure_object(dict)
    ctx.obj.setdefault("host", host or settings.host)
    ctx.obj.setdefault("port", port or settings.port)
    ctx.obj.setdefault("base_url", f"http://{ctx.obj['host']}:{ctx.obj['port']}")
    if ctx.invoked_subcommand is None:
        ctx.invoke(list_jobs)


def get_client(ctx):
    obj = ctx.ensure_object(dict)
    if "client" not in obj:
        obj["client"] = SpoolerClient(obj.get("base_url"))
    return obj["client"]


def request(ctx, method, *args):
    try:
        return getattr(get_client(ctx), method)(*args)
    except ServerUnavailable as e:
        raise click.ClickException(str(e))


def echo_answer(ctx, answer):
    """Print a message answer and exit with 1; returns the answer otherwise."""
    if answer["kind"] == "list_line":
        click.echo(answer["text"].rstrip("\n"))
        ctx.exit(1)
    return answer


# ---------------- Server ----------------
@cli.command()
@click.option("--output-dir", default=None, help="Directory for job output files (TS_OUTPUT_DIR)")
@click.option("--poll-interval", default=None, type=float, help="Idle polling interval in seconds (TS_POLL_INTERVAL)")
@click.option("--log-level", default=None, help="Logging level (TS_LOG_LEVEL)")
@click.pass_context
def serve(ctx, output_dir, poll_interval, log_level):
    """Run the queue server in the foreground"""
    import uvicorn

    from dashboard import create_app
    from spooler import Spooler
    from worker import Worker

    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host, port = ctx.obj["host"], ctx.obj["port"]

    spooler = Spooler()
    stop_event = threading.Event()
    worker = Worker(spooler, output_dir=output_dir, poll_interval=poll_interval, stop_event=stop_event)
    worker_thread = threading.Thread(target=worker.run, name="ts-worker", daemon=True)

    server = None

    def on_shutdown():
        stop_event.set()
        spooler.work_available.set()
        server.should_exit = True

    app = create_app(spooler, on_shutdown=on_shutdown)
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="warning"))

    click.echo(f"🚀 Serving on {host}:{port} (output_dir={worker.output_dir}, poll={worker.poll_interval}s)")
    worker_thread.start()
    try:
        server.run()
    finally:
        click.echo("🛑 Stopping worker ...")
        stop_event.set()
        spooler.work_available.set()
        worker_thread.join(timeout=5.0)
        click.echo("✅ Server stopped.")


@cli.command()
@click.pass_context
def kill(ctx):
    """Kill the task spooler server"""
    request(ctx, "shutdown")
    click.echo("Server is shutting down.")


# ---------------- Jobs ----------------
@cli.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.option("-n", "--no-store", is_flag=True, help="Don't store the output of the command")
@click.option("-f", "--foreground", is_flag=True, help="Wait for the job and exit with its exit code")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def add(ctx, no_store, foreground, command):
    """Queue a new job"""
    answer = request(ctx, "submit", " ".join(command), not no_store)
    job_id = answer["job_id"]
    click.echo(job_id)
    if foreground:
        answer = echo_answer(ctx, request(ctx, "wait", job_id))
        ctx.exit(answer["exit_code"])


@cli.command(name="list")
@click.pass_context
def list_jobs(ctx):
    """Show the job list (default action)"""
    answer = request(ctx, "list")
    click.echo(answer["text"], nl=False)


@cli.command(context_settings=JOB_ID_CONTEXT)
@job_id_argument
@click.pass_context
def remove(ctx, job_id):
    """Remove a queued job"""
    answer = echo_answer(ctx, request(ctx, "remove", job_id))
    click.echo(f"Job {answer['job_id']} removed.")


@cli.command(context_settings=JOB_ID_CONTEXT)
@job_id_argument
@click.pass_context
def urgent(ctx, job_id):
    """Move a queued job to the front of the queue"""
    answer = echo_answer(ctx, request(ctx, "urgent", job_id))
    click.echo(f"Job {answer['job_id']} moved to the front.")


@cli.command(context_settings=JOB_ID_CONTEXT)
@job_id_argument
@click.pass_context
def state(ctx, job_id):
    """Show the state of a job"""
    answer = echo_answer(ctx, request(ctx, "state", job_id))
    click.echo(answer["state"])


@cli.command(context_settings=JOB_ID_CONTEXT)
@job_id_argument
@click.pass_context
def wait(ctx, job_id):
    """Wait for a job and exit with its exit code"""
    answer = echo_answer(ctx, request(ctx, "wait", job_id))
    ctx.exit(answer["exit_code"])


@cli.command()
@click.pass_context
def clear(ctx):
    """Clear the list of finished jobs"""
    request(ctx, "clear_finished")


# ---------------- Output ----------------
@cli.command(context_settings=JOB_ID_CONTEXT)
@job_id_argument
@click.pass_context
def output(ctx, job_id):
    """Show the output file of a job"""
    answer = echo_answer(ctx, request(ctx, "output", job_id))
    click.echo(answer["output_path"] or "(...)")


@cli.command(context_settings=JOB_ID_CONTEXT)
@job_id_argument
@click.pass_context
def pid(ctx, job_id):
    """Show the pid of a job"""
    answer = echo_answer(ctx, request(ctx, "output", job_id))
    click.echo(answer["pid"] if answer["pid"] is not None else "(...)")


def _follow(ctx, job_id, last_lines):
    try:
        answer = follow_job(get_client(ctx), job_id, out=click.get_binary_stream("stdout"), last_lines=last_lines)
    except ServerUnavailable as e:
        raise click.ClickException(str(e))
    except OSError as e:
        raise click.ClickException(f"cannot read the output file: {e}")
    answer = echo_answer(ctx, answer)
    ctx.exit(answer["exit_code"])


@cli.command(context_settings=JOB_ID_CONTEXT)
@job_id_argument
@click.pass_context
def tail(ctx, job_id):
    """Follow the last lines of a job's output until it finishes"""
    _follow(ctx, job_id, last_lines=10)


@cli.command(context_settings=JOB_ID_CONTEXT)
@job_id_argument
@click.pass_context
def cat(ctx, job_id):
    """Print the whole output of a job, following it until it finishes"""
    _follow(ctx, job_id, last_lines=None)


def main():
    cli(obj={})


# ---------------- Entrypoint ----------------
if __name__ == "__main__":
    main()
