# client.py
import os
import sys
import threading
import time

import httpx

from config import settings
from models import LAST


class ServerUnavailable(Exception):
    pass


class SpoolerClient:
    """Talks to a running `ts serve` over HTTP. Every call returns the
    decoded answer envelope ({"kind": ..., ...})."""

    def __init__(self, base_url=None, http=None, timeout=10.0):
        self.http = http or httpx.Client(base_url=base_url or settings.base_url, timeout=timeout)

    def close(self):
        self.http.close()

    def _call(self, method, path, **kwargs):
        try:
            resp = self.http.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.TransportError as e:
            raise ServerUnavailable(f"cannot reach the server at {self.http.base_url}: {e}") from e
        return resp.json()

    def submit(self, command, store_output=True):
        return self._call("POST", "/jobs", json={"command": command, "store_output": store_output})

    def list(self):
        return self._call("GET", "/jobs")

    def remove(self, job_id=LAST):
        return self._call("DELETE", f"/jobs/{job_id}")

    def urgent(self, job_id=LAST):
        return self._call("POST", f"/jobs/{job_id}/urgent")

    def state(self, job_id=LAST):
        return self._call("GET", f"/jobs/{job_id}/state")

    def output(self, job_id=LAST):
        return self._call("GET", f"/jobs/{job_id}/output")

    def wait(self, job_id=LAST):
        # blocks until the job finishes
        return self._call("GET", f"/jobs/{job_id}/wait", timeout=None)

    def clear_finished(self):
        return self._call("POST", "/finished/clear")

    def shutdown(self):
        return self._call("POST", "/shutdown")


# ---------------- Follow output ----------------
def seek_last_lines(f, lines, block_size=1024):
    """Position a binary file so that reading yields its last `lines` lines."""
    f.seek(0, os.SEEK_END)
    end = pos = f.tell()
    found = 0
    while pos > 0:
        step = min(block_size, pos)
        pos -= step
        f.seek(pos)
        chunk = f.read(step)
        # a trailing newline closes the last line, it does not start one
        if pos + step == end and chunk.endswith(b"\n"):
            chunk = chunk[:-1]
        for i in range(len(chunk) - 1, -1, -1):
            if chunk[i:i + 1] == b"\n":
                found += 1
                if found == lines:
                    f.seek(pos + i + 1)
                    return
    f.seek(0)


def follow_file(path, done, out=None, last_lines=10, interval=1.0, block_size=1024):
    """Copy a growing file to `out` until `done` is set and the end is reached.

    `last_lines=None` starts from the beginning of the file.
    """
    if out is None:
        out = sys.stdout.buffer
    with open(path, "rb") as f:
        if last_lines is not None:
            seek_last_lines(f, last_lines, block_size)
        while True:
            finished = done.is_set()
            chunk = f.read(block_size)
            if chunk:
                out.write(chunk)
                out.flush()
                continue
            if finished:
                return
            time.sleep(interval)


def follow_job(client, job_id=LAST, out=None, last_lines=10, interval=1.0):
    """Follow the output of a job while waiting for it; returns the answer
    envelope (waitjob_ok, or list_line when the job cannot be followed)."""
    answer = client.output(job_id)
    if answer["kind"] != "answer_output":
        return answer
    path = answer["output_path"]
    while path is None:
        # running, but the engine has not attached the file yet
        time.sleep(interval)
        answer = client.output(answer["job_id"])
        if answer["kind"] != "answer_output":
            return answer
        path = answer["output_path"]

    done = threading.Event()
    result = {}

    def _wait():
        try:
            result["answer"] = client.wait(answer["job_id"])
        except ServerUnavailable as e:
            result["error"] = e
        finally:
            done.set()

    waiter = threading.Thread(target=_wait, name="ts-wait", daemon=True)
    waiter.start()
    follow_file(path, done, out=out, last_lines=last_lines, interval=interval)
    waiter.join()
    if "error" in result:
        raise result["error"]
    return result["answer"]
