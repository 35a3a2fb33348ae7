"""Cancellable subprocess invocation with explicit start-failure statuses."""

from __future__ import annotations

import errno
import subprocess
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Sequence


class InvokeStatus(str, Enum):
    """Outcome of starting and waiting on an external process."""

    OK = "ok"
    NOT_FOUND = "not_found"
    NOT_EXECUTABLE = "not_executable"
    RUNTIME_FAILURE = "runtime_failure"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class InvokeResult:
    """Captured result of one process invocation.

    ``status`` is OK whenever the process ran to completion, whatever its exit
    code; callers check ``returncode`` themselves.
    """

    status: InvokeStatus
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status is InvokeStatus.OK and self.returncode == 0

    def output_text(self) -> str:
        """First non-empty of stdout, stderr or the start error, stripped."""
        for text in (self.stdout, self.stderr, self.error):
            if text and text.strip():
                return text.strip()
        return ""


def _terminate(proc: subprocess.Popen, timeout: float) -> None:
    try:
        proc.terminate()
    except OSError:
        return
    try:
        proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        try:
            proc.kill()
        except OSError:
            return
        proc.wait()


def run_process(
    cmd: Sequence[str],
    cancel: threading.Event | None = None,
    poll_interval: float = 0.25,
    terminate_timeout: float = 5.0,
) -> InvokeResult:
    """Run ``cmd`` to completion, capturing output.

    When ``cancel`` is set while the process runs, it is terminated (then
    killed) and a CANCELLED result is returned.
    """
    if cancel is not None and cancel.is_set():
        return InvokeResult(InvokeStatus.CANCELLED)
    try:
        proc = subprocess.Popen(
            list(cmd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            text=True,
            errors="replace",
        )
    except FileNotFoundError as exc:
        return InvokeResult(InvokeStatus.NOT_FOUND, error=str(exc))
    except PermissionError as exc:
        return InvokeResult(InvokeStatus.NOT_EXECUTABLE, error=str(exc))
    except OSError as exc:
        if exc.errno in (errno.ENOEXEC, errno.EACCES):
            return InvokeResult(InvokeStatus.NOT_EXECUTABLE, error=str(exc))
        return InvokeResult(InvokeStatus.RUNTIME_FAILURE, error=str(exc))

    with proc:
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=poll_interval)
                break
            except subprocess.TimeoutExpired:
                if cancel is not None and cancel.is_set():
                    _terminate(proc, terminate_timeout)
                    stdout, stderr = proc.communicate()
                    return InvokeResult(
                        InvokeStatus.CANCELLED,
                        returncode=proc.returncode,
                        stdout=stdout or "",
                        stderr=stderr or "",
                    )
    return InvokeResult(
        InvokeStatus.OK,
        returncode=proc.returncode,
        stdout=stdout or "",
        stderr=stderr or "",
    )
