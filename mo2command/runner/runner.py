from __future__ import annotations

import os
import signal
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mo2command.command.invocation import LaunchInvocation
from mo2command.core.atomic_io import write_atomic_json, write_once_text
from mo2command.core.time import utc_isoformat


class LaunchError(RuntimeError):
    pass


class LaunchTimeout(LaunchError):
    pass


class LaunchFailed(LaunchError):
    def __init__(self, returncode: int, stderr_preview: str) -> None:
        super().__init__(f"launcher failed exit={returncode} stderr={stderr_preview}")
        self.returncode = returncode
        self.stderr_preview = stderr_preview


@dataclass(frozen=True)
class RunResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str
    started_at: str
    ended_at: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "argv": self.argv,
            "returncode": self.returncode,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
        }


def _env_for(invocation: LaunchInvocation) -> dict[str, str] | None:
    if not invocation.env:
        return None
    env = os.environ.copy()
    env.update(invocation.env)
    return env


def _kill_process_group(pid: int) -> None:
    try:
        if hasattr(os, "killpg"):
            os.killpg(pid, signal.SIGKILL)
        else:
            os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        pass


def _popen(invocation: LaunchInvocation, **kwargs: Any) -> subprocess.Popen:
    try:
        return subprocess.Popen(
            invocation.argv,
            cwd=invocation.cwd,
            env=_env_for(invocation),
            start_new_session=True,
            **kwargs,
        )
    except (FileNotFoundError, PermissionError) as e:
        raise LaunchError(f"could not start {invocation.executable}: {e}") from e


def claim_record_dir(record_dir: Path, *, command_text: str) -> None:
    """
    Create a fresh record directory and write `command.txt` into it.

    Runs never share a record directory; an existing one is a `LaunchError`
    raised before anything is started.
    """
    try:
        record_dir.mkdir(parents=True, exist_ok=False)
    except FileExistsError as e:
        raise LaunchError(f"record dir already exists: {record_dir}") from e
    write_once_text(record_dir / "command.txt", command_text)


def run_invocation(
    invocation: LaunchInvocation,
    *,
    timeout_seconds: float | None = None,
    capture_output: bool = True,
    check: bool = False,
    record_dir: Path | None = None,
    command_text: str | None = None,
) -> RunResult:
    """
    Run a launch descriptor to completion.

    stdin is closed; stdout/stderr are captured as text unless
    `capture_output=False`, in which case they are inherited. When the timeout
    elapses the whole process group is killed and `LaunchTimeout` is raised.
    A non-zero exit status is only an error with `check=True`.

    With `record_dir`, the directory is claimed before launching and receives
    the rendered command (`command_text`, or the shell-free argv joined by
    spaces), the captured streams and a `result.json` summary.
    """
    if record_dir is not None:
        claim_record_dir(record_dir, command_text=command_text or " ".join(invocation.argv))

    pipe = subprocess.PIPE if capture_output else None
    started_at = utc_isoformat()
    proc = _popen(invocation, stdin=subprocess.DEVNULL, stdout=pipe, stderr=pipe, text=True)
    try:
        out, err = proc.communicate(timeout=timeout_seconds)
    except subprocess.TimeoutExpired as e:
        _kill_process_group(proc.pid)
        try:
            proc.communicate(timeout=1)
        except subprocess.TimeoutExpired:
            pass
        raise LaunchTimeout(f"launcher timeout after {timeout_seconds}s") from e
    ended_at = utc_isoformat()

    result = RunResult(
        argv=invocation.argv,
        returncode=proc.returncode or 0,
        stdout=out or "",
        stderr=err or "",
        started_at=started_at,
        ended_at=ended_at,
    )
    if record_dir is not None:
        record_run(record_dir, result)
    if check and not result.ok:
        raise LaunchFailed(result.returncode, result.stderr.strip()[:500])
    return result


def record_run(record_dir: Path, result: RunResult) -> None:
    (record_dir / "stdout.txt").write_text(result.stdout, encoding="utf-8")
    (record_dir / "stderr.txt").write_text(result.stderr, encoding="utf-8")
    write_atomic_json(record_dir / "result.json", result.to_json_obj())


def spawn_detached(invocation: LaunchInvocation) -> int:
    """
    Start the launcher without waiting and return its pid.

    A daemon thread waits on the child so it is reaped if it exits while this
    process is still alive.
    """
    proc = _popen(
        invocation,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    threading.Thread(target=proc.wait, daemon=True).start()
    return proc.pid
