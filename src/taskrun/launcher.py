# launcher.py
from __future__ import annotations

import os
import shutil
import signal
import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable, Dict, List, Protocol, Tuple

from . import settings
from .errors import LaunchError

# (stream, line) where stream is "stdout" or "stderr"
OutputSink = Callable[[str, str], None]

# Install hints for the tools taskrun_manifest.py relies on; others get a generic hint
TOOL_HINTS = {
    "cargo": "Install Rust (rustup.rs) or fix PATH.",
    "rustup": "Install rustup (rustup.rs) or fix PATH.",
    "watchexec": "Install watchexec (cargo install watchexec-cli).",
}

# Exit status POSIX shells use when the command itself was not found
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class LaunchRequest:
    """A fully resolved command line plus where/how to run it."""
    line: str
    cwd: str | None = None
    env: Dict[str, str] = field(default_factory=dict)
    requires: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LaunchResult:
    exit_code: int
    timed_out: bool = False
    interrupted: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not (self.timed_out or self.interrupted)


class Launcher(Protocol):
    """
    Process-launch capability injected into the executor.

    launch() blocks until the command exits, forwarding output lines to
    `sink` as they are produced. Raises LaunchError when the command cannot
    be started at all.
    """

    def launch(
        self,
        request: LaunchRequest,
        sink: OutputSink,
        *,
        deadline: float | None = None,
        cancel: threading.Event | None = None,
    ) -> LaunchResult:
        ...


def _check_tool_available(command: str, tool: str) -> None:
    if shutil.which(tool) is None:
        hint = TOOL_HINTS.get(tool, f"Install {tool} or fix PATH.")
        raise LaunchError(command=command, reason=f"required tool not found: {tool}", hint=hint)


def _pump(stream: IO[str], name: str, sink: OutputSink) -> None:
    with stream:
        for line in stream:
            sink(name, line.rstrip("\n"))


class SubprocessLauncher:
    """Runs commands through the shell, streaming stdout/stderr live."""

    def __init__(self, root: str | Path = ".", poll_interval: float | None = None):
        self.root = Path(root).resolve()
        self.poll_interval = settings.POLL_INTERVAL if poll_interval is None else poll_interval

    def launch(
        self,
        request: LaunchRequest,
        sink: OutputSink,
        *,
        deadline: float | None = None,
        cancel: threading.Event | None = None,
    ) -> LaunchResult:
        cwd = (self.root / (request.cwd or ".")).resolve()
        if not cwd.is_dir():
            raise LaunchError(command=request.line, reason=f"working directory not found: {cwd}")

        for tool in request.requires:
            _check_tool_available(request.line, tool)

        env = os.environ.copy()
        env.update(request.env)

        try:
            proc = subprocess.Popen(
                request.line,
                shell=True,
                cwd=str(cwd),
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                # own process group so a kill reaches the shell's children too
                start_new_session=(os.name == "posix"),
            )
        except OSError as e:
            raise LaunchError(command=request.line, reason=str(e)) from e

        readers: List[threading.Thread] = [
            threading.Thread(target=_pump, args=(proc.stdout, "stdout", sink), daemon=True),
            threading.Thread(target=_pump, args=(proc.stderr, "stderr", sink), daemon=True),
        ]
        for t in readers:
            t.start()

        timed_out = False
        interrupted = False
        try:
            while True:
                try:
                    exit_code = proc.wait(timeout=self.poll_interval)
                    break
                except subprocess.TimeoutExpired:
                    pass
                if cancel is not None and cancel.is_set():
                    interrupted = True
                    exit_code = _stop(proc)
                    break
                if deadline is not None and time.monotonic() >= deadline:
                    timed_out = True
                    exit_code = _stop(proc)
                    break
        except KeyboardInterrupt:
            interrupted = True
            exit_code = _stop(proc)

        for t in readers:
            t.join()

        if exit_code == COMMAND_NOT_FOUND and not (timed_out or interrupted):
            tool = request.line.split()[0] if request.line.split() else request.line
            raise LaunchError(
                command=request.line,
                reason=f"command not found (exit {COMMAND_NOT_FOUND})",
                hint=TOOL_HINTS.get(tool),
            )

        return LaunchResult(exit_code=exit_code, timed_out=timed_out, interrupted=interrupted)


def _stop(proc: subprocess.Popen, grace: float = 5.0) -> int:
    """Terminate the process (group), escalating to kill after `grace` seconds."""
    _signal(proc, signal.SIGTERM)
    try:
        return proc.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        _signal(proc, signal.SIGKILL if os.name == "posix" else signal.SIGTERM)
        return proc.wait()


def _signal(proc: subprocess.Popen, sig: int) -> None:
    try:
        if os.name == "posix":
            os.killpg(proc.pid, sig)
        else:
            proc.send_signal(sig)
    except ProcessLookupError:
        pass
