# runner.py
from __future__ import annotations

import runpy
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .dag import dependents, resolve
from .errors import LaunchError, ManifestError
from .launcher import Launcher, LaunchRequest, LaunchResult
from .model import Target
from .params import bind
from .registry import Registry
from .ui.console import Console, get_console


class State(str, Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    SKIPPED = "Skipped"


@dataclass(frozen=True)
class PlanEntry:
    target: Target
    command: Optional[str]      # None for aggregate targets

    @property
    def name(self) -> str:
        return self.target.name

    def request(self) -> LaunchRequest:
        return LaunchRequest(
            line=self.command or "",
            cwd=self.target.cwd,
            env=dict(self.target.env),
            requires=self.target.requires,
        )


@dataclass
class Outcome:
    name: str
    state: State = State.PENDING
    command: Optional[str] = None
    exit_code: Optional[int] = None
    reason: Optional[str] = None
    duration: Optional[float] = None


# ----------------------------------------------------------------------
# Run: plan + outcomes for one invocation
# ----------------------------------------------------------------------

@dataclass
class Run:
    """
    One invocation: a root target + overrides.

    The whole plan is resolved and bound on construction, so every
    structural error (unknown target, cycle, missing parameter) surfaces
    before anything is launched.
    """
    registry: Registry
    root: str
    overrides: Dict[str, str] = field(default_factory=dict)
    plan: List[PlanEntry] = field(init=False)
    outcomes: List[Outcome] = field(init=False)

    def __post_init__(self) -> None:
        order = resolve(self.registry, self.root)
        self.plan = []
        for name in order:
            target = self.registry.lookup(name)
            self.plan.append(PlanEntry(target=target, command=bind(target, self.overrides)))
        self.outcomes = [Outcome(name=e.name, command=e.command) for e in self.plan]

    def outcome(self, name: str) -> Outcome:
        for o in self.outcomes:
            if o.name == name:
                return o
        raise KeyError(name)

    @property
    def succeeded(self) -> bool:
        return all(o.state is State.SUCCEEDED for o in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1


# ----------------------------------------------------------------------
# Executor
# ----------------------------------------------------------------------

class Executor:
    """
    Runs a Run's plan through an injected Launcher, fail-fast.

    workers == 1: strictly sequential, in plan order.
    workers > 1:  independent branches run in parallel; a target starts
                  only once all its dependencies have Succeeded.
    """

    def __init__(
        self,
        launcher: Launcher,
        *,
        console: Console | None = None,
        workers: int = 1,
        timeout: float | None = None,
    ):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.launcher = launcher
        self.console = console or get_console()
        self.workers = workers
        self.timeout = timeout
        self._cancel = threading.Event()

    def execute(self, run: Run) -> List[Outcome]:
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        self._cancel.clear()

        if self.workers == 1:
            self._execute_sequential(run, deadline)
        else:
            self._execute_parallel(run, deadline)

        # anything never started is skipped
        for o in run.outcomes:
            if o.state is State.PENDING:
                o.state = State.SKIPPED
        return run.outcomes

    # ---- single target ----

    def _run_entry(self, entry: PlanEntry, outcome: Outcome, deadline: float | None) -> None:
        if self._cancel.is_set():
            return
        outcome.state = State.RUNNING
        started = time.monotonic()
        try:
            if deadline is not None and started >= deadline:
                self._fail(outcome, "timed out")
                return
            if entry.target.is_aggregate:
                outcome.state = State.SUCCEEDED
                return

            self.console.print_target_start(entry.name, entry.command)
            name = entry.name

            def sink(stream: str, line: str) -> None:
                self.console.print_output(name, stream, line)

            try:
                result: LaunchResult = self.launcher.launch(
                    entry.request(), sink, deadline=deadline, cancel=self._cancel
                )
            except LaunchError as e:
                self._fail(outcome, str(e))
                return

            outcome.exit_code = result.exit_code
            if result.interrupted:
                self._fail(outcome, "interrupted")
            elif result.timed_out:
                self._fail(outcome, "timed out")
            elif result.exit_code != 0:
                self._fail(outcome, f"exit code {result.exit_code}")
            else:
                outcome.state = State.SUCCEEDED
        finally:
            outcome.duration = time.monotonic() - started

    def _fail(self, outcome: Outcome, reason: str) -> None:
        outcome.state = State.FAILED
        outcome.reason = reason
        self.console.print_target_failed(outcome.name, reason)

    def _attribute_interrupt(self, run: Run) -> None:
        """
        Record an interrupt against one target.

        Targets caught mid-run fail; if none was running and nothing failed
        yet, the next pending target takes the failure.
        """
        running = [o for o in run.outcomes if o.state is State.RUNNING]
        for o in running:
            self._fail(o, "interrupted")
        if running or any(o.state is State.FAILED for o in run.outcomes):
            return
        for o in run.outcomes:
            if o.state is State.PENDING:
                self._fail(o, "interrupted")
                return

    # ---- scheduling ----

    def _execute_sequential(self, run: Run, deadline: float | None) -> None:
        for entry, outcome in zip(run.plan, run.outcomes):
            try:
                self._run_entry(entry, outcome, deadline)
            except KeyboardInterrupt:
                # interrupt outside the launcher's wait loop (e.g. between targets)
                self._attribute_interrupt(run)
                break
            if outcome.state is State.FAILED:
                break

    def _execute_parallel(self, run: Run, deadline: float | None) -> None:
        order = [e.name for e in run.plan]
        adj, indeg = dependents(run.registry, order)
        entries = {e.name: e for e in run.plan}
        outcomes = {o.name: o for o in run.outcomes}
        position = {name: i for i, name in enumerate(order)}

        ready: List[str] = [n for n in order if indeg[n] == 0]
        in_flight: Dict[Future, str] = {}
        failed = False

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            try:
                while ready or in_flight:
                    # schedule ready targets up to the worker limit, in plan order
                    while ready and not failed and len(in_flight) < self.workers:
                        name = ready.pop(0)
                        fut = pool.submit(self._run_entry, entries[name], outcomes[name], deadline)
                        in_flight[fut] = name

                    if not in_flight:
                        break

                    done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
                    for fut in done:
                        name = in_flight.pop(fut)
                        fut.result()
                        if outcomes[name].state is State.SUCCEEDED:
                            for nxt in adj[name]:
                                indeg[nxt] -= 1
                                if indeg[nxt] == 0:
                                    ready.append(nxt)
                            ready.sort(key=position.__getitem__)
                        else:
                            failed = True
            except KeyboardInterrupt:
                # stop launchers of in-flight targets; they record "interrupted"
                self._cancel.set()
                wait(list(in_flight))
                for fut in in_flight:
                    exc = fut.exception()
                    if exc is not None and not isinstance(exc, KeyboardInterrupt):
                        raise exc
                self._attribute_interrupt(run)


# ----------------------------------------------------------------------
# Manifest loading (local python file)
# ----------------------------------------------------------------------

def load_manifest(path: str | Path) -> Registry:
    """
    Load a manifest from a python file path.

    The file must define either:
      - manifest() -> Registry | List[Target]
      - TARGETS = [Target, ...]   (optionally DEFAULT_TARGET = "name")

    Returns a frozen Registry.
    """
    mf_path = Path(path).expanduser().resolve()
    if not mf_path.exists():
        raise ManifestError(str(mf_path), "manifest file not found")
    if mf_path.suffix != ".py":
        raise ManifestError(str(mf_path), f"manifest must be a .py file, got: {mf_path.name}")

    module_name = f"taskrun_manifest_{mf_path.stem}"
    globals_dict = runpy.run_path(str(mf_path), run_name=module_name)

    if "manifest" in globals_dict and callable(globals_dict["manifest"]):
        loaded = globals_dict["manifest"]()
    elif "TARGETS" in globals_dict:
        loaded = globals_dict["TARGETS"]
    else:
        raise ManifestError(str(mf_path), "define manifest() or TARGETS = [...]")

    if isinstance(loaded, Registry):
        registry = loaded
    elif isinstance(loaded, (list, tuple)) and all(isinstance(t, Target) for t in loaded):
        registry = Registry(loaded, default=globals_dict.get("DEFAULT_TARGET"))
    else:
        raise ManifestError(
            str(mf_path),
            "manifest must return/define a Registry or a list of Target "
            "(use taskrun.manifest(...) or TARGETS = [target(...), ...])",
        )

    return registry.freeze()


def run_target(
    registry: Registry,
    target: str | None,
    overrides: Mapping[str, str],
    launcher: Launcher,
    *,
    console: Console | None = None,
    workers: int = 1,
    timeout: float | None = None,
) -> Run:
    """Resolve, bind and execute `target` (default target when None)."""
    root = target if target is not None else registry.default.name
    run = Run(registry, root, dict(overrides))
    Executor(launcher, console=console, workers=workers, timeout=timeout).execute(run)
    return run
