"""Console output formatting utilities for taskrun."""

from __future__ import annotations

import sys
import threading
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from taskrun.registry import Registry
    from taskrun.runner import Outcome, PlanEntry


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug
        # parallel targets forward output from several reader threads
        self._lock = threading.Lock()

    def _emit(self, text: str, err: bool = False) -> None:
        with self._lock:
            print(text, file=sys.stderr if err else sys.stdout, flush=True)

    def print_run_started(self, manifest: str, target: str, plan_size: int) -> None:
        """Print run start information."""
        self._emit(f"RUN: {target} ({plan_size} target(s) from {manifest})")

    def print_plan(self, plan: Iterable["PlanEntry"]) -> None:
        """Print the resolved plan, one target per line."""
        for entry in plan:
            cmd = entry.command if entry.command is not None else "(no command)"
            self._emit(f"  {entry.name}: {cmd}")

    def print_target_start(self, name: str, command: Optional[str]) -> None:
        """Print target start message."""
        if command is not None:
            self._emit(f"[{name}] $ {command}")

    def print_output(self, name: str, stream: str, line: str) -> None:
        """Forward one line of a running target's output, labeled."""
        self._emit(f"[{name}] {line}", err=(stream == "stderr"))

    def print_target_failed(self, name: str, reason: str) -> None:
        """Print failure message."""
        self._emit(f"[{name}] FAILED: {reason}", err=True)

    def print_targets(self, registry: "Registry") -> None:
        """Print available targets (--list)."""
        self._emit("Available targets:")
        default = registry.default.name if len(registry) else None
        width = max((len(t.signature()) for t in registry), default=0)
        for t in registry:
            line = f"    {t.signature():<{width}}"
            if t.description:
                line += f"  # {t.description}"
            if t.name == default:
                line += "  (default)"
            self._emit(line.rstrip())

    def print_results(self, outcomes: Iterable["Outcome"]) -> None:
        """Print final results summary: one line per target."""
        self._emit("\n" + "=" * 40)
        self._emit("RESULTS")
        self._emit("=" * 40)
        for o in outcomes:
            line = f"{o.name}: {o.state.value}"
            if o.duration is not None and self.debug:
                line += f" ({o.duration:.1f}s)"
            self._emit(line)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        self._emit(f"\nERROR: {title}", err=True)
        self._emit(f"{message}", err=True)
        if details:
            for detail in details:
                self._emit(f"  {detail}", err=True)
        if suggestion:
            self._emit(f"\n{suggestion}", err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            self._emit(f"Error: {exc}", err=True)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._emit(f"[DEBUG] {message}", err=True)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
