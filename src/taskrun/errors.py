# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence


class TaskrunError(Exception):
    """Base class for every error raised by taskrun."""


class ManifestLevelError(TaskrunError):
    """
    Structural/configuration errors.

    These are detected before any process is launched and abort the whole
    run (CLI exit code 2).
    """


@dataclass
class DuplicateTargetError(ManifestLevelError):
    name: str

    def __str__(self) -> str:
        return f"Duplicate target name: {self.name!r}"


@dataclass
class UnknownTargetError(ManifestLevelError):
    name: str
    referenced_by: str | None = None
    known: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        if self.referenced_by:
            msg = f"Target {self.referenced_by!r} needs unknown target {self.name!r}"
        else:
            msg = f"Unknown target: {self.name!r}"
        if self.known:
            msg += f". Known targets: {', '.join(self.known)}"
        return msg


@dataclass
class CyclicDependencyError(ManifestLevelError):
    cycle: Sequence[str]

    def __str__(self) -> str:
        return "Dependency cycle: " + " -> ".join(self.cycle)


@dataclass
class ParameterError(ManifestLevelError):
    target: str
    message: str

    def __str__(self) -> str:
        return f"[{self.target}] {self.message}"


@dataclass
class MissingParameterError(ParameterError):
    parameter: str = ""


class RegistryFrozenError(ManifestLevelError):
    def __str__(self) -> str:
        return "Registry is frozen; targets can no longer be registered"


@dataclass
class ManifestError(ManifestLevelError):
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class LaunchError(TaskrunError):
    """
    The command of a target could not be launched (missing cwd, missing
    tool, spawn failure). Recorded as that target's Failed outcome.
    """
    command: str
    reason: str
    hint: str | None = None

    def __str__(self) -> str:
        msg = f"could not launch {self.command!r}: {self.reason}"
        if self.hint:
            msg += f" ({self.hint})"
        return msg
