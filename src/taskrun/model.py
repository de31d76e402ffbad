# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Parameter:
    """A named parameter of a target, with an optional default value."""
    name: str
    default: str | None = None

    @property
    def required(self) -> bool:
        return self.default is None


@dataclass(frozen=True)
class Target:
    """
    A named unit of work: one command template + dependencies + parameters.

    `command` may be None for aggregate targets (e.g. `all: check test`),
    which succeed once their dependencies have succeeded.
    """
    name: str
    command: Optional[str] = None

    # Targets that must succeed BEFORE this one runs (declared order is kept)
    needs: Tuple[str, ...] = ()
    params: Tuple[Parameter, ...] = ()

    description: str | None = None
    cwd: str | None = None                     # relative to the run root
    env: Dict[str, str] = field(default_factory=dict)
    requires: Tuple[str, ...] = ()             # tools expected on PATH

    @property
    def is_aggregate(self) -> bool:
        return self.command is None

    def signature(self) -> str:
        """Human readable `name PARAM="default" ...` form used by --list."""
        parts = [self.name]
        for p in self.params:
            parts.append(p.name if p.required else f'{p.name}="{p.default}"')
        return " ".join(parts)
