# dsl.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Union

from .model import Parameter, Target
from .registry import Registry


def param(name: str, default: object = None) -> Parameter:
    """param("TARGET", "all") -> TARGET="all"; param("name") -> required."""
    return Parameter(name=name, default=None if default is None else str(default))


ParamSpec = Union[Parameter, str]


def _to_param(p: ParamSpec) -> Parameter:
    # "NAME" or "NAME=default"
    if isinstance(p, Parameter):
        return p
    name, sep, default = p.partition("=")
    return Parameter(name=name, default=default if sep else None)


def target(
    name: str,
    command: Optional[str] = None,
    *,
    needs: Optional[Iterable[str]] = None,
    params: Optional[Iterable[ParamSpec]] = None,
    description: Optional[str] = None,
    cwd: str | None = None,
    env: Optional[Dict[str, object]] = None,
    requires: Optional[Iterable[str]] = None,
) -> Target:
    needs_t = tuple(needs or ())
    params_t = tuple(_to_param(p) for p in (params or ()))

    if command is None and not needs_t:
        raise ValueError(f"target({name!r}) must have a command or dependencies")

    seen: set[str] = set()
    for p in params_t:
        if p.name in seen:
            raise ValueError(f"target({name!r}) declares parameter {p.name!r} twice")
        seen.add(p.name)

    return Target(
        name=name,
        command=command,
        needs=needs_t,
        params=params_t,
        description=description,
        cwd=cwd,
        # force values to str for env compatibility
        env={k: str(v) for k, v in (env or {}).items()},
        requires=tuple(requires or ()),
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class TargetBuilder:
    def __init__(self, name: str):
        self.name = name
        self._command: Optional[str] = None
        self._needs: list[str] = []
        self._params: list[Parameter] = []
        self._description: Optional[str] = None
        self._cwd: Optional[str] = None
        self._env: dict[str, str] = {}
        self._requires: list[str] = []

    def depends_on(self, *target_names: str):
        self._needs.extend(target_names)
        return self

    def run(self, command: str):
        self._command = command
        return self

    def with_param(self, name: str, default: object = None):
        self._params.append(param(name, default))
        return self

    def describe(self, text: str):
        self._description = text
        return self

    def in_dir(self, cwd: str):
        self._cwd = cwd
        return self

    def with_env(self, **env):
        self._env.update({k: str(v) for k, v in env.items()})
        return self

    def define_requirements(self, *tools: str):
        self._requires.extend(tools)
        return self

    def build(self) -> Target:
        return target(
            self.name,
            self._command,
            needs=self._needs,
            params=self._params,
            description=self._description,
            cwd=self._cwd,
            env=self._env,
            requires=self._requires,
        )


def build(name: str) -> TargetBuilder:
    """Convenience: build('test').run('cargo test').build()"""
    return TargetBuilder(name)


# ---------------------------------------------------------------------
# Manifest helper (single-file story)
# ---------------------------------------------------------------------

def tasks(*targets: Union[Target, Iterable[Target]], default: str | None = None) -> Registry:
    """
    Manifest definition helper. Named `tasks` so a manifest file can define
    its own `manifest()` without a name collision.

    Users can write:
        from taskrun import tasks, target

        def manifest():
            return tasks(
                target("check", "cargo check --all"),
                target("test", "cargo test --all", needs=["check"]),
            )

    The first target is the default one unless `default=` names another.
    """
    flat: List[Target] = []
    for t in targets:
        if isinstance(t, Target):
            flat.append(t)
        else:
            flat.extend(t)
    return Registry(flat, default=default).freeze()
