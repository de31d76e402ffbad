# registry.py
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from .errors import DuplicateTargetError, RegistryFrozenError, UnknownTargetError
from .model import Target


class Registry:
    """
    All named targets of a manifest.

    Construction phase: register() targets, optionally set_default().
    Then freeze(); from that point the registry is read-only and can be
    handed to the resolver / binder / executor.
    """

    def __init__(self, targets: Iterable[Target] = (), default: str | None = None):
        self._targets: Dict[str, Target] = {}
        self._default: Optional[str] = None
        self._frozen = False

        for t in targets:
            self.register(t)
        if default is not None:
            self.set_default(default)

    # ---- construction ----

    def register(self, target: Target) -> Target:
        if self._frozen:
            raise RegistryFrozenError()
        if target.name in self._targets:
            raise DuplicateTargetError(target.name)
        self._targets[target.name] = target
        return target

    def set_default(self, name: str) -> None:
        if self._frozen:
            raise RegistryFrozenError()
        if name not in self._targets:
            raise UnknownTargetError(name, known=self.names())
        self._default = name

    def freeze(self) -> "Registry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ---- lookup ----

    def lookup(self, name: str) -> Target:
        try:
            return self._targets[name]
        except KeyError:
            raise UnknownTargetError(name, known=self.names()) from None

    @property
    def default(self) -> Target:
        """The designated default target, else the first registered one."""
        if self._default is not None:
            return self._targets[self._default]
        if not self._targets:
            raise UnknownTargetError("<default>")
        return next(iter(self._targets.values()))

    def names(self) -> List[str]:
        return list(self._targets)

    def __iter__(self) -> Iterator[Target]:
        return iter(self._targets.values())

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, name: object) -> bool:
        return name in self._targets
