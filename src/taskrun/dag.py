# dag.py
from __future__ import annotations

from typing import Dict, Iterator, List, Set, Tuple

from .errors import CyclicDependencyError, UnknownTargetError
from .registry import Registry


def _require_frozen(registry: Registry) -> None:
    if not registry.frozen:
        raise ValueError("Registry must be frozen before resolving dependencies")


def resolve(registry: Registry, root: str) -> List[str]:
    """
    Compute the execution order for `root`.

    Post-order DFS: every dependency is visited (in declared order) before
    the target itself, and a target is recorded when it is finished, so a
    target needed by several siblings appears once, where the first branch
    reaching it put it.

    Raises:
      UnknownTargetError     root or some dependency is not registered
      CyclicDependencyError  a cycle is reachable from root
    """
    _require_frozen(registry)

    order: List[str] = []
    done: Set[str] = set()
    # explicit DFS path: (name, iterator over its remaining deps)
    stack: List[Tuple[str, Iterator[str]]] = [(root, iter(registry.lookup(root).needs))]
    on_stack: Set[str] = {root}

    while stack:
        name, deps = stack[-1]
        dep = next(deps, None)

        if dep is None:
            stack.pop()
            on_stack.discard(name)
            done.add(name)
            order.append(name)
            continue

        if dep in done:
            continue
        if dep in on_stack:
            path = [n for n, _ in stack]
            raise CyclicDependencyError(path[path.index(dep):] + [dep])
        if dep not in registry:
            raise UnknownTargetError(dep, referenced_by=name, known=registry.names())

        stack.append((dep, iter(registry.lookup(dep).needs)))
        on_stack.add(dep)

    return order


def dependents(registry: Registry, order: List[str]) -> Tuple[Dict[str, Set[str]], Dict[str, int]]:
    """
    Build the dependents graph restricted to a resolved plan.

    Returns:
      adj:   dep -> set of plan targets that need it
      indeg: target -> number of distinct dependencies inside the plan
    """
    in_plan = set(order)
    adj: Dict[str, Set[str]] = {n: set() for n in order}
    indeg: Dict[str, int] = {n: 0 for n in order}

    for name in order:
        for dep in registry.lookup(name).needs:
            if dep not in in_plan:
                raise UnknownTargetError(dep, referenced_by=name)
            # Edge dep -> name (dep must run before name)
            if name not in adj[dep]:
                adj[dep].add(name)
                indeg[name] += 1

    return adj, indeg
