# params.py
from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import MissingParameterError, ParameterError
from .model import Target

# {{name}} or {{0}} (positional, by declaration order)
PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_-]*|\d+)\s*\}\}")


def resolve_values(target: Target, overrides: Mapping[str, str]) -> Dict[str, str]:
    """Override, else default, else MissingParameterError (declaration order)."""
    values: Dict[str, str] = {}
    for p in target.params:
        if p.name in overrides:
            values[p.name] = str(overrides[p.name])
        elif p.default is not None:
            values[p.name] = p.default
        else:
            raise MissingParameterError(
                target=target.name,
                message=f"missing value for parameter {p.name!r}",
                parameter=p.name,
            )
    return values


def bind(target: Target, overrides: Mapping[str, str]) -> Optional[str]:
    """
    Materialize the command line of `target`.

    Override keys not declared on the target are ignored, so one override
    set can be passed down a whole dependency chain.
    """
    values = resolve_values(target, overrides)
    if target.command is None:
        return None

    declared = [p.name for p in target.params]

    def substitute(m: re.Match) -> str:
        ref = m.group(1)
        if ref.isdigit():
            idx = int(ref)
            if idx >= len(declared):
                raise MissingParameterError(
                    target=target.name,
                    message=f"command references parameter #{idx} but only {len(declared)} declared",
                    parameter=ref,
                )
            return values[declared[idx]]
        if ref not in values:
            raise MissingParameterError(
                target=target.name,
                message=f"command references undeclared parameter {ref!r}",
                parameter=ref,
            )
        return values[ref]

    return PLACEHOLDER.sub(substitute, target.command)


# ---------------------------------------------------------------------
# CLI words -> overrides
# ---------------------------------------------------------------------

def parse_overrides(words: Sequence[str]) -> Tuple[Dict[str, str], List[str]]:
    """
    Split CLI words into `name=value` overrides and bare positional values.

    `a=1 build b=2` -> ({"a": "1", "b": "2"}, ["build"])
    """
    overrides: Dict[str, str] = {}
    positional: List[str] = []
    for w in words:
        name, sep, value = w.partition("=")
        if sep and name and re.fullmatch(r"[A-Za-z_][A-Za-z0-9_-]*", name):
            overrides[name] = value
        else:
            positional.append(w)
    return overrides, positional


def positional_overrides(target: Target, values: Sequence[str]) -> Dict[str, str]:
    """Map bare values onto the target's parameters in declaration order."""
    if len(values) > len(target.params):
        raise ParameterError(
            target=target.name,
            message=(
                f"got {len(values)} positional value(s) but target takes "
                f"{len(target.params)}: {target.signature()}"
            ),
        )
    return {p.name: v for p, v in zip(target.params, values)}
