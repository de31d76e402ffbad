from .dsl import target, param, tasks, TargetBuilder, build
from .model import Target, Parameter
from .registry import Registry
from .runner import Run, Executor, Outcome, State, run_target, load_manifest

__all__ = [
    "target", "param", "tasks", "TargetBuilder", "build",
    "Target", "Parameter", "Registry",
    "Run", "Executor", "Outcome", "State", "run_target", "load_manifest",
]
