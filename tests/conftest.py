"""Shared fixtures: in-memory launcher and registry helpers."""

from __future__ import annotations

import threading

import pytest

from taskrun.launcher import LaunchResult
from taskrun.registry import Registry
from taskrun.ui.console import Console


class FakeLauncher:
    """
    Launcher that never spawns processes.

    results: command line -> exit code | LaunchResult | exception to raise
    output:  command line -> [(stream, line), ...] forwarded to the sink
    hooks:   command line -> callable run during the launch
    """

    def __init__(self, results=None, output=None, hooks=None):
        self.results = results or {}
        self.output = output or {}
        self.hooks = hooks or {}
        self.launched: list[str] = []
        self.requests = []
        self._lock = threading.Lock()

    def launch(self, request, sink, *, deadline=None, cancel=None):
        with self._lock:
            self.launched.append(request.line)
            self.requests.append(request)
        for stream, line in self.output.get(request.line, []):
            sink(stream, line)
        hook = self.hooks.get(request.line)
        if hook is not None:
            hook()
        result = self.results.get(request.line, 0)
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, LaunchResult):
            return result
        return LaunchResult(exit_code=result)


@pytest.fixture
def launcher():
    return FakeLauncher()


@pytest.fixture
def console():
    return Console()


def make_registry(*targets, default=None) -> Registry:
    return Registry(targets, default=default).freeze()
