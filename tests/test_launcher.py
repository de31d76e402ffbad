"""Tests for the subprocess launcher (spawns real shell commands)."""

import os
import threading
import time

import pytest

from taskrun.errors import LaunchError
from taskrun.launcher import LaunchRequest, SubprocessLauncher

pytestmark = pytest.mark.skipif(os.name != "posix", reason="uses POSIX shell commands")


class Collector:
    def __init__(self):
        self.lines = []
        self._lock = threading.Lock()

    def __call__(self, stream, line):
        with self._lock:
            self.lines.append((stream, line))

    def text(self, stream):
        return [line for s, line in self.lines if s == stream]


@pytest.fixture
def subprocess_launcher(tmp_path):
    return SubprocessLauncher(tmp_path, poll_interval=0.05)


class TestLaunch:
    """Tests for successful and failing commands."""

    def test_streams_stdout(self, subprocess_launcher):
        sink = Collector()
        result = subprocess_launcher.launch(LaunchRequest("echo hello; echo world"), sink)
        assert result.ok
        assert result.exit_code == 0
        assert sink.text("stdout") == ["hello", "world"]

    def test_stderr_and_exit_code(self, subprocess_launcher):
        sink = Collector()
        result = subprocess_launcher.launch(LaunchRequest("echo oops 1>&2; exit 3"), sink)
        assert not result.ok
        assert result.exit_code == 3
        assert sink.text("stderr") == ["oops"]

    def test_cwd_relative_to_root(self, tmp_path, subprocess_launcher):
        (tmp_path / "fuzz").mkdir()
        sink = Collector()
        subprocess_launcher.launch(LaunchRequest("pwd", cwd="fuzz"), sink)
        assert sink.text("stdout")[0].endswith("fuzz")

    def test_env_merged(self, subprocess_launcher):
        sink = Collector()
        subprocess_launcher.launch(LaunchRequest('echo "$TASKRUN_TEST_VALUE"', env={"TASKRUN_TEST_VALUE": "42"}), sink)
        assert sink.text("stdout") == ["42"]


class TestLaunchErrors:
    """Tests for commands that cannot be launched."""

    def test_missing_cwd(self, subprocess_launcher):
        with pytest.raises(LaunchError) as exc:
            subprocess_launcher.launch(LaunchRequest("true", cwd="does-not-exist"), Collector())
        assert "working directory" in exc.value.reason

    def test_missing_required_tool(self, subprocess_launcher):
        with pytest.raises(LaunchError) as exc:
            subprocess_launcher.launch(
                LaunchRequest("true", requires=("taskrun-no-such-tool",)), Collector()
            )
        assert "taskrun-no-such-tool" in exc.value.reason
        assert exc.value.hint

    def test_command_not_found(self, subprocess_launcher):
        with pytest.raises(LaunchError) as exc:
            subprocess_launcher.launch(LaunchRequest("taskrun-no-such-command --all"), Collector())
        assert "not found" in exc.value.reason


class TestStopping:
    """Tests for timeout and cancellation."""

    def test_deadline_kills_process(self, subprocess_launcher):
        started = time.monotonic()
        result = subprocess_launcher.launch(
            LaunchRequest("sleep 10"), Collector(), deadline=time.monotonic() + 0.3
        )
        assert result.timed_out
        assert not result.ok
        assert time.monotonic() - started < 8

    def test_cancel_event_stops_process(self, subprocess_launcher):
        cancel = threading.Event()
        timer = threading.Timer(0.3, cancel.set)
        timer.start()
        try:
            result = subprocess_launcher.launch(LaunchRequest("sleep 10"), Collector(), cancel=cancel)
        finally:
            timer.cancel()
        assert result.interrupted
        assert not result.ok


class TestOutputDecoding:
    """Tests for commands whose output is not valid UTF-8."""

    def test_invalid_bytes_replaced_and_stream_kept_open(self, subprocess_launcher):
        sink = Collector()
        result = subprocess_launcher.launch(
            LaunchRequest("printf 'a\\377b\\n'; seq 1 200000"), sink
        )
        assert result.ok, result
        out = sink.text("stdout")
        assert out[0] == "a\ufffdb"
        assert len(out) == 200001
        assert out[-1] == "200000"


class TestToolHints:
    """Tests for the install hints of missing required tools."""

    def test_known_tool_hint(self, subprocess_launcher, monkeypatch):
        monkeypatch.setattr("taskrun.launcher.shutil.which", lambda tool: None)
        with pytest.raises(LaunchError) as exc:
            subprocess_launcher.launch(LaunchRequest("true", requires=("watchexec",)), Collector())
        assert "watchexec-cli" in exc.value.hint

    def test_generic_hint(self, subprocess_launcher, monkeypatch):
        monkeypatch.setattr("taskrun.launcher.shutil.which", lambda tool: None)
        with pytest.raises(LaunchError) as exc:
            subprocess_launcher.launch(LaunchRequest("true", requires=("npm",)), Collector())
        assert exc.value.hint == "Install npm or fix PATH."
