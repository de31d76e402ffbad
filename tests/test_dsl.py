"""Tests for the manifest DSL and manifest loading."""

from pathlib import Path

import pytest

from taskrun import build, load_manifest, param, target, tasks
from taskrun.dag import resolve
from taskrun.errors import DuplicateTargetError, ManifestError
from taskrun.model import Parameter
from taskrun.params import bind

REPO_MANIFEST = Path(__file__).resolve().parents[1] / "taskrun_manifest.py"


class TestTarget:
    """Tests for target() and param()."""

    def test_param_specs(self):
        t = target("watch", "w {{TARGET}} {{n}}", params=["TARGET=all", param("n", 3), "req"])
        assert t.params == (Parameter("TARGET", "all"), Parameter("n", "3"), Parameter("req", None))

    def test_needs_command_or_dependencies(self):
        with pytest.raises(ValueError):
            target("empty")

    def test_duplicate_parameter(self):
        with pytest.raises(ValueError):
            target("x", "echo", params=["a", "a=1"])

    def test_env_values_stringified(self):
        assert target("x", "true", env={"JOBS": 4}).env == {"JOBS": "4"}

    def test_signature(self):
        t = target("watch", "w", params=["TARGET=all", "extra"])
        assert t.signature() == 'watch TARGET="all" extra'


class TestBuilder:
    def test_builder(self):
        t = (
            build("fuzz")
            .describe("Fuzzes the parser.")
            .depends_on("check")
            .with_param("name", "fuzz_target_1")
            .run("cargo +nightly fuzz run {{name}}")
            .in_dir("fuzz")
            .with_env(RUST_BACKTRACE=1)
            .define_requirements("cargo")
            .build()
        )
        assert t.needs == ("check",)
        assert t.cwd == "fuzz"
        assert t.env == {"RUST_BACKTRACE": "1"}
        assert t.requires == ("cargo",)
        assert bind(t, {}) == "cargo +nightly fuzz run fuzz_target_1"


class TestTasks:
    def test_returns_frozen_registry(self):
        reg = tasks(target("a", "true"), [target("b", "true"), target("c", "true")], default="c")
        assert reg.frozen
        assert reg.names() == ["a", "b", "c"]
        assert reg.default.name == "c"

    def test_duplicates_rejected(self):
        with pytest.raises(DuplicateTargetError):
            tasks(target("a", "true"), target("a", "false"))


class TestLoadManifest:
    """Tests for loading manifest files."""

    def test_manifest_function(self, tmp_path):
        path = tmp_path / "demo_manifest.py"
        path.write_text(
            "from taskrun import tasks, target\n"
            "def manifest():\n"
            "    return tasks(target('a', 'true', needs=['b']), target('b', 'true'))\n"
        )
        reg = load_manifest(path)
        assert reg.frozen
        assert resolve(reg, "a") == ["b", "a"]

    def test_targets_list_with_default(self, tmp_path):
        path = tmp_path / "demo_manifest.py"
        path.write_text(
            "from taskrun import target\n"
            "TARGETS = [target('a', 'true'), target('b', 'true')]\n"
            "DEFAULT_TARGET = 'b'\n"
        )
        assert load_manifest(path).default.name == "b"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError):
            load_manifest(tmp_path / "nope.py")

    def test_not_python(self, tmp_path):
        path = tmp_path / "Justfile"
        path.write_text("all: check\n")
        with pytest.raises(ManifestError):
            load_manifest(path)

    def test_nothing_defined(self, tmp_path):
        path = tmp_path / "empty_manifest.py"
        path.write_text("X = 1\n")
        with pytest.raises(ManifestError):
            load_manifest(path)

    def test_wrong_type(self, tmp_path):
        path = tmp_path / "bad_manifest.py"
        path.write_text("TARGETS = ['check']\n")
        with pytest.raises(ManifestError):
            load_manifest(path)


class TestRepositoryManifest:
    """The manifest shipped at the repository root."""

    def test_default_runs_everything(self):
        reg = load_manifest(REPO_MANIFEST)
        assert reg.default.name == "all"
        assert resolve(reg, "all") == ["check", "clippy", "doc", "test", "all"]

    def test_build_both_configurations(self):
        reg = load_manifest(REPO_MANIFEST)
        assert resolve(reg, "build") == ["build-debug", "build-release", "build"]

    def test_parameters(self):
        reg = load_manifest(REPO_MANIFEST)
        assert bind(reg.lookup("watch"), {}) == 'watchexec -cre rs,toml "taskrun all"'
        assert bind(reg.lookup("watch"), {"TARGET": "test"}) == 'watchexec -cre rs,toml "taskrun test"'
        assert bind(reg.lookup("fuzz"), {}) == (
            "mkdir -p fuzz/corpus/fuzz_target_1 && "
            "cargo +nightly fuzz run fuzz_target_1 fuzz/corpus/fuzz_target_1"
        )
