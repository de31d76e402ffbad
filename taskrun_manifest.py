# taskrun_manifest.py
# Targets for a Rust crate: checks, lints, docs, tests, benchmarks, fuzzing.
from __future__ import annotations

from taskrun import tasks, target


def manifest():
    return tasks(
        target(
            "all",
            needs=["check", "clippy", "doc", "test"],
            description="Checks, documents, and tests everything.",
        ),
        target("clean", "cargo clean", description="Removes compilation artifacts."),
        target(
            "watch",
            'watchexec -cre rs,toml "taskrun {{TARGET}}"',
            params=['TARGET=all'],
            requires=["watchexec"],
            description="Watches the compilation of a target.",
        ),
        target("bench", "cargo bench --all", description="Runs various benchmarks."),
        target(
            "build",
            needs=["build-debug", "build-release"],
            description="Builds in both debug and release configurations.",
        ),
        target("build-debug", "cargo build", description="Builds the project in the debug configuration."),
        target(
            "build-release",
            "cargo build --release",
            description="Builds the project in the release configuration.",
        ),
        target("check", "cargo check --all", description="Checks that the project can compile."),
        target(
            "clippy",
            "cargo clippy --all-targets --all-features",
            description="Checks for additional lints.",
        ),
        target("doc", "cargo doc --all", description="Creates documentation."),
        target(
            "fuzz",
            "mkdir -p fuzz/corpus/{{0}} && cargo +nightly fuzz run {{0}} fuzz/corpus/{{0}}",
            params=["FUZZ_TARGET=fuzz_target_1"],
            description="Fuzzes the parser.",
        ),
        target(
            "test",
            "cargo test --all && cargo test --all --release",
            description="Tests in both debug and release configurations.",
        ),
        target("outdated-deps", "cargo outdated -R", description="Checks for outdated dependencies."),
    )
