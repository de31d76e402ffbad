# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from taskrun import settings
from taskrun.errors import ManifestLevelError, ParameterError, UnknownTargetError
from taskrun.launcher import SubprocessLauncher
from taskrun.params import parse_overrides, positional_overrides
from taskrun.registry import Registry
from taskrun.runner import Executor, Run, load_manifest
from taskrun.ui.console import Console, get_console, set_console

EXIT_FAILED = 1
EXIT_MANIFEST = 2


def find_manifest_files(directory: Path = Path(".")) -> list[Path]:
    """Manifest candidates in `directory`: the default name first, then MANIFEST_GLOB matches."""
    default_manifest = directory / settings.DEFAULT_MANIFEST
    candidates = [default_manifest] if default_manifest.exists() else []
    candidates += sorted(p for p in directory.glob(settings.MANIFEST_GLOB) if p != default_manifest)
    return candidates


MANIFEST_HINT = (
    "Pass one with --manifest PATH, or set TASKRUN_MANIFEST "
    "(default name) / TASKRUN_MANIFEST_GLOB (discovery pattern)."
)


def discover_manifest(manifest_arg: str | None) -> Path:
    """
    Resolve the manifest to load.

    An explicit path may omit the `.py` suffix. Without one, exactly one
    candidate must exist in the current directory; anything else exits 2
    before a target is looked at.
    """
    console = get_console()

    if manifest_arg:
        manifest_path = Path(manifest_arg)
        if not manifest_path.exists() and manifest_path.suffix != ".py":
            manifest_path = manifest_path.with_name(manifest_path.name + ".py")
        if not manifest_path.exists():
            console.print_error(
                "Manifest file not found",
                f"No manifest at {manifest_path}",
                suggestion=MANIFEST_HINT,
            )
            sys.exit(EXIT_MANIFEST)
        return manifest_path

    candidates = find_manifest_files()

    if not candidates:
        console.print_error(
            "No manifest file found",
            f"Nothing named {settings.DEFAULT_MANIFEST} or matching {settings.MANIFEST_GLOB} in {Path.cwd()}",
            suggestion=MANIFEST_HINT,
        )
        sys.exit(EXIT_MANIFEST)

    if len(candidates) > 1:
        console.print_error(
            "Multiple manifest files found",
            "Cannot tell which manifest defines the targets:",
            details=[str(p) for p in candidates],
            suggestion=MANIFEST_HINT,
        )
        sys.exit(EXIT_MANIFEST)

    return candidates[0]


def split_invocation(registry: Registry, words: tuple[str, ...]) -> tuple[str, dict[str, str]]:
    """
    `[TARGET] [name=value | value ...]` -> (root target, overrides).

    Bare values after the target bind positionally to its parameters;
    explicit name=value overrides win over positional ones.
    """
    overrides, positional = parse_overrides(words)
    if positional:
        root, values = positional[0], positional[1:]
    else:
        root, values = registry.default.name, []

    root_target = registry.lookup(root)
    merged = positional_overrides(root_target, values)
    merged.update(overrides)
    return root, merged


def _manifest_error(console: Console, exc: Exception, debug: bool) -> None:
    titles = {
        UnknownTargetError: "Unknown target",
        ParameterError: "Invalid parameters",
    }
    title = next((t for cls, t in titles.items() if isinstance(exc, cls)), "Invalid manifest")
    console.print_error(title, str(exc))
    if debug:
        console.print_exception(exc)


@click.command(context_settings={"ignore_unknown_options": True})
@click.argument("words", nargs=-1, type=click.UNPROCESSED)
@click.option(
    "--manifest",
    "-f",
    "manifest_arg",
    default=None,
    help=f"Manifest file path (defaults to {settings.DEFAULT_MANIFEST} if present)",
)
@click.option("--root", default=None, help="Directory commands run in (defaults to the manifest's directory)")
@click.option("--list", "list_targets", is_flag=True, default=False, help="List available targets and exit")
@click.option("--dry-run", is_flag=True, default=False, help="Print the resolved plan without running it")
@click.option(
    "--jobs",
    "-j",
    default=settings.JOBS,
    show_default=True,
    type=click.IntRange(min=1),
    help="Run up to N independent targets in parallel",
)
@click.option("--timeout", default=settings.TIMEOUT, type=float, help="Wall-clock budget for the whole run, in seconds")
@click.option(
    "--debug",
    is_flag=True,
    default=settings.DEBUG,
    help="Enable debug mode (show stack traces and detailed output)",
)
def cli(words, manifest_arg, root, list_targets, dry_run, jobs, timeout, debug):
    """taskrun: dependency-ordered task runner.

    \b
    taskrun [OPTIONS] [TARGET] [name=value | value ...]
    """
    console = Console(debug=debug)
    set_console(console)

    manifest_path = discover_manifest(manifest_arg)
    console.print_debug(f"Using manifest {manifest_path}")

    try:
        registry = load_manifest(manifest_path)
    except ManifestLevelError as e:
        _manifest_error(console, e, debug)
        sys.exit(EXIT_MANIFEST)
    except Exception as e:
        console.print_error(
            "Failed to load manifest",
            f"Could not load manifest from {manifest_path}",
            details=[f"{type(e).__name__}: {e}"],
        )
        if debug:
            console.print_exception(e)
        sys.exit(EXIT_MANIFEST)

    if list_targets:
        console.print_targets(registry)
        return

    try:
        target_name, overrides = split_invocation(registry, words)
        run = Run(registry, target_name, overrides)
    except ManifestLevelError as e:
        _manifest_error(console, e, debug)
        sys.exit(EXIT_MANIFEST)

    console.print_debug(f"Plan: {' -> '.join(e.name for e in run.plan)}")
    console.print_debug(f"Overrides: {overrides}")

    if dry_run:
        console.print_plan(run.plan)
        return

    run_root = Path(root) if root else manifest_path.resolve().parent
    console.print_run_started(manifest=manifest_path.name, target=target_name, plan_size=len(run.plan))

    executor = Executor(
        SubprocessLauncher(run_root),
        console=console,
        workers=jobs,
        timeout=timeout,
    )
    try:
        executor.execute(run)
    except Exception as e:
        console.print_exception(e)
        sys.exit(EXIT_FAILED)

    console.print_results(run.outcomes)
    if run.exit_code != 0:
        sys.exit(EXIT_FAILED)


if __name__ == "__main__":
    cli()
