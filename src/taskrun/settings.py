from __future__ import annotations
import os

DEFAULT_MANIFEST = os.environ.get("TASKRUN_MANIFEST", "taskrun_manifest.py")
MANIFEST_GLOB = os.environ.get("TASKRUN_MANIFEST_GLOB", "*_manifest.py")
JOBS = int(os.environ.get("TASKRUN_JOBS", "1"))
TIMEOUT = float(os.environ["TASKRUN_TIMEOUT"]) if os.environ.get("TASKRUN_TIMEOUT") else None
POLL_INTERVAL = float(os.environ.get("TASKRUN_POLL_INTERVAL", "0.1"))
DEBUG = os.environ.get("TASKRUN_DEBUG", "") not in ("", "0", "false", "no")
