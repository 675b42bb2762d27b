from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

from validate_catalog import main as validate_catalog_main

REPO_ROOT = Path(__file__).resolve().parents[1]
BACKEND_ENTRYPOINT = REPO_ROOT / "backend" / "server.py"
DEFAULT_STATE_PATH = REPO_ROOT / "state" / "progress.json"


def run_local() -> int:
    if not BACKEND_ENTRYPOINT.is_file():
        print(
            f"[run-local] ERROR: backend entrypoint missing: {BACKEND_ENTRYPOINT}",
            file=sys.stderr,
            flush=True,
        )
        return 1

    env = dict(os.environ)
    catalog_args = ["--path", env["CATALOG_PATH"]] if env.get("CATALOG_PATH") else []
    if validate_catalog_main(catalog_args) != 0:
        print("[run-local] WARNING: catalog has integrity errors; serving it anyway.", flush=True)

    # Persist progress between runs unless the caller chose a location.
    env.setdefault("STATE_PATH", str(DEFAULT_STATE_PATH))

    print(f"[run-local] Starting backend server (state: {env['STATE_PATH']})...", flush=True)
    try:
        proc = subprocess.run([sys.executable, str(BACKEND_ENTRYPOINT)], cwd=str(REPO_ROOT), env=env)
        return proc.returncode
    except KeyboardInterrupt:
        print("\n[run-local] Stopped by user.", flush=True)
        return 130


def main() -> int:
    return run_local()


if __name__ == "__main__":
    raise SystemExit(main())
