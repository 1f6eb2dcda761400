"""Early bootstrapping for ragbrain when `apps/` is on `sys.path`.

Python imports this module automatically at startup if it is found on
`sys.path` (see the `site` module). It loads environment variables from a
`.env` file (package-local first, then repo root) before settings are read.

Guarded by `RAGBRAIN_ENV_LOADED`, so repeated imports do not reload the file.
"""

from __future__ import annotations

import os
from pathlib import Path


def _load_env_once() -> None:
    if os.environ.get("RAGBRAIN_ENV_LOADED") == "1":
        return
    if os.environ.get("APP_ENV", "").lower() in {"test", "ci"}:
        return

    from dotenv import load_dotenv

    apps_dir = Path(__file__).resolve().parent
    pkg_env = apps_dir / "ragbrain" / ".env"
    root_env = apps_dir.parent / ".env"

    if pkg_env.exists():
        load_dotenv(pkg_env)
    elif root_env.exists():
        load_dotenv(root_env)
    os.environ["RAGBRAIN_ENV_LOADED"] = "1"


_load_env_once()
