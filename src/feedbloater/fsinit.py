from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from .config import Config


def set_umask_from_env() -> None:
    umask_value = os.environ.get("FB_UMASK", "002")
    try:
        os.umask(int(umask_value, 8))
    except (ValueError, TypeError):
        os.umask(0o002)


def build_default_paths(config: Config) -> list[str]:
    return [
        os.path.dirname(os.path.abspath(config.paths.cache_db)),
        os.path.dirname(os.path.abspath(config.paths.destination)),
    ]


def ensure_runtime_dirs(paths: Iterable[str]) -> None:
    for path in paths:
        if not path:
            continue
        Path(path).mkdir(parents=True, exist_ok=True)
