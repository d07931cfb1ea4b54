from __future__ import annotations

import sys
from pathlib import Path


def _ensure_repo_root_on_path() -> None:
    """Put the repository root (parent of this package) on ``sys.path``.

    Needed when the file is run directly (``python typing_mirror/__main__.py``)
    rather than with ``python -m typing_mirror``.
    """
    pkg_dir = Path(__file__).resolve().parent
    repo_root_str = str(pkg_dir.parent)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


try:
    from .app import run  # type: ignore[attr-defined]
except ImportError:
    _ensure_repo_root_on_path()
    from typing_mirror.app import run  # type: ignore[attr-defined]


def main() -> int:
    """Entry point for running the typing test from the command line."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
