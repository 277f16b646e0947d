"""Filesystem helpers for locating the repository root and its data folder.

No third-party imports here so that config loading can happen before anything
heavier is pulled in.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


# ---------------------------------------------------------------------------
# 🔍  Repository-aware path helpers
# ---------------------------------------------------------------------------


def _looks_like_repo_root(path: Path, markers: Sequence[str]) -> bool:
    """Return ``True`` if *path* contains any of the *marker* files/dirs."""
    for marker in markers:
        if (path / marker).exists():
            return True
    return False


def project_root(markers: Sequence[str] | None = None) -> Path:
    """Return the absolute ``Path`` of the repo root.

    Walks *up* from this file until a directory holding one of the *markers*
    (default: ``pyproject.toml`` or ``.git``) shows up.  Falls back to the
    current working directory when roikit runs from an installed wheel.
    """
    if markers is None:
        markers = ("pyproject.toml", ".git")

    cur = Path(__file__).resolve()
    for parent in [cur] + list(cur.parents):
        if _looks_like_repo_root(parent, markers):
            return parent
    return Path.cwd()


def data_dir() -> Path:
    """Return ``<root>/data/roikit`` (not created here)."""
    return project_root() / "data" / "roikit"


__all__ = [
    "project_root",
    "data_dir",
]
