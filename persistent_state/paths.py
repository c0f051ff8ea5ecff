from __future__ import annotations

from pathlib import Path

from platformdirs import user_data_dir


def application_data_dir(app_id: str) -> Path:
    """Return the per-user data directory for `app_id` on this platform.

    e.g. ``~/.local/share/<app_id>`` on Linux,
    ``~/Library/Application Support/<app_id>`` on macOS and
    ``%LOCALAPPDATA%\\<app_id>`` on Windows.
    """
    if not app_id or "/" in app_id or "\\" in app_id:
        raise ValueError(f"invalid application id: {app_id!r}")
    return Path(user_data_dir(app_id, appauthor=False))


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path
