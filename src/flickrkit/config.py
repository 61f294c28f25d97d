"""Filesystem locations, environment overrides, and atomic writes.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.flickrkit/`` on macOS and Windows. See :func:`get_cache_dir` and
  :func:`default_cache_file`.
* **Environment** -- ``FLICKRKIT_ENDPOINT_URL`` replaces the default REST
  endpoint for every new context (see :func:`resolve_endpoint_url`).
* **Atomic writes** -- :func:`atomic_write` writes through a temp file and
  renames it into place, so a persisted cache is never left half-written.
"""

from __future__ import annotations

import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from flickrkit.models import REST_ENDPOINT_URL

_APP_NAME = "flickrkit"
_CACHE_FILENAME = "responses.json"
ENDPOINT_ENV_VAR = "FLICKRKIT_ENDPOINT_URL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CACHE_HOME/flickrkit/`` (default ``~/.cache/flickrkit/``).
    On macOS/Windows: ``~/.flickrkit/cache/``.

    Returns:
        Absolute path to the cache directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CACHE_HOME", (".cache",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_cache_file() -> Path:
    """Return the conventional location for a persisted response cache."""
    return get_cache_dir() / _CACHE_FILENAME


def resolve_endpoint_url(explicit: Optional[str] = None) -> str:
    """Pick the REST endpoint: explicit value, then environment, then the default."""
    if explicit:
        return explicit
    return os.environ.get(ENDPOINT_ENV_VAR, "") or REST_ENDPOINT_URL


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise
