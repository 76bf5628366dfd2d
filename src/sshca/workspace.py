"""
Transient Key Workspace

Scoped, uniquely named directory for the key files exchanged with the
signing toolchain. Every call gets its own directory named from a fresh
random suffix, so concurrent calls never share state. Secret artifacts
are created owner-only and the whole directory is removed on exit,
whatever the outcome.
"""

from __future__ import annotations

import atexit
import logging
import os
import secrets
import shutil
import tempfile
import threading
import time
from pathlib import Path
from typing import Optional

from sshca.constants import (
    SECRET_FILE_MODE,
    WORKSPACE_DIR_MODE,
    WORKSPACE_PREFIX,
    WORKSPACE_SUFFIX_BYTES,
)

logger = logging.getLogger(__name__)

_active_lock = threading.Lock()
_active: set[Path] = set()


def _purge_active() -> None:
    """Remove workspaces still open when the interpreter exits."""
    with _active_lock:
        paths = list(_active)
        _active.clear()
    for path in paths:
        shutil.rmtree(path, ignore_errors=True)


atexit.register(_purge_active)


class KeyWorkspace:
    """Context manager owning one transient directory of key artifacts.

    Args:
        base_dir: Parent directory, the system temp dir by default.

    Example:
        >>> with KeyWorkspace() as ws:
        ...     key_path = ws.write_secret("ca_key", "-----BEGIN ...")
        >>> key_path.exists()
        False
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self.base_dir = Path(base_dir or tempfile.gettempdir())
        self.path: Optional[Path] = None

    def __enter__(self) -> "KeyWorkspace":
        suffix = secrets.token_hex(WORKSPACE_SUFFIX_BYTES)
        path = self.base_dir / f"{WORKSPACE_PREFIX}{suffix}"

        if path.exists() or path.is_symlink():
            logger.warning("Removing stale workspace %s", path)
            _remove(path)

        self.base_dir.mkdir(parents=True, exist_ok=True)
        os.mkdir(path, WORKSPACE_DIR_MODE)
        os.chmod(path, WORKSPACE_DIR_MODE)
        self.path = path
        with _active_lock:
            _active.add(path)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def artifact(self, name: str) -> Path:
        """Return the path of artifact *name* inside the workspace."""
        if self.path is None:
            raise RuntimeError("Workspace is not open")
        candidate = self.path / name
        if candidate.parent != self.path:
            raise ValueError(f"Invalid artifact name: {name!r}")
        return candidate

    def write(self, name: str, data: str) -> Path:
        """Write a non-secret artifact."""
        return self._write(name, data, 0o644)

    def write_secret(self, name: str, data: str) -> Path:
        """Write an artifact readable and writable by the owner only.

        The file is created with mode 0600 so no other process can read it
        between creation and the permission change.
        """
        return self._write(name, data, SECRET_FILE_MODE)

    def read(self, name: str) -> str:
        """Read artifact *name* as text."""
        return self.artifact(name).read_text(encoding="utf-8")

    def cleanup(self) -> None:
        """Delete the workspace and everything in it."""
        path = self.path
        if path is None:
            return
        self.path = None
        with _active_lock:
            _active.discard(path)
        _remove(path)

    def _write(self, name: str, data: str, mode: int) -> Path:
        path = self.artifact(name)
        if path.exists():
            path.unlink()
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
        try:
            os.fchmod(fd, mode)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                fd = -1
                f.write(data)
        finally:
            if fd >= 0:
                os.close(fd)
        return path


def _remove(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    else:
        shutil.rmtree(path)


def purge_stale_workspaces(
    base_dir: Optional[str | Path] = None,
    max_age_seconds: float = 3600,
) -> list[Path]:
    """Remove workspaces left behind by crashed processes.

    Args:
        base_dir: Directory to scan, the system temp dir by default.
        max_age_seconds: Only workspaces older than this are removed.

    Returns:
        The removed workspace paths.
    """
    base = Path(base_dir or tempfile.gettempdir())
    if not base.is_dir():
        return []

    cutoff = time.time() - max_age_seconds
    with _active_lock:
        active = set(_active)

    removed: list[Path] = []
    for path in sorted(base.glob(f"{WORKSPACE_PREFIX}*")):
        if path in active:
            continue
        try:
            mtime = path.lstat().st_mtime
        except FileNotFoundError:
            continue
        if mtime < cutoff:
            _remove(path)
            removed.append(path)
    if removed:
        logger.warning("Purged %d stale workspace(s) from %s", len(removed), base)
    return removed
