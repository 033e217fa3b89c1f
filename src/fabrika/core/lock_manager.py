"""Single-writer lock for a project's checkpoints.

Only one fabrika process may mutate a project's checkpoints at a time.
The lock file records the holder's PID; a lock whose process has died or
whose heartbeat is older than an hour is considered stale and replaced.

Creation uses O_CREAT | O_EXCL so two processes cannot both win.
"""

import contextlib
import os
from collections.abc import Iterator
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from ..errors import LockError
from ..models import Lock

LOCK_FILE = "active.lock"
STALE_TIMEOUT_SECONDS = 3600  # 1 hour
MAX_LOCK_RETRIES = 3  # Max retries when clearing stale locks


def lock_path(fabrika_dir: Path) -> Path:
    return fabrika_dir / LOCK_FILE


def _is_pid_running(pid: int) -> bool:
    """Check if a process with given PID is running."""
    try:
        os.kill(pid, 0)  # Signal 0 doesn't kill, just checks
        return True
    except OSError:
        return False


def get_current_lock(fabrika_dir: Path) -> Lock | None:
    """Read the lock file.

    Returns:
        The lock, or None if there is no lock or it is corrupted
    """
    try:
        return Lock.model_validate_json(lock_path(fabrika_dir).read_text())
    except (OSError, ValidationError):
        return None


def is_stale_lock(lock: Lock, timeout_seconds: int = STALE_TIMEOUT_SECONDS) -> bool:
    """Check if lock is stale (PID dead or heartbeat too old)."""
    if not _is_pid_running(lock.pid):
        return True
    return datetime.now() - lock.last_heartbeat > timedelta(seconds=timeout_seconds)


def _try_atomic_create(path: Path, lock: Lock) -> bool:
    try:
        fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        return False
    try:
        os.write(fd, lock.model_dump_json(indent=2).encode())
    finally:
        os.close(fd)
    return True


def acquire_lock(fabrika_dir: Path, project: str, command: str) -> Lock:
    """Acquire the project lock.

    Args:
        fabrika_dir: Path to .fabrika directory
        project: Project path (recorded for diagnostics)
        command: Command acquiring the lock

    Returns:
        The acquired lock

    Raises:
        LockError: If another live process holds the lock
    """
    fabrika_dir.mkdir(parents=True, exist_ok=True)
    path = lock_path(fabrika_dir)
    lock = Lock(pid=os.getpid(), project=project, command=command)

    for _ in range(MAX_LOCK_RETRIES):
        if _try_atomic_create(path, lock):
            return lock

        existing = get_current_lock(fabrika_dir)
        if existing is None:
            # Corrupted or removed between attempts
            with contextlib.suppress(FileNotFoundError):
                path.unlink()
            continue

        if existing.pid == os.getpid():
            path.write_text(lock.model_dump_json(indent=2))
            return lock

        if is_stale_lock(existing):
            with contextlib.suppress(FileNotFoundError):
                path.unlink()
            continue

        raise LockError(
            f"Project locked by PID {existing.pid} (command: {existing.command})",
            f"Proje başka bir işlem tarafından kullanılıyor (PID {existing.pid})",
        )

    raise LockError("Failed to acquire lock after multiple attempts", "Kilit alınamadı")


def release_lock(fabrika_dir: Path) -> None:
    """Release the lock if this process owns it."""
    existing = get_current_lock(fabrika_dir)
    if existing and existing.pid == os.getpid():
        lock_path(fabrika_dir).unlink(missing_ok=True)


def update_heartbeat(fabrika_dir: Path) -> None:
    """Refresh the heartbeat of a lock this process owns."""
    existing = get_current_lock(fabrika_dir)
    if existing and existing.pid == os.getpid():
        existing.last_heartbeat = datetime.now()
        lock_path(fabrika_dir).write_text(existing.model_dump_json(indent=2))


@contextlib.contextmanager
def workflow_lock(fabrika_dir: Path, project: str, command: str) -> Iterator[Lock]:
    """Hold the project lock for the duration of a ``with`` block."""
    lock = acquire_lock(fabrika_dir, project, command)
    try:
        yield lock
    finally:
        release_lock(fabrika_dir)
