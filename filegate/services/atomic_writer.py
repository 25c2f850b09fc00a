"""
Crash-safe file writes with bounded backup rotation
"""
import errno
import os
import shutil
import tempfile
import threading
import weakref
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from filegate.core.errors import IOFailure
from filegate.core.logging_config import LoggingConfig
from filegate.models.configuration import BACKUP_DIR_NAME

logger = LoggingConfig.get_logger(__name__)

TEMP_SUFFIX = ".tmp"
BACKUP_SUFFIX = ".bak"

# os.replace failures that mean "no atomic rename here", not "write failed"
_REPLACE_UNSUPPORTED = {
    getattr(errno, name)
    for name in ("ENOTSUP", "EOPNOTSUPP", "ENOSYS", "EXDEV")
    if hasattr(errno, name)
}


class AtomicFileWriter:
    """Writes bytes through a same-directory temp file and an atomic replace.

    Writes to the same canonical path are serialized. Before a file is
    overwritten its current content is copied to ``backups/`` beside it and the
    backup set is pruned to the newest ``max_backups`` entries.
    """

    def __init__(self, max_backups_provider: Callable[[], int]):
        self._max_backups = max_backups_provider
        # Entries vanish once no writer holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, path: Path) -> threading.Lock:
        key = os.path.normcase(str(path))
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def write(self, path: Path, data: bytes) -> Path:
        """Atomically write data to path.

        Args:
            path: Target file. Its directory must already exist.
            data: Full new content

        Returns:
            The canonical path written

        Raises:
            IOFailure: the write, fsync or replace failed; the original file is intact
        """
        target = Path(path).resolve()
        lock = self._lock_for(target)
        with lock:
            if target.is_file():
                self._backup(target, data)
            self._write_replace(target, data)

        logger.info(
            f"Wrote {len(data)} bytes to {target.name}",
            extra={"path": str(target), "size": len(data)}
        )
        return target

    def backups_for(self, path: Path) -> List[Path]:
        """Backups of path, oldest first"""
        target = Path(path)
        backup_dir = target.parent / BACKUP_DIR_NAME
        if not backup_dir.is_dir():
            return []
        prefix = target.name + "."
        found = []
        for p in backup_dir.iterdir():
            if not (p.is_file() and p.name.startswith(prefix) and p.name.endswith(BACKUP_SUFFIX)):
                continue
            order = _backup_order(p.name[len(prefix):-len(BACKUP_SUFFIX)])
            if order is not None:
                found.append((order, p))
        return [p for _, p in sorted(found)]

    def _backup(self, target: Path, data: bytes):
        max_backups = self._max_backups()
        if max_backups <= 0:
            return

        existing = self.backups_for(target)
        if existing and _same_content(target, data):
            logger.debug(f"Content of {target.name} unchanged, backup skipped")
            return

        try:
            backup_dir = target.parent / BACKUP_DIR_NAME
            backup_dir.mkdir(exist_ok=True)
            backup_path = _unique_backup_path(backup_dir, target.name)
            shutil.copyfile(target, backup_path)
            logger.debug(f"Backed up {target.name} to {backup_path.name}")
        except OSError as e:
            # A failed backup must not block the write itself
            logger.warning(
                f"Backup of {target.name} failed: {e}",
                extra={"path": str(target)}
            )
            return

        self._prune(target, max_backups)

    def _prune(self, target: Path, max_backups: int):
        backups = self.backups_for(target)
        excess = len(backups) - max_backups
        for old in backups[:max(excess, 0)]:
            try:
                old.unlink()
            except OSError as e:
                logger.warning(f"Could not delete old backup {old.name}: {e}")

    def _write_replace(self, target: Path, data: bytes):
        tmp_path = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=str(target.parent),
                prefix=f".{target.name}.",
                suffix=TEMP_SUFFIX,
            )
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            _replace(tmp_path, target)
        except OSError as e:
            logger.error(
                f"Atomic write of {target.name} failed: {e}",
                exc_info=True,
                extra={"path": str(target)}
            )
            raise IOFailure(f"Failed to write {target}: {e}") from e
        finally:
            if tmp_path is not None and tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError as e:
                    logger.warning(f"Could not remove temp file {tmp_path.name}: {e}")


def _replace(source: Path, target: Path):
    try:
        os.replace(source, target)
        return
    except OSError as e:
        if e.errno not in _REPLACE_UNSUPPORTED:
            raise
        logger.warning(
            f"Atomic replace unsupported for {target.name} ({e}), "
            f"falling back to delete-then-move (not crash-safe)",
            extra={"path": str(target)}
        )

    if target.exists():
        target.unlink()
    shutil.move(str(source), str(target))


def _same_content(target: Path, data: bytes) -> bool:
    try:
        if target.stat().st_size != len(data):
            return False
        return target.read_bytes() == data
    except OSError:
        return False


def _backup_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")


def _backup_order(value: str) -> Optional[Tuple[str, int]]:
    """Sort key for a backup stamp with an optional -N collision counter"""
    stamp, _, counter = value.partition("-")
    if len(stamp) != 20 or not stamp.isdigit():
        return None
    if counter and not counter.isdigit():
        return None
    return stamp, int(counter or 0)


def _unique_backup_path(backup_dir: Path, file_name: str) -> Path:
    stamp = _backup_stamp()
    candidate = backup_dir / f"{file_name}.{stamp}{BACKUP_SUFFIX}"
    counter = 1
    while candidate.exists():
        candidate = backup_dir / f"{file_name}.{stamp}-{counter}{BACKUP_SUFFIX}"
        counter += 1
    return candidate
