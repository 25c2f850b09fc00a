"""
Folder listing, reading and deletion
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from filegate.core.errors import IOFailure, NotFoundFailure
from filegate.core.logging_config import LoggingConfig
from filegate.models.configuration import BACKUP_DIR_NAME
from filegate.services.atomic_writer import TEMP_SUFFIX
from filegate.services.path_resolver import PathResolver

logger = LoggingConfig.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES = {
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".log": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".yaml": "application/x-yaml",
    ".yml": "application/x-yaml",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
}


def content_type_for(name: str) -> str:
    return CONTENT_TYPES.get(Path(name).suffix.lower(), DEFAULT_CONTENT_TYPE)


@dataclass
class FileInfo:
    name: str
    size: int
    modified: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "size": self.size, "modified": self.modified}


class FolderService:
    """Read-side operations over the sandbox root and exposed folders"""

    def __init__(self, path_resolver: PathResolver):
        self.path_resolver = path_resolver

    def directory(self, folder: Optional[str]) -> Path:
        """Root directory for None, otherwise the configured folder (never created here)"""
        if folder is None:
            return self.path_resolver.resolve_root()
        return self.path_resolver.resolve(folder, create=False)

    def list_files(self, folder: Optional[str] = None) -> List[FileInfo]:
        """Top-level files, excluding temp files and the backup directory"""
        directory = self.directory(folder)
        if not directory.is_dir():
            return []
        files = []
        for entry in sorted(directory.iterdir(), key=lambda p: p.name.lower()):
            if not entry.is_file() or entry.name == BACKUP_DIR_NAME:
                continue
            if entry.name.startswith(".") and entry.name.endswith(TEMP_SUFFIX):
                continue
            stat = entry.stat()
            files.append(FileInfo(
                name=entry.name,
                size=stat.st_size,
                modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            ))
        return files

    def locate(self, folder: Optional[str], name: Optional[str]) -> Path:
        """Path of an existing file.

        Raises:
            ValidationFailure: bad folder or file name
            NotFoundFailure: file does not exist
        """
        target = self.path_resolver.resolve_file(self.directory(folder), name)
        if not target.is_file():
            raise NotFoundFailure("File not found")
        return target

    def read(self, folder: Optional[str], name: Optional[str]) -> bytes:
        target = self.locate(folder, name)
        try:
            return target.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read {target}: {e}", exc_info=True)
            raise IOFailure(str(e)) from e

    def delete(self, folder: Optional[str], name: Optional[str]) -> Path:
        """Remove a file; backups are left in place"""
        target = self.locate(folder, name)
        try:
            target.unlink()
        except FileNotFoundError as e:
            raise NotFoundFailure("File not found") from e
        except OSError as e:
            logger.error(f"Failed to delete {target}: {e}", exc_info=True)
            raise IOFailure(str(e)) from e
        logger.info(f"Deleted {target.name}", extra={"path": str(target), "folder": folder})
        return target
