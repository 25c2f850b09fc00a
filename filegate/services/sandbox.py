"""
Sandbox root and the name grammars that keep every path inside it
"""
import re
from pathlib import Path
from typing import Optional

from filegate.core.errors import IOFailure, ValidationFailure
from filegate.core.logging_config import LoggingConfig
from filegate.models.configuration import BACKUP_DIR_NAME, is_folder_token

logger = LoggingConfig.get_logger(__name__)

FILE_NAME_PATTERN = re.compile(r"^[\w.-]+$")


class Sandbox:
    """Single base directory outside of which no write may occur"""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser().resolve()

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def contains(self, path: Path) -> bool:
        """True if path resolves to the root or somewhere beneath it"""
        resolved = Path(path).resolve()
        return resolved == self.root or self.root in resolved.parents

    def folder_dir(self, relative_path: str, create: bool = True) -> Path:
        """Join a folder token onto the root.

        The result is always a direct child of the root. The check is repeated
        after creation so a symlink planted in place of the folder is caught.

        Raises:
            ValidationFailure: token grammar violated, the path escapes the root,
                or a non-directory already occupies the name
            IOFailure: the directory could not be created
        """
        if not is_folder_token(relative_path) or relative_path.lower() == BACKUP_DIR_NAME:
            raise ValidationFailure("Invalid folder")

        candidate = self.root / relative_path
        self._check_direct_child(candidate)

        if create:
            self.ensure_root()
            try:
                candidate.mkdir(exist_ok=True)
            except (FileExistsError, NotADirectoryError) as e:
                logger.info(f"Folder name '{relative_path}' is taken by a file")
                raise ValidationFailure("Invalid folder") from e
            except OSError as e:
                logger.error(f"Failed to create folder '{relative_path}': {e}", exc_info=True)
                raise IOFailure(str(e)) from e
            self._check_direct_child(candidate)

        return candidate.resolve() if candidate.exists() else candidate

    def preview(self, relative_path: str) -> Path:
        """Where relative_path would live, without touching the filesystem"""
        return self.folder_dir(relative_path, create=False)

    def file_path(self, directory: Path, file_name: Optional[str]) -> Path:
        """Validate a plain file name and join it onto directory.

        Raises:
            ValidationFailure: empty name, separators, a name made only of dots,
                the reserved backup directory name, or a name taken by a non-file
        """
        name = (file_name or "").strip()
        if not name:
            raise ValidationFailure("Missing file name")
        if FILE_NAME_PATTERN.fullmatch(name) is None or set(name) == {"."}:
            raise ValidationFailure("Invalid file name")
        if name.lower() == BACKUP_DIR_NAME:
            raise ValidationFailure("Invalid file name")

        target = Path(directory) / name
        if target.resolve().parent != Path(directory).resolve():
            raise ValidationFailure("Invalid file name")
        if target.exists() and not target.is_file():
            raise ValidationFailure("Invalid file name")
        return target

    def _check_direct_child(self, candidate: Path):
        if candidate.resolve().parent != self.root:
            logger.warning(
                "Folder path escapes sandbox root",
                extra={"candidate": str(candidate), "root": str(self.root)}
            )
            raise ValidationFailure("Invalid folder")
