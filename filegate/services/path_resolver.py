"""
Maps logical folder names to sandboxed directories
"""
from pathlib import Path
from typing import Optional

from filegate.core.errors import ValidationFailure
from filegate.core.logging_config import LoggingConfig
from filegate.models.configuration import FolderEntry, is_folder_token
from filegate.services.configuration_store import ConfigurationStore
from filegate.services.sandbox import Sandbox

logger = LoggingConfig.get_logger(__name__)


class PathResolver:
    """Resolves folders and file names against the active configuration"""

    def __init__(self, sandbox: Sandbox, config_store: ConfigurationStore):
        self.sandbox = sandbox
        self.config_store = config_store

    def entry_for(self, folder_name: Optional[str]) -> FolderEntry:
        """Find the configured entry for a folder name or relative path.

        Raises:
            ValidationFailure: malformed name or no such folder
        """
        folder_name = (folder_name or "").strip()
        if not is_folder_token(folder_name):
            raise ValidationFailure("Invalid folder")

        entry = self.config_store.get().find_folder(folder_name)
        if entry is None:
            logger.debug(f"Folder '{folder_name}' is not exposed")
            raise ValidationFailure("Unknown folder")
        return entry

    def resolve(self, folder_name: Optional[str], create: bool = True) -> Path:
        """Absolute directory for a configured folder.

        Args:
            folder_name: Logical name or relative path of an exposed folder
            create: Create the directory if absent

        Returns:
            A direct child of the sandbox root

        Raises:
            ValidationFailure: the folder is malformed, unknown, or escapes the root
        """
        entry = self.entry_for(folder_name)
        # The stored entry is checked again in case the file on disk was edited by hand
        if not is_folder_token(entry.relative_path):
            logger.error(f"Configured folder '{entry.name}' has an invalid relative path")
            raise ValidationFailure("Invalid folder")
        return self.sandbox.folder_dir(entry.relative_path, create=create)

    def resolve_root(self) -> Path:
        """The sandbox root, for global (non-folder) writes"""
        return self.sandbox.ensure_root()

    def resolve_file(self, directory: Path, file_name: Optional[str]) -> Path:
        """Validate file_name against the file grammar and join it onto directory"""
        return self.sandbox.file_path(directory, file_name)

    def preview(self, relative_path: Optional[str]) -> Path:
        """Where a relative path would live, without creating anything"""
        return self.sandbox.preview((relative_path or "").strip())
