"""
Gate configuration record types
"""
import re
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator

FOLDER_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
BACKUP_DIR_NAME = "backups"

DEFAULT_MAX_PAYLOAD_BYTES = 2 * 1024 * 1024
DEFAULT_MAX_BACKUPS = 5
MIN_PAYLOAD_BYTES = 1024


def is_folder_token(value: Optional[str]) -> bool:
    """Check a value is a single filesystem-safe path segment"""
    return bool(value) and FOLDER_TOKEN_PATTERN.fullmatch(value) is not None


class FolderEntry(BaseModel):
    """A logical folder exposed for writes under the sandbox root"""
    name: str = Field(..., description="Logical folder name used by clients")
    relative_path: str = Field(..., description="Single path segment under the sandbox root")
    allow_non_admin: bool = Field(default=False, description="Allow non-admin writes with the API key")
    description: Optional[str] = Field(default=None, description="Free-form description")

    @field_validator("name", "relative_path")
    @classmethod
    def validate_token(cls, v: str) -> str:
        v = (v or "").strip()
        if not is_folder_token(v):
            raise ValueError(f"'{v}' must match [A-Za-z0-9_-]+")
        return v

    @field_validator("relative_path")
    @classmethod
    def validate_not_reserved(cls, v: str) -> str:
        if v.lower() == BACKUP_DIR_NAME:
            raise ValueError(f"'{BACKUP_DIR_NAME}' is reserved for backup storage")
        return v

    def matches(self, folder: str) -> bool:
        """Case-insensitive match on either the name or the relative path"""
        key = folder.lower()
        return self.name.lower() == key or self.relative_path.lower() == key


class GateConfiguration(BaseModel):
    """Folder allow-list, API key and limits"""
    server_base_url: Optional[str] = Field(default=None, description="Identity service base URL override")
    api_key: Optional[str] = Field(default=None, description="Shared secret for non-admin writes")
    allow_non_admin: bool = Field(default=False, description="Global non-admin write flag")
    max_payload_bytes: int = Field(default=DEFAULT_MAX_PAYLOAD_BYTES, ge=MIN_PAYLOAD_BYTES)
    max_backups: int = Field(default=DEFAULT_MAX_BACKUPS, ge=0)
    exposed_folders: List[FolderEntry] = Field(default_factory=list)

    @field_validator("server_base_url")
    @classmethod
    def validate_base_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip().rstrip("/")
        parsed = urlparse(v)
        if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
            raise ValueError("server_base_url must be an absolute http or https URL")
        return v

    @field_validator("api_key")
    @classmethod
    def normalize_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @model_validator(mode="after")
    def validate_unique_folders(self) -> "GateConfiguration":
        names = set()
        paths = set()
        for entry in self.exposed_folders:
            name = entry.name.lower()
            path = entry.relative_path.lower()
            if name in names:
                raise ValueError(f"Duplicate folder name '{entry.name}'")
            if path in paths:
                raise ValueError(f"Duplicate folder path '{entry.relative_path}'")
            names.add(name)
            paths.add(path)
        return self

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def find_folder(self, folder: str) -> Optional[FolderEntry]:
        """Find a folder entry by name or relative path (case-insensitive)"""
        for entry in self.exposed_folders:
            if entry.matches(folder):
                return entry
        return None
