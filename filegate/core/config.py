"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from project root
# config.py is at: filegate/core/config.py
_current_file = Path(__file__).resolve()
_package_dir = _current_file.parent.parent
_project_root = _package_dir.parent
ENV_FILE = _project_root / ".env"
# Fallback: .env in the working directory
if not ENV_FILE.exists():
    ENV_FILE = Path.cwd() / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE, override=False)


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "FileGate"
    app_env: str = Field(default="development", description="Application environment")
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, ge=1, le=65535, description="API port")
    allowed_origins: str = Field(
        default="http://localhost:8096,http://127.0.0.1:8096",
        description="Allowed CORS origins (comma-separated)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_uvicorn_access: bool = Field(default=False, description="Enable Uvicorn access logging")
    log_module_levels: Optional[str] = Field(
        default=None,
        description='Module-specific log levels (JSON string, e.g., {"filegate.services": "DEBUG"})'
    )
    log_format: str = Field(
        default="json",
        description="Log format: 'json' for structured logging, 'text' for plain text"
    )
    log_file_enabled: bool = Field(default=True, description="Enable file logging")
    log_file_path: str = Field(
        default="logs/filegate.log",
        description="Path to log file (relative to the working directory)"
    )
    log_file_rotation: str = Field(
        default="midnight",
        description="Log file rotation: 'midnight' or 'W0'..'W6' (weekly)"
    )
    log_file_retention: int = Field(
        default=30,
        ge=1,
        description="Number of rotated log files to keep"
    )
    log_sensitive_data: bool = Field(
        default=False,
        description="Enable logging of sensitive data (tokens, api keys) - NOT RECOMMENDED"
    )

    # Storage
    data_root: str = Field(default="data", description="Sandbox root for all payload writes")
    config_file_path: str = Field(
        default="config/filegate.json",
        description="Gate configuration document (must live outside data_root)"
    )

    # Identity service
    identity_default_base: str = Field(
        default="http://127.0.0.1:8096",
        description="Loopback base URL tried last when validating credentials"
    )
    identity_user_endpoint: str = Field(default="/Users/Me", description="Current-user endpoint path")
    identity_token_header: str = Field(
        default="X-Emby-Token",
        description="Header carrying the credential on identity requests"
    )
    identity_timeout_seconds: float = Field(
        default=5.0,
        ge=0.5,
        le=60.0,
        description="Timeout per identity candidate (seconds)"
    )

    # Credential transport
    token_header_primary: str = Field(default="X-Emby-Token", description="Primary token header")
    token_header_secondary: str = Field(default="X-Jellyfin-Token", description="Secondary token header")
    token_query_param: str = Field(default="api_key", description="Token query parameter")
    api_key_header: str = Field(default="X-FileGate-Key", description="API key header for non-admin writes")
    api_key_query_param: str = Field(default="api_key", description="API key query parameter")

    # Policy
    legacy_folder_key_fallback: bool = Field(
        default=False,
        description="Allow folder writes without a matching API key when a key is configured "
                    "and both non-admin flags are set (legacy behaviour)"
    )
    config_read_requires_admin: bool = Field(
        default=True,
        description="Require an administrator to read the gate configuration"
    )

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only json and text formatters exist"""
        if v.lower() not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v.lower()

    @field_validator("identity_user_endpoint")
    @classmethod
    def normalize_endpoint(cls, v: str) -> str:
        """Endpoint is always joined onto a base without trailing slash"""
        return "/" + v.strip().lstrip("/")

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def data_root_path(self) -> Path:
        """Absolute sandbox root"""
        return Path(self.data_root).expanduser().resolve()

    @property
    def config_file(self) -> Path:
        """Absolute path of the gate configuration document"""
        return Path(self.config_file_path).expanduser().resolve()

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
