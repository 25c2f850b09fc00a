"""
Configuration store: load, validate and persist the gate configuration
"""
import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from filegate.core.errors import GateError, IOFailure, ValidationFailure
from filegate.core.logging_config import LoggingConfig
from filegate.models.configuration import GateConfiguration
from filegate.services.atomic_writer import AtomicFileWriter
from filegate.services.sandbox import Sandbox

logger = LoggingConfig.get_logger(__name__)


@dataclass
class SaveResult:
    """Outcome of ConfigurationStore.save"""
    ok: bool
    configuration: Optional[GateConfiguration] = None
    error: Optional[GateError] = None
    warnings: List[str] = field(default_factory=list)


def format_validation_error(error: ValidationError) -> str:
    """Collapse a pydantic error into one short line"""
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid configuration"


class ConfigurationStore:
    """Holder of the active GateConfiguration.

    Reads are lock-free: ``get()`` returns the current immutable snapshot and
    ``save()`` swaps in a new one under a single lock after it is persisted.
    """

    def __init__(self, path: Path, sandbox: Sandbox, writer: AtomicFileWriter):
        self.path = Path(path).expanduser().resolve()
        self.sandbox = sandbox
        self.writer = writer
        self._save_lock = threading.Lock()
        self._current = GateConfiguration()

    def get(self) -> GateConfiguration:
        return self._current

    def load(self) -> GateConfiguration:
        """Load the configuration file, falling back to defaults.

        A missing file yields defaults. An unreadable or invalid file is
        logged and left untouched so an operator can repair it.
        """
        if not self.path.exists():
            logger.info(f"No configuration at {self.path}, using defaults")
            self._current = GateConfiguration()
            return self._current

        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            self._current = GateConfiguration.model_validate(document)
        except (OSError, ValueError) as e:
            # ValidationError and JSONDecodeError are both ValueErrors
            detail = format_validation_error(e) if isinstance(e, ValidationError) else str(e)
            logger.error(
                f"Failed to load configuration from {self.path}, using defaults: {detail}",
                extra={"path": str(self.path)}
            )
            self._current = GateConfiguration()
            return self._current

        logger.info(
            f"Loaded configuration with {len(self._current.exposed_folders)} folder(s)",
            extra={"path": str(self.path)}
        )
        return self._current

    def save(self, configuration: Union[GateConfiguration, Dict[str, Any]]) -> SaveResult:
        """Validate, persist and activate a configuration.

        Never raises for validation or I/O problems; the result carries the
        failure instead. Folder creation is best effort and reported as
        warnings.
        """
        with self._save_lock:
            try:
                validated = self._validate(configuration)
                self._persist(validated)
            except GateError as e:
                logger.warning(f"Configuration save rejected: {e.message}")
                return SaveResult(ok=False, error=e)

            self._current = validated
            warnings = self.ensure_folders(validated)

        logger.info(
            f"Saved configuration with {len(validated.exposed_folders)} folder(s)",
            extra={"path": str(self.path), "warnings": len(warnings)}
        )
        return SaveResult(ok=True, configuration=validated, warnings=warnings)

    def ensure_folders(self, configuration: Optional[GateConfiguration] = None) -> List[str]:
        """Create the directory of every exposed folder; failures become warnings"""
        configuration = configuration or self._current
        warnings = []
        for entry in configuration.exposed_folders:
            try:
                self.sandbox.folder_dir(entry.relative_path, create=True)
            except (GateError, OSError) as e:
                message = f"Could not create folder '{entry.relative_path}': {e}"
                logger.warning(message)
                warnings.append(message)
        return warnings

    def _validate(self, configuration: Union[GateConfiguration, Dict[str, Any]]) -> GateConfiguration:
        try:
            if isinstance(configuration, GateConfiguration):
                # Re-run validators on a model that may have been mutated after construction
                return GateConfiguration.model_validate(configuration.model_dump())
            return GateConfiguration.model_validate(configuration)
        except ValidationError as e:
            raise ValidationFailure(format_validation_error(e)) from e

    def _persist(self, configuration: GateConfiguration):
        payload = json.dumps(configuration.model_dump(mode="json"), indent=2).encode("utf-8")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create configuration directory: {e}", exc_info=True)
            raise IOFailure(str(e)) from e
        self.writer.write(self.path, payload)
