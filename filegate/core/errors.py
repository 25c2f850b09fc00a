"""
Failure taxonomy shared by every write path.

Services raise these; public entry points turn them into typed outcomes so the
HTTP layer can map them to status codes without parsing messages.
"""
from enum import Enum
from typing import Any, Dict


class ErrorKind(str, Enum):
    """Error kinds surfaced in outcomes and responses"""
    AUTHENTICATION = "authentication"  # no or unusable credential
    AUTHORIZATION = "authorization"  # decision denied
    VALIDATION = "validation"  # bad name, bad JSON, bad folder, size limit
    IO = "io"  # disk write/backup/rename error
    NETWORK = "network"  # identity endpoint unreachable on one candidate


class GateError(Exception):
    """Base class for FileGate failures"""

    kind: ErrorKind = ErrorKind.IO
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        """Message safe to return to the caller"""
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to response body"""
        return {
            "error": self.kind.value,
            "detail": self.public_message,
        }


class AuthenticationFailure(GateError):
    """No credential, or the credential could not be validated on any candidate"""
    kind = ErrorKind.AUTHENTICATION
    status_code = 401


class AuthorizationFailure(GateError):
    """The caller is known (or anonymous) but may not perform the operation"""
    kind = ErrorKind.AUTHORIZATION
    status_code = 401


class ValidationFailure(GateError):
    """Malformed folder/file name, malformed JSON or configuration"""
    kind = ErrorKind.VALIDATION
    status_code = 400


class PayloadTooLarge(ValidationFailure):
    """Payload exceeds the configured maximum"""
    status_code = 413


class NotFoundFailure(ValidationFailure):
    """Requested file does not exist (read paths only)"""
    status_code = 404


class IOFailure(GateError):
    """Disk write, backup or rename error. Details stay in the server log."""
    kind = ErrorKind.IO
    status_code = 500

    @property
    def public_message(self) -> str:
        return "Failed to write file"


class NetworkFailure(GateError):
    """Identity endpoint unreachable on a single candidate base"""
    kind = ErrorKind.NETWORK
    status_code = 401

    def __init__(self, message: str, base_url: str):
        super().__init__(message)
        self.base_url = base_url
