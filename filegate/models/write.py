"""
Per-request value types for the write pipeline
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from filegate.core.errors import ErrorKind, GateError

ADMIN_ROLE = "administrator"


@dataclass(frozen=True)
class Identity:
    """Caller identity returned by the host's current-user endpoint"""
    user_id: Optional[str]
    name: Optional[str] = None
    is_admin: bool = False

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Identity":
        """Build an identity from a JSON user document.

        Administrator detection reads Policy.IsAdministrator first, then a
        top-level HasAdministrativeRole flag, then the Roles list.
        """
        return cls(
            user_id=_str_or_none(document.get("Id")),
            name=_str_or_none(document.get("Name")),
            is_admin=is_admin_document(document),
        )


def is_admin_document(document: Dict[str, Any]) -> bool:
    policy = document.get("Policy")
    if isinstance(policy, dict) and policy.get("IsAdministrator") is True:
        return True

    if document.get("HasAdministrativeRole") is True:
        return True

    roles = document.get("Roles")
    if isinstance(roles, list):
        return any(isinstance(role, str) and role.lower() == ADMIN_ROLE for role in roles)

    return False


def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class RequestOrigin:
    """Parts of the inbound request used to derive the identity base URL"""
    scheme: str = "http"
    host: Optional[str] = None
    forwarded_proto: Optional[str] = None
    path_prefix: str = ""

    def base_url(self) -> Optional[str]:
        """Base URL the request reached us on, or None without a Host"""
        if not self.host:
            return None
        scheme = (self.forwarded_proto or self.scheme or "http").split(",")[0].strip().lower()
        prefix = "/" + self.path_prefix.strip("/") if self.path_prefix.strip("/") else ""
        return f"{scheme}://{self.host}{prefix}"


@dataclass
class WriteRequest:
    """One inbound write"""
    file_name: str
    payload: bytes
    folder: Optional[str] = None
    credential: Optional[str] = None
    api_key: Optional[str] = None
    content_type: Optional[str] = None
    origin: RequestOrigin = field(default_factory=RequestOrigin)

    @property
    def is_json(self) -> bool:
        return bool(self.content_type) and "json" in self.content_type.lower()


@dataclass
class WriteOutcome:
    """Typed result of a write; never raised"""
    ok: bool
    status_code: int
    path: Optional[str] = None
    name: Optional[str] = None
    size: int = 0
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, name: str, path: str, size: int) -> "WriteOutcome":
        return cls(ok=True, status_code=200, name=name, path=path, size=size)

    @classmethod
    def failure(cls, error: GateError) -> "WriteOutcome":
        return cls(
            ok=False,
            status_code=error.status_code,
            error_kind=error.kind,
            message=error.public_message,
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"success": True, "name": self.name, "path": self.path, "size": self.size}
        return {
            "success": False,
            "error": self.error_kind.value if self.error_kind else None,
            "detail": self.message,
        }
