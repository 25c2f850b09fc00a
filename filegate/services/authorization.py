"""
Authorization decisions for writes
"""
import hmac
from dataclasses import dataclass
from typing import Optional

from filegate.core.logging_config import LoggingConfig
from filegate.models.configuration import FolderEntry
from filegate.models.write import Identity
from filegate.services.configuration_store import ConfigurationStore

logger = LoggingConfig.get_logger(__name__)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str

    def __iter__(self):
        # Unpacks as (allowed, reason)
        yield self.allowed
        yield self.reason


def keys_match(provided: Optional[str], configured: Optional[str]) -> bool:
    """Constant-time API key comparison; absent keys never match"""
    if not provided or not configured:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), configured.encode("utf-8"))


class AuthorizationDecision:
    """Combines identity, API key and folder flags into an allow/deny verdict.

    Rules, in order:
        1. administrator identity -> allowed
        2. key_valid = provided key equals the configured key
        3. global write -> allowed iff key_valid
        4. folder write -> allowed iff key_valid. With ``legacy_fallback`` a
           folder write is also allowed when the global and folder non-admin
           flags are set and a key is configured, whatever key was provided.
    """

    def __init__(self, config_store: ConfigurationStore, legacy_fallback: bool = False):
        self.config_store = config_store
        self.legacy_fallback = legacy_fallback

    def decide(
        self,
        identity: Optional[Identity],
        provided_key: Optional[str],
        folder: Optional[FolderEntry] = None,
    ) -> Decision:
        if identity is not None and identity.is_admin:
            return Decision(True, "administrator")

        configuration = self.config_store.get()
        key_valid = keys_match(provided_key, configuration.api_key)

        if key_valid:
            return Decision(True, "api key")

        if (
            folder is not None
            and self.legacy_fallback
            and configuration.allow_non_admin
            and folder.allow_non_admin
            and configuration.has_api_key
        ):
            logger.warning(
                f"Folder write to '{folder.name}' granted by legacy fallback without a valid api key",
                extra={"folder": folder.name, "user_id": identity.user_id if identity else None}
            )
            return Decision(True, "legacy non-admin fallback")

        return Decision(False, self._deny_reason(identity, provided_key, configuration.has_api_key))

    @staticmethod
    def _deny_reason(identity: Optional[Identity], provided_key: Optional[str], has_key: bool) -> str:
        if identity is None and not provided_key:
            return "Unauthorized: missing authorization"
        if provided_key and not has_key:
            return "Unauthorized: api key not enabled"
        if provided_key:
            return "Unauthorized: invalid api key"
        return "Unauthorized: administrator or api key required"
