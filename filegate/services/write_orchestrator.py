"""
Request-level write coordination
"""
import asyncio
import json
from pathlib import Path
from typing import Optional, Tuple

from filegate.core.errors import (AuthenticationFailure, AuthorizationFailure,
                                  GateError, IOFailure, PayloadTooLarge,
                                  ValidationFailure)
from filegate.core.logging_config import LoggingConfig
from filegate.models.configuration import FolderEntry
from filegate.models.write import Identity, RequestOrigin, WriteOutcome, WriteRequest
from filegate.services.atomic_writer import AtomicFileWriter
from filegate.services.authorization import AuthorizationDecision
from filegate.services.configuration_store import ConfigurationStore
from filegate.services.identity_validator import IdentityValidator
from filegate.services.path_resolver import PathResolver

logger = LoggingConfig.get_logger(__name__)


def check_json_payload(payload: bytes):
    """Reject an empty or unparseable JSON body"""
    if not payload or not payload.strip():
        raise ValidationFailure("Missing body")
    try:
        json.loads(payload)
    except ValueError as e:
        raise ValidationFailure("Invalid JSON") from e


class WriteOrchestrator:
    """Runs one write through identity, authorization, path resolution and the writer"""

    def __init__(
        self,
        config_store: ConfigurationStore,
        identity_validator: IdentityValidator,
        authorization: AuthorizationDecision,
        path_resolver: PathResolver,
        writer: AtomicFileWriter,
    ):
        self.config_store = config_store
        self.identity_validator = identity_validator
        self.authorization = authorization
        self.path_resolver = path_resolver
        self.writer = writer

    async def identify(self, credential: Optional[str], origin: Optional[RequestOrigin]) -> Optional[Identity]:
        """Validate a credential against every candidate base; None when absent or rejected"""
        if not credential:
            return None
        bases = self.identity_validator.candidate_bases(self.config_store.get(), origin)
        return await self.identity_validator.validate(credential, bases)

    async def authorize(
        self,
        credential: Optional[str],
        api_key: Optional[str],
        origin: Optional[RequestOrigin],
        folder: Optional[FolderEntry] = None,
    ) -> Identity:
        """Identify and authorize a caller.

        Returns:
            The identity, or an anonymous one when authorized by api key

        Raises:
            AuthenticationFailure: a credential was given but not accepted and nothing else authorized
            AuthorizationFailure: the decision denied the caller
        """
        identity = await self.identify(credential, origin)
        allowed, reason = self.authorization.decide(identity, api_key, folder)
        if allowed:
            return identity or Identity(user_id=None)

        logger.warning(
            f"Write denied: {reason}",
            extra={
                "folder": folder.name if folder else None,
                "has_credential": bool(credential),
                "has_api_key": bool(api_key),
            }
        )
        if credential and identity is None and not api_key:
            raise AuthenticationFailure("Unauthorized: credential not accepted")
        raise AuthorizationFailure(reason)

    async def handle_write(self, request: WriteRequest) -> WriteOutcome:
        """Run a write request to completion. Never raises."""
        try:
            path, size = await self._write(request)
        except GateError as e:
            if isinstance(e, IOFailure):
                logger.error(f"Write failed: {e.message}", extra={"file_name": request.file_name})
            else:
                logger.info(
                    f"Write rejected ({e.kind.value}): {e.message}",
                    extra={"file_name": request.file_name, "folder": request.folder}
                )
            return WriteOutcome.failure(e)
        except Exception as e:
            logger.error(
                f"Unexpected error during write: {e}",
                exc_info=True,
                extra={"file_name": request.file_name, "folder": request.folder}
            )
            return WriteOutcome.failure(IOFailure(str(e)))

        return WriteOutcome.success(name=path.name, path=str(path), size=size)

    async def _write(self, request: WriteRequest) -> Tuple[Path, int]:
        entry = None
        if request.folder is not None:
            entry = self.path_resolver.entry_for(request.folder)

        await self.authorize(request.credential, request.api_key, request.origin, entry)

        configuration = self.config_store.get()
        if entry is not None:
            directory = await asyncio.to_thread(self.path_resolver.resolve, entry.name)
        else:
            directory = await asyncio.to_thread(self.path_resolver.resolve_root)
        target = self.path_resolver.resolve_file(directory, request.file_name)

        size = len(request.payload)
        if size > configuration.max_payload_bytes:
            raise PayloadTooLarge("Payload too large")

        if request.is_json:
            check_json_payload(request.payload)

        written = await asyncio.to_thread(self.writer.write, target, request.payload)
        return written, size
