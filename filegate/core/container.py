"""
Service assembly and FastAPI dependency accessors
"""
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from filegate.core.config import Settings
from filegate.core.logging_config import LoggingConfig
from filegate.services.atomic_writer import AtomicFileWriter
from filegate.services.authorization import AuthorizationDecision
from filegate.services.configuration_store import ConfigurationStore
from filegate.services.folder_service import FolderService
from filegate.services.identity_validator import IdentityValidator
from filegate.services.path_resolver import PathResolver
from filegate.services.sandbox import Sandbox
from filegate.services.token_extractor import TokenExtractor
from filegate.services.write_orchestrator import WriteOrchestrator

logger = LoggingConfig.get_logger(__name__)


@dataclass
class GateServices:
    """Everything a request handler needs, built once per application"""
    settings: Settings
    sandbox: Sandbox
    writer: AtomicFileWriter
    config_store: ConfigurationStore
    path_resolver: PathResolver
    token_extractor: TokenExtractor
    identity_validator: IdentityValidator
    authorization: AuthorizationDecision
    orchestrator: WriteOrchestrator
    folders: FolderService

    async def aclose(self):
        await self.identity_validator.aclose()


def build_services(settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> GateServices:
    """Construct and wire the services, load the configuration and create folders.

    Raises:
        RuntimeError: the configuration file would live inside the sandbox root
    """
    sandbox = Sandbox(settings.data_root_path)
    config_path = settings.config_file
    if sandbox.contains(config_path):
        raise RuntimeError(
            f"config_file_path ({config_path}) must not be inside data_root ({sandbox.root})"
        )
    sandbox.ensure_root()

    # Read on every write so a saved configuration applies immediately
    def max_backups() -> int:
        return config_store.get().max_backups

    writer = AtomicFileWriter(max_backups)
    config_store = ConfigurationStore(config_path, sandbox, writer)
    config_store.load()
    config_store.ensure_folders()

    path_resolver = PathResolver(sandbox, config_store)
    identity_validator = IdentityValidator(settings, client=http_client)
    authorization = AuthorizationDecision(
        config_store,
        legacy_fallback=settings.legacy_folder_key_fallback,
    )
    orchestrator = WriteOrchestrator(
        config_store=config_store,
        identity_validator=identity_validator,
        authorization=authorization,
        path_resolver=path_resolver,
        writer=writer,
    )

    if settings.legacy_folder_key_fallback:
        logger.warning("Legacy folder api key fallback is enabled")

    logger.info(
        "FileGate services initialized",
        extra={"data_root": str(sandbox.root), "config_file": str(config_path)}
    )

    return GateServices(
        settings=settings,
        sandbox=sandbox,
        writer=writer,
        config_store=config_store,
        path_resolver=path_resolver,
        token_extractor=TokenExtractor(settings),
        identity_validator=identity_validator,
        authorization=authorization,
        orchestrator=orchestrator,
        folders=FolderService(path_resolver),
    )


def get_services(request: Request) -> GateServices:
    """FastAPI dependency: the services attached to the running app"""
    return request.app.state.services
