"""
Pytest configuration and fixtures
"""
import json
import os
import sys
from pathlib import Path

import httpx
import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Keep test runs from creating log files in the working directory
os.environ["LOG_FILE_ENABLED"] = "false"

from filegate.core.config import Settings  # noqa: E402
from filegate.models.configuration import FolderEntry, GateConfiguration  # noqa: E402
from filegate.services.atomic_writer import AtomicFileWriter  # noqa: E402
from filegate.services.configuration_store import ConfigurationStore  # noqa: E402
from filegate.services.path_resolver import PathResolver  # noqa: E402
from filegate.services.sandbox import Sandbox  # noqa: E402

ADMIN_TOKEN = "admin-token"
USER_TOKEN = "user-token"
API_KEY = "s3cret-key"

ADMIN_USER = {"Id": "u-admin", "Name": "root", "Policy": {"IsAdministrator": True}}
PLAIN_USER = {"Id": "u-plain", "Name": "guest", "Policy": {"IsAdministrator": False}}


def identity_handler(request: httpx.Request) -> httpx.Response:
    """Fake host identity endpoint keyed on the X-Emby-Token header"""
    token = request.headers.get("X-Emby-Token")
    if token == ADMIN_TOKEN:
        return httpx.Response(200, json=ADMIN_USER)
    if token == USER_TOKEN:
        return httpx.Response(200, json=PLAIN_USER)
    return httpx.Response(401, text="Unauthorized")


def make_client(handler=identity_handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a temporary sandbox and configuration file"""
    return Settings(
        data_root=str(tmp_path / "data"),
        config_file_path=str(tmp_path / "config" / "filegate.json"),
        log_file_enabled=False,
    )


@pytest.fixture
def sandbox(settings) -> Sandbox:
    box = Sandbox(settings.data_root_path)
    box.ensure_root()
    return box


@pytest.fixture
def config_store(settings, sandbox) -> ConfigurationStore:
    holder = {}
    writer = AtomicFileWriter(lambda: holder["store"].get().max_backups)
    store = ConfigurationStore(settings.config_file, sandbox, writer)
    holder["store"] = store
    store.load()
    return store


@pytest.fixture
def path_resolver(sandbox, config_store) -> PathResolver:
    return PathResolver(sandbox, config_store)


@pytest.fixture
def gate_config() -> GateConfiguration:
    """A configuration with one folder open to non-admins and one admin-only"""
    return GateConfiguration(
        api_key=API_KEY,
        allow_non_admin=True,
        exposed_folders=[
            FolderEntry(name="logs", relative_path="logs", allow_non_admin=True),
            FolderEntry(name="Reports", relative_path="report-files", allow_non_admin=False),
        ],
    )


def write_config_file(settings: Settings, document: dict):
    path = settings.config_file
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")
