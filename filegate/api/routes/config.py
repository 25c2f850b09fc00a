"""
API routes for the gate configuration
"""
import asyncio
import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from filegate.api.dependencies import read_body_limited, request_origin, require_admin
from filegate.core.container import GateServices, get_services
from filegate.core.errors import ValidationFailure
from filegate.core.logging_config import LoggingConfig
from filegate.models import GateConfiguration

router = APIRouter(prefix="/api/filegate", tags=["config"])
logger = LoggingConfig.get_logger(__name__)

# Configuration documents are small; this bounds the body independent of max_payload_bytes
MAX_CONFIG_BYTES = 1024 * 1024


def configuration_view(configuration: GateConfiguration, include_secret: bool) -> Dict[str, Any]:
    """Configuration as returned to clients"""
    data = configuration.model_dump(mode="json")
    data["has_api_key"] = configuration.has_api_key
    if not include_secret:
        data["api_key"] = None
    return data


@router.get("/config")
async def get_config(request: Request, services: GateServices = Depends(get_services)):
    """Current gate configuration"""
    include_secret = False
    if services.settings.config_read_requires_admin:
        await require_admin(request, services)
        include_secret = True
    return configuration_view(services.config_store.get(), include_secret=include_secret)


@router.api_route("/config", methods=["PUT", "POST"])
async def save_config(request: Request, services: GateServices = Depends(get_services)):
    """Replace the gate configuration (administrator only)"""
    identity = await require_admin(request, services)

    body = await read_body_limited(request, MAX_CONFIG_BYTES)
    if not body.strip():
        raise ValidationFailure("Missing body")
    try:
        document = json.loads(body)
    except ValueError as e:
        raise ValidationFailure("Invalid JSON") from e
    if not isinstance(document, dict):
        raise ValidationFailure("Configuration must be a JSON object")

    effective_base = document.get("server_base_url")
    if not (isinstance(effective_base, str) and effective_base.strip()):
        effective_base = request_origin(request).base_url()
        document["server_base_url"] = effective_base

    result = await asyncio.to_thread(services.config_store.save, document)
    if not result.ok:
        raise result.error

    logger.info(
        "Configuration updated",
        extra={"user_id": identity.user_id, "folders": len(result.configuration.exposed_folders)}
    )
    return {
        "success": True,
        "configuration": configuration_view(result.configuration, include_secret=True),
        "effective_server_base": result.configuration.server_base_url,
        "warnings": result.warnings,
    }
