"""
API routes for sandbox root files
"""
import asyncio

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from filegate.api.dependencies import (outcome_response, read_body_limited,
                                       request_credentials, request_origin)
from filegate.core.container import GateServices, get_services
from filegate.core.logging_config import LoggingConfig
from filegate.models import WriteRequest
from filegate.services.folder_service import content_type_for

router = APIRouter(prefix="/api/filegate", tags=["files"])
logger = LoggingConfig.get_logger(__name__)


@router.api_route("/write", methods=["PUT", "POST"])
async def write_root_file(
    request: Request,
    name: str = Query(..., description="Target file name"),
    services: GateServices = Depends(get_services),
):
    """Write a file at the sandbox root (api key or administrator)"""
    limit = services.config_store.get().max_payload_bytes
    payload = await read_body_limited(request, limit)
    credential, api_key = request_credentials(request, services)

    outcome = await services.orchestrator.handle_write(WriteRequest(
        file_name=name,
        payload=payload,
        credential=credential,
        api_key=api_key,
        content_type=request.headers.get("content-type"),
        origin=request_origin(request),
    ))
    return outcome_response(outcome)


@router.get("/list")
async def list_root_files(services: GateServices = Depends(get_services)):
    """List top-level files in the sandbox root"""
    files = await asyncio.to_thread(services.folders.list_files, None)
    return {"files": [f.to_dict() for f in files]}


@router.get("/file")
async def read_root_file(
    name: str = Query(..., description="File name"),
    services: GateServices = Depends(get_services),
):
    """Return a file from the sandbox root"""
    data = await asyncio.to_thread(services.folders.read, None, name)
    return Response(content=data, media_type=content_type_for(name))
