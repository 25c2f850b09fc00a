"""
API routes for exposed folders
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from filegate.api.dependencies import (outcome_response, read_body_limited,
                                       request_credentials, request_origin)
from filegate.core.container import GateServices, get_services
from filegate.core.logging_config import LoggingConfig
from filegate.models import WriteRequest
from filegate.services.folder_service import content_type_for

router = APIRouter(prefix="/api/filegate", tags=["folders"])
logger = LoggingConfig.get_logger(__name__)


class CreateFolderRequest(BaseModel):
    """Request model for creating a folder under the sandbox root"""
    relative_path: str = Field(..., description="Single path segment [A-Za-z0-9_-]+")


@router.get("/folder")
async def read_folder(
    folder: str = Query(..., description="Folder name or relative path"),
    name: Optional[str] = Query(None, description="File name; omit to list the folder"),
    services: GateServices = Depends(get_services),
):
    """List a folder, or return one of its files when name is given"""
    if name is None:
        files = await asyncio.to_thread(services.folders.list_files, folder)
        return {"folder": folder, "files": [f.to_dict() for f in files]}

    data = await asyncio.to_thread(services.folders.read, folder, name)
    return Response(content=data, media_type=content_type_for(name))


@router.api_route("/folder", methods=["PUT", "POST"])
async def write_folder_file(
    request: Request,
    folder: str = Query(..., description="Folder name or relative path"),
    name: str = Query(..., description="Target file name"),
    services: GateServices = Depends(get_services),
):
    """Write a file into an exposed folder"""
    limit = services.config_store.get().max_payload_bytes
    payload = await read_body_limited(request, limit)
    credential, api_key = request_credentials(request, services)

    outcome = await services.orchestrator.handle_write(WriteRequest(
        file_name=name,
        payload=payload,
        folder=folder,
        credential=credential,
        api_key=api_key,
        content_type=request.headers.get("content-type"),
        origin=request_origin(request),
    ))
    return outcome_response(outcome)


@router.delete("/folder")
async def delete_folder_file(
    request: Request,
    folder: str = Query(..., description="Folder name or relative path"),
    name: str = Query(..., description="File name"),
    services: GateServices = Depends(get_services),
):
    """Delete a file from an exposed folder (folder write rules apply)"""
    entry = services.path_resolver.entry_for(folder)
    credential, api_key = request_credentials(request, services)
    await services.orchestrator.authorize(credential, api_key, request_origin(request), entry)

    target = await asyncio.to_thread(services.folders.delete, folder, name)
    return {"success": True, "name": target.name}


@router.get("/resolve-path")
async def resolve_path(
    relative: str = Query(..., description="Relative folder path to preview"),
    services: GateServices = Depends(get_services),
):
    """Absolute path a relative folder would resolve to (no filesystem changes)"""
    path = services.path_resolver.preview(relative)
    return {"relative": relative, "path": str(path), "exists": path.is_dir()}


@router.post("/create-folder")
async def create_folder(
    request: Request,
    body: CreateFolderRequest,
    services: GateServices = Depends(get_services),
):
    """Ensure a folder exists under the sandbox root (administrator or api key)"""
    credential, api_key = request_credentials(request, services)
    await services.orchestrator.authorize(credential, api_key, request_origin(request))

    path = await asyncio.to_thread(
        services.sandbox.folder_dir, body.relative_path.strip(), create=True
    )
    logger.info(f"Folder ensured: {path.name}", extra={"path": str(path)})
    return {"success": True, "relative_path": path.name, "path": str(path)}
