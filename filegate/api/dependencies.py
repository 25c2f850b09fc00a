"""
Request helpers shared by the FileGate routes
"""
from typing import Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse

from filegate.core.container import GateServices
from filegate.core.errors import (AuthenticationFailure, AuthorizationFailure,
                                  PayloadTooLarge)
from filegate.core.logging_config import LoggingConfig
from filegate.models import Identity, RequestOrigin, WriteOutcome

logger = LoggingConfig.get_logger(__name__)


def request_origin(request: Request) -> RequestOrigin:
    """Scheme, host and path prefix the request reached us on"""
    prefix = request.headers.get("x-forwarded-prefix") or request.scope.get("root_path") or ""
    return RequestOrigin(
        scheme=request.url.scheme,
        host=request.headers.get("host"),
        forwarded_proto=request.headers.get("x-forwarded-proto"),
        path_prefix=prefix,
    )


def request_credentials(request: Request, services: GateServices) -> Tuple[Optional[str], Optional[str]]:
    """(credential, api_key) carried by the request"""
    extractor = services.token_extractor
    credential = extractor.extract_credential(request.headers, request.query_params)
    api_key = extractor.extract_api_key(request.headers, request.query_params)
    return credential, api_key


async def require_admin(request: Request, services: GateServices) -> Identity:
    """Identity of an administrator caller.

    Raises:
        AuthenticationFailure: no credential, or it was not accepted
        AuthorizationFailure: the caller is not an administrator
    """
    credential, _ = request_credentials(request, services)
    if not credential:
        raise AuthenticationFailure("Unauthorized: missing authorization")

    identity = await services.orchestrator.identify(credential, request_origin(request))
    if identity is None:
        raise AuthenticationFailure("Unauthorized: credential not accepted")
    if not identity.is_admin:
        logger.warning(
            "Administrator required",
            extra={"user_id": identity.user_id, "path": request.url.path}
        )
        raise AuthorizationFailure("Unauthorized: administrator required")
    return identity


async def read_body_limited(request: Request, limit: int) -> bytes:
    """Read the request body, stopping as soon as it exceeds limit bytes.

    Raises:
        PayloadTooLarge: declared or actual size above limit
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        logger.info(f"Rejected declared payload of {declared} bytes (limit {limit})")
        raise PayloadTooLarge("Payload too large")

    chunks = []
    total = 0
    async for chunk in request.stream():
        total += len(chunk)
        if total > limit:
            logger.info(f"Rejected streamed payload above {limit} bytes")
            raise PayloadTooLarge("Payload too large")
        chunks.append(chunk)
    return b"".join(chunks)


def outcome_response(outcome: WriteOutcome) -> JSONResponse:
    return JSONResponse(status_code=outcome.status_code, content=outcome.to_dict())
