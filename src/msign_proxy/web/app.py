"""
HTTP front end of the proxy.

Validates and decodes the caller's payload, then hands it to the shared
SigningClient.  Handlers are plain ``def`` functions, so FastAPI runs each
request on its worker thread pool and concurrent requests share the one
client (and its one gateway channel).
"""

from __future__ import annotations

__all__ = ["create_app"]

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from ..client import SigningClient
from ..constants import __version__
from ..errors import (
    ClientClosedError,
    CommunicationError,
    MSignError,
    ServiceUnavailableError,
)
from ..models import SigningRequest, SignResponse
from .schemas import ErrorBody, SignInitiateResponse, SignRequestDto, SignResponseBody

_logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/msign", tags=["msign"])


def get_client(request: Request) -> SigningClient:
    client: Optional[SigningClient] = request.app.state.client
    if client is None:
        raise HTTPException(status_code=503, detail="Signing client is not initialized")
    return client


def _decode_file(dto: SignRequestDto) -> bytes:
    if not dto.file_base64:
        raise HTTPException(status_code=400, detail="File content is missing.")
    try:
        return base64.b64decode(dto.file_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise HTTPException(status_code=400, detail="fileBase64 is not valid base64.") from e


def _response_body(response: SignResponse) -> SignResponseBody:
    return SignResponseBody.model_validate(response.to_dict())


@router.post("/initiate", response_model=SignInitiateResponse)
def initiate(
    dto: SignRequestDto, client: SigningClient = Depends(get_client)
) -> SignInitiateResponse:
    request = SigningRequest(
        content=_decode_file(dto),
        file_name=dto.file_name,
        description=dto.description,
        return_url=dto.return_url,
    )
    result = client.start_signing_process(request)
    return SignInitiateResponse(id_sign=result.identifier, redirect_url=result.redirect_url)


@router.get("/status/{request_id}", response_model=SignResponseBody)
def check_status(request_id: str, client: SigningClient = Depends(get_client)) -> SignResponseBody:
    return _response_body(client.get_sign_response(request_id))


@router.get("/GetSignResult/{request_id}", response_model=SignResponseBody)
def get_sign_result(
    request_id: str, client: SigningClient = Depends(get_client)
) -> SignResponseBody:
    return _response_body(client.get_sign_response(request_id))


def _error(status_code: int, exc: MSignError) -> JSONResponse:
    kind = exc.kind.value if isinstance(exc, CommunicationError) else None
    body = ErrorBody(error=str(exc), kind=kind)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def _service_unavailable(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, ServiceUnavailableError):
        _logger.error("Gateway unavailable after %d attempts: %s", exc.attempts, exc)
    return _error(503, exc)  # type: ignore[arg-type]


async def _communication_error(request: Request, exc: Exception) -> JSONResponse:
    _logger.warning("Gateway call failed: %s", exc)
    return _error(502, exc)  # type: ignore[arg-type]


async def _client_error(request: Request, exc: Exception) -> JSONResponse:
    return _error(400, exc)  # type: ignore[arg-type]


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    if app.state.client is None:
        app.state.client = SigningClient.from_settings()
        app.state.owns_client = True
    try:
        yield
    finally:
        if app.state.owns_client and app.state.client is not None:
            app.state.client.close()


def create_app(client: Optional[SigningClient] = None) -> FastAPI:
    """Build the application.

    Without a client, one is created from settings at startup (failing
    startup on configuration or certificate errors) and closed at shutdown.
    """
    app = FastAPI(
        title="MSign Proxy",
        description="Relays signing requests to the MSign gateway",
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.client = client
    app.state.owns_client = False

    app.add_exception_handler(ServiceUnavailableError, _service_unavailable)
    app.add_exception_handler(ClientClosedError, _service_unavailable)
    app.add_exception_handler(CommunicationError, _communication_error)
    app.add_exception_handler(MSignError, _client_error)

    @app.get("/", response_class=PlainTextResponse)
    def root() -> str:
        return "MSign proxy is running! Visit /docs for API documentation."

    @app.get("/health")
    def health(client: SigningClient = Depends(get_client)) -> dict[str, str]:
        return {"status": "Healthy", "channel": client.channel_state.value}

    app.include_router(router)
    return app
