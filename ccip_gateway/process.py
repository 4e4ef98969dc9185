"""FastAPI application exposing the CCIP-Read gateway."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import GatewayConfig
from .errors import DecodeError, GatewayError
from .registry import AgentOwnerLookup, Web3IdentityRegistry
from .service import SubnameGateway, __version__
from .signers import Signer

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    level = os.environ.get("GATEWAY_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO))
    logger.info("Gateway logging configured", extra={"level": level})


def create_app(
    config: Optional[GatewayConfig] = None,
    *,
    gateway: Optional[SubnameGateway] = None,
    signer: Optional[Signer] = None,
    registry: Optional[AgentOwnerLookup] = None,
) -> FastAPI:
    """Instantiate the FastAPI application.

    Configuration is resolved here rather than on the first request so that a
    missing or inconsistent environment stops the process at boot.
    """

    _configure_logging()
    if gateway is None:
        config = config or GatewayConfig.from_env()
        if registry is None and config.registry_check_enabled:
            registry = Web3IdentityRegistry(
                config.rpc_url,  # type: ignore[arg-type]
                config.identity_registry,
                timeout=config.registry_timeout_seconds,
            )
        gateway = SubnameGateway(config, signer=signer, registry=registry)
    logger.info(
        "Gateway ready",
        extra={
            "chain_id": gateway.config.chain_id,
            "contract": gateway.config.contract_address,
            "signer": gateway.config.trusted_signer,
        },
    )

    app = FastAPI(title="CCIP Subname Gateway", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    async def get_gateway() -> SubnameGateway:
        return gateway  # type: ignore[return-value]

    @app.exception_handler(GatewayError)
    async def _gateway_error(_request: Request, exc: GatewayError) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse({"error": message}, status_code=exc.status_code)

    @app.get("/health")
    async def health(gateway: SubnameGateway = Depends(get_gateway)) -> Dict[str, Any]:
        return gateway.health()

    @app.get("/")
    async def info(gateway: SubnameGateway = Depends(get_gateway)) -> Dict[str, Any]:
        return gateway.info()

    @app.get("/metrics")
    async def metrics(gateway: SubnameGateway = Depends(get_gateway)) -> Response:
        return Response(gateway.metrics(), media_type=gateway.metrics_content_type)

    @app.options("/")
    @app.options("/health")
    async def preflight() -> Response:
        return Response(status_code=204)

    @app.post("/")
    async def lookup(request: Request, gateway: SubnameGateway = Depends(get_gateway)) -> JSONResponse:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodeError("Invalid JSON body") from exc
        result = await gateway.handle_lookup(body)
        return JSONResponse(result)

    return app


__all__ = ["create_app"]
