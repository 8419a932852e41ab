"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_forward
from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.router import RouteMatcher
from services.routing_service import RoutingService
from services.upstream import UpstreamClient

FORWARDED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limits = httpx.Limits(
            max_connections=config.limits.max_connections,
            max_keepalive_connections=config.limits.max_keepalive_connections,
        )
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.limits.timeout, connect=config.limits.connect_timeout),
            limits=limits,
            follow_redirects=config.forwarding.follow_redirects,
            transport=transport,
        )
        header_builder = HeaderBuilder(config.forwarding.strip_request_headers)
        app.state.upstream_client = UpstreamClient(client, logger, header_builder)
        app.state.routing_service = RoutingService(
            config=config,
            logger=logger,
            matcher=RouteMatcher(config.routes),
            header_builder=header_builder,
        )
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(
        title="Edge Forwarder",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.api_route("/{path:path}", methods=FORWARDED_METHODS, include_in_schema=False)
    async def forward(request: Request):
        return await handle_forward(request)

    return app
