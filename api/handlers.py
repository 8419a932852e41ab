"""FastAPI route handlers."""

from fastapi import Request, Response

from services.routing_service import RoutingService
from services.upstream import UpstreamClient


def _raw_path(request: Request) -> str:
    """Return the request path exactly as received, without percent-decoding."""
    raw = request.scope.get("raw_path")
    if raw:
        return raw.decode("latin-1").split("?", 1)[0]
    return request.url.path


async def handle_forward(request: Request) -> Response:
    """Forward a matching request upstream, otherwise answer 404."""
    routing_service: RoutingService = request.app.state.routing_service
    prepared = routing_service.prepare(
        request.method,
        _raw_path(request),
        request.scope.get("query_string", b"").decode("latin-1"),
        list(request.headers.raw),
    )
    if prepared is None:
        return Response(status_code=404)

    upstream: UpstreamClient = request.app.state.upstream_client
    return await upstream.forward(prepared, request)
