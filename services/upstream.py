"""HTTP proxying utilities for upstream requests."""

import asyncio
import contextlib
from collections.abc import AsyncIterator

import httpx
from fastapi import Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.datastructures import Headers
from starlette.requests import ClientDisconnect

from core.exceptions import ClientDisconnected
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.request_types import PreparedRequest

BACKEND_ERROR_PREFIX = "Backend Error: "


class UpstreamClient:
    """Relay prepared requests to their upstream origin with streaming bodies."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        logger: RequestLogger,
        header_builder: HeaderBuilder | None = None,
    ) -> None:
        self._client = client
        self._logger = logger
        self._headers = header_builder or HeaderBuilder()

    async def forward(self, prepared: PreparedRequest, request: Request) -> Response:
        """Send one upstream attempt and relay its response to the caller."""
        body_sent = asyncio.Event()
        content = None
        if _has_body(request):
            content = self._stream_body(request, body_sent)
        else:
            body_sent.set()

        upstream_request = self._client.build_request(
            prepared.method,
            prepared.target_url,
            headers=prepared.headers,
            content=content,
        )
        route = prepared.route_prefix

        try:
            response = await self._send_until_disconnect(upstream_request, request, body_sent, route)
        except ClientDisconnected as e:
            self._logger.log_error(route, e.status_code, str(e))
            return Response(status_code=e.status_code)
        except (httpx.RequestError, httpx.StreamError) as e:
            message = str(e) or type(e).__name__
            self._logger.log_error(route, 502, message)
            return Response(
                content=BACKEND_ERROR_PREFIX + message,
                status_code=502,
                media_type="text/plain",
            )

        if response.status_code >= 400:
            self._logger.log_error(route, response.status_code, prepared.target_url)
        self._logger.log_response(route, response.status_code, prepared.target_url)

        return StreamingResponse(
            self._iter_upstream(response, route),
            status_code=response.status_code,
            headers=Headers(raw=self._headers.build_response_headers(response.headers.raw)),
            background=BackgroundTask(self._cleanup_streaming, response),
        )

    async def _send_until_disconnect(
        self,
        upstream_request: httpx.Request,
        request: Request,
        body_sent: asyncio.Event,
        route: str,
    ) -> httpx.Response:
        """Await the upstream response, cancelling it if the caller goes away."""
        send_task = asyncio.ensure_future(self._client.send(upstream_request, stream=True))
        watch_task = asyncio.ensure_future(_wait_for_disconnect(request, body_sent))
        try:
            await asyncio.wait({send_task, watch_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await _settle(send_task, watch_task)
            raise

        if send_task.done():
            watch_task.cancel()
            return send_task.result()

        await _settle(send_task)
        raise ClientDisconnected(route=route)

    async def _stream_body(self, request: Request, body_sent: asyncio.Event) -> AsyncIterator[bytes]:
        """Yield the inbound body chunk by chunk, flagging when it is exhausted."""
        try:
            async for chunk in request.stream():
                if chunk:
                    yield chunk
        except ClientDisconnect as e:
            raise ClientDisconnected() from e
        body_sent.set()

    async def _iter_upstream(self, response: httpx.Response, route: str) -> AsyncIterator[bytes]:
        """Yield raw upstream bytes; content-encoding is left untouched."""
        try:
            async for chunk in response.aiter_raw():
                yield chunk
        except httpx.HTTPError as e:
            # Headers are already sent, so the connection has to be aborted
            self._logger.log_error(route, 502, f"Upstream stream interrupted: {e}")
            await response.aclose()
            raise

    async def _cleanup_streaming(self, response: httpx.Response) -> None:
        """Clean up streaming resources."""
        await response.aclose()


def _has_body(request: Request) -> bool:
    if "transfer-encoding" in request.headers:
        return True
    content_length = request.headers.get("content-length", "")
    return content_length.isdigit() and int(content_length) > 0


async def _settle(*tasks: asyncio.Future) -> None:
    """Cancel tasks and wait for them, closing any response that got through."""
    for task in tasks:
        task.cancel()
    for task in tasks:
        with contextlib.suppress(asyncio.CancelledError, httpx.HTTPError, ClientDisconnected):
            result = await task
            if isinstance(result, httpx.Response):
                await result.aclose()


async def _wait_for_disconnect(request: Request, body_sent: asyncio.Event) -> None:
    """Return once the caller disconnects; only listens after the body is consumed."""
    await body_sent.wait()
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return
