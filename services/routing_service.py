"""Routing orchestration for forwarded requests."""

from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.request_types import PreparedRequest
from core.router import RouteMatcher, resolve_dot_segments


class RoutingService:
    """Prepare inbound requests for forwarding to their upstream origin."""

    def __init__(
        self,
        config: Config,
        logger: RequestLogger,
        matcher: RouteMatcher | None = None,
        header_builder: HeaderBuilder | None = None,
    ) -> None:
        self._logger = logger
        self._matcher = matcher or RouteMatcher(config.routes)
        self._headers = header_builder or HeaderBuilder(
            config.forwarding.strip_request_headers
        )

    def prepare(
        self,
        method: str,
        raw_path: str,
        query_string: str,
        headers: list[tuple[bytes, bytes]],
    ) -> PreparedRequest | None:
        """Prepare a forwarded request, or return None when no route matches."""
        path = resolve_dot_segments(raw_path)
        decision = self._matcher.match(path)
        if decision is None:
            self._logger.log_not_found(method, path)
            return None

        target_url = self._matcher.build_target_url(
            decision.upstream_origin, path, query_string
        )
        upstream_headers = self._headers.build_forward_headers(headers)
        self._logger.log_forward(
            method,
            target_url,
            {k.decode("latin-1"): v.decode("latin-1") for k, v in upstream_headers},
            route=decision.prefix,
        )
        return PreparedRequest(
            route_prefix=decision.prefix,
            upstream_origin=decision.upstream_origin,
            method=method,
            target_url=target_url,
            headers=upstream_headers,
        )
