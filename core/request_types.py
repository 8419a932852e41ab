"""Shared request data types."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PreparedRequest:
    """Prepared data for an upstream request."""

    route_prefix: str
    upstream_origin: str
    method: str
    target_url: str
    headers: list[tuple[bytes, bytes]]
