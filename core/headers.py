"""Header construction for upstream requests and client responses."""

from collections.abc import Iterable

# RFC 9110 hop-by-hop headers; the server recomputes framing for the caller
HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)

RawHeaders = list[tuple[bytes, bytes]]


class HeaderBuilder:
    """Build upstream request headers and client response headers."""

    def __init__(self, strip_request_headers: Iterable[str] = ("host", "referer")) -> None:
        self._strip = frozenset(name.lower() for name in strip_request_headers)

    def build_forward_headers(self, headers: Iterable[tuple[bytes, bytes]]) -> RawHeaders:
        """Copy inbound headers in order, dropping the stripped names."""
        return [
            (key, value)
            for key, value in headers
            if key.decode("latin-1").lower() not in self._strip
        ]

    def build_response_headers(self, headers: Iterable[tuple[bytes, bytes]]) -> RawHeaders:
        """Copy upstream response headers minus hop-by-hop ones.

        Names listed in the ``Connection`` header are hop-by-hop as well.
        """
        headers = list(headers)
        dropped = set(HOP_BY_HOP)
        for key, value in headers:
            if key.decode("latin-1").lower() == "connection":
                dropped.update(
                    token.strip().lower()
                    for token in value.decode("latin-1").split(",")
                    if token.strip()
                )

        upstream: RawHeaders = []
        for key, value in headers:
            key_lower = key.decode("latin-1").lower()
            if key_lower not in dropped:
                upstream.append((key_lower.encode("latin-1"), value))
        return upstream
