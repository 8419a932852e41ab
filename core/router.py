"""Request routing logic - picks the upstream origin for a path."""

from dataclasses import dataclass

from core.config import RouteRule

_SINGLE_DOT = frozenset({".", "%2e"})
_DOUBLE_DOT = frozenset({"..", ".%2e", "%2e.", "%2e%2e"})


def resolve_dot_segments(path: str) -> str:
    """Remove "." and ".." segments (plain or percent-encoded) from a raw path.

    The matched path and the path the HTTP client sends must be the same.
    Other percent-escapes are left untouched.
    """
    if not path.startswith("/"):
        return path
    segments = path.split("/")[1:]
    resolved: list[str] = []
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        lowered = segment.lower()
        if lowered in _SINGLE_DOT:
            if last:
                resolved.append("")
        elif lowered in _DOUBLE_DOT:
            if resolved:
                resolved.pop()
            if last:
                resolved.append("")
        else:
            resolved.append(segment)
    return "/" + "/".join(resolved)


@dataclass(frozen=True)
class RouteDecision:
    """Routing decision for a request."""

    prefix: str
    upstream_origin: str


class RouteMatcher:
    """Match request paths against an ordered list of route rules."""

    def __init__(self, routes: list[RouteRule] | None = None):
        self.routes = list(routes or [])

    def match(self, path: str) -> RouteDecision | None:
        """Return the first route whose prefix starts the path, if any."""
        for rule in self.routes:
            if path.startswith(rule.prefix):
                return RouteDecision(prefix=rule.prefix, upstream_origin=rule.upstream_origin)
        return None

    @staticmethod
    def build_target_url(origin: str, raw_path: str, query_string: str) -> str:
        """Join origin, path and query without normalizing either."""
        if query_string:
            return f"{origin}{raw_path}?{query_string}"
        return f"{origin}{raw_path}"
