"""Shared protocol definitions."""

from typing import Protocol


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard)."""

    def log_forward(
        self,
        method: str,
        target_url: str,
        headers: dict[str, str],
        *,
        route: str,
    ) -> None: ...
    def log_response(self, route: str, status: int, target_url: str) -> None: ...
    def log_not_found(self, method: str, path: str) -> None: ...
    def log_error(self, route: str, status: int, message: str) -> None: ...
