"""Configuration models and loading."""

import json
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, ValidationError, field_validator

from core.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "edge-forwarder"
CONFIG_FILE = CONFIG_DIR / "config.json"


class ProxySettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = True


class RouteRule(BaseModel):
    """A path prefix and the origin its requests are forwarded to."""

    prefix: str
    upstream_origin: str

    @field_validator("prefix")
    @classmethod
    def _prefix_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("route prefix must not be empty")
        return value

    @field_validator("upstream_origin")
    @classmethod
    def _origin_only(cls, value: str) -> str:
        origin = value[:-1] if value.endswith("/") else value
        parts = urlsplit(origin)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValueError(f"upstream origin must be an absolute http(s) URL: {value!r}")
        parts.port  # raises ValueError on a malformed port
        if parts.path or parts.query or parts.fragment or "?" in origin or "#" in origin:
            raise ValueError(f"upstream origin must not carry a path, query or fragment: {value!r}")
        if parts.username or parts.password:
            raise ValueError(f"upstream origin must not carry credentials: {value!r}")
        return origin


class ForwardingSettings(BaseModel):
    strip_request_headers: list[str] = Field(default_factory=lambda: ["host", "referer"])
    follow_redirects: bool = True


class LimitsSettings(BaseModel):
    timeout: float = 300.0
    connect_timeout: float = 10.0
    max_connections: int = 100
    max_keepalive_connections: int = 20
    keep_alive_timeout: int = 5


class Config(BaseModel):
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    routes: list[RouteRule] = Field(
        default_factory=lambda: [
            RouteRule(prefix="/api/", upstream_origin="http://localhost:8000")
        ]
    )
    forwarding: ForwardingSettings = Field(default_factory=ForwardingSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)


def load_config(config_file: Path = CONFIG_FILE) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default

    try:
        data = json.loads(config_file.read_text())
    except json.JSONDecodeError:
        # Backup corrupted config and recreate default
        backup = config_file.with_suffix(".json.bak")
        config_file.rename(backup)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config {config_file}: {e}") from e
