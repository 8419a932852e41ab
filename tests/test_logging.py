import json

import pytest

from core.config import Config, RouteRule
from ui import dashboard as dashboard_module
from ui import log_utils
from ui.dashboard import Dashboard


def test_forward_log_redacts_credentials(tmp_path):
    path = log_utils.write_forward_log(
        "GET",
        "https://backend.example/api/status",
        {"authorization": "Bearer abcdefghijklmnop", "x-api-key": "short", "accept": "*/*"},
        route="/api/",
        log_root=tmp_path,
    )

    entry = json.loads(path.read_text())
    assert path.parent == tmp_path / "forward" / "api"
    assert entry["headers"]["authorization"] == "Bearer...mnop"
    assert entry["headers"]["x-api-key"] == "***"
    assert entry["headers"]["accept"] == "*/*"
    assert entry["target_url"] == "https://backend.example/api/status"


def test_cli_log_appends_lines(tmp_path, monkeypatch):
    log_file = tmp_path / "proxy.log"
    monkeypatch.setattr(log_utils, "CLI_LOG_FILE", log_file)

    log_utils.write_cli_log("FORWARD", "GET /api/status", route="/api/")
    log_utils.write_cli_log("ERROR", "boom")

    lines = log_file.read_text().splitlines()
    assert lines[0].endswith("FORWARD: GET /api/status route=/api/")
    assert lines[1].endswith("ERROR: boom")


def test_clear_logs_removes_directory(tmp_path):
    root = tmp_path / "logs"
    (root / "forward").mkdir(parents=True)

    log_utils.clear_logs(root)

    assert not root.exists()


@pytest.fixture
def submitted(monkeypatch):
    calls = []
    monkeypatch.setattr(
        dashboard_module, "submit_log", lambda func, *args, **kwargs: calls.append((func, args, kwargs))
    )
    return calls


@pytest.fixture
def dashboard():
    config = Config(routes=[RouteRule(prefix="/api/", upstream_origin="https://backend.example")])
    return Dashboard(config)


def test_dashboard_counts_and_statuses(dashboard, submitted):
    dashboard.log_forward("GET", "https://backend.example/api/a", {}, route="/api/")
    dashboard.log_forward("POST", "https://backend.example/api/b", {}, route="/api/")
    dashboard.log_response("/api/", 201, "https://backend.example/api/b")
    dashboard.log_not_found("GET", "/health")

    assert dashboard._route_count == {"/api/": 2}
    assert dashboard._not_found == 1
    assert [info.status for info in dashboard._recent] == [201, None]
    assert [call[0] for call in submitted] == [
        log_utils.write_forward_log,
        log_utils.write_cli_log,
        log_utils.write_forward_log,
        log_utils.write_cli_log,
        log_utils.write_cli_log,
    ]


def test_dashboard_keeps_latest_errors(dashboard, submitted):
    for status in (500, 502, 503, 504):
        dashboard.log_error("/api/", status, "x" * 80)

    assert len(dashboard._errors) == 3
    assert dashboard._errors[0].startswith("/api/ 504: ")
    assert dashboard._errors[0].endswith("...")


def test_dashboard_layout_renders_without_live(dashboard, submitted):
    dashboard.log_forward("GET", "https://backend.example/api/a", {}, route="/api/")
    dashboard.log_error("/api/", 502, "Connection refused")

    layout = dashboard._build_layout()

    assert layout["routes"] is not None
    assert layout["recent"] is not None
