"""CLI entry point for edge-forwarder."""

import sys
from datetime import datetime

from rich.console import Console
from rich.table import Table

from app import create_app
from core.config import CONFIG_FILE, Config, load_config
from core.exceptions import ConfigurationError
from ui.dashboard import Dashboard
from ui.log_utils import clear_logs, shutdown_log_executor, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        console.print(f"[dim]Edit {CONFIG_FILE} and fix the routes section[/dim]")
        sys.exit(1)

    if len(sys.argv) > 1 and sys.argv[1] == "--routes":
        _print_routes(config)
        return

    if not config.routes:
        console.print("[yellow]Warning:[/yellow] No routes configured, every request will get 404")

    # Clear previous logs and start dashboard
    clear_logs()
    dashboard = Dashboard(config)

    import uvicorn

    app = create_app(config, dashboard)

    # Run with dashboard
    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="warning",
        timeout_keep_alive=config.limits.keep_alive_timeout,
    )
    server = uvicorn.Server(uvicorn_config)

    dashboard.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", port=config.proxy.port)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        shutdown_log_executor()
        dashboard.stop()


def _print_routes(config: Config):
    """Print the configured route table."""
    table = Table(title="Routes (first match wins)", header_style="bold")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Prefix")
    table.add_column("Upstream origin")
    for index, rule in enumerate(config.routes, start=1):
        table.add_row(str(index), rule.prefix, rule.upstream_origin)
    console.print(table)
    stripped = ", ".join(config.forwarding.strip_request_headers) or "none"
    console.print(f"[bold]Stripped request headers:[/bold] {stripped}")
    console.print(f"[bold]Follow redirects:[/bold] {config.forwarding.follow_redirects}")


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Edge Forwarder[/bold cyan]

Forwards requests whose path starts with a configured prefix to that
route's upstream origin. Everything else gets 404.

[bold]Usage:[/bold]
    edge-forwarder              Start with live dashboard
    edge-forwarder --routes     Show configured routes
    edge-forwarder --config     Show config location
    edge-forwarder --help       Show this help
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
