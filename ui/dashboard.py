"""Real-time CLI dashboard for proxy monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import submit_log, write_cli_log, write_forward_log

console = Console()


class RequestInfo:
    """Info about a single forwarded request."""

    def __init__(self, method: str, target_url: str, route: str, timestamp: datetime):
        self.method = method
        self.target_url = target_url
        self.route = route
        self.timestamp = timestamp
        self.status: int | None = None


class Dashboard:
    """Real-time dashboard showing routes and recently forwarded requests."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._recent: list[RequestInfo] = []
        self._max_recent = 10
        self._route_count = {rule.prefix: 0 for rule in config.routes}
        self._not_found = 0
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_forward(
        self,
        method: str,
        target_url: str,
        headers: dict[str, str],
        *,
        route: str,
    ) -> None:
        """Log a request about to be forwarded upstream."""
        with self._lock:
            self._route_count[route] = self._route_count.get(route, 0) + 1
            info = RequestInfo(method, target_url, route, datetime.now())
            self._recent.insert(0, info)
            self._recent = self._recent[: self._max_recent]
            self._refresh()

        if self.config.proxy.debug:
            submit_log(write_forward_log, method, target_url, headers, route=route)
        submit_log(write_cli_log, "FORWARD", f"{method} {target_url}", route=route)

    def log_response(self, route: str, status: int, target_url: str) -> None:
        """Record the upstream status against the matching recent request."""
        with self._lock:
            for info in self._recent:
                if info.route == route and info.status is None and info.target_url == target_url:
                    info.status = status
                    break
            self._refresh()

    def log_not_found(self, method: str, path: str) -> None:
        """Log a request that matched no route."""
        with self._lock:
            self._not_found += 1
            self._refresh()
        submit_log(write_cli_log, "NOT_FOUND", f"{method} {path}")

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{route} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
        submit_log(write_cli_log, "ERROR", message[:200], route=route, status=status)

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["body"].split_row(
            Layout(name="routes", ratio=1),
            Layout(name="recent", ratio=2),
        )

        layout["header"].update(self._build_header())
        layout["routes"].update(self._build_routes_panel())
        layout["recent"].update(self._build_recent_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Edge Forwarder", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Forwarded: {sum(self._route_count.values())}", style="blue")
        stats.append("  |  ")
        stats.append(f"Not found: {self._not_found}", style="magenta")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_routes_panel(self) -> Panel:
        """Build the route table panel."""
        content = Table.grid(padding=(0, 1))
        content.add_column()
        content.add_column()
        content.add_column(justify="right")

        for rule in self.config.routes:
            content.add_row(
                f"[bold]{rule.prefix}[/bold]",
                rule.upstream_origin,
                str(self._route_count.get(rule.prefix, 0)),
            )

        return Panel(content, title="[blue]Routes[/blue]", border_style="blue")

    def _build_recent_panel(self) -> Panel:
        """Build recent requests panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Method", width=7)
            table.add_column("Status", width=6)
            table.add_column("Target", ratio=1)

            for info in self._recent:
                status = "[dim]…[/dim]" if info.status is None else str(info.status)
                if info.status is not None and info.status >= 400:
                    status = f"[red]{info.status}[/red]"
                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    info.method,
                    status,
                    info.target_url[:80] + "..." if len(info.target_url) > 80 else info.target_url,
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[magenta]Recent requests[/magenta]", border_style="magenta")

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"Listening on http://{self.config.proxy.host}:{self.config.proxy.port}",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
