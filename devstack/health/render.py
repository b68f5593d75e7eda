"""Terminal rendering of health reports.

The status-to-visual mapping is a pure function of the status string.
Values it does not recognise get the neutral warning treatment instead of
raising, so newer API status values still render.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from rich.console import Group
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from devstack.utils import console

from .poller import HealthPoller
from .report import HealthReport

DEPENDENCY_LABELS: dict[str, str] = {
    "database": "PostgreSQL",
    "redis": "Redis",
}


@dataclass(frozen=True)
class StatusStyle:
    """Visual treatment of one status value."""

    label: str
    icon: str
    style: str


def status_style(status: str | None) -> StatusStyle:
    """Map a status string to its label, icon and Rich style."""
    if not status:
        return StatusStyle(label="unknown", icon="⏺", style="dim")
    normalized = status.lower()
    if normalized == "healthy":
        return StatusStyle(label=status, icon="✓", style="bold green")
    if normalized == "unhealthy":
        return StatusStyle(label=status, icon="✗", style="bold red")
    return StatusStyle(label=status, icon="⚠", style="bold yellow")


def _status_text(status: str | None) -> Text:
    treatment = status_style(status)
    return Text(f"{treatment.icon} {treatment.label}", style=treatment.style)


def render_report(report: HealthReport | None, api_url: str) -> Panel:
    """Build the dashboard panel for *report*.

    ``None`` means no poll has completed yet and renders a spinner.
    """
    if report is None:
        body = Spinner("dots", text="Checking API health...")
        return Panel(body, title="System Health", border_style="blue")

    table = Table(show_header=False, box=None, expand=True, padding=(0, 1))
    table.add_column("Component", style="bold")
    table.add_column("Status", justify="right")
    table.add_row("Overall Status", _status_text(report.status))
    for name, status in report.dependencies.items():
        table.add_row(DEPENDENCY_LABELS.get(name, name.title()), _status_text(status))

    parts: list = [table]
    if report.error:
        parts.append(Text(""))
        parts.append(Text.assemble(("Error: ", "bold red"), (report.error, "red")))
        parts.append(Text(f"Make sure the API server is running at {api_url}", style="red"))

    checked = report.checked_at.astimezone().strftime("%H:%M:%S")
    parts.append(Text(f"Last checked: {checked}", style="dim", justify="right"))

    border = status_style(report.status).style.replace("bold ", "")
    return Panel(Group(*parts), title="System Health", border_style=border)


class HealthDashboard:
    """Live terminal dashboard bound to one ``HealthPoller``.

    The poller lives exactly as long as :meth:`run`: leaving it for any
    reason (Ctrl-C, cancellation, error) stops the polling task.
    """

    def __init__(self, poller: HealthPoller, api_url: str) -> None:
        self.poller = poller
        self.api_url = api_url

    async def run(self, duration: float | None = None) -> None:
        """Show the dashboard for *duration* seconds, or until cancelled."""
        with Live(render_report(None, self.api_url), console=console, refresh_per_second=4) as live:
            self.poller.on_report = lambda report: live.update(render_report(report, self.api_url))
            async with self.poller:
                if duration is None:
                    await asyncio.Event().wait()
                else:
                    await asyncio.sleep(duration)
