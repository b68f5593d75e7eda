"""Health aggregation: polling the API health endpoint and rendering the result."""

from devstack.health.poller import HealthPoller, PollState
from devstack.health.render import HealthDashboard, StatusStyle, render_report, status_style
from devstack.health.report import CONNECT_FAILURE_MESSAGE, HealthReport

__all__ = [
    "CONNECT_FAILURE_MESSAGE",
    "HealthDashboard",
    "HealthPoller",
    "HealthReport",
    "PollState",
    "StatusStyle",
    "render_report",
    "status_style",
]
