"""Cooperative health polling.

``HealthPoller`` runs one ``asyncio.Task`` that requests the health endpoint,
publishes the resulting report, waits a fixed interval and repeats.  At most
one request is in flight; the next wait starts only after the previous
report was published.  ``stop()`` lets an in-flight request finish, discards
its result and guarantees that no further poll fires.

Typical usage::

    async with HealthPoller(config.health_url, on_report=show) as poller:
        await asyncio.sleep(60)
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable

import httpx

from .report import HealthReport


class PollState(str, Enum):
    """Lifecycle of the polling loop."""

    IDLE = "idle"
    POLLING = "polling"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNREACHABLE = "unreachable"


class HealthPoller:
    """Fixed-interval poller for a single health endpoint.

    Attributes:
        url: Health endpoint URL.
        interval: Seconds between the end of one cycle and the next request.
        state: Current ``PollState``.
        report: Most recently published report (``None`` before the first).
    """

    def __init__(
        self,
        url: str,
        interval: float = 5.0,
        on_report: Callable[[HealthReport], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.interval = interval
        self.on_report = on_report
        self.state = PollState.IDLE
        self.report: HealthReport | None = None
        self._transport = transport
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Single cycle
    # ------------------------------------------------------------------

    async def fetch(self) -> tuple[HealthReport, PollState]:
        """Request the endpoint once; never raises.

        No timeout is configured beyond httpx's transport default.  HTTP
        status codes are not inspected: an unhealthy API answers 503 with a
        perfectly valid report.
        """
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(self.url)
                report = HealthReport.from_payload(response.json())
        except (httpx.HTTPError, httpx.InvalidURL, ValueError):
            return HealthReport.unreachable(), PollState.UNREACHABLE

        if report.is_healthy:
            return report, PollState.HEALTHY
        return report, PollState.DEGRADED

    async def poll_once(self) -> HealthReport:
        """Run one cycle and publish its report unless the poller was stopped."""
        self.state = PollState.POLLING
        report, state = await self.fetch()
        if not self._stop_event.is_set():
            self._publish(report, state)
        return report

    def _publish(self, report: HealthReport, state: PollState) -> None:
        self.report = report
        self.state = state
        if self.on_report is not None:
            self.on_report(report)

    # ------------------------------------------------------------------
    # Loop lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Spawn the polling task. Must be called from a running event loop."""
        if self._task is not None:
            raise RuntimeError("HealthPoller already started")
        self._stop_event.clear()
        self.state = PollState.POLLING
        self._task = asyncio.create_task(self._run(), name=f"health-poller:{self.url}")

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        self._stop_event.set()
        task, self._task = self._task, None
        if task is not None:
            await task
        self.state = PollState.IDLE

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def __aenter__(self) -> "HealthPoller":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
