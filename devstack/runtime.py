"""Thin async wrapper around ``docker compose``.

The container runtime owns every lifecycle detail: starting, stopping,
health checks and log streaming.  This module only builds the command lines,
passes the loaded ``.env`` values to the child process and turns non-zero
exit codes into ``RuntimeCommandError``.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from devstack.config import Config
from devstack.errors import RuntimeCommandError
from devstack.utils import run_command

# Margin on top of ``--wait-timeout`` before the compose process itself is killed.
_WAIT_GRACE_SECONDS = 30

_COMMAND_TIMEOUT = 300


class ServiceTier(str, Enum):
    """Startup-ordering group of services."""

    INFRA = "infra"
    APP = "app"


class ComposeRuntime:
    """Runs compose commands in the project root."""

    def __init__(self, config: Config) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _command(self, *args: str, profile: bool = False) -> list[str]:
        cmd = list(self.config.compose_command)
        if profile:
            cmd += ["--profile", self.config.tiers.app_profile]
        cmd += list(args)
        return cmd

    async def _run(
        self,
        action: str,
        cmd: list[str],
        timeout: float | None = _COMMAND_TIMEOUT,
        capture: bool = True,
    ) -> str:
        returncode, stdout, stderr = await run_command(
            cmd,
            cwd=self.config.project_root,
            timeout=timeout,
            capture=capture,
            env=self.config.environment or None,
        )
        if returncode != 0:
            raise RuntimeCommandError(action, stderr or stdout or f"exit code {returncode}")
        return stdout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def services_for(self, tier: ServiceTier) -> list[str]:
        """Return the configured services of *tier*."""
        if tier is ServiceTier.INFRA:
            return list(self.config.tiers.infra)
        return list(self.config.tiers.app)

    async def start(self, tier: ServiceTier, *, wait: bool = False) -> None:
        """Start every service of *tier* in one detached ``up`` call.

        With *wait* the call blocks until compose reports the services
        healthy (their own health checks) or the readiness timeout expires.
        """
        services = self.services_for(tier)
        args = ["up", "-d"]
        timeout: float = _COMMAND_TIMEOUT
        if wait:
            args += ["--wait", "--wait-timeout", str(self.config.readiness_timeout)]
            timeout = self.config.readiness_timeout + _WAIT_GRACE_SECONDS
        cmd = self._command(*args, *services, profile=tier is ServiceTier.APP)
        await self._run(f"start {tier.value}", cmd, timeout=timeout)

    async def stop(self, *, volumes: bool = False) -> None:
        """Stop and remove every service of both tiers, optionally with volumes."""
        args = ["down"]
        if volumes:
            args.append("-v")
        await self._run("down", self._command(*args, profile=True))

    async def stream_logs(self, service: str | None = None) -> None:
        """Follow logs of one service, or of every service when *service* is ``None``.

        Output goes straight to the terminal; the call returns only when the
        compose process exits (normally on Ctrl-C).
        """
        args = ["logs", "-f"]
        if service:
            args.append(service)
        await self._run("logs", self._command(*args, profile=True), timeout=None, capture=False)

    async def service_states(self) -> dict[str, str]:
        """Query the runtime for each configured service's state.

        Returns a ``{service: state}`` mapping covering every configured
        service.  The health check result is preferred over the container
        state; services the runtime does not know about are ``"stopped"``.
        """
        stdout = await self._run(
            "ps", self._command("ps", "--all", "--format", "json", profile=True)
        )
        try:
            entries = _parse_ps_output(stdout)
        except json.JSONDecodeError as exc:
            raise RuntimeCommandError("ps", f"unexpected output: {exc}") from exc

        states = {service: "stopped" for service in self.config.tiers.all_services()}
        for entry in entries:
            name = entry.get("Service")
            if not name:
                continue
            states[name] = entry.get("Health") or entry.get("State") or "unknown"
        return states


def _parse_ps_output(raw: str) -> list[dict[str, Any]]:
    """Parse ``docker compose ps --format json`` output.

    Older compose releases print a single JSON array, newer ones one JSON
    object per line.
    """
    raw = raw.strip()
    if not raw:
        return []
    if raw.startswith("["):
        data = json.loads(raw)
        return [item for item in data if isinstance(item, dict)]
    entries: list[dict[str, Any]] = []
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        item = json.loads(line)
        if isinstance(item, dict):
            entries.append(item)
    return entries
