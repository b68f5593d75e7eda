"""Integration tests for the full ``dev`` flow.

Fresh repository -> environment file -> scaffolding (stand-in generators plus
the real override templates) -> tiered startup against a recording runtime ->
health dashboard against a stub endpoint.

No external services (Docker, bun, a running API) are required.
"""

from __future__ import annotations

import asyncio
import io
from pathlib import Path

import pytest
from rich.console import Console

from conftest import (
    HEALTHY_PAYLOAD,
    FakeRuntime,
    failing_transport,
    generator_calls,
    json_transport,
    make_generator_descriptor,
)
from devstack.config import Config
from devstack.envfile import load_environment
from devstack.errors import ReadinessError
from devstack.health import HealthPoller, HealthReport, PollState, render_report
from devstack.orchestrator import ServiceOrchestrator, prepare_environment
from devstack.runtime import ServiceTier
from devstack.scaffolder import API, FRONTEND, Override


def _components(generator_log: Path):
    """Stand-in generators that keep the real override lists."""
    return [
        make_generator_descriptor("frontend", generator_log, overrides=FRONTEND.overrides),
        make_generator_descriptor("api", generator_log, overrides=API.overrides),
    ]


async def _first_report(poller: HealthPoller, timeout: float) -> HealthReport:
    received: asyncio.Queue[HealthReport] = asyncio.Queue()
    poller.on_report = received.put_nowait
    async with poller:
        return await asyncio.wait_for(received.get(), timeout=timeout)


@pytest.mark.integration
class TestDevFromScratch:
    async def test_fresh_repository_reaches_all_green(self, config: Config, generator_log: Path):
        root = config.project_root
        assert not (root / ".env").exists()

        loaded = prepare_environment(config.model_copy(update={"poll_interval": 5.0}))
        runtime = FakeRuntime(loaded)
        orchestrator = ServiceOrchestrator(
            loaded, runtime=runtime, components=_components(generator_log)
        )
        await orchestrator.up()

        # Environment file with documented defaults
        values = load_environment(root / ".env")
        assert values["POSTGRES_DB"] == "wander_dev"
        assert values["API_PORT"] == "8080"

        # Both components generated once, overrides applied
        assert generator_calls(generator_log) == ["frontend", "api"]
        frontend = root / "src" / "frontend"
        api = root / "src" / "api"
        assert "host: '0.0.0.0'" in (frontend / "vite.config.ts").read_text(encoding="utf-8")
        assert (frontend / "src" / "App.tsx").exists()
        assert (frontend / "Dockerfile.dev").exists()
        assert (frontend / ".dockerignore").exists()
        assert "app.get('/health'" in (api / "src" / "index.ts").read_text(encoding="utf-8")

        # INFRA ready before APP
        assert runtime.calls == [
            ("start", ServiceTier.INFRA, True),
            ("start", ServiceTier.APP, False),
        ]

        # First poll within one interval renders all green
        poller = HealthPoller(
            loaded.health_url,
            interval=loaded.poll_interval,
            transport=json_transport(HEALTHY_PAYLOAD),
        )
        report = await _first_report(poller, timeout=loaded.poll_interval)
        assert report.is_healthy
        assert report.dependencies == {"database": "healthy", "redis": "healthy"}

        console = Console(file=io.StringIO(), width=100, color_system=None)
        console.print(render_report(report, loaded.api_url))
        assert console.file.getvalue().count("✓ healthy") == 3

    async def test_rerun_is_idempotent(self, config: Config, generator_log: Path):
        env_path = config.env_path
        loaded = prepare_environment(config)
        await ServiceOrchestrator(
            loaded, runtime=FakeRuntime(loaded), components=_components(generator_log)
        ).up()

        env_path.write_text(
            env_path.read_text(encoding="utf-8").replace("API_PORT=8080", "API_PORT=9191"),
            encoding="utf-8",
        )
        app_file = config.project_root / "src" / "frontend" / "src" / "App.tsx"
        app_file.write_text("// my edits", encoding="utf-8")

        reloaded = prepare_environment(config)
        runtime = FakeRuntime(reloaded)
        await ServiceOrchestrator(
            reloaded, runtime=runtime, components=_components(generator_log)
        ).up()

        assert reloaded.ports.api == 9191
        assert "API_PORT=9191" in env_path.read_text(encoding="utf-8")
        assert app_file.read_text(encoding="utf-8") == "// my edits"
        assert generator_calls(generator_log) == ["frontend", "api"]
        assert runtime.started_tiers() == [ServiceTier.INFRA, ServiceTier.APP]


@pytest.mark.integration
class TestDegradedPaths:
    async def test_infra_failure_leaves_app_untouched(self, config: Config, generator_log: Path):
        loaded = prepare_environment(config)
        runtime = FakeRuntime(loaded, fail_infra=True)
        orchestrator = ServiceOrchestrator(
            loaded, runtime=runtime, components=_components(generator_log)
        )

        with pytest.raises(ReadinessError):
            await orchestrator.up()

        assert runtime.started_tiers() == [ServiceTier.INFRA]

    async def test_dashboard_shows_error_when_api_down(self, config: Config):
        poller = HealthPoller(config.health_url, interval=0.01, transport=failing_transport())
        report = await _first_report(poller, timeout=1.0)
        assert report.status == "error"
        assert poller.state is PollState.IDLE

    async def test_content_override_in_real_flow(self, config: Config, generator_log: Path):
        descriptor = make_generator_descriptor(
            "api", generator_log, overrides=(Override(".nvmrc", content="20\n"),)
        )
        loaded = prepare_environment(config)
        await ServiceOrchestrator(
            loaded, runtime=FakeRuntime(loaded), components=[descriptor]
        ).up()
        assert (config.project_root / "src" / "api" / ".nvmrc").read_text(encoding="utf-8") == "20\n"
