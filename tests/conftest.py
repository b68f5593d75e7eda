"""Shared pytest fixtures for the devstack test suite.

Provides reusable fixtures for:
- Temporary project roots and matching configurations
- Stand-in component generators (real ``python -c`` subprocesses)
- A recording fake of the compose runtime
- Health endpoint payloads and stub transports
"""

from __future__ import annotations

import json
import sys
import textwrap
from pathlib import Path
from typing import Any

import httpx
import pytest

from devstack.config import Config
from devstack.errors import RuntimeCommandError
from devstack.runtime import ServiceTier
from devstack.scaffolder import ComponentDescriptor, Override


# ---------------------------------------------------------------------------
# Paths & configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Empty repository root (auto-cleanup)."""
    root = tmp_path / "repo"
    root.mkdir()
    yield root


@pytest.fixture
def config(project_root: Path) -> Config:
    """Configuration pointing at the temporary project root."""
    return Config(project_root=project_root, poll_interval=0.05, generator_timeout=30)


# ---------------------------------------------------------------------------
# Stand-in generators
# ---------------------------------------------------------------------------

def make_generator_descriptor(
    name: str,
    log_file: Path,
    *,
    exit_code: int = 0,
    create_marker: bool = True,
    overrides: tuple[Override, ...] | None = None,
) -> ComponentDescriptor:
    """Build a descriptor whose generator is a small Python script.

    The script appends its component name to *log_file* (so tests can count
    invocations), writes a ``package.json`` marker plus a generator-owned
    ``vite.config.ts`` into the current directory, then exits with
    *exit_code*.
    """
    script = textwrap.dedent(
        f"""
        import pathlib, sys
        with open({str(log_file)!r}, "a", encoding="utf-8") as fh:
            fh.write({name!r} + "\\n")
        if {create_marker!r}:
            pathlib.Path("package.json").write_text('{{"name": "{name}"}}')
        pathlib.Path("vite.config.ts").write_text("// generated by the generator")
        sys.exit({exit_code})
        """
    )
    if overrides is None:
        overrides = (
            Override("vite.config.ts", template="frontend/vite.config.ts.j2"),
            Override("NOTES.md", content=f"# {name}\n"),
        )
    return ComponentDescriptor(
        name=name,
        marker=f"src/{name}/package.json",
        workdir=f"src/{name}",
        target_dir=f"src/{name}",
        generator_commands=((sys.executable, "-c", script),),
        overrides=overrides,
    )


def generator_calls(log_file: Path) -> list[str]:
    """Return the component names recorded by stand-in generators."""
    if not log_file.exists():
        return []
    return log_file.read_text(encoding="utf-8").split()


@pytest.fixture
def generator_log(tmp_path: Path) -> Path:
    return tmp_path / "generator-calls.log"


@pytest.fixture
def fake_components(generator_log: Path) -> list[ComponentDescriptor]:
    """Frontend and API descriptors backed by stand-in generators."""
    return [
        make_generator_descriptor("frontend", generator_log),
        make_generator_descriptor("api", generator_log),
    ]


# ---------------------------------------------------------------------------
# Fake compose runtime
# ---------------------------------------------------------------------------

class FakeRuntime:
    """Records every runtime call in order; can be told to fail INFRA readiness."""

    def __init__(self, config: Config, fail_infra: bool = False) -> None:
        self.config = config
        self.fail_infra = fail_infra
        self.calls: list[tuple[Any, ...]] = []
        self.states: dict[str, str] = {}

    def services_for(self, tier: ServiceTier) -> list[str]:
        if tier is ServiceTier.INFRA:
            return list(self.config.tiers.infra)
        return list(self.config.tiers.app)

    async def start(self, tier: ServiceTier, *, wait: bool = False) -> None:
        self.calls.append(("start", tier, wait))
        if tier is ServiceTier.INFRA and self.fail_infra:
            raise RuntimeCommandError("start infra", "container db is unhealthy")

    async def stop(self, *, volumes: bool = False) -> None:
        self.calls.append(("stop", volumes))

    async def stream_logs(self, service: str | None = None) -> None:
        self.calls.append(("logs", service))

    async def service_states(self) -> dict[str, str]:
        self.calls.append(("ps",))
        return dict(self.states)

    def started_tiers(self) -> list[ServiceTier]:
        return [call[1] for call in self.calls if call[0] == "start"]


@pytest.fixture
def fake_runtime(config: Config) -> FakeRuntime:
    return FakeRuntime(config)


# ---------------------------------------------------------------------------
# Health endpoint payloads
# ---------------------------------------------------------------------------

HEALTHY_PAYLOAD: dict[str, Any] = {
    "status": "healthy",
    "timestamp": "2025-01-01T00:00:00Z",
    "services": {"database": "healthy", "redis": "healthy"},
}


@pytest.fixture
def healthy_payload() -> dict[str, Any]:
    return json.loads(json.dumps(HEALTHY_PAYLOAD))


def json_transport(payload: Any, status_code: int = 200) -> httpx.MockTransport:
    """Stub endpoint that always answers with *payload*."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


def failing_transport() -> httpx.MockTransport:
    """Stub endpoint whose every request fails at the transport layer."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    return httpx.MockTransport(handler)
