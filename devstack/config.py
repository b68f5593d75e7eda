"""devstack configuration.

Centralised, typed configuration for every bootstrap command.  A single
``Config`` instance is built once at startup (``Config.from_env()``), enriched
once with the values of the repository's ``.env`` file
(``Config.with_environment()``) and then passed explicitly to the
materializer, scaffolder, orchestrator and health dashboard.  Instances are
frozen: nothing mutates configuration after startup.
"""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from devstack.errors import ConfigError

_PACKAGE_DIR = Path(__file__).parent

DEFAULT_ENV_TEMPLATE = _PACKAGE_DIR / "templates" / "env.example"

# .env keys that override PortConfig fields
_PORT_KEYS = {"frontend": "FRONTEND_PORT", "api": "API_PORT"}


class PortConfig(BaseModel):
    """Host ports published by the application services."""

    model_config = ConfigDict(frozen=True)

    frontend: int = Field(default=3000, ge=1, le=65535)
    api: int = Field(default=8080, ge=1, le=65535)

    def as_dict(self) -> dict[str, int]:
        """Return a plain ``{service: port}`` mapping."""
        return {"frontend": self.frontend, "api": self.api}


class TierConfig(BaseModel):
    """Service names grouped by startup tier.

    Infrastructure services are started (and awaited) before any application
    service is requested.  Application services live behind a compose profile
    so that ``docker compose up`` without the profile never starts them.
    """

    model_config = ConfigDict(frozen=True)

    infra: list[str] = Field(default_factory=lambda: ["db", "redis"])
    app: list[str] = Field(default_factory=lambda: ["api", "frontend"])
    app_profile: str = Field(default="app")

    def all_services(self) -> list[str]:
        """Return every service, infrastructure first."""
        return [*self.infra, *self.app]


class Config(BaseModel):
    """Global devstack configuration."""

    model_config = ConfigDict(frozen=True)

    project_root: Path = Field(default=Path("."))
    project_name: str = Field(default="Wander")
    env_file: str = Field(default=".env")
    env_template: Path = Field(default=DEFAULT_ENV_TEMPLATE)
    compose_command: list[str] = Field(default_factory=lambda: ["docker", "compose"])
    tiers: TierConfig = Field(default_factory=TierConfig)
    ports: PortConfig = Field(default_factory=PortConfig)
    api_url: str = Field(default="http://localhost:8080")
    health_path: str = Field(default="/health")
    poll_interval: float = Field(default=5.0, gt=0, description="Seconds between health polls")
    readiness_timeout: int = Field(
        default=120, ge=1, description="Seconds to wait for infrastructure health checks"
    )
    generator_timeout: int = Field(
        default=600, ge=1, description="Per-step timeout for component generators"
    )
    environment: dict[str, str] = Field(
        default_factory=dict, description="Values loaded from the repository's .env file"
    )

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def env_path(self) -> Path:
        """Path to the repository's environment file."""
        return self.project_root / self.env_file

    @property
    def src_dir(self) -> Path:
        """Directory that holds the scaffolded components."""
        return self.project_root / "src"

    @property
    def health_url(self) -> str:
        """Fully-qualified URL of the API health endpoint."""
        return self.api_url.rstrip("/") + self.health_path

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def with_environment(self, values: dict[str, str]) -> "Config":
        """Return a copy carrying the loaded ``.env`` values.

        ``API_PORT``, ``FRONTEND_PORT`` and ``VITE_API_URL`` override the
        corresponding defaults so that the dashboard and the scaffolded
        components agree with the running containers.  Empty values keep
        the defaults.

        Raises:
            ConfigError: If a port is not an integer in ``1..65535``.
        """
        try:
            ports = PortConfig(
                frontend=_port_value(values, "FRONTEND_PORT", self.ports.frontend),
                api=_port_value(values, "API_PORT", self.ports.api),
            )
        except ValidationError as exc:
            error = exc.errors()[0]
            key = _PORT_KEYS.get(str(error["loc"][0]), "port")
            raise ConfigError(key, error["msg"]) from exc
        api_url = values.get("VITE_API_URL") or self.api_url
        return self.model_copy(
            update={"environment": dict(values), "ports": ports, "api_url": api_url}
        )

    def template_context(self) -> dict[str, Any]:
        """Return the Jinja2 context used to render component overrides."""
        return {
            "project_name": self.project_name,
            "ports": self.ports.as_dict(),
            "api_url": self.api_url,
            "health_path": self.health_path,
            "infra_services": list(self.tiers.infra),
        }

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            DEVSTACK_ROOT, DEVSTACK_PROJECT_NAME, DEVSTACK_ENV_FILE,
            DEVSTACK_ENV_TEMPLATE, DEVSTACK_COMPOSE_COMMAND, DEVSTACK_API_URL,
            DEVSTACK_POLL_INTERVAL, DEVSTACK_READINESS_TIMEOUT,
            DEVSTACK_GENERATOR_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("DEVSTACK_ROOT"):
            kwargs["project_root"] = Path(os.environ["DEVSTACK_ROOT"])
        if os.environ.get("DEVSTACK_PROJECT_NAME"):
            kwargs["project_name"] = os.environ["DEVSTACK_PROJECT_NAME"]
        if os.environ.get("DEVSTACK_ENV_FILE"):
            kwargs["env_file"] = os.environ["DEVSTACK_ENV_FILE"]
        if os.environ.get("DEVSTACK_ENV_TEMPLATE"):
            kwargs["env_template"] = Path(os.environ["DEVSTACK_ENV_TEMPLATE"])
        if os.environ.get("DEVSTACK_COMPOSE_COMMAND"):
            kwargs["compose_command"] = shlex.split(os.environ["DEVSTACK_COMPOSE_COMMAND"])
        if os.environ.get("DEVSTACK_API_URL"):
            kwargs["api_url"] = os.environ["DEVSTACK_API_URL"]
        if os.environ.get("DEVSTACK_POLL_INTERVAL"):
            kwargs["poll_interval"] = float(os.environ["DEVSTACK_POLL_INTERVAL"])
        if os.environ.get("DEVSTACK_READINESS_TIMEOUT"):
            kwargs["readiness_timeout"] = int(os.environ["DEVSTACK_READINESS_TIMEOUT"])
        if os.environ.get("DEVSTACK_GENERATOR_TIMEOUT"):
            kwargs["generator_timeout"] = int(os.environ["DEVSTACK_GENERATOR_TIMEOUT"])
        return cls(**kwargs)


def _port_value(values: dict[str, str], key: str, default: int) -> int:
    raw = values.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(key, f"expected a port number, got {raw!r}") from None
