"""Service orchestration.

Brings the stack up in two strictly ordered phases:

1. INFRA -- database and cache, started together and awaited until the
   runtime's own health checks pass.
2. APP   -- API and frontend, requested only after every INFRA service is
   ready, and only if every component was scaffolded successfully.

A failed INFRA phase leaves the stack partially started (infra only); the
developer can inspect it with ``devstack logs`` and retry.
"""

from __future__ import annotations

from typing import Callable

from devstack.config import Config
from devstack.envfile import ensure_environment_file, load_environment
from devstack.errors import ReadinessError, RuntimeCommandError, ScaffoldError
from devstack.runtime import ComposeRuntime, ServiceTier
from devstack.scaffolder import (
    ComponentDescriptor,
    Scaffolder,
    ScaffoldResult,
    default_components,
)
from devstack.utils import print_step, print_success

ALL_SERVICES = "all"


def prepare_environment(config: Config) -> Config:
    """Materialize the ``.env`` file and return a config carrying its values.

    Raises:
        TemplateMissingError: If the file is missing and so is the template.
    """
    if ensure_environment_file(config.env_path, config.env_template):
        print_step(f"Created {config.env_file} from template")
    return config.with_environment(load_environment(config.env_path))


class ServiceOrchestrator:
    """Sequences scaffolding and tiered service startup.

    Attributes:
        config: Configuration carrying the loaded ``.env`` values.
        runtime: Compose wrapper used for every container operation.
        scaffolder: Creates missing components before the APP tier starts.
        components: Descriptors scaffolded by :meth:`ensure_components`.
    """

    def __init__(
        self,
        config: Config,
        runtime: ComposeRuntime | None = None,
        scaffolder: Scaffolder | None = None,
        components: list[ComponentDescriptor] | None = None,
    ) -> None:
        self.config = config
        self.runtime = runtime or ComposeRuntime(config)
        self.scaffolder = scaffolder or Scaffolder(config)
        self.components = components if components is not None else default_components()

    # ------------------------------------------------------------------
    # Scaffolding
    # ------------------------------------------------------------------

    async def ensure_components(self) -> list[ScaffoldResult]:
        """Scaffold every missing component.

        Raises:
            ScaffoldError: If any component failed; the others are still
                scaffolded so a retry only has to redo the failed ones.
        """
        results, failures = await self.scaffolder.ensure_all(self.components)
        for result in results:
            if result.generated:
                print_success(f"Scaffolded {result.component} ({len(result.written)} files overridden)")
        if failures:
            raise ScaffoldError(failures)
        return results

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start_infra(self) -> None:
        """Start the INFRA tier and block until every service is ready.

        Raises:
            ReadinessError: If the runtime reports a failure or timeout.
        """
        services = self.runtime.services_for(ServiceTier.INFRA)
        print_step(f"Starting infrastructure: {', '.join(services)}")
        try:
            await self.runtime.start(ServiceTier.INFRA, wait=True)
        except RuntimeCommandError as exc:
            raise ReadinessError(services, str(exc)) from exc

    async def start_app(self) -> None:
        services = self.runtime.services_for(ServiceTier.APP)
        print_step(f"Starting application: {', '.join(services)}")
        await self.runtime.start(ServiceTier.APP)

    async def up(self) -> None:
        """Scaffold, then start INFRA, then APP.

        Nothing is started when scaffolding fails; APP is never requested
        when INFRA does not become ready.
        """
        await self.ensure_components()
        await self.start_infra()
        await self.start_app()

    # ------------------------------------------------------------------
    # Shutdown and inspection
    # ------------------------------------------------------------------

    async def down(self) -> None:
        """Stop every service of both tiers. Safe when nothing is running."""
        await self.runtime.stop()

    async def clean(self, confirm: Callable[[], bool]) -> bool:
        """Stop every service and delete persistent volumes.

        Args:
            confirm: Asked once before anything happens; the operation only
                proceeds if it returns ``True``.

        Returns:
            ``True`` if the volumes were removed, ``False`` if declined.
        """
        if not confirm():
            return False
        await self.runtime.stop(volumes=True)
        return True

    async def logs(self, target: str = ALL_SERVICES) -> None:
        """Stream logs for one service, or for all of them with ``"all"``."""
        if target == ALL_SERVICES:
            await self.runtime.stream_logs()
            return
        if target not in self.config.tiers.all_services():
            raise RuntimeCommandError(
                "logs",
                f"unknown service '{target}' (expected one of: "
                f"{', '.join(self.config.tiers.all_services())}, {ALL_SERVICES})",
            )
        await self.runtime.stream_logs(target)

    async def status(self) -> dict[str, str]:
        """Return the runtime's view of every configured service."""
        return await self.runtime.service_states()
