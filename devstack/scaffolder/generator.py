"""Idempotent component scaffolding.

For every component the presence marker decides everything: if it exists the
component is left alone, no matter what the rest of its directory looks like.
Otherwise the external generator steps run non-interactively and the fixed
set of override files is written on top of their output.

Concurrent invocations are not locked against; callers must serialize them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from devstack.config import Config
from devstack.errors import GeneratorError
from devstack.utils import is_command_available, print_step, run_command, write_file

from .components import ComponentDescriptor, ComponentState, Override
from .templates import TemplateRenderer

# Generators must never prompt; most JS tooling honours CI.
_NON_INTERACTIVE_ENV = {"CI": "1"}

_PLACEHOLDER_FILES = (".gitkeep",)


@dataclass
class ScaffoldResult:
    """Outcome of ``ensure_component`` for one component."""

    component: str
    generated: bool
    written: list[Path] = field(default_factory=list)


class Scaffolder:
    """Creates missing components and enforces their override files."""

    def __init__(self, config: Config, renderer: TemplateRenderer | None = None) -> None:
        self.config = config
        self.renderer = renderer or TemplateRenderer()

    @property
    def root(self) -> Path:
        return self.config.project_root

    # -- Public API --------------------------------------------------------

    async def ensure_component(self, descriptor: ComponentDescriptor) -> ScaffoldResult:
        """Scaffold *descriptor* unless its presence marker already exists.

        Raises:
            GeneratorError: If a required tool is missing, a generator step
                fails, or the generator did not produce the marker.
        """
        if descriptor.state(self.root) is ComponentState.READY:
            return ScaffoldResult(component=descriptor.name, generated=False)

        self._preflight(descriptor)
        await asyncio.to_thread(self._prepare_target, descriptor)
        await self._run_generator(descriptor)

        if descriptor.state(self.root) is not ComponentState.READY:
            raise GeneratorError(
                descriptor.name,
                f"generator finished but did not create {descriptor.marker}",
            )

        written = await self._apply_overrides(descriptor)
        return ScaffoldResult(component=descriptor.name, generated=True, written=written)

    async def ensure_all(
        self, descriptors: Iterable[ComponentDescriptor]
    ) -> tuple[list[ScaffoldResult], list[GeneratorError]]:
        """Scaffold every component, continuing past individual failures.

        Returns:
            ``(results, failures)``: one result per successful component and
            one ``GeneratorError`` per failed component.
        """
        results: list[ScaffoldResult] = []
        failures: list[GeneratorError] = []
        for descriptor in descriptors:
            try:
                results.append(await self.ensure_component(descriptor))
            except GeneratorError as exc:
                failures.append(exc)
        return results, failures

    # -- Steps -------------------------------------------------------------

    def _preflight(self, descriptor: ComponentDescriptor) -> None:
        missing = [tool for tool in descriptor.required_tools if not is_command_available(tool)]
        if missing:
            raise GeneratorError(
                descriptor.name,
                f"required tools not found on PATH: {', '.join(missing)}",
            )

    def _prepare_target(self, descriptor: ComponentDescriptor) -> None:
        """Create the working directories and drop placeholder files.

        Generators refuse to write into non-empty directories, and a
        ``.gitkeep`` is the usual reason an otherwise empty directory is not.
        """
        (self.root / descriptor.workdir).mkdir(parents=True, exist_ok=True)
        target = descriptor.target_path(self.root)
        target.mkdir(parents=True, exist_ok=True)
        for name in _PLACEHOLDER_FILES:
            placeholder = target / name
            if placeholder.is_file():
                placeholder.unlink()

    async def _run_generator(self, descriptor: ComponentDescriptor) -> None:
        for index, cmd in enumerate(descriptor.generator_commands):
            cwd = descriptor.workdir_for_step(self.root, index)
            print_step(f"[{descriptor.name}] {' '.join(cmd)}")
            returncode, stdout, stderr = await run_command(
                list(cmd),
                cwd=cwd,
                timeout=self.config.generator_timeout,
                env=_NON_INTERACTIVE_ENV,
            )
            if returncode != 0:
                detail = _tail(stderr or stdout)
                raise GeneratorError(
                    descriptor.name,
                    f"'{' '.join(cmd)}' exited with code {returncode}"
                    + (f"\n{detail}" if detail else ""),
                )

    async def _apply_overrides(self, descriptor: ComponentDescriptor) -> list[Path]:
        target = descriptor.target_path(self.root)
        context = self.config.template_context()
        written: list[Path] = []
        for override in descriptor.overrides:
            written.append(await self._write_override(target, override, context))
        return written

    async def _write_override(
        self, target: Path, override: Override, context: dict
    ) -> Path:
        out = target / override.path
        if override.template is not None:
            return await self.renderer.render_to_file(override.template, out, context)
        await asyncio.to_thread(write_file, out, override.content or "")
        return out


def _tail(output: str, lines: int = 20) -> str:
    """Return the last *lines* lines of process output."""
    return "\n".join(output.splitlines()[-lines:])
