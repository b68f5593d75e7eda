"""Component descriptors for the scaffoldable subprojects.

A descriptor is read-only configuration: where the component lives, which
file marks it as already scaffolded, which generator steps create it and
which files are overwritten afterwards to enforce the project's Docker and
styling conventions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ComponentState(str, Enum):
    """Derived lifecycle of a component, computed from its presence marker."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass(frozen=True)
class Override:
    """A file written after generation, replacing whatever the generator produced.

    Exactly one of ``template`` (a Jinja2 template path relative to the
    scaffolder template directory) or ``content`` (literal text) is set.
    ``path`` is relative to the component's target directory.
    """

    path: str
    template: str | None = None
    content: str | None = None

    def __post_init__(self) -> None:
        if (self.template is None) == (self.content is None):
            raise ValueError(
                f"Override for '{self.path}' needs exactly one of template or content"
            )


@dataclass(frozen=True)
class ComponentDescriptor:
    """Immutable description of one scaffoldable component.

    All paths are relative to the project root.
    """

    name: str
    marker: str
    workdir: str
    target_dir: str
    generator_commands: tuple[tuple[str, ...], ...]
    overrides: tuple[Override, ...] = ()
    required_tools: tuple[str, ...] = ()
    step_workdirs: tuple[str, ...] = ()

    def marker_path(self, root: Path) -> Path:
        return root / self.marker

    def target_path(self, root: Path) -> Path:
        return root / self.target_dir

    def workdir_for_step(self, root: Path, index: int) -> Path:
        """Working directory of generator step *index*.

        ``step_workdirs`` may pin individual steps (e.g. steps that must run
        inside the freshly created directory); unpinned steps use ``workdir``.
        """
        if index < len(self.step_workdirs) and self.step_workdirs[index]:
            return root / self.step_workdirs[index]
        return root / self.workdir

    def state(self, root: Path) -> ComponentState:
        """Derive the component state from the filesystem; never cached."""
        if self.marker_path(root).exists():
            return ComponentState.READY
        return ComponentState.UNINITIALIZED


FRONTEND = ComponentDescriptor(
    name="frontend",
    marker="src/frontend/package.json",
    workdir="src",
    target_dir="src/frontend",
    generator_commands=(
        ("bun", "create", "vite", "frontend", "--template", "react-ts",
         "--no-interactive", "--no-rolldown"),
        ("bun", "install"),
        ("bun", "add", "-D", "tailwindcss@next", "@tailwindcss/vite@next"),
    ),
    step_workdirs=("src", "src/frontend", "src/frontend"),
    overrides=(
        Override("src/index.css", template="frontend/index.css.j2"),
        Override("vite.config.ts", template="frontend/vite.config.ts.j2"),
        Override("src/App.tsx", template="frontend/App.tsx.j2"),
        Override("Dockerfile", template="frontend/Dockerfile.j2"),
        Override("Dockerfile.dev", template="frontend/Dockerfile.dev.j2"),
        Override(".dockerignore", template="frontend/dockerignore.j2"),
    ),
    required_tools=("bun",),
)

API = ComponentDescriptor(
    name="api",
    marker="src/api/package.json",
    workdir="src/api",
    target_dir="src/api",
    generator_commands=(
        ("bun", "init", "-y"),
        ("bun", "add", "express", "pg", "redis"),
        ("bun", "add", "-d", "@types/express", "@types/pg", "typescript"),
    ),
    overrides=(
        Override("src/index.ts", template="api/index.ts.j2"),
        Override("tsconfig.json", template="api/tsconfig.json.j2"),
        Override("Dockerfile", template="api/Dockerfile.j2"),
        Override("Dockerfile.dev", template="api/Dockerfile.dev.j2"),
        Override(".dockerignore", template="api/dockerignore.j2"),
    ),
    required_tools=("bun",),
)


def default_components() -> list[ComponentDescriptor]:
    """Return the component descriptors in scaffolding order."""
    return [FRONTEND, API]
