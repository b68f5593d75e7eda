"""Exception hierarchy for bootstrap failures.

Every fatal step raises a subclass of ``DevStackError``; the CLI catches the
base class, prints the message and exits non-zero.  Health polling never
raises, it reports failures as ``status="error"`` instead.
"""

from __future__ import annotations

from pathlib import Path


class DevStackError(Exception):
    """Base class for all fatal bootstrap errors."""


class TemplateMissingError(DevStackError):
    """Raised when the environment template is missing from the installation."""

    def __init__(self, template_path: Path) -> None:
        self.template_path = template_path
        super().__init__(
            f"Environment template not found: {template_path}. "
            "The devstack installation looks corrupted; reinstall it."
        )


class GeneratorError(DevStackError):
    """Raised when a component's generator cannot run or exits non-zero."""

    def __init__(self, component: str, message: str) -> None:
        self.component = component
        super().__init__(f"Component '{component}': {message}")


class ScaffoldError(DevStackError):
    """Raised when one or more components failed to scaffold."""

    def __init__(self, failures: list[GeneratorError]) -> None:
        self.failures = failures
        names = ", ".join(f.component for f in failures)
        details = "\n".join(f"  - {f}" for f in failures)
        super().__init__(f"Scaffolding failed for: {names}\n{details}")


class ReadinessError(DevStackError):
    """Raised when infrastructure services do not become ready."""

    def __init__(self, services: list[str], message: str) -> None:
        self.services = services
        super().__init__(
            f"Services not ready ({', '.join(services)}): {message}"
        )


class RuntimeCommandError(DevStackError):
    """Raised when a container runtime command fails."""

    def __init__(self, action: str, message: str) -> None:
        self.action = action
        super().__init__(f"'{action}' failed: {message}")


class ConfigError(DevStackError):
    """Raised when a value from the environment file cannot be used."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(f"Invalid {key} in environment file: {message}")
