"""devstack scaffolder -- creates missing frontend and API components.

Each component is described once by a ``ComponentDescriptor``.  Scaffolding
is gated on the component's presence marker, so running it repeatedly is
safe.

Quick usage::

    from devstack.config import Config
    from devstack.scaffolder import Scaffolder, default_components

    scaffolder = Scaffolder(Config())
    results, failures = await scaffolder.ensure_all(default_components())
"""

from devstack.scaffolder.components import (
    API,
    FRONTEND,
    ComponentDescriptor,
    ComponentState,
    Override,
    default_components,
)
from devstack.scaffolder.generator import Scaffolder, ScaffoldResult
from devstack.scaffolder.templates import TemplateRenderer

__all__ = [
    "API",
    "FRONTEND",
    "ComponentDescriptor",
    "ComponentState",
    "Override",
    "ScaffoldResult",
    "Scaffolder",
    "TemplateRenderer",
    "default_components",
]
