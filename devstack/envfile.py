"""Environment file materialization.

The repository's ``.env`` is created once from a template and never touched
again, so local edits always survive later bootstrap runs.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from dotenv import dotenv_values

from devstack.errors import TemplateMissingError


def ensure_environment_file(path: str | Path, template_path: str | Path) -> bool:
    """Copy *template_path* to *path* unless *path* already exists.

    Args:
        path: Destination environment file.
        template_path: Template copied verbatim when *path* is missing.

    Returns:
        ``True`` if the file was created, ``False`` if it already existed.

    Raises:
        TemplateMissingError: If the file must be created and the template
            does not exist.
    """
    target = Path(path)
    if target.exists():
        return False

    template = Path(template_path)
    if not template.is_file():
        raise TemplateMissingError(template)

    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(template, target)
    return True


def load_environment(path: str | Path) -> dict[str, str]:
    """Read ``KEY=VALUE`` pairs from an environment file.

    Returns an empty mapping if the file does not exist.  Keys declared
    without a value are dropped.  The process environment is never modified.
    """
    env_path = Path(path)
    if not env_path.is_file():
        return {}
    values = dotenv_values(env_path, interpolate=False)
    return {key: value for key, value in values.items() if value is not None}
