"""devstack -- zero-to-running local developer environment.

Materializes the ``.env`` file, scaffolds missing frontend/API components,
starts infrastructure before application services and reports aggregated
API health.
"""

__version__ = "0.1.0"
