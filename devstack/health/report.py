"""Health report model and wire parsing.

The API's health endpoint returns::

    {
      "status": "healthy",
      "timestamp": "2025-01-01T00:00:00Z",
      "services": {"database": "healthy", "redis": "healthy"},
      "error": null
    }

``services`` and ``error`` are optional.  Any other shape is a parse failure.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

CONNECT_FAILURE_MESSAGE = "Failed to connect to API"

REQUIRED_DEPENDENCIES = ("database", "redis")


class HealthReport(BaseModel):
    """One poll's snapshot of the API and its dependencies.

    Reports are never merged: each one fully replaces the previous one.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: StrictStr
    timestamp: StrictStr
    dependencies: dict[str, StrictStr] = Field(default_factory=dict, alias="services")
    error: StrictStr | None = None

    @field_validator("timestamp")
    @classmethod
    def _check_timestamp(cls, value: str) -> str:
        datetime.fromisoformat(value)
        return value

    @field_validator("dependencies", mode="before")
    @classmethod
    def _null_dependencies(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("dependencies")
    @classmethod
    def _check_dependencies(cls, value: dict[str, str]) -> dict[str, str]:
        if not value:
            return value
        missing = [name for name in REQUIRED_DEPENDENCIES if name not in value]
        if missing:
            raise ValueError(f"services is missing: {', '.join(missing)}")
        return value

    @classmethod
    def from_payload(cls, payload: Any) -> "HealthReport":
        """Validate a decoded JSON body.

        Raises:
            ValueError: If the payload does not match the endpoint contract
                (pydantic's ``ValidationError`` is a ``ValueError``).
        """
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        return cls.model_validate(payload)

    @classmethod
    def unreachable(cls, message: str = CONNECT_FAILURE_MESSAGE) -> "HealthReport":
        """Build the report shown when the endpoint cannot be reached or parsed."""
        return cls(
            status="error",
            timestamp=datetime.now(timezone.utc).isoformat(),
            error=message,
        )

    @property
    def checked_at(self) -> datetime:
        """The report timestamp as an aware ``datetime`` (UTC if unspecified)."""
        parsed = datetime.fromisoformat(self.timestamp)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @property
    def is_healthy(self) -> bool:
        return self.status.lower() == "healthy"
