"""Models for health checks."""

from __future__ import annotations

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field

__all__ = [
    "HealthCheck",
    "HealthStatus",
]


class HealthStatus(str, Enum):
    """Status of health check.

    A directory that cannot be reached fails the whole check with an error
    response, so the only reported status is healthy.
    """

    HEALTHY = "healthy"


class HealthCheck(BaseModel):
    """Results of an internal health check."""

    status: Annotated[HealthStatus, Field(title="Health status")]

    directories: Annotated[
        list[str],
        Field(
            title="Checked directories",
            description="Identifiers of the directories that accepted a bind",
        ),
    ] = []
