"""Pydantic schema for the health check response."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness plus store reachability, for load balancers and the linking flow."""

    status: Literal["ok"] = "ok"
    environment: str = Field(description="APP_ENV of this deployment")
    database: Literal["connected", "disconnected"] = Field(
        description="Whether a trivial query against the user store succeeded",
    )
    isolation_level: str = Field(description="Transaction isolation used for merges")
