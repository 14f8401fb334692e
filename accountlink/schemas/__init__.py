"""Pydantic request/response schemas."""

from accountlink.schemas.health import HealthResponse
from accountlink.schemas.merge import MergeRequest, MergeResult
from accountlink.schemas.user import UserSummary

__all__ = [
    "HealthResponse",
    "MergeRequest",
    "MergeResult",
    "UserSummary",
]
