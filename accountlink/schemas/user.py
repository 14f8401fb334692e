"""Response schemas for user lookups."""

from pydantic import BaseModel, ConfigDict


class UserSummary(BaseModel):
    """User profile with the number of uploads attributed to it."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    username: str
    role: str
    upload_count: int = 0
