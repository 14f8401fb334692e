"""Request/response schemas for merging two user identities."""

from pydantic import BaseModel, Field

from accountlink.models.enums import Role


class MergeRequest(BaseModel):
    """Ids resolved by the upstream linking flow: target survives, source is absorbed."""

    target_id: int = Field(..., gt=0, description="User id that survives the merge")
    source_id: int = Field(..., gt=0, description="User id that is absorbed and deleted")


class MergeResult(BaseModel):
    """State of the surviving user after a committed merge."""

    target_id: int
    source_id: int = Field(description="Deleted user id; no longer resolvable")
    account_id: int = Field(description="External account id taken from the source")
    username: str = Field(description="Display name taken from the source")
    role: Role = Field(description="Higher of the two pre-merge roles")
    previous_role: Role = Field(description="Target role before the merge")
    uploads_transferred: int = Field(ge=0)
