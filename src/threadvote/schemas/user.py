"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Public view of a user record, karma included."""

    id: int
    username: str
    bio: str | None = None
    karma: int
    is_admin: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
