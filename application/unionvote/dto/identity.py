from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class Identity(BaseModel):
    """Authenticated member as held by the session manager"""
    id: str = Field(..., min_length=1, description="Stable member identifier")
    phone_number: str = Field(..., min_length=1)
    display_name: str
    role: Literal["admin", "candidate", "member"]
    approval_state: bool = Field(False, description="Unapproved members may sign in but not perform privileged actions")
    created_at: Optional[datetime] = None

    @property
    def is_privileged(self) -> bool:
        return self.role == "admin" and self.approval_state


class IdentityResponse(BaseModel):
    success: bool
    message: str
    identity: Optional[Identity] = None
