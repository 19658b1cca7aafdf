from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional, Literal
from datetime import datetime
from tribe.modules.roles.schemas import RoleName

InvitationType = Literal["tree", "branch"]


class InvitationCreate(BaseModel):
    email: EmailStr
    role: RoleName = "member"
    tree_id: Optional[str] = None
    branch_id: Optional[str] = None
    message: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def check_single_target(self):
        if bool(self.tree_id) == bool(self.branch_id):
            raise ValueError("Provide exactly one of tree_id or branch_id")
        return self

    @property
    def invitation_type(self) -> str:
        return "branch" if self.branch_id else "tree"


class InvitationResponse(BaseModel):
    id: str
    type: InvitationType
    tree_id: Optional[str] = None
    branch_id: Optional[str] = None
    email: str
    role: str
    token: str
    invited_by: str
    message: Optional[str] = None
    status: str
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
