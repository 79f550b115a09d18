from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["admin", "employee"]
RequestStatus = Literal["pending", "approved", "rejected"]


class WireModel(BaseModel):
    """Base for records stored and served with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        # Unset keys stay absent so stored records keep the shape they were written with.
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class User(WireModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int
    username: str
    password: str
    role: Role
    name: str = ""


class PublicUser(BaseModel):
    id: int
    username: str
    role: Role
    name: str

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(id=user.id, username=user.username, role=user.role, name=user.name)


class Turn(WireModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int
    name: str | None = None
    start: str | None = None
    end: str | None = None
    days: list[str] | None = None
    area: str | None = None
    assigned_to: int | None = Field(default=None, alias="assignedTo")
    status: str | None = None
    confirmed: bool | None = None


class ShiftRequest(WireModel):
    id: int
    turn_id: int | None = Field(default=None, alias="turnId")
    requester_id: int = Field(alias="requesterId")
    reason: str = ""
    swap_with: int | None = Field(default=None, alias="swapWith")
    status: RequestStatus = "pending"
    created_at: datetime = Field(alias="createdAt")
    admin_comment: str | None = Field(default=None, alias="adminComment")
    decided_at: datetime | None = Field(default=None, alias="decidedAt")


class Sequences(WireModel):
    turns: int = 0
    requests: int = 0


class State(WireModel):
    users: list[User] = Field(default_factory=list)
    turns: list[Turn] = Field(default_factory=list)
    requests: list[ShiftRequest] = Field(default_factory=list)
    sequences: Sequences | None = None


class LoginPayload(BaseModel):
    username: str | None = None
    password: str | None = None


class LoginOut(BaseModel):
    token: str
    credential: str
    user: PublicUser


class TurnPayload(WireModel):
    """Known turn fields; only the ones present in a body are applied."""

    name: str | None = None
    start: str | None = None
    end: str | None = None
    days: list[str] | None = None
    area: str | None = None
    assigned_to: int | None = Field(default=None, alias="assignedTo")
    status: str | None = None
    confirmed: bool | None = None


class RequestPayload(WireModel):
    turn_id: int | None = Field(default=None, alias="turnId")
    reason: str | None = None
    swap_with: int | None = Field(default=None, alias="swapWith")


class DecisionPayload(BaseModel):
    decision: Any = None
    comment: Any = None
