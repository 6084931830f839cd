"""
Pydantic schemas for request/response models of the presence API.

Wire names are camelCase (visitorId, activeCount) to match the existing
frontend; Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator


def _check_identity(value: Union[str, int]) -> Union[str, int]:
    if isinstance(value, str) and not value.strip():
        raise ValueError("visitorId must not be empty")
    return value


class HeartbeatRequest(BaseModel):
    """Payload sent by a page to say its visitor is still here."""
    model_config = ConfigDict(populate_by_name=True)

    visitor_id: Union[StrictStr, StrictInt] = Field(alias="visitorId")
    page: Optional[str] = None

    @field_validator("visitor_id")
    @classmethod
    def non_empty_visitor_id(cls, value):
        return _check_identity(value)


class HeartbeatResponse(BaseModel):
    success: bool


class ActiveCountResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    active_count: int = Field(alias="activeCount")


class ActiveUsersResponse(BaseModel):
    """Shape of the legacy /analytics/active-users endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    active_users: int = Field(alias="activeUsers")


class LeaveResponse(BaseModel):
    removed: bool


class VisitorMessage(BaseModel):
    """Client → server message on the live visitor stream."""
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["join", "heartbeat", "leave"]
    visitor_id: Union[StrictStr, StrictInt] = Field(alias="visitorId")
    page: Optional[str] = None

    @field_validator("visitor_id")
    @classmethod
    def non_empty_visitor_id(cls, value):
        return _check_identity(value)


class ActiveVisitorsMessage(BaseModel):
    """Server → client message on the live visitor stream."""
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["active_count", "visitor_joined", "visitor_left"]
    active_count: int = Field(alias="activeCount")
    visitor_id: Optional[str] = Field(default=None, alias="visitorId")
    timestamp: datetime
