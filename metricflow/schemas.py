"""Pydantic schemas for identities, sessions, metrics and API payloads."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

METRIC_NAME_MAX_LENGTH = 100
UNIT_MAX_LENGTH = 20


class Category(str, Enum):
    SALES = "Sales"
    MARKETING = "Marketing"
    OPERATIONS = "Operations"
    FINANCE = "Finance"


DEFAULT_CATEGORY = Category.SALES
DEFAULT_METRIC_NAME = "Untitled Metric"


class Identity(BaseModel):
    """Authenticated user as reported by the identity provider."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return str(self.user_metadata.get("full_name") or "")


class Session(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., description="Opaque bearer token")
    token_type: str = Field(default="bearer")
    expires_in: Optional[int] = None
    expires_at: Optional[int] = Field(default=None, description="Expiry as a unix timestamp")
    refresh_token: Optional[str] = None
    user: Identity


class Metric(BaseModel):
    """A stored KPI record."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    metric_name: str
    current_value: float
    target_value: float
    unit: str = ""
    category: str
    created_at: datetime
    last_updated: datetime


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _require_number(value: Any) -> Any:
    # JSON true/false and numeric strings would otherwise coerce to floats.
    if isinstance(value, (bool, str)):
        raise ValueError("must be a number")
    return value


class MetricCreate(BaseModel):
    """Create payload. Every field is optional; missing ones receive defaults.

    ``user_id``, ``id`` and timestamps are not part of the schema, so any such
    keys in the request body are dropped.
    """

    metric_name: Optional[str] = Field(default=None, max_length=METRIC_NAME_MAX_LENGTH)
    current_value: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    target_value: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    unit: Optional[str] = Field(default=None, max_length=UNIT_MAX_LENGTH)
    category: Optional[Category] = None

    @field_validator("metric_name", "category", mode="before")
    @classmethod
    def _empty_means_missing(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("current_value", "target_value", mode="before")
    @classmethod
    def _numbers_only(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return value if value is None else _require_number(value)


class MetricUpdate(BaseModel):
    """Full replacement of every mutable field."""

    metric_name: str = Field(..., max_length=METRIC_NAME_MAX_LENGTH)
    current_value: float = Field(..., ge=0, allow_inf_nan=False)
    target_value: float = Field(..., gt=0, allow_inf_nan=False)
    unit: str = Field(..., max_length=UNIT_MAX_LENGTH)
    category: Category

    @field_validator("current_value", "target_value", mode="before")
    @classmethod
    def _numbers_only(cls, value: Any) -> Any:
        return _require_number(value)

    @field_validator("metric_name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Metric name is required")
        return value


class MetricListResponse(BaseModel):
    metrics: list[Metric]


class MetricResponse(BaseModel):
    metric: Metric


class SuccessResponse(BaseModel):
    success: bool = True


class SignupRequest(BaseModel):
    """Signup body; the camelCase keys are what browser clients send."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[EmailStr] = None
    password: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")
    business_name: Optional[str] = Field(default=None, alias="businessName")

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email_is_missing(cls, value: Any) -> Any:
        return _blank_to_none(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RecoverRequest(BaseModel):
    email: EmailStr
    redirect_to: Optional[str] = None


class AuthResponse(BaseModel):
    user: Identity
    session: Session


class UserResponse(BaseModel):
    user: Identity


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: datetime


__all__ = [
    "AuthResponse",
    "Category",
    "DEFAULT_CATEGORY",
    "DEFAULT_METRIC_NAME",
    "HealthResponse",
    "Identity",
    "LoginRequest",
    "METRIC_NAME_MAX_LENGTH",
    "Metric",
    "MetricCreate",
    "MetricListResponse",
    "MetricResponse",
    "MetricUpdate",
    "RecoverRequest",
    "Session",
    "SignupRequest",
    "SuccessResponse",
    "UNIT_MAX_LENGTH",
    "UserResponse",
]
