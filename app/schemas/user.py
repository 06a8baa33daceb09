from enum import Enum
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class SubscriptionStatus(str, Enum):
    NONE = "none"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class RegisterRequest(BaseModel):
    """Registration payload."""
    email: EmailStr
    password: str = Field(..., min_length=6, description="At least 6 characters")
    name: Optional[str] = None


class LoginRequest(BaseModel):
    """Login payload."""
    email: str
    password: str


class UserInDB(BaseModel):
    """User document as stored in MongoDB."""
    id: str = Field(alias="_id")
    email: str
    password_hash: str
    name: Optional[str] = None
    plan: str = "free"
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    subscription_current_period_end: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        populate_by_name = True


class UserPublic(BaseModel):
    """User as returned to the extension."""
    id: str
    email: str
    name: Optional[str] = None
    plan: str
    subscription_status: SubscriptionStatus = Field(alias="subscriptionStatus")

    class Config:
        populate_by_name = True

    @classmethod
    def from_user(cls, user: UserInDB) -> "UserPublic":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            plan=user.plan,
            subscription_status=user.subscription_status,
        )


class AuthResponse(BaseModel):
    """Register/login response carrying a bearer token."""
    message: str
    user: UserPublic
    token: str


class MeResponse(BaseModel):
    user: UserPublic
