"""Pydantic models for the Twiller API and its storage layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, validate_email

Plan = Literal["free", "bronze", "silver", "gold"]
PaidPlan = Literal["bronze", "silver", "gold"]

UNLIMITED = "unlimited"


def normalize_email(value: str) -> str:
    """
    Canonical form of an address, identical to what ``EmailStr`` stores
    (the domain is lowercased, the local part kept).

    Values that are not addresses come back unchanged, so a lookup on them
    simply finds nothing.
    """
    try:
        return validate_email(value)[1]
    except ValueError:
        return value


class _CamelModel(BaseModel):
    """Accepts both the wire (camelCase) and Python field names."""
    model_config = ConfigDict(populate_by_name=True)


# ── Stored entities ───────────────────────────────────────────────────────


class User(BaseModel):
    """Registered account."""
    email: EmailStr = Field(..., description="Unique account email")
    username: Optional[str] = Field(None, description="Unique handle")
    name: Optional[str] = Field(None, description="Display name")
    phone: Optional[str] = Field(None, description="Phone number in E.164 format")
    profile_photo: Optional[str] = Field(None, description="Avatar URL")
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    subscription: Plan = Field(default="free", description="Subscription tier")
    language: str = Field(default="en", description="Preferred language code")
    last_password_reset: Optional[datetime] = None
    subscribed_at: Optional[datetime] = None
    payment_id: Optional[str] = None
    created_at: datetime


class Post(BaseModel):
    """A single micro-post."""
    id: str
    email: str = Field(..., description="Author email")
    post: str = Field(default="", description="Post body")
    photo: Optional[str] = None
    audio: Optional[str] = None
    username: Optional[str] = None
    name: Optional[str] = None
    profile_photo: Optional[str] = None
    created_at: datetime


class VerificationPurpose(str, Enum):
    AUDIO_UPLOAD = "audio-upload"
    LANGUAGE_CHANGE = "language-change"


class VerificationRecord(BaseModel):
    """Pending one-time passcode for a (subject, purpose) pair."""
    email: str
    purpose: VerificationPurpose
    code: str = Field(..., pattern=r"^\d{6}$")
    created_at: datetime
    payload: Dict[str, Any] = Field(default_factory=dict)


# ── Generic responses ─────────────────────────────────────────────────────


class Error(BaseModel):
    """Error body returned for every domain failure."""
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable message")
    details: Optional[Dict[str, Any]] = None


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime


# ── Users ─────────────────────────────────────────────────────────────────


class RegisterRequest(_CamelModel):
    email: EmailStr
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = None
    phone: Optional[str] = Field(None, pattern=r"^\+?\d{7,15}$")
    profile_photo: Optional[str] = Field(None, alias="profilePhoto")


class UserUpdateRequest(_CamelModel):
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = None
    phone: Optional[str] = Field(None, pattern=r"^\+?\d{7,15}$")
    profile_photo: Optional[str] = Field(None, alias="profilePhoto")
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None


# ── Posts ─────────────────────────────────────────────────────────────────


class PostCreateRequest(_CamelModel):
    post: str = Field(default="", max_length=280)
    photo: Optional[str] = None
    audio: Optional[str] = None
    username: Optional[str] = None
    name: Optional[str] = None
    profile_photo: Optional[str] = Field(None, alias="profilephoto")


class VoicePostRequest(_CamelModel):
    email: EmailStr
    audio_url: str = Field(..., min_length=1, alias="audioUrl")
    post: Optional[str] = None
    username: Optional[str] = None
    name: Optional[str] = None
    profile_photo: Optional[str] = Field(None, alias="profilephoto")


class VoicePostResponse(BaseModel):
    success: bool
    data: Post


class PostSearchRequest(BaseModel):
    query: Optional[str] = None


class PostSearchResponse(BaseModel):
    tweets: list[Post]
    message: str


class QuotaSummary(_CamelModel):
    """Posting allowance for the current rolling window."""
    plan: Plan
    limit: Union[int, Literal["unlimited"]]
    used: int
    left: Union[int, Literal["unlimited"]]
    tweets_left: Union[int, Literal["unlimited"]] = Field(..., alias="tweetsLeft")


# ── OTP ───────────────────────────────────────────────────────────────────


class AudioOtpRequest(_CamelModel):
    email: EmailStr
    id_token: str = Field(..., min_length=1, alias="idToken")


class AudioOtpVerifyRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=1)


class LanguageOtpRequest(BaseModel):
    language: str = Field(..., min_length=2, max_length=5)


class LanguageOtpVerifyRequest(BaseModel):
    otp: str = Field(..., min_length=1)


class OtpSentResponse(_CamelModel):
    success: bool = True
    message: str
    channel: Literal["email", "sms"]
    expires_in_seconds: int = Field(..., alias="expiresInSeconds")


class OtpVerifiedResponse(BaseModel):
    verified: bool
    language: Optional[str] = None


# ── Account recovery ──────────────────────────────────────────────────────


class ForgotPasswordRequest(BaseModel):
    identifier: str = Field(..., min_length=1)
    method: str = Field(..., min_length=1)


class ForgotPasswordResponse(BaseModel):
    message: str
    password: Optional[str] = None


# ── Subscriptions ─────────────────────────────────────────────────────────


class CreateSubscriptionRequest(BaseModel):
    plan: str


class CreateSubscriptionResponse(_CamelModel):
    order_id: str = Field(..., alias="orderId")
    amount: int


class PaymentSuccessRequest(_CamelModel):
    email: EmailStr
    plan: str
    payment_id: str = Field(..., min_length=1, alias="paymentId")


class PaymentSuccessResponse(BaseModel):
    success: bool
