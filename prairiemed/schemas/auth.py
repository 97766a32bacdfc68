from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import List, Optional
from datetime import datetime


class LoginRequest(BaseModel):
    """Email/password login request"""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=1024)


class RefreshTokenRequest(BaseModel):
    """Refresh/logout body for clients that cannot send the httpOnly cookie"""
    refresh_token: Optional[str] = Field(None, alias="refreshToken")

    model_config = ConfigDict(populate_by_name=True)


class UserProfile(BaseModel):
    """Public profile plus current roles"""
    user_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    title: Optional[str] = None
    organization_id: Optional[str] = None
    facility_id: Optional[str] = None
    locale: str = "en"
    roles: List[str] = []


class LoginResponse(BaseModel):
    access_token: str = Field(..., serialization_alias="accessToken")
    user: UserProfile


class RefreshResponse(BaseModel):
    access_token: str = Field(..., serialization_alias="accessToken")


class MeResponse(BaseModel):
    user: UserProfile


class OkResponse(BaseModel):
    ok: bool = True


class SessionRead(BaseModel):
    id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None
    refresh_expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RevokeSessionsResponse(BaseModel):
    revoked: int
