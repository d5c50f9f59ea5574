"""
Pydantic schemas for sign-up, sign-in and account endpoints
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from app.models.user import UserRole
from app.schemas.invitation import ExactEmail


class SignUpRequest(BaseModel):
    """
    Schema for invitation-based registration.
    Fields are plain strings so that emptiness is reported by the registrar
    with the offending field name.
    """
    email: str = ""
    password: str = ""
    display_name: str = Field(default="", description="Full name, split on the first space")
    token: str = ""


class AccountResponse(BaseModel):
    """Response schema for an account"""
    id: int
    email: str
    name: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    cohort_id: Optional[int] = None
    role: Optional[UserRole] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SignUpResponse(BaseModel):
    """Successful registration"""
    message: str
    redirect_to: str
    account: AccountResponse


class UserLogin(BaseModel):
    """Schema for user login"""
    email: ExactEmail
    password: str


class Token(BaseModel):
    """JWT Token response schema"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountResponse
