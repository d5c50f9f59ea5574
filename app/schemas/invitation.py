"""
Invitation token schemas
Pydantic models for token issuance, listing and public verification
"""
from datetime import datetime
from typing import Annotated, Optional
from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel

from app.models.invitation_token import TokenStatus


def check_email(value: str) -> str:
    """Reject malformed addresses but keep the address exactly as typed"""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(str(e))
    return value


# Sign-up compares against the stored address byte for byte
ExactEmail = Annotated[str, AfterValidator(check_email)]


class TokenCreate(BaseModel):
    """Schema for issuing a token"""
    email: ExactEmail
    cohort_id: int
    send_email: bool = True


class TokenResponse(BaseModel):
    """Token as shown to staff"""
    id: str
    token: str
    email: str
    cohort_id: Optional[int]
    is_used: bool
    expires_at: datetime
    created_at: datetime
    status: TokenStatus
    signup_link: str


class TokenIssueResponse(BaseModel):
    """
    Result of issuance. The token exists even when email_sent is False;
    the link can still be shared by hand.
    """
    token: TokenResponse
    email_sent: bool
    email_error: Optional[str] = None


class TokenDispatchResponse(BaseModel):
    """Result of (re)sending an invitation email"""
    token_id: str
    email_sent: bool
    email_error: Optional[str] = None


class TokenCheck(BaseModel):
    """
    Public verification response.
    Only the bound email is revealed, and only for a valid token.
    """
    valid: bool
    email: Optional[str] = None
