"""
Invitation Token Model
Single-use sign-up tokens scoped to one email address and one cohort
"""
import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.models.base import Base, TimestampMixin


class TokenStatus(str, enum.Enum):
    """Administrative view of a token's lifecycle state"""
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class InvitationToken(Base, TimestampMixin):
    """
    Invitation token issued by staff.

    The token secret is a bearer capability: whoever holds it may register
    exactly one account for the bound email. Expiry is evaluated lazily
    against the clock, rows are never swept.
    """
    __tablename__ = "signup_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    cohort_id = Column(Integer, ForeignKey("cohorts.id", ondelete="SET NULL"), nullable=True, index=True)
    is_used = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    # Relationships
    cohort = relationship("Cohort", back_populates="tokens")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the token has expired"""
        return (now or utcnow()) > self.expires_at

    def status(self, now: Optional[datetime] = None) -> TokenStatus:
        """Used wins over expired: a consumed token stays 'used' forever"""
        if self.is_used:
            return TokenStatus.USED
        if self.is_expired(now):
            return TokenStatus.EXPIRED
        return TokenStatus.ACTIVE

    def __repr__(self):
        # Never include the secret
        return f"<InvitationToken(id={self.id}, email='{self.email}', cohort_id={self.cohort_id}, used={self.is_used})>"
