"""
SQLAlchemy models - Import all for Alembic autogenerate
"""
from app.models.base import Base, TimestampMixin

# Import all models
from app.models.cohort import Cohort
from app.models.user import User, Profile, UserRole
from app.models.invitation_token import InvitationToken, TokenStatus

# Export all for easy imports
__all__ = [
    "Base",
    "TimestampMixin",
    "Cohort",
    "User",
    "Profile",
    "UserRole",
    "InvitationToken",
    "TokenStatus",
]
