"""
User identity and profile models
"""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Enum as SQLEnum, DateTime
from sqlalchemy.orm import relationship
import enum

from app.models.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    """User roles for RBAC"""
    ADMIN = "admin"  # Programme administrator
    STAFF = "staff"  # Trainer / coach
    TRAINEE = "trainee"


class User(Base, TimestampMixin):
    """
    Identity table - email + password credential only.
    Everything displayed about a person lives on Profile.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # Status & Security
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime, nullable=True)

    # Relationships
    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")


class Profile(Base, TimestampMixin):
    """
    Profile row written once by the registrar at sign-up.
    Later changes (role, cohort moves) belong to staff tooling.
    """
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    email = Column(String(255), nullable=False, index=True)
    firstname = Column(String(100), nullable=False)
    lastname = Column(String(100), nullable=False)
    cohort_id = Column(Integer, ForeignKey("cohorts.id", ondelete="SET NULL"), nullable=True)
    role = Column(SQLEnum(UserRole), default=UserRole.TRAINEE, nullable=False)
    onboarding_completed = Column(Boolean, default=False, nullable=False)

    # Relationships
    user = relationship("User", back_populates="profile")
    cohort = relationship("Cohort", back_populates="profiles")

    @property
    def display_name(self) -> str:
        if self.firstname == self.lastname:
            return self.firstname
        return f"{self.firstname} {self.lastname}"
