"""
Declarative base and shared columns
"""
from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declarative_base

from app.core.clock import utcnow

Base = declarative_base()


class TimestampMixin:
    """Adds created_at / updated_at columns"""
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
