"""
Cohort model
A named batch of trainees that invitations and profiles are attached to
"""
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin


class Cohort(Base, TimestampMixin):
    """Training cohort (batch)"""
    __tablename__ = "cohorts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False, default="full-time")  # full-time, part-time, ...

    # Relationships
    profiles = relationship("Profile", back_populates="cohort")
    tokens = relationship("InvitationToken", back_populates="cohort")

    def __repr__(self):
        return f"<Cohort(id={self.id}, name='{self.name}', type='{self.type}')>"
