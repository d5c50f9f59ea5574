"""
Cohort schemas
"""
from datetime import datetime
from pydantic import BaseModel, Field


class CohortCreate(BaseModel):
    """Schema for creating a cohort"""
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(default="full-time", max_length=50)


class CohortResponse(BaseModel):
    """Response schema for cohorts"""
    id: int
    name: str
    type: str
    created_at: datetime

    class Config:
        from_attributes = True
