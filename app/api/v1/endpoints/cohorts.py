"""
Cohort endpoints
Staff pick a cohort when issuing invitations
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import require_roles
from app.api.errors import http_error
from app.core.exceptions import StoreUnavailable
from app.db.session import get_db
from app.models import User, UserRole
from app.schemas.cohort import CohortCreate, CohortResponse
from app.services.cohort_service import cohort_service

router = APIRouter()


@router.get("", response_model=List[CohortResponse])
async def list_cohorts(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.STAFF))
):
    """
    List cohorts by name (ADMIN or STAFF).
    """
    try:
        cohorts = await cohort_service.list_cohorts(db)
    except StoreUnavailable as e:
        raise http_error(e)

    return [CohortResponse.model_validate(cohort) for cohort in cohorts]


@router.post("", response_model=CohortResponse, status_code=status.HTTP_201_CREATED)
async def create_cohort(
    cohort_data: CohortCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN))
):
    """
    Create a cohort (ADMIN only).
    """
    try:
        cohort = await cohort_service.create_cohort(db, cohort_data.name, cohort_data.type)
    except StoreUnavailable as e:
        raise http_error(e)

    return CohortResponse.model_validate(cohort)
