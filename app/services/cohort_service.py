"""
Cohort Service
Lookup and creation of cohorts; driver failures surface as StoreUnavailable
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.cohort import Cohort
from app.services.token_store import store_call


class CohortService:
    """Cohorts that invitations and profiles attach to"""

    @store_call
    async def get_cohort(self, db: AsyncSession, cohort_id: int) -> Optional[Cohort]:
        result = await db.execute(select(Cohort).where(Cohort.id == cohort_id))
        return result.scalar_one_or_none()

    @store_call
    async def list_cohorts(self, db: AsyncSession) -> List[Cohort]:
        result = await db.execute(select(Cohort).order_by(Cohort.name))
        return list(result.scalars().all())

    @store_call
    async def create_cohort(self, db: AsyncSession, name: str, type: str) -> Cohort:
        cohort = Cohort(name=name, type=type)
        db.add(cohort)
        await db.commit()
        await db.refresh(cohort)
        return cohort


cohort_service = CohortService()
