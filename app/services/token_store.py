"""
Token Store
Durable access to signup_tokens rows. Every driver-level failure is turned
into StoreUnavailable so callers only deal with one transient error type.
"""
import asyncio
import logging
from datetime import datetime
from functools import wraps
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StoreUnavailable
from app.models.invitation_token import InvitationToken, TokenStatus

logger = logging.getLogger(__name__)


def store_call(func):
    """Translate connection/timeout failures into StoreUnavailable"""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except IntegrityError:
            raise
        except (OperationalError, DBAPIError, PoolTimeoutError, asyncio.TimeoutError) as e:
            logger.error(f"Store unavailable during {func.__name__}: {str(e)}")
            raise StoreUnavailable("Store unavailable") from e
    return wrapper


class TokenStore:
    """Persistence for invitation tokens"""

    @store_call
    async def insert(self, db: AsyncSession, token: InvitationToken) -> InvitationToken:
        """Persist a new token and commit"""
        db.add(token)
        await db.flush()
        await db.commit()
        await db.refresh(token)
        return token

    @store_call
    async def get_by_token(self, db: AsyncSession, secret: str) -> Optional[InvitationToken]:
        """Look up a token by its secret, regardless of state"""
        result = await db.execute(
            select(InvitationToken).where(InvitationToken.token == secret)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @store_call
    async def get_by_id(self, db: AsyncSession, token_id: str) -> Optional[InvitationToken]:
        result = await db.execute(
            select(InvitationToken).where(InvitationToken.id == token_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @store_call
    async def consume(self, db: AsyncSession, secret: str, now: datetime) -> bool:
        """
        Atomically flip is_used false -> true for an unexpired token.

        Conditional update, so exactly one concurrent caller sees a changed
        row. Does not commit: the caller decides the transaction boundary.

        Returns:
            True if this call consumed the token, False otherwise
        """
        result = await db.execute(
            update(InvitationToken)
            .where(
                InvitationToken.token == secret,
                InvitationToken.is_used.is_(False),
                InvitationToken.expires_at >= now,
            )
            .values(is_used=True, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @store_call
    async def mark_used(self, db: AsyncSession, secret: str, now: datetime) -> bool:
        """
        Unconditionally set is_used for a token and commit.

        Returns:
            True if the token exists (whether or not it was already used)
        """
        result = await db.execute(
            update(InvitationToken)
            .where(InvitationToken.token == secret)
            .values(is_used=True, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount == 1

    @store_call
    async def list_tokens(
        self,
        db: AsyncSession,
        now: datetime,
        email: Optional[str] = None,
        status: Optional[TokenStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[InvitationToken]:
        """List tokens newest first, optionally filtered by email and status"""
        query = select(InvitationToken)

        if email:
            query = query.where(InvitationToken.email == email)

        if status == TokenStatus.USED:
            query = query.where(InvitationToken.is_used.is_(True))
        elif status == TokenStatus.EXPIRED:
            query = query.where(
                InvitationToken.is_used.is_(False),
                InvitationToken.expires_at < now
            )
        elif status == TokenStatus.ACTIVE:
            query = query.where(
                InvitationToken.is_used.is_(False),
                InvitationToken.expires_at >= now
            )

        query = (
            query.order_by(InvitationToken.created_at.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return list(result.scalars().all())
