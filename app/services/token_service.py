"""
Token Service
Issues, validates and consumes invitation tokens. Single owner of the
token state machine: ISSUED -> CONSUMED on registration, ISSUED -> EXPIRED
once the clock passes expires_at. Both end states are terminal.
"""
import logging
import secrets
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, utcnow
from app.core.config import settings
from app.core.exceptions import StoreUnavailable
from app.models.invitation_token import InvitationToken, TokenStatus
from app.services.token_store import TokenStore

logger = logging.getLogger(__name__)


class TokenService:
    """Service for the invitation token lifecycle"""

    def __init__(self, store: Optional[TokenStore] = None, clock: Clock = utcnow):
        self.store = store or TokenStore()
        self.clock = clock
        self.validity_days = settings.INVITATION_VALIDITY_DAYS

    def generate_token(self) -> str:
        """
        Generate a cryptographically secure token secret.

        Returns:
            URL-safe token string (43 characters)
        """
        return secrets.token_urlsafe(32)

    def now(self):
        return self.clock()

    async def issue_token(
        self,
        db: AsyncSession,
        email: str,
        cohort_id: Optional[int] = None,
        validity_days: Optional[int] = None
    ) -> InvitationToken:
        """
        Create and persist a new unused token.

        Args:
            db: Database session
            email: Address the token is bound to
            cohort_id: Cohort the resulting account joins
            validity_days: Days until expiry (defaults to settings)

        Returns:
            The persisted InvitationToken

        Raises:
            StoreUnavailable: If the token could not be written
        """
        now = self.now()
        days = validity_days if validity_days is not None else self.validity_days

        token = InvitationToken(
            token=self.generate_token(),
            email=email,
            cohort_id=cohort_id,
            is_used=False,
            expires_at=now + timedelta(days=days),
            created_at=now,
            updated_at=now,
        )
        token = await self.store.insert(db, token)
        logger.info(f"Issued invitation token {token.id} for {email} (cohort={cohort_id})")
        return token

    async def verify_token(self, db: AsyncSession, secret: str) -> bool:
        """
        True iff the token exists, is unused and has not expired.

        Fails closed: a store failure counts as invalid. The reason is
        logged but never returned.
        """
        if not secret:
            return False

        try:
            token = await self.store.get_by_token(db, secret)
        except StoreUnavailable:
            logger.warning("Token verification failed closed: store unavailable")
            return False

        if not token:
            logger.info("Token verification failed: unknown token")
            return False

        status = token.status(self.now())
        if status != TokenStatus.ACTIVE:
            logger.info(f"Token verification failed: token {token.id} is {status.value}")
            return False

        return True

    async def get_token_data(self, db: AsyncSession, secret: str) -> Optional[InvitationToken]:
        """
        Full token record regardless of used/expired state.
        Returns None when not found or when the store is unavailable.
        """
        if not secret:
            return None

        try:
            return await self.store.get_by_token(db, secret)
        except StoreUnavailable:
            logger.warning("Token lookup failed closed: store unavailable")
            return None

    async def mark_used(self, db: AsyncSession, secret: str) -> bool:
        """
        Set is_used on a token. Idempotent: marking an already used token
        again succeeds and leaves it used.
        """
        try:
            return await self.store.mark_used(db, secret, self.now())
        except StoreUnavailable:
            return False

    async def consume(self, db: AsyncSession, secret: str) -> bool:
        """
        Compare-and-set consume inside the caller's transaction.
        Raises StoreUnavailable rather than guessing.
        """
        consumed = await self.store.consume(db, secret, self.now())
        if not consumed:
            logger.warning("Token consume lost: token already used or expired")
        return consumed

    async def get_token_by_id(self, db: AsyncSession, token_id: str) -> Optional[InvitationToken]:
        return await self.store.get_by_id(db, token_id)

    async def list_tokens(
        self,
        db: AsyncSession,
        email: Optional[str] = None,
        status: Optional[TokenStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[InvitationToken]:
        """List tokens for staff, newest first"""
        return await self.store.list_tokens(
            db, self.now(), email=email, status=status, skip=skip, limit=limit
        )

    def token_status(self, token: InvitationToken) -> TokenStatus:
        """Administrative status; not for unauthenticated callers"""
        return token.status(self.now())


# Singleton instance
_token_service: Optional[TokenService] = None


def get_token_service() -> TokenService:
    """Get or create the token service singleton"""
    global _token_service
    if _token_service is None:
        _token_service = TokenService()
    return _token_service
