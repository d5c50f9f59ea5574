"""
Registration Service
Creates accounts from invitation tokens.

The token is checked before anything is written, the identity is created,
then the profile row and the token consumption are committed together. The
consumption is a compare-and-set, so for any token at most one registration
can ever commit.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthError, RegistrationError, StoreUnavailable, ValidationError
from app.services.auth_service import AuthService, auth_service
from app.services.profile_service import ProfileService, profile_service, split_display_name
from app.services.token_service import TokenService, get_token_service

logger = logging.getLogger(__name__)

INVALID_INVITATION = "invalid or expired invitation"
EMAIL_MISMATCH = "email does not match invitation"


class RegistrationStatus(str, enum.Enum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"


@dataclass
class Account:
    """The account created by a successful registration"""
    id: int
    email: str
    name: str
    firstname: str
    lastname: str
    cohort_id: Optional[int]
    created_at: datetime


@dataclass
class RegistrationOutcome:
    """
    Result of register().

    SUCCESS carries the account. PARTIAL_FAILURE means the identity exists
    but its profile does not; identity_id tells the operator which one.
    """
    status: RegistrationStatus
    account: Optional[Account] = None
    identity_id: Optional[int] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == RegistrationStatus.SUCCESS


class CredentialRegistrar:
    """Gate identity creation on a valid invitation token"""

    def __init__(
        self,
        tokens: Optional[TokenService] = None,
        identities: Optional[AuthService] = None,
        profiles: Optional[ProfileService] = None
    ):
        self.tokens = tokens or get_token_service()
        self.identities = identities or auth_service
        self.profiles = profiles or profile_service

    async def register(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        display_name: str,
        token: str
    ) -> RegistrationOutcome:
        """
        Register an account bound to an invitation.

        Raises:
            ValidationError: a required field is empty
            AuthError: token invalid, expired, used, or bound to another email
            RegistrationError: identity subsystem refused the account

        A duplicate identity counts as a lost race, not a RegistrationError,
        while the token is used or the existing identity has no profile yet.
        """
        for field, value in (
            ("email", email),
            ("password", password),
            ("display_name", display_name),
            ("token", token),
        ):
            if not value or not value.strip():
                raise ValidationError("missing required field", field=field)

        if not await self.tokens.verify_token(db, token):
            raise AuthError(INVALID_INVITATION)

        token_data = await self.tokens.get_token_data(db, token)
        # Exact, case-sensitive match: the token is a capability for this address
        if not token_data or token_data.email != email:
            logger.info(f"Registration rejected: email {email} does not match invitation")
            raise AuthError(EMAIL_MISMATCH)
        cohort_id = token_data.cohort_id

        try:
            identity = await self.identities.create_identity(db, email, password)
        except RegistrationError as e:
            if await self._token_taken(db, token) or await self.identities.identity_pending(db, email):
                # A concurrent registration for this invitation got there first
                raise AuthError(INVALID_INVITATION) from e
            raise
        identity_id = identity.id
        created_at = identity.created_at

        firstname, lastname = split_display_name(display_name)

        try:
            await self.profiles.insert_profile(
                db,
                user_id=identity_id,
                email=email,
                firstname=firstname,
                lastname=lastname,
                cohort_id=cohort_id,
            )
            consumed = await self.tokens.consume(db, token)
        except (SQLAlchemyError, StoreUnavailable) as e:
            await db.rollback()
            return self._partial_failure(identity_id, email, f"profile could not be saved: {e}")

        if not consumed:
            await db.rollback()
            try:
                await self.identities.delete_identity(db, identity_id)
            except SQLAlchemyError as e:
                await db.rollback()
                return self._partial_failure(identity_id, email, f"orphaned identity could not be removed: {e}")
            raise AuthError(INVALID_INVITATION)

        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            return self._partial_failure(identity_id, email, f"profile could not be committed: {e}")

        logger.info(f"Registered account {identity_id} for {email} in cohort {cohort_id}")
        return RegistrationOutcome(
            status=RegistrationStatus.SUCCESS,
            account=Account(
                id=identity_id,
                email=email,
                name=display_name.strip(),
                firstname=firstname,
                lastname=lastname,
                cohort_id=cohort_id,
                created_at=created_at,
            ),
            identity_id=identity_id,
        )

    async def _token_taken(self, db: AsyncSession, token: str) -> bool:
        token_data = await self.tokens.get_token_data(db, token)
        return token_data is None or token_data.is_used

    def _partial_failure(self, identity_id: int, email: str, reason: str) -> RegistrationOutcome:
        logger.error(
            f"PARTIAL FAILURE: identity {identity_id} ({email}) exists without a profile; "
            f"manual reconciliation required ({reason})"
        )
        return RegistrationOutcome(
            status=RegistrationStatus.PARTIAL_FAILURE,
            identity_id=identity_id,
            message="Your account was created but its profile could not be saved. Please contact staff.",
        )


# Singleton instance
_registrar: Optional[CredentialRegistrar] = None


def get_registrar() -> CredentialRegistrar:
    """Get or create the registrar singleton"""
    global _registrar
    if _registrar is None:
        _registrar = CredentialRegistrar()
    return _registrar
