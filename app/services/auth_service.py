"""
Authentication service: identity creation, password policy and JWT handling
"""
import logging
import re
from datetime import timedelta
from typing import List, Optional

from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_
from sqlalchemy.orm import selectinload

from app.core.clock import utcnow
from app.core.config import settings
from app.core.exceptions import RegistrationError
from app.models.user import Profile, User
from app.schemas.user import Token, AccountResponse

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service for identities, JWT and password management"""

    def __init__(self):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
        self.algorithm = settings.ALGORITHM
        self.secret_key = settings.SECRET_KEY
        self.access_token_expire_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt"""
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return self.pwd_context.verify(plain_password, hashed_password)

    def password_problems(self, password: str) -> List[str]:
        """Return the password policy rules the password breaks"""
        problems = []
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            problems.append(f"at least {settings.MIN_PASSWORD_LENGTH} characters")
        if settings.REQUIRE_PASSWORD_UPPERCASE and not re.search(r"[A-Z]", password):
            problems.append("an uppercase letter")
        if settings.REQUIRE_PASSWORD_LOWERCASE and not re.search(r"[a-z]", password):
            problems.append("a lowercase letter")
        if settings.REQUIRE_PASSWORD_NUMBERS and not re.search(r"\d", password):
            problems.append("a number")
        if settings.REQUIRE_PASSWORD_SPECIAL and not re.search(r"[^A-Za-z0-9]", password):
            problems.append("a special character")
        return problems

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token"""
        to_encode = data.copy()

        if expires_delta:
            expire = utcnow() + expires_delta
        else:
            expire = utcnow() + timedelta(minutes=self.access_token_expire_minutes)

        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)
        return encoded_jwt

    def decode_access_token(self, token: str) -> Optional[dict]:
        """Decode and validate a JWT access token"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            return payload
        except JWTError:
            return None

    async def create_identity(self, db: AsyncSession, email: str, password: str) -> User:
        """
        Create a durable identity (email + password credential).

        Commits on its own: once this returns, the identity exists whatever
        happens to the caller's later steps.

        Raises:
            RegistrationError: weak password or email already registered
        """
        problems = self.password_problems(password)
        if problems:
            raise RegistrationError("Password must contain " + ", ".join(problems))

        existing = await db.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise RegistrationError("Email already registered")

        user = User(
            email=email,
            password_hash=self.hash_password(password),
            is_active=True,
            failed_login_attempts=0,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as e:
            # Lost a race on the unique email index
            await db.rollback()
            logger.info(f"Identity creation rejected for {email}: {str(e.orig)}")
            raise RegistrationError("Email already registered") from e

        await db.refresh(user)
        logger.info(f"Identity {user.id} created for {email}")
        return user

    async def identity_pending(self, db: AsyncSession, email: str) -> bool:
        """True if an identity exists for this email but has no profile yet"""
        result = await db.execute(
            select(User.id, Profile.id)
            .outerjoin(Profile, Profile.user_id == User.id)
            .where(User.email == email)
        )
        row = result.first()
        return row is not None and row[1] is None

    async def delete_identity(self, db: AsyncSession, user_id: int) -> None:
        """Remove an identity that never received a profile"""
        await db.execute(delete(User).where(User.id == user_id))
        await db.commit()
        logger.info(f"Identity {user_id} removed")

    async def get_user(self, db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(
            select(User).options(selectinload(User.profile)).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def authenticate_user(self, db: AsyncSession, email: str, password: str) -> Optional[User]:
        """Authenticate a user with email and password"""
        result = await db.execute(
            select(User)
            .options(selectinload(User.profile))
            .where(
                and_(
                    User.email == email,
                    User.is_active.is_(True)
                )
            )
        )
        user = result.scalar_one_or_none()

        if not user:
            return None

        now = utcnow()

        # Check if account is locked
        if user.locked_until and user.locked_until > now:
            return None

        # Verify password
        if not self.verify_password(password, user.password_hash):
            # Increment failed attempts
            user.failed_login_attempts = (user.failed_login_attempts or 0) + 1

            # Lock account after 5 failed attempts for 30 minutes
            if user.failed_login_attempts >= 5:
                user.locked_until = now + timedelta(minutes=30)
                logger.warning(f"Account {user.email} locked after repeated failed logins")

            await db.commit()
            return None

        # Reset failed attempts on successful login
        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login = now
        await db.commit()

        return user

    def account_response(self, user: User) -> AccountResponse:
        profile = user.profile
        return AccountResponse(
            id=user.id,
            email=user.email,
            name=profile.display_name if profile else user.email,
            firstname=profile.firstname if profile else None,
            lastname=profile.lastname if profile else None,
            cohort_id=profile.cohort_id if profile else None,
            role=profile.role if profile else None,
            created_at=user.created_at,
        )

    def create_token_response(self, user: User) -> Token:
        """Create a complete token response with account data"""
        role = user.profile.role.value if user.profile else None
        access_token = self.create_access_token(
            data={"sub": str(user.id), "email": user.email, "role": role}
        )

        return Token(
            access_token=access_token,
            token_type="bearer",
            expires_in=self.access_token_expire_minutes * 60,
            user=self.account_response(user)
        )


# Global auth service instance
auth_service = AuthService()
