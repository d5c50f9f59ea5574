from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.api.dependencies import get_current_active_user
from app.api.errors import http_error
from app.core.config import settings
from app.core.exceptions import OnboardingError
from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.user import (
    AccountResponse,
    SignUpRequest,
    SignUpResponse,
    Token,
    UserLogin,
)
from app.services.auth_service import auth_service
from app.services.registration_service import get_registrar

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/auth", tags=["Authentication"])
registrar = get_registrar()


# Register a new account from an invitation
@router.post("/sign-up", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    sign_up_data: SignUpRequest,
    db: AsyncSession = Depends(get_db)
) -> SignUpResponse:
    """
    Register with an invitation token.
    Sign-up is by invitation only: the email must be the one the token was issued for.
    """
    try:
        outcome = await registrar.register(
            db,
            email=sign_up_data.email,
            password=sign_up_data.password,
            display_name=sign_up_data.display_name,
            token=sign_up_data.token,
        )
    except OnboardingError as e:
        logger.info(f"Sign up rejected for {sign_up_data.email}: {e.code}")
        raise http_error(e)

    if not outcome.ok:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": outcome.message,
                "code": outcome.status.value,
                "field": None,
            }
        )

    account = outcome.account
    return SignUpResponse(
        message="Thanks for signing up! You can now sign in.",
        redirect_to=settings.SIGN_IN_PATH,
        account=AccountResponse(
            id=account.id,
            email=account.email,
            name=account.name,
            firstname=account.firstname,
            lastname=account.lastname,
            cohort_id=account.cohort_id,
            role=UserRole.TRAINEE,
            created_at=account.created_at,
        )
    )


# Authenticate user and return JWT token
@router.post("/login", response_model=Token)
async def login(
    user_credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
) -> Token:
    """
    Authenticate user and return JWT token.
    Implements account locking after failed attempts.
    """

    user = await auth_service.authenticate_user(
        db, user_credentials.email, user_credentials.password
    )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return auth_service.create_token_response(user)


# Get current authenticated user information
@router.get("/me", response_model=AccountResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
) -> AccountResponse:
    """
    Get current authenticated account information.
    """
    return auth_service.account_response(current_user)
