"""
Invitation token endpoints
Staff issue, list and (re)send invitations; the verify endpoint is public
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import require_roles
from app.api.errors import http_error
from app.core.exceptions import NotifierUnavailable, StoreUnavailable, ValidationError
from app.db.session import get_db
from app.models import InvitationToken, TokenStatus, User, UserRole
from app.schemas.invitation import (
    TokenCheck,
    TokenCreate,
    TokenDispatchResponse,
    TokenIssueResponse,
    TokenResponse,
)
from app.services.cohort_service import cohort_service
from app.services.invitation_dispatch import build_signup_link, get_invitation_dispatcher
from app.services.token_service import get_token_service

logger = logging.getLogger(__name__)

router = APIRouter()
token_service = get_token_service()
dispatcher = get_invitation_dispatcher()


def to_response(token: InvitationToken) -> TokenResponse:
    return TokenResponse(
        id=token.id,
        token=token.token,
        email=token.email,
        cohort_id=token.cohort_id,
        is_used=token.is_used,
        expires_at=token.expires_at,
        created_at=token.created_at,
        status=token_service.token_status(token),
        signup_link=build_signup_link(token),
    )


async def send_invitation(token: InvitationToken) -> Optional[str]:
    """Dispatch an invitation; returns the error message on failure"""
    try:
        await run_in_threadpool(dispatcher.dispatch, token)
    except NotifierUnavailable as e:
        return e.message
    return None


@router.post("", response_model=TokenIssueResponse, status_code=status.HTTP_201_CREATED)
async def issue_token(
    token_data: TokenCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.STAFF))
):
    """
    Issue an invitation token (ADMIN or STAFF).

    The token is created first; the email is sent afterwards when requested.
    An email failure is reported next to the created token, never rolled back.
    """
    try:
        cohort = await cohort_service.get_cohort(db, token_data.cohort_id)
        if cohort is None:
            raise ValidationError(f"Cohort {token_data.cohort_id} not found", field="cohort_id")

        token = await token_service.issue_token(
            db=db,
            email=token_data.email,
            cohort_id=token_data.cohort_id,
        )
    except (StoreUnavailable, ValidationError) as e:
        raise http_error(e)

    logger.info(f"User {current_user.id} issued invitation token {token.id}")

    email_error = None
    if token_data.send_email:
        email_error = await send_invitation(token)

    return TokenIssueResponse(
        token=to_response(token),
        email_sent=token_data.send_email and email_error is None,
        email_error=email_error,
    )


@router.get("", response_model=List[TokenResponse])
async def list_tokens(
    email: Optional[str] = Query(None, description="Only tokens bound to this email"),
    token_status: Optional[TokenStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.STAFF))
):
    """
    List invitation tokens, newest first (ADMIN or STAFF).
    """
    try:
        tokens = await token_service.list_tokens(
            db, email=email, status=token_status, skip=skip, limit=limit
        )
    except StoreUnavailable as e:
        raise http_error(e)

    return [to_response(token) for token in tokens]


@router.get("/verify", response_model=TokenCheck, response_model_exclude_none=True)
async def verify_token(
    token: Optional[str] = Query(None, description="Invitation token"),
    db: AsyncSession = Depends(get_db)
):
    """
    Check a token before showing the sign-up form (PUBLIC - no auth required).

    Used, expired and unknown tokens all get the same answer.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token parameter is required"
        )

    if not await token_service.verify_token(db, token):
        return TokenCheck(valid=False)

    token_data = await token_service.get_token_data(db, token)
    if not token_data:
        return TokenCheck(valid=False)

    return TokenCheck(valid=True, email=token_data.email)


@router.post("/{token_id}/send", response_model=TokenDispatchResponse)
async def resend_invitation(
    token_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.STAFF))
):
    """
    Send (or resend) the invitation email for an active token (ADMIN or STAFF).
    """
    try:
        token = await token_service.get_token_by_id(db, token_id)
    except StoreUnavailable as e:
        raise http_error(e)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Token with ID {token_id} not found"
        )

    token_state = token_service.token_status(token)
    if token_state != TokenStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Token is {token_state.value}; only active tokens can be sent"
        )

    email_error = await send_invitation(token)
    return TokenDispatchResponse(
        token_id=token.id,
        email_sent=email_error is None,
        email_error=email_error,
    )
