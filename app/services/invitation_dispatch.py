"""
Invitation Dispatch
Formats the sign-up link for a token and hands it to a notifier.

Dispatch never touches token state: a token is redeemable whether or not
its email was ever delivered.
"""
import logging
from datetime import datetime
from typing import Optional, Protocol

from app.core.config import settings
from app.core.exceptions import NotifierUnavailable
from app.models.invitation_token import InvitationToken
from app.services.email_service import get_email_service

logger = logging.getLogger(__name__)

INVITATION_SUBJECT = "Welcome! Complete Your Account Setup"


class Notifier(Protocol):
    def send(self, to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> str:
        ...


def format_expiration(expires_at: datetime) -> str:
    """e.g. 'Monday, January 5, 2026 at 03:00 PM UTC'"""
    return f"{expires_at:%A, %B} {expires_at.day}, {expires_at:%Y at %I:%M %p} UTC"


def build_signup_link(token: InvitationToken, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.FRONTEND_URL).rstrip("/")
    return f"{base}{settings.SIGN_UP_PATH}?token={token.token}"


class InvitationDispatcher:
    """Sends invitation emails"""

    def __init__(self, notifier: Optional[Notifier] = None, base_url: Optional[str] = None):
        self._notifier = notifier
        self.base_url = base_url

    @property
    def notifier(self) -> Notifier:
        if self._notifier is None:
            self._notifier = get_email_service()
        return self._notifier

    def dispatch(self, token: InvitationToken, notifier: Optional[Notifier] = None) -> bool:
        """
        Email the sign-up link for a token to its bound address.

        Args:
            token: Issued token (read only)
            notifier: Override for the configured notifier

        Returns:
            True once the notifier accepted the message

        Raises:
            NotifierUnavailable: if delivery could not be requested
        """
        notifier = notifier or self.notifier
        signup_link = build_signup_link(token, self.base_url)
        context = {
            "subject": INVITATION_SUBJECT,
            "signup_link": signup_link,
            "to_email": token.email,
            "expiration_date": format_expiration(token.expires_at),
        }

        email_service = get_email_service()
        html_body = email_service.render("signup_invitation", **context)
        text_body = email_service.render("signup_invitation_text", **context)

        try:
            delivery_id = notifier.send(token.email, INVITATION_SUBJECT, html_body, text_body)
        except NotifierUnavailable:
            logger.warning(f"Invitation email for token {token.id} could not be sent")
            raise

        logger.info(f"Invitation email for token {token.id} sent to {token.email} (delivery {delivery_id})")
        return True


# Singleton instance
_dispatcher: Optional[InvitationDispatcher] = None


def get_invitation_dispatcher() -> InvitationDispatcher:
    """Get or create the dispatcher singleton"""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = InvitationDispatcher()
    return _dispatcher
