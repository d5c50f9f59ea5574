"""
Exception types for invitation and sign-up flows.

ValidationError and AuthError are user-correctable and carry no side effects.
RegistrationError means the identity subsystem refused to create the account.
StoreUnavailable and NotifierUnavailable wrap transient infrastructure failures.
"""
from typing import Optional


class OnboardingError(Exception):
    """Base exception for all onboarding errors."""

    code = "onboarding_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(OnboardingError):
    """Raised when input is missing or malformed."""

    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        """Initialize the exception.

        Args:
            message: Human readable description.
            field: Name of the offending input field, if known.
        """
        self.field = field
        super().__init__(message)


class AuthError(OnboardingError):
    """Raised when an invitation is invalid, expired, used or mismatched."""

    code = "invalid_invitation"


class RegistrationError(OnboardingError):
    """Raised when the identity subsystem rejects account creation."""

    code = "registration_failed"


class StoreUnavailable(OnboardingError):
    """Raised when the token store cannot be reached in time."""

    code = "store_unavailable"


class NotifierUnavailable(OnboardingError):
    """Raised when the invitation email could not be handed to the notifier."""

    code = "notifier_unavailable"
