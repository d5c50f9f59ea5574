"""
Mapping of onboarding errors to HTTP responses
"""
from fastapi import HTTPException, status

from app.core.exceptions import (
    OnboardingError,
    ValidationError,
    AuthError,
    RegistrationError,
    StoreUnavailable,
    NotifierUnavailable,
)

STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthError: status.HTTP_400_BAD_REQUEST,
    RegistrationError: status.HTTP_409_CONFLICT,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    NotifierUnavailable: status.HTTP_502_BAD_GATEWAY,
}


def http_error(exc: OnboardingError) -> HTTPException:
    """Build an HTTPException with a structured detail for the UI"""
    return HTTPException(
        status_code=STATUS_CODES.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={
            "message": exc.message,
            "code": exc.code,
            "field": getattr(exc, "field", None),
        }
    )
