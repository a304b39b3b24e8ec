"""
Domain errors raised by the services.

Each error knows the HTTP status and the stable ``code`` it is reported with;
``partner_app.main`` turns them into ``{"success": false, ...}`` bodies.
"""
from typing import Any, Dict, Optional

from fastapi import status


class ServiceError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "code": self.code, "message": self.message, **self.extra}


class ValidationError(ServiceError):
    code = "validation_error"
    default_message = "Name, email and password are required"


class InvalidInputError(ServiceError):
    code = "invalid_input"
    default_message = "Please enter a valid 6-digit OTP"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


# OTP

class ExpiredError(ServiceError):
    status_code = status.HTTP_410_GONE
    code = "otp_expired"
    default_message = "OTP expired. Please request a new one."


class MismatchError(ServiceError):
    code = "otp_mismatch"
    default_message = "Invalid OTP. Please check and try again."


class AlreadyConsumedError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "otp_already_used"
    default_message = "OTP already used. Please request a new one."


class AlreadyVerifiedError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_verified"
    default_message = "Email already verified!"


class EmailInUseError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "email_in_use"
    default_message = "Email already in use"


# Pairing

class AlreadyRequestedError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_requested"
    default_message = "Request already sent"


class SelfRequestError(ServiceError):
    code = "self_request"
    default_message = "Cannot send request to yourself"


class NoPartnerError(ServiceError):
    code = "no_partner"
    default_message = "No partner to remove"


class AlreadyPairedError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_paired"
    default_message = "One of you already has a partner"


# Authentication

class NotAuthenticatedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "not_authenticated"
    default_message = "Not logged in"


class InvalidCredentialsError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_credentials"
    default_message = "Invalid email or password. Please check and try again."


class NotVerifiedError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "not_verified"
    default_message = "Please verify your email with OTP before logging in."

    def __init__(self, message: Optional[str] = None, **extra: Any):
        extra.setdefault("needs_verification", True)
        super().__init__(message, **extra)


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Not allowed"


class RateLimitedError(ServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "rate_limited"
    default_message = "Too many attempts. Please try again later."


# Infrastructure

class TransientStoreError(ServiceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "store_unavailable"
    default_message = "Service temporarily unavailable. Please try again."
