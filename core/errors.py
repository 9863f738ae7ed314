"""
Exception hierarchy for the SkillRas learning platform.

Services raise these; the HTTP layer maps them to responses. Every message
is safe to show to the user as-is.
"""

from enum import Enum
from typing import Dict


class PlatformError(Exception):
    """Base class for all expected, user-facing failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PlatformError):
    """One or more form fields are invalid."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("Please correct the highlighted fields.")
        self.errors = dict(errors)


class ReferralFailure(str, Enum):
    """Why a referral/coupon code was rejected."""
    EMPTY = "empty"
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


REFERRAL_FAILURE_MESSAGES = {
    ReferralFailure.EMPTY: "Please enter a referral/coupon code",
    ReferralFailure.NOT_FOUND: "Invalid code. Please check your code and try again.",
    ReferralFailure.INACTIVE: "This code is no longer active.",
    ReferralFailure.EXPIRED: "This code has expired.",
    ReferralFailure.EXHAUSTED: "This code has reached its usage limit.",
}


class ReferralVerificationError(PlatformError):
    """Referral/coupon code could not be verified."""

    def __init__(self, reason: ReferralFailure):
        super().__init__(REFERRAL_FAILURE_MESSAGES[reason])
        self.reason = reason


class DataStoreError(PlatformError):
    """The data store rejected or failed a query."""

    status_code = 502


class AlreadyRegisteredError(PlatformError):
    """Unique email constraint violated."""

    status_code = 409

    def __init__(self, message: str = "This email is already registered. Please use a different email."):
        super().__init__(message)


class AuthError(PlatformError):
    """Authentication failed."""

    status_code = 401

    def __init__(self, message: str = "Invalid login credentials"):
        super().__init__(message)


class NotFoundError(PlatformError):
    """Requested entity does not exist."""

    status_code = 404


class InvalidProductCodeError(NotFoundError):
    def __init__(self):
        super().__init__("Invalid product code. Please check your code and try again.")


class NoAffiliateCodeError(NotFoundError):
    def __init__(self):
        super().__init__("No affiliate code found for your account.")


class CertificateNotAvailableError(PlatformError):
    """Certificate requested for a course that is not finished."""

    status_code = 403
