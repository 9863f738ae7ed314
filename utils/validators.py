"""
Form validators shared by the enrollment, sign-up, sign-in and download forms.

Every validator takes a mapping of field → raw value and returns a mapping
of field → error message. A missing key means the field is valid.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INDIAN_MOBILE_RE = re.compile(r"^[6-9]\d{9}$")
INTERNATIONAL_PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")
PINCODE_RE = re.compile(r"^\d{6}$")
NON_DIGITS_RE = re.compile(r"\D")
URL_RE = re.compile(r"^https?://")

MIN_AGE = 13
MAX_AGE = 100
MIN_PASSWORD_LENGTH = 6
SIGNUP_REFERRAL_CODE_LENGTH = 8

INDIAN_STATES = (
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh", "Goa",
    "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand", "Karnataka", "Kerala",
    "Madhya Pradesh", "Maharashtra", "Manipur", "Meghalaya", "Mizoram", "Nagaland",
    "Odisha", "Punjab", "Rajasthan", "Sikkim", "Tamil Nadu", "Telangana", "Tripura",
    "Uttar Pradesh", "Uttarakhand", "West Bengal", "Delhi", "Jammu and Kashmir",
    "Ladakh", "Puducherry", "Chandigarh", "Dadra and Nagar Haveli and Daman and Diu",
    "Lakshadweep", "Andaman and Nicobar Islands",
)

QUALIFICATIONS = (
    "10th Pass", "12th Pass", "Diploma", "Graduate", "Post Graduate", "PhD", "Other",
)


def _value(form: Mapping[str, object], field: str) -> str:
    raw = form.get(field)
    return "" if raw is None else str(raw)


def digits_only(value: str) -> str:
    return NON_DIGITS_RE.sub("", value or "")


def normalize_field(field: str, value: Optional[str]) -> str:
    """Apply the input filters used while typing into the enrollment form."""
    value = value or ""
    if field == "phone":
        return digits_only(value)[:10]
    if field == "pincode":
        return digits_only(value)[:6]
    if field == "age":
        return digits_only(value)[:3]
    if field in ("referral_code", "coupon_code"):
        return value.upper()
    return value


def clear_field_error(errors: Mapping[str, str], field: str) -> dict[str, str]:
    """Return errors without the entry for a field that just changed."""
    return {k: v for k, v in errors.items() if k != field}


# Single-field rules. Each returns an error message or None.

def validate_name(value: str, label: str = "Name") -> Optional[str]:
    if not value.strip():
        return f"{label} is required"
    if len(value.strip()) < 2:
        return f"{label} must be at least 2 characters"
    return None


def validate_email(value: str) -> Optional[str]:
    if not value.strip():
        return "Email is required"
    if not EMAIL_RE.match(value):
        return "Please enter a valid email address"
    return None


def validate_phone(value: str) -> Optional[str]:
    """10-digit Indian mobile number starting with 6, 7, 8 or 9."""
    if not value.strip():
        return "Phone number is required"
    digits = digits_only(value)
    if len(digits) != 10:
        return "Phone number must be exactly 10 digits"
    if not INDIAN_MOBILE_RE.match(digits):
        return "Please enter a valid Indian mobile number"
    return None


def validate_pincode(value: str) -> Optional[str]:
    if not value.strip():
        return "Pincode is required"
    if not PINCODE_RE.match(value):
        return "Pincode must be exactly 6 digits"
    return None


def validate_age(value: str) -> Optional[str]:
    """Optional field: empty is fine, otherwise an integer in [13, 100]."""
    if not value.strip():
        return None
    try:
        age = int(value.strip())
    except ValueError:
        return f"Age must be between {MIN_AGE} and {MAX_AGE}"
    if age < MIN_AGE or age > MAX_AGE:
        return f"Age must be between {MIN_AGE} and {MAX_AGE}"
    return None


def validate_password(value: str) -> Optional[str]:
    if not value:
        return "Password is required"
    if len(value) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return None


def validate_password_confirmation(password: str, confirmation: str) -> Optional[str]:
    if not confirmation:
        return "Please confirm your password"
    if password != confirmation:
        return "Passwords do not match"
    return None


def validate_photo_link(value: str) -> Optional[str]:
    if value and not URL_RE.match(value):
        return "Please enter a valid URL starting with http:// or https://"
    return None


def _collect(errors: dict[str, str], field: str, message: Optional[str]) -> None:
    if message:
        errors[field] = message


# Whole-form validators

def validate_enrollment_form(form: Mapping[str, object], code_verified: bool = False) -> dict[str, str]:
    """
    Fields: name, email, phone, age, qualification, state, pincode, referral_code.

    A non-empty referral code must have been verified before submit.
    """
    errors: dict[str, str] = {}
    _collect(errors, "name", validate_name(_value(form, "name")))
    _collect(errors, "email", validate_email(_value(form, "email")))
    _collect(errors, "phone", validate_phone(_value(form, "phone")))
    _collect(errors, "age", validate_age(_value(form, "age")))
    if not _value(form, "state").strip():
        errors["state"] = "State is required"
    _collect(errors, "pincode", validate_pincode(_value(form, "pincode")))
    if _value(form, "referral_code").strip() and not code_verified:
        errors["referral_code"] = "Please verify your code first"
    return errors


def validate_signup_form(form: Mapping[str, object]) -> dict[str, str]:
    """Fields: full_name, email, password, confirm_password, referral_code."""
    errors: dict[str, str] = {}
    _collect(errors, "full_name", validate_name(_value(form, "full_name"), label="Full name"))
    _collect(errors, "email", validate_email(_value(form, "email")))
    password = _value(form, "password")
    _collect(errors, "password", validate_password(password))
    _collect(
        errors,
        "confirm_password",
        validate_password_confirmation(password, _value(form, "confirm_password")),
    )
    referral = _value(form, "referral_code")
    if referral and len(referral) != SIGNUP_REFERRAL_CODE_LENGTH:
        errors["referral_code"] = f"Referral code must be {SIGNUP_REFERRAL_CODE_LENGTH} characters"
    return errors


def validate_signin_form(form: Mapping[str, object]) -> dict[str, str]:
    errors: dict[str, str] = {}
    _collect(errors, "email", validate_email(_value(form, "email")))
    if not _value(form, "password"):
        errors["password"] = "Password is required"
    return errors


def validate_download_form(form: Mapping[str, object]) -> dict[str, str]:
    """Fields: name, email, phone, product_code. Phone may be international."""
    errors: dict[str, str] = {}
    if not _value(form, "name").strip():
        errors["name"] = "Name is required"
    _collect(errors, "email", validate_email(_value(form, "email")))
    phone = _value(form, "phone")
    if not phone.strip():
        errors["phone"] = "Phone number is required"
    elif not INTERNATIONAL_PHONE_RE.match(re.sub(r"[\s\-()]", "", phone)):
        errors["phone"] = "Please enter a valid phone number"
    if not _value(form, "product_code").strip():
        errors["product_code"] = "Product code is required"
    return errors
