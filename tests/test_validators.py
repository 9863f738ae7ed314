from conftest import VALID_ENROLLMENT
from utils.validators import (
    clear_field_error,
    normalize_field,
    validate_age,
    validate_download_form,
    validate_enrollment_form,
    validate_phone,
    validate_pincode,
    validate_signin_form,
    validate_signup_form,
)


def test_phone_rules() -> None:
    assert validate_phone("9876543210") is None
    assert validate_phone("1234567890") == "Please enter a valid Indian mobile number"
    assert validate_phone("98765") == "Phone number must be exactly 10 digits"
    assert validate_phone("") == "Phone number is required"


def test_pincode_rules() -> None:
    assert validate_pincode("560001") is None
    assert validate_pincode("56001") == "Pincode must be exactly 6 digits"
    assert validate_pincode("56000a") == "Pincode must be exactly 6 digits"
    assert validate_pincode("") == "Pincode is required"


def test_age_is_optional_but_bounded() -> None:
    assert validate_age("") is None
    assert validate_age("13") is None
    assert validate_age("100") is None
    assert validate_age("12") is not None
    assert validate_age("101") is not None


def test_input_normalisation() -> None:
    assert normalize_field("phone", "98765-43210 99") == "9876543210"
    assert normalize_field("pincode", "560 0019") == "560001"
    assert normalize_field("age", "2a4") == "24"
    assert normalize_field("referral_code", "friend20") == "FRIEND20"
    assert normalize_field("name", "Ravi") == "Ravi"
    assert normalize_field("name", None) == ""


def test_valid_enrollment_has_no_errors() -> None:
    assert validate_enrollment_form(VALID_ENROLLMENT) == {}


def test_enrollment_collects_every_error() -> None:
    errors = validate_enrollment_form({"name": "R", "email": "bad", "phone": "123"})
    assert set(errors) == {"name", "email", "phone", "state", "pincode"}
    assert errors["name"] == "Name must be at least 2 characters"
    assert errors["email"] == "Please enter a valid email address"


def test_unverified_referral_code_blocks_submit() -> None:
    form = dict(VALID_ENROLLMENT, referral_code="FRIEND20")
    assert validate_enrollment_form(form) == {"referral_code": "Please verify your code first"}
    assert validate_enrollment_form(form, code_verified=True) == {}


def test_clear_field_error_only_drops_that_field() -> None:
    errors = {"name": "Name is required", "phone": "Phone number is required"}
    assert clear_field_error(errors, "name") == {"phone": "Phone number is required"}
    assert errors == {"name": "Name is required", "phone": "Phone number is required"}


def test_signup_form() -> None:
    form = {
        "full_name": "Ravi Kumar",
        "email": "ravi@example.com",
        "password": "secret1",
        "confirm_password": "secret1",
    }
    assert validate_signup_form(form) == {}
    errors = validate_signup_form(dict(form, password="abc", confirm_password="abd", referral_code="SHORT"))
    assert errors["password"] == "Password must be at least 6 characters"
    assert errors["confirm_password"] == "Passwords do not match"
    assert errors["referral_code"] == "Referral code must be 8 characters"


def test_signin_form() -> None:
    assert validate_signin_form({"email": "ravi@example.com", "password": "x"}) == {}
    assert set(validate_signin_form({})) == {"email", "password"}


def test_download_form_accepts_international_phone() -> None:
    form = {"name": "Ravi", "email": "ravi@example.com", "phone": "+1 (415) 555-0100", "product_code": "P1"}
    assert validate_download_form(form) == {}
    assert validate_download_form(dict(form, phone="abc"))["phone"] == "Please enter a valid phone number"
    assert set(validate_download_form({})) == {"name", "email", "phone", "product_code"}
