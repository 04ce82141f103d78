"""Customer details captured on the checkout's details step."""

import re

from checkout.customer.normalization import CustomerType, canonical_fields, normalize_customer
from checkout.utils.merge import deep_merge

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_REGEX = re.compile(r"^\+?[0-9]{10,15}$")
UK_POSTCODE_REGEX = re.compile(r"^[A-Z]{1,2}[0-9][A-Z0-9]? ?[0-9][A-Z]{2}$", re.IGNORECASE)
NI_NUMBER_REGEX = re.compile(r"^[A-Z]{2}[0-9]{6}[A-Z]$", re.IGNORECASE)


def is_valid_email(value) -> bool:
    return bool(value) and bool(EMAIL_REGEX.match(str(value).strip()))


def is_valid_phone(value) -> bool:
    if not value:
        return False
    compact = re.sub(r"[\s\-()]", "", str(value))
    return bool(PHONE_REGEX.match(compact))


def is_valid_uk_postcode(value) -> bool:
    if not value:
        return False
    return bool(UK_POSTCODE_REGEX.match(str(value).strip()))


def is_valid_ni_number(value) -> bool:
    if not value:
        return False
    return bool(NI_NUMBER_REGEX.match(re.sub(r"\s", "", str(value))))


def format_ni_number(value) -> str:
    """Format an NI number as ``AB 12 34 56 C``; other input is returned upper-cased."""
    compact = re.sub(r"\s", "", str(value or "")).upper()
    if not NI_NUMBER_REGEX.match(compact):
        return compact
    return f"{compact[:2]} {compact[2:4]} {compact[4:6]} {compact[6:8]} {compact[8]}"


def validate_customer_details(customer) -> dict[str, list[str]]:
    """Validate a customer record, returning error messages keyed by field.

    An empty dict means the details are complete and well-formed.
    """
    details = normalize_customer(customer) or {}
    errors: dict[str, list[str]] = {}

    def add(field_name: str, message: str) -> None:
        errors.setdefault(field_name, []).append(message)

    if details.get("customer_type") == CustomerType.COMPANY.value:
        if not details.get("company_name"):
            add("company_name", "Company name is required")
        if not details.get("company_reg_number"):
            add("company_reg_number", "Company registration number is required")
        if details.get("first_name") and not details.get("last_name"):
            add("last_name", "Contact last name is required")
    else:
        if not details.get("first_name"):
            add("first_name", "First name is required")
        if not details.get("last_name"):
            add("last_name", "Last name is required")
        if not details.get("date_of_birth"):
            add("date_of_birth", "Date of birth is required")

    if not details.get("email"):
        add("email", "Email is required")
    elif not is_valid_email(details["email"]):
        add("email", "Please enter a valid email address")

    if not details.get("phone_number"):
        add("phone_number", "Phone number is required")
    elif not is_valid_phone(details["phone_number"]):
        add("phone_number", "Please enter a valid phone number")

    if not details.get("address"):
        add("address", "Address is required")

    if not details.get("postcode"):
        add("postcode", "Postcode is required")
    elif not is_valid_uk_postcode(details["postcode"]):
        add("postcode", "Please enter a valid UK postcode")

    if details.get("national_id_number") and not is_valid_ni_number(details["national_id_number"]):
        add("national_id_number", "Please enter a valid National Insurance number (e.g. AB123456C)")

    return errors


def resolve_customer_defaults(profile=None, saved=None, session=None) -> dict:
    """Combine customer sources into the details form's starting values.

    Later sources override earlier ones: the authenticated profile supplies
    defaults, saved details override it, and edits made during this checkout
    session override both. Blank values never erase an earlier source.
    """
    merged: dict = {}
    for source in (profile, saved, session):
        supplied = {key: value for key, value in canonical_fields(source).items() if value not in (None, "")}
        merged = deep_merge(merged, supplied)
    if not merged:
        return {}
    if merged.get("first_name") or merged.get("last_name"):
        merged.pop("name", None)
    return normalize_customer(merged) or {}
