"""Canonical customer records.

Customer data arrives from the profile API, from saved browser storage and
from checkout forms, each with its own spelling of the same fields. The
normalizer collapses all of them onto one snake_case shape. It is pure and
idempotent: normalizing a normalized customer returns an equal record.
"""

from collections.abc import Mapping
from enum import Enum


class CustomerType(Enum):
    INDIVIDUAL = "INDIVIDUAL"
    COMPANY = "COMPANY"


CUSTOMER_FIELDS = (
    "id",
    "customer_type",
    "first_name",
    "last_name",
    "company_name",
    "company_reg_number",
    "email",
    "phone_number",
    "date_of_birth",
    "national_id_number",
    "address",
    "city",
    "postcode",
    "marketing_consent",
    "name",
)

FIELD_ALIASES = {
    "id": ("id", "_id", "customer_id", "customerId", "user_id", "userId"),
    "customer_type": ("customer_type", "customerType", "type"),
    "first_name": ("first_name", "firstName", "firstname", "given_name", "givenName"),
    "last_name": ("last_name", "lastName", "lastname", "surname", "family_name", "familyName"),
    "company_name": ("company_name", "companyName", "organization_name", "organizationName"),
    "company_reg_number": (
        "company_reg_number",
        "companyRegNumber",
        "company_registration_number",
        "companyRegistrationNumber",
    ),
    "email": ("email", "emailAddress", "email_address", "customerEmail", "customer_email", "Email"),
    "phone_number": ("phone_number", "phoneNumber", "phone", "mobile", "contactNumber", "contact_number"),
    "date_of_birth": ("date_of_birth", "dateOfBirth", "dob"),
    "national_id_number": ("national_id_number", "nationalIdNumber", "NINumber", "ni_number", "niNumber"),
    "address": ("address", "address_line", "addressLine", "street", "line1"),
    "city": ("city", "town"),
    "postcode": ("postcode", "postCode", "zipcode", "zip_code", "zipCode", "postal_code", "postalCode"),
    "marketing_consent": ("marketing_consent", "marketingConsent"),
}

_RAW_NAME_KEYS = ("name", "full_name", "fullName", "displayName", "display_name", "customerName")


def _first_present(raw: Mapping, keys) -> object:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _customer_type(value) -> str:
    candidate = _text(value).upper()
    if candidate in CustomerType.__members__:
        return candidate
    return CustomerType.INDIVIDUAL.value


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on")
    return bool(value)


def canonical_fields(raw) -> dict:
    """Rename whichever known aliases ``raw`` carries to their canonical keys.

    Values are passed through untouched (blanks included), which makes the
    result suitable as a patch over an already-normalized customer. A raw
    full name is kept under ``name``.
    """
    if not isinstance(raw, Mapping):
        return {}
    fields = {}
    for field_name, keys in FIELD_ALIASES.items():
        present = [key for key in keys if key in raw]
        if present:
            fields[field_name] = _first_present(raw, present)
            if fields[field_name] is None:
                fields[field_name] = raw[present[0]]
    raw_name = _first_present(raw, _RAW_NAME_KEYS)
    if raw_name is not None:
        fields["name"] = raw_name
    return fields


def derive_name(customer: Mapping) -> str:
    if customer.get("customer_type") == CustomerType.COMPANY.value and customer.get("company_name"):
        return customer["company_name"]
    return f"{customer.get('first_name') or ''} {customer.get('last_name') or ''}".strip()


def normalize_customer(raw) -> dict | None:
    """Normalize a customer record from any known source shape.

    ``None`` and non-mapping input yield ``None``; an empty mapping yields
    an empty dict. Every other input yields a dict holding exactly the
    canonical customer fields.
    """
    if raw is None or not isinstance(raw, Mapping):
        return None
    if not raw:
        return {}

    customer = {}
    for field_name, keys in FIELD_ALIASES.items():
        customer[field_name] = _first_present(raw, keys)

    customer["id"] = _text(customer["id"]) or None
    customer["customer_type"] = _customer_type(customer["customer_type"])
    customer["marketing_consent"] = _as_bool(customer["marketing_consent"])
    for field_name in CUSTOMER_FIELDS:
        if field_name in ("id", "customer_type", "marketing_consent", "name"):
            continue
        customer[field_name] = _text(customer[field_name])

    if customer["email"]:
        customer["email"] = customer["email"].lower()
    if customer["postcode"]:
        customer["postcode"] = customer["postcode"].upper()

    if not customer["first_name"] and not customer["last_name"]:
        raw_name = _text(_first_present(raw, _RAW_NAME_KEYS))
        if raw_name and raw_name != customer["company_name"]:
            first, _, last = raw_name.partition(" ")
            customer["first_name"] = first
            customer["last_name"] = last.strip()

    customer["name"] = derive_name(customer)
    return {field_name: customer[field_name] for field_name in CUSTOMER_FIELDS}


def customer_display_name(customer) -> str:
    normalized = normalize_customer(customer) or {}
    return normalized.get("name") or normalized.get("email") or ""
