"""Tests for customer normalization across source shapes."""

from checkout.customer.normalization import (
    CUSTOMER_FIELDS,
    canonical_fields,
    customer_display_name,
    normalize_customer,
)


class TestNullHandling:
    def test_none(self):
        assert normalize_customer(None) is None

    def test_non_mapping(self):
        assert normalize_customer(["not", "a", "customer"]) is None

    def test_empty(self):
        assert normalize_customer({}) == {}


class TestFallbackChains:
    def test_profile_api_shape(self):
        customer = normalize_customer(
            {
                "_id": "u-1",
                "firstName": "Ada",
                "lastName": "Lovelace",
                "emailAddress": "ADA@Example.com",
                "mobile": "07700900123",
                "dob": "1990-12-10",
                "zipcode": "sw1a 2aa",
                "NINumber": "AB123456C",
            }
        )

        assert customer["id"] == "u-1"
        assert customer["first_name"] == "Ada"
        assert customer["last_name"] == "Lovelace"
        assert customer["email"] == "ada@example.com"
        assert customer["phone_number"] == "07700900123"
        assert customer["date_of_birth"] == "1990-12-10"
        assert customer["postcode"] == "SW1A 2AA"
        assert customer["national_id_number"] == "AB123456C"

    def test_first_alias_in_chain_wins(self):
        customer = normalize_customer({"email": "first@example.com", "customerEmail": "second@example.com"})
        assert customer["email"] == "first@example.com"

    def test_blank_values_fall_through(self):
        customer = normalize_customer({"phone": "", "contactNumber": "02079460000"})
        assert customer["phone_number"] == "02079460000"

    def test_only_canonical_fields_are_returned(self):
        customer = normalize_customer({"firstName": "Ada", "favouriteColour": "green"})
        assert tuple(customer) == CUSTOMER_FIELDS


class TestDerivedName:
    def test_individual(self):
        assert normalize_customer({"first_name": "Ada", "last_name": "Lovelace"})["name"] == "Ada Lovelace"

    def test_company_uses_company_name(self):
        customer = normalize_customer({"customerType": "company", "companyName": "Analytical Engines Ltd"})
        assert customer["customer_type"] == "COMPANY"
        assert customer["name"] == "Analytical Engines Ltd"

    def test_unknown_type_is_individual(self):
        assert normalize_customer({"customer_type": "robot"})["customer_type"] == "INDIVIDUAL"

    def test_full_name_is_split_when_parts_are_missing(self):
        customer = normalize_customer({"displayName": "Grace Brewster Hopper"})
        assert customer["first_name"] == "Grace"
        assert customer["last_name"] == "Brewster Hopper"
        assert customer["name"] == "Grace Brewster Hopper"


class TestIdempotence:
    def test_normalizing_twice_changes_nothing(self):
        sources = [
            {"_id": 7, "firstName": "Ada", "lastName": "Lovelace", "Email": "Ada@Example.com"},
            {"customerType": "COMPANY", "companyName": "ACME", "phone": "0207 946 0000", "marketingConsent": "yes"},
            {"fullName": "Alan Turing", "postal_code": "cb2 1tn"},
            {"name": "Cher"},
        ]
        for raw in sources:
            once = normalize_customer(raw)
            assert normalize_customer(once) == once


class TestHelpers:
    def test_display_name_falls_back_to_email(self):
        assert customer_display_name({"email": "x@example.com"}) == "x@example.com"

    def test_canonical_fields_keeps_blanks(self):
        assert canonical_fields({"firstName": "", "zip_code": "N1 9GU"}) == {"first_name": "", "postcode": "N1 9GU"}
