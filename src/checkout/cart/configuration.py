"""Configuration completeness for cart items.

Each service type needs a handful of details before it can be booked: a
test needs a date, a time and a centre; a card needs its type, and so on.
The required fields live in one static table so the completion percentage
and the list of missing fields can never disagree.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, TypedDict, Union

from checkout.order.normalization import ServiceType, normalize_service_type

# Recursive JSON value carried inside a configuration blob
JSONValue = Union[str, int, float, bool, None, list["JSONValue"], dict[str, "JSONValue"]]


class CardDetails(TypedDict, total=False):
    card_type: str
    card_number: str
    expiry_date: str
    notes: str


class TestDetails(TypedDict, total=False):
    test_date: str
    test_time: str
    test_centre: str
    test_centre_id: str
    voiceover: str
    special_requirements: str


class CourseDetails(TypedDict, total=False):
    start_date: str
    location: str
    course_type: str
    duration: str


class QualificationDetails(TypedDict, total=False):
    level: str
    type: str
    awarding_body: str


class CardConfig(TypedDict, total=False):
    card_details: CardDetails


class TestConfig(TypedDict, total=False):
    test_details: TestDetails


class CourseConfig(TypedDict, total=False):
    course_details: CourseDetails


class QualificationConfig(TypedDict, total=False):
    qualification_details: QualificationDetails


ItemConfiguration = Union[CardConfig, TestConfig, CourseConfig, QualificationConfig, dict[str, JSONValue]]


@dataclass(frozen=True)
class RequiredField:
    path: str
    label: str


REQUIRED_FIELDS: dict[ServiceType, tuple[RequiredField, ...]] = {
    ServiceType.CARD: (RequiredField("card_details.card_type", "Card Type"),),
    ServiceType.TEST: (
        RequiredField("test_details.test_date", "Test Date"),
        RequiredField("test_details.test_time", "Test Time"),
        RequiredField("test_details.test_centre", "Test Centre"),
    ),
    ServiceType.COURSE: (
        RequiredField("course_details.start_date", "Course Start Date"),
        RequiredField("course_details.location", "Course Location"),
        RequiredField("course_details.course_type", "Course Type"),
    ),
    ServiceType.QUALIFICATION: (
        RequiredField("qualification_details.level", "Qualification Level"),
        RequiredField("qualification_details.type", "Qualification Type"),
    ),
    ServiceType.OTHER: (),
}

_DEFAULT_CONFIGURATIONS: dict[ServiceType, dict] = {
    ServiceType.CARD: {"card_details": {"card_type": "", "card_number": "", "expiry_date": "", "notes": ""}},
    ServiceType.TEST: {
        "test_details": {
            "test_date": "",
            "test_time": "",
            "test_centre": "",
            "test_centre_id": "",
            "voiceover": "",
            "special_requirements": "",
        }
    },
    ServiceType.COURSE: {"course_details": {"start_date": "", "location": "", "course_type": "", "duration": ""}},
    ServiceType.QUALIFICATION: {"qualification_details": {"level": "", "type": "", "awarding_body": ""}},
    ServiceType.OTHER: {},
}


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def _service_type(item) -> ServiceType:
    raw = item.get("service_type") if isinstance(item, Mapping) else item
    return ServiceType(normalize_service_type(raw.value if isinstance(raw, ServiceType) else raw))


def required_fields(item_or_type) -> tuple[RequiredField, ...]:
    """Required fields for an item (or a service type); unknown types need none."""
    return REQUIRED_FIELDS[_service_type(item_or_type)]


def lookup_path(configuration, path: str) -> Any:
    """Walk a dotted path through nested mappings.

    Returns ``MISSING`` when a segment is absent or the value found is
    ``None`` or an empty string.
    """
    current = configuration
    for segment in path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return MISSING
        current = current[segment]
    if current is None or current == "":
        return MISSING
    return current


def _merged_view(item, configuration) -> Mapping:
    if configuration is None:
        return item if isinstance(item, Mapping) else {}
    return configuration


def missing_fields(item, configuration=None) -> list[str]:
    """Labels of required fields that are not yet filled in, in table order."""
    view = _merged_view(item, configuration)
    return [f.label for f in required_fields(item) if lookup_path(view, f.path) is MISSING]


def completion_percentage(item, configuration=None) -> int:
    """Percentage (0-100) of the item's required fields that are filled in."""
    fields = required_fields(item)
    if not fields:
        return 100
    view = _merged_view(item, configuration)
    completed = sum(1 for f in fields if lookup_path(view, f.path) is not MISSING)
    ratio = Decimal(100 * completed) / Decimal(len(fields))
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def is_configured(item, configuration=None) -> bool:
    return not missing_fields(item, configuration)


def validation_message(missing: list[str]) -> str:
    return f"Please complete the following field(s): {', '.join(missing)}"


def default_configuration(item) -> dict:
    """Empty configuration skeleton for the item's service type."""
    skeleton = _DEFAULT_CONFIGURATIONS[_service_type(item)]
    return {key: dict(value) for key, value in skeleton.items()}
