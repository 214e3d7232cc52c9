"""Patch types for post-confirmation edits of passenger and contact details."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from app.domain.errors import ValidationError

PASSENGER_EDITABLE_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "email",
        "phone",
        "special_requests",
        "seat_preference",
        "meal_preference",
        "frequent_flyer_number",
    }
)
PASSENGER_REQUIRED_FIELDS = frozenset({"first_name", "last_name"})

CONTACT_EDITABLE_FIELDS = frozenset({"email", "phone", "address"})
CONTACT_REQUIRED_FIELDS = frozenset({"email", "phone"})


def _check_changes(
    changes: Mapping[str, Any],
    allowed: frozenset[str],
    required: frozenset[str],
    target: str,
) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(
            f"Fields not editable on {target}: {', '.join(sorted(unknown))}",
            code="FIELD_NOT_EDITABLE",
            field=sorted(unknown)[0],
        )
    if not changes:
        raise ValidationError(f"Empty {target} patch", code="EMPTY_PATCH")

    # required fields can be changed but never cleared
    cleared = sorted(name for name in required if name in changes and changes[name] is None)
    if cleared:
        raise ValidationError(
            f"Fields required on {target}: {', '.join(cleared)}",
            code="FIELD_REQUIRED",
            field=cleared[0],
        )


@dataclass(frozen=True)
class PassengerPatch:
    passenger_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_changes(self.changes, PASSENGER_EDITABLE_FIELDS, PASSENGER_REQUIRED_FIELDS, "passenger")


@dataclass(frozen=True)
class ContactPatch:
    changes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_changes(self.changes, CONTACT_EDITABLE_FIELDS, CONTACT_REQUIRED_FIELDS, "contact")


BookingPatch = PassengerPatch | ContactPatch
