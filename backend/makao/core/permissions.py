"""Role capabilities.

Every authorization decision goes through ``has_capability`` so that role
strings are never compared ad hoc at call sites.
"""

from enum import Enum

from makao.models.enums import Role


class Capability(str, Enum):
    MANAGE_PROPERTIES = "manage_properties"
    ALLOCATE_UNITS = "allocate_units"
    RECORD_PAYMENTS = "record_payments"
    VERIFY_PAYMENTS = "verify_payments"
    SUBMIT_PAYMENTS = "submit_payments"
    SUBMIT_MAINTENANCE = "submit_maintenance"
    MANAGE_MAINTENANCE = "manage_maintenance"
    SEND_NOTIFICATIONS = "send_notifications"
    MANAGE_CALENDAR = "manage_calendar"
    VIEW_ALL_PROPERTIES = "view_all_properties"
    CHANGE_ROLES = "change_roles"


_LANDLORD = frozenset({
    Capability.MANAGE_PROPERTIES,
    Capability.ALLOCATE_UNITS,
    Capability.RECORD_PAYMENTS,
    Capability.VERIFY_PAYMENTS,
    Capability.MANAGE_MAINTENANCE,
    Capability.SEND_NOTIFICATIONS,
    Capability.MANAGE_CALENDAR,
})

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.TENANT: frozenset({
        Capability.SUBMIT_PAYMENTS,
        Capability.SUBMIT_MAINTENANCE,
    }),
    Role.LANDLORD: _LANDLORD,
    Role.ADMIN: _LANDLORD | {
        Capability.VIEW_ALL_PROPERTIES,
        Capability.CHANGE_ROLES,
    },
}


def has_capability(role: Role, capability: Capability) -> bool:
    """Return True if the role grants the capability."""
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def parse_role(value: str | None) -> Role | None:
    """Map an external role label onto a Role, or None if unrecognised.

    "property_manager" and "owner" are legacy labels for landlords.
    """
    if not value:
        return None
    normalized = value.strip().lower()
    if normalized in ("property_manager", "owner", "manager"):
        return Role.LANDLORD
    try:
        return Role(normalized)
    except ValueError:
        return None
