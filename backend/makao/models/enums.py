"""Enumeration types for the MAKAO domain model."""

from enum import Enum
from typing import Type

from sqlalchemy import Enum as SQLEnum


def db_enum(enum_cls: Type[Enum], name: str) -> SQLEnum:
    """Column type that persists the enum *value* (lowercase) rather than its name."""
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Role(str, Enum):
    """Role of a user account."""
    TENANT = "tenant"
    LANDLORD = "landlord"
    ADMIN = "admin"


class PropertyType(str, Enum):
    """Type of property."""
    APARTMENT = "apartment"
    HOUSE = "house"
    COMMERCIAL = "commercial"


class PropertyStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class UnitStatus(str, Enum):
    """Status of a unit."""
    VACANT = "vacant"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    RENOVATION = "renovation"


class LeaseStatus(str, Enum):
    """Status of a lease."""
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"


class PaymentStatus(str, Enum):
    """Status of a payment.

    VERIFIED is set by landlord review of a tenant submission; COMPLETED is
    used for payments a landlord records directly. Both count as paid.
    """
    PENDING = "pending"
    VERIFIED = "verified"
    COMPLETED = "completed"
    REJECTED = "rejected"


PAID_PAYMENT_STATUSES = frozenset({PaymentStatus.VERIFIED, PaymentStatus.COMPLETED})


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    MPESA = "mpesa"
    CARD = "card"
    OTHER = "other"


class PaymentType(str, Enum):
    RENT = "rent"
    DEPOSIT = "deposit"
    UTILITY = "utility"
    OTHER = "other"


class MaintenanceStatus(str, Enum):
    """Status of a maintenance request."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MaintenancePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"


class NotificationType(str, Enum):
    """Template keys for outbound notifications."""
    PAYMENT_REMINDER = "PAYMENT_REMINDER"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_SUBMITTED = "PAYMENT_SUBMITTED"
    PAYMENT_CONFIRMATION = "PAYMENT_CONFIRMATION"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"
    MAINTENANCE_UPDATE = "MAINTENANCE_UPDATE"
    LEASE_EXPIRY = "LEASE_EXPIRY"
    WELCOME = "WELCOME"
    GENERAL_ANNOUNCEMENT = "GENERAL_ANNOUNCEMENT"


class DeliveryStatus(str, Enum):
    """Status of a scheduled notification."""
    PENDING = "pending"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"


class CalendarEventType(str, Enum):
    LEASE_START = "lease_start"
    LEASE_END = "lease_end"
    PAYMENT_DUE = "payment_due"
    MAINTENANCE = "maintenance"
    INSPECTION = "inspection"
    OTHER = "other"


class AuditAction(str, Enum):
    """Actions tracked in audit log."""
    USER_SYNCED = "user_synced"
    USER_DEACTIVATED = "user_deactivated"
    ROLE_CHANGED = "role_changed"
    LEASE_ALLOCATED = "lease_allocated"
    LEASE_TERMINATED = "lease_terminated"
    LEASE_EXPIRED = "lease_expired"
    PAYMENT_SUBMITTED = "payment_submitted"
    PAYMENT_RECORDED = "payment_recorded"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_REJECTED = "payment_rejected"
    MAINTENANCE_STATUS_CHANGED = "maintenance_status_changed"
