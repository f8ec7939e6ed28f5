"""SQLAlchemy models for MAKAO."""

from makao.models.user import User
from makao.models.property import Property, Unit
from makao.models.lease import Lease
from makao.models.payment import Payment
from makao.models.maintenance import MaintenanceRequest
from makao.models.notification import Notification, ScheduledNotification
from makao.models.calendar import CalendarEvent
from makao.models.audit import AuditLog

__all__ = [
    "User",
    "Property",
    "Unit",
    "Lease",
    "Payment",
    "MaintenanceRequest",
    "Notification",
    "ScheduledNotification",
    "CalendarEvent",
    "AuditLog",
]
