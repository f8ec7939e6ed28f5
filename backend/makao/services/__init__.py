"""Services for MAKAO Rental Management."""

from makao.services.audit import AuditService
from makao.services.identity_sync import IdentitySyncService
from makao.services.lease_lifecycle import LeaseLifecycleService
from makao.services.ledger import PaymentService, TenantLedgerService, compute_balance
from makao.services.maintenance import MaintenanceService
from makao.services.notifications import (
    NotificationDispatcher,
    NotificationService,
    get_notification_dispatcher,
)
from makao.services.receipts import ReceiptGenerator, get_receipt_generator
from makao.services.scheduler import NotificationScheduler

__all__ = [
    "AuditService",
    "IdentitySyncService",
    "LeaseLifecycleService",
    "PaymentService",
    "TenantLedgerService",
    "compute_balance",
    "MaintenanceService",
    "NotificationDispatcher",
    "NotificationService",
    "get_notification_dispatcher",
    "ReceiptGenerator",
    "get_receipt_generator",
    "NotificationScheduler",
]
