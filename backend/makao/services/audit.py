"""Audit logging service."""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from makao.models.audit import AuditLog
from makao.models.enums import AuditAction


class AuditService:
    """Service for creating audit log entries.

    Entries are added to the caller's session and commit (or roll back)
    together with the operation they describe.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: AuditAction,
        resource_type: str,
        resource_id: UUID,
        user_id: Optional[UUID] = None,
        details: Optional[dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> AuditLog:
        """Create an audit log entry."""
        entry = AuditLog(
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            user_id=user_id,
            details=details or {},
            ip_address=ip_address,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def log_lease_allocated(
        self,
        lease_id: UUID,
        unit_id: UUID,
        tenant_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> AuditLog:
        """Log unit allocation."""
        return await self.log(
            action=AuditAction.LEASE_ALLOCATED,
            resource_type="lease",
            resource_id=lease_id,
            user_id=user_id,
            details={"unit_id": str(unit_id), "tenant_id": str(tenant_id)},
        )

    async def log_lease_terminated(
        self,
        lease_id: UUID,
        unit_id: UUID,
        user_id: Optional[UUID] = None,
    ) -> AuditLog:
        """Log lease termination."""
        return await self.log(
            action=AuditAction.LEASE_TERMINATED,
            resource_type="lease",
            resource_id=lease_id,
            user_id=user_id,
            details={"unit_id": str(unit_id)},
        )

    async def log_payment_reviewed(
        self,
        payment_id: UUID,
        approved: bool,
        user_id: UUID,
        notes: Optional[str] = None,
    ) -> AuditLog:
        """Log payment verification or rejection."""
        return await self.log(
            action=AuditAction.PAYMENT_VERIFIED if approved else AuditAction.PAYMENT_REJECTED,
            resource_type="payment",
            resource_id=payment_id,
            user_id=user_id,
            details={"notes": notes},
        )

    async def log_role_changed(
        self,
        target_user_id: UUID,
        old_role: str,
        new_role: str,
        user_id: UUID,
    ) -> AuditLog:
        """Log an explicit role change."""
        return await self.log(
            action=AuditAction.ROLE_CHANGED,
            resource_type="user",
            resource_id=target_user_id,
            user_id=user_id,
            details={"old_role": old_role, "new_role": new_role},
        )
