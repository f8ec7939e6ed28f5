"""Payments router: submission, recording, review, history and receipts."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.database import get_db
from makao.core.errors import InvalidStateError
from makao.core.permissions import Capability
from makao.core.security import AuthenticatedUser, get_current_user, require_capability
from makao.models.enums import NotificationType, PAID_PAYMENT_STATUSES, PaymentStatus, PaymentType
from makao.models.payment import Payment
from makao.schemas.base import Pagination
from makao.schemas.payment import (
    MONTH_PATTERN,
    PaymentCreate,
    PaymentListResponse,
    PaymentResponse,
    PaymentReview,
)
from makao.services.email import Attachment
from makao.services.ledger import PaymentService
from makao.services.notifications import (
    NotificationDispatcher,
    NotificationService,
    Recipient,
    dispatch_quietly,
    get_notification_dispatcher,
)
from makao.services.receipts import ReceiptGenerator, get_receipt_generator, receipt_data_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def _receipt_attachment(generator: ReceiptGenerator, payment: Payment) -> list[Attachment]:
    """Receipt PDF for the confirmation email; failure only loses the attachment."""
    try:
        content = generator.generate(receipt_data_for(payment))
    except Exception:
        logger.exception("Receipt generation failed for payment %s", payment.id)
        return []
    return [Attachment(filename=f"receipt-{payment.reference_number}.pdf", content=content)]


async def _notify_payer(
    db: AsyncSession,
    background_tasks: BackgroundTasks,
    dispatcher: NotificationDispatcher,
    generator: ReceiptGenerator,
    payment: Payment,
) -> None:
    """In-app notification plus SMS/email to the payer about a final payment status."""
    variables = {
        "amount": payment.amount,
        "receiptNumber": payment.reference_number,
        "paymentDate": payment.payment_date,
        "paymentMethod": payment.payment_method.value.replace("_", " ").title(),
        "propertyName": payment.lease.unit.property.name,
        "unitNumber": payment.lease.unit.unit_number,
    }

    if payment.status in PAID_PAYMENT_STATUSES:
        notification_type = NotificationType.PAYMENT_CONFIRMATION
        title = "Payment confirmed"
        message = f"Your payment {payment.reference_number} of {payment.amount:,.2f} was received."
        attachments = _receipt_attachment(generator, payment)
    else:
        notification_type = NotificationType.PAYMENT_REJECTED
        title = "Payment rejected"
        message = f"Your payment {payment.reference_number} could not be verified."
        if payment.verification_notes:
            message += f" {payment.verification_notes}"
        variables["additionalInfo"] = payment.verification_notes or ""
        attachments = []

    await NotificationService(db).create(payment.user_id, notification_type, title, message)
    background_tasks.add_task(
        dispatch_quietly,
        dispatcher,
        notification_type,
        Recipient.from_user(payment.payer),
        variables,
        attachments,
    )


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def submit_payment(
    data: PaymentCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_capability(Capability.SUBMIT_PAYMENTS)),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Tenant submits a payment; it stays pending until reviewed.

    The tenant gets an acknowledgement and the landlord an alert, both sent
    after the payment is stored.
    """
    service = PaymentService(db)
    tenant = current_user.user
    payment = await service.submit(tenant=tenant, **data.model_dump())

    lease = await service.get_lease(payment.lease_id)
    landlord = lease.unit.property.owner
    variables = {
        "tenantName": tenant.full_name,
        "amount": payment.amount,
        "receiptNumber": payment.reference_number,
        "paymentDate": payment.payment_date,
        "paymentMethod": payment.payment_method.value.replace("_", " ").title(),
        "propertyName": lease.unit.property.name,
        "unitNumber": lease.unit.unit_number,
        "status": payment.status.value,
    }

    await NotificationService(db).create(
        landlord.id,
        NotificationType.PAYMENT_SUBMITTED,
        "Payment awaiting verification",
        f"{tenant.full_name} submitted payment {payment.reference_number} "
        f"of {payment.amount:,.2f} for unit {lease.unit.unit_number}.",
    )
    background_tasks.add_task(
        dispatch_quietly, dispatcher, NotificationType.PAYMENT_RECEIVED, Recipient.from_user(tenant), variables
    )
    background_tasks.add_task(
        dispatch_quietly, dispatcher, NotificationType.PAYMENT_SUBMITTED, Recipient.from_user(landlord), variables
    )
    return payment


@router.post("/record", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    data: PaymentCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_capability(Capability.RECORD_PAYMENTS)),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    generator: ReceiptGenerator = Depends(get_receipt_generator),
):
    """Landlord records a payment received outside the app as completed."""
    service = PaymentService(db)
    payment = await service.record(recorder=current_user.user, **data.model_dump())
    payment = await service.get_visible(payment.id, current_user.user)

    await _notify_payer(db, background_tasks, dispatcher, generator, payment)
    return payment


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    payment_type: Optional[PaymentType] = Query(None, alias="paymentType"),
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    lease_id: Optional[UUID] = None,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Payment history visible to the caller, newest first."""
    payments, total = await PaymentService(db).history(
        current_user.user,
        status=payment_status,
        payment_type=payment_type,
        month=month,
        lease_id=lease_id,
        limit=limit,
        offset=offset,
    )
    return PaymentListResponse(
        payments=[PaymentResponse.model_validate(p) for p in payments],
        pagination=Pagination(total=total, limit=limit, offset=offset),
    )


@router.patch("", response_model=PaymentResponse)
async def review_payment(
    data: PaymentReview,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_capability(Capability.VERIFY_PAYMENTS)),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    generator: ReceiptGenerator = Depends(get_receipt_generator),
):
    """Verify or reject a pending payment and notify the payer."""
    payment = await PaymentService(db).review(
        data.id,
        current_user.user,
        approve=data.action == "verify",
        notes=data.notes,
    )
    await _notify_payer(db, background_tasks, dispatcher, generator, payment)
    return payment


@router.get("/{payment_id}/receipt")
async def download_receipt(
    payment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
    generator: ReceiptGenerator = Depends(get_receipt_generator),
):
    """PDF receipt for a verified or completed payment."""
    payment = await PaymentService(db).get_visible(payment_id, current_user.user)
    if payment.status not in PAID_PAYMENT_STATUSES:
        raise InvalidStateError("Receipts are only available for verified or completed payments")

    pdf = generator.generate(receipt_data_for(payment))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="receipt-{payment.reference_number}.pdf"'},
    )
