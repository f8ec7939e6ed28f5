"""SMS and email templates for outbound notifications."""

import html
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping

from makao.models.enums import NotificationType

DATE_FORMAT = "%d/%m/%Y"

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

SMS_TEMPLATES: dict[NotificationType, str] = {
    NotificationType.PAYMENT_REMINDER: (
        "Hello {{name}}, your rent of KES {{amount}} for {{propertyName}} Unit {{unitNumber}} "
        "is due on {{dueDate}}. Please make payment to avoid late fees."
    ),
    NotificationType.PAYMENT_RECEIVED: (
        "Hello {{name}}, we have received your payment of KES {{amount}} (ref {{receiptNumber}}). "
        "It is pending verification by your landlord."
    ),
    NotificationType.PAYMENT_SUBMITTED: (
        "{{tenantName}} submitted a payment of KES {{amount}} (ref {{receiptNumber}}) for "
        "{{propertyName}} Unit {{unitNumber}}. Please verify it."
    ),
    NotificationType.PAYMENT_CONFIRMATION: (
        "Thank you {{name}}! Your payment of KES {{amount}} has been received and processed "
        "successfully. Receipt #{{receiptNumber}}"
    ),
    NotificationType.PAYMENT_REJECTED: (
        "Hello {{name}}, your payment of KES {{amount}} (ref {{receiptNumber}}) could not be "
        "verified. {{additionalInfo}}"
    ),
    NotificationType.MAINTENANCE_UPDATE: (
        "Hello {{name}}, your maintenance request #{{requestId}} has been {{status}}. {{additionalInfo}}"
    ),
    NotificationType.LEASE_EXPIRY: (
        "Hello {{name}}, your lease for {{propertyName}} Unit {{unitNumber}} expires on "
        "{{expiryDate}}. Please contact us to discuss renewal options."
    ),
    NotificationType.WELCOME: (
        "Welcome to MAKAO, {{name}}! You can now view your lease, pay rent and submit "
        "maintenance requests from your dashboard."
    ),
    NotificationType.GENERAL_ANNOUNCEMENT: "{{propertyName}} ANNOUNCEMENT: {{message}}",
}

EMAIL_SUBJECTS: dict[NotificationType, str] = {
    NotificationType.PAYMENT_REMINDER: "Rent Payment Reminder",
    NotificationType.PAYMENT_RECEIVED: "Payment Received - Pending Verification",
    NotificationType.PAYMENT_SUBMITTED: "Payment Awaiting Verification",
    NotificationType.PAYMENT_CONFIRMATION: "Payment Receipt",
    NotificationType.PAYMENT_REJECTED: "Payment Not Verified",
    NotificationType.MAINTENANCE_UPDATE: "Maintenance Request Update",
    NotificationType.LEASE_EXPIRY: "Lease Expiry Notice",
    NotificationType.WELCOME: "Welcome to MAKAO Rental Management",
}
DEFAULT_SUBJECT = "MAKAO Rental Management Notification"

_EMAIL_BODIES: dict[NotificationType, str] = {
    NotificationType.PAYMENT_REMINDER: """
        <h1>Rent Payment Reminder</h1>
        <p>Hello {{name}},</p>
        <p>This is a friendly reminder that your rent payment is due soon.</p>
        <p><strong>Due Date:</strong> {{dueDate}}<br>
        <strong>Amount Due:</strong> KES {{amount}}<br>
        <strong>Property:</strong> {{propertyName}}<br>
        <strong>Unit:</strong> {{unitNumber}}</p>
        <p>If you have already made this payment, please disregard this reminder.</p>
    """,
    NotificationType.PAYMENT_CONFIRMATION: """
        <h1>Payment Receipt</h1>
        <p>Hello {{name}},</p>
        <p>Thank you for your payment. This email confirms that we have received it.</p>
        <p><strong>Receipt Number:</strong> {{receiptNumber}}<br>
        <strong>Payment Date:</strong> {{paymentDate}}<br>
        <strong>Amount:</strong> KES {{amount}}<br>
        <strong>Payment Method:</strong> {{paymentMethod}}<br>
        <strong>Property:</strong> {{propertyName}}<br>
        <strong>Unit:</strong> {{unitNumber}}</p>
    """,
    NotificationType.MAINTENANCE_UPDATE: """
        <h1>Maintenance Request Update</h1>
        <p>Hello {{name}},</p>
        <p>Your maintenance request <strong>{{title}}</strong> is now <strong>{{status}}</strong>.</p>
        <p>{{additionalInfo}}</p>
    """,
}


def format_value(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, Decimal):
        return f"{value:,.2f}"
    if value is None:
        return ""
    return str(value)


def render(template: str, variables: Mapping[str, Any], escape: bool = False) -> str:
    """Substitute ``{{name}}`` placeholders. Unknown placeholders are left as-is."""

    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        text = format_value(variables[key])
        return html.escape(text) if escape else text

    return _PLACEHOLDER.sub(replace, template)


def render_sms(notification_type: NotificationType, variables: Mapping[str, Any]) -> str:
    template = SMS_TEMPLATES.get(notification_type, "{{message}}")
    return render(template, variables).strip()


def email_subject(notification_type: NotificationType) -> str:
    return EMAIL_SUBJECTS.get(notification_type, DEFAULT_SUBJECT)


def render_email(notification_type: NotificationType, variables: Mapping[str, Any]) -> str:
    """HTML body; types without a dedicated body fall back to the SMS text."""
    body = _EMAIL_BODIES.get(notification_type)
    if body is None:
        body = "<p>" + SMS_TEMPLATES.get(notification_type, "{{message}}") + "</p>"
    content = render(body, variables, escape=True)
    return (
        "<html><body style=\"font-family: Arial, sans-serif; line-height: 1.6;\">"
        f"{content}"
        "<p>Best regards,<br>The MAKAO Team</p>"
        "</body></html>"
    )
