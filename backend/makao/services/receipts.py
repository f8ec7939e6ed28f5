"""
Payment receipt PDFs.

One-page receipts for verified and recorded payments, attached to the
confirmation email and downloadable from the payments API.
"""

import io
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Table, TableStyle

from makao.core.config import get_settings
from makao.models.payment import Payment


class ReceiptGenerator:
    """Generates payment receipt PDFs."""

    def __init__(self, currency: str = "KES"):
        self.currency = currency
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Add custom paragraph styles."""
        self.styles.add(ParagraphStyle(
            name='ReceiptTitle',
            parent=self.styles['Heading1'],
            fontSize=22,
            spaceAfter=6,
            alignment=TA_CENTER,
            textColor=colors.HexColor('#1a1a2e'),
        ))
        self.styles.add(ParagraphStyle(
            name='ReceiptSubtitle',
            parent=self.styles['Normal'],
            fontSize=11,
            spaceAfter=20,
            alignment=TA_CENTER,
            textColor=colors.HexColor('#666666'),
        ))
        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=13,
            spaceBefore=16,
            spaceAfter=8,
            textColor=colors.HexColor('#1a1a2e'),
        ))
        self.styles.add(ParagraphStyle(
            name='AmountPaid',
            parent=self.styles['Normal'],
            fontSize=18,
            alignment=TA_CENTER,
            spaceBefore=12,
            spaceAfter=12,
            textColor=colors.HexColor('#166534'),
        ))
        self.styles.add(ParagraphStyle(
            name='Footer',
            parent=self.styles['Normal'],
            fontSize=8,
            textColor=colors.HexColor('#888888'),
            alignment=TA_CENTER,
            spaceBefore=20,
        ))

    def _table(self, rows: list[list[str]]) -> Table:
        table = Table(rows, colWidths=[2 * inch, 4.5 * inch])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TEXTCOLOR', (0, 0), (0, -1), colors.HexColor('#666666')),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 8),
        ]))
        return table

    def generate(self, receipt_data: Dict[str, Any]) -> bytes:
        """
        Generate a receipt PDF.

        Args:
            receipt_data: output of ``receipt_data_for`` (or an equivalent dict)

        Returns:
            PDF bytes
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=f"Receipt {receipt_data.get('receipt_number', '')}",
        )

        story = []
        story.append(Paragraph("MAKAO", self.styles['ReceiptTitle']))
        story.append(Paragraph("Rent Payment Receipt", self.styles['ReceiptSubtitle']))

        story.append(Paragraph(
            f"{self.currency} {self._format_amount(receipt_data.get('amount'))}",
            self.styles['AmountPaid'],
        ))

        story.append(Paragraph("PAYMENT", self.styles['SectionHeader']))
        story.append(HRFlowable(width="100%", thickness=1, color=colors.HexColor('#e0e0e0')))
        story.append(self._table([
            ["Receipt Number:", str(receipt_data.get("receipt_number") or "N/A")],
            ["Payment Date:", self._format_date(receipt_data.get("payment_date"))],
            ["Period:", str(receipt_data.get("month") or "N/A")],
            ["Type:", str(receipt_data.get("payment_type") or "N/A")],
            ["Method:", str(receipt_data.get("payment_method") or "N/A")],
            ["Status:", str(receipt_data.get("status") or "N/A")],
            ["Verified On:", self._format_date(receipt_data.get("verified_at"))],
        ]))

        story.append(Paragraph("TENANT", self.styles['SectionHeader']))
        story.append(HRFlowable(width="100%", thickness=1, color=colors.HexColor('#e0e0e0')))
        story.append(self._table([
            ["Name:", str(receipt_data.get("tenant_name") or "N/A")],
            ["Property:", str(receipt_data.get("property_name") or "N/A")],
            ["Unit:", str(receipt_data.get("unit_number") or "N/A")],
        ]))

        story.append(Paragraph(
            f"Generated by MAKAO Rental Management on {datetime.utcnow().strftime('%Y-%m-%d %H:%M UTC')}",
            self.styles['Footer'],
        ))

        doc.build(story)
        buffer.seek(0)
        return buffer.read()

    def _format_amount(self, amount: Any) -> str:
        if amount is None:
            return "0.00"
        return f"{Decimal(str(amount)):,.2f}"

    def _format_date(self, value: Any) -> str:
        if value is None:
            return "N/A"
        if hasattr(value, 'strftime'):
            return value.strftime("%d/%m/%Y")
        return str(value)


def receipt_data_for(payment: Payment) -> Dict[str, Any]:
    """Flatten a payment (with payer and lease.unit.property loaded) for rendering."""
    unit = payment.lease.unit if payment.lease else None
    return {
        "receipt_number": payment.reference_number,
        "amount": payment.amount,
        "payment_date": payment.payment_date,
        "month": payment.month,
        "payment_type": payment.payment_type.value,
        "payment_method": payment.payment_method.value.replace("_", " ").title(),
        "status": payment.status.value,
        "verified_at": payment.verified_at,
        "tenant_name": payment.payer.full_name if payment.payer else None,
        "property_name": unit.property.name if unit else None,
        "unit_number": unit.unit_number if unit else None,
    }


def get_receipt_generator() -> ReceiptGenerator:
    """Get receipt generator instance."""
    return ReceiptGenerator(currency=get_settings().currency)
