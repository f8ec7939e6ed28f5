"""
Africa's Talking SMS transport.

Uses the messaging REST endpoint directly over httpx.
"""

import logging
import re
from typing import Optional

import httpx

from makao.core.config import Settings, get_settings
from makao.core.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

SMS_PATH = "/version1/messaging"
# Per-recipient status codes that mean the message was accepted
ACCEPTED_STATUS_CODES = {100, 101, 102}


def format_phone_number(phone: str, country_code: str = "254") -> str:
    """Normalize a Kenyan number to E.164, e.g. ``0712 345678`` -> ``+254712345678``."""
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("0"):
        digits = country_code + digits[1:]
    if not digits.startswith(country_code):
        digits = country_code + digits
    if not 10 <= len(digits) <= 15:
        raise ValidationError(f"Invalid phone number: {phone!r}")
    return f"+{digits}"


class SmsSender:
    """Sends SMS through Africa's Talking. Logs instead of sending when disabled."""

    def __init__(self, settings: Optional[Settings] = None, timeout: float = 10.0):
        self.settings = settings or get_settings()
        self.timeout = timeout

    async def send(self, to: str, message: str) -> Optional[str]:
        """Send one SMS; returns the provider message id."""
        number = format_phone_number(to)

        if not self.settings.sms_enabled:
            logger.info("SMS disabled; would send to %s: %s", number, message)
            return None

        data = {
            "username": self.settings.africastalking_username,
            "to": number,
            "message": message,
        }
        if self.settings.africastalking_sender_id:
            data["from"] = self.settings.africastalking_sender_id

        try:
            async with httpx.AsyncClient(base_url=self.settings.africastalking_base_url) as client:
                response = await client.post(
                    SMS_PATH,
                    data=data,
                    headers={
                        "apiKey": self.settings.africastalking_api_key or "",
                        "Accept": "application/json",
                    },
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            raise UpstreamError(f"SMS provider unreachable: {e}") from e

        if response.status_code not in (200, 201):
            raise UpstreamError(f"SMS provider returned {response.status_code}: {response.text}")

        recipients = response.json().get("SMSMessageData", {}).get("Recipients", [])
        if not recipients or recipients[0].get("statusCode") not in ACCEPTED_STATUS_CODES:
            status = recipients[0].get("status") if recipients else "no recipients"
            raise UpstreamError(f"SMS to {number} rejected: {status}")

        message_id = recipients[0].get("messageId")
        logger.info("SMS sent to %s (%s)", number, message_id)
        return message_id
