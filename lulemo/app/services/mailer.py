# lulemo/app/services/mailer.py
"""
Delivers verification codes through the Resend HTTP API.

With DEV_BYPASS_EMAIL on nothing is sent and the code is handed back to the
caller, which returns it to the client as `devCode`.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from lulemo.app.core.config import Settings, settings as default_settings
from lulemo.app.core.exceptions import DeliveryError
from lulemo.app.models.email_verification import PURPOSE_REGISTER

logger = logging.getLogger(__name__)

SUBJECTS = {
    "register": "Lulemo registration code",
    "reset": "Lulemo password reset code",
}


@dataclass(frozen=True)
class Delivery:
    bypass: bool
    code: Optional[str] = None


class Mailer:
    def __init__(self, settings: Settings = default_settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    def _render(self, code: str, purpose: str) -> str:
        intro = "to create your account" if purpose == PURPOSE_REGISTER else "to reset your password"
        minutes = self.settings.EMAIL_CODE_EXPIRE_MINUTES
        return f"<p>Your verification code is <b>{code}</b>.</p><p>Use it {intro}; it expires in {minutes} minutes.</p>"

    async def send_code(self, email: str, code: str, purpose: str) -> Delivery:
        if self.settings.DEV_BYPASS_EMAIL:
            logger.info("Email delivery bypassed (DEV_BYPASS_EMAIL)")
            return Delivery(bypass=True, code=code)

        if not self.settings.RESEND_API_KEY or not self.settings.RESEND_FROM:
            raise DeliveryError("email delivery is not configured")

        payload = {
            "from": self.settings.RESEND_FROM,
            "to": email,
            "subject": SUBJECTS.get(purpose, SUBJECTS["register"]),
            "html": self._render(code, purpose),
        }
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                resp = await client.post(
                    self.settings.RESEND_API_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.settings.RESEND_API_KEY}"},
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("Email delivery rejected: HTTP %s", exc.response.status_code)
            raise DeliveryError() from exc
        except httpx.HTTPError as exc:
            logger.warning("Email delivery failed: %s", exc)
            raise DeliveryError() from exc

        return Delivery(bypass=False)
