"""
One-time PINs for password reset.

A PIN is a short-lived 4-digit secret bound to an email address. PINs are
stored keyed by email, so issuing a new one replaces whatever was there
before: at most one live PIN per email. A PIN is consumed by the first
successful verification.

Every failed verification (unknown email, wrong PIN, expired PIN) raises the
same InvalidPin, so callers cannot tell which check failed.

The PIN space is only 9000 values. Treat it as a rate-limited secret with a
short lifetime, not as a cryptographic token.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Protocol

from esap.config import get_settings
from esap.core.errors import InvalidPin, ValidationError
from esap.core.models import PasswordResetPin
from esap.core.utils import normalize_email, utc_now
from esap.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)

_NO_PIN = b"0000"


class PinMailer(Protocol):
    async def send_password_reset_pin(self, email: str, pin: str, expires_minutes: int) -> bool:
        ...


class PinVerifier:
    """Generates, stores and checks password reset PINs."""

    def __init__(
        self,
        storage: MetadataStorage,
        mailer: PinMailer,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = utc_now,
        pin_min: int | None = None,
        pin_max: int | None = None,
    ):
        settings = get_settings()
        self.storage = storage
        self.mailer = mailer
        self.ttl = ttl or timedelta(minutes=settings.pin_expire_minutes)
        self.clock = clock
        self.pin_min = settings.pin_min if pin_min is None else pin_min
        self.pin_max = settings.pin_max if pin_max is None else pin_max

    def _new_pin(self) -> str:
        return str(self.pin_min + secrets.randbelow(self.pin_max - self.pin_min))

    async def generate(self, email: str) -> None:
        """Replace any existing PIN for `email` with a fresh one and mail it."""
        email = normalize_email(email or "")
        if not email:
            raise ValidationError("Email is required")

        record = PasswordResetPin(
            email=email,
            pin=self._new_pin(),
            expires_at=self.clock() + self.ttl,
        )

        async with self.storage.transaction() as tx:
            await tx.delete_where(Collections.PASSWORD_RESET_PINS, {"email": email})
            await tx.save(Collections.PASSWORD_RESET_PINS, email, record.model_dump())

        expires_minutes = int(self.ttl.total_seconds() // 60)
        delivered = await self.mailer.send_password_reset_pin(email, record.pin, expires_minutes)
        if delivered:
            logger.info(f"Password reset PIN sent to {email}")
        else:
            logger.warning(f"Password reset PIN for {email} was not delivered")

    async def verify(self, email: str, pin: str | int) -> None:
        """
        Consume the PIN for `email`.

        Raises:
            ValidationError: email or pin missing
            InvalidPin: no live PIN matches
        """
        email = normalize_email(email or "")
        pin = str(pin).strip() if pin is not None else ""
        if not email or not pin:
            raise ValidationError("Email and PIN are required")

        async with self.storage.transaction() as tx:
            stored = await tx.get(Collections.PASSWORD_RESET_PINS, email)
            if stored is None:
                # Unknown emails run the same compare as a wrong PIN
                secrets.compare_digest(_NO_PIN, pin.encode())
                raise InvalidPin()

            record = PasswordResetPin.model_validate(stored)
            matches = secrets.compare_digest(record.pin.encode(), pin.encode())
            if not matches or record.expires_at < self.clock():
                raise InvalidPin()

            await tx.delete(Collections.PASSWORD_RESET_PINS, email)

        logger.info(f"Password reset PIN verified for {email}")
