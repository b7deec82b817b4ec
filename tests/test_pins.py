"""
Tests for password reset PINs.

Core principle: at most one live PIN per email, consumed by the first
successful verification, and every failure looks the same.
"""

import asyncio
from datetime import timedelta

import pytest

from esap.auth import pins as pins_module
from esap.auth.pins import PinVerifier
from esap.core.errors import InvalidPin, ValidationError
from esap.storage import Collections


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def verifier(storage, mailer, clock):
    return PinVerifier(storage, mailer, ttl=timedelta(minutes=15), clock=clock)


@pytest.fixture
def fixed_pins(monkeypatch):
    """Make secrets.randbelow return the given offsets in order."""
    def install(*offsets):
        values = iter(offsets)
        monkeypatch.setattr(pins_module.secrets, "randbelow", lambda n: next(values))
    return install


# =============================================================================
# generate()
# =============================================================================


class TestGenerate:
    @pytest.mark.asyncio
    async def test_sends_four_digit_pin(self, verifier, mailer):
        await verifier.generate("reader@example.com")

        [(email, pin, expires_minutes)] = mailer.sent
        assert email == "reader@example.com"
        assert len(pin) == 4 and pin.isdigit()
        assert 1000 <= int(pin) < 10000
        assert expires_minutes == 15

    @pytest.mark.asyncio
    async def test_email_required(self, verifier):
        with pytest.raises(ValidationError):
            await verifier.generate("")

    @pytest.mark.asyncio
    async def test_one_live_pin_per_email(self, verifier, storage):
        await verifier.generate("reader@example.com")
        await verifier.generate("reader@example.com")

        records = await storage.query(Collections.PASSWORD_RESET_PINS, {"email": "reader@example.com"})
        assert len(records) == 1

    @pytest.mark.asyncio
    async def test_new_pin_supersedes_old(self, verifier, mailer, fixed_pins):
        fixed_pins(234, 567)

        await verifier.generate("reader@example.com")
        await verifier.generate("reader@example.com")
        assert [pin for _, pin, _ in mailer.sent] == ["1234", "1567"]

        with pytest.raises(InvalidPin):
            await verifier.verify("reader@example.com", "1234")
        await verifier.verify("reader@example.com", "1567")

    @pytest.mark.asyncio
    async def test_concurrent_generate_leaves_one_pin(self, verifier, mailer, storage):
        await asyncio.gather(*(verifier.generate("reader@example.com") for _ in range(5)))

        records = await storage.query(Collections.PASSWORD_RESET_PINS, {"email": "reader@example.com"})
        assert len(records) == 1
        assert len(mailer.sent) == 5
        assert records[0]["pin"] == mailer.last_pin

        await verifier.verify("reader@example.com", mailer.last_pin)

    @pytest.mark.asyncio
    async def test_undelivered_pin_still_stored(self, verifier, mailer, storage):
        mailer.delivered = False
        await verifier.generate("reader@example.com")
        assert await storage.get(Collections.PASSWORD_RESET_PINS, "reader@example.com") is not None


# =============================================================================
# verify()
# =============================================================================


class TestVerify:
    @pytest.mark.asyncio
    async def test_single_use(self, verifier, mailer):
        await verifier.generate("reader@example.com")
        pin = mailer.last_pin

        await verifier.verify("reader@example.com", pin)
        with pytest.raises(InvalidPin):
            await verifier.verify("reader@example.com", pin)

    @pytest.mark.asyncio
    async def test_wrong_pin_keeps_record(self, verifier, mailer, fixed_pins):
        fixed_pins(1000)
        await verifier.generate("reader@example.com")

        with pytest.raises(InvalidPin):
            await verifier.verify("reader@example.com", "1234")
        await verifier.verify("reader@example.com", "2000")

    @pytest.mark.asyncio
    async def test_expired(self, verifier, mailer, clock):
        await verifier.generate("reader@example.com")
        clock.advance(minutes=15, seconds=1)

        with pytest.raises(InvalidPin):
            await verifier.verify("reader@example.com", mailer.last_pin)

    @pytest.mark.asyncio
    async def test_valid_until_expiry(self, verifier, mailer, clock):
        await verifier.generate("reader@example.com")
        clock.advance(minutes=15)

        await verifier.verify("reader@example.com", mailer.last_pin)

    @pytest.mark.asyncio
    async def test_failures_look_the_same(self, verifier, mailer, clock):
        await verifier.generate("reader@example.com")
        pin = mailer.last_pin

        errors = []
        for email, candidate in [("nobody@example.com", pin), ("reader@example.com", "0000")]:
            with pytest.raises(InvalidPin) as exc:
                await verifier.verify(email, candidate)
            errors.append(exc.value.message)

        clock.advance(hours=1)
        with pytest.raises(InvalidPin) as exc:
            await verifier.verify("reader@example.com", pin)
        errors.append(exc.value.message)

        assert set(errors) == {"Invalid or expired PIN"}

    @pytest.mark.asyncio
    async def test_unknown_email_still_compares(self, verifier, monkeypatch):
        calls = []
        compare = pins_module.secrets.compare_digest

        def counting_compare(a, b):
            calls.append((a, b))
            return compare(a, b)

        monkeypatch.setattr(pins_module.secrets, "compare_digest", counting_compare)

        with pytest.raises(InvalidPin):
            await verifier.verify("nobody@example.com", "1234")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_email_case_insensitive(self, verifier, mailer):
        await verifier.generate("Reader@Example.com")
        await verifier.verify("reader@example.com", mailer.last_pin)

    @pytest.mark.asyncio
    async def test_numeric_pin(self, verifier, mailer):
        await verifier.generate("reader@example.com")
        await verifier.verify("reader@example.com", int(mailer.last_pin))

    @pytest.mark.asyncio
    async def test_missing_fields(self, verifier):
        with pytest.raises(ValidationError):
            await verifier.verify("", "1234")
        with pytest.raises(ValidationError):
            await verifier.verify("reader@example.com", "")
