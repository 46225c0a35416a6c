"""Tests for value objects."""

from decimal import Decimal

import pytest

from wellnesstree.domain import (
    DEFAULT_COMMISSION_RATES,
    CommissionRates,
    CommissionTier,
    CreditsDeducted,
    InteractionLogEntry,
    InvalidArgumentError,
    Money,
    ShipmentId,
)


class TestShipmentId:
    """Tests for ShipmentId."""

    def test_generate_unique(self) -> None:
        assert ShipmentId.generate() != ShipmentId.generate()

    def test_str_is_uuid(self) -> None:
        shipment_id = ShipmentId.generate()
        assert str(shipment_id) == str(shipment_id.value)


class TestMoney:
    """Tests for Money value object."""

    def test_create_money(self) -> None:
        money = Money(amount_cents=14375, currency="zar")

        assert money.amount_cents == 14375
        assert money.currency == "ZAR"

    def test_negative_money_raises(self) -> None:
        with pytest.raises(InvalidArgumentError):
            Money(amount_cents=-100)

    def test_from_decimal_rounds_half_up(self) -> None:
        assert Money.from_decimal(Decimal("143.745")).amount_cents == 14375
        assert Money.from_decimal(Decimal("0.004")).amount_cents == 0

    def test_to_decimal(self) -> None:
        assert Money(amount_cents=1250).to_decimal() == Decimal("12.50")

    def test_str_format(self) -> None:
        assert str(Money(amount_cents=14375)) == "R143.75"
        assert str(Money(amount_cents=999, currency="USD")) == "$9.99"
        assert str(Money(amount_cents=100, currency="CHF")) == "1.00"


class TestCommissionRates:
    """Tests for CommissionRates."""

    def test_defaults(self) -> None:
        assert DEFAULT_COMMISSION_RATES.rate_for(CommissionTier.STANDARD) == Decimal("0.25")
        assert DEFAULT_COMMISSION_RATES.rate_for(CommissionTier.POOL) == Decimal("0.05")

    def test_rates_coerced_to_decimal(self) -> None:
        rates = CommissionRates(standard=0.2, pool=0.1)  # type: ignore[arg-type]

        assert rates.standard == Decimal("0.2")
        assert rates.pool == Decimal("0.1")

    def test_negative_rate_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            CommissionRates(standard=Decimal("-0.01"))

    def test_as_dict(self) -> None:
        assert DEFAULT_COMMISSION_RATES.as_dict() == {
            "standard": Decimal("0.25"),
            "pool": Decimal("0.05"),
        }


class TestInteractionLogEntry:
    """Tests for InteractionLogEntry."""

    def test_defaults(self) -> None:
        entry = InteractionLogEntry(user_id="u1", amount=3, was_free=False)

        assert entry.id
        assert entry.metadata == {}
        assert entry.timestamp.tzinfo is not None

    def test_entries_get_distinct_ids(self) -> None:
        first = InteractionLogEntry(user_id="u1", amount=0, was_free=True)
        second = InteractionLogEntry(user_id="u1", amount=0, was_free=True)
        assert first.id != second.id


class TestDomainEvents:
    """Tests for domain event payloads."""

    def test_payload_excludes_envelope(self) -> None:
        event = CreditsDeducted(
            aggregate_id="u1",
            aggregate_type="CreditAccount",
            user_id="u1",
            log_entry_id="log-1",
            amount=7,
            was_free=False,
            new_balance=3,
        )
        assert event.event_type == "credits.deducted"
        assert event.payload() == {
            "user_id": "u1",
            "log_entry_id": "log-1",
            "amount": 7,
            "was_free": False,
            "new_balance": 3,
            "metadata": {},
        }
