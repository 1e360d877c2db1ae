"""
Type definitions for bottleledger.

Data classes for delivery records and period summaries.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeAlias

from bottleledger.core.dates import from_timestamp_ms, to_timestamp_ms, to_utc

# Flexible numeric input for rates
AmountType: TypeAlias = Decimal | int | float | str


@dataclass(frozen=True)
class DeliveryRecord:
    """
    A single delivery event.

    Attributes:
        date: When the delivery happened (normalized to UTC, millisecond precision)
        quantity: Units delivered, always >= 1 once persisted
        paid: Whether the delivery has been paid for
        id: Store-assigned id, None until inserted
    """

    date: datetime
    quantity: int
    paid: bool = False
    id: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", to_utc(self.date))

    @property
    def day(self) -> date:
        """UTC calendar day of the delivery."""
        return self.date.date()

    def with_paid(self, paid: bool) -> DeliveryRecord:
        """Copy of this record with only the payment flag changed."""
        return replace(self, paid=paid)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted document layout."""
        return {
            "id": self.id,
            "date": to_timestamp_ms(self.date),
            "quantity": self.quantity,
            "paid": 1 if self.paid else 0,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeliveryRecord:
        """Create DeliveryRecord from a persisted document."""
        return cls(
            id=int(data["id"]),
            date=from_timestamp_ms(int(data["date"])),
            quantity=int(data["quantity"]),
            paid=int(data.get("paid", 0)) == 1,
        )


@dataclass(frozen=True)
class Summary:
    """Aggregate figures for the deliveries inside one period."""

    total_quantity: int
    total_cost: Decimal
    delivery_count: int
    paid_count: int
    unpaid_count: int
    rate: Decimal
    period_start: datetime
    period_end: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_quantity": self.total_quantity,
            "total_cost": str(self.total_cost),
            "delivery_count": self.delivery_count,
            "paid_count": self.paid_count,
            "unpaid_count": self.unpaid_count,
            "rate": str(self.rate),
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
        }
