"""
Ledger service.

Range queries and period summaries over the delivery store, priced with the
rate held by the preference store. The service keeps no state of its own.
"""

from __future__ import annotations

import datetime as dt
from collections import Counter

from bottleledger.core import dates
from bottleledger.core.logging import get_logger
from bottleledger.core.types import DeliveryRecord, Summary
from bottleledger.ledger.preferences import PreferenceStore
from bottleledger.ledger.store import DeliveryStore

logger = get_logger("ledger.service")


class LedgerService:
    """
    Entry point for the presentation layer.

    Example:
        >>> service = LedgerService(DeliveryStore(storage), PreferenceStore(storage))
        >>> await service.insert(datetime(2024, 3, 5), 2)
        >>> summary = await service.summarize_month(2024, 3)
        >>> summary.total_cost
        Decimal('40.0')
    """

    def __init__(self, deliveries: DeliveryStore, preferences: PreferenceStore) -> None:
        self._deliveries = deliveries
        self._preferences = preferences

    @property
    def deliveries(self) -> DeliveryStore:
        return self._deliveries

    @property
    def preferences(self) -> PreferenceStore:
        return self._preferences

    async def insert(
        self,
        date: dt.datetime | dt.date,
        quantity: int,
        paid: bool = False,
    ) -> int:
        return await self._deliveries.insert(date, quantity, paid)

    async def get(self, record_id: int) -> DeliveryRecord | None:
        return await self._deliveries.get(record_id)

    async def get_all(self) -> list[DeliveryRecord]:
        return await self._deliveries.get_all()

    async def get_range(
        self,
        start: dt.datetime | dt.date,
        end: dt.datetime | dt.date,
    ) -> list[DeliveryRecord]:
        return await self._deliveries.get_range(start, end)

    async def update(self, record_id: int, paid: bool) -> DeliveryRecord:
        """Set the payment flag of a record; date and quantity are preserved."""
        return await self._deliveries.set_paid(record_id, paid)

    async def toggle_paid(self, record_id: int) -> DeliveryRecord:
        return await self._deliveries.toggle_paid(record_id)

    async def delete(self, record_id: int) -> None:
        await self._deliveries.delete(record_id)

    async def get_month(self, year: int, month: int) -> list[DeliveryRecord]:
        """Records delivered in the given calendar month."""
        return await self._deliveries.get_range(*dates.month_range(year, month))

    async def get_day(self, day: dt.datetime | dt.date) -> list[DeliveryRecord]:
        """Records delivered on the given calendar day."""
        return await self._deliveries.get_range(*dates.day_range(day))

    async def daily_totals(
        self,
        start: dt.datetime | dt.date,
        end: dt.datetime | dt.date,
    ) -> dict[dt.date, int]:
        """
        Units delivered per calendar day inside ``[start, end]``.

        Days without deliveries are omitted. Keys are in ascending order.
        """
        totals: Counter[dt.date] = Counter()
        for record in await self._deliveries.get_range(start, end):
            totals[record.day] += record.quantity
        return dict(sorted(totals.items()))

    async def summarize(
        self,
        period_start: dt.datetime | dt.date,
        period_end: dt.datetime | dt.date,
    ) -> Summary:
        """
        Aggregate the deliveries inside ``[period_start, period_end]``.

        The cost uses the rate current at call time; no rounding is applied.
        """
        records = await self._deliveries.get_range(period_start, period_end)

        total_quantity = 0
        paid_count = 0
        for record in records:
            total_quantity += record.quantity
            if record.paid:
                paid_count += 1

        rate = await self._preferences.get_rate()
        summary = Summary(
            total_quantity=total_quantity,
            total_cost=total_quantity * rate,
            delivery_count=len(records),
            paid_count=paid_count,
            unpaid_count=len(records) - paid_count,
            rate=rate,
            period_start=dates.to_utc(period_start),
            period_end=dates.to_utc(period_end),
        )
        logger.debug(
            f"Summary {summary.period_start.date()}..{summary.period_end.date()}: "
            f"{summary.delivery_count} deliveries, {summary.total_quantity} units, "
            f"{summary.unpaid_count} unpaid"
        )
        return summary

    async def summarize_month(self, year: int, month: int) -> Summary:
        """Summary for a calendar month; month may roll over into adjacent years."""
        return await self.summarize(*dates.month_range(year, month))

    @staticmethod
    def shift_month(current: dt.datetime | dt.date, delta: int) -> dt.date:
        """First day of the month ``delta`` months away from ``current``."""
        return dates.shift_month(current, delta)
