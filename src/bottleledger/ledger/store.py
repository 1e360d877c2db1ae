"""
Delivery store.

Durable CRUD over delivery records on top of the unified StorageBackend.
Ids come from a storage-side sequence, so they are unique and never reused
even after deletes.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from bottleledger.core.dates import to_timestamp_ms
from bottleledger.core.exceptions import InvalidInputError, NotFoundError, StorageFailureError
from bottleledger.core.logging import get_logger
from bottleledger.core.types import DeliveryRecord

if TYPE_CHECKING:
    from bottleledger.storage.base import StorageBackend

logger = get_logger("ledger.store")


def validate_quantity(quantity: Any) -> int:
    """Return ``quantity`` if it is an integer >= 1, else raise InvalidInputError."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInputError(
            "Quantity must be a whole number", field="quantity", value=quantity
        )
    if quantity < 1:
        raise InvalidInputError("Quantity must be at least 1", field="quantity", value=quantity)
    return quantity


def _validate_date(value: Any) -> None:
    if not isinstance(value, dt.date):
        raise InvalidInputError("Date must be a date or datetime", field="date", value=value)


def _record_key(record_id: Any) -> str:
    if isinstance(record_id, bool) or not isinstance(record_id, int):
        raise InvalidInputError("Record id must be an integer", field="id", value=record_id)
    return str(record_id)


def _newest_first(records: list[DeliveryRecord]) -> list[DeliveryRecord]:
    # Equal dates fall back to insertion order, latest insert first
    return sorted(records, key=lambda r: (r.date, r.id), reverse=True)


class DeliveryStore:
    """
    Delivery record store using StorageBackend.

    The store holds no lock of its own. Every operation maps onto a single
    atomic backend call, and payment changes go through the backend's
    conditional update, so one store can be shared between threads and
    several stores can share one database.
    """

    COLLECTION = "deliveries"
    SEQUENCE = "deliveries"

    def __init__(self, storage: StorageBackend) -> None:
        """
        Initialize store with storage backend.

        Args:
            storage: The unified storage backend (SQLite, InMemory, Redis)
        """
        self._storage = storage

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    def _decode(self, data: dict[str, Any]) -> DeliveryRecord:
        try:
            return DeliveryRecord.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Corrupt delivery document {data.get('_key', data.get('id'))}: {e}")
            raise StorageFailureError(
                "Stored delivery record is corrupt",
                backend=self._storage.name,
                operation="decode",
                details={"key": data.get("_key", data.get("id"))},
            ) from e

    async def insert(
        self,
        date: dt.datetime | dt.date,
        quantity: int,
        paid: bool = False,
    ) -> int:
        """
        Record a delivery.

        Args:
            date: When the delivery happened
            quantity: Units delivered, must be >= 1
            paid: Initial payment status

        Returns:
            The newly assigned record id

        Raises:
            InvalidInputError: If quantity or date is invalid (nothing is written)
        """
        _validate_date(date)
        quantity = validate_quantity(quantity)
        record = DeliveryRecord(date=date, quantity=quantity, paid=bool(paid))

        record_id = await self._storage.next_sequence(self.SEQUENCE)
        record = replace(record, id=record_id)
        await self._storage.save(self.COLLECTION, str(record_id), record.to_dict())

        logger.info(
            f"Recorded delivery {record_id}: {quantity} unit(s) on {record.day.isoformat()}"
        )
        return record_id

    async def get(self, record_id: int) -> DeliveryRecord | None:
        """
        Get record by id.

        Returns:
            DeliveryRecord or None if not found
        """
        data = await self._storage.get(self.COLLECTION, _record_key(record_id))
        return self._decode(data) if data is not None else None

    async def get_all(self) -> list[DeliveryRecord]:
        """Every live record, most recent first."""
        rows = await self._storage.query(self.COLLECTION)
        return _newest_first([self._decode(row) for row in rows])

    async def get_range(
        self,
        start: dt.datetime | dt.date,
        end: dt.datetime | dt.date,
    ) -> list[DeliveryRecord]:
        """
        Records with ``start <= date <= end``, most recent first.

        Both bounds are inclusive instants; no calendar arithmetic is applied.
        An inverted range yields an empty list.
        """
        _validate_date(start)
        _validate_date(end)
        low, high = to_timestamp_ms(start), to_timestamp_ms(end)
        if low > high:
            return []

        rows = await self._storage.query_range(self.COLLECTION, "date", low, high)
        return _newest_first([self._decode(row) for row in rows])

    async def update(self, record: DeliveryRecord) -> DeliveryRecord:
        """
        Replace the stored record with the same id.

        Raises:
            InvalidInputError: If the record has no id or an invalid quantity
            NotFoundError: If no record with that id exists (nothing is written)
        """
        if record.id is None:
            raise InvalidInputError("Cannot update a record without an id", field="id")
        key = _record_key(record.id)
        validate_quantity(record.quantity)

        document = record.to_dict()
        written = await self._storage.update(self.COLLECTION, key, lambda _: document)
        if written is None:
            raise NotFoundError(f"Delivery {record.id} not found", record_id=record.id)

        logger.debug(f"Replaced delivery {record.id}")
        return record

    async def _change_paid(
        self,
        record_id: int,
        change: Callable[[bool], bool],
    ) -> DeliveryRecord:
        key = _record_key(record_id)

        def apply(data: dict[str, Any]) -> dict[str, Any]:
            current = self._decode(data)
            return current.with_paid(change(current.paid)).to_dict()

        written = await self._storage.update(self.COLLECTION, key, apply)
        if written is None:
            raise NotFoundError(f"Delivery {record_id} not found", record_id=record_id)

        updated = self._decode(written)
        logger.info(f"Delivery {record_id} marked {'paid' if updated.paid else 'unpaid'}")
        return updated

    async def set_paid(self, record_id: int, paid: bool) -> DeliveryRecord:
        """Set the payment flag, keeping date and quantity as stored."""
        return await self._change_paid(record_id, lambda _: bool(paid))

    async def toggle_paid(self, record_id: int) -> DeliveryRecord:
        """Flip the payment flag."""
        return await self._change_paid(record_id, lambda current: not current)

    async def delete(self, record_id: int) -> None:
        """
        Permanently remove a record.

        Raises:
            NotFoundError: If no record with that id exists
        """
        if not await self._storage.delete(self.COLLECTION, _record_key(record_id)):
            raise NotFoundError(f"Delivery {record_id} not found", record_id=record_id)
        logger.info(f"Deleted delivery {record_id}")

    async def count(self) -> int:
        return await self._storage.count(self.COLLECTION)

    async def clear(self) -> int:
        """
        Delete every record. Ids already issued are still never reused.

        Returns:
            Number of records cleared
        """
        cleared = await self._storage.clear(self.COLLECTION)
        logger.warning(f"Cleared {cleared} delivery record(s)")
        return cleared
