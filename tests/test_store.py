"""
Unit tests for DeliveryStore.

Every test runs against both the in-memory and the SQLite backend.
"""

import asyncio
import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from bottleledger.core.exceptions import InvalidInputError, NotFoundError, StorageFailureError
from bottleledger.core.types import DeliveryRecord
from bottleledger.ledger import DeliveryStore
from bottleledger.storage import SQLiteStorage


def run_in_threads(*workers) -> list[BaseException]:
    """Run each coroutine function on its own thread and event loop."""
    errors: list[BaseException] = []

    def target(worker):
        try:
            asyncio.run(worker())
        except Exception as e:  # noqa: BLE001
            errors.append(e)

    threads = [threading.Thread(target=target, args=(w,), daemon=True) for w in workers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    assert not any(thread.is_alive() for thread in threads), "worker thread did not finish"
    return errors


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestInsert:
    """Tests for creating records."""

    @pytest.mark.asyncio
    async def test_insert_assigns_id(self, store):
        record_id = await store.insert(utc(2024, 3, 5), 2)

        record = await store.get(record_id)
        assert record is not None
        assert record.id == record_id
        assert record.quantity == 2
        assert record.paid is False
        assert record.date == utc(2024, 3, 5)

    @pytest.mark.asyncio
    async def test_insert_paid(self, store):
        record_id = await store.insert(utc(2024, 3, 5), 1, paid=True)
        assert (await store.get(record_id)).paid is True

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, store):
        ids = [await store.insert(utc(2024, 3, day), 1) for day in range(1, 11)]
        assert len(set(ids)) == 10

    @pytest.mark.asyncio
    async def test_accepts_plain_date_and_future_dates(self, store):
        first = await store.insert(date(2024, 3, 5), 1)
        future = await store.insert(datetime.now(timezone.utc) + timedelta(days=400), 1)

        assert (await store.get(first)).date == utc(2024, 3, 5)
        assert await store.get(future) is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -1, -100, 1.5, 2.0, True, "2", None])
    async def test_invalid_quantity_rejected(self, store, quantity):
        await store.insert(utc(2024, 3, 1), 1)

        with pytest.raises(InvalidInputError) as exc_info:
            await store.insert(utc(2024, 3, 5), quantity)

        assert exc_info.value.field == "quantity"
        assert await store.count() == 1
        assert len(await store.get_all()) == 1

    @pytest.mark.asyncio
    async def test_invalid_date_rejected(self, store):
        with pytest.raises(InvalidInputError):
            await store.insert("2024-03-05", 1)  # type: ignore
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_rejected_insert_does_not_consume_id(self, store):
        first = await store.insert(utc(2024, 3, 1), 1)
        with pytest.raises(InvalidInputError):
            await store.insert(utc(2024, 3, 2), 0)
        second = await store.insert(utc(2024, 3, 3), 1)
        assert second == first + 1

    @pytest.mark.asyncio
    async def test_concurrent_inserts_get_distinct_ids(self, store):
        ids = await asyncio.gather(*(store.insert(utc(2024, 3, 5), 1) for _ in range(25)))

        assert len(set(ids)) == 25
        assert await store.count() == 25


class TestGetAll:
    """Tests for ordering and snapshot semantics."""

    @pytest.mark.asyncio
    async def test_empty(self, store):
        assert await store.get_all() == []

    @pytest.mark.asyncio
    async def test_most_recent_first(self, store):
        await store.insert(utc(2024, 3, 5), 1)
        await store.insert(utc(2024, 4, 1), 1)
        await store.insert(utc(2024, 1, 9), 1)

        dates = [r.date for r in await store.get_all()]
        assert dates == [utc(2024, 4, 1), utc(2024, 3, 5), utc(2024, 1, 9)]

    @pytest.mark.asyncio
    async def test_ties_broken_by_latest_insert_first(self, store):
        same = utc(2024, 3, 5, 9, 0)
        first = await store.insert(same, 1)
        second = await store.insert(same, 2)
        third = await store.insert(same, 3)

        assert [r.id for r in await store.get_all()] == [third, second, first]

    @pytest.mark.asyncio
    async def test_returns_snapshot(self, store):
        await store.insert(utc(2024, 3, 5), 1)
        snapshot = await store.get_all()

        await store.insert(utc(2024, 3, 6), 1)
        snapshot.clear()

        assert len(await store.get_all()) == 2


class TestGetRange:
    """Tests for inclusive range queries."""

    @pytest.mark.asyncio
    async def test_bounds_are_inclusive(self, store):
        start, end = utc(2024, 3, 1), utc(2024, 3, 31, 23, 59, 59, 999000)
        at_start = await store.insert(start, 1)
        at_end = await store.insert(end, 1)
        await store.insert(start - timedelta(milliseconds=1), 1)
        await store.insert(end + timedelta(milliseconds=1), 1)

        ids = {r.id for r in await store.get_range(start, end)}
        assert ids == {at_start, at_end}

    @pytest.mark.asyncio
    async def test_matches_filtered_get_all(self, store):
        for day in (1, 3, 7, 12, 15, 20, 28):
            await store.insert(utc(2024, 2, day, 10), day % 4 + 1)

        start, end = utc(2024, 2, 5), utc(2024, 2, 20, 10)
        expected = [r for r in await store.get_all() if start <= r.date <= end]

        assert await store.get_range(start, end) == expected

    @pytest.mark.asyncio
    async def test_inverted_range_is_empty(self, store):
        await store.insert(utc(2024, 3, 5), 1)
        assert await store.get_range(utc(2024, 4, 1), utc(2024, 3, 1)) == []

    @pytest.mark.asyncio
    async def test_naive_bounds_are_utc(self, store):
        record_id = await store.insert(utc(2024, 3, 5, 12), 1)
        results = await store.get_range(datetime(2024, 3, 5), datetime(2024, 3, 5, 23))
        assert [r.id for r in results] == [record_id]


class TestUpdate:
    """Tests for full replacement and payment flag changes."""

    @pytest.mark.asyncio
    async def test_full_replace(self, store):
        record_id = await store.insert(utc(2024, 3, 5), 2)
        replacement = DeliveryRecord(date=utc(2024, 3, 6), quantity=4, paid=True, id=record_id)

        await store.update(replacement)

        assert await store.get(record_id) == replacement

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            await store.update(DeliveryRecord(date=utc(2024, 3, 5), quantity=1, id=999))
        assert exc_info.value.record_id == 999
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_update_without_id(self, store):
        with pytest.raises(InvalidInputError):
            await store.update(DeliveryRecord(date=utc(2024, 3, 5), quantity=1))

    @pytest.mark.asyncio
    async def test_update_invalid_quantity(self, store):
        record_id = await store.insert(utc(2024, 3, 5), 2)
        with pytest.raises(InvalidInputError):
            await store.update(DeliveryRecord(date=utc(2024, 3, 5), quantity=0, id=record_id))
        assert (await store.get(record_id)).quantity == 2

    @pytest.mark.asyncio
    async def test_set_paid_preserves_other_fields(self, store):
        record_id = await store.insert(utc(2024, 3, 5, 7, 30), 3)

        updated = await store.set_paid(record_id, True)

        assert updated.paid is True
        stored = await store.get(record_id)
        assert stored == updated
        assert stored.quantity == 3
        assert stored.date == utc(2024, 3, 5, 7, 30)

    @pytest.mark.asyncio
    async def test_toggle_twice_restores(self, store):
        record_id = await store.insert(utc(2024, 3, 5), 1)
        original = await store.get(record_id)

        await store.toggle_paid(record_id)
        assert (await store.get(record_id)).paid is True
        await store.toggle_paid(record_id)

        assert await store.get(record_id) == original

    @pytest.mark.asyncio
    async def test_toggle_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            await store.toggle_paid(42)

    @pytest.mark.asyncio
    async def test_concurrent_toggles_are_not_lost(self, store):
        record_id = await store.insert(utc(2024, 3, 5), 1)

        await asyncio.gather(*(store.toggle_paid(record_id) for _ in range(11)))

        assert (await store.get(record_id)).paid is True


class TestDelete:
    """Tests for permanent removal."""

    @pytest.mark.asyncio
    async def test_delete_removes_from_all_queries(self, store):
        keep = await store.insert(utc(2024, 3, 4), 1)
        gone = await store.insert(utc(2024, 3, 5), 1)

        await store.delete(gone)

        assert await store.get(gone) is None
        assert [r.id for r in await store.get_all()] == [keep]
        assert [r.id for r in await store.get_range(utc(2024, 3, 1), utc(2024, 3, 31))] == [keep]

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            await store.delete(12345)

    @pytest.mark.asyncio
    async def test_delete_twice(self, store):
        record_id = await store.insert(utc(2024, 3, 5), 1)
        await store.delete(record_id)
        with pytest.raises(NotFoundError):
            await store.delete(record_id)

    @pytest.mark.asyncio
    async def test_ids_never_reused(self, store):
        first = await store.insert(utc(2024, 3, 5), 1)
        await store.delete(first)
        second = await store.insert(utc(2024, 3, 5), 1)

        assert second != first
        assert second > first

    @pytest.mark.asyncio
    async def test_clear_keeps_id_sequence(self, store):
        ids = [await store.insert(utc(2024, 3, 5), 1) for _ in range(3)]

        assert await store.clear() == 3
        assert await store.get_all() == []
        assert await store.insert(utc(2024, 3, 5), 1) > max(ids)

    @pytest.mark.asyncio
    async def test_non_integer_id_rejected(self, store):
        with pytest.raises(InvalidInputError):
            await store.delete("1")  # type: ignore


class TestCorruption:
    """Unreadable documents surface as storage failures."""

    @pytest.mark.asyncio
    async def test_corrupt_document(self, store, storage):
        await storage.save(store.COLLECTION, "99", {"id": 99, "quantity": 1})

        with pytest.raises(StorageFailureError):
            await store.get_all()


class TestSharedAccess:
    """Stores shared between threads and handles on one database file."""

    @pytest.mark.asyncio
    async def test_store_shared_between_threads(self, store):
        ids = [await store.insert(utc(2024, 3, day), 1) for day in range(1, 29)]

        async def toggle_all():
            for record_id in ids:
                await store.toggle_paid(record_id)

        assert run_in_threads(toggle_all, toggle_all) == []
        # every record flipped exactly twice
        assert [r.paid for r in await store.get_all()] == [False] * len(ids)

    @pytest.mark.asyncio
    async def test_payment_change_never_revives_deleted_record(self, tmp_path):
        path = tmp_path / "deliveries.db"
        first = DeliveryStore(SQLiteStorage(path=path))
        second = DeliveryStore(SQLiteStorage(path=path))
        ids = [await first.insert(utc(2024, 3, 5), 1) for _ in range(200)]

        async def mark_paid():
            for record_id in ids:
                try:
                    await first.set_paid(record_id, True)
                except NotFoundError:
                    pass

        async def delete_all():
            for record_id in ids:
                await second.delete(record_id)

        try:
            assert run_in_threads(mark_paid, delete_all) == []
            assert await first.get_all() == []
            assert await second.count() == 0
        finally:
            await first.storage.close()
            await second.storage.close()

    @pytest.mark.asyncio
    async def test_update_after_delete_raises_not_found(self, store):
        record_id = await store.insert(utc(2024, 3, 5), 2)
        stale = await store.get(record_id)
        await store.delete(record_id)

        with pytest.raises(NotFoundError):
            await store.update(stale.with_paid(True))

        assert await store.get(record_id) is None
        assert await store.count() == 0
