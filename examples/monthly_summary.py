"""
Example: Monthly delivery summary

Records a few deliveries, marks one paid, and prints the monthly figures a
summary screen would show. Configuration comes from the environment or a
local .env file, e.g.:

    BOTTLELEDGER_DB_PATH=deliveries.db
    BOTTLELEDGER_DEFAULT_RATE=20
"""

import asyncio
from datetime import datetime, timezone

from bottleledger import BottleLedger, Config


async def main():
    print("=== bottleledger Monthly Summary ===\n")

    config = Config.from_env(env_file=".env")

    async with BottleLedger(config) as app:
        ledger = app.ledger

        # ========================================
        # Record deliveries
        # ========================================
        print("--- Recording Deliveries ---")
        await ledger.insert(datetime(2024, 3, 5, 9, 0, tzinfo=timezone.utc), 2)
        paid_id = await ledger.insert(datetime(2024, 3, 20, 9, 0, tzinfo=timezone.utc), 1)
        await ledger.insert(datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc), 5)
        await ledger.update(paid_id, True)

        for record in await ledger.get_month(2024, 3):
            status = "paid" if record.paid else "pending"
            print(f"  #{record.id} {record.day.isoformat()}: {record.quantity} bottle(s) [{status}]")

        # ========================================
        # Summaries
        # ========================================
        month = datetime(2024, 3, 1, tzinfo=timezone.utc)
        for _ in range(2):
            summary = await ledger.summarize_month(month.year, month.month)
            print(f"\n--- {month:%B %Y} ---")
            print(f"  Bottles:    {summary.total_quantity}")
            print(f"  Rate:       {summary.rate}")
            print(f"  Total cost: {summary.total_cost}")
            print(f"  Paid:       {summary.paid_count} / {summary.delivery_count}")
            print(f"  Pending:    {summary.unpaid_count}")
            month = ledger.shift_month(month, 1)

    print("\n=== Example Complete ===")


if __name__ == "__main__":
    asyncio.run(main())
