"""
bottleledger - delivery ledger and monthly billing summaries.

Records deliveries (a date and a unit count), tracks whether each one has
been paid, and summarizes any period at a configurable rate per unit.

Usage:
    >>> from datetime import datetime, timezone
    >>> from bottleledger import BottleLedger, Config
    >>>
    >>> async with BottleLedger(Config(db_path="deliveries.db")) as app:
    ...     await app.ledger.insert(datetime(2024, 3, 5, tzinfo=timezone.utc), 2)
    ...     await app.preferences.set_rate("25.5")
    ...     summary = await app.ledger.summarize_month(2024, 3)
    ...     print(summary.total_quantity, summary.total_cost)
"""

from bottleledger.client import BottleLedger
from bottleledger.core.config import Config
from bottleledger.core.dates import day_range, month_range, shift_month
from bottleledger.core.exceptions import (
    BottleLedgerError,
    ConfigurationError,
    InvalidInputError,
    NotFoundError,
    StorageFailureError,
)
from bottleledger.core.logging import configure_logging, get_logger
from bottleledger.core.types import DeliveryRecord, Summary
from bottleledger.ledger import DeliveryStore, LedgerService, PreferenceStore
from bottleledger.storage import (
    InMemoryStorage,
    RedisStorage,
    SQLiteStorage,
    StorageBackend,
    get_storage,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "BottleLedger",
    "Config",
    # Ledger
    "DeliveryStore",
    "LedgerService",
    "PreferenceStore",
    # Types
    "DeliveryRecord",
    "Summary",
    # Dates
    "day_range",
    "month_range",
    "shift_month",
    # Errors
    "BottleLedgerError",
    "ConfigurationError",
    "InvalidInputError",
    "NotFoundError",
    "StorageFailureError",
    # Storage
    "StorageBackend",
    "InMemoryStorage",
    "RedisStorage",
    "SQLiteStorage",
    "get_storage",
    # Logging
    "configure_logging",
    "get_logger",
]
