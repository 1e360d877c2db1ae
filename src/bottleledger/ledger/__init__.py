"""
Ledger module - delivery records, rate preference and period summaries.

All three components share one injected StorageBackend.
"""

from bottleledger.ledger.preferences import PreferenceStore, parse_rate
from bottleledger.ledger.service import LedgerService
from bottleledger.ledger.store import DeliveryStore, validate_quantity

__all__ = [
    "DeliveryStore",
    "LedgerService",
    "PreferenceStore",
    "parse_rate",
    "validate_quantity",
]
