"""
Preference store for the per-unit rate.

The rate is persisted as a decimal string so costs computed from it are exact.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from bottleledger.core.config import DEFAULT_RATE
from bottleledger.core.exceptions import InvalidInputError, StorageFailureError
from bottleledger.core.logging import get_logger
from bottleledger.core.types import AmountType

if TYPE_CHECKING:
    from bottleledger.storage.base import StorageBackend

logger = get_logger("ledger.preferences")


def parse_rate(value: AmountType) -> Decimal:
    """
    Parse a rate into a positive, finite Decimal.

    Raises:
        InvalidInputError: If the value is not a number or is not > 0
    """
    if isinstance(value, bool):
        raise InvalidInputError("Rate must be a number", field="rate", value=value)
    try:
        rate = Decimal(value.strip() if isinstance(value, str) else str(value))
    except InvalidOperation:
        raise InvalidInputError("Rate must be a number", field="rate", value=value) from None
    if not rate.is_finite() or rate <= 0:
        raise InvalidInputError("Rate must be greater than zero", field="rate", value=value)
    return rate


class PreferenceStore:
    """Durable single-value store holding the cost per unit."""

    COLLECTION = "preferences"
    RATE_KEY = "rate_per_bottle"

    def __init__(self, storage: StorageBackend, default_rate: AmountType = DEFAULT_RATE) -> None:
        """
        Args:
            storage: The unified storage backend
            default_rate: Returned by get_rate() until a rate has been set
        """
        self._storage = storage
        self._default_rate = parse_rate(default_rate)

    @property
    def default_rate(self) -> Decimal:
        return self._default_rate

    async def get_rate(self) -> Decimal:
        """Current rate, or the default if none was ever set."""
        data = await self._storage.get(self.COLLECTION, self.RATE_KEY)
        if data is None:
            return self._default_rate

        try:
            return Decimal(data["value"])
        except (KeyError, TypeError, InvalidOperation) as e:
            raise StorageFailureError(
                "Stored rate is corrupt",
                backend=self._storage.name,
                operation="decode",
                details={"key": self.RATE_KEY},
            ) from e

    async def set_rate(self, value: AmountType) -> Decimal:
        """
        Persist a new rate, replacing any previous one.

        Returns:
            The stored rate

        Raises:
            InvalidInputError: If value is not a positive number (nothing is written)
        """
        rate = parse_rate(value)
        await self._storage.save(self.COLLECTION, self.RATE_KEY, {"value": str(rate)})
        logger.info(f"Rate per unit set to {rate}")
        return rate

    async def reset_rate(self) -> bool:
        """
        Forget the stored rate so the default applies again.

        Returns:
            True if a stored rate was removed
        """
        removed = await self._storage.delete(self.COLLECTION, self.RATE_KEY)
        if removed:
            logger.info(f"Rate reset to default {self._default_rate}")
        return removed
