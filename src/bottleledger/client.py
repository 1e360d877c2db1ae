"""BottleLedger - main package entry point."""

from __future__ import annotations

from types import TracebackType

from bottleledger.core.config import Config
from bottleledger.core.logging import configure_logging, get_logger
from bottleledger.ledger import DeliveryStore, LedgerService, PreferenceStore
from bottleledger.storage import StorageBackend, get_storage


class BottleLedger:
    """
    Owned handle over a configured ledger.

    Builds the storage backend, both stores and the service from one Config.
    Nothing is global: two handles over the same database file are independent
    objects that see the same persisted data.

    Example:
        >>> async with BottleLedger(Config(db_path="deliveries.db")) as app:
        ...     await app.ledger.insert(datetime.now(timezone.utc), 2)
        ...     summary = await app.ledger.summarize_month(2024, 3)
    """

    def __init__(
        self,
        config: Config | None = None,
        storage: StorageBackend | None = None,
        log_level: int | str | None = None,
    ) -> None:
        """
        Initialize the ledger.

        Args:
            config: Configuration (default: Config.from_env())
            storage: Pre-built backend; overrides the configured one
            log_level: Logging level (default: config.log_level)
        """
        self._config = config or Config.from_env()

        configure_logging(
            level=log_level or self._config.log_level,
            json_format=self._config.json_logs,
        )
        self._logger = get_logger("client")

        if storage is None:
            storage = get_storage(
                self._config.storage_backend, **self._config.storage_options()
            )
        self._storage = storage
        self._logger.info(f"Initializing bottleledger (storage: {self._storage.name})")

        self._deliveries = DeliveryStore(self._storage)
        self._preferences = PreferenceStore(self._storage, default_rate=self._config.default_rate)
        self._ledger = LedgerService(self._deliveries, self._preferences)

    @property
    def config(self) -> Config:
        return self._config

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    @property
    def deliveries(self) -> DeliveryStore:
        """Get the raw delivery store."""
        return self._deliveries

    @property
    def preferences(self) -> PreferenceStore:
        """Get the rate preference store."""
        return self._preferences

    @property
    def ledger(self) -> LedgerService:
        """Get the ledger service used by the presentation layer."""
        return self._ledger

    async def close(self) -> None:
        """Close the storage backend."""
        await self._storage.close()
        self._logger.debug("Storage closed")

    async def __aenter__(self) -> BottleLedger:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
