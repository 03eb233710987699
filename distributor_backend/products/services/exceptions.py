# products/services/exceptions.py

"""
STOCK LEDGER SERVICE ERRORS

Centralized domain errors for the stock ledger services.
Views map them to HTTP responses (see products/views/errors.py).
"""


class StockLedgerError(Exception):
    """Base exception for all stock ledger failures."""


class StockNotFoundError(StockLedgerError):
    """Base for lookups that found nothing."""


class ProductNotFoundError(StockNotFoundError):
    """Raised when a product or variant (stock holder) does not exist."""


class MovementNotFoundError(StockNotFoundError):
    """Raised when a movement id does not exist."""


class ReferenceNotFoundError(StockNotFoundError):
    """Raised when reference_type / reference_id does not resolve to an entity."""


class OrderNotFoundError(StockNotFoundError):
    """Raised when an order id does not exist."""


class InsufficientStockError(StockLedgerError):
    """Raised when a decrease would take stock below zero."""

    def __init__(self, message, *, available=None, requested=None):
        super().__init__(message)
        self.available = available
        self.requested = requested


class StockConflictError(StockLedgerError):
    """Raised when the aggregate changed under the caller (lost-update)."""


class InvalidStockValueError(StockLedgerError):
    """Raised on malformed quantities / stock values."""


class MovementDirectionError(StockLedgerError):
    """Raised when a movement type contradicts the stock change it records."""


class LedgerPersistenceError(StockLedgerError):
    """Raised when the store rejects a ledger write."""
