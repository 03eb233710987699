# products/views/errors.py

"""
Stock ledger error -> HTTP response mapping (single place for all views).
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response

from products.services.exceptions import (
    InsufficientStockError,
    LedgerPersistenceError,
    StockConflictError,
    StockLedgerError,
    StockNotFoundError,
)

logger = logging.getLogger(__name__)

# first match wins (most specific first)
ERROR_STATUS = (
    (StockNotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientStockError, status.HTTP_409_CONFLICT),
    (StockConflictError, status.HTTP_409_CONFLICT),
    (LedgerPersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StockLedgerError, status.HTTP_400_BAD_REQUEST),
)


def ledger_error_response(exc: StockLedgerError) -> Response:
    for error_class, http_status in ERROR_STATUS:
        if isinstance(exc, error_class):
            break
    else:
        http_status = status.HTTP_400_BAD_REQUEST

    if http_status >= 500:
        logger.error("Stock ledger write failed", exc_info=exc)

    payload = {"detail": str(exc)}
    if isinstance(exc, InsufficientStockError) and exc.available is not None:
        payload["available"] = exc.available
        payload["requested"] = exc.requested

    return Response(payload, status=http_status)
