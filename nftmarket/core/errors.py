from __future__ import annotations

from fastapi import HTTPException


class MarketplaceError(Exception):
    """
    Base of every rejected marketplace operation.
    A raised error means the call changed nothing.
    """

    status_code = 400


class InvalidAsset(MarketplaceError, ValueError):
    """Malformed, unknown or unapproved asset input."""

    status_code = 400


class NotFound(MarketplaceError, LookupError):
    status_code = 404


class InvalidTransition(MarketplaceError, ValueError):
    """State-machine guard violation."""

    status_code = 409


class NotForSale(MarketplaceError, ValueError):
    status_code = 409


class AlreadySettled(MarketplaceError, ValueError):
    status_code = 409


class AlreadyInitialized(MarketplaceError, ValueError):
    status_code = 409


class InsufficientFunds(MarketplaceError, ValueError):
    status_code = 402


class BidTooLow(MarketplaceError, ValueError):
    status_code = 422


class Unauthorized(MarketplaceError, PermissionError):
    status_code = 403


def to_http_exception(e: MarketplaceError) -> HTTPException:
    return HTTPException(
        status_code=e.status_code,
        detail={"error": type(e).__name__, "message": str(e)},
    )
