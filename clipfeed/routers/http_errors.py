"""Translate domain errors into HTTP responses."""
from fastapi import HTTPException, status

from clipfeed.errors import (
    ClipfeedError,
    InsufficientCoins,
    InvalidArgument,
    NotFound,
    StorageError,
)


def to_http(exc: ClipfeedError) -> HTTPException:
    if isinstance(exc, InsufficientCoins):
        return HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc))
    if isinstance(exc, InvalidArgument):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, StorageError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage unavailable, try again later",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
