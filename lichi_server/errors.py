"""Exceptions raised by the Lichi storefront core."""

from typing import Optional


class LichiError(Exception):
    """Base class for every storefront error."""


class TransportError(LichiError):
    """The request could not complete (connection, timeout, protocol)."""


class HttpError(LichiError):
    """The API answered with a non-200 status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"Unexpected status code {status_code}")
        self.status_code = status_code
        self.body = body


class DecodeError(LichiError):
    """The response body is not valid JSON or lacks the expected fields."""


class MalformedEntity(DecodeError):
    """An entity payload failed required-field validation."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class MalformedCategory(MalformedEntity):
    pass


class MalformedProduct(MalformedEntity):
    pass


class MalformedCartItem(MalformedEntity):
    pass


class PersistenceError(LichiError):
    """Writing the cart to the key-value store failed."""
