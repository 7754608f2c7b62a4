"""Exception hierarchy shared by the Affilimart services."""

import requests


class MarketplaceError(Exception):
    """Base class for errors reported to callers."""
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ValidationError(MarketplaceError):
    """Missing or malformed input."""
    status_code = 400


class InvalidTransitionError(ValidationError):
    """A state machine was asked for a move it does not allow."""


class AuthError(MarketplaceError):
    """Bad credentials, bad token, or a role that is not permitted."""
    status_code = 401


class NotFoundError(MarketplaceError):
    """A referenced record does not exist."""
    status_code = 404


class ConflictError(MarketplaceError):
    """A unique key is already taken."""
    status_code = 409


class UpstreamError(MarketplaceError):
    """The document store or the image host failed."""
    status_code = 502


def raise_for_store_status(response: requests.Response, what: str = "Record") -> None:
    """
    Map a document store response onto the error taxonomy.

    Args:
        response: Response returned by the store
        what: Human readable name of the thing requested, used in messages

    Raises:
        NotFoundError: On 404
        ConflictError: On 409
        UpstreamError: On any other error status
    """
    if response.status_code < 400:
        return

    try:
        detail = response.json().get("error", "")
    except ValueError:
        detail = response.text

    if response.status_code == 404:
        raise NotFoundError(f"{what} not found")
    if response.status_code == 409:
        raise ConflictError(detail or f"{what} already exists")
    raise UpstreamError(f"Store returned {response.status_code}: {detail}")
