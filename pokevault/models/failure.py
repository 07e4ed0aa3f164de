"""
Failure taxonomy for collection synchronization.

Every failure that can reach the user while editing a collection is
classified here. Adapters translate transport-level exceptions (httpx,
HTTP status codes) into these types; the update engine translates these
types into notifications.

Classification:
- NoActiveCollectionError: mutation requested with no collection selected
- ConflictError: create raced with another client that created the row first
- NotFoundError: update/delete on a row that does not exist
- NetworkError: anything else the store or reference API reports
"""

from enum import Enum


class FailureKind(str, Enum):
    """Classification of failure types."""

    NO_ACTIVE_COLLECTION = "no_active_collection"
    COLLECTION_LIMIT = "collection_limit"

    # Store failures
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    NETWORK = "network"

    # Reference catalog failures
    METADATA_UNAVAILABLE = "metadata_unavailable"


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    kind: FailureKind = FailureKind.NETWORK

    def __init__(
        self,
        message: str,
        detail: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message
        self.detail = detail
        self.status_code = status_code
        super().__init__(message)


class NoActiveCollectionError(KnownError):
    """Raised when a mutation is requested without a selected collection."""

    kind = FailureKind.NO_ACTIVE_COLLECTION

    def __init__(self, message: str = "Please select a collection first") -> None:
        super().__init__(message)


class CollectionLimitError(KnownError):
    """Raised when creating a collection would exceed the per-user limit."""

    kind = FailureKind.COLLECTION_LIMIT


class StoreError(KnownError):
    """Base class for failures reported by the remote card store."""


class ConflictError(StoreError):
    """An entry already exists for the (collection, card) pair."""

    kind = FailureKind.CONFLICT


class NotFoundError(StoreError):
    """No entry exists for the (collection, card) pair."""

    kind = FailureKind.NOT_FOUND


class NetworkError(StoreError):
    """Transport failure or unexpected response from the store."""

    kind = FailureKind.NETWORK


class CardMetadataError(KnownError):
    """The reference catalog could not provide a card."""

    kind = FailureKind.METADATA_UNAVAILABLE
