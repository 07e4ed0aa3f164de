"""
Remote card store.

CardStore is the persistence contract the synchronization layer consumes.
HttpCardStore implements it against the collection REST API; the server's
session cookie identifies the user, so requests carry no user id.
"""

import logging
from datetime import datetime
from types import TracebackType
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pokevault.config import settings
from pokevault.models.collection import Collection, CollectionCardEntry
from pokevault.models.failure import ConflictError, NetworkError, NotFoundError

logger = logging.getLogger(__name__)


class CardStore(Protocol):
    """Durable source of truth for collection entries."""

    async def list_entries(self, user_id: int) -> list[CollectionCardEntry]: ...

    async def create_entry(
        self, collection_id: int, card_id: str, quantity: int
    ) -> CollectionCardEntry: ...

    async def update_quantity(
        self, collection_id: int, card_id: str, quantity: int
    ) -> CollectionCardEntry: ...

    async def delete_entry(self, collection_id: int, card_id: str) -> None: ...

    async def list_collections(self, user_id: int) -> list[Collection]: ...

    async def create_collection(
        self, name: str, language: str = "english", description: str | None = None
    ) -> Collection: ...

    async def delete_collection(self, collection_id: int) -> None: ...


# --- Wire models ---


class EntryPayload(BaseModel):
    """collection_cards row as serialized by the server."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int | None = None
    collection_id: int = Field(alias="collectionId")
    card_id: str = Field(alias="cardId")
    quantity: int
    added_at: datetime | None = Field(default=None, alias="addedAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    def to_entry(self) -> CollectionCardEntry:
        return CollectionCardEntry(
            collection_id=self.collection_id,
            card_id=self.card_id,
            quantity=self.quantity,
            updated_at=self.updated_at,
            id=self.id,
            added_at=self.added_at,
        )


class CollectionPayload(BaseModel):
    """collections row as serialized by the server."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    name: str
    user_id: int = Field(alias="userId")
    language: str | None = "english"
    description: str | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    def to_collection(self) -> Collection:
        return Collection(
            id=self.id,
            name=self.name,
            user_id=self.user_id,
            language=self.language or "english",
            description=self.description,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


def _error_message(response: httpx.Response) -> str:
    """Extract the server's message field, falling back to the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"{response.status_code} {response.reason_phrase}"


def _raise_for_status(response: httpx.Response) -> None:
    """Translate HTTP failures into the store error taxonomy."""
    if response.is_success:
        return

    message = _error_message(response)
    status_code = response.status_code

    if status_code == 409:
        raise ConflictError(message, status_code=status_code)
    if status_code == 404:
        raise NotFoundError(message, status_code=status_code)
    raise NetworkError(message, status_code=status_code)


class HttpCardStore:
    """
    CardStore backed by the collection REST API.

    Args:
        base_url: Server root. Defaults to settings.api_base_url
        client: Optional httpx client (e.g. carrying the session cookie);
            not closed by us
    """

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=settings.http_timeout_seconds,
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise NetworkError("Could not reach the collection server", detail=str(e)) from e

        _raise_for_status(response)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(
                "Unexpected response from the collection server", detail=str(e)
            ) from e

    @staticmethod
    def _parse(model: type[BaseModel], data: Any) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise NetworkError(
                "Unexpected response from the collection server", detail=str(e)
            ) from e

    # --- Entries ---

    async def list_entries(self, user_id: int) -> list[CollectionCardEntry]:
        """All entries across the user's collections."""
        response = await self._request("GET", "/api/collection-cards")
        payloads = [self._parse(EntryPayload, item) for item in self._json(response)]
        logger.debug("Fetched %d entries for user %s", len(payloads), user_id)
        return [p.to_entry() for p in payloads]

    async def create_entry(
        self, collection_id: int, card_id: str, quantity: int
    ) -> CollectionCardEntry:
        """
        Create an entry.

        Raises:
            ConflictError: If an entry already exists for the pair
        """
        response = await self._request(
            "POST",
            "/api/collection-cards",
            json={"collectionId": collection_id, "cardId": card_id, "quantity": quantity},
        )
        payload: EntryPayload = self._parse(EntryPayload, self._json(response))
        return payload.to_entry()

    async def update_quantity(
        self, collection_id: int, card_id: str, quantity: int
    ) -> CollectionCardEntry:
        """
        Set an entry's quantity. The server clamps it to at least 1.

        Raises:
            NotFoundError: If no entry exists for the pair
        """
        response = await self._request(
            "PUT",
            f"/api/collection-cards/{card_id}",
            json={"collectionId": collection_id, "quantity": quantity},
        )
        payload: EntryPayload = self._parse(EntryPayload, self._json(response))
        return payload.to_entry()

    async def delete_entry(self, collection_id: int, card_id: str) -> None:
        """
        Delete an entry.

        Raises:
            NotFoundError: If no entry exists for the pair
        """
        await self._request("DELETE", f"/api/collection-cards/{collection_id}/{card_id}")

    # --- Collections ---

    async def list_collections(self, user_id: int) -> list[Collection]:
        response = await self._request("GET", "/api/collections")
        payloads = [self._parse(CollectionPayload, item) for item in self._json(response)]
        logger.debug("Fetched %d collections for user %s", len(payloads), user_id)
        return [p.to_collection() for p in payloads]

    async def create_collection(
        self, name: str, language: str = "english", description: str | None = None
    ) -> Collection:
        response = await self._request(
            "POST",
            "/api/collections",
            json={"name": name, "language": language, "description": description},
        )
        payload: CollectionPayload = self._parse(CollectionPayload, self._json(response))
        return payload.to_collection()

    async def delete_collection(self, collection_id: int) -> None:
        await self._request("DELETE", f"/api/collections/{collection_id}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpCardStore":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
