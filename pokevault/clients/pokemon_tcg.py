"""
Pokémon TCG API client.

Read-only lookups against the external card catalog. Responses are parsed
into CardMetadataRecord; every failure surfaces as CardMetadataError.

API docs: https://docs.pokemontcg.io/
"""

import logging
from types import TracebackType

import httpx
from pydantic import ValidationError

from pokevault.config import settings
from pokevault.models.card import CardMetadataRecord
from pokevault.models.failure import CardMetadataError

logger = logging.getLogger(__name__)

USER_AGENT = "pokevault/1.0"


class PokemonTCGClient:
    """
    Async client for the card catalog.

    Args:
        base_url: API root. Defaults to settings.pokemon_tcg_api_url
        api_key: Sent as X-Api-Key when non-empty (raises rate limits)
        client: Optional httpx client for connection reuse; not closed by us
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or settings.pokemon_tcg_api_url).rstrip("/")
        key = settings.pokemon_tcg_api_key if api_key is None else api_key

        headers = {"User-Agent": USER_AGENT}
        if key:
            headers["X-Api-Key"] = key

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=headers,
            timeout=settings.http_timeout_seconds,
            follow_redirects=True,
        )
        if client is not None:
            self._client.headers.update(headers)

    async def get_card(self, card_id: str) -> CardMetadataRecord:
        """
        Fetch one card by id.

        Raises:
            CardMetadataError: If the card is unknown, the catalog rejects
                the request (e.g. rate limited), or the payload is malformed
        """
        url = f"{self.base_url}/cards/{card_id}"

        try:
            response = await self._client.get(url)
            response.raise_for_status()
            data = response.json()["data"]
            return CardMetadataRecord.model_validate(data)
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.warning("Catalog returned %d for card %s", status_code, card_id)
            raise CardMetadataError(
                f"Could not load card {card_id}",
                detail=f"API Error: {status_code} {e.response.reason_phrase}",
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Catalog request for card %s failed: %s", card_id, e)
            raise CardMetadataError(f"Could not load card {card_id}", detail=str(e)) from e
        except (KeyError, ValueError, ValidationError) as e:
            logger.warning("Catalog payload for card %s is malformed: %s", card_id, e)
            raise CardMetadataError(f"Could not load card {card_id}", detail=str(e)) from e

    # The metadata cache depends on this name only.
    get_card_metadata = get_card

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "PokemonTCGClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
