"""
Warm the local card metadata cache.

Fetches metadata for every card in a user's collections so views render
without placeholders, even offline.
"""

import argparse
import asyncio
import logging
from dataclasses import dataclass

from pokevault.clients.card_store import CardStore, HttpCardStore
from pokevault.clients.pokemon_tcg import PokemonTCGClient
from pokevault.db.database import async_session_factory, init_db
from pokevault.models.failure import CardMetadataError
from pokevault.services.metadata_cache import CardMetadataCache

logger = logging.getLogger(__name__)


@dataclass
class WarmResult:
    """Outcome of a cache warm-up run."""

    already_cached: int = 0
    fetched: int = 0
    failed: int = 0


async def warm_cache(
    user_id: int,
    store: CardStore,
    cache: CardMetadataCache,
    concurrency: int = 4,
) -> WarmResult:
    """
    Fetch metadata for every distinct card the user owns.

    Args:
        user_id: Owner of the collections to scan
        store: Source of the user's entries
        cache: Cache to fill; loaded from local storage first
        concurrency: Max simultaneous catalog requests (the catalog is rate-limited)

    Returns:
        Counts of cards already cached, fetched and failed
    """
    await cache.load()
    entries = await store.list_entries(user_id)
    card_ids = sorted({entry.card_id for entry in entries})

    result = WarmResult()
    missing = [card_id for card_id in card_ids if card_id not in cache]
    result.already_cached = len(card_ids) - len(missing)
    logger.info(
        "User %s owns %d distinct cards, %d not cached", user_id, len(card_ids), len(missing)
    )

    semaphore = asyncio.Semaphore(concurrency)

    async def fetch(card_id: str) -> bool:
        async with semaphore:
            try:
                await cache.ensure(card_id)
                return True
            except CardMetadataError as e:
                logger.warning("Skipping %s: %s", card_id, e.detail or e.message)
                return False

    outcomes = await asyncio.gather(*(fetch(card_id) for card_id in missing))
    result.fetched = sum(outcomes)
    result.failed = len(outcomes) - result.fetched

    logger.info(
        "Cache warm-up complete: %d fetched, %d failed, %d already cached",
        result.fetched,
        result.failed,
        result.already_cached,
    )
    return result


async def run_warm_cache(user_id: int, concurrency: int = 4) -> WarmResult:
    """Warm the cache using the configured server, catalog and local database."""
    await init_db()
    async with HttpCardStore() as store, PokemonTCGClient() as client:
        cache = CardMetadataCache(client, async_session_factory)
        return await warm_cache(user_id, store, cache, concurrency)


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Prefetch card metadata for a user's collections"
    )
    parser.add_argument("--user-id", type=int, required=True, help="Owner of the collections")
    parser.add_argument(
        "--concurrency",
        type=int,
        default=4,
        help="Simultaneous catalog requests (default: 4)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_warm_cache(args.user_id, args.concurrency))


if __name__ == "__main__":
    main()
