from pokevault.clients.card_store import CardStore, HttpCardStore
from pokevault.clients.pokemon_tcg import PokemonTCGClient

__all__ = [
    "CardStore",
    "HttpCardStore",
    "PokemonTCGClient",
]
