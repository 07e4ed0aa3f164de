"""
Card reference data.

CardMetadataRecord mirrors the subset of the Pokémon TCG API card payload
that the collection views render. Field aliases match the API's camelCase
keys so the same model parses API responses and cached rows.
"""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from pokevault.config import PLACEHOLDER_NAME


class _ApiModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class CardImages(_ApiModel):
    small: str = ""
    large: str = ""


class SetSummary(_ApiModel):
    """The set a card was printed in."""

    id: str
    name: str
    series: str = ""
    printed_total: int | None = Field(default=None, alias="printedTotal")
    total: int | None = None


class Attack(_ApiModel):
    name: str
    cost: list[str] = Field(default_factory=list)
    damage: str = ""
    text: str = ""


class Ability(_ApiModel):
    name: str
    text: str = ""
    type: str = ""


class MarketLink(_ApiModel):
    url: str


class CardMetadataRecord(_ApiModel):
    """
    Cached reference data for one card.

    Immutable once fetched; reference data does not change within a session.
    """

    id: str
    name: str
    number: str = ""
    supertype: str = ""
    subtypes: list[str] = Field(default_factory=list)
    hp: str | None = None
    types: list[str] = Field(default_factory=list)
    rarity: str | None = None
    images: CardImages = Field(default_factory=CardImages)
    set: SetSummary | None = None
    attacks: list[Attack] = Field(default_factory=list)
    abilities: list[Ability] = Field(default_factory=list)
    tcgplayer: MarketLink | None = None
    cardmarket: MarketLink | None = None

    @property
    def set_id(self) -> str:
        return self.set.id if self.set else ""


@dataclass(frozen=True, slots=True)
class KnownCard:
    """A card whose metadata is in the cache."""

    record: CardMetadataRecord

    @property
    def card_id(self) -> str:
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def images(self) -> CardImages:
        return self.record.images


@dataclass(frozen=True, slots=True)
class PendingCard:
    """A card known only by id; metadata has not been fetched yet."""

    card_id: str

    @property
    def name(self) -> str:
        return PLACEHOLDER_NAME

    @property
    def images(self) -> CardImages:
        return CardImages()


CardView = KnownCard | PendingCard
