"""
Active collection state.

Holds the user's collections and which one is selected. The header and
any other view subscribe here instead of being updated directly.
"""

from collections.abc import Callable

from pokevault.models.collection import Collection

StateListener = Callable[["ActiveCollectionState"], None]


class ActiveCollectionState:
    """Observable selection of the collection that add/remove intents target."""

    def __init__(self) -> None:
        self._collections: list[Collection] = []
        self._active_id: int | None = None
        self._listeners: list[StateListener] = []

    @property
    def collections(self) -> list[Collection]:
        return list(self._collections)

    @property
    def active_collection_id(self) -> int | None:
        """The selected id, even if the collection list has not loaded yet."""
        return self._active_id

    @property
    def active_collection(self) -> Collection | None:
        """The selected collection, or None if unselected or unknown."""
        if self._active_id is None:
            return None
        return self.find(self._active_id)

    @property
    def active_collection_name(self) -> str | None:
        active = self.active_collection
        return active.name if active else None

    def find(self, collection_id: int) -> Collection | None:
        return next((c for c in self._collections if c.id == collection_id), None)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_collections(self, collections: list[Collection]) -> None:
        self._collections = list(collections)
        self._emit()

    def select(self, collection_id: int | None) -> None:
        if collection_id == self._active_id:
            return
        self._active_id = collection_id
        self._emit()

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self)
