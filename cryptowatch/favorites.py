import json
import logging
from typing import Iterable, Iterator, List, Optional

from pydantic import ValidationError

from .constants import ErrorKind, FAVORITES_KEY, StateFields
from .events import Observable
from .schemas import Coin
from .storage import MemorySettingsStore, PersistenceError

logger = logging.getLogger("favorites")


class FavoritesStore(Observable):
    """
    Ordered, id-unique list of the coins the user tracks.

    The list is loaded once from the settings store and the full list is
    written back after every change. Storage problems are logged and exposed
    through `error_message`; they never escape to the caller.
    """

    source_name = "favorites"

    def __init__(self, settings_store=None, key: str = FAVORITES_KEY):
        super().__init__()
        self._settings_store = settings_store if settings_store is not None else MemorySettingsStore()
        self._key = key
        self._favorites: List[Coin] = []
        self.error_message: Optional[str] = None
        self.error_kind: Optional[ErrorKind] = None
        self._load()

    @property
    def favorites(self) -> List[Coin]:
        return list(self._favorites)

    def __len__(self) -> int:
        return len(self._favorites)

    def __iter__(self) -> Iterator[Coin]:
        return iter(list(self._favorites))

    def ids(self) -> List[str]:
        return [coin.id for coin in self._favorites]

    def contains(self, coin: Coin) -> bool:
        return self._index_of(coin.id) is not None

    def add(self, coin: Coin) -> None:
        if self.contains(coin):
            return

        self._favorites.append(coin)
        logger.info(f"Added {coin.id} to favorites")
        self._changed()

    def remove(self, coin: Coin) -> None:
        before = len(self._favorites)
        self._favorites = [c for c in self._favorites if c.id != coin.id]
        if len(self._favorites) != before:
            logger.info(f"Removed {coin.id} from favorites")
        self._changed()

    def update(self, coin: Coin) -> None:
        """Replace the stored snapshot of `coin` in place. Unknown ids are ignored."""

        if self._replace(coin):
            self._changed()

    def update_many(self, coins: Iterable[Coin]) -> None:
        """Apply `update` for each coin in order, persisting once at the end."""

        changed = False
        for coin in coins:
            changed = self._replace(coin) or changed
        if changed:
            self._changed()

    def _index_of(self, coin_id: str) -> Optional[int]:
        for index, existing in enumerate(self._favorites):
            if existing.id == coin_id:
                return index
        return None

    def _replace(self, coin: Coin) -> bool:
        index = self._index_of(coin.id)
        if index is None:
            return False
        if self._favorites[index].model_dump() == coin.model_dump():
            return False
        self._favorites[index] = coin
        return True

    def _changed(self) -> None:
        self._save()
        self._publish(StateFields.FAVORITES, self.favorites)

    def _save(self) -> None:
        try:
            blob = json.dumps([coin.model_dump() for coin in self._favorites]).encode("utf-8")
            self._settings_store.set_data(self._key, blob)
        except (PersistenceError, TypeError, ValueError) as e:
            logger.error(f"Failed to save favorites: {str(e)}")
            self._set_error(f"Failed to save favorites: {e}")
            return

        if self.error_message is not None:
            self._set_error(None)

    def _load(self) -> None:
        try:
            data = self._settings_store.get_data(self._key)
        except PersistenceError as e:
            logger.error(f"Failed to load favorites: {str(e)}")
            self._set_error(f"Failed to load favorites: {e}")
            return

        if data is None:
            return

        try:
            items = json.loads(data)
            if not isinstance(items, list):
                raise TypeError(f"expected a list, got {type(items).__name__}")
            coins = [Coin(**item) for item in items]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Failed to load favorites, starting empty: {str(e)}")
            self._set_error(f"Failed to load favorites: {e}")
            return

        seen = set()
        for coin in coins:
            if coin.id in seen:
                logger.warning(f"Dropping duplicate favorite {coin.id} from stored data")
                continue
            seen.add(coin.id)
            self._favorites.append(coin)

        logger.info(f"Loaded {len(self._favorites)} favorites")

    def _set_error(self, message: Optional[str]) -> None:
        self.error_message = message
        self.error_kind = ErrorKind.PERSISTENCE_FAILURE if message else None
        self._publish(StateFields.ERROR_MESSAGE, message)
