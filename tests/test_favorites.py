"""Unit tests for FavoritesStore."""

import json
from unittest.mock import Mock

import pytest

from cryptowatch.constants import ErrorKind, FAVORITES_KEY, StateFields
from cryptowatch.favorites import FavoritesStore
from cryptowatch.schemas import Coin
from cryptowatch.storage import JsonFileSettingsStore, MemorySettingsStore, PersistenceError


def make_coin(coin_id='bitcoin', price=45000.0, **fields):
    return Coin(id=coin_id, symbol=coin_id[:3], name=coin_id.title(), current_price=price, **fields)


def stored(settings_store):
    return json.loads(settings_store.get_data(FAVORITES_KEY))


@pytest.fixture
def settings_store():
    return MemorySettingsStore()


@pytest.fixture
def favorites(settings_store):
    return FavoritesStore(settings_store)


class TestLoad:
    """Test loading favorites from the settings store."""

    def test_starts_empty_without_stored_data(self, favorites):
        assert favorites.favorites == []
        assert favorites.error_message is None

    def test_loads_stored_favorites_in_order(self, settings_store):
        settings_store.set_data(FAVORITES_KEY, json.dumps([
            make_coin('ethereum', 3000).model_dump(),
            make_coin('bitcoin').model_dump(),
        ]).encode('utf-8'))

        store = FavoritesStore(settings_store)

        assert store.ids() == ['ethereum', 'bitcoin']
        assert store.favorites[0].current_price == 3000

    @pytest.mark.parametrize("blob", [
        b'{not json',
        b'{"id": "bitcoin"}',
        b'[{"symbol": "btc"}]',
        b'[1, 2]',
    ])
    def test_corrupt_data_starts_empty(self, settings_store, blob):
        settings_store.set_data(FAVORITES_KEY, blob)

        store = FavoritesStore(settings_store)

        assert store.favorites == []
        assert store.error_kind == ErrorKind.PERSISTENCE_FAILURE
        assert store.error_message.startswith("Failed to load favorites")

    def test_storage_read_error_starts_empty(self):
        broken = Mock()
        broken.get_data.side_effect = PersistenceError("disk gone")

        store = FavoritesStore(broken)

        assert store.favorites == []
        assert "disk gone" in store.error_message

    def test_settings_file_with_non_string_value_starts_empty(self, tmp_path):
        path = tmp_path / 'settings.json'
        path.write_text(json.dumps({FAVORITES_KEY: [{'id': 'bitcoin'}]}), encoding='utf-8')

        store = FavoritesStore(JsonFileSettingsStore(path))

        assert store.favorites == []
        assert store.error_kind == ErrorKind.PERSISTENCE_FAILURE

    def test_duplicate_ids_in_stored_data_keep_first(self, settings_store):
        settings_store.set_data(FAVORITES_KEY, json.dumps([
            make_coin('bitcoin', 1).model_dump(),
            make_coin('bitcoin', 2).model_dump(),
        ]).encode('utf-8'))

        store = FavoritesStore(settings_store)

        assert len(store) == 1
        assert store.favorites[0].current_price == 1


class TestMutations:
    """Test add / remove / update."""

    def test_add_persists(self, favorites, settings_store):
        favorites.add(make_coin())

        assert favorites.contains(make_coin())
        assert [item['id'] for item in stored(settings_store)] == ['bitcoin']

    def test_add_is_idempotent(self, favorites, settings_store):
        favorites.add(make_coin(price=45000))
        favorites.add(make_coin(price=99999))

        assert len(favorites) == 1
        assert favorites.favorites[0].current_price == 45000
        assert len(stored(settings_store)) == 1

    def test_add_preserves_insertion_order(self, favorites):
        for coin_id in ['solana', 'bitcoin', 'ethereum']:
            favorites.add(make_coin(coin_id))

        assert favorites.ids() == ['solana', 'bitcoin', 'ethereum']
        assert [coin.id for coin in favorites] == ['solana', 'bitcoin', 'ethereum']

    def test_remove(self, favorites, settings_store):
        favorites.add(make_coin('bitcoin'))
        favorites.add(make_coin('ethereum'))

        favorites.remove(make_coin('bitcoin', price=1))

        assert favorites.ids() == ['ethereum']
        assert [item['id'] for item in stored(settings_store)] == ['ethereum']

    def test_remove_absent_still_persists(self):
        settings_store = Mock()
        settings_store.get_data.return_value = None
        store = FavoritesStore(settings_store)

        store.remove(make_coin('dogecoin'))

        assert store.favorites == []
        settings_store.set_data.assert_called_once_with(FAVORITES_KEY, b'[]')

    def test_update_replaces_in_place(self, favorites, settings_store):
        favorites.add(make_coin('bitcoin', 45000))
        favorites.add(make_coin('ethereum', 3000))

        favorites.update(make_coin('bitcoin', 46000))

        assert favorites.ids() == ['bitcoin', 'ethereum']
        assert favorites.favorites[0].current_price == 46000
        assert stored(settings_store)[0]['current_price'] == 46000

    def test_update_absent_is_noop(self):
        settings_store = Mock()
        settings_store.get_data.return_value = None
        store = FavoritesStore(settings_store)

        store.update(make_coin('bitcoin'))

        assert store.favorites == []
        settings_store.set_data.assert_not_called()

    def test_update_many(self, favorites):
        favorites.add(make_coin('bitcoin', 45000))
        favorites.add(make_coin('solana', 100))
        favorites.add(make_coin('ethereum', 3000))

        favorites.update_many([
            make_coin('ethereum', 3100),
            make_coin('dogecoin', 0.1),
            make_coin('bitcoin', 46000),
        ])

        assert favorites.ids() == ['bitcoin', 'solana', 'ethereum']
        assert [coin.current_price for coin in favorites.favorites] == [46000, 100, 3100]

    def test_update_many_writes_once(self):
        settings_store = Mock()
        settings_store.get_data.return_value = None
        store = FavoritesStore(settings_store)
        store.add(make_coin('bitcoin'))
        store.add(make_coin('ethereum'))
        settings_store.set_data.reset_mock()

        store.update_many([make_coin('bitcoin', 1), make_coin('ethereum', 2)])

        settings_store.set_data.assert_called_once()

    def test_update_many_unchanged_does_not_write(self):
        settings_store = Mock()
        settings_store.get_data.return_value = None
        store = FavoritesStore(settings_store)
        store.add(make_coin('bitcoin', 45000))
        settings_store.set_data.reset_mock()

        store.update_many([make_coin('bitcoin', 45000)])

        settings_store.set_data.assert_not_called()

    def test_save_failure_is_reported_not_raised(self):
        settings_store = Mock()
        settings_store.get_data.return_value = None
        settings_store.set_data.side_effect = PersistenceError("read-only")
        store = FavoritesStore(settings_store)

        store.add(make_coin())

        assert store.ids() == ['bitcoin']
        assert store.error_kind == ErrorKind.PERSISTENCE_FAILURE
        assert "read-only" in store.error_message

        settings_store.set_data.side_effect = None
        store.add(make_coin('ethereum'))
        assert store.error_message is None


class TestNotifications:

    def test_mutations_publish_snapshots(self, favorites):
        changes = []
        unsubscribe = favorites.subscribe(changes.append)

        favorites.add(make_coin('bitcoin'))
        favorites.add(make_coin('bitcoin'))
        favorites.remove(make_coin('bitcoin'))
        unsubscribe()
        favorites.add(make_coin('ethereum'))

        assert [change.field for change in changes] == [StateFields.FAVORITES, StateFields.FAVORITES]
        assert [coin.id for coin in changes[0].value] == ['bitcoin']
        assert changes[1].value == []
        assert changes[0].source == 'favorites'

    def test_failing_subscriber_does_not_break_store(self, favorites):
        seen = []

        def broken(change):
            raise RuntimeError("boom")

        favorites.subscribe(broken)
        favorites.subscribe(seen.append)

        favorites.add(make_coin())

        assert favorites.ids() == ['bitcoin']
        assert len(seen) == 1


class TestRoundTrip:

    def test_file_round_trip(self, tmp_path):
        path = tmp_path / 'settings.json'
        saved = FavoritesStore(JsonFileSettingsStore(path))
        saved.add(make_coin('bitcoin', 45000, market_cap_rank=1, ath_date='2025-10-06T18:57:42.558Z'))
        saved.add(make_coin('ethereum', 3214.98, max_supply=None))
        saved.add(make_coin('solana', 0.000123))

        reloaded = FavoritesStore(JsonFileSettingsStore(path))

        assert reloaded.ids() == ['bitcoin', 'ethereum', 'solana']
        assert [coin.model_dump() for coin in reloaded.favorites] == [
            coin.model_dump() for coin in saved.favorites
        ]
