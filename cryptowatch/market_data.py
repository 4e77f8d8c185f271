"""
Market data service: top coins, search, and the periodic price refresh.

All public operations are coroutines meant to run on one asyncio loop. The
blocking HTTP client runs in a worker thread through `asyncio.to_thread`;
results are applied back on the loop, so state is only ever touched from
one thread and needs no locking.

Each fetch takes a ticket for what it will overwrite (`top_coins`,
`search_results`, or the favorites refresh). When a response comes back and
a newer request of the same kind has been issued in the meantime, the
response is dropped. A favorites refresh only mirrors its records into
`search_results` when no user search or detail fetch was issued or is still
running since it started.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Set

from .api_client import CoinGeckoAPIError, CoinGeckoClient
from .constants import ErrorKind, MAX_DETAILS_PER_PAGE, SEARCH_RESULT_LIMIT, StateFields, ValidationStatus
from .events import Observable
from .schemas import Coin

logger = logging.getLogger("market_data")


class MarketDataService(Observable):
    """Fetches coin lists from CoinGecko and keeps favorites fresh."""

    source_name = "market_data"

    DEFAULT_TOP_COINS_LIMIT = 100
    DEFAULT_REFRESH_INTERVAL = 5.0
    DEFAULT_SEARCH_DEBOUNCE = 0.5
    STOP_TIMEOUT = 6.0

    def __init__(
        self,
        client: Optional[CoinGeckoClient] = None,
        favorites=None,
        validator=None,
        search_debounce_seconds: float = DEFAULT_SEARCH_DEBOUNCE,
    ):
        super().__init__()
        self._client = client if client is not None else CoinGeckoClient()
        self._favorites = favorites
        self._validator = validator
        self._search_debounce_seconds = search_debounce_seconds

        self._top_coins: List[Coin] = []
        self._search_results: List[Coin] = []
        self._loading = 0
        self.error_message: Optional[str] = None
        self.error_kind: Optional[ErrorKind] = None

        self._tickets: Dict[str, int] = {
            StateFields.TOP_COINS: 0,
            StateFields.SEARCH_RESULTS: 0,
            StateFields.FAVORITES: 0,
        }
        self._searches_in_flight = 0
        self._top_coins_limit = self.DEFAULT_TOP_COINS_LIMIT

        self._refresh_task: Optional[asyncio.Task] = None
        self._retired_refresh_tasks: Set[asyncio.Task] = set()
        self._stop_event: Optional[asyncio.Event] = None
        self._search_task: Optional[asyncio.Task] = None

    # ----------------------------
    # observable state
    # ----------------------------
    @property
    def top_coins(self) -> List[Coin]:
        return list(self._top_coins)

    @property
    def search_results(self) -> List[Coin]:
        return list(self._search_results)

    @property
    def is_loading(self) -> bool:
        return self._loading > 0

    @property
    def refresh_running(self) -> bool:
        return bool(
            self._refresh_task is not None
            and not self._refresh_task.done()
            and self._stop_event is not None
            and not self._stop_event.is_set()
        )

    # ----------------------------
    # fetch operations
    # ----------------------------
    async def fetch_top_coins(self, limit: int = DEFAULT_TOP_COINS_LIMIT) -> None:
        """Replace `top_coins` with the `limit` largest coins by market cap."""

        ticket = self._next_ticket(StateFields.TOP_COINS)
        self._top_coins_limit = limit
        self._set_error(None)
        self._begin_loading()
        try:
            coins = await self._call(
                StateFields.TOP_COINS, ticket, "Failed to fetch coins",
                self._client.get_markets_data, per_page=limit,
            )
            if coins is None:
                return

            self._check_quality(coins, StateFields.TOP_COINS)
            self._top_coins = list(coins)
            self._publish(StateFields.TOP_COINS, self.top_coins)
        finally:
            self._end_loading()

    async def search_coins(self, query: str) -> None:
        """
        Search by name or symbol, then hydrate the first 20 matches with
        market data. A blank query clears the results without a request.
        """

        ticket = self._next_ticket(StateFields.SEARCH_RESULTS)
        if not query or not query.strip():
            self._set_search_results([])
            return

        self._set_error(None)
        self._begin_loading()
        self._searches_in_flight += 1
        try:
            response = await self._call(
                StateFields.SEARCH_RESULTS, ticket, "Search failed",
                self._client.search, query,
            )
            if response is None:
                return

            ids = [match.id for match in response.coins[:SEARCH_RESULT_LIMIT]]
            await self._fetch_details(ids, ticket)
        finally:
            self._searches_in_flight -= 1
            self._end_loading()

    async def fetch_coin_details(self, ids: Sequence[str]) -> None:
        """Replace `search_results` with full records for `ids` (at most 250)."""

        ticket = self._next_ticket(StateFields.SEARCH_RESULTS)
        self._searches_in_flight += 1
        try:
            await self._fetch_details(list(ids), ticket)
        finally:
            self._searches_in_flight -= 1

    async def update_favorite_coins(self, ids: Sequence[str]) -> None:
        """
        Fetch fresh records for the favorite `ids` and hand them to the
        favorites store. The records also replace `search_results`, unless a
        user search or detail fetch was issued since, or is still running.
        """

        if not ids:
            return

        ticket = self._next_ticket(StateFields.FAVORITES)
        search_ticket = self._tickets[StateFields.SEARCH_RESULTS]

        coins = await self._call(
            StateFields.FAVORITES, ticket, "Failed to fetch coin details",
            self._client.get_markets_data, per_page=MAX_DETAILS_PER_PAGE, ids=list(ids),
        )
        if coins is None:
            return

        self._check_quality(coins, StateFields.FAVORITES)
        if self._favorites is not None:
            self._favorites.update_many(coins)

        if self._tickets[StateFields.SEARCH_RESULTS] == search_ticket and not self._searches_in_flight:
            self._set_search_results(coins)
        else:
            logger.info("Favorites refresh left search_results to a newer search")

    def schedule_search(self, query: str, delay: Optional[float] = None) -> Optional[asyncio.Task]:
        """
        Debounced `search_coins`: a call replaces any search still waiting
        out its delay. Blank queries clear the results immediately.

        Must be called from the running loop.
        """

        if self._search_task is not None and not self._search_task.done():
            self._search_task.cancel()
        self._search_task = None

        if not query or not query.strip():
            self._next_ticket(StateFields.SEARCH_RESULTS)
            self._set_search_results([])
            return None

        delay = self._search_debounce_seconds if delay is None else delay
        loop = asyncio.get_running_loop()
        self._search_task = loop.create_task(self._debounced_search(query, delay))
        return self._search_task

    # ----------------------------
    # periodic refresh
    # ----------------------------
    def start_periodic_refresh(self, interval_seconds: float = DEFAULT_REFRESH_INTERVAL) -> None:
        """
        Start re-fetching favorites and top coins every `interval_seconds`.
        Any loop already running is stopped first. Must be called from the
        running loop.
        """

        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than 0")

        self.stop_periodic_refresh()

        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._refresh_task = asyncio.get_running_loop().create_task(
            self._refresh_loop(interval_seconds, stop_event),
            name="market_data.refresh",
        )
        logger.info(f"Periodic refresh started | interval_s={interval_seconds}")

    def stop_periodic_refresh(self) -> None:
        """
        Stop scheduling refresh ticks. A tick already running finishes its
        requests; `aclose` waits for it. Calling this when nothing runs does
        nothing.
        """

        task = self._refresh_task
        self._refresh_task = None
        if task is not None and not task.done():
            self._retired_refresh_tasks.add(task)
            task.add_done_callback(self._retired_refresh_tasks.discard)

        if self._stop_event is None:
            return

        self._stop_event.set()
        self._stop_event = None
        logger.info("Periodic refresh stopped")

    async def refresh_tick(self) -> None:
        """One refresh: favorites (if any) and top coins (if loaded), concurrently."""

        jobs = []
        if self._favorites is not None:
            favorite_ids = self._favorites.ids()
            if favorite_ids:
                jobs.append(self.update_favorite_coins(favorite_ids))

        if self._top_coins:
            jobs.append(self.fetch_top_coins(self._top_coins_limit))

        if not jobs:
            return

        results = await asyncio.gather(*jobs, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("Refresh job failed", exc_info=result)

    async def aclose(self, timeout_s: float = STOP_TIMEOUT) -> None:
        """
        Stop the refresh loop and any pending debounced search, then wait for
        every refresh loop still finishing a tick, including loops replaced by
        a restart. Loops still busy after `timeout_s` are cancelled.
        """

        self.stop_periodic_refresh()

        if self._search_task is not None and not self._search_task.done():
            self._search_task.cancel()
            await asyncio.gather(self._search_task, return_exceptions=True)
        self._search_task = None

        tasks = list(self._retired_refresh_tasks)
        if not tasks:
            return

        try:
            await asyncio.wait_for(asyncio.gather(*tasks, return_exceptions=True), timeout=timeout_s)
        except asyncio.TimeoutError:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    # ----------------------------
    # internals
    # ----------------------------
    async def _refresh_loop(self, interval_seconds: float, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass

            if stop_event.is_set():
                break

            try:
                await self.refresh_tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Refresh tick failed")

    async def _debounced_search(self, query: str, delay: float) -> None:
        await asyncio.sleep(delay)
        # past the delay the search counts as issued and is no longer cancelled
        if self._search_task is asyncio.current_task():
            self._search_task = None
        await self.search_coins(query)

    async def _fetch_details(self, ids: List[str], ticket: int) -> None:
        if not ids:
            self._set_search_results([])
            return

        coins = await self._call(
            StateFields.SEARCH_RESULTS, ticket, "Failed to fetch coin details",
            self._client.get_markets_data, per_page=MAX_DETAILS_PER_PAGE, ids=ids,
        )
        if coins is None:
            return

        self._check_quality(coins, StateFields.SEARCH_RESULTS)
        self._set_search_results(coins)

        if self._favorites is not None:
            self._favorites.update_many(coins)

    async def _call(self, resource: str, ticket: int, failure_prefix: str, func, *args, **kwargs):
        """
        Run a blocking client call off the loop. Returns None when it failed
        or was superseded; failures are recorded in `error_message`.
        """

        try:
            result = await asyncio.to_thread(func, *args, **kwargs)
        except CoinGeckoAPIError as e:
            if self._is_stale(resource, ticket):
                return None
            logger.error(f"{failure_prefix}: {str(e)}")
            self._set_error(f"{failure_prefix}: {e}", e.kind)
            return None

        if self._is_stale(resource, ticket):
            return None
        return result

    def _next_ticket(self, resource: str) -> int:
        self._tickets[resource] += 1
        return self._tickets[resource]

    def _is_stale(self, resource: str, ticket: int) -> bool:
        latest = self._tickets[resource]
        if ticket != latest:
            logger.warning(f"Discarding stale {resource} response | ticket={ticket} latest={latest}")
            return True
        return False

    def _check_quality(self, coins: Sequence[Coin], stage: str) -> None:
        if self._validator is None:
            return

        report = self._validator.validate_coins(coins, stage=stage)
        if report['status'] == ValidationStatus.FAILED:
            logger.warning(f"Data quality issues in {stage}: {report['failed_checks']}")

    def _set_search_results(self, coins: Sequence[Coin]) -> None:
        self._search_results = list(coins)
        self._publish(StateFields.SEARCH_RESULTS, self.search_results)

    def _set_error(self, message: Optional[str], kind: Optional[ErrorKind] = None) -> None:
        if message == self.error_message and kind == self.error_kind:
            return
        self.error_message = message
        self.error_kind = kind
        self._publish(StateFields.ERROR_MESSAGE, message)

    def _begin_loading(self) -> None:
        self._loading += 1
        if self._loading == 1:
            self._publish(StateFields.IS_LOADING, True)

    def _end_loading(self) -> None:
        self._loading -= 1
        if self._loading == 0:
            self._publish(StateFields.IS_LOADING, False)
