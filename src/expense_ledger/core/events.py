"""In-process change feed for reactive read models.

Services publish a topic after every successful commit. Readers subscribe to
one or more topics and re-run their query whenever a notification arrives,
so a watched balance or total always reflects the latest committed state.

Example:
    >>> feed = ChangeFeed()
    >>> async for accounts in feed.watch([ACCOUNTS], ledger.current_accounts):
    ...     render(accounts)
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from datetime import UTC, datetime
from typing import Any, NamedTuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACCOUNTS = "accounts"
CATEGORIES = "categories"
TRANSACTIONS = "transactions"
TRANSFERS = "transfers"
DEBTS = "debts"
RATES = "rates"
KEYWORDS = "keywords"
CURRENCIES = "currencies"

ALL_TOPICS = (ACCOUNTS, CATEGORIES, TRANSACTIONS, TRANSFERS, DEBTS, RATES, KEYWORDS, CURRENCIES)


class ChangeEvent(NamedTuple):
    topic: str
    ts: str
    payload: dict[str, Any]


class Subscription:
    """Queue of change events for a set of topics.

    Iterate it with ``async for``; call :meth:`close` (or use it as an async
    context manager) to stop receiving events.
    """

    def __init__(self, feed: "ChangeFeed", topics: tuple[str, ...]) -> None:
        self.topics = topics
        self._feed = feed
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()

    def _deliver(self, event: ChangeEvent) -> None:
        self._queue.put_nowait(event)

    def pending(self) -> int:
        """Number of events delivered but not yet consumed."""
        return self._queue.qsize()

    async def get(self) -> ChangeEvent:
        return await self._queue.get()

    def close(self) -> None:
        self._feed._remove(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        return await self._queue.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class ChangeFeed:
    """Topic-based publish/subscribe hub for committed changes."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = {}

    def subscribe(self, *topics: str) -> Subscription:
        """Subscribe to one or more topics.

        Args:
            *topics: Topic names such as ``ACCOUNTS`` or ``TRANSACTIONS``

        Returns:
            A new subscription receiving every event published afterwards
        """
        if not topics:
            raise ValueError("At least one topic is required")
        subscription = Subscription(self, tuple(topics))
        for topic in topics:
            self._subscribers.setdefault(topic, []).append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        for topic in subscription.topics:
            subscribers = self._subscribers.get(topic)
            if subscribers and subscription in subscribers:
                subscribers.remove(subscription)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    def publish(self, topic: str, **payload: Any) -> int:
        """Notify every subscriber of ``topic``.

        Returns:
            The number of subscriptions the event was delivered to
        """
        subscribers = self._subscribers.get(topic)
        if not subscribers:
            return 0

        event = ChangeEvent(topic=topic, ts=datetime.now(UTC).isoformat(), payload=payload)
        for subscription in list(subscribers):
            subscription._deliver(event)
        logger.debug(f"Published {topic} to {len(subscribers)} subscriber(s)")
        return len(subscribers)

    def publish_many(self, topics: Iterable[str], **payload: Any) -> None:
        # A subscription listening on several of the topics gets one event per topic
        for topic in dict.fromkeys(topics):
            self.publish(topic, **payload)

    async def watch(
        self,
        topics: Iterable[str],
        load: Callable[[], Awaitable[T]],
    ) -> AsyncIterator[T]:
        """Yield ``await load()`` now and again after every change on ``topics``.

        Args:
            topics: Topics that invalidate the loaded value
            load: Coroutine function producing the current value

        Yields:
            The freshly loaded value
        """
        subscription = self.subscribe(*topics)
        try:
            yield await load()
            async for _event in subscription:
                yield await load()
        finally:
            subscription.close()
