import logging
from collections.abc import AsyncIterator, Callable, Iterable, AsyncIterable, Iterator
from typing import Generic, TypeAlias, TypeVar

import janus
from janus import AsyncQueueShutDown, SyncQueueEmpty, SyncQueueShutDown

_logger = logging.getLogger(__name__)

T = TypeVar('T')

Predicate: TypeAlias = Callable[[T], bool]


class Subscription(Iterable[T], AsyncIterable[T], Generic[T]):
    """One subscriber's view of a BroadcastChannel. Supports for and async for, which end when it is closed.

    Only items published after the subscription was created are received; nothing is replayed.
    Items are buffered without bound until consumed. Closing the subscription (or the channel)
    lets the consumer drain what is already buffered, after which iteration ends.

    Must be created while an asyncio event loop is running; items are published on that loop.
    """
    def __init__(self, channel: 'BroadcastChannel[T]', predicate: Predicate[T] | None = None):
        self._channel = channel
        self._predicate = predicate
        self._queue: janus.Queue[T] = janus.Queue()
        self.closed = False

    def accepts(self, item: T) -> bool:
        return self._predicate is None or self._predicate(item)

    def _deliver(self, item: T) -> None:
        self._queue.async_q.put_nowait(item)

    def close(self) -> None:
        """Stop receiving new items. Already buffered items can still be read."""
        if self.closed:
            return
        self.closed = True
        self._channel._unsubscribe(self)
        self._queue.shutdown(immediate=False)

    async def aget(self) -> T:
        ret = await self._queue.async_q.get()
        self._queue.async_q.task_done()
        return ret

    def get(self, timeout: float | None = None) -> T:
        ret = self._queue.sync_q.get(timeout=timeout)
        self._queue.sync_q.task_done()
        return ret

    def get_nowait(self) -> T | None:
        try:
            ret = self._queue.sync_q.get_nowait()
            self._queue.sync_q.task_done()
            return ret
        except (SyncQueueEmpty, SyncQueueShutDown):
            return None

    def drain(self) -> list[T]:
        """Return all buffered items without waiting."""
        ret = []
        while (item := self.get_nowait()) is not None:
            ret.append(item)
        return ret

    def __iter__(self) -> Iterator[T]:
        try:
            while True:
                yield self.get()
        except SyncQueueShutDown:
            pass

    async def __aiter__(self) -> AsyncIterator[T]:
        try:
            while True:
                yield await self.aget()
        except AsyncQueueShutDown:
            pass

    def __len__(self) -> int:
        return self._queue.sync_q.qsize()

    def __enter__(self) -> 'Subscription[T]':
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    async def __aenter__(self) -> 'Subscription[T]':
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


class BroadcastChannel(Generic[T]):
    """Publishes each item to every current subscriber and listener, without replay.

    Not threadsafe; publish, subscribe and close are meant to be called on the event loop thread.
    A listener that raises is logged and does not affect other receivers.
    """
    def __init__(self, name: str = 'channel'):
        self.name = name
        self._subscriptions: list[Subscription[T]] = []
        self._listeners: list[tuple[Callable[[T], None], Predicate[T] | None]] = []
        self.closed = False

    def subscribe(self, predicate: Predicate[T] | None = None) -> Subscription[T]:
        subscription = Subscription(self, predicate)
        if self.closed:
            subscription.close()
        else:
            self._subscriptions.append(subscription)
        return subscription

    def add_listener(self, callback: Callable[[T], None], predicate: Predicate[T] | None = None) -> Callable[[], None]:
        """Call `callback` synchronously for each matching item. Returns a function that removes the listener."""
        entry = (callback, predicate)
        if not self.closed:
            self._listeners.append(entry)

        def remove() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)
        return remove

    def _unsubscribe(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, item: T) -> None:
        if self.closed:
            _logger.debug(f'Ignoring item published to closed {self.name}')
            return
        for subscription in tuple(self._subscriptions):
            if subscription.accepts(item):
                subscription._deliver(item)
        for callback, predicate in tuple(self._listeners):
            try:
                if predicate is None or predicate(item):
                    callback(item)
            except Exception:
                _logger.exception(f'Listener {callback} on {self.name} failed')

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for subscription in tuple(self._subscriptions):
            subscription.close()
        self._listeners.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._listeners)
