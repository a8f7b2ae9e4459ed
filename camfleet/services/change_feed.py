# camfleet/services/change_feed.py
"""
In-process change feed.

SqlGateway publishes one ChangeNotification per committed write; subscribers
(the state cache) receive it on the event loop. Async callbacks run as tasks so
a slow refresh never blocks the write that triggered it.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Callable, Iterable
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChangeNotification:
    table: str
    event: str          # INSERT | UPDATE | DELETE


class Subscription:
    def __init__(self, feed: "ChangeFeed", tables: Iterable[str], callback: Callable):
        self.feed = feed
        self.tables = frozenset(tables)
        self.callback = callback
        self.active = True

    def unsubscribe(self):
        self.active = False
        self.feed._subscriptions.discard(self)


class ChangeFeed:
    def __init__(self):
        self._subscriptions: set[Subscription] = set()
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self, tables: Iterable[str], callback: Callable) -> Subscription:
        subscription = Subscription(self, tables, callback)
        self._subscriptions.add(subscription)
        logger.info(f"[REALTIME] Subscribed to {sorted(subscription.tables)}")
        return subscription

    def publish(self, table: str, event: str):
        notification = ChangeNotification(table, event)
        for subscription in list(self._subscriptions):
            if not subscription.active or table not in subscription.tables:
                continue
            try:
                result = subscription.callback(notification)
            except Exception as e:
                logger.error(f"[REALTIME] Subscriber failed on {table}/{event}: {e}", exc_info=True)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception():
            logger.error(f"[REALTIME] Subscriber task failed: {task.exception()}")

    async def drain(self):
        """Wait for every delivered notification to be handled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
