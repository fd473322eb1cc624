"""
Polling refresh loops.

There is no push channel: a view stays current by re-fetching on a fixed
interval. Each view owns one RefreshLoop and must stop it when it goes away.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from repositories import BillRepository, ItemRepository, RideRepository, TaskRepository, dashboard_stats
from chats import ChatService

logger = logging.getLogger(__name__)

T = TypeVar("T")

LISTING_INTERVAL = 3.0
MESSAGES_INTERVAL = 3.0
BILLS_INTERVAL = 4.0
DASHBOARD_INTERVAL = 5.0


class RefreshLoop(Generic[T]):
    def __init__(self, fetch: Callable[[], Awaitable[T]], interval: float, name: str = "view", on_update: Optional[Callable[[T], None]] = None):
        self.fetch = fetch
        self.interval = interval
        self.name = name
        self.on_update = on_update
        self.snapshot: Optional[T] = None
        self.refreshes = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> T:
        """Fetch once and replace the snapshot."""
        data = await self.fetch()
        self.snapshot = data
        self.refreshes += 1
        if self.on_update is not None:
            self.on_update(data)
        return data

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"refresh-{self.name}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception:
                # the previous snapshot stays in place until the next tick
                logger.warning("Refresh of %s failed", self.name, exc_info=True)
            await asyncio.sleep(self.interval)

    async def __aenter__(self) -> "RefreshLoop[T]":
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()


def rides_view(rides: RideRepository, mode: Optional[str] = None, direction: Optional[str] = None) -> RefreshLoop:
    return RefreshLoop(lambda: rides.get_all(mode=mode, direction=direction), LISTING_INTERVAL, name="pooling")


def items_view(items: ItemRepository, mode: Optional[str] = None, category: Optional[str] = None) -> RefreshLoop:
    return RefreshLoop(lambda: items.get_all(mode=mode, category=category), LISTING_INTERVAL, name="renting")


def tasks_view(tasks: TaskRepository, mode: Optional[str] = None) -> RefreshLoop:
    return RefreshLoop(lambda: tasks.get_all(mode=mode), LISTING_INTERVAL, name="delivery")


def chats_view(chats: ChatService, user_id: str) -> RefreshLoop:
    return RefreshLoop(lambda: chats.list(user_id), MESSAGES_INTERVAL, name="messages")


def bills_view(bills: BillRepository, user_id: str) -> RefreshLoop:
    return RefreshLoop(lambda: bills.get_all(user_id), BILLS_INTERVAL, name="bills")


def dashboard_view(rides: RideRepository, items: ItemRepository, tasks: TaskRepository) -> RefreshLoop:
    return RefreshLoop(lambda: dashboard_stats(rides, items, tasks), DASHBOARD_INTERVAL, name="dashboard")
