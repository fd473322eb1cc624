"""
Entity repositories over a whole-collection Store.

Every write is read snapshot -> change -> save snapshot. Transitions
(join/book/accept/complete/pay) are therefore last-write-wins when several
clients share one store: a concurrent writer's save can overwrite an
unrelated change made in between. Nothing here locks or versions records.
"""
import re
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from bson import ObjectId
from pydantic import BaseModel

import database
import seed
from database import Record, Store
from schemas import (
    User, Ride, RentalItem, DeliveryTask, Bill, Chat, Message,
    RideCreate, ItemCreate, TaskCreate, BillCreate, BillSummary, DashboardStats,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

CAMPUS_KEYWORDS = ("campus", "hostel", "iim", "library", "faculty", "mess", "h4", "h1", "h2", "h3")
CITY_KEYWORDS = ("mall", "city", "station", "airport", "market", "raipur", "theater")


def new_id() -> str:
    return str(ObjectId())


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def item_image_for(title: str) -> str:
    image_seed = re.sub(r"\s+", "-", title).lower()
    return f"https://picsum.photos/seed/{image_seed}/200/200"


def location_type(text: str) -> str:
    t = text.lower()
    if any(k in t for k in CAMPUS_KEYWORDS):
        return "campus"
    if any(k in t for k in CITY_KEYWORDS):
        return "city"
    return "other"


def heads(ride: Ride, direction: Optional[str]) -> bool:
    """Direction filter for rides: 'to_city', 'to_campus' or None/'all'."""
    if direction in (None, "all"):
        return True
    origin = location_type(ride.origin)
    dest = location_type(ride.destination)
    if direction == "to_city":
        return dest == "city" or (origin == "campus" and dest != "campus")
    if direction == "to_campus":
        return dest == "campus"
    return True


class Repository(Generic[ModelT]):
    collection: str
    model: Type[ModelT]
    defaults: List[Record] = []

    def __init__(self, store: Store):
        self.store = store

    async def _records(self) -> List[Record]:
        return await self.store.load(self.collection, copy.deepcopy(self.defaults))

    async def get_all(self) -> List[ModelT]:
        return [self.model.model_validate(r) for r in await self._records()]

    async def get(self, record_id: str) -> Optional[ModelT]:
        for record in await self._records():
            if record.get("id") == record_id:
                return self.model.model_validate(record)
        return None

    async def _prepend(self, obj: ModelT) -> ModelT:
        records = await self._records()
        await self.store.save(self.collection, [obj.model_dump(mode="json"), *records])
        return obj

    async def _append(self, obj: ModelT) -> ModelT:
        records = await self._records()
        await self.store.save(self.collection, [*records, obj.model_dump(mode="json")])
        return obj

    async def _transition(self, record_id: str, allowed: Callable[[Record], bool], change: Callable[[Record], Dict[str, Any]]) -> bool:
        records = await self._records()
        for record in records:
            if record.get("id") != record_id:
                continue
            if not allowed(record):
                return False
            record.update(change(record))
            await self.store.save(self.collection, records)
            return True
        return False


class UserRepository(Repository[User]):
    collection = database.USERS
    model = User
    defaults = [seed.SEED_USER]

    async def find_by_email(self, email: str) -> Optional[User]:
        clean = email.strip().lower()
        for record in await self._records():
            if record.get("email", "").strip().lower() == clean:
                return User.model_validate(record)
        return None

    async def add(self, user: User) -> User:
        return await self._append(user)

    async def replace(self, user: User) -> bool:
        return await self._transition(user.id, lambda r: True, lambda r: user.model_dump(mode="json"))


class RideRepository(Repository[Ride]):
    collection = database.RIDES
    model = Ride
    defaults = seed.SEED_RIDES

    async def get_all(self, mode: Optional[str] = None, direction: Optional[str] = None) -> List[Ride]:
        rides = await super().get_all()
        return [r for r in rides if (mode is None or r.mode == mode) and heads(r, direction)]

    async def create(self, fields: RideCreate, creator: User) -> Ride:
        ride = Ride(id=new_id(), driver=creator, **fields.model_dump())
        await self._prepend(ride)
        logger.info("Ride %s posted by %s (%s)", ride.id, creator.id, ride.mode)
        return ride

    async def join(self, ride_id: str) -> bool:
        """Take one seat. False when the ride is missing or full."""
        joined = await self._transition(
            ride_id,
            lambda r: r["seats_available"] > 0,
            lambda r: {"seats_available": r["seats_available"] - 1},
        )
        if joined:
            logger.info("Ride %s joined", ride_id)
        else:
            logger.info("Ride %s could not be joined", ride_id)
        return joined


class ItemRepository(Repository[RentalItem]):
    collection = database.ITEMS
    model = RentalItem
    defaults = seed.SEED_ITEMS

    async def get_all(self, mode: Optional[str] = None, category: Optional[str] = None, status: Optional[str] = None) -> List[RentalItem]:
        items = await super().get_all()
        return [
            i for i in items
            if (mode is None or i.mode == mode)
            and (category in (None, "All") or i.category == category)
            and (status is None or i.status == status)
        ]

    async def create(self, fields: ItemCreate, creator: User) -> RentalItem:
        item = RentalItem(
            id=new_id(),
            owner=creator,
            image=item_image_for(fields.title),
            status="available",
            **fields.model_dump(),
        )
        await self._prepend(item)
        logger.info("Item %s listed by %s", item.id, creator.id)
        return item

    async def book(self, item_id: str) -> bool:
        booked = await self._transition(
            item_id,
            lambda r: r["status"] == "available",
            lambda r: {"status": "rented"},
        )
        logger.info("Item %s %s", item_id, "booked" if booked else "not booked")
        return booked


class TaskRepository(Repository[DeliveryTask]):
    collection = database.TASKS
    model = DeliveryTask
    defaults = seed.SEED_TASKS

    async def get_all(self, mode: Optional[str] = None, status: Optional[str] = None) -> List[DeliveryTask]:
        tasks = await super().get_all()
        return [t for t in tasks if (mode is None or t.mode == mode) and (status is None or t.status == status)]

    async def create(self, fields: TaskCreate, creator: User) -> DeliveryTask:
        task = DeliveryTask(id=new_id(), requester=creator, status="open", **fields.model_dump())
        await self._prepend(task)
        logger.info("Task %s posted by %s (%s)", task.id, creator.id, task.mode)
        return task

    async def accept(self, task_id: str) -> bool:
        accepted = await self._transition(
            task_id,
            lambda r: r["status"] == "open",
            lambda r: {"status": "assigned"},
        )
        logger.info("Task %s %s", task_id, "assigned" if accepted else "not accepted")
        return accepted

    async def complete(self, task_id: str) -> bool:
        return await self._transition(
            task_id,
            lambda r: r["status"] == "assigned",
            lambda r: {"status": "completed"},
        )


class BillRepository(Repository[Bill]):
    collection = database.BILLS
    model = Bill
    defaults = seed.SEED_BILLS

    async def get_all(self, user_id: Optional[str] = None) -> List[Bill]:
        bills = await super().get_all()
        return [b for b in bills if user_id is None or b.user_id == user_id]

    async def create(self, fields: BillCreate, user_id: str) -> Bill:
        bill = Bill(id=new_id(), user_id=user_id, status="pending", **fields.model_dump())
        await self._prepend(bill)
        return bill

    async def pay(self, bill_id: str) -> bool:
        # no already-paid guard: paying again re-stamps paid_at
        paid_at = now_utc().isoformat()
        paid = await self._transition(bill_id, lambda r: True, lambda r: {"status": "paid", "paid_at": paid_at})
        if paid:
            logger.info("Bill %s paid", bill_id)
        return paid

    async def summary(self, user_id: str) -> BillSummary:
        bills = await self.get_all(user_id)
        pending = [b for b in bills if b.status == "pending"]
        return BillSummary(
            pending_total=sum(b.amount for b in pending),
            pending_count=len(pending),
            paid_count=len(bills) - len(pending),
        )


class ChatRepository(Repository[Chat]):
    collection = database.CHATS
    model = Chat

    async def add(self, chat: Chat) -> Chat:
        return await self._append(chat)


class MessageRepository(Repository[Message]):
    collection = database.MESSAGES
    model = Message

    async def for_chat(self, chat_id: str) -> List[Message]:
        return [m for m in await self.get_all() if m.chat_id == chat_id]

    async def add(self, message: Message) -> Message:
        return await self._append(message)


async def dashboard_stats(rides: RideRepository, items: ItemRepository, tasks: TaskRepository) -> DashboardStats:
    """Open ride offers with seats, available item offers, open task requests."""
    all_rides = await rides.get_all(mode="offer")
    all_items = await items.get_all(mode="offer", status="available")
    all_tasks = await tasks.get_all(mode="request", status="open")
    return DashboardStats(
        rides=sum(1 for r in all_rides if r.seats_available > 0),
        items=len(all_items),
        tasks=len(all_tasks),
    )
