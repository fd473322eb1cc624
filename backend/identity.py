import os
import re
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

from jose import jwt

import seed
from database import Store
from errors import ConflictError, NotFoundError
from repositories import ItemRepository, RideRepository, TaskRepository, UserRepository, new_id
from schemas import User

logger = logging.getLogger(__name__)

# Session config
SECRET_KEY = os.getenv("SECRET_KEY", "campusconnectdevkey")
ALGORITHM = "HS256"
SESSION_EXPIRE_MINUTES = int(os.getenv("SESSION_EXPIRE_MINUTES", "0"))  # 0 = never expires

UNKNOWN_USER_NAME = "Unknown User"


def avatar_for(name: str) -> str:
    avatar_seed = re.sub(r"\s", "", name)
    return f"https://api.dicebear.com/7.x/avataaars/svg?seed={avatar_seed}"


def create_session_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    to_encode: Dict[str, Any] = {"sub": user_id}
    if expires_delta is None and SESSION_EXPIRE_MINUTES > 0:
        expires_delta = timedelta(minutes=SESSION_EXPIRE_MINUTES)
    if expires_delta is not None:
        to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def read_session_token(token: str) -> Optional[str]:
    """User id stored in a session token. Raises JWTError for bad tokens."""
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    return payload.get("sub")


def compute_streak(activity_log: Iterable[str], today: date) -> int:
    """
    Consecutive active days ending today. A streak that reached yesterday is
    still alive until today ends, so counting starts from yesterday when today
    has no activity yet.
    """
    active = set(activity_log)
    day = today if today.isoformat() in active else today - timedelta(days=1)
    streak = 0
    while day.isoformat() in active:
        streak += 1
        day -= timedelta(days=1)
    return streak


class Identity:
    """Sign-in/sign-up by email, profile lookup and update."""

    def __init__(self, store: Store):
        self.users = UserRepository(store)
        self.rides = RideRepository(store)
        self.items = ItemRepository(store)
        self.tasks = TaskRepository(store)

    async def ensure_seed_user(self) -> None:
        if await self.users.get(seed.SEED_USER["id"]) is None:
            await self.users.add(User.model_validate(seed.SEED_USER))

    async def sign_in(self, email: str) -> User:
        user = await self.users.find_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def sign_up(self, email: str, name: str) -> User:
        clean_email = email.strip().lower()
        if await self.users.find_by_email(clean_email) is not None:
            raise ConflictError("User already exists")
        name = name.strip()
        user = User(
            id=new_id(),
            name=name,
            email=clean_email,
            avatar=avatar_for(name),
            bio="",
            rating=5.0,
            verified=False,
            current_streak=0,
            activity_log=[],
        )
        await self.users.add(user)
        logger.info("Signed up %s (%s)", user.id, clean_email)
        return user

    async def lookup(self, user_id: str) -> Optional[User]:
        return await self.users.get(user_id)

    async def find_embedded_user(self, user_id: str) -> Optional[User]:
        """
        Read-repair for creators that never made it into the user collection
        (seed listings): search the users embedded in rides, items and tasks.
        """
        for ride in await self.rides.get_all():
            if ride.driver.id == user_id:
                return ride.driver
        for item in await self.items.get_all():
            if item.owner.id == user_id:
                return item.owner
        for task in await self.tasks.get_all():
            if task.requester.id == user_id:
                return task.requester
        return None

    async def get(self, user_id: str) -> User:
        """Best-effort lookup; never fails, unknown ids get a placeholder."""
        user = await self.lookup(user_id)
        if user is not None:
            return user
        user = await self.find_embedded_user(user_id)
        if user is not None:
            return user
        logger.debug("No user %s, using placeholder", user_id)
        return User(id=user_id, name=UNKNOWN_USER_NAME, avatar=avatar_for(UNKNOWN_USER_NAME))

    async def update(self, user_id: str, changes: Dict[str, Any]) -> User:
        user = await self.lookup(user_id)
        if user is None:
            raise NotFoundError("User to update not found")
        updated = User.model_validate({**user.model_dump(), **changes})
        await self.users.replace(updated)
        return updated

    async def record_activity(self, user_id: str, day: Optional[date] = None) -> User:
        """Mark `day` (default today) active and refresh the streak."""
        day = day or date.today()
        user = await self.lookup(user_id)
        if user is None:
            raise NotFoundError("User not found")
        log = sorted(set(user.activity_log) | {day.isoformat()})
        return await self.update(user_id, {
            "activity_log": log,
            "current_streak": compute_streak(log, day),
        })
