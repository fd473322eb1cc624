import os
import json
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from errors import UnimplementedError

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")
DATABASE_TIMEOUT_MS = int(os.getenv("DATABASE_TIMEOUT_MS", "5000"))
LOCAL_STORE_PATH = os.getenv("LOCAL_STORE_PATH", "campus_connect_store.json")
SIMULATED_LATENCY_MS = int(os.getenv("SIMULATED_LATENCY_MS", "0"))

# Collection names are the lowercased schema class names
USERS = "user"
RIDES = "ride"
ITEMS = "rentalitem"
TASKS = "deliverytask"
BILLS = "bill"
CHATS = "chat"
MESSAGES = "message"
COLLECTIONS = (USERS, RIDES, ITEMS, TASKS, BILLS, CHATS, MESSAGES)

META_COLLECTION = "_meta"


def is_configured(url: Optional[str], name: Optional[str]) -> bool:
    """True when both remote credentials are present and not placeholders."""
    for value in (url, name):
        if value is None:
            return False
        cleaned = value.strip().lower()
        if cleaned in ("", "undefined", "null", "none") or "placeholder" in cleaned:
            return False
    return True


IS_REMOTE_CONFIGURED = is_configured(DATABASE_URL, DATABASE_NAME)


Record = Dict[str, Any]


class Store:
    """
    Whole-collection persistence.

    `load` returns the current snapshot of a collection, seeding it with
    `seed_default` the first time the collection is read. `save` replaces the
    entire snapshot. There is no per-record write and no version check, so two
    writers sharing a store race with last-write-wins semantics.
    """

    name = "store"

    async def load(self, key: str, seed_default: Optional[List[Record]] = None) -> List[Record]:
        raise UnimplementedError(f"{type(self).__name__} cannot load '{key}'")

    async def save(self, key: str, records: List[Record]) -> None:
        raise UnimplementedError(f"{type(self).__name__} cannot save '{key}'")

    async def ping(self) -> bool:
        return True

    async def collections(self) -> List[str]:
        return []

    def close(self) -> None:
        pass


class LocalStore(Store):
    """
    Fallback store: one JSON string per collection key, like browser local storage.

    With a `path` every save rewrites the whole file so data survives restarts;
    without one the slots live in memory only.
    """

    name = "local"

    def __init__(self, path: Optional[str] = None, latency: float = 0.0):
        self.path = path
        self.latency = latency
        self._slots: Dict[str, str] = {}
        if path and os.path.exists(path):
            with open(path, encoding="utf-8") as fh:
                self._slots = json.load(fh)
            logger.info("Loaded local store from %s (%d collections)", path, len(self._slots))

    async def load(self, key: str, seed_default: Optional[List[Record]] = None) -> List[Record]:
        await asyncio.sleep(self.latency)
        stored = self._slots.get(key)
        if stored is None:
            self._write(key, list(seed_default or []))
            stored = self._slots[key]
        return json.loads(stored)

    async def save(self, key: str, records: List[Record]) -> None:
        await asyncio.sleep(self.latency)
        self._write(key, records)

    async def collections(self) -> List[str]:
        return sorted(self._slots)

    def _write(self, key: str, records: List[Record]) -> None:
        self._slots[key] = json.dumps(records)
        if self.path:
            # partial writes land in the sibling file, never in the live one
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(self._slots, fh)
            os.replace(tmp_path, self.path)


class MongoStore(Store):
    """
    Remote store on MongoDB. A collection snapshot is stored one document per
    record (`_id` = record id, `_pos` = list position); `_meta` remembers which
    collections were initialised so an empty collection is not re-seeded.
    """

    name = "mongo"

    def __init__(self, url: str, database_name: str, timeout_ms: int = DATABASE_TIMEOUT_MS, client: Optional[AsyncIOMotorClient] = None):
        self._client = client or AsyncIOMotorClient(url, serverSelectionTimeoutMS=timeout_ms)
        self._db = self._client[database_name]

    async def load(self, key: str, seed_default: Optional[List[Record]] = None) -> List[Record]:
        initialised = await self._db[META_COLLECTION].find_one({"_id": key})
        if not initialised:
            seed = list(seed_default or [])
            await self.save(key, seed)
            return seed
        cursor = self._db[key].find({}).sort("_pos", 1)
        docs = []
        async for doc in cursor:
            doc.pop("_id", None)
            doc.pop("_pos", None)
            docs.append(doc)
        return docs

    async def save(self, key: str, records: List[Record]) -> None:
        docs = [{**record, "_id": record["id"], "_pos": pos} for pos, record in enumerate(records)]
        await self._db[key].delete_many({})
        if docs:
            await self._db[key].insert_many(docs)
        await self._db[META_COLLECTION].update_one(
            {"_id": key},
            {"$set": {"count": len(docs), "updated_at": datetime.now(timezone.utc)}},
            upsert=True,
        )

    async def ping(self) -> bool:
        await self._db.command("ping")
        return True

    async def collections(self) -> List[str]:
        names = await self._db.list_collection_names()
        return sorted(n for n in names if n != META_COLLECTION)

    def close(self) -> None:
        self._client.close()


def build_store() -> Store:
    """Pick the store once at startup from the environment."""
    if IS_REMOTE_CONFIGURED:
        logger.info("Using remote store '%s'", DATABASE_NAME)
        return MongoStore(DATABASE_URL, DATABASE_NAME)
    logger.warning("Remote store credentials missing. Falling back to local storage.")
    return LocalStore(LOCAL_STORE_PATH or None, latency=SIMULATED_LATENCY_MS / 1000)
