from contextlib import asynccontextmanager
from fastapi import APIRouter, FastAPI, Depends, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from typing import Optional, List
from jose import JWTError
import logging
import os

import database
from database import Store, build_store
from errors import CampusError, NotFoundError, UnimplementedError
from identity import Identity, create_session_token, read_session_token
from chats import ChatService
from repositories import RideRepository, ItemRepository, TaskRepository, BillRepository, dashboard_stats
from schemas import (
    User, Ride, RentalItem, DeliveryTask, Bill, Message, ChatSummary,
    SignUpPayload, LoginPayload, UserUpdate, RideCreate, ItemCreate, TaskCreate, BillCreate,
    ChatOpen, MessageCreate, TokenResponse, TransitionResult, BillSummary, DashboardStats,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

# Outcome notices shown to the acting user, by listing mode
JOIN_MESSAGES = {
    "offer": "Ride joined successfully!",
    "request": "Passenger request accepted! Contact them to coordinate.",
}
BOOK_MESSAGES = {
    "offer": "Item booked successfully!",
    "request": "You offered to help with this request! Contact the user.",
}
ACCEPT_MESSAGES = {
    "request": "Task accepted! Please coordinate with the requester.",
    "offer": "Request sent to runner! They will contact you.",
}


# Dependencies

def get_store(request: Request) -> Store:
    return request.app.state.store


def get_identity(store: Store = Depends(get_store)) -> Identity:
    return Identity(store)


def get_rides(store: Store = Depends(get_store)) -> RideRepository:
    return RideRepository(store)


def get_items(store: Store = Depends(get_store)) -> ItemRepository:
    return ItemRepository(store)


def get_tasks(store: Store = Depends(get_store)) -> TaskRepository:
    return TaskRepository(store)


def get_bills(store: Store = Depends(get_store)) -> BillRepository:
    return BillRepository(store)


def get_chats(store: Store = Depends(get_store), identity: Identity = Depends(get_identity)) -> ChatService:
    return ChatService(store, identity)


async def get_current_user(token: str = Depends(oauth2_scheme), identity: Identity = Depends(get_identity)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        user_id = read_session_token(token)
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    return await identity.get(user_id)


async def record_activity(identity: Identity, user: User) -> None:
    try:
        await identity.record_activity(user.id)
    except NotFoundError:
        logger.debug("No stored profile for %s, activity not recorded", user.id)


def outcome(ok: bool, mode: str, messages: dict, failure: str) -> TransitionResult:
    return TransitionResult(ok=ok, message=messages[mode] if ok else failure)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "store", None) is None:
        app.state.store = build_store()
    await Identity(app.state.store).ensure_seed_user()
    yield
    app.state.store.close()


async def campus_error_handler(request: Request, exc: CampusError):
    if isinstance(exc, UnimplementedError):
        logger.error("%s %s: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


router = APIRouter()


# Root & health

@router.get("/")
def read_root():
    return {"message": "Campus Connect API running"}


@router.get("/test")
async def store_health(store: Store = Depends(get_store)):
    response = {
        "backend": "✅ Running",
        "store": store.name,
        "remote_configured": database.IS_REMOTE_CONFIGURED,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        await store.ping()
        response["connection_status"] = "Connected"
        response["collections"] = (await store.collections())[:10]
    except Exception as e:
        response["connection_status"] = f"⚠️  Error: {str(e)[:80]}"
    return response


# Auth

@router.post("/auth/signup", response_model=TokenResponse, status_code=201)
async def signup(payload: SignUpPayload, identity: Identity = Depends(get_identity)):
    user = await identity.sign_up(payload.email, payload.name)
    return TokenResponse(access_token=create_session_token(user.id), user=user)


@router.post("/auth/login", response_model=TokenResponse)
async def login(payload: LoginPayload, identity: Identity = Depends(get_identity)):
    user = await identity.sign_in(payload.email)
    return TokenResponse(access_token=create_session_token(user.id), user=user)


@router.get("/auth/session", response_model=User)
async def restore_session(current_user: User = Depends(get_current_user)):
    return current_user


# Users

@router.get("/users/me", response_model=User)
async def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/users/me", response_model=User)
async def update_me(payload: UserUpdate, current_user: User = Depends(get_current_user), identity: Identity = Depends(get_identity)):
    return await identity.update(current_user.id, payload.model_dump(exclude_none=True))


@router.get("/users/{user_id}", response_model=User)
async def get_user(user_id: str, identity: Identity = Depends(get_identity)):
    return await identity.get(user_id)


# Pooling

@router.get("/rides", response_model=List[Ride])
async def list_rides(mode: Optional[str] = None, direction: Optional[str] = None, rides: RideRepository = Depends(get_rides)):
    return await rides.get_all(mode=mode, direction=direction)


@router.post("/rides", response_model=Ride, status_code=201)
async def create_ride(payload: RideCreate, current_user: User = Depends(get_current_user), rides: RideRepository = Depends(get_rides), identity: Identity = Depends(get_identity)):
    ride = await rides.create(payload, current_user)
    await record_activity(identity, current_user)
    return ride


@router.post("/rides/{ride_id}/join", response_model=TransitionResult)
async def join_ride(ride_id: str, current_user: User = Depends(get_current_user), rides: RideRepository = Depends(get_rides), identity: Identity = Depends(get_identity)):
    ride = await rides.get(ride_id)
    if ride is None:
        raise HTTPException(404, "Ride not found")
    ok = await rides.join(ride_id)
    if ok:
        await record_activity(identity, current_user)
    return outcome(ok, ride.mode, JOIN_MESSAGES, "Action failed. Listing might be full or unavailable.")


# Renting

@router.get("/items", response_model=List[RentalItem])
async def list_items(mode: Optional[str] = None, category: Optional[str] = None, status: Optional[str] = None, items: ItemRepository = Depends(get_items)):
    return await items.get_all(mode=mode, category=category, status=status)


@router.post("/items", response_model=RentalItem, status_code=201)
async def create_item(payload: ItemCreate, current_user: User = Depends(get_current_user), items: ItemRepository = Depends(get_items), identity: Identity = Depends(get_identity)):
    item = await items.create(payload, current_user)
    await record_activity(identity, current_user)
    return item


@router.post("/items/{item_id}/book", response_model=TransitionResult)
async def book_item(item_id: str, current_user: User = Depends(get_current_user), items: ItemRepository = Depends(get_items), identity: Identity = Depends(get_identity)):
    item = await items.get(item_id)
    if item is None:
        raise HTTPException(404, "Item not found")
    ok = await items.book(item_id)
    if ok:
        await record_activity(identity, current_user)
    return outcome(ok, item.mode, BOOK_MESSAGES, "Action failed. Item is no longer available.")


# Delivery

@router.get("/tasks", response_model=List[DeliveryTask])
async def list_tasks(mode: Optional[str] = None, status: Optional[str] = None, tasks: TaskRepository = Depends(get_tasks)):
    return await tasks.get_all(mode=mode, status=status)


@router.post("/tasks", response_model=DeliveryTask, status_code=201)
async def create_task(payload: TaskCreate, current_user: User = Depends(get_current_user), tasks: TaskRepository = Depends(get_tasks), identity: Identity = Depends(get_identity)):
    task = await tasks.create(payload, current_user)
    await record_activity(identity, current_user)
    return task


@router.post("/tasks/{task_id}/accept", response_model=TransitionResult)
async def accept_task(task_id: str, current_user: User = Depends(get_current_user), tasks: TaskRepository = Depends(get_tasks), identity: Identity = Depends(get_identity)):
    task = await tasks.get(task_id)
    if task is None:
        raise HTTPException(404, "Task not found")
    ok = await tasks.accept(task_id)
    if ok:
        await record_activity(identity, current_user)
    return outcome(ok, task.mode, ACCEPT_MESSAGES, "Action failed. Task might be taken.")


@router.post("/tasks/{task_id}/complete", response_model=TransitionResult)
async def complete_task(task_id: str, current_user: User = Depends(get_current_user), tasks: TaskRepository = Depends(get_tasks)):
    if await tasks.get(task_id) is None:
        raise HTTPException(404, "Task not found")
    ok = await tasks.complete(task_id)
    return TransitionResult(ok=ok, message="Task completed." if ok else "Only assigned tasks can be completed.")


# Bills

@router.get("/bills", response_model=List[Bill])
async def list_bills(current_user: User = Depends(get_current_user), bills: BillRepository = Depends(get_bills)):
    return await bills.get_all(current_user.id)


@router.get("/bills/summary", response_model=BillSummary)
async def bills_summary(current_user: User = Depends(get_current_user), bills: BillRepository = Depends(get_bills)):
    return await bills.summary(current_user.id)


@router.post("/bills", response_model=Bill, status_code=201)
async def create_bill(payload: BillCreate, current_user: User = Depends(get_current_user), bills: BillRepository = Depends(get_bills)):
    return await bills.create(payload, current_user.id)


@router.post("/bills/{bill_id}/pay", response_model=TransitionResult)
async def pay_bill(bill_id: str, current_user: User = Depends(get_current_user), bills: BillRepository = Depends(get_bills)):
    bill = await bills.get(bill_id)
    # other users' bills are invisible, same as in GET /bills
    if bill is None or bill.user_id != current_user.id:
        raise HTTPException(404, "Bill not found")
    if not await bills.pay(bill_id):
        raise HTTPException(404, "Bill not found")
    return TransitionResult(ok=True, message="Payment Successful!")


# Messaging

@router.get("/chats", response_model=List[ChatSummary])
async def list_chats(current_user: User = Depends(get_current_user), chats: ChatService = Depends(get_chats)):
    return await chats.list(current_user.id)


@router.post("/chats")
async def open_chat(payload: ChatOpen, current_user: User = Depends(get_current_user), chats: ChatService = Depends(get_chats)):
    chat_id = await chats.get_or_create(current_user.id, payload.other_user_id, payload.context_type, payload.context_title)
    return {"id": chat_id}


@router.get("/chats/{chat_id}/messages", response_model=List[Message])
async def list_messages(chat_id: str, current_user: User = Depends(get_current_user), chats: ChatService = Depends(get_chats)):
    if await chats.get_chat(chat_id) is None:
        raise HTTPException(404, "Chat not found")
    return await chats.get_messages(chat_id)


@router.post("/chats/{chat_id}/messages", response_model=Message, status_code=201)
async def send_message(chat_id: str, payload: MessageCreate, current_user: User = Depends(get_current_user), chats: ChatService = Depends(get_chats)):
    if await chats.get_chat(chat_id) is None:
        raise HTTPException(404, "Chat not found")
    return await chats.send_message(chat_id, current_user.id, payload.content)


# Dashboard

@router.get("/dashboard/stats", response_model=DashboardStats)
async def stats(rides: RideRepository = Depends(get_rides), items: ItemRepository = Depends(get_items), tasks: TaskRepository = Depends(get_tasks)):
    return await dashboard_stats(rides, items, tasks)


def create_app(store: Optional[Store] = None) -> FastAPI:
    app = FastAPI(title="Campus Connect API", lifespan=lifespan)
    # None means the lifespan picks a store from the environment
    app.state.store = store

    origins = [
        os.getenv("FRONTEND_URL", "*"),
        "*",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CampusError, campus_error_handler)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
