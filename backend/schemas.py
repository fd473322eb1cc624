"""
Database Schemas for Campus Connect

Each entity model corresponds to a collection whose name is the lowercase of the class name.
- User -> "user"
- Ride -> "ride"
- RentalItem -> "rentalitem"
- DeliveryTask -> "deliverytask"
- Bill -> "bill"
- Chat -> "chat"
- Message -> "message"

Creator references (Ride.driver, RentalItem.owner, DeliveryTask.requester) embed a
copy of the User as it was when the listing was posted.
"""

from typing import List, Optional, Literal
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from datetime import datetime

Mode = Literal["offer", "request"]
ContextType = Literal["pooling", "renting", "delivery"]
Category = Literal["Academic", "Electronics", "Appliances", "Sports", "Misc"]


class User(BaseModel):
    id: str
    name: str
    email: str = ""
    avatar: str = ""
    bio: str = ""
    rating: float = Field(5.0, ge=0, le=5)
    verified: bool = False
    current_streak: int = Field(0, ge=0)
    activity_log: List[str] = []  # ISO dates, YYYY-MM-DD


class Ride(BaseModel):
    id: str
    driver: User  # driver for offers, passenger for requests
    origin: str
    destination: str
    date: str
    time: str
    seats_available: int = Field(..., ge=0)  # seats offered or seats needed
    cost_per_person: float = Field(0, ge=0)
    vehicle_type: Literal["car", "bike"] = "car"
    mode: Mode = "offer"


class RentalItem(BaseModel):
    id: str
    owner: User
    title: str
    category: Category
    price: float = Field(0, ge=0)  # 0 = free to share
    rate_unit: Literal["hour", "day", "week"] = "day"
    image: str
    status: Literal["available", "rented"] = "available"
    mode: Mode = "offer"


class DeliveryTask(BaseModel):
    id: str
    requester: User  # requester for requests, runner for offers
    title: str
    description: str = ""
    pickup: str
    dropoff: str
    offer_amount: float = Field(0, ge=0)
    status: Literal["open", "assigned", "completed"] = "open"
    deadline: str  # deadline for requests, departure time for offers
    mode: Mode = "request"


class Bill(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    amount: float = Field(..., ge=0)
    due_date: str
    status: Literal["pending", "paid"] = "pending"
    type: Literal["ride", "rent", "delivery", "other"] = "other"
    merchant_name: str
    paid_at: Optional[datetime] = None

    @model_validator(mode="after")
    def paid_at_matches_status(self):
        if (self.status == "paid") != (self.paid_at is not None):
            raise ValueError("paid_at must be set exactly when status is 'paid'")
        return self


class Message(BaseModel):
    id: str
    chat_id: str
    sender_id: str
    content: str
    timestamp: datetime


class Chat(BaseModel):
    id: str
    participants: List[str]  # sorted pair of user ids
    context_type: ContextType
    context_title: str
    created_at: datetime

    @field_validator("participants")
    @classmethod
    def two_distinct_participants(cls, v: List[str]) -> List[str]:
        if len(v) != 2 or v[0] == v[1]:
            raise ValueError("a chat has exactly two distinct participants")
        return v


# ----------------------- Payloads -----------------------

class SignUpPayload(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1)


class LoginPayload(BaseModel):
    email: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    bio: Optional[str] = None
    avatar: Optional[str] = None


class RideCreate(BaseModel):
    origin: str
    destination: str
    date: str = "Today"
    time: str
    seats_available: int = Field(1, ge=0)
    cost_per_person: float = Field(0, ge=0)
    vehicle_type: Literal["car", "bike"] = "car"
    mode: Mode = "offer"


class ItemCreate(BaseModel):
    title: str = Field(..., min_length=1)
    category: Category = "Academic"
    price: float = Field(0, ge=0)
    rate_unit: Literal["hour", "day", "week"] = "day"
    mode: Mode = "offer"


class TaskCreate(BaseModel):
    title: str
    description: str = ""
    pickup: str
    dropoff: str
    offer_amount: float = Field(0, ge=0)
    deadline: str = "ASAP"
    mode: Mode = "request"


class BillCreate(BaseModel):
    title: str
    description: Optional[str] = None
    amount: float = Field(..., ge=0)
    due_date: str
    type: Literal["ride", "rent", "delivery", "other"] = "other"
    merchant_name: str


class ChatOpen(BaseModel):
    other_user_id: str
    context_type: ContextType
    context_title: str


class MessageCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be empty")
        return v


# Response helpers

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: User


class ChatSummary(Chat):
    other_user: Optional[User] = None
    last_message: Optional[Message] = None


class TransitionResult(BaseModel):
    ok: bool
    message: str


class BillSummary(BaseModel):
    pending_total: float
    pending_count: int
    paid_count: int


class DashboardStats(BaseModel):
    rides: int
    items: int
    tasks: int
