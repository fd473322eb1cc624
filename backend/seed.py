"""
Seed data written to a collection the first time it is read.
"""
import random
from datetime import date, timedelta
from typing import Any, Dict, List, Optional


def generate_activity(days: int = 60, today: Optional[date] = None) -> List[str]:
    """Random past activity for the demo profile's streak grid."""
    today = today or date.today()
    return [
        (today - timedelta(days=i)).isoformat()
        for i in range(days)
        if random.random() > 0.3
    ]


SEED_USER: Dict[str, Any] = {
    "id": "u1",
    "name": "Rahul Sharma",
    "email": "rahul.s@iimraipur.ac.in",
    "avatar": "https://picsum.photos/seed/rahul/100/100",
    "bio": "MBA Candidate 2025. Love cycling and reading.",
    "rating": 4.8,
    "verified": True,
    "current_streak": 12,
    "activity_log": generate_activity(),
}


def _member(user_id: str, name: str, avatar_seed: str, rating: float) -> Dict[str, Any]:
    return {
        **SEED_USER,
        "id": user_id,
        "name": name,
        "avatar": f"https://picsum.photos/seed/{avatar_seed}/100/100",
        "rating": rating,
    }


SEED_RIDES: List[Dict[str, Any]] = [
    {
        "id": "r1",
        "driver": _member("u2", "Amit Verma", "amit", 4.5),
        "origin": "IIM Raipur Campus",
        "destination": "City Center Mall",
        "date": "Today",
        "time": "4:00 PM",
        "seats_available": 2,
        "cost_per_person": 75,
        "vehicle_type": "car",
        "mode": "offer",
    },
    {
        "id": "r2",
        "driver": _member("u3", "Priya Singh", "priya", 4.9),
        "origin": "Hostel Block A",
        "destination": "Railway Station",
        "date": "Tomorrow",
        "time": "10:00 AM",
        "seats_available": 3,
        "cost_per_person": 120,
        "vehicle_type": "car",
        "mode": "offer",
    },
    {
        "id": "r3",
        "driver": _member("u4", "Karan Gill", "karan", 4.2),
        "origin": "Library",
        "destination": "Faculty Block",
        "date": "Today",
        "time": "9:00 PM",
        "seats_available": 1,
        "cost_per_person": 0,
        "vehicle_type": "bike",
        "mode": "offer",
    },
    {
        "id": "r4",
        "driver": _member("u10", "Neha Roy", "neha", 4.6),
        "origin": "City Center Mall",
        "destination": "Hostel H4",
        "date": "Today",
        "time": "8:30 PM",
        "seats_available": 1,
        "cost_per_person": 50,
        "vehicle_type": "car",
        "mode": "request",
    },
]

SEED_ITEMS: List[Dict[str, Any]] = [
    {
        "id": "i1",
        "owner": _member("u5", "Sneha Gupta", "sneha", 4.7),
        "title": "Financial Management Textbook",
        "category": "Academic",
        "price": 50,
        "rate_unit": "day",
        "image": "https://picsum.photos/seed/book/200/200",
        "status": "available",
        "mode": "offer",
    },
    {
        "id": "i2",
        "owner": _member("u6", "Rohan Das", "rohan", 4.6),
        "title": "Philips Steam Iron",
        "category": "Appliances",
        "price": 20,
        "rate_unit": "hour",
        "image": "https://picsum.photos/seed/iron/200/200",
        "status": "available",
        "mode": "offer",
    },
    {
        "id": "i3",
        "owner": _member("u7", "Vikram Malhotra", "vikram", 4.8),
        "title": "Badminton Racket Set",
        "category": "Sports",
        "price": 0,
        "rate_unit": "day",
        "image": "https://picsum.photos/seed/badminton/200/200",
        "status": "available",
        "mode": "offer",
    },
    {
        "id": "i4",
        "owner": _member("u11", "Arjun Reddy", "arjun", 4.3),
        "title": "Scientific Calculator",
        "category": "Academic",
        "price": 0,
        "rate_unit": "day",
        "image": "https://picsum.photos/seed/calculator/200/200",
        "status": "available",
        "mode": "request",
    },
]

SEED_TASKS: List[Dict[str, Any]] = [
    {
        "id": "t1",
        "requester": _member("u8", "Anjali P.", "anjali", 4.9),
        "title": "Groceries from City Market",
        "description": "Need milk, bread, and eggs from the main market.",
        "pickup": "City Market",
        "dropoff": "Hostel H4, Room 202",
        "offer_amount": 100,
        "status": "open",
        "deadline": "7:00 PM Today",
        "mode": "request",
    },
    {
        "id": "t2",
        "requester": _member("u9", "David K.", "david", 4.4),
        "title": "Print Documents",
        "description": "Print 50 pages from stationary shop near gate.",
        "pickup": "Campus Stationary",
        "dropoff": "Library Entrance",
        "offer_amount": 40,
        "status": "open",
        "deadline": "2:00 PM Today",
        "mode": "request",
    },
    {
        "id": "t3",
        "requester": _member("u12", "Sameer J.", "sameer", 4.7),
        "title": "Going to Magneto Mall",
        "description": "Heading to mall for 2 hours. Can pick up food or small items.",
        "pickup": "Magneto Mall",
        "dropoff": "Hostel H2",
        "offer_amount": 50,
        "status": "open",
        "deadline": "5:30 PM Today",
        "mode": "offer",
    },
]

SEED_BILLS: List[Dict[str, Any]] = [
    {
        "id": "b1",
        "user_id": "u1",
        "title": "Ride to Airport",
        "description": "Shared cab with Amit",
        "amount": 250,
        "due_date": "2024-03-28",
        "status": "pending",
        "type": "ride",
        "merchant_name": "Amit Verma",
        "paid_at": None,
    },
    {
        "id": "b2",
        "user_id": "u1",
        "title": "Canteen Snacks",
        "description": "Evening snacks at H4 Canteen",
        "amount": 45,
        "due_date": "2024-03-25",
        "status": "paid",
        "type": "other",
        "merchant_name": "Campus Canteen",
        "paid_at": "2024-03-25T00:00:00Z",
    },
    {
        "id": "b3",
        "user_id": "u1",
        "title": "Textbook Rental",
        "description": "Financial Mgmt Book for 2 days",
        "amount": 100,
        "due_date": "2024-03-20",
        "status": "paid",
        "type": "rent",
        "merchant_name": "Sneha Gupta",
        "paid_at": "2024-03-20T00:00:00Z",
    },
    {
        "id": "b4",
        "user_id": "u1",
        "title": "Delivery Fee",
        "description": "Groceries from City Market",
        "amount": 60,
        "due_date": "2024-03-29",
        "status": "pending",
        "type": "delivery",
        "merchant_name": "David K.",
        "paid_at": None,
    },
]
