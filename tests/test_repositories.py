import asyncio

from repositories import dashboard_stats, item_image_for, location_type, heads
from schemas import RideCreate, ItemCreate, TaskCreate, BillCreate


def ride_fields(**overrides):
    fields = dict(origin="Hostel H1", destination="Railway Station", time="6:00 PM", seats_available=2, cost_per_person=60)
    fields.update(overrides)
    return RideCreate(**fields)


# Rides

async def test_collections_start_with_seed_listings(rides, items, tasks):
    assert [r.id for r in await rides.get_all()] == ["r1", "r2", "r3", "r4"]
    assert len(await items.get_all()) == 4
    assert len(await tasks.get_all()) == 3


async def test_create_ride_sets_driver_and_goes_first(rides, alice):
    ride = await rides.create(ride_fields(), alice)
    stored = await rides.get_all()
    assert stored[0].id == ride.id
    assert stored[0].driver == alice
    assert stored[0].seats_available == 2
    assert stored[0].mode == "offer"


async def test_created_ids_are_unique(rides, alice):
    first = await rides.create(ride_fields(), alice)
    second = await rides.create(ride_fields(), alice)
    assert first.id != second.id


async def test_join_takes_seats_until_full(rides, alice):
    ride = await rides.create(ride_fields(seats_available=2), alice)

    assert await rides.join(ride.id) is True
    assert (await rides.get(ride.id)).seats_available == 1
    assert await rides.join(ride.id) is True
    assert (await rides.get(ride.id)).seats_available == 0
    assert await rides.join(ride.id) is False
    assert (await rides.get(ride.id)).seats_available == 0


async def test_join_full_ride_leaves_state_unchanged(rides, alice):
    ride = await rides.create(ride_fields(seats_available=0), alice)
    before = await rides.get_all()
    assert await rides.join(ride.id) is False
    assert await rides.get_all() == before


async def test_join_unknown_ride_fails(rides):
    before = await rides.get_all()
    assert await rides.join("nope") is False
    assert await rides.get_all() == before


async def test_join_request_mode_behaves_like_offer(rides):
    # r4 is a passenger request for one seat
    assert await rides.join("r4") is True
    assert (await rides.get("r4")).seats_available == 0


async def test_ride_filters(rides):
    requests = await rides.get_all(mode="request")
    assert [r.id for r in requests] == ["r4"]

    to_city = await rides.get_all(mode="offer", direction="to_city")
    assert {r.id for r in to_city} == {"r1", "r2"}

    to_campus = await rides.get_all(direction="to_campus")
    assert {r.id for r in to_campus} == {"r3", "r4"}


def test_location_type():
    assert location_type("Hostel Block A") == "campus"
    assert location_type("City Center Mall") == "city"
    assert location_type("Somewhere else") == "other"


async def test_heads_all_passes_everything(rides):
    ride = await rides.get("r1")
    assert heads(ride, None) and heads(ride, "all")


async def test_concurrent_joins_race_last_write_wins(store, rides, alice):
    # Two joins interleave their read and write of the whole collection:
    # both succeed but only one seat is taken.
    ride = await rides.create(ride_fields(seats_available=2), alice)
    results = await asyncio.gather(rides.join(ride.id), rides.join(ride.id))
    assert results == [True, True]
    assert (await rides.get(ride.id)).seats_available == 1


# Items

async def test_create_item_defaults(items, alice):
    item = await items.create(ItemCreate(title="Graphing Calculator", category="Electronics", price=30), alice)
    assert item.owner == alice
    assert item.status == "available"
    assert item.image == "https://picsum.photos/seed/graphing-calculator/200/200"
    assert (await items.get_all())[0].id == item.id


def test_item_image_collapses_whitespace():
    assert item_image_for("Lab  Coat\tLarge") == "https://picsum.photos/seed/lab-coat-large/200/200"


async def test_book_is_single_shot(items):
    assert await items.book("i1") is True
    assert (await items.get("i1")).status == "rented"
    assert await items.book("i1") is False
    assert await items.book("missing") is False


async def test_item_filters(items):
    academic = await items.get_all(category="Academic")
    assert {i.id for i in academic} == {"i1", "i4"}
    assert len(await items.get_all(category="All")) == 4
    await items.book("i2")
    assert {i.id for i in await items.get_all(mode="offer", status="available")} == {"i1", "i3"}


# Tasks

async def test_create_task_opens_it(tasks, alice):
    task = await tasks.create(TaskCreate(title="Pick up parcel", pickup="Gate 2", dropoff="Hostel H3", offer_amount=30), alice)
    assert task.requester == alice
    assert task.status == "open"
    assert task.deadline == "ASAP"
    assert task.mode == "request"


async def test_accept_is_single_shot(tasks):
    assert await tasks.accept("t1") is True
    assert (await tasks.get("t1")).status == "assigned"
    assert await tasks.accept("t1") is False


async def test_complete_requires_assignment(tasks):
    assert await tasks.complete("t2") is False
    await tasks.accept("t2")
    assert await tasks.complete("t2") is True
    assert (await tasks.get("t2")).status == "completed"
    assert await tasks.complete("t2") is False


# Bills

async def test_pay_pending_bill(bills):
    [bill] = [b for b in await bills.get_all("u1") if b.id == "b1"]
    assert bill.status == "pending" and bill.amount == 250

    assert await bills.pay("b1") is True

    [paid] = [b for b in await bills.get_all("u1") if b.id == "b1"]
    assert paid.status == "paid"
    assert paid.paid_at is not None
    assert (paid.id, paid.amount, paid.title) == (bill.id, bill.amount, bill.title)


async def test_paying_again_restamps(bills):
    await bills.pay("b1")
    first = (await bills.get("b1")).paid_at
    await asyncio.sleep(0.001)
    assert await bills.pay("b1") is True
    assert (await bills.get("b1")).paid_at > first


async def test_pay_unknown_bill(bills):
    assert await bills.pay("missing") is False


async def test_bills_are_per_user(bills):
    assert len(await bills.get_all("u1")) == 4
    assert await bills.get_all("someone-else") == []


async def test_create_bill_and_summary(bills):
    bill = await bills.create(BillCreate(title="Cab share", amount=90, due_date="2024-04-02", type="ride", merchant_name="Priya Singh"), "u1")
    assert bill.status == "pending" and bill.paid_at is None
    summary = await bills.summary("u1")
    assert summary.pending_total == 250 + 60 + 90
    assert summary.pending_count == 3
    assert summary.paid_count == 2


# Dashboard

async def test_dashboard_counts(rides, items, tasks):
    stats = await dashboard_stats(rides, items, tasks)
    assert (stats.rides, stats.items, stats.tasks) == (3, 3, 2)

    await rides.join("r3")  # last seat
    await items.book("i1")
    await tasks.accept("t1")
    stats = await dashboard_stats(rides, items, tasks)
    assert (stats.rides, stats.items, stats.tasks) == (2, 2, 1)
