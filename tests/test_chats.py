import asyncio

import pytest

from chats import thread_key
from errors import InvalidRequestError


async def test_get_or_create_ignores_participant_order(chats):
    first = await chats.get_or_create("u1", "u2", "pooling", "IIM Raipur Campus to City Center Mall")
    second = await chats.get_or_create("u2", "u1", "pooling", "IIM Raipur Campus to City Center Mall")
    assert first == second
    assert len(await chats.chats.get_all()) == 1


async def test_threads_are_per_listing(chats):
    ride = await chats.get_or_create("u1", "u2", "pooling", "X")
    other_ride = await chats.get_or_create("u1", "u2", "pooling", "Y")
    rental = await chats.get_or_create("u1", "u2", "renting", "X")
    assert len({ride, other_ride, rental}) == 3


async def test_new_chat_stores_sorted_participants(chats):
    chat_id = await chats.get_or_create("zed", "amy", "delivery", "Print Documents")
    chat = await chats.get_chat(chat_id)
    assert chat.participants == ["amy", "zed"]


async def test_chat_with_yourself_is_rejected(chats):
    with pytest.raises(InvalidRequestError):
        await chats.get_or_create("u1", "u1", "pooling", "X")


def test_thread_key_normalises_pair():
    assert thread_key("b", "a", "renting", "Iron") == thread_key("a", "b", "renting", "Iron")


async def test_messages_come_back_in_order(chats):
    chat_id = await chats.get_or_create("u1", "u2", "pooling", "X")
    for text in ("hi", "seat still free?", "yes"):
        await chats.send_message(chat_id, "u1", text)
        await asyncio.sleep(0.001)
    messages = await chats.get_messages(chat_id)
    assert [m.content for m in messages] == ["hi", "seat still free?", "yes"]
    assert all(m.chat_id == chat_id for m in messages)
    assert len({m.id for m in messages}) == 3


async def test_messages_are_scoped_to_chat(chats):
    a = await chats.get_or_create("u1", "u2", "pooling", "X")
    b = await chats.get_or_create("u1", "u3", "pooling", "X")
    await chats.send_message(a, "u1", "to u2")
    await chats.send_message(b, "u1", "to u3")
    assert [m.content for m in await chats.get_messages(b)] == ["to u3"]


async def test_list_hydrates_other_user_and_last_message(chats):
    chat_id = await chats.get_or_create("u1", "u2", "pooling", "X")
    await chats.send_message(chat_id, "u1", "first")
    await asyncio.sleep(0.001)
    await chats.send_message(chat_id, "u2", "latest")

    [summary] = await chats.list("u1")
    assert summary.id == chat_id
    assert summary.other_user.name == "Amit Verma"
    assert summary.last_message.content == "latest"

    [from_other_side] = await chats.list("u2")
    assert from_other_side.other_user.name == "Rahul Sharma"


async def test_list_only_includes_participants_chats(chats):
    await chats.get_or_create("u1", "u2", "pooling", "X")
    assert await chats.list("u3") == []


async def test_list_orders_by_latest_activity(chats):
    older = await chats.get_or_create("u1", "u2", "pooling", "X")
    newer = await chats.get_or_create("u1", "u3", "renting", "Y")
    await asyncio.sleep(0.001)
    await chats.send_message(older, "u2", "bump")
    assert [c.id for c in await chats.list("u1")] == [older, newer]
    summaries = await chats.list("u1")
    assert summaries[1].last_message is None
