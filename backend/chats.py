"""
Conversation threads between two users about one listing.

A thread is identified by (sorted participant pair, context type, context
title), so the same two people get one thread per listing.
"""
import logging
from typing import List, Optional, Tuple

from database import Store
from errors import InvalidRequestError
from identity import Identity
from repositories import ChatRepository, MessageRepository, new_id, now_utc
from schemas import Chat, ChatSummary, Message

logger = logging.getLogger(__name__)


def thread_key(user_a: str, user_b: str, context_type: str, context_title: str) -> Tuple[Tuple[str, ...], str, str]:
    return tuple(sorted((user_a, user_b))), context_type, context_title


class ChatService:
    def __init__(self, store: Store, identity: Optional[Identity] = None):
        self.chats = ChatRepository(store)
        self.messages = MessageRepository(store)
        self.identity = identity or Identity(store)

    async def get_or_create(self, user_a: str, user_b: str, context_type: str, context_title: str) -> str:
        if user_a == user_b:
            raise InvalidRequestError("Cannot open a chat with yourself")
        key = thread_key(user_a, user_b, context_type, context_title)
        for chat in await self.chats.get_all():
            if thread_key(*chat.participants, chat.context_type, chat.context_title) == key:
                return chat.id
        chat = Chat(
            id=new_id(),
            participants=list(key[0]),
            context_type=context_type,
            context_title=context_title,
            created_at=now_utc(),
        )
        await self.chats.add(chat)
        logger.info("Opened chat %s about %s '%s'", chat.id, context_type, context_title)
        return chat.id

    async def get_chat(self, chat_id: str) -> Optional[Chat]:
        return await self.chats.get(chat_id)

    async def list(self, user_id: str) -> List[ChatSummary]:
        """The user's threads with the other participant and latest message, newest first."""
        all_messages = await self.messages.get_all()
        summaries = []
        for chat in await self.chats.get_all():
            if user_id not in chat.participants:
                continue
            other_id = next(p for p in chat.participants if p != user_id)
            chat_messages = [m for m in all_messages if m.chat_id == chat.id]
            last = None
            for m in chat_messages:
                if last is None or m.timestamp >= last.timestamp:
                    last = m
            summaries.append(ChatSummary(
                **chat.model_dump(),
                other_user=await self.identity.get(other_id),
                last_message=last,
            ))
        summaries.sort(key=lambda s: s.last_message.timestamp if s.last_message else s.created_at, reverse=True)
        return summaries

    async def get_messages(self, chat_id: str) -> List[Message]:
        return sorted(await self.messages.for_chat(chat_id), key=lambda m: m.timestamp)

    async def send_message(self, chat_id: str, sender_id: str, content: str) -> Message:
        message = Message(
            id=new_id(),
            chat_id=chat_id,
            sender_id=sender_id,
            content=content,
            timestamp=now_utc(),
        )
        return await self.messages.add(message)
