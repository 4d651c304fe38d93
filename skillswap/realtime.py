"""In-process live-update hub for conversation messages.

Each WebSocket subscriber gets its own queue; ``publish`` fans a message
out to every queue registered for the conversation. Subscriptions live only
as long as the connection that opened them.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Subscription:
    """One live subscriber to a conversation."""
    conversation_id: str
    user_id: str
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    subscribed_at: datetime = field(default_factory=datetime.utcnow)

    async def next_event(self) -> dict[str, Any]:
        return await self.queue.get()


class ConversationHub:
    """Registry of live conversation subscribers."""

    def __init__(self) -> None:
        # conversation_id -> subscriptions
        self._subscribers: dict[str, set[Subscription]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, conversation_id: str, user_id: str) -> Subscription:
        subscription = Subscription(conversation_id=conversation_id, user_id=user_id)
        async with self._lock:
            self._subscribers.setdefault(conversation_id, set()).add(subscription)
        logger.info(f"User {user_id} subscribed to conversation {conversation_id}")
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        async with self._lock:
            subscribers = self._subscribers.get(subscription.conversation_id)
            if subscribers is not None:
                subscribers.discard(subscription)
                if not subscribers:
                    del self._subscribers[subscription.conversation_id]
        logger.info(
            f"User {subscription.user_id} unsubscribed from conversation {subscription.conversation_id}"
        )

    async def publish(self, conversation_id: str, event: dict[str, Any]) -> int:
        """Deliver an event to every subscriber of the conversation.

        Returns:
            Number of subscribers reached
        """
        async with self._lock:
            subscribers = list(self._subscribers.get(conversation_id, ()))

        for subscription in subscribers:
            subscription.queue.put_nowait(event)

        if subscribers:
            logger.debug(f"Published to {len(subscribers)} subscribers of conversation {conversation_id}")
        return len(subscribers)

    def subscriber_count(self, conversation_id: str) -> int:
        return len(self._subscribers.get(conversation_id, ()))


hub = ConversationHub()
