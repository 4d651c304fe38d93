"""Tests for conversations and messages."""

import pytest

from skillswap import models
from skillswap.config import settings
from skillswap.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from skillswap.pipelines import chat, notifications
from skillswap.realtime import ConversationHub


@pytest.fixture
def conversation_hub():
    return ConversationHub()


@pytest.mark.asyncio
class TestConversations:
    async def test_one_conversation_per_pair(self, session, swap_pair):
        alice, bob = swap_pair

        first = await chat.get_or_create_conversation(session, alice.id, bob.id)
        second = await chat.get_or_create_conversation(session, bob.id, alice.id)

        assert first.id == second.id
        assert first.participant_key == chat.participant_key(bob.id, alice.id)
        assert set(first.unread_by) == {alice.id, bob.id}

    async def test_same_user(self, session, swap_pair):
        alice, _ = swap_pair
        with pytest.raises(ValidationFailedError):
            await chat.get_or_create_conversation(session, alice.id, alice.id)

    async def test_unknown_user(self, session, swap_pair):
        alice, _ = swap_pair
        with pytest.raises(NotFoundError):
            await chat.get_or_create_conversation(session, alice.id, "ghost")

    async def test_user_conversations_most_recent_first(self, session, make_user, conversation_hub):
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        bob = await make_user("Bob", teach=["Spanish"], learn=["Guitar"])
        carol = await make_user("Carol", teach=["Spanish"], learn=["Guitar"])
        with_bob = await chat.get_or_create_conversation(session, alice.id, bob.id)
        with_carol = await chat.get_or_create_conversation(session, alice.id, carol.id)

        await chat.send_message(session, with_bob.id, bob.id, "ping", publisher=conversation_hub)

        listed = await chat.get_user_conversations(session, alice.id)
        assert [c.id for c in listed] == [with_bob.id, with_carol.id]
        assert [c.id for c in await chat.get_user_conversations(session, carol.id)] == [with_carol.id]


@pytest.mark.asyncio
class TestMessages:
    async def test_send_updates_summary_and_notifies(self, session, swap_pair, conversation_hub):
        alice, bob = swap_pair
        conversation = await chat.get_or_create_conversation(session, alice.id, bob.id)

        message = await chat.send_message(
            session, conversation.id, alice.id, "  Hello Bob  ", publisher=conversation_hub
        )

        assert message.content == "Hello Bob"
        assert message.read_by == [alice.id]
        assert message.is_read is False
        assert conversation.last_message == "Hello Bob"
        assert conversation.unread_by == [bob.id]
        inbox = await notifications.get_user_notifications(session, bob.id)
        assert [n.type for n in inbox] == [models.NotificationType.NEW_MESSAGE.value]
        assert inbox[0].related_item_id == conversation.id

    async def test_preview_is_truncated(self, session, swap_pair, conversation_hub):
        alice, bob = swap_pair
        conversation = await chat.get_or_create_conversation(session, alice.id, bob.id)

        await chat.send_message(session, conversation.id, alice.id, "x" * 300, publisher=conversation_hub)

        assert len(conversation.last_message) == chat.PREVIEW_LENGTH

    async def test_blank_and_oversized_content(self, session, swap_pair, conversation_hub):
        alice, bob = swap_pair
        conversation = await chat.get_or_create_conversation(session, alice.id, bob.id)

        with pytest.raises(ValidationFailedError):
            await chat.send_message(session, conversation.id, alice.id, "   ", publisher=conversation_hub)
        with pytest.raises(ValidationFailedError):
            await chat.send_message(
                session,
                conversation.id,
                alice.id,
                "x" * (settings.chat.max_message_length + 1),
                publisher=conversation_hub,
            )

    async def test_outsider_cannot_send_or_read(self, session, make_user, conversation_hub):
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        bob = await make_user("Bob", teach=["Spanish"], learn=["Guitar"])
        eve = await make_user("Eve", teach=["Chess"], learn=["Yoga"])
        conversation = await chat.get_or_create_conversation(session, alice.id, bob.id)

        with pytest.raises(PermissionDeniedError):
            await chat.send_message(session, conversation.id, eve.id, "hi", publisher=conversation_hub)
        with pytest.raises(PermissionDeniedError):
            await chat.get_messages(session, conversation.id, eve.id)

    async def test_messages_oldest_first_with_limit(self, session, swap_pair, conversation_hub):
        alice, bob = swap_pair
        conversation = await chat.get_or_create_conversation(session, alice.id, bob.id)
        for i in range(5):
            await chat.send_message(session, conversation.id, alice.id, f"m{i}", publisher=conversation_hub)

        latest = await chat.get_messages(session, conversation.id, bob.id, limit=3)

        assert [m.content for m in latest] == ["m2", "m3", "m4"]
        assert await chat.get_messages(session, conversation.id, bob.id, limit=0) == []

    async def test_send_publishes_to_subscribers(self, session, swap_pair, conversation_hub):
        alice, bob = swap_pair
        conversation = await chat.get_or_create_conversation(session, alice.id, bob.id)
        subscription = await conversation_hub.subscribe(conversation.id, bob.id)

        message = await chat.send_message(
            session, conversation.id, alice.id, "live", publisher=conversation_hub
        )

        event = await subscription.next_event()
        assert event["id"] == message.id
        assert event["content"] == "live"
        assert event["sender_id"] == alice.id

    async def test_mark_read(self, session, swap_pair, conversation_hub):
        alice, bob = swap_pair
        conversation = await chat.get_or_create_conversation(session, alice.id, bob.id)
        message = await chat.send_message(session, conversation.id, alice.id, "hi", publisher=conversation_hub)

        updated = await chat.mark_message_as_read(session, conversation.id, message.id, bob.id)
        again = await chat.mark_message_as_read(session, conversation.id, message.id, bob.id)
        opened = await chat.mark_conversation_read(session, conversation.id, bob.id)

        assert updated.is_read is True
        assert again.read_by == [alice.id, bob.id]
        assert opened.unread_by == []

    async def test_mark_unknown_message(self, session, swap_pair):
        alice, bob = swap_pair
        conversation = await chat.get_or_create_conversation(session, alice.id, bob.id)
        with pytest.raises(NotFoundError):
            await chat.mark_message_as_read(session, conversation.id, "missing", bob.id)
