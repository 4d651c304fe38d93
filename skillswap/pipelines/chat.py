"""Conversations and messages between two users."""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..config import settings
from ..db import commit_or_rollback
from ..errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from ..realtime import ConversationHub, hub
from .normalization import normalize_review
from .notifications import add_notification
from .users import get_user

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


def participant_key(user1_id: str, user2_id: str) -> str:
    """Order-independent key for a pair of users."""
    return ":".join(sorted((user1_id, user2_id)))


def message_payload(message: models.Message) -> dict:
    """JSON-ready form of a message for live subscribers."""
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "sender_name": message.sender_name,
        "content": message.content,
        "attachment_url": message.attachment_url,
        "attachment_type": message.attachment_type,
        "is_read": message.is_read,
        "read_by": list(message.read_by or []),
        "created_at": message.created_at.isoformat(),
    }


async def get_conversation(session: AsyncSession, conversation_id: str) -> models.Conversation:
    conversation = await session.get(models.Conversation, conversation_id)
    if conversation is None:
        raise NotFoundError(f"Conversation {conversation_id} not found")
    return conversation


async def get_participant_conversation(
    session: AsyncSession,
    conversation_id: str,
    user_id: str,
) -> models.Conversation:
    """Load a conversation the user takes part in."""
    conversation = await get_conversation(session, conversation_id)
    if user_id not in conversation.participant_ids:
        raise PermissionDeniedError(f"User {user_id} is not part of conversation {conversation_id}")
    return conversation


async def _find_conversation(session: AsyncSession, key: str) -> models.Conversation | None:
    result = await session.execute(
        select(models.Conversation).where(models.Conversation.participant_key == key)
    )
    return result.scalar_one_or_none()


async def get_or_create_conversation(
    session: AsyncSession,
    user1_id: str,
    user2_id: str,
    swap_request_id: str | None = None,
) -> models.Conversation:
    """Return the pair's conversation, creating it on first contact.

    The unique participant key makes a concurrent double create collapse
    into one row: the losing insert re-reads the winner.

    Raises:
        ValidationFailedError: If both ids are the same user
        NotFoundError: If either user does not exist
    """
    if user1_id == user2_id:
        raise ValidationFailedError("A conversation needs two different users")

    key = participant_key(user1_id, user2_id)
    existing = await _find_conversation(session, key)
    if existing is not None:
        return existing

    user1 = await get_user(session, user1_id)
    user2 = await get_user(session, user2_id)
    now = datetime.utcnow()
    conversation = models.Conversation(
        id=models.new_id(),
        user_a_id=user1.id,
        user_a_name=user1.name,
        user_b_id=user2.id,
        user_b_name=user2.name,
        participant_key=key,
        swap_request_id=swap_request_id,
        last_message=None,
        last_message_time=None,
        unread_by=[user1.id, user2.id],
        created_at=now,
        updated_at=now,
    )
    session.add(conversation)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        existing = await _find_conversation(session, key)
        if existing is None:
            raise
        logger.info(f"Conversation for {key} created concurrently, reusing {existing.id}")
        return existing

    logger.info(f"Created conversation {conversation.id} between {user1_id} and {user2_id}")
    return conversation


async def get_user_conversations(session: AsyncSession, user_id: str) -> list[models.Conversation]:
    """Conversations of the user, most recently updated first."""
    result = await session.execute(
        select(models.Conversation)
        .where(
            or_(
                models.Conversation.user_a_id == user_id,
                models.Conversation.user_b_id == user_id,
            )
        )
        .order_by(models.Conversation.updated_at.desc())
    )
    return list(result.scalars().all())


async def send_message(
    session: AsyncSession,
    conversation_id: str,
    sender_id: str,
    content: str,
    *,
    attachment_url: str | None = None,
    attachment_type: str | None = None,
    publisher: ConversationHub | None = None,
) -> models.Message:
    """Append a message and fan it out.

    Updates the conversation summary, marks it unread for the other
    participant, notifies them and publishes the message to live
    subscribers once it is committed.

    Args:
        session: Database session
        conversation_id: Target conversation
        sender_id: Acting user, must be a participant
        content: Message text, non-blank
        attachment_url: Optional attachment location
        attachment_type: Optional attachment MIME type
        publisher: Live-update hub (defaults to the process hub)

    Returns:
        The stored Message

    Raises:
        NotFoundError: If the conversation does not exist
        PermissionDeniedError: If the sender is not a participant
        ValidationFailedError: If the content is blank or too long
    """
    text = normalize_review(content)
    if not text:
        raise ValidationFailedError("Message content cannot be empty")
    if len(text) > settings.chat.max_message_length:
        raise ValidationFailedError(
            f"Message exceeds {settings.chat.max_message_length} characters"
        )

    conversation = await get_participant_conversation(session, conversation_id, sender_id)
    sender = await get_user(session, sender_id)
    recipient_id = conversation.other_participant(sender_id)

    now = datetime.utcnow()
    message = models.Message(
        id=models.new_id(),
        conversation_id=conversation.id,
        sender_id=sender.id,
        sender_name=sender.name,
        content=text,
        attachment_url=attachment_url,
        attachment_type=attachment_type,
        is_read=False,
        read_by=[sender.id],
        created_at=now,
    )
    session.add(message)

    conversation.last_message = text[:PREVIEW_LENGTH]
    conversation.last_message_time = now
    conversation.updated_at = now
    conversation.unread_by = [recipient_id]

    add_notification(
        session,
        recipient_id,
        models.NotificationType.NEW_MESSAGE,
        f"New message from {sender.name}",
        text[:PREVIEW_LENGTH],
        related_item_id=conversation.id,
        related_user_id=sender.id,
    )
    await commit_or_rollback(session, f"sending message in {conversation_id}")
    logger.info(f"User {sender_id} sent message {message.id} in conversation {conversation_id}")

    await (publisher or hub).publish(conversation.id, message_payload(message))
    return message


async def get_messages(
    session: AsyncSession,
    conversation_id: str,
    user_id: str,
    limit: int | None = None,
) -> list[models.Message]:
    """The newest ``limit`` messages, oldest first."""
    if limit is None:
        limit = settings.chat.message_page_size
    await get_participant_conversation(session, conversation_id, user_id)

    result = await session.execute(
        select(models.Message)
        .where(models.Message.conversation_id == conversation_id)
        .order_by(models.Message.created_at.desc())
        .limit(limit)
    )
    messages = list(result.scalars().all())
    messages.reverse()
    return messages


async def mark_message_as_read(
    session: AsyncSession,
    conversation_id: str,
    message_id: str,
    user_id: str,
) -> models.Message:
    await get_participant_conversation(session, conversation_id, user_id)
    message = await session.get(models.Message, message_id)
    if message is None or message.conversation_id != conversation_id:
        raise NotFoundError(f"Message {message_id} not found")

    read_by = list(message.read_by or [])
    if user_id not in read_by:
        message.read_by = read_by + [user_id]
    message.is_read = True
    await commit_or_rollback(session, f"marking message {message_id} read")
    return message


async def mark_conversation_read(
    session: AsyncSession,
    conversation_id: str,
    user_id: str,
) -> models.Conversation:
    conversation = await get_participant_conversation(session, conversation_id, user_id)
    conversation.unread_by = [uid for uid in conversation.unread_by or [] if uid != user_id]
    await commit_or_rollback(session, f"marking conversation {conversation_id} read")
    return conversation
