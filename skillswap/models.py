"""Core SQLAlchemy models (2.x style) for the SkillSwap schema.

One table per collection. Skills are embedded as JSON snapshots on the
user, swap request and swap rows, so they carry no identity beyond their
generated id.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    """Generate an opaque document id."""
    return uuid.uuid4().hex


def naive_utc(value: datetime | None) -> datetime | None:
    """Stored timestamps are naive UTC; convert aware values to match."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ============ Enumerations ============

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class SkillCategory(str, Enum):
    LANGUAGE = "Language"
    MUSIC = "Music"
    SPORTS = "Sports"
    ARTS = "Arts & Design"
    TECH = "Technology"
    COOKING = "Cooking"
    FITNESS = "Fitness"
    BUSINESS = "Business"
    PERSONAL_DEV = "Personal Development"
    ACADEMIC = "Academic"
    OTHER = "Other"


class SkillLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class SwapRequestStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"


class SwapStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class SessionStatus(str, Enum):
    SCHEDULED = "Scheduled"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class SessionType(str, Enum):
    ONLINE = "Online"
    OFFLINE = "Offline"
    HYBRID = "Hybrid"


class MeetingType(str, Enum):
    VIDEO = "Video Call"
    AUDIO = "Audio Call"
    IN_PERSON = "In Person"
    NONE = "None"


class RatingCategory(str, Enum):
    KNOWLEDGE = "Knowledge"
    COMMUNICATION = "Communication"
    RELIABILITY = "Reliability"
    OVERALL = "Overall"


class NotificationType(str, Enum):
    NEW_MATCH = "New Match"
    SWAP_REQUEST = "Swap Request"
    REQUEST_ACCEPTED = "Request Accepted"
    REQUEST_REJECTED = "Request Rejected"
    NEW_MESSAGE = "New Message"
    SESSION_REMINDER = "Session Reminder"
    SESSION_COMPLETED = "Session Completed"
    PROFILE_VIEWED = "Profile Viewed"
    SKILL_ENDORSED = "Skill Endorsed"
    RATING_RECEIVED = "Rating Received"
    SYSTEM = "System"


class ReportReason(str, Enum):
    INAPPROPRIATE_BEHAVIOR = "Inappropriate Behavior"
    HARASSMENT = "Harassment"
    FAKE_PROFILE = "Fake Profile"
    SCAM = "Scam/Fraud"
    INAPPROPRIATE_CONTENT = "Inappropriate Content"
    NO_SHOW = "No-show for Session"
    POOR_QUALITY = "Poor Quality Teaching/Learning"
    OTHER = "Other"


class ReportStatus(str, Enum):
    OPEN = "Open"
    UNDER_REVIEW = "Under Review"
    RESOLVED = "Resolved"
    DISMISSED = "Dismissed"


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class User(Base):
    """User profiles."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    photo_url: Mapped[str | None] = mapped_column(String(1024))
    bio: Mapped[str | None] = mapped_column(Text)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.USER.value)

    # Preferences
    prefer_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    prefer_offline: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    location: Mapped[str | None] = mapped_column(String(255))

    # Embedded skill lists
    skills_i_teach: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    skills_i_want_to_learn: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    is_onboarding_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Reputation
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    trust_score: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)

    # Statistics
    total_swaps_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_skills_taught: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_skills_learned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )
    last_login_at: Mapped[datetime | None] = mapped_column()
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    banned_reason: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("ix_users_active_banned", "is_active", "is_banned"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class SwapRequest(Base):
    """Swap requests sent from one user to another."""
    __tablename__ = "swap_requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    sender_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    sender_name: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    recipient_name: Mapped[str] = mapped_column(String(255), nullable=False)

    skill_offered: Mapped[dict] = mapped_column(JSON, nullable=False)
    skill_requested: Mapped[dict] = mapped_column(JSON, nullable=False)

    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    session_type: Mapped[str] = mapped_column(String(20), nullable=False, default=SessionType.ONLINE.value)
    proposed_date: Mapped[datetime | None] = mapped_column()
    proposed_time: Mapped[str | None] = mapped_column(String(20))

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SwapRequestStatus.PENDING.value, index=True
    )

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column()
    completed_at: Mapped[datetime | None] = mapped_column()

    __table_args__ = (
        Index("ix_swap_requests_recipient_status", "recipient_id", "status"),
        Index("ix_swap_requests_pair_status", "sender_id", "recipient_id", "status"),
    )


class Conversation(Base):
    """Two-party conversations."""
    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_a_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    user_a_name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_b_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    user_b_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Sorted "a:b" pair so one conversation exists per pair
    participant_key: Mapped[str] = mapped_column(String(160), nullable=False, unique=True)

    swap_request_id: Mapped[str | None] = mapped_column(ForeignKey("swap_requests.id"))
    last_message: Mapped[str | None] = mapped_column(Text)
    last_message_time: Mapped[datetime | None] = mapped_column()
    unread_by: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False, index=True)

    messages: Mapped[list[Message]] = relationship(
        "Message", back_populates="conversation", cascade="all, delete-orphan", lazy="raise"
    )

    @property
    def participant_ids(self) -> list[str]:
        return [self.user_a_id, self.user_b_id]

    @property
    def participant_names(self) -> list[str]:
        return [self.user_a_name, self.user_b_name]

    def other_participant(self, user_id: str) -> str:
        return self.user_b_id if user_id == self.user_a_id else self.user_a_id


class Message(Base):
    """Messages nested under a conversation."""
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    conversation_id: Mapped[str] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    sender_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    attachment_url: Mapped[str | None] = mapped_column(String(1024))
    attachment_type: Mapped[str | None] = mapped_column(String(100))
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_by: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    edited_at: Mapped[datetime | None] = mapped_column()

    conversation: Mapped[Conversation] = relationship("Conversation", back_populates="messages", lazy="raise")

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
    )


class Swap(Base):
    """Complete record of one reciprocal exchange."""
    __tablename__ = "swaps"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    swap_request_id: Mapped[str | None] = mapped_column(ForeignKey("swap_requests.id"), unique=True)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    teacher_name: Mapped[str] = mapped_column(String(255), nullable=False)
    learner_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    learner_name: Mapped[str] = mapped_column(String(255), nullable=False)
    skill_being_taught: Mapped[dict] = mapped_column(JSON, nullable=False)
    skill_being_learned: Mapped[dict] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SwapStatus.PENDING.value, index=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column()
    completed_at: Mapped[datetime | None] = mapped_column()


class SkillSession(Base):
    """Scheduled meetings, tied to a swap."""
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    swap_id: Mapped[str | None] = mapped_column(ForeignKey("swaps.id"), index=True)
    swap_request_id: Mapped[str | None] = mapped_column(ForeignKey("swap_requests.id"), index=True)
    host_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    guest_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)

    skill_topic: Mapped[str] = mapped_column(String(255), nullable=False)
    session_type: Mapped[str] = mapped_column(String(20), nullable=False, default=SessionType.ONLINE.value)
    description: Mapped[str | None] = mapped_column(Text)
    scheduled_at: Mapped[datetime] = mapped_column(nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    meeting_link: Mapped[str | None] = mapped_column(String(1024))
    meeting_type: Mapped[str] = mapped_column(String(20), nullable=False, default=MeetingType.VIDEO.value)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SessionStatus.SCHEDULED.value, index=True
    )
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column()
    completed_at: Mapped[datetime | None] = mapped_column()
    cancelled_at: Mapped[datetime | None] = mapped_column()

    @property
    def participant_ids(self) -> list[str]:
        return [self.host_id, self.guest_id]


class Rating(Base):
    """Ratings left after a completed session."""
    __tablename__ = "ratings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    rated_by_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    rated_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rated_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    rated_user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    session_id: Mapped[str | None] = mapped_column(ForeignKey("sessions.id"), index=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default=RatingCategory.OVERALL.value)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("rated_by_id", "session_id", name="uq_ratings_rater_session"),
    )


class Notification(Base):
    """Per-user notifications."""
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_item_id: Mapped[str | None] = mapped_column(String(64))
    related_user_id: Mapped[str | None] = mapped_column(String(64))
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column()

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )


class Report(Base):
    """User reports for moderation."""
    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    reported_by_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    reported_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    reported_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    reported_user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str] = mapped_column(String(60), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    evidence_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ReportStatus.OPEN.value, index=True)
    resolved_by: Mapped[str | None] = mapped_column(String(64))
    resolution_notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column()


class UserWarning(Base):
    """Warnings issued by admins."""
    __tablename__ = "user_warnings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    issued_by: Mapped[str] = mapped_column(String(64), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column()
