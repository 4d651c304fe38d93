"""Pydantic request/response models for the HTTP API."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import (
    MeetingType,
    RatingCategory,
    ReportReason,
    ReportStatus,
    SessionType,
    SkillCategory,
    SkillLevel,
    naive_utc,
)


class ORMModel(BaseModel):
    """Base for responses built from ORM rows."""
    model_config = ConfigDict(from_attributes=True)


# ============ Common ============

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: str | None = None


class StatusResponse(BaseModel):
    status: str
    message: str | None = None
    count: int | None = None


# ============ Users & skills ============

class SkillDTO(BaseModel):
    """Embedded skill record."""
    id: str
    name: str
    category: SkillCategory
    level: SkillLevel
    years_of_experience: int | None = None
    description: str = ""
    added_at: str | None = None


class SkillInput(BaseModel):
    """Skill as entered by a user. Category is inferred when omitted."""
    name: str = Field(min_length=1, max_length=100)
    level: SkillLevel = SkillLevel.BEGINNER
    category: SkillCategory | None = None
    years_of_experience: int | None = Field(default=None, ge=0, le=80)
    description: str | None = Field(default=None, max_length=500)


class RegisterUserRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    user_id: str | None = Field(default=None, max_length=64)
    photo_url: str | None = None


class UpdateProfileRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    bio: str | None = Field(default=None, max_length=2000)
    photo_url: str | None = None
    location: str | None = Field(default=None, max_length=255)
    prefer_online: bool | None = None
    prefer_offline: bool | None = None


class OnboardingRequest(BaseModel):
    teach: list[SkillInput] = Field(default_factory=list)
    learn: list[SkillInput] = Field(default_factory=list)
    prefer_online: bool = True
    prefer_offline: bool = False
    location: str | None = None


class UserPublicDTO(ORMModel):
    """Profile as other users see it."""
    id: str
    name: str
    photo_url: str | None = None
    bio: str | None = None
    location: str | None = None
    prefer_online: bool
    prefer_offline: bool
    skills_i_teach: list[SkillDTO] = Field(default_factory=list)
    skills_i_want_to_learn: list[SkillDTO] = Field(default_factory=list)
    average_rating: float
    total_reviews: int
    trust_score: float
    total_swaps_completed: int
    is_verified: bool


class UserDTO(UserPublicDTO):
    """Full profile for the owner and admins."""
    email: str
    role: str
    is_onboarding_complete: bool
    total_skills_taught: int
    total_skills_learned: int
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None
    is_active: bool
    is_banned: bool
    banned_reason: str | None = None


# ============ Matching ============

class RuleTraceDTO(BaseModel):
    """Rule trace data transfer object."""
    rule_id: str
    name: str
    status: str
    reason: str
    evidence: list[dict]
    score_delta: float = 0.0


class MatchDTO(BaseModel):
    """Single match result."""
    user: UserPublicDTO
    score: float
    common_teaching_skills: list[SkillDTO]
    skills_can_learn: list[SkillDTO]
    rule_trace: list[RuleTraceDTO]


class MatchExplanationDTO(BaseModel):
    user_id: str
    other_id: str
    is_match: bool
    score: float
    common_teaching_skills: list[SkillDTO]
    skills_can_learn: list[SkillDTO]
    rule_trace: list[RuleTraceDTO]
    rules_version: str
    computed_at: datetime


# ============ Swaps ============

class CreateSwapRequest(BaseModel):
    recipient_id: str
    offered_skill_name: str | None = None
    requested_skill_name: str | None = None
    message: str = Field(default="", max_length=1000)
    session_type: SessionType = SessionType.ONLINE
    proposed_date: datetime | None = None
    proposed_time: str | None = Field(default=None, max_length=20)

    @field_validator("proposed_date")
    @classmethod
    def proposed_date_as_naive_utc(cls, value: datetime | None) -> datetime | None:
        return naive_utc(value)


class SwapRequestDTO(ORMModel):
    id: str
    sender_id: str
    sender_name: str
    recipient_id: str
    recipient_name: str
    skill_offered: SkillDTO
    skill_requested: SkillDTO
    message: str
    session_type: SessionType
    proposed_date: datetime | None = None
    proposed_time: str | None = None
    status: str
    created_at: datetime
    responded_at: datetime | None = None
    completed_at: datetime | None = None


class SwapDTO(ORMModel):
    id: str
    swap_request_id: str | None = None
    teacher_id: str
    teacher_name: str
    learner_id: str
    learner_name: str
    skill_being_taught: SkillDTO
    skill_being_learned: SkillDTO
    status: str
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None


# ============ Sessions ============

class ScheduleSessionRequest(BaseModel):
    swap_request_id: str
    scheduled_at: datetime
    duration: int | None = Field(default=None, ge=5, le=600)
    meeting_type: MeetingType = MeetingType.VIDEO
    meeting_link: str | None = None
    description: str | None = Field(default=None, max_length=2000)
    skill_topic: str | None = Field(default=None, max_length=255)

    @field_validator("scheduled_at")
    @classmethod
    def scheduled_at_as_naive_utc(cls, value: datetime | None) -> datetime | None:
        return naive_utc(value)


class SessionDTO(ORMModel):
    id: str
    swap_id: str | None = None
    swap_request_id: str | None = None
    host_id: str
    guest_id: str
    skill_topic: str
    session_type: str
    description: str | None = None
    scheduled_at: datetime
    duration: int
    meeting_link: str | None = None
    meeting_type: str
    status: str
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    can_join: bool = False


class SessionListResponse(BaseModel):
    sessions: list[SessionDTO]
    upcoming: list[SessionDTO]
    completed: list[SessionDTO]


# ============ Chat ============

class CreateConversationRequest(BaseModel):
    other_user_id: str
    swap_request_id: str | None = None


class ConversationDTO(ORMModel):
    id: str
    participant_ids: list[str]
    participant_names: list[str]
    swap_request_id: str | None = None
    last_message: str | None = None
    last_message_time: datetime | None = None
    unread_by: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1)
    attachment_url: str | None = None
    attachment_type: str | None = None


class MessageDTO(ORMModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_name: str
    content: str
    attachment_url: str | None = None
    attachment_type: str | None = None
    is_read: bool
    read_by: list[str] = Field(default_factory=list)
    created_at: datetime
    edited_at: datetime | None = None


# ============ Ratings ============

class CreateRatingRequest(BaseModel):
    session_id: str
    rating: int
    review: str
    category: RatingCategory = RatingCategory.OVERALL


class RatingDTO(ORMModel):
    id: str
    rated_by_id: str
    rated_by_name: str
    rated_user_id: str
    rated_user_name: str
    session_id: str | None = None
    rating: int
    review: str
    category: str
    created_at: datetime


class RatingListResponse(BaseModel):
    ratings: list[RatingDTO]
    average_rating: float
    total: int


# ============ Notifications ============

class NotificationDTO(ORMModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    related_item_id: str | None = None
    related_user_id: str | None = None
    is_read: bool
    created_at: datetime
    read_at: datetime | None = None


class NotificationListResponse(BaseModel):
    notifications: list[NotificationDTO]
    unread_count: int


# ============ Moderation ============

class CreateReportRequest(BaseModel):
    reported_user_id: str
    reason: ReportReason
    description: str = Field(default="", max_length=2000)
    evidence_urls: list[str] = Field(default_factory=list)


class ReportDTO(ORMModel):
    id: str
    reported_by_id: str
    reported_by_name: str
    reported_user_id: str
    reported_user_name: str
    reason: str
    description: str
    evidence_urls: list[str] = Field(default_factory=list)
    status: str
    resolved_by: str | None = None
    resolution_notes: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None


class BanUserRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


class WarningRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)
    expires_at: datetime | None = None

    @field_validator("expires_at")
    @classmethod
    def expires_at_as_naive_utc(cls, value: datetime | None) -> datetime | None:
        return naive_utc(value)


class WarningDTO(ORMModel):
    id: str
    user_id: str
    user_name: str
    reason: str
    issued_by: str
    issued_at: datetime
    expires_at: datetime | None = None


class ResolveReportRequest(BaseModel):
    status: ReportStatus
    notes: str | None = Field(default=None, max_length=2000)


class PlatformStatisticsDTO(ORMModel):
    total_users: int
    active_users: int
    banned_users: int
    total_swaps_completed: int
    total_skills_exchanged: int
    average_platform_rating: float
    new_users_this_month: int
    swaps_completed_this_month: int
    active_conversations: int
    average_sessions_per_user: float
    average_rating_per_rating: float
    computed_at: datetime
