"""FastAPI app for the SkillSwap backend.

The acting user is identified by the ``X-User-Id`` header issued by the
external identity provider. Domain errors from the pipelines are mapped to
``ErrorResponse`` bodies by the exception handlers below.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, Header, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from . import models
from .config import settings
from .db import get_session
from .errors import SkillSwapError
from .logging_config import setup_logging
from .pipelines import admin, chat, matching, notifications, ratings, sessions, swaps, users
from .realtime import hub
from .schemas import (
    BanUserRequest,
    ConversationDTO,
    CreateConversationRequest,
    CreateRatingRequest,
    CreateReportRequest,
    CreateSwapRequest,
    ErrorResponse,
    HealthResponse,
    MatchDTO,
    MatchExplanationDTO,
    MessageDTO,
    NotificationDTO,
    NotificationListResponse,
    OnboardingRequest,
    PlatformStatisticsDTO,
    RatingDTO,
    RatingListResponse,
    RegisterUserRequest,
    ReportDTO,
    ResolveReportRequest,
    ScheduleSessionRequest,
    SendMessageRequest,
    SessionDTO,
    SessionListResponse,
    SkillDTO,
    SkillInput,
    StatusResponse,
    SwapDTO,
    SwapRequestDTO,
    UpdateProfileRequest,
    UserDTO,
    UserPublicDTO,
    WarningDTO,
    WarningRequest,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    # Startup
    setup_logging()
    logger.info(f"{settings.app_name} {settings.version} starting up ({settings.environment.value})")

    yield

    # Shutdown
    logger.info("Application shutting down")


app = FastAPI(
    title="SkillSwap API",
    version=settings.version,
    description="Skill-exchange platform: matching, swap requests, chat, sessions and ratings",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(SkillSwapError)
async def skillswap_error_handler(request, exc: SkillSwapError):
    """Map domain errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error}: {exc}")
    else:
        logger.info(f"{exc.error} on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.error, detail=str(exc)).model_dump(),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    """Last-resort handler; the session dependency has already rolled back."""
    logger.error(f"Unexpected error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error="internal_error", detail="Internal server error").model_dump(),
    )


# Identity
async def get_current_user(
    x_user_id: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> models.User:
    """Resolve the acting user from the X-User-Id header."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    user = await session.get(models.User, x_user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user


async def get_admin_user(
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> models.User:
    return await admin.require_admin(session, current.id)


def _session_dto(skill_session: models.SkillSession, now: datetime) -> SessionDTO:
    dto = SessionDTO.model_validate(skill_session)
    dto.can_join = sessions.can_join_session(skill_session, now)
    return dto


def _match_dto(match: matching.MatchResult) -> MatchDTO:
    return MatchDTO(
        user=UserPublicDTO.model_validate(match.user),
        score=match.score,
        common_teaching_skills=[SkillDTO.model_validate(s) for s in match.common_teaching_skills],
        skills_can_learn=[SkillDTO.model_validate(s) for s in match.skills_can_learn],
        rule_trace=match.rule_trace,
    )


# ============ Service ============

@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version=settings.version)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.version,
        "endpoints": {
            "health": "/health",
            "users": "/users",
            "matches": "/matches",
            "swap_requests": "/swap-requests",
            "sessions": "/sessions",
            "conversations": "/conversations",
            "ratings": "/ratings",
            "notifications": "/notifications",
            "admin": "/admin",
            "docs": "/docs",
        },
    }


# ============ Users ============

@app.post("/users", response_model=UserDTO, status_code=status.HTTP_201_CREATED)
async def register_user(
    request: RegisterUserRequest,
    session: AsyncSession = Depends(get_session),
) -> UserDTO:
    """Create the profile for a newly signed-up identity."""
    user = await users.register_user(
        session,
        request.email,
        request.name,
        user_id=request.user_id,
        photo_url=request.photo_url,
    )
    return UserDTO.model_validate(user)


@app.get("/users/me", response_model=UserDTO)
async def get_me(current: models.User = Depends(get_current_user)) -> UserDTO:
    return UserDTO.model_validate(current)


@app.patch("/users/me", response_model=UserDTO)
async def update_me(
    request: UpdateProfileRequest,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UserDTO:
    user = await users.update_user_profile(session, current.id, **request.model_dump(exclude_none=True))
    return UserDTO.model_validate(user)


@app.post("/users/me/login", response_model=UserDTO)
async def record_login(
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UserDTO:
    user = await users.record_login(session, current.id)
    return UserDTO.model_validate(user)


@app.post("/users/me/onboarding", response_model=UserDTO)
async def complete_onboarding(
    request: OnboardingRequest,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UserDTO:
    user = await users.complete_onboarding(
        session,
        current.id,
        [s.model_dump() for s in request.teach],
        [s.model_dump() for s in request.learn],
        prefer_online=request.prefer_online,
        prefer_offline=request.prefer_offline,
        location=request.location,
    )
    return UserDTO.model_validate(user)


@app.post("/users/me/skills/teach", response_model=SkillDTO, status_code=status.HTTP_201_CREATED)
async def add_teaching_skill(
    request: SkillInput,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SkillDTO:
    skill = await users.add_teaching_skill(session, current.id, request.model_dump())
    return SkillDTO.model_validate(skill)


@app.delete("/users/me/skills/teach/{skill_id}", response_model=StatusResponse)
async def remove_teaching_skill(
    skill_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> StatusResponse:
    await users.remove_teaching_skill(session, current.id, skill_id)
    return StatusResponse(status="success", message=f"Removed skill {skill_id}")


@app.post("/users/me/skills/learn", response_model=SkillDTO, status_code=status.HTTP_201_CREATED)
async def add_learning_skill(
    request: SkillInput,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SkillDTO:
    skill = await users.add_learning_skill(session, current.id, request.model_dump())
    return SkillDTO.model_validate(skill)


@app.delete("/users/me/skills/learn/{skill_id}", response_model=StatusResponse)
async def remove_learning_skill(
    skill_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> StatusResponse:
    await users.remove_learning_skill(session, current.id, skill_id)
    return StatusResponse(status="success", message=f"Removed skill {skill_id}")


@app.get("/users/search", response_model=list[UserPublicDTO])
async def search_users(
    skill: str = Query(min_length=1),
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[UserPublicDTO]:
    found = await users.search_users(session, skill)
    return [UserPublicDTO.model_validate(u) for u in found if u.id != current.id]


@app.get("/users/{user_id}", response_model=UserPublicDTO)
async def get_user_profile(
    user_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UserPublicDTO:
    user = await users.get_user_profile(session, user_id)
    return UserPublicDTO.model_validate(user)


@app.get("/users/{user_id}/ratings", response_model=RatingListResponse)
async def get_user_ratings(
    user_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RatingListResponse:
    await users.get_user(session, user_id)
    received = await ratings.get_user_ratings(session, user_id)
    return RatingListResponse(
        ratings=[RatingDTO.model_validate(r) for r in received],
        average_rating=ratings.calculate_average_rating(received),
        total=len(received),
    )


# ============ Matching ============

@app.get("/matches", response_model=list[MatchDTO])
async def find_matches(
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[MatchDTO]:
    found = await matching.find_matches(session, current.id)
    return [_match_dto(m) for m in found]


@app.get("/matches/recommended", response_model=list[MatchDTO])
async def recommended_matches(
    limit: int | None = Query(default=None, ge=1, le=100),
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[MatchDTO]:
    found = await matching.get_recommended_users(session, current.id, limit)
    return [_match_dto(m) for m in found]


@app.get("/matches/suggested", response_model=list[UserPublicDTO])
async def suggested_users(
    limit: int | None = Query(default=None, ge=1, le=100),
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[UserPublicDTO]:
    found = await matching.get_suggested_users(session, current.id, limit)
    return [UserPublicDTO.model_validate(u) for u in found]


@app.get("/matches/{other_id}", response_model=MatchExplanationDTO)
async def explain_match(
    other_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MatchExplanationDTO:
    """Evaluate every matching rule for the current user and another user."""
    explanation = await matching.explain_match(session, current.id, other_id)
    return MatchExplanationDTO(
        user_id=explanation.user_id,
        other_id=explanation.other_id,
        is_match=explanation.is_match,
        score=explanation.score,
        common_teaching_skills=[SkillDTO.model_validate(s) for s in explanation.common_teaching_skills],
        skills_can_learn=[SkillDTO.model_validate(s) for s in explanation.skills_can_learn],
        rule_trace=explanation.rule_trace,
        rules_version=explanation.rules_version,
        computed_at=explanation.computed_at,
    )


# ============ Swap requests ============

@app.post("/swap-requests", response_model=SwapRequestDTO, status_code=status.HTTP_201_CREATED)
async def create_swap_request(
    request: CreateSwapRequest,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SwapRequestDTO:
    swap_request = await swaps.create_swap_request(
        session,
        current.id,
        request.recipient_id,
        offered_skill_name=request.offered_skill_name,
        requested_skill_name=request.requested_skill_name,
        message=request.message,
        session_type=request.session_type,
        proposed_date=request.proposed_date,
        proposed_time=request.proposed_time,
    )
    return SwapRequestDTO.model_validate(swap_request)


@app.get("/swap-requests", response_model=list[SwapRequestDTO])
async def list_swap_requests(
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[SwapRequestDTO]:
    found = await swaps.get_user_swap_requests(session, current.id)
    return [SwapRequestDTO.model_validate(r) for r in found]


@app.get("/swap-requests/pending", response_model=list[SwapRequestDTO])
async def list_pending_swap_requests(
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[SwapRequestDTO]:
    found = await swaps.get_pending_swap_requests(session, current.id)
    return [SwapRequestDTO.model_validate(r) for r in found]


@app.get("/swap-requests/{swap_request_id}", response_model=SwapRequestDTO)
async def get_swap_request(
    swap_request_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SwapRequestDTO:
    swap_request = await swaps.get_swap_request(session, swap_request_id)
    if current.id not in (swap_request.sender_id, swap_request.recipient_id) and not current.is_admin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Swap request not found")
    return SwapRequestDTO.model_validate(swap_request)


@app.post("/swap-requests/{swap_request_id}/accept", response_model=SwapRequestDTO)
async def accept_swap_request(
    swap_request_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SwapRequestDTO:
    swap_request = await swaps.accept_swap_request(session, swap_request_id, current.id)
    return SwapRequestDTO.model_validate(swap_request)


@app.post("/swap-requests/{swap_request_id}/reject", response_model=SwapRequestDTO)
async def reject_swap_request(
    swap_request_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SwapRequestDTO:
    swap_request = await swaps.reject_swap_request(session, swap_request_id, current.id)
    return SwapRequestDTO.model_validate(swap_request)


@app.post("/swap-requests/{swap_request_id}/cancel", response_model=SwapRequestDTO)
async def cancel_swap_request(
    swap_request_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SwapRequestDTO:
    swap_request = await swaps.cancel_swap_request(session, swap_request_id, current.id)
    return SwapRequestDTO.model_validate(swap_request)


@app.get("/swaps/completed", response_model=list[SwapDTO])
async def completed_swaps(
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[SwapDTO]:
    found = await swaps.get_completed_swaps(session, current.id)
    return [SwapDTO.model_validate(s) for s in found]


# ============ Sessions ============

@app.post("/sessions", response_model=SessionDTO, status_code=status.HTTP_201_CREATED)
async def schedule_session(
    request: ScheduleSessionRequest,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SessionDTO:
    skill_session = await sessions.schedule_session(
        session,
        request.swap_request_id,
        current.id,
        request.scheduled_at,
        duration=request.duration,
        meeting_type=request.meeting_type,
        meeting_link=request.meeting_link,
        description=request.description,
        skill_topic=request.skill_topic,
    )
    return _session_dto(skill_session, datetime.utcnow())


@app.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SessionListResponse:
    now = datetime.utcnow()
    found = await sessions.get_user_sessions(session, current.id)
    buckets = sessions.categorize_sessions(found, now)
    return SessionListResponse(
        sessions=[_session_dto(s, now) for s in found],
        upcoming=[_session_dto(s, now) for s in buckets.upcoming],
        completed=[_session_dto(s, now) for s in buckets.completed],
    )


@app.post("/sessions/{session_id}/start", response_model=SessionDTO)
async def start_session(
    session_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SessionDTO:
    skill_session = await sessions.start_session(session, session_id, current.id)
    return _session_dto(skill_session, datetime.utcnow())


@app.post("/sessions/{session_id}/complete", response_model=SessionDTO)
async def complete_session(
    session_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SessionDTO:
    skill_session = await sessions.complete_session(session, session_id, current.id)
    return _session_dto(skill_session, datetime.utcnow())


@app.post("/sessions/{session_id}/cancel", response_model=SessionDTO)
async def cancel_session(
    session_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> SessionDTO:
    skill_session = await sessions.cancel_session(session, session_id, current.id)
    return _session_dto(skill_session, datetime.utcnow())


# ============ Conversations ============

@app.post("/conversations", response_model=ConversationDTO)
async def open_conversation(
    request: CreateConversationRequest,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ConversationDTO:
    conversation = await chat.get_or_create_conversation(
        session, current.id, request.other_user_id, request.swap_request_id
    )
    return ConversationDTO.model_validate(conversation)


@app.get("/conversations", response_model=list[ConversationDTO])
async def list_conversations(
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[ConversationDTO]:
    found = await chat.get_user_conversations(session, current.id)
    return [ConversationDTO.model_validate(c) for c in found]


@app.get("/conversations/{conversation_id}/messages", response_model=list[MessageDTO])
async def list_messages(
    conversation_id: str,
    limit: int | None = Query(default=None, ge=1, le=500),
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[MessageDTO]:
    found = await chat.get_messages(session, conversation_id, current.id, limit)
    return [MessageDTO.model_validate(m) for m in found]


@app.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageDTO,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: str,
    request: SendMessageRequest,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageDTO:
    message = await chat.send_message(
        session,
        conversation_id,
        current.id,
        request.content,
        attachment_url=request.attachment_url,
        attachment_type=request.attachment_type,
    )
    return MessageDTO.model_validate(message)


@app.post("/conversations/{conversation_id}/messages/{message_id}/read", response_model=MessageDTO)
async def mark_message_read(
    conversation_id: str,
    message_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageDTO:
    message = await chat.mark_message_as_read(session, conversation_id, message_id, current.id)
    return MessageDTO.model_validate(message)


@app.post("/conversations/{conversation_id}/read", response_model=ConversationDTO)
async def mark_conversation_read(
    conversation_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ConversationDTO:
    conversation = await chat.mark_conversation_read(session, conversation_id, current.id)
    return ConversationDTO.model_validate(conversation)


@app.websocket("/ws/conversations/{conversation_id}")
async def conversation_updates(
    websocket: WebSocket,
    conversation_id: str,
    user_id: str = Query(...),
    session: AsyncSession = Depends(get_session),
):
    """Stream new messages of a conversation to a participant."""
    try:
        await chat.get_participant_conversation(session, conversation_id, user_id)
    except SkillSwapError as e:
        logger.info(f"Rejected live subscription of {user_id} to {conversation_id}: {e}")
        await websocket.close(code=4403, reason=e.error)
        return
    finally:
        # Release the pooled connection before the long-lived socket
        await session.close()

    await websocket.accept()
    subscription = await hub.subscribe(conversation_id, user_id)

    async def forward() -> None:
        while True:
            await websocket.send_json(await subscription.next_event())

    async def drain() -> None:
        # Client frames are ignored; receiving surfaces the disconnect
        while True:
            await websocket.receive_text()

    tasks = [asyncio.create_task(forward()), asyncio.create_task(drain())]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error(f"Live subscription {conversation_id}/{user_id} failed: {exc}")
    finally:
        for task in tasks:
            task.cancel()
        await hub.unsubscribe(subscription)


# ============ Ratings ============

@app.post("/ratings", response_model=RatingDTO, status_code=status.HTTP_201_CREATED)
async def create_rating(
    request: CreateRatingRequest,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RatingDTO:
    rating = await ratings.create_rating(
        session,
        current.id,
        request.session_id,
        request.rating,
        request.review,
        request.category,
    )
    return RatingDTO.model_validate(rating)


@app.get("/ratings/given", response_model=list[RatingDTO])
async def ratings_given(
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[RatingDTO]:
    given = await ratings.get_ratings_by_user(session, current.id)
    return [RatingDTO.model_validate(r) for r in given]


# ============ Notifications ============

@app.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = False,
    limit: int | None = Query(default=None, ge=1, le=500),
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NotificationListResponse:
    unread = await notifications.get_unread_notifications(session, current.id)
    found = unread if unread_only else await notifications.get_user_notifications(session, current.id, limit)
    return NotificationListResponse(
        notifications=[NotificationDTO.model_validate(n) for n in found],
        unread_count=len(unread),
    )


@app.post("/notifications/read-all", response_model=StatusResponse)
async def mark_all_notifications_read(
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> StatusResponse:
    count = await notifications.mark_all_as_read(session, current.id)
    return StatusResponse(status="success", count=count)


@app.post("/notifications/{notification_id}/read", response_model=NotificationDTO)
async def mark_notification_read(
    notification_id: str,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NotificationDTO:
    notification = await notifications.mark_as_read(session, notification_id, current.id)
    return NotificationDTO.model_validate(notification)


# ============ Reports & moderation ============

@app.post("/reports", response_model=ReportDTO, status_code=status.HTTP_201_CREATED)
async def create_report(
    request: CreateReportRequest,
    current: models.User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ReportDTO:
    report = await admin.create_report(
        session,
        current.id,
        request.reported_user_id,
        request.reason,
        request.description,
        request.evidence_urls,
    )
    return ReportDTO.model_validate(report)


@app.get("/admin/users", response_model=list[UserDTO])
async def admin_list_users(
    query: str | None = None,
    banned_only: bool = False,
    current: models.User = Depends(get_admin_user),
    session: AsyncSession = Depends(get_session),
) -> list[UserDTO]:
    found = await admin.list_users(session, current.id, query=query, banned_only=banned_only)
    return [UserDTO.model_validate(u) for u in found]


@app.post("/admin/users/{user_id}/ban", response_model=UserDTO)
async def admin_ban_user(
    user_id: str,
    request: BanUserRequest,
    current: models.User = Depends(get_admin_user),
    session: AsyncSession = Depends(get_session),
) -> UserDTO:
    user = await admin.ban_user(session, current.id, user_id, request.reason)
    return UserDTO.model_validate(user)


@app.post("/admin/users/{user_id}/unban", response_model=UserDTO)
async def admin_unban_user(
    user_id: str,
    current: models.User = Depends(get_admin_user),
    session: AsyncSession = Depends(get_session),
) -> UserDTO:
    user = await admin.unban_user(session, current.id, user_id)
    return UserDTO.model_validate(user)


@app.post("/admin/users/{user_id}/warnings", response_model=WarningDTO, status_code=status.HTTP_201_CREATED)
async def admin_issue_warning(
    user_id: str,
    request: WarningRequest,
    current: models.User = Depends(get_admin_user),
    session: AsyncSession = Depends(get_session),
) -> WarningDTO:
    warning = await admin.issue_warning(session, current.id, user_id, request.reason, request.expires_at)
    return WarningDTO.model_validate(warning)


@app.get("/admin/reports", response_model=list[ReportDTO])
async def admin_list_reports(
    report_status: models.ReportStatus | None = Query(default=None, alias="status"),
    current: models.User = Depends(get_admin_user),
    session: AsyncSession = Depends(get_session),
) -> list[ReportDTO]:
    found = await admin.list_reports(session, current.id, report_status)
    return [ReportDTO.model_validate(r) for r in found]


@app.post("/admin/reports/{report_id}/resolve", response_model=ReportDTO)
async def admin_resolve_report(
    report_id: str,
    request: ResolveReportRequest,
    current: models.User = Depends(get_admin_user),
    session: AsyncSession = Depends(get_session),
) -> ReportDTO:
    report = await admin.resolve_report(session, current.id, report_id, request.status, request.notes)
    return ReportDTO.model_validate(report)


@app.get("/admin/statistics", response_model=PlatformStatisticsDTO)
async def admin_statistics(
    current: models.User = Depends(get_admin_user),
    session: AsyncSession = Depends(get_session),
) -> PlatformStatisticsDTO:
    stats = await admin.get_platform_statistics(session, current.id)
    return PlatformStatisticsDTO.model_validate(stats)
