"""Administrator endpoints: accounts, coin grants, content moderation and experts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.admin.schemas import (
    AccountListResponse,
    AccountUpdate,
    AdminChatMessage,
    AdminChatMessageList,
    AdminExpertListResponse,
    AdminExpertResponse,
    AdminLessonListResponse,
    AdminLessonSummary,
    ConversationListResponse,
    ConversationSummary,
    ExpertAssignRequest,
    ExpertAssignResponse,
    ExpertCreate,
    ExpertOwner,
    ExpertUpdate,
    GrantRequest,
    GrantResponse,
    LessonFlagRequest,
    LessonFlagResponse,
)
from ailesson.admin.service import (
    assign_expert,
    count_expert_users,
    create_expert,
    delete_account,
    delete_chat_message,
    delete_expert,
    delete_lesson,
    list_account_messages,
    list_accounts,
    list_all_experts,
    list_all_lessons,
    list_conversations,
    set_lesson_flag,
    update_account,
    update_expert,
)
from ailesson.auth.dependencies import require_admin
from ailesson.auth.router import account_response
from ailesson.auth.schemas import AccountResponse
from ailesson.database import get_session
from ailesson.db.models import Account, Expert, Lesson
from ailesson.economy.ledger_service import admin_grant, get_account
from ailesson.economy.pricing import Role

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


@router.get("/users", response_model=AccountListResponse)
async def users(
    role: Role | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    _admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AccountListResponse:
    accounts, total = await list_accounts(db, role, page, per_page)
    return AccountListResponse(
        users=[account_response(a) for a in accounts],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.patch("/users/{user_id}", response_model=AccountResponse)
async def update_user(
    user_id: int,
    body: AccountUpdate,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AccountResponse:
    account = await update_account(db, admin, user_id, **body.model_dump(exclude_unset=True))
    return account_response(account)


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await delete_account(db, admin, user_id)
    return Response(status_code=204)


@router.post("/users/{user_id}/grant", response_model=GrantResponse)
async def grant(
    user_id: int,
    body: GrantRequest,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> GrantResponse:
    """Grant (positive) or withdraw (negative) wisdom coins."""
    account = await get_account(db, user_id)
    entry = await admin_grant(db, account, body.amount, body.description or f"Grant by administrator {admin.id}")
    return GrantResponse(amount=entry.amount, new_balance=account.wisdom_coins)


@router.patch("/lessons/{lesson_id}/flag", response_model=LessonFlagResponse)
async def flag_lesson(
    lesson_id: int,
    body: LessonFlagRequest,
    _admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> LessonFlagResponse:
    lesson = await set_lesson_flag(db, lesson_id, body.flagged)
    return LessonFlagResponse(id=lesson.id, is_flagged=lesson.is_flagged)


# ---------------------------------------------------------------------------
# Content moderation
# ---------------------------------------------------------------------------


def _admin_lesson(lesson: Lesson, creator: Account) -> AdminLessonSummary:
    quiz = lesson.quiz
    return AdminLessonSummary(
        id=lesson.id,
        title=lesson.title,
        difficulty=lesson.difficulty,
        subject_name=lesson.subject.name,
        creator_id=creator.id,
        creator_name=creator.name,
        creator_email=creator.email,
        quiz_id=quiz.id if quiz else None,
        question_count=len(quiz.questions) if quiz else 0,
        is_flagged=lesson.is_flagged,
        created_at=lesson.created_at,
    )


@router.get("/lessons", response_model=AdminLessonListResponse)
async def all_lessons(
    _admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminLessonListResponse:
    return AdminLessonListResponse(
        lessons=[_admin_lesson(lesson, creator) for lesson, creator in await list_all_lessons(db)]
    )


@router.delete("/lessons/{lesson_id}", status_code=204)
async def remove_lesson(
    lesson_id: int,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await delete_lesson(db, admin, lesson_id)
    return Response(status_code=204)


@router.get("/chats", response_model=ConversationListResponse)
async def conversations(
    _admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ConversationListResponse:
    return ConversationListResponse(
        conversations=[
            ConversationSummary(
                user_id=c.user_id,
                user_name=c.user_name,
                user_email=c.user_email,
                expert_name=c.expert_name,
                message_count=c.message_count,
                last_message_at=c.last_message_at,
            )
            for c in await list_conversations(db)
        ]
    )


@router.get("/chats/{user_id}", response_model=AdminChatMessageList)
async def conversation(
    user_id: int,
    _admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminChatMessageList:
    messages = await list_account_messages(db, user_id)
    return AdminChatMessageList(
        user_id=user_id,
        messages=[
            AdminChatMessage(
                id=m.id,
                expert_id=m.expert_id,
                content=m.content,
                is_from_user=m.is_from_user,
                created_at=m.created_at,
            )
            for m in messages
        ],
    )


@router.delete("/chats/messages/{message_id}", status_code=204)
async def remove_chat_message(
    message_id: int,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await delete_chat_message(db, admin, message_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Experts
# ---------------------------------------------------------------------------


def _admin_expert(expert: Expert, owner: Account, users_count: int) -> AdminExpertResponse:
    return AdminExpertResponse(
        id=expert.id,
        name=expert.name,
        personality=expert.personality,
        communication_style=expert.communication_style,
        appearance=expert.appearance,
        created_at=expert.created_at,
        owner=ExpertOwner(id=owner.id, name=owner.name, email=owner.email),
        users_count=users_count,
    )


@router.get("/experts", response_model=AdminExpertListResponse)
async def all_experts(
    _admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminExpertListResponse:
    return AdminExpertListResponse(
        experts=[_admin_expert(expert, owner, count) for expert, owner, count in await list_all_experts(db)]
    )


@router.post("/experts", response_model=AdminExpertResponse, status_code=201)
async def add_expert(
    body: ExpertCreate,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminExpertResponse:
    expert = await create_expert(db, admin, **body.model_dump())
    owner = await get_account(db, expert.owner_id)
    return _admin_expert(expert, owner, 0)


@router.patch("/experts/{expert_id}", response_model=AdminExpertResponse)
async def edit_expert(
    expert_id: int,
    body: ExpertUpdate,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminExpertResponse:
    expert = await update_expert(db, admin, expert_id, **body.model_dump(exclude_unset=True))
    owner = await get_account(db, expert.owner_id)
    return _admin_expert(expert, owner, await count_expert_users(db, expert.id))


@router.delete("/experts/{expert_id}", status_code=204)
async def remove_expert(
    expert_id: int,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await delete_expert(db, admin, expert_id)
    return Response(status_code=204)


@router.post("/experts/assign", response_model=ExpertAssignResponse)
async def assign(
    body: ExpertAssignRequest,
    admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ExpertAssignResponse:
    """Make an expert the selected tutor of any account."""
    account, expert = await assign_expert(db, admin, body.user_id, body.expert_id)
    return ExpertAssignResponse(user_id=account.id, expert_id=expert.id, expert_name=expert.name)
