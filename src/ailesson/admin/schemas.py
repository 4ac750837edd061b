"""Pydantic schemas for administrator endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from ailesson.ai.parsing import APPEARANCES
from ailesson.auth.schemas import AccountResponse
from ailesson.economy.pricing import Role


class AccountListResponse(BaseModel):
    users: list[AccountResponse]
    total: int
    page: int
    per_page: int


class AccountUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=128)
    email: EmailStr | None = None
    role: Role | None = None
    password: str | None = Field(None, min_length=1, max_length=128)
    wisdom_coins: int | None = Field(None, ge=0)


class GrantRequest(BaseModel):
    amount: int
    description: str = Field("", max_length=500)


class GrantResponse(BaseModel):
    success: bool = True
    amount: int
    new_balance: int


class LessonFlagRequest(BaseModel):
    flagged: bool = True


class LessonFlagResponse(BaseModel):
    id: int
    is_flagged: bool


class AdminLessonSummary(BaseModel):
    id: int
    title: str
    difficulty: str
    subject_name: str
    creator_id: int
    creator_name: str
    creator_email: str
    quiz_id: int | None = None
    question_count: int = 0
    is_flagged: bool
    created_at: datetime


class AdminLessonListResponse(BaseModel):
    lessons: list[AdminLessonSummary]


class ConversationSummary(BaseModel):
    user_id: int
    user_name: str
    user_email: str
    expert_name: str | None = None
    message_count: int
    last_message_at: datetime


class ConversationListResponse(BaseModel):
    conversations: list[ConversationSummary]


class AdminChatMessage(BaseModel):
    id: int
    expert_id: int
    content: str
    is_from_user: bool
    created_at: datetime


class AdminChatMessageList(BaseModel):
    user_id: int
    messages: list[AdminChatMessage]


class ExpertOwner(BaseModel):
    id: int
    name: str
    email: str


class AdminExpertResponse(BaseModel):
    id: int
    name: str
    personality: str
    communication_style: str
    appearance: str
    created_at: datetime
    owner: ExpertOwner
    users_count: int = 0


class AdminExpertListResponse(BaseModel):
    experts: list[AdminExpertResponse]


class ExpertCreate(BaseModel):
    owner_id: int
    name: str = Field(min_length=1, max_length=128)
    personality: str = Field(min_length=1)
    communication_style: str = Field(min_length=1)
    appearance: str = "avatar1"

    @field_validator("appearance")
    @classmethod
    def _known_appearance(cls, v: str) -> str:
        if v not in APPEARANCES:
            msg = f"appearance must be one of {', '.join(APPEARANCES)}"
            raise ValueError(msg)
        return v


class ExpertUpdate(BaseModel):
    owner_id: int | None = None
    name: str | None = Field(None, min_length=1, max_length=128)
    personality: str | None = Field(None, min_length=1)
    communication_style: str | None = Field(None, min_length=1)
    appearance: str | None = None

    @field_validator("appearance")
    @classmethod
    def _known_appearance(cls, v: str | None) -> str | None:
        if v is not None and v not in APPEARANCES:
            msg = f"appearance must be one of {', '.join(APPEARANCES)}"
            raise ValueError(msg)
        return v


class ExpertAssignRequest(BaseModel):
    user_id: int
    expert_id: int


class ExpertAssignResponse(BaseModel):
    success: bool = True
    user_id: int
    expert_id: int
    expert_name: str
