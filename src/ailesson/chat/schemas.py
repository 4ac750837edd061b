"""Pydantic schemas for chat endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ChatMessageRequest(BaseModel):
    message: str = Field(min_length=1)
    expert_id: int


class ChatMessageOut(BaseModel):
    id: int
    content: str
    is_from_user: bool
    created_at: datetime


class ChatExchangeResponse(BaseModel):
    success: bool = True
    user_message: ChatMessageOut
    expert_message: ChatMessageOut
    coins_spent: int
    new_balance: int


class ChatHistoryResponse(BaseModel):
    expert_id: int
    messages: list[ChatMessageOut]
