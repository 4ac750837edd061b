"""Chat endpoints: paid messages to the selected tutor and history."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.ai.client import TextGenerationService, get_text_generator
from ailesson.auth.dependencies import get_current_user, require_roles
from ailesson.chat.schemas import ChatExchangeResponse, ChatHistoryResponse, ChatMessageOut, ChatMessageRequest
from ailesson.chat.service import list_history, send_message
from ailesson.database import get_session
from ailesson.db.models import Account, ChatMessage
from ailesson.economy.pricing import Role

router = APIRouter(prefix="/api/v1/chat", tags=["Chat"])


def _message_out(message: ChatMessage) -> ChatMessageOut:
    return ChatMessageOut(
        id=message.id,
        content=message.content,
        is_from_user=message.is_from_user,
        created_at=message.created_at,
    )


@router.post("/messages", response_model=ChatExchangeResponse)
async def post_message(
    body: ChatMessageRequest,
    account: Account = Depends(require_roles(Role.LEARNER)),
    db: AsyncSession = Depends(get_session),
    generator: TextGenerationService = Depends(get_text_generator),
) -> ChatExchangeResponse:
    """Send a message to the selected tutor (costs wisdom coins)."""
    exchange = await send_message(db, account, body.expert_id, body.message, generator)
    return ChatExchangeResponse(
        user_message=_message_out(exchange.user_message),
        expert_message=_message_out(exchange.expert_message),
        coins_spent=exchange.coins_spent,
        new_balance=exchange.balance,
    )


@router.get("/history", response_model=ChatHistoryResponse)
async def history(
    expert_id: int = Query(...),
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ChatHistoryResponse:
    messages = await list_history(db, account.id, expert_id)
    return ChatHistoryResponse(expert_id=expert_id, messages=[_message_out(m) for m in messages])
