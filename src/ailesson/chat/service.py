"""Tutor chat: each learner message is a priced action."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.ai.client import TextGenerationService
from ailesson.ai.parsing import TextGenerationError
from ailesson.config import get_settings
from ailesson.database import unit_of_work
from ailesson.db.models import Account, ChatMessage
from ailesson.economy.ledger_service import apply_priced_action, ensure_affordable
from ailesson.economy.pricing import ActionKind
from ailesson.errors import Forbidden, ValidationFailed
from ailesson.experts.service import get_expert

logger = structlog.get_logger()

MAX_MESSAGE_LENGTH = 4000
FALLBACK_REPLY = "Sorry, I'm having technical difficulties right now. Please try asking again later."


@dataclass
class ChatExchange:
    user_message: ChatMessage
    expert_message: ChatMessage
    coins_spent: int
    balance: int


async def recent_history(db: AsyncSession, account_id: int, expert_id: int, limit: int) -> list[dict[str, str]]:
    """The last ``limit`` messages with this expert as role/content pairs, oldest first."""
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.user_id == account_id, ChatMessage.expert_id == expert_id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
    )
    messages = reversed(result.scalars().all())
    return [{"role": "user" if m.is_from_user else "assistant", "content": m.content} for m in messages]


async def send_message(
    db: AsyncSession,
    account: Account,
    expert_id: int,
    message: str,
    generator: TextGenerationService,
) -> ChatExchange:
    """
    Charge for one message, store it and the tutor's reply.

    The reply is generated before anything is written; if every provider
    fails a fixed apology is stored instead. The charge and both messages
    commit together, so an unaffordable message stores nothing.

    Raises:
        ValidationFailed: Empty or oversized message.
        NotFound: Unknown expert.
        Forbidden: Expert is not the caller's selected tutor.
        InsufficientFunds: Balance below the message price.
    """
    message = (message or "").strip()
    if not message:
        msg = "Message is required"
        raise ValidationFailed(msg)
    if len(message) > MAX_MESSAGE_LENGTH:
        msg = f"Message must be at most {MAX_MESSAGE_LENGTH} characters"
        raise ValidationFailed(msg)

    expert = await get_expert(db, expert_id)
    if account.selected_expert_id != expert.id:
        msg = "This is not your selected expert"
        raise Forbidden(msg)
    ensure_affordable(account, ActionKind.CHAT_MESSAGE)

    history = await recent_history(db, account.id, expert.id, get_settings().chat_history_limit)
    try:
        reply = await generator.generate_chat_reply(
            message, expert.name, expert.personality, expert.communication_style, history
        )
    except TextGenerationError as e:
        logger.warning("chat_reply_fallback", user_id=account.id, expert_id=expert.id, error=str(e))
        reply = FALLBACK_REPLY

    now = datetime.now(timezone.utc)
    async with unit_of_work(db):
        entry = await apply_priced_action(
            db, account, ActionKind.CHAT_MESSAGE, description=f"Chat message to {expert.name}"
        )
        user_message = ChatMessage(
            user_id=account.id, expert_id=expert.id, content=message, is_from_user=True, created_at=now
        )
        # Reply sorts after the question even on coarse clocks
        expert_message = ChatMessage(
            user_id=account.id,
            expert_id=expert.id,
            content=reply,
            is_from_user=False,
            created_at=now + timedelta(microseconds=1),
        )
        db.add_all([user_message, expert_message])

    logger.info("chat_message_sent", user_id=account.id, expert_id=expert.id, balance=account.wisdom_coins)
    return ChatExchange(
        user_message=user_message,
        expert_message=expert_message,
        coins_spent=-entry.amount if entry else 0,
        balance=account.wisdom_coins,
    )


async def list_history(db: AsyncSession, account_id: int, expert_id: int) -> list[ChatMessage]:
    """Full conversation with one expert, oldest first."""
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.user_id == account_id, ChatMessage.expert_id == expert_id)
        .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
    )
    return list(result.scalars().all())
