"""Expert (tutor persona) endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.ai.client import TextGenerationService, get_text_generator
from ailesson.auth.dependencies import get_current_user
from ailesson.database import get_session
from ailesson.db.models import Account, Expert
from ailesson.experts.schemas import (
    ExpertListResponse,
    ExpertResponse,
    ExpertSelectRequest,
    SelectedExpertResponse,
    SurveyRequest,
)
from ailesson.experts.service import generate_expert, get_selected_expert, list_experts, select_expert

router = APIRouter(prefix="/api/v1/experts", tags=["Experts"])


def expert_response(expert: Expert) -> ExpertResponse:
    return ExpertResponse(
        id=expert.id,
        name=expert.name,
        personality=expert.personality,
        communication_style=expert.communication_style,
        appearance=expert.appearance,
        created_at=expert.created_at,
    )


@router.post("/generate", response_model=ExpertResponse, status_code=201)
async def generate(
    body: SurveyRequest,
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    generator: TextGenerationService = Depends(get_text_generator),
) -> ExpertResponse:
    """Create a tutor from the survey; a default persona is used if generation fails."""
    expert = await generate_expert(db, account, body.model_dump(), generator)
    return expert_response(expert)


@router.get("", response_model=ExpertListResponse)
async def experts(
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ExpertListResponse:
    return ExpertListResponse(
        experts=[expert_response(e) for e in await list_experts(db, account.id)],
        selected_expert_id=account.selected_expert_id,
    )


@router.post("/select", response_model=ExpertResponse)
async def select(
    body: ExpertSelectRequest,
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ExpertResponse:
    return expert_response(await select_expert(db, account, body.expert_id))


@router.get("/selected", response_model=SelectedExpertResponse)
async def selected(
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SelectedExpertResponse:
    expert = await get_selected_expert(db, account)
    return SelectedExpertResponse(expert=expert_response(expert) if expert else None)
