"""Subject endpoints: public list, administrator create/update/delete."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.auth.dependencies import require_admin
from ailesson.database import get_session
from ailesson.db.models import Account, Subject
from ailesson.subjects.schemas import SubjectCreate, SubjectListResponse, SubjectResponse, SubjectUpdate
from ailesson.subjects.service import create_subject, delete_subject, list_subjects, update_subject

router = APIRouter(prefix="/api/v1/subjects", tags=["Subjects"])


def _subject_response(subject: Subject, lesson_count: int = 0) -> SubjectResponse:
    return SubjectResponse(
        id=subject.id,
        name=subject.name,
        description=subject.description,
        icon=subject.icon,
        lesson_count=lesson_count,
        created_at=subject.created_at,
    )


@router.get("", response_model=SubjectListResponse)
async def subjects(db: AsyncSession = Depends(get_session)) -> SubjectListResponse:
    rows = await list_subjects(db)
    return SubjectListResponse(subjects=[_subject_response(s, n) for s, n in rows])


@router.post("", response_model=SubjectResponse, status_code=201)
async def create(
    body: SubjectCreate,
    _admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> SubjectResponse:
    subject = await create_subject(db, body.name, body.description, body.icon)
    return _subject_response(subject)


@router.patch("/{subject_id}", response_model=SubjectResponse)
async def update(
    subject_id: int,
    body: SubjectUpdate,
    _admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> SubjectResponse:
    subject = await update_subject(db, subject_id, body.name, body.description, body.icon)
    return _subject_response(subject)


@router.delete("/{subject_id}", status_code=204)
async def delete(
    subject_id: int,
    _admin: Account = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await delete_subject(db, subject_id)
    return Response(status_code=204)
