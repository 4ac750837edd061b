"""Subject catalogue: listing and administrator CRUD."""

from __future__ import annotations

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.database import unit_of_work
from ailesson.db.models import Lesson, Subject
from ailesson.errors import Conflict, NotFound, ValidationFailed

logger = structlog.get_logger()


async def list_subjects(db: AsyncSession) -> list[tuple[Subject, int]]:
    """All subjects by name, each with its lesson count."""
    lesson_count = (
        select(func.count(Lesson.id)).where(Lesson.subject_id == Subject.id).correlate(Subject).scalar_subquery()
    )
    result = await db.execute(select(Subject, lesson_count).order_by(Subject.name))
    return [(subject, count) for subject, count in result.all()]


async def get_subject(db: AsyncSession, subject_id: int) -> Subject:
    subject = await db.get(Subject, subject_id)
    if subject is None:
        msg = "Subject not found"
        raise NotFound(msg)
    return subject


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    stmt = select(Subject.id).where(func.lower(Subject.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Subject.id != exclude_id)
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        msg = "Subject with this name already exists"
        raise Conflict(msg)


async def create_subject(db: AsyncSession, name: str, description: str | None, icon: str | None) -> Subject:
    name = name.strip()
    if not name:
        msg = "Subject name is required"
        raise ValidationFailed(msg)
    await _ensure_name_free(db, name)

    async with unit_of_work(db):
        subject = Subject(name=name, description=description, icon=icon)
        db.add(subject)
    await db.refresh(subject)
    logger.info("subject_created", subject_id=subject.id, name=name)
    return subject


async def update_subject(
    db: AsyncSession,
    subject_id: int,
    name: str | None = None,
    description: str | None = None,
    icon: str | None = None,
) -> Subject:
    subject = await get_subject(db, subject_id)
    if name is not None:
        name = name.strip()
        if not name:
            msg = "Subject name is required"
            raise ValidationFailed(msg)
        await _ensure_name_free(db, name, exclude_id=subject_id)

    async with unit_of_work(db):
        if name is not None:
            subject.name = name
        if description is not None:
            subject.description = description
        if icon is not None:
            subject.icon = icon
    await db.refresh(subject)
    return subject


async def delete_subject(db: AsyncSession, subject_id: int) -> None:
    """Delete a subject; refused while any lesson still references it."""
    subject = await get_subject(db, subject_id)
    count = (
        await db.execute(select(func.count(Lesson.id)).where(Lesson.subject_id == subject_id))
    ).scalar_one()
    if count:
        msg = f"Cannot delete subject with {count} associated lesson(s)"
        raise ValidationFailed(msg, lesson_count=count)

    async with unit_of_work(db):
        await db.delete(subject)
    logger.info("subject_deleted", subject_id=subject_id)
