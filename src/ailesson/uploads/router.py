"""Upload endpoint: turns a file into lesson source material."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from ailesson.auth.dependencies import require_roles
from ailesson.config import get_settings
from ailesson.db.models import Account
from ailesson.economy.pricing import Role
from ailesson.uploads.service import extract_text, validate_upload

router = APIRouter(prefix="/api/v1/uploads", tags=["Uploads"])


class UploadResponse(BaseModel):
    success: bool = True
    text: str
    file_name: str
    file_type: str


@router.post("", response_model=UploadResponse)
async def upload(
    file: UploadFile = File(...),
    _account: Account = Depends(require_roles(Role.INSTRUCTOR, Role.ADMINISTRATOR)),
) -> UploadResponse:
    # One byte past the limit is enough to reject
    data = await file.read(get_settings().upload_max_bytes + 1)
    content_type = file.content_type or ""
    validate_upload(content_type, len(data))
    filename = file.filename or "upload"
    return UploadResponse(
        text=extract_text(filename, content_type, data),
        file_name=filename,
        file_type=content_type,
    )
