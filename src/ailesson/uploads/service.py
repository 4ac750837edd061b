"""Source-material extraction from uploaded files."""

from __future__ import annotations

from ailesson.config import get_settings
from ailesson.errors import ValidationFailed


def validate_upload(content_type: str | None, size: int) -> None:
    """Reject files over the size limit or of an unsupported type."""
    settings = get_settings()
    if size > settings.upload_max_bytes:
        msg = f"File too large. Maximum size: {settings.upload_max_bytes // (1024 * 1024)}MB"
        raise ValidationFailed(msg)
    if content_type not in settings.upload_allowed_types:
        msg = "Unsupported file type. Allowed: PDF, images (JPEG, PNG, GIF, WebP), text files"
        raise ValidationFailed(msg)


def extract_text(filename: str, content_type: str, data: bytes) -> str:
    """Text to seed lesson material with.

    Plain text is decoded; images and PDFs yield a placeholder asking the
    author to describe the file.
    """
    if content_type == "text/plain":
        return data.decode("utf-8", errors="replace")
    if content_type.startswith("image/"):
        return (
            f"[Image uploaded: {filename}]\n\n"
            "Please describe the image or add a text summary of the material."
        )
    if content_type == "application/pdf":
        return (
            f"[PDF document uploaded: {filename}]\n\n"
            "Please add a text summary of the PDF or the key topics for the lesson."
        )
    msg = "Unsupported file type"
    raise ValidationFailed(msg)
