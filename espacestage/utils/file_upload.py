"""
File Upload Utility - validate uploaded documents and hand them to the file store.

Uploads arrive either as multipart files or as data: URLs embedded in a
profile payload (photo, CV, certificate, logo).

Supported formats:
- Images (.jpg, .png, .webp, .gif)
- PDF (.pdf)
- Word (.doc, .docx)
"""

import base64
import binascii
import logging
from typing import Dict, Tuple
from urllib.parse import quote

from fastapi import UploadFile

from espacestage.core.errors import ValidationError
from espacestage.db.mongodb import FileStore

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}
ALLOWED_EXTENSIONS = set(CONTENT_TYPES.values()) | {".jpeg"}

# Profile field -> storage folder
STUDENT_FILE_FOLDERS = {
    "photo_url": "students/photos",
    "cv_url": "students/cv",
    "certificate_url": "students/certificats",
}
COMPANY_FILE_FOLDERS = {
    "logo_url": "companies/logos",
}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def is_data_url(value) -> bool:
    return isinstance(value, str) and value.startswith("data:")


def file_url(file_id: str) -> str:
    return f"/api/files/{file_id}"


def content_disposition(disposition: str, filename: str) -> str:
    """
    Content-Disposition value for a user-supplied filename.

    Headers are latin-1, so the plain `filename` is an ASCII fallback and
    the real name travels percent-encoded in `filename*` (RFC 6266).
    """
    fallback = "".join(
        char if char.isascii() and char.isprintable() and char not in '"\\' else "_"
        for char in filename
    )
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def parse_data_url(value: str) -> Tuple[bytes, str]:
    """
    Decode a base64 data: URL.

    Returns:
        Tuple of (content, content_type)
    """
    try:
        header, payload = value[len("data:"):].split(",", 1)
    except ValueError:
        raise ValidationError("Malformed data URL")

    parts = header.split(";")
    content_type = parts[0].strip().lower() or "application/octet-stream"
    if "base64" not in parts[1:]:
        raise ValidationError("Only base64-encoded data URLs are supported")

    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid base64 content in data URL")
    return content, content_type


def validate_upload(content: bytes, content_type: str, max_bytes: int) -> None:
    if content_type not in CONTENT_TYPES:
        raise ValidationError(f"Unsupported file type '{content_type}'. Allowed: images, PDF, Word")
    if not content:
        raise ValidationError("File is empty")
    if len(content) > max_bytes:
        raise ValidationError(f"File too large. Maximum size: {max_bytes // (1024 * 1024)}MB")


async def read_upload(file: UploadFile, max_bytes: int) -> Tuple[bytes, str, str]:
    """
    Read and validate a multipart upload.

    Returns:
        Tuple of (content, content_type, filename)
    """
    if not file.filename:
        raise ValidationError("No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"Unsupported file type '{ext}'. Allowed: images, PDF, Word")

    content = await file.read()
    content_type = (file.content_type or "").lower()
    validate_upload(content, content_type, max_bytes)
    return content, content_type, file.filename


def resolve_file_fields(values: Dict[str, object], folders: Dict[str, str],
                        store: FileStore, max_bytes: int) -> Dict[str, object]:
    """
    Replace data: URLs in `values` with stored-file URLs.

    Invalid content raises ValidationError. A storage failure is logged and
    the field is left out, so the rest of the profile still saves.
    """
    resolved = dict(values)
    for field, folder in folders.items():
        value = resolved.get(field)
        if not is_data_url(value):
            continue

        content, content_type = parse_data_url(value)
        validate_upload(content, content_type, max_bytes)
        try:
            file_id = store.save(content, f"{field[:-4]}{CONTENT_TYPES[content_type]}", content_type, folder)
        except Exception as e:
            logger.warning("Upload of %s to %s failed, field skipped: %s", field, folder, e)
            resolved.pop(field)
            continue
        resolved[field] = file_url(file_id)
    return resolved
