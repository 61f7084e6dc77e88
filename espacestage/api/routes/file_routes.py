"""
File Routes

POST /files - Upload a document (any authenticated account)
GET /files/{file_id} - Download a stored document
"""

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from starlette.concurrency import run_in_threadpool

from espacestage.core.auth import get_current_user
from espacestage.core.errors import ValidationError
from espacestage.db.mongodb import FileStore, get_file_store
from espacestage.schemas.schemas import Envelope, UploadedFile
from espacestage.utils.file_upload import (
    COMPANY_FILE_FOLDERS, STUDENT_FILE_FOLDERS, content_disposition, file_url, read_upload
)

router = APIRouter(prefix="/files", tags=["Files"])

UPLOAD_FOLDERS = set(STUDENT_FILE_FOLDERS.values()) | set(COMPANY_FILE_FOLDERS.values())


@router.post("", response_model=Envelope[UploadedFile], status_code=201)
async def upload_file(
    request: Request,
    file: UploadFile = File(..., description="Image, PDF or Word document"),
    folder: str = Form(...),
    user: dict = Depends(get_current_user),
    store: FileStore = Depends(get_file_store),
):
    """
    Store a file and return the URL to put in a profile field.

    Folders: students/photos, students/cv, students/certificats, companies/logos
    """
    if folder not in UPLOAD_FOLDERS:
        raise ValidationError(f"Unknown folder '{folder}'. Allowed: {', '.join(sorted(UPLOAD_FOLDERS))}")

    max_bytes = request.app.state.settings.upload_max_size_mb * 1024 * 1024
    content, content_type, filename = await read_upload(file, max_bytes)
    file_id = await run_in_threadpool(store.save, content, filename, content_type, folder)
    return {"success": True, "message": "File uploaded", "data": {"file_id": file_id, "url": file_url(file_id)}}


@router.get("/{file_id}")
def download_file(file_id: str, store: FileStore = Depends(get_file_store)):
    stored = store.load(file_id)
    return Response(
        content=stored.data,
        media_type=stored.content_type,
        headers={"Content-Disposition": content_disposition("inline", stored.filename)},
    )
