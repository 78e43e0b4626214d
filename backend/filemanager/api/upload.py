"""
Upload endpoint for presigned URL generation.

Implements the direct-to-storage upload flow:
1. POST /upload - Get a presigned PUT URL for fileName
2. Client PUTs the bytes to uploadUrl with the same Content-Type

Why this approach?
- Backend never handles file bytes (no bandwidth/memory issues)
- Files go directly from the client to R2 storage
- Storage credentials never leave the server

Presigned URLs expire after 60 seconds (configurable). A URL that is
never used writes nothing.
"""
import asyncio
from fastapi import APIRouter, Depends

from filemanager.api.dependencies import get_storage
from filemanager.schemas.files import UploadRequest, UploadResponse
from filemanager.storage.presign import PresignService
from filemanager.storage.r2_client import R2Client

router = APIRouter()


@router.post("", response_model=UploadResponse)
async def create_upload_url(
    request: UploadRequest,
    r2: R2Client = Depends(get_storage)
):
    """
    Generate a presigned URL for direct file upload to R2.

    Returns the upload URL and the public URL the file will have.
    """
    upload = await asyncio.to_thread(
        PresignService.create_presigned_upload,
        r2,
        request.file_name,
        request.file_type
    )

    return UploadResponse(upload_url=upload.upload_url, file_url=upload.file_url)
