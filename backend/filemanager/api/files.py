"""
File endpoints for listing, deleting and renaming bucket objects.

All three share the /files path and are told apart by HTTP verb:
- GET    /files - list every object with its public URL
- DELETE /files - delete one object by key
- PATCH  /files - rename one object (copy, then delete)

Boto3 is blocking, so storage calls run in a worker thread.
"""
import asyncio
import logging
from fastapi import APIRouter, Depends

from filemanager.api.dependencies import get_app_settings, get_storage
from filemanager.config import Settings
from filemanager.errors import InvalidRequest, ObjectNotFound, StorageError, UpstreamStorageFailure
from filemanager.schemas.files import (
    DeleteFileRequest,
    FileEntry,
    FileListResponse,
    MessageResponse,
    RenameFileRequest,
)
from filemanager.storage.r2_client import R2Client
from filemanager.storage.rename import RenameService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=FileListResponse)
async def list_files(r2: R2Client = Depends(get_storage)):
    """
    List all files in the bucket.
    An empty bucket returns an empty list.
    """
    try:
        objects = await asyncio.to_thread(r2.list_objects)
    except StorageError as e:
        logger.error(f"Error listing files: {e}")
        raise UpstreamStorageFailure("Failed to list files") from e

    return FileListResponse(files=[FileEntry.from_stored_object(obj) for obj in objects])


@router.delete("", response_model=MessageResponse)
async def delete_file(
    request: DeleteFileRequest,
    r2: R2Client = Depends(get_storage)
):
    """
    Delete a file from the bucket.

    Deleting a key that does not exist succeeds with the same response
    as deleting one that does.
    """
    if not request.file_name:
        raise InvalidRequest("Missing fileName parameter")

    logger.info(f"Deleting file: {request.file_name}")

    try:
        await asyncio.to_thread(r2.delete_object, request.file_name)
    except ObjectNotFound:
        logger.info(f"File {request.file_name} not found in storage (already deleted)")
    except StorageError as e:
        logger.error(f"Error deleting file {request.file_name}: {e}")
        raise UpstreamStorageFailure("Failed to delete file") from e

    return MessageResponse(message="File deleted successfully")


@router.patch("", response_model=MessageResponse)
async def rename_file(
    request: RenameFileRequest,
    r2: R2Client = Depends(get_storage),
    settings: Settings = Depends(get_app_settings)
):
    """
    Rename a file in the bucket.

    Not atomic: on RenameFailed the bucket may hold the object under
    the old key, the new key, or both. Re-list to find out.
    """
    await asyncio.to_thread(
        RenameService.rename,
        r2,
        request.old_file_name,
        request.new_file_name,
        settings.rename_delete_attempts
    )

    return MessageResponse(message="File renamed successfully")
