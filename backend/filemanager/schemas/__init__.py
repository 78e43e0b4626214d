"""
Pydantic schemas for API request/response validation.
"""
from filemanager.schemas.files import (
    UploadRequest,
    UploadResponse,
    FileEntry,
    FileListResponse,
    DeleteFileRequest,
    RenameFileRequest,
    MessageResponse,
    ErrorResponse,
)

__all__ = [
    "UploadRequest",
    "UploadResponse",
    "FileEntry",
    "FileListResponse",
    "DeleteFileRequest",
    "RenameFileRequest",
    "MessageResponse",
    "ErrorResponse",
]
