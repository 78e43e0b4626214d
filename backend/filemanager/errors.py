"""
Error taxonomy.

Storage-level exceptions are raised by the gateway and never reach HTTP
clients directly; endpoints translate them into FileManagerError
subclasses, which the exception handlers render as {"error": message}.
"""
from typing import Optional

from fastapi import status


class StorageError(Exception):
    """A storage operation failed."""

    def __init__(self, operation: str, key: str = "", detail: str = "storage operation failed"):
        self.operation = operation
        self.key = key
        self.detail = detail
        super().__init__(f"{operation} {key}: {detail}" if key else f"{operation}: {detail}")


class ObjectNotFound(StorageError):
    """The addressed key does not exist in the bucket."""


class ObjectConflict(StorageError):
    """Storage rejected the write (e.g. copy onto itself)."""


class FileManagerError(Exception):
    """Base class for errors surfaced by the API."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidRequest(FileManagerError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class UpstreamStorageFailure(FileManagerError):
    message = "Storage operation failed"


class UploadUrlGenerationFailed(UpstreamStorageFailure):
    message = "Failed to generate upload URL"


class RenameFailed(UpstreamStorageFailure):
    message = "Failed to rename file"
