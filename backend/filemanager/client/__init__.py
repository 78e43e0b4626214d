"""
Client side of the file manager: typed API wrappers and the upload
orchestrator built on them.
"""
from filemanager.client.api import (
    FileManagerClient,
    FileManagerClientError,
    LocalFile,
    UploadedFile,
    UploadTransferError,
    UploadUrlError,
)
from filemanager.client.orchestrator import (
    InvalidTransition,
    PendingUpload,
    UploaderState,
    UploadOrchestrator,
    UploadStatus,
    apply_message,
)

__all__ = [
    "FileManagerClient",
    "FileManagerClientError",
    "LocalFile",
    "UploadedFile",
    "UploadTransferError",
    "UploadUrlError",
    "InvalidTransition",
    "PendingUpload",
    "UploaderState",
    "UploadOrchestrator",
    "UploadStatus",
    "apply_message",
]
