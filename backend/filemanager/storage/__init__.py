"""
Storage module for S3-compatible object storage (Cloudflare R2).

This module handles the bucket operations behind the files API and
presigned URLs for direct uploads.
The backend NEVER receives file bytes - files go directly to R2.
"""
from filemanager.storage.r2_client import R2Client
from filemanager.storage.presign import PresignService, PresignedUpload
from filemanager.storage.rename import RenameService

__all__ = ["R2Client", "PresignService", "PresignedUpload", "RenameService"]
