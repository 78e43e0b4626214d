"""
Presigned URL generation service.

Handles the business logic for issuing presigned upload URLs.

Flow:
1. Client requests presign URL with fileName and fileType
2. Backend signs a PUT for that exact key and content type
3. Client uploads directly to R2 using presigned URL
4. Client re-lists the bucket to see the new object

Nothing is written to storage until step 3. An unused URL simply
expires.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from filemanager.errors import InvalidRequest, StorageError, UploadUrlGenerationFailed
from filemanager.storage.r2_client import R2Client
from filemanager.utils.metrics import upload_urls_issued_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresignedUpload:
    upload_url: str
    file_url: str
    expires_in: int


class PresignService:
    """
    Service for handling presigned upload operations.

    Responsibilities:
    - Validate upload requests
    - Create presigned URLs
    - Derive the public URL the object will have once uploaded
    """

    @staticmethod
    def validate_upload_request(file_name: Optional[str], file_type: Optional[str]) -> None:
        """
        Reject requests missing either field.

        Raises:
            InvalidRequest: fileName or fileType missing or empty
        """
        if not file_name or not file_type:
            raise InvalidRequest("Missing fileName or fileType")

    @staticmethod
    def create_presigned_upload(
        r2: R2Client,
        file_name: Optional[str],
        file_type: Optional[str],
        expiration: Optional[int] = None
    ) -> PresignedUpload:
        """
        Create a presigned upload URL for file_name.

        Args:
            r2: Storage gateway
            file_name: Object key to upload to
            file_type: MIME type that the PUT must carry
            expiration: URL lifetime in seconds (default from settings)

        Returns:
            PresignedUpload with the upload URL and the object's public URL

        Raises:
            InvalidRequest: missing field (no storage call is made)
            UploadUrlGenerationFailed: the gateway could not sign the URL
        """
        PresignService.validate_upload_request(file_name, file_type)

        if expiration is None:
            expiration = r2.presign_expiration

        try:
            upload_url = r2.generate_presigned_upload_url(file_name, file_type, expiration)
        except StorageError as e:
            logger.error(f"Failed to generate presigned URL for {file_name}: {e}")
            raise UploadUrlGenerationFailed() from e

        upload_urls_issued_total.inc()
        logger.info(
            f"Issued presigned upload: key={file_name}, type={file_type}, expires_in={expiration}s"
        )

        return PresignedUpload(
            upload_url=upload_url,
            file_url=r2.public_url(file_name),
            expires_in=expiration
        )
