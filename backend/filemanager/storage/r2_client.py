"""
Cloudflare R2 / S3-compatible storage client.

Uses boto3 with S3-compatible API to interact with Cloudflare R2.
This is storage-provider agnostic - works with any S3-compatible storage.

Every operation is a single remote call. botocore's own retries are
disabled so that a transport failure surfaces immediately as StorageError.
"""
import logging
import time
from typing import Callable, List, Optional, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from filemanager.config import Settings
from filemanager.errors import ObjectConflict, ObjectNotFound, StorageError
from filemanager.models.stored_object import StoredObject
from filemanager.utils.logging import log_storage_failure, log_storage_operation
from filemanager.utils.metrics import (
    storage_operation_duration_seconds,
    storage_operations_total,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}
CONFLICT_CODES = {"InvalidRequest", "PreconditionFailed", "412"}

# S3 returns at most 1000 keys per list call
LIST_PAGE_SIZE = 1000


class R2Client:
    """
    S3-compatible client for Cloudflare R2.

    Lists, copies and deletes objects, and issues presigned PUT URLs
    for direct uploads. Built once at startup from an explicit Settings.
    """

    def __init__(self, settings: Settings, client=None):
        """
        Initialize R2 client with boto3.

        Args:
            settings: Application settings holding endpoint and credentials
            client: Optional pre-built boto3 S3 client

        Fails gracefully if not configured: every operation then raises
        StorageError instead of reaching the network.
        """
        self._settings = settings
        self._client = client

        if self._client is not None:
            return

        if not all([
            settings.r2_endpoint,
            settings.r2_access_key,
            settings.r2_secret_key
        ]):
            logger.warning(
                "R2 storage not configured. "
                "Set R2_ENDPOINT, R2_ACCESS_KEY, and R2_SECRET_KEY."
            )
            return

        # signature_version='s3v4' and path-style addressing for R2
        self._client = boto3.client(
            's3',
            endpoint_url=settings.r2_endpoint,
            aws_access_key_id=settings.r2_access_key,
            aws_secret_access_key=settings.r2_secret_key,
            region_name=settings.r2_region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'},
                retries={'total_max_attempts': 1}
            )
        )
        logger.info(f"R2 client initialized for bucket: {settings.r2_bucket}")

    @property
    def is_configured(self) -> bool:
        """Check if R2 client is properly configured."""
        return self._client is not None

    @property
    def client(self):
        """The underlying boto3 client (None when unconfigured)."""
        return self._client

    @property
    def bucket(self) -> str:
        """Get configured bucket name."""
        return self._settings.r2_bucket

    @property
    def presign_expiration(self) -> int:
        """Default lifetime of presigned upload URLs, in seconds."""
        return self._settings.r2_presign_expiration

    def public_url(self, object_key: str) -> str:
        """
        Build the browsable URL for an object.

        Uses R2_PUBLIC_URL when set, otherwise the endpoint-and-bucket
        path form.
        """
        if self._settings.r2_public_url:
            base = self._settings.r2_public_url.rstrip("/")
            return f"{base}/{object_key}"
        endpoint = (self._settings.r2_endpoint or "").rstrip("/")
        return f"{endpoint}/{self.bucket}/{object_key}"

    def _call(self, operation: str, key: Optional[str], fn: Callable[[], T]) -> T:
        """Run one storage call with metrics, logging and error translation."""
        if not self.is_configured:
            log_storage_failure(logger, operation, "R2 not configured", key=key)
            storage_operations_total.labels(operation=operation, status="error").inc()
            raise StorageError(operation, key or "", "storage not configured")

        start_time = time.time()
        try:
            result = fn()
        except (ClientError, BotoCoreError) as e:
            duration = time.time() - start_time
            storage_operation_duration_seconds.labels(operation=operation).observe(duration)
            error = _translate_error(operation, key, e)
            status = "not_found" if isinstance(error, ObjectNotFound) else "error"
            storage_operations_total.labels(operation=operation, status=status).inc()
            # Transport failures are unexpected; service error codes are not
            log_storage_failure(
                logger, operation, str(e), key=key, duration_ms=duration * 1000,
                include_traceback=isinstance(e, BotoCoreError)
            )
            raise error from e

        duration = time.time() - start_time
        storage_operation_duration_seconds.labels(operation=operation).observe(duration)
        storage_operations_total.labels(operation=operation, status="success").inc()
        log_storage_operation(logger, operation, key=key, duration_ms=duration * 1000)
        return result

    def list_objects(self) -> List[StoredObject]:
        """
        List every object in the bucket, following pagination.

        Returns:
            StoredObjects in storage order; empty list for an empty bucket
        """
        def fetch() -> List[StoredObject]:
            objects = []
            continuation_token = None
            while True:
                kwargs = {'Bucket': self.bucket, 'MaxKeys': LIST_PAGE_SIZE}
                if continuation_token:
                    kwargs['ContinuationToken'] = continuation_token

                response = self._client.list_objects_v2(**kwargs)
                for item in response.get('Contents', []):
                    objects.append(StoredObject(
                        key=item['Key'],
                        size=item.get('Size', 0),
                        last_modified=item.get('LastModified'),
                        public_url=self.public_url(item['Key']),
                    ))

                if not response.get('IsTruncated'):
                    return objects
                continuation_token = response.get('NextContinuationToken')

        return self._call("list", None, fetch)

    def generate_presigned_upload_url(
        self,
        object_key: str,
        content_type: str,
        expiration: Optional[int] = None
    ) -> str:
        """
        Generate a presigned PUT URL for direct upload.

        Args:
            object_key: The S3 object key (path in bucket)
            content_type: MIME type of the file
            expiration: URL expiration in seconds (default from settings)

        Returns:
            Presigned URL string

        Security:
            - URL expires after specified time
            - Only allows PUT (upload), not GET
            - Content-Type must match what was signed
        """
        if expiration is None:
            expiration = self.presign_expiration

        return self._call("presign", object_key, lambda: self._client.generate_presigned_url(
            ClientMethod='put_object',
            Params={
                'Bucket': self.bucket,
                'Key': object_key,
                'ContentType': content_type,
            },
            ExpiresIn=expiration
        ))

    def delete_object(self, object_key: str) -> None:
        """
        Delete an object from the bucket.

        Raises:
            ObjectNotFound: storage reported the key missing
            StorageError: any other failure
        """
        self._call("delete", object_key, lambda: self._client.delete_object(
            Bucket=self.bucket,
            Key=object_key
        ))

    def copy_object(self, source_key: str, dest_key: str) -> None:
        """
        Server-side copy of source_key to dest_key, overwriting dest_key.

        Raises:
            ObjectNotFound: source_key does not exist
            ObjectConflict: storage refused the copy
            StorageError: any other failure
        """
        self._call("copy", source_key, lambda: self._client.copy_object(
            Bucket=self.bucket,
            CopySource={'Bucket': self.bucket, 'Key': source_key},
            Key=dest_key
        ))

    def check_bucket(self) -> None:
        """Raise StorageError unless the bucket is reachable."""
        self._call("head_bucket", None, lambda: self._client.head_bucket(Bucket=self.bucket))


def _translate_error(operation: str, key: Optional[str], error: Exception) -> StorageError:
    if isinstance(error, ClientError):
        code = str(error.response.get('Error', {}).get('Code', ''))
        if code in NOT_FOUND_CODES:
            return ObjectNotFound(operation, key or "", f"not found ({code})")
        if operation == "copy" and code in CONFLICT_CODES:
            return ObjectConflict(operation, key or "", f"conflict ({code})")
    return StorageError(operation, key or "", str(error) or "storage operation failed")
