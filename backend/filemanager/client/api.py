"""
Typed async wrappers around the file manager HTTP API.

Every wrapper raises FileManagerClientError on a non-2xx response or a
transport failure. There are no retries; timeouts are whatever the
underlying httpx client is configured with.
"""
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import httpx

logger = logging.getLogger(__name__)

FILES_PATH = "/api/files"
UPLOAD_PATH = "/api/upload"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class LocalFile:
    """Bytes selected for upload, with the name and type they came with."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "LocalFile":
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            data=path.read_bytes()
        )


@dataclass(frozen=True)
class UploadedFile:
    """One entry of the bucket listing as seen by the client."""
    name: str
    url: str
    size: Optional[int] = None
    last_modified: Optional[str] = None


class FileManagerClientError(Exception):
    """A file manager API call did not succeed."""

    def __init__(self, operation: str, status_code: Optional[int] = None, detail: str = ""):
        self.operation = operation
        self.status_code = status_code
        self.detail = detail
        message = f"Failed to {operation}"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class UploadUrlError(FileManagerClientError):
    """The API did not issue an upload URL."""


class UploadTransferError(FileManagerClientError):
    """Storage rejected the PUT to the presigned URL."""


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return response.text


MALFORMED_RESPONSE = "malformed response"


class FileManagerClient:
    """
    Client for the /api/files and /api/upload endpoints.

    Usage:
        async with FileManagerClient("http://localhost:8000") as client:
            files = await client.fetch_uploaded_files()
    """

    def __init__(
        self,
        base_url: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None
    ):
        self._owns_client = http_client is None
        if http_client is None:
            # None keeps the httpx default timeout rather than disabling it
            options = {} if timeout is None else {"timeout": timeout}
            http_client = httpx.AsyncClient(base_url=base_url, **options)
        self._http = http_client

    async def __aenter__(self) -> "FileManagerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        error_cls=FileManagerClientError,
        **kwargs
    ) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"{operation} failed: {e}")
            raise error_cls(operation, detail=str(e)) from e

        if not response.is_success:
            detail = _error_detail(response)
            logger.error(f"{operation} failed: HTTP {response.status_code} {detail}")
            raise error_cls(operation, response.status_code, detail)
        return response

    async def fetch_uploaded_files(self) -> List[UploadedFile]:
        """Fetch the full bucket listing."""
        operation = "fetch uploaded files"
        response = await self._request(operation, "GET", FILES_PATH)
        try:
            return [
                UploadedFile(
                    name=item["name"],
                    url=item["url"],
                    size=item.get("size"),
                    last_modified=item.get("lastModified"),
                )
                for item in response.json()["files"] or []
            ]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"{operation} failed: {MALFORMED_RESPONSE}: {e!r}")
            raise FileManagerClientError(operation, response.status_code, MALFORMED_RESPONSE) from e

    async def upload_file(self, local_file: LocalFile, name: str) -> None:
        """
        Upload local_file under name.

        Two calls: get a presigned URL, then PUT the bytes to it. Either
        failing fails the whole upload; an unused URL just expires.
        """
        response = await self._request(
            "get upload URL",
            "POST",
            UPLOAD_PATH,
            error_cls=UploadUrlError,
            json={"fileName": name, "fileType": local_file.content_type},
        )
        try:
            upload_url = response.json()["uploadUrl"]
        except (ValueError, KeyError, TypeError):
            upload_url = None
        if not isinstance(upload_url, str) or not upload_url:
            logger.error(f"get upload URL failed: {MALFORMED_RESPONSE}")
            raise UploadUrlError("get upload URL", response.status_code, MALFORMED_RESPONSE)

        await self._request(
            "upload file",
            "PUT",
            upload_url,
            error_cls=UploadTransferError,
            headers={"Content-Type": local_file.content_type},
            content=local_file.data,
        )
        logger.info(f"Uploaded {name} ({local_file.size} bytes)")

    async def delete_file(self, name: str) -> None:
        await self._request("delete file", "DELETE", FILES_PATH, json={"fileName": name})

    async def rename_file(self, old_name: str, new_name: str) -> None:
        await self._request(
            "rename file",
            "PATCH",
            FILES_PATH,
            json={"oldFileName": old_name, "newFileName": new_name},
        )
