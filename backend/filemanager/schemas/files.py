"""
Pydantic schemas for the files and upload endpoints.

Field names are snake_case in Python and camelCase on the wire.
Required request fields are declared Optional so that a missing field
reaches the handler and is reported as InvalidRequest (400).
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from filemanager.models.stored_object import StoredObject


class UploadRequest(BaseModel):
    """Request schema for presigned upload URL generation."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"fileName": "report.pdf", "fileType": "application/pdf"}}
    )

    file_name: Optional[str] = Field(None, alias="fileName", description="Object key to upload to")
    file_type: Optional[str] = Field(None, alias="fileType", description="MIME type of the file")


class UploadResponse(BaseModel):
    """Response schema for presigned upload URL."""
    model_config = ConfigDict(populate_by_name=True)

    upload_url: str = Field(..., alias="uploadUrl", description="Presigned PUT URL for direct upload")
    file_url: str = Field(..., alias="fileUrl", description="URL of the object once uploaded")


class FileEntry(BaseModel):
    """One object in the bucket listing."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    url: str
    size: int
    last_modified: Optional[datetime] = Field(None, alias="lastModified")

    @classmethod
    def from_stored_object(cls, obj: StoredObject) -> "FileEntry":
        return cls(
            name=obj.key,
            url=obj.public_url,
            size=obj.size,
            last_modified=obj.last_modified
        )


class FileListResponse(BaseModel):
    files: List[FileEntry]


class DeleteFileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: Optional[str] = Field(None, alias="fileName")


class RenameFileRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"oldFileName": "a.txt", "newFileName": "b.txt"}}
    )

    old_file_name: Optional[str] = Field(None, alias="oldFileName")
    new_file_name: Optional[str] = Field(None, alias="newFileName")


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
