"""
StoredObject model for bucket entries.

The key is the object's only identity. There is no local record of an
object: everything here is read back from the bucket listing.

Lifecycle:
1. Client PUTs bytes to a presigned URL -> object exists under its key
2. Rename copies to a new key, then deletes the old one
3. Delete removes the key
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class StoredObject:
    """
    A single object in the bucket.

    Attributes:
        key: Object key (unique within the bucket)
        size: Size in bytes
        last_modified: Timestamp reported by storage
        public_url: Browsable link derived from the public base URL
    """
    key: str
    size: int
    last_modified: Optional[datetime]
    public_url: str
