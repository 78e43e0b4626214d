"""
Upload orchestrator.

The uploader's state lives in one immutable UploaderState. It only
changes by applying a message with apply_message(), which is pure, so
the per-file state machine can be tested without any I/O:

    queued -> uploading -> success
                        -> error

success and error are terminal. UploadOrchestrator drives the messages
from real client calls: files are uploaded one at a time, then the queue
is cleared and the listing is re-fetched in full. Delete and rename
patch the local listing in place instead of re-fetching.
"""
import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from filemanager.client.api import FileManagerClient, FileManagerClientError, LocalFile, UploadedFile

logger = logging.getLogger(__name__)


class UploadStatus(str, enum.Enum):
    """Status of one pending upload."""
    QUEUED = "queued"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


ALLOWED_TRANSITIONS = {
    UploadStatus.QUEUED: {UploadStatus.UPLOADING},
    UploadStatus.UPLOADING: {UploadStatus.SUCCESS, UploadStatus.ERROR},
    UploadStatus.SUCCESS: set(),
    UploadStatus.ERROR: set(),
}


class InvalidTransition(Exception):
    """A message does not apply to the current state."""


@dataclass(frozen=True)
class PendingUpload:
    local_file: LocalFile
    name: str
    status: UploadStatus = UploadStatus.QUEUED
    error: Optional[str] = None


@dataclass(frozen=True)
class UploaderState:
    """
    Attributes:
        pending: Files selected but not yet cleared, in upload order
        uploaded: Last known bucket listing
        results: Final status per name from the most recent upload pass
    """
    pending: Tuple[PendingUpload, ...] = ()
    uploaded: Tuple[UploadedFile, ...] = ()
    results: Dict[str, UploadStatus] = field(default_factory=dict)


# Messages

@dataclass(frozen=True)
class FilesSelected:
    files: Tuple[LocalFile, ...]


@dataclass(frozen=True)
class PendingRenamed:
    index: int
    name: str


@dataclass(frozen=True)
class PendingRemoved:
    index: int


@dataclass(frozen=True)
class UploadStarted:
    index: int


@dataclass(frozen=True)
class UploadSucceeded:
    index: int


@dataclass(frozen=True)
class UploadFailed:
    index: int
    error: str = ""


@dataclass(frozen=True)
class QueueCleared:
    pass


@dataclass(frozen=True)
class ListingLoaded:
    files: Tuple[UploadedFile, ...]


@dataclass(frozen=True)
class FileDeleted:
    name: str


@dataclass(frozen=True)
class FileRenamed:
    old_name: str
    new_name: str


def _pending_at(state: UploaderState, index: int) -> PendingUpload:
    if not 0 <= index < len(state.pending):
        raise InvalidTransition(f"No pending upload at index {index}")
    return state.pending[index]


def _replace_pending(state: UploaderState, index: int, item: PendingUpload) -> UploaderState:
    pending = state.pending[:index] + (item,) + state.pending[index + 1:]
    return replace(state, pending=pending)


def _transition(state: UploaderState, index: int, target: UploadStatus, error: Optional[str] = None) -> UploaderState:
    item = _pending_at(state, index)
    if target not in ALLOWED_TRANSITIONS[item.status]:
        raise InvalidTransition(f"{item.name}: {item.status.value} -> {target.value}")
    return _replace_pending(state, index, replace(item, status=target, error=error))


def _renamed_url(url: str, old_name: str, new_name: str) -> str:
    if url.endswith(old_name):
        return url[:len(url) - len(old_name)] + new_name
    return url.replace(old_name, new_name, 1)


def apply_message(state: UploaderState, message) -> UploaderState:
    """Return the state that results from applying message to state."""
    if isinstance(message, FilesSelected):
        added = tuple(PendingUpload(local_file=f, name=f.filename) for f in message.files)
        return replace(state, pending=state.pending + added)

    if isinstance(message, PendingRenamed):
        item = _pending_at(state, message.index)
        if item.status != UploadStatus.QUEUED:
            raise InvalidTransition(f"Cannot rename {item.name} while {item.status.value}")
        return _replace_pending(state, message.index, replace(item, name=message.name))

    if isinstance(message, PendingRemoved):
        item = _pending_at(state, message.index)
        if item.status != UploadStatus.QUEUED:
            raise InvalidTransition(f"Cannot remove {item.name} while {item.status.value}")
        pending = state.pending[:message.index] + state.pending[message.index + 1:]
        return replace(state, pending=pending)

    if isinstance(message, UploadStarted):
        return _transition(state, message.index, UploadStatus.UPLOADING)

    if isinstance(message, UploadSucceeded):
        return _transition(state, message.index, UploadStatus.SUCCESS)

    if isinstance(message, UploadFailed):
        return _transition(state, message.index, UploadStatus.ERROR, message.error)

    if isinstance(message, QueueCleared):
        results = {item.name: item.status for item in state.pending}
        return replace(state, pending=(), results=results)

    if isinstance(message, ListingLoaded):
        return replace(state, uploaded=tuple(message.files))

    if isinstance(message, FileDeleted):
        uploaded = tuple(f for f in state.uploaded if f.name != message.name)
        return replace(state, uploaded=uploaded)

    if isinstance(message, FileRenamed):
        uploaded = tuple(
            replace(f, name=message.new_name, url=_renamed_url(f.url, message.old_name, message.new_name))
            if f.name == message.old_name else f
            for f in state.uploaded
        )
        return replace(state, uploaded=uploaded)

    raise TypeError(f"Unknown message: {message!r}")


class UploadOrchestrator:
    """
    Drives uploads, deletes and renames through a FileManagerClient.

    Args:
        client: API client
        state: Initial state (empty by default)
        on_change: Called with every new state, e.g. to re-render
    """

    def __init__(
        self,
        client: FileManagerClient,
        state: Optional[UploaderState] = None,
        on_change: Optional[Callable[[UploaderState], None]] = None
    ):
        self._client = client
        self._state = state or UploaderState()
        self._on_change = on_change

    @property
    def state(self) -> UploaderState:
        return self._state

    def dispatch(self, message) -> UploaderState:
        self._state = apply_message(self._state, message)
        if self._on_change is not None:
            self._on_change(self._state)
        return self._state

    def select_files(self, files: Iterable[LocalFile]) -> UploaderState:
        return self.dispatch(FilesSelected(tuple(files)))

    def rename_pending(self, index: int, name: str) -> UploaderState:
        return self.dispatch(PendingRenamed(index, name))

    def remove_pending(self, index: int) -> UploaderState:
        return self.dispatch(PendingRemoved(index))

    async def refresh(self) -> List[UploadedFile]:
        """Replace the local listing with a full re-fetch."""
        files = await self._client.fetch_uploaded_files()
        self.dispatch(ListingLoaded(tuple(files)))
        return files

    async def upload_all(self) -> Dict[str, UploadStatus]:
        """
        Upload every pending file, one after another.

        A failed file is marked error and the pass continues. Afterwards
        the queue is cleared and the listing re-fetched regardless of
        outcomes.

        Returns:
            Final status per pending name
        """
        for index in range(len(self._state.pending)):
            item = self._state.pending[index]
            if item.status != UploadStatus.QUEUED:
                continue

            self.dispatch(UploadStarted(index))
            try:
                await self._client.upload_file(item.local_file, item.name)
            except FileManagerClientError as e:
                logger.error(f"Error uploading file {item.name}: {e}")
                self.dispatch(UploadFailed(index, str(e)))
            else:
                self.dispatch(UploadSucceeded(index))

        self.dispatch(QueueCleared())
        await self.refresh()
        return dict(self._state.results)

    async def delete(self, name: str) -> None:
        """Delete name, then drop it from the local listing."""
        await self._client.delete_file(name)
        self.dispatch(FileDeleted(name))

    async def rename(self, old_name: str, new_name: str) -> None:
        """Rename old_name, then patch the local entry's name and URL."""
        await self._client.rename_file(old_name, new_name)
        self.dispatch(FileRenamed(old_name, new_name))
