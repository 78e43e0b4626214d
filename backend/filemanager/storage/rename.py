"""
Rename service.

S3-compatible storage has no rename primitive, so a rename is two calls:

1. copy old key -> new key
2. delete old key

The pair is not atomic. If step 1 fails nothing is deleted. If step 2
keeps failing after the bounded retry, the object is left under both
keys and the caller gets RenameFailed without knowing which step broke;
re-listing the bucket is the only way to see the real state.

Renames sharing a source key are serialized within the process, so a
second rename of the same key finds the source gone and fails at step 1
instead of leaving a second copy.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from filemanager.errors import InvalidRequest, ObjectNotFound, RenameFailed, StorageError
from filemanager.storage.r2_client import R2Client
from filemanager.utils.logging import log_rename_partial_failure
from filemanager.utils.metrics import rename_partial_failures_total

logger = logging.getLogger(__name__)


class _KeyLocks:
    """Per-key locks, dropped once no rename holds or waits on them."""

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[str, List] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]


# Renames of one source key run one at a time within this process
_source_locks = _KeyLocks()


class RenameService:
    """Copy-then-delete rename with a bounded retry of the delete step."""

    @staticmethod
    def validate_rename_request(old_key: Optional[str], new_key: Optional[str]) -> None:
        """
        Raises:
            InvalidRequest: a key is missing, or both keys are equal
        """
        if not old_key or not new_key:
            raise InvalidRequest("Missing oldFileName or newFileName parameter")
        # Copying onto itself and then deleting would destroy the object
        if old_key == new_key:
            raise InvalidRequest("oldFileName and newFileName must differ")

    @staticmethod
    def rename(
        r2: R2Client,
        old_key: Optional[str],
        new_key: Optional[str],
        delete_attempts: int = 1
    ) -> None:
        """
        Rename old_key to new_key.

        Args:
            r2: Storage gateway
            old_key: Existing object key
            new_key: Target key (overwritten if present)
            delete_attempts: Total tries for the delete step, at least 1

        Raises:
            InvalidRequest: missing or identical keys (no storage call is made)
            RenameFailed: copy failed, or delete failed on every attempt
        """
        RenameService.validate_rename_request(old_key, new_key)

        with _source_locks.hold(old_key):
            RenameService._copy_then_delete(r2, old_key, new_key, delete_attempts)

    @staticmethod
    def _copy_then_delete(r2: R2Client, old_key: str, new_key: str, delete_attempts: int) -> None:
        logger.info(f"Renaming file: {old_key} to {new_key}")

        try:
            r2.copy_object(old_key, new_key)
        except StorageError as e:
            logger.error(f"Rename copy failed: {old_key} -> {new_key}: {e}")
            raise RenameFailed() from e

        attempts = max(1, delete_attempts)
        last_error = None
        for attempt in range(1, attempts + 1):
            try:
                r2.delete_object(old_key)
                logger.info(f"Renamed file: {old_key} -> {new_key}")
                return
            except ObjectNotFound:
                # Old key already gone, e.g. removed by another process
                logger.info(f"Renamed file: {old_key} -> {new_key} (source already removed)")
                return
            except StorageError as e:
                last_error = e
                logger.warning(
                    f"Rename delete attempt {attempt}/{attempts} failed for {old_key}: {e}"
                )

        rename_partial_failures_total.inc()
        log_rename_partial_failure(logger, old_key, new_key, attempts, str(last_error))
        raise RenameFailed() from last_error
