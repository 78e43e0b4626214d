"""
Tests for the upload orchestrator state machine and driver.
"""
import asyncio
from typing import Dict, List, Set

import httpx
import pytest

from filemanager.client.api import FileManagerClient, FileManagerClientError, LocalFile, UploadedFile
from filemanager.client.orchestrator import (
    FileDeleted,
    FileRenamed,
    FilesSelected,
    InvalidTransition,
    ListingLoaded,
    PendingRemoved,
    PendingRenamed,
    QueueCleared,
    UploadFailed,
    UploadOrchestrator,
    UploadStarted,
    UploadStatus,
    UploadSucceeded,
    UploaderState,
    apply_message,
)


def local(name: str, content: bytes = b"data") -> LocalFile:
    return LocalFile(filename=name, content_type="text/plain", data=content)


class FakeClient:
    """Records calls; uploads of names in failing raise."""

    def __init__(self, failing: Set[str] = frozenset()):
        self.failing = set(failing)
        self.files: Dict[str, UploadedFile] = {}
        self.events: List[str] = []
        self.fetches = 0

    async def fetch_uploaded_files(self) -> List[UploadedFile]:
        self.fetches += 1
        return list(self.files.values())

    async def upload_file(self, local_file: LocalFile, name: str) -> None:
        self.events.append(f"start:{name}")
        await asyncio.sleep(0)
        if name in self.failing:
            self.events.append(f"fail:{name}")
            raise FileManagerClientError("upload file", 500, "boom")
        self.files[name] = UploadedFile(name=name, url=f"https://files.example.com/{name}", size=local_file.size)
        self.events.append(f"done:{name}")

    async def delete_file(self, name: str) -> None:
        if name in self.failing:
            raise FileManagerClientError("delete file", 500, "boom")
        self.files.pop(name, None)

    async def rename_file(self, old_name: str, new_name: str) -> None:
        if old_name in self.failing:
            raise FileManagerClientError("rename file", 500, "boom")
        self.files[new_name] = self.files.pop(old_name)


class TestApplyMessage:
    """Tests for the pure state transitions."""

    def test_files_selected_are_queued(self):
        state = apply_message(UploaderState(), FilesSelected((local("a.txt"), local("b.txt"))))

        assert [p.name for p in state.pending] == ["a.txt", "b.txt"]
        assert all(p.status == UploadStatus.QUEUED for p in state.pending)

    def test_selection_appends(self):
        state = apply_message(UploaderState(), FilesSelected((local("a.txt"),)))
        state = apply_message(state, FilesSelected((local("b.txt"),)))

        assert [p.name for p in state.pending] == ["a.txt", "b.txt"]

    def test_full_lifecycle(self):
        state = apply_message(UploaderState(), FilesSelected((local("a.txt"),)))
        state = apply_message(state, UploadStarted(0))
        assert state.pending[0].status == UploadStatus.UPLOADING
        state = apply_message(state, UploadSucceeded(0))
        assert state.pending[0].status == UploadStatus.SUCCESS

    def test_failure_records_error(self):
        state = apply_message(UploaderState(), FilesSelected((local("a.txt"),)))
        state = apply_message(state, UploadStarted(0))
        state = apply_message(state, UploadFailed(0, "boom"))

        assert state.pending[0].status == UploadStatus.ERROR
        assert state.pending[0].error == "boom"

    @pytest.mark.parametrize("steps", [
        [UploadSucceeded(0)],
        [UploadFailed(0)],
        [UploadStarted(0), UploadStarted(0)],
        [UploadStarted(0), UploadSucceeded(0), UploadFailed(0)],
        [UploadStarted(0), UploadFailed(0), UploadStarted(0)],
    ])
    def test_illegal_transitions(self, steps):
        state = apply_message(UploaderState(), FilesSelected((local("a.txt"),)))
        with pytest.raises(InvalidTransition):
            for step in steps:
                state = apply_message(state, step)

    def test_unknown_index(self):
        with pytest.raises(InvalidTransition):
            apply_message(UploaderState(), UploadStarted(0))

    def test_pending_rename_and_remove(self):
        state = apply_message(UploaderState(), FilesSelected((local("a.txt"), local("b.txt"))))
        state = apply_message(state, PendingRenamed(0, "renamed.txt"))
        state = apply_message(state, PendingRemoved(1))

        assert [p.name for p in state.pending] == ["renamed.txt"]
        assert state.pending[0].local_file.filename == "a.txt"

    def test_cannot_edit_pending_once_uploading(self):
        state = apply_message(UploaderState(), FilesSelected((local("a.txt"),)))
        state = apply_message(state, UploadStarted(0))

        with pytest.raises(InvalidTransition):
            apply_message(state, PendingRenamed(0, "x.txt"))
        with pytest.raises(InvalidTransition):
            apply_message(state, PendingRemoved(0))

    def test_queue_cleared_keeps_results(self):
        state = apply_message(UploaderState(), FilesSelected((local("a.txt"),)))
        state = apply_message(state, UploadStarted(0))
        state = apply_message(state, UploadSucceeded(0))
        state = apply_message(state, QueueCleared())

        assert state.pending == ()
        assert state.results == {"a.txt": UploadStatus.SUCCESS}

    def test_file_renamed_patches_name_and_url(self):
        listing = (
            UploadedFile(name="a.txt", url="https://files.example.com/a.txt", size=2),
            UploadedFile(name="c.txt", url="https://files.example.com/c.txt", size=3),
        )
        state = apply_message(UploaderState(), ListingLoaded(listing))
        state = apply_message(state, FileRenamed("a.txt", "b.txt"))

        assert state.uploaded[0].name == "b.txt"
        assert state.uploaded[0].url == "https://files.example.com/b.txt"
        assert state.uploaded[0].size == 2
        assert state.uploaded[1] == listing[1]

    def test_file_deleted(self):
        listing = (UploadedFile(name="a.txt", url="u"), UploadedFile(name="b.txt", url="v"))
        state = apply_message(UploaderState(), ListingLoaded(listing))
        state = apply_message(state, FileDeleted("a.txt"))

        assert [f.name for f in state.uploaded] == ["b.txt"]

    def test_original_state_untouched(self):
        original = UploaderState()
        apply_message(original, FilesSelected((local("a.txt"),)))

        assert original.pending == ()

    def test_unknown_message(self):
        with pytest.raises(TypeError):
            apply_message(UploaderState(), object())


class TestUploadOrchestrator:
    """Tests for UploadOrchestrator."""

    @pytest.mark.asyncio
    async def test_uploads_sequentially(self):
        client = FakeClient()
        orchestrator = UploadOrchestrator(client)
        orchestrator.select_files([local("a.txt"), local("b.txt"), local("c.txt")])

        await orchestrator.upload_all()

        assert client.events == [
            "start:a.txt", "done:a.txt",
            "start:b.txt", "done:b.txt",
            "start:c.txt", "done:c.txt",
        ]

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_queue(self):
        client = FakeClient(failing={"b.txt"})
        orchestrator = UploadOrchestrator(client)
        orchestrator.select_files([local("a.txt"), local("b.txt"), local("c.txt")])

        results = await orchestrator.upload_all()

        assert results == {
            "a.txt": UploadStatus.SUCCESS,
            "b.txt": UploadStatus.ERROR,
            "c.txt": UploadStatus.SUCCESS,
        }
        assert client.events[-2:] == ["start:c.txt", "done:c.txt"]

    @pytest.mark.asyncio
    async def test_queue_cleared_and_listing_refetched(self):
        client = FakeClient()
        orchestrator = UploadOrchestrator(client)
        orchestrator.select_files([local("a.txt", b"hi")])

        await orchestrator.upload_all()

        assert orchestrator.state.pending == ()
        assert client.fetches == 1
        assert [(f.name, f.size) for f in orchestrator.state.uploaded] == [("a.txt", 2)]

    @pytest.mark.asyncio
    async def test_malformed_upload_response_marks_error_and_continues(self):
        fetches = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/upload":
                return httpx.Response(200, text="<html>proxy</html>")
            fetches.append(request.url.path)
            return httpx.Response(200, json={"files": []})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api") as http:
            orchestrator = UploadOrchestrator(FileManagerClient("http://api", http_client=http))
            orchestrator.select_files([local("a.txt"), local("b.txt")])

            results = await orchestrator.upload_all()

        assert results == {"a.txt": UploadStatus.ERROR, "b.txt": UploadStatus.ERROR}
        assert orchestrator.state.pending == ()
        assert fetches == ["/api/files"]

    @pytest.mark.asyncio
    async def test_refetch_after_all_failures(self):
        client = FakeClient(failing={"a.txt"})
        orchestrator = UploadOrchestrator(client)
        orchestrator.select_files([local("a.txt")])

        await orchestrator.upload_all()

        assert orchestrator.state.pending == ()
        assert client.fetches == 1

    @pytest.mark.asyncio
    async def test_uses_pending_name(self):
        client = FakeClient()
        orchestrator = UploadOrchestrator(client)
        orchestrator.select_files([local("local.txt")])
        orchestrator.rename_pending(0, "remote.txt")

        await orchestrator.upload_all()

        assert list(client.files) == ["remote.txt"]

    @pytest.mark.asyncio
    async def test_on_change_sees_each_status(self):
        seen = []
        orchestrator = UploadOrchestrator(
            FakeClient(),
            on_change=lambda state: seen.extend(p.status for p in state.pending)
        )
        orchestrator.select_files([local("a.txt")])

        await orchestrator.upload_all()

        assert seen == [UploadStatus.QUEUED, UploadStatus.UPLOADING, UploadStatus.SUCCESS]

    @pytest.mark.asyncio
    async def test_rename_patches_without_refetch(self):
        client = FakeClient()
        client.files["a.txt"] = UploadedFile(name="a.txt", url="https://files.example.com/a.txt")
        orchestrator = UploadOrchestrator(client)
        await orchestrator.refresh()

        await orchestrator.rename("a.txt", "b.txt")

        assert client.fetches == 1
        assert [(f.name, f.url) for f in orchestrator.state.uploaded] == [
            ("b.txt", "https://files.example.com/b.txt")
        ]

    @pytest.mark.asyncio
    async def test_delete_patches_without_refetch(self):
        client = FakeClient()
        client.files["a.txt"] = UploadedFile(name="a.txt", url="u")
        orchestrator = UploadOrchestrator(client)
        await orchestrator.refresh()

        await orchestrator.delete("a.txt")

        assert client.fetches == 1
        assert orchestrator.state.uploaded == ()

    @pytest.mark.asyncio
    async def test_failed_rename_leaves_state(self):
        client = FakeClient(failing={"a.txt"})
        client.files["a.txt"] = UploadedFile(name="a.txt", url="u")
        orchestrator = UploadOrchestrator(client)
        await orchestrator.refresh()
        before = orchestrator.state

        with pytest.raises(FileManagerClientError):
            await orchestrator.rename("a.txt", "b.txt")
        with pytest.raises(FileManagerClientError):
            await orchestrator.delete("a.txt")

        assert orchestrator.state == before
