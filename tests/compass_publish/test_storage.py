"""Tests for the content uploader."""

import random

import httpx
import pytest

from compass_publish.primitives.errors import TransferError
from compass_publish.primitives.http_client import HttpClientPrimitive
from compass_publish.storage import (
    ContentUploader,
    FileSet,
    ProgressTracker,
    Web3StorageClient,
    get_files_from_path,
)

ENDPOINT = "https://api.web3.storage"


def storage_client(handler) -> Web3StorageClient:
    http = HttpClientPrimitive(transport=httpx.MockTransport(handler))
    return Web3StorageClient(http, token="secret-token", endpoint=ENDPOINT)


class TestProgressTracker:
    """Percentages derived from uploaded / total."""

    def test_reports_uploaded_over_total(self):
        emitted = []
        tracker = ProgressTracker(200, on_progress=emitted.append)
        tracker.advance(50)
        tracker.advance(150)
        assert emitted == [25.0, 100.0]

    def test_rounds_to_two_decimals(self):
        emitted = []
        tracker = ProgressTracker(3, on_progress=emitted.append)
        tracker.advance(1)
        assert emitted == [33.33]

    def test_clamps_overshoot(self):
        emitted = []
        tracker = ProgressTracker(10, on_progress=emitted.append)
        tracker.advance(25)
        assert emitted == [100.0]

    def test_zero_total_is_complete(self):
        emitted = []
        tracker = ProgressTracker(0, on_progress=emitted.append)
        tracker.advance(0)
        assert emitted == [100.0]
        assert tracker.complete

    def test_reports_after_completion_ignored(self):
        emitted = []
        tracker = ProgressTracker(10, on_progress=emitted.append)
        tracker.advance(10)
        tracker.advance(0)
        tracker.advance(5)
        assert emitted == [100.0]

    @pytest.mark.parametrize("seed", range(20))
    def test_monotonic_and_single_completion(self, seed):
        """Any split of S into chunks ends at 100 exactly once."""
        rng = random.Random(seed)
        total = rng.randint(1, 10_000)
        chunks = []
        remaining = total
        while remaining:
            size = rng.randint(1, remaining)
            chunks.append(size)
            remaining -= size

        emitted = []
        tracker = ProgressTracker(total, on_progress=emitted.append)
        for size in chunks:
            tracker.advance(size)

        assert emitted == sorted(emitted)
        assert emitted.count(100.0) == 1
        assert emitted[-1] == 100.0


class TestGetFilesFromPath:
    """Building a FileSet from disk."""

    def test_directory_is_walked_sorted(self, tmp_path):
        (tmp_path / "b.md").write_text("bb")
        (tmp_path / "chapters").mkdir()
        (tmp_path / "chapters" / "a.md").write_text("a")
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "HEAD").write_text("ref")

        files = get_files_from_path(tmp_path)

        assert [f.name for f in files.files] == ["b.md", "chapters/a.md"]
        assert files.total_size == 3
        assert files.name == tmp_path.name

    def test_single_file(self, tmp_path):
        path = tmp_path / "book.pdf"
        path.write_bytes(b"%PDF")
        files = get_files_from_path(path)
        assert len(files) == 1
        assert files.files[0].size == 4

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(TransferError, match="not found"):
            get_files_from_path(tmp_path / "missing")

    def test_total_size(self, file_set):
        assert file_set.total_size == len("# Book\n") + len("* [Intro](README.md)\n")


class TestWeb3StorageClient:
    """HTTP mapping of put/status."""

    @pytest.mark.asyncio
    async def test_put_streams_multipart_and_returns_cid(self, file_set):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["type"] = request.headers["Content-Type"]
            seen["name"] = request.headers.get("X-Name")
            seen["body"] = request.content
            seen["length"] = int(request.headers["Content-Length"])
            return httpx.Response(200, json={"cid": "bafyROOT"})

        chunks = []
        ready = []
        client = storage_client(handler)
        cid = await client.put(file_set, on_root_cid_ready=ready.append, on_chunk_stored=chunks.append)

        assert cid == "bafyROOT"
        assert ready == ["bafyROOT"]
        assert seen["url"] == f"{ENDPOINT}/upload"
        assert seen["auth"] == "Bearer secret-token"
        assert seen["type"].startswith("multipart/form-data; boundary=")
        assert seen["name"] == "book"
        assert b'filename="README.md"' in seen["body"]
        assert b"# Book\n" in seen["body"]
        assert seen["length"] == len(seen["body"])
        assert sum(chunks) == file_set.total_size

    @pytest.mark.asyncio
    async def test_put_rejected_raises_transfer_error(self, file_set):
        client = storage_client(lambda request: httpx.Response(401, json={"message": "bad token"}))

        with pytest.raises(TransferError) as exc_info:
            await client.put(file_set)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_put_unreachable_raises_transfer_error(self, file_set):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = storage_client(handler)

        with pytest.raises(TransferError) as exc_info:
            await client.put(file_set)

        assert exc_info.value.status_code == 0

    @pytest.mark.asyncio
    async def test_put_file_read_failure_raises_transfer_error(self, file_set):
        """A file vanishing mid-upload ends as TransferError, not OSError."""
        file_set.files[1].path.unlink()
        client = storage_client(lambda request: httpx.Response(200, json={"cid": "bafyROOT"}))

        with pytest.raises(TransferError, match="SUMMARY.md") as exc_info:
            await client.put(file_set)

        assert isinstance(exc_info.value.cause, OSError)

    @pytest.mark.asyncio
    async def test_put_without_cid_raises(self, file_set):
        client = storage_client(lambda request: httpx.Response(200, json={"ok": True}))
        with pytest.raises(TransferError, match="cid"):
            await client.put(file_set)

    @pytest.mark.asyncio
    async def test_status(self):
        body = {
            "cid": "bafyROOT",
            "dagSize": 1234,
            "created": "2026-10-19T10:00:00Z",
            "pins": [{"status": "Pinned", "peerId": "12D3"}],
            "deals": [],
        }

        def handler(request):
            assert request.url.path == "/status/bafyROOT"
            return httpx.Response(200, json=body)

        status = await storage_client(handler).status("bafyROOT")

        assert status.dag_size == 1234
        assert status.pins[0]["status"] == "Pinned"


class TestContentUploader:
    """Upload contract: FileSet -> cid."""

    @pytest.mark.asyncio
    async def test_upload_returns_cid_and_verifies(self, file_set):
        paths = []

        def handler(request):
            paths.append(request.url.path)
            if request.url.path == "/upload":
                return httpx.Response(200, json={"cid": "bafyROOT"})
            return httpx.Response(200, json={"cid": "bafyROOT", "pins": [], "deals": []})

        cid = await ContentUploader(storage_client(handler)).upload(file_set)

        assert cid == "bafyROOT"
        assert paths == ["/upload", "/status/bafyROOT"]

    @pytest.mark.asyncio
    async def test_status_failure_does_not_fail_upload(self, file_set):
        def handler(request):
            if request.url.path == "/upload":
                return httpx.Response(200, json={"cid": "bafyROOT"})
            return httpx.Response(503, text="unavailable")

        cid = await ContentUploader(storage_client(handler)).upload(file_set)

        assert cid == "bafyROOT"

    @pytest.mark.asyncio
    async def test_empty_file_set_rejected(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(TransferError, match="No files"):
            await ContentUploader(storage_client(handler)).upload(FileSet())

    @pytest.mark.asyncio
    async def test_progress_reaches_100_once(self, file_set):
        emitted = []
        client = storage_client(lambda request: httpx.Response(200, json={"cid": "bafyROOT"}))

        await client.put(file_set, on_chunk_stored=ProgressTracker(file_set.total_size, emitted.append).advance)

        assert emitted.count(100.0) == 1
