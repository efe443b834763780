"""Content uploader for web3.storage.

The whole file set goes up as one multipart request; the backend wraps it
in a directory and answers with the root content identifier. Files are
streamed in chunks and each chunk handed to the transport is reported to a
ProgressTracker. Progress is observational only.
"""

import logging
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Callable, List, Optional
from urllib.parse import quote

from compass_publish.models import StorageStatus
from compass_publish.primitives.errors import TransferError
from compass_publish.primitives.http_client import HttpClientPrimitive

logger = logging.getLogger(__name__)

CHUNK_SIZE = 256 * 1024


@dataclass
class LocalFile:
    """A file to upload; name is its path relative to the file set root."""

    path: Path
    name: str
    size: int


@dataclass
class FileSet:
    files: List[LocalFile] = field(default_factory=list)
    name: Optional[str] = None

    def __len__(self) -> int:
        return len(self.files)

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files)


def get_files_from_path(path: Path) -> FileSet:
    """Collect a FileSet from a single file or a directory tree.

    Hidden files and directories are skipped. Names are POSIX paths
    relative to the directory, sorted.

    Raises:
        TransferError: If the path does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise TransferError(f"Upload path not found: {path}")

    if path.is_file():
        return FileSet(files=[LocalFile(path=path, name=path.name, size=path.stat().st_size)], name=path.name)

    files = []
    for candidate in sorted(path.rglob("*")):
        rel = candidate.relative_to(path)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if candidate.is_file():
            files.append(LocalFile(path=candidate, name=rel.as_posix(), size=candidate.stat().st_size))
    return FileSet(files=files, name=path.name)


class ProgressTracker:
    """Turns chunk sizes into a monotonic percentage.

    percent = round(uploaded / total * 100, 2), capped at 99.99 until every
    byte is in and clamped to 100 after. A zero total counts as complete.
    100 is emitted exactly once; later reports are ignored.
    """

    def __init__(self, total: int, on_progress: Optional[Callable[[float], None]] = None):
        self.total = total
        self.uploaded = 0
        self.complete = False
        self._on_progress = on_progress or self._log_progress

    @property
    def percent(self) -> float:
        if self.uploaded >= self.total:
            return 100.0
        # rounding must not report completion early
        return min(round(self.uploaded / self.total * 100, 2), 99.99)

    def advance(self, size: int) -> None:
        if self.complete:
            return
        self.uploaded += size
        pct = self.percent
        if pct >= 100.0:
            self.complete = True
        self._on_progress(pct)

    @staticmethod
    def _log_progress(pct: float) -> None:
        logger.info(f"Uploading... {pct:.2f}% complete")


class Web3StorageClient:
    """Thin client for the web3.storage HTTP API."""

    def __init__(self, http: HttpClientPrimitive, token: str, endpoint: str):
        self.http = http
        self.token = token
        self.endpoint = endpoint.rstrip("/")

    def _auth_headers(self):
        return {"Authorization": f"Bearer {self.token}"}

    async def put(
        self,
        files: FileSet,
        on_root_cid_ready: Optional[Callable[[str], None]] = None,
        on_chunk_stored: Optional[Callable[[int], None]] = None,
    ) -> str:
        """Upload a file set and return its root content identifier.

        Raises:
            TransferError: If the backend is unreachable or rejects the upload.
        """
        boundary = secrets.token_hex(16)
        headers = self._auth_headers()
        headers["Content-Type"] = f"multipart/form-data; boundary={boundary}"
        headers["Content-Length"] = str(_multipart_length(files, boundary))
        if files.name:
            headers["X-Name"] = quote(files.name)

        result = await self.http.post(
            f"{self.endpoint}/upload",
            headers=headers,
            content=_multipart_stream(files, boundary, on_chunk_stored),
        )
        if not result.success:
            raise TransferError(f"Upload failed: {result.error}", status_code=result.status_code)

        cid = result.body.get("cid") if isinstance(result.body, dict) else None
        if not cid:
            raise TransferError("Upload response did not include a cid", status_code=result.status_code)

        if on_root_cid_ready:
            on_root_cid_ready(cid)
        return cid

    async def status(self, cid: str) -> StorageStatus:
        """Fetch pin and deal status for an uploaded identifier."""
        result = await self.http.get(f"{self.endpoint}/status/{cid}", headers=self._auth_headers())
        if not result.success or not isinstance(result.body, dict):
            raise TransferError(f"Status lookup failed for {cid}: {result.error}", status_code=result.status_code)
        return StorageStatus.model_validate(result.body)


def _part_header(f: LocalFile, boundary: str) -> bytes:
    filename = f.name.replace('"', "%22")
    return (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="file"; filename="{filename}"\r\n'
        f"Content-Type: application/octet-stream\r\n\r\n"
    ).encode("utf-8")


def _closing(boundary: str) -> bytes:
    return f"--{boundary}--\r\n".encode("utf-8")


def _multipart_length(files: FileSet, boundary: str) -> int:
    length = sum(len(_part_header(f, boundary)) + f.size + 2 for f in files.files)
    return length + len(_closing(boundary))


async def _multipart_stream(
    files: FileSet,
    boundary: str,
    on_chunk: Optional[Callable[[int], None]] = None,
) -> AsyncIterator[bytes]:
    for f in files.files:
        yield _part_header(f, boundary)
        async for chunk in _read_chunks(f):
            yield chunk
            if on_chunk:
                on_chunk(len(chunk))
        yield b"\r\n"
    yield _closing(boundary)


async def _read_chunks(f: LocalFile) -> AsyncIterator[bytes]:
    """Chunks of one file; read failures surface as TransferError, not OSError."""
    try:
        with open(f.path, "rb") as fh:
            while True:
                chunk = fh.read(CHUNK_SIZE)
                if not chunk:
                    return
                yield chunk
    except OSError as e:
        raise TransferError(f"Failed to read {f.name} during upload: {e}", cause=e) from e


class ContentUploader:
    """Uploads a file set and returns its content identifier.

    No retry is attempted; a TransferError ends the run.
    """

    def __init__(self, client: Web3StorageClient):
        self.client = client

    async def upload(self, files: FileSet) -> str:
        if not files.files:
            raise TransferError("No files to upload")

        logger.info(f"Uploading {len(files)} file(s), {files.total_size} bytes")
        tracker = ProgressTracker(files.total_size)
        if files.total_size == 0:
            tracker.advance(0)

        cid = await self.client.put(
            files,
            on_root_cid_ready=lambda c: logger.info(f"Uploaded files with cid: {c}"),
            on_chunk_stored=tracker.advance,
        )
        await self._verify(cid)
        return cid

    async def _verify(self, cid: str) -> None:
        """Log pin/deal status; failures here never affect the run."""
        try:
            info = await self.client.status(cid)
        except TransferError as e:
            logger.warning(f"Could not verify upload {cid}: {e.message}")
            return
        pinned = [p for p in info.pins if p.get("status") == "Pinned"]
        logger.info(f"Status for {cid}: {len(pinned)}/{len(info.pins)} pin(s) pinned, {len(info.deals)} deal(s)")
