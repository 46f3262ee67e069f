from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from plan_ingest_core.capabilities import Platform
from plan_ingest_core.errors import StorageError
from plan_ingest_core.models import Document, StorageHandle
from plan_ingest_core.util import safe_filename

logger = logging.getLogger(__name__)

_REUPLOAD = ["Try uploading the file again", "Process the file soon after upload"]


@dataclass(frozen=True)
class StoredBytes:
    handle: StorageHandle
    uri: str | None = None


@dataclass(frozen=True)
class StorageInspection:
    """What the backend could verify about a document's handle, without raising."""

    resolved: bool
    actual_size: int | None
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class HandleRecovery:
    """Outcome of a repair attempt on a document's handle; `action` is None when nothing was needed."""

    handle: StorageHandle | None = None
    action: str | None = None


class StorageBackend(Protocol):
    platform: Platform
    storage_type: str

    async def store(self, document_id: str, filename: str, data: bytes) -> StoredBytes: ...
    async def read(self, document: Document) -> bytes: ...
    async def read_sample(self, document: Document, size: int) -> bytes: ...
    async def inspect(self, document: Document) -> StorageInspection: ...
    async def recover(self, document: Document) -> HandleRecovery: ...
    async def release(self, document: Document) -> None: ...


class InlineStorageBackend:
    """
    Browser-style storage: bytes live inline in the document record as a list of ints.

    The backend also keeps the uploaded bytes in memory for the life of the process
    (the equivalent of a still-open file object), which lets repair restore a lost handle.
    """

    platform: Platform = "web"
    storage_type = "inline"

    def __init__(self) -> None:
        self._file_refs: dict[str, bytes] = {}

    async def store(self, document_id: str, filename: str, data: bytes) -> StoredBytes:
        if not data:
            raise StorageError(
                "No file data available for storage",
                ["Try selecting the file again", "Check if the file is accessible"],
            )
        self._file_refs[document_id] = bytes(data)
        uri = f"blob:plan-ingest/{uuid4()}"
        return StoredBytes(handle=StorageHandle(kind="inline", inline_data=list(data)), uri=uri)

    @staticmethod
    def _decode_inline(handle: StorageHandle) -> bytes:
        try:
            return bytes(handle.inline_data or [])
        except (TypeError, ValueError) as e:
            raise StorageError(f"Inline file data is corrupted: {e}", _REUPLOAD) from e

    async def read(self, document: Document) -> bytes:
        handle = document.storage_handle
        if handle is not None and handle.kind == "inline" and handle.inline_data:
            return self._decode_inline(handle)
        ref = self._file_refs.get(document.id)
        if ref:
            return ref
        raise StorageError(
            "File data not accessible - document may need to be re-uploaded",
            [*_REUPLOAD, "Check if the browser cleared the data"],
        )

    async def read_sample(self, document: Document, size: int) -> bytes:
        return (await self.read(document))[:size]

    async def inspect(self, document: Document) -> StorageInspection:
        handle = document.storage_handle
        if handle is None or handle.kind != "inline" or handle.inline_data is None:
            return StorageInspection(resolved=False, actual_size=None, issues=["Web file data missing"])
        if not handle.inline_data:
            return StorageInspection(resolved=False, actual_size=0, issues=["Web file data is empty"])
        try:
            data = self._decode_inline(handle)
        except StorageError as e:
            return StorageInspection(resolved=False, actual_size=None, issues=[e.message])
        return StorageInspection(resolved=True, actual_size=len(data))

    async def recover(self, document: Document) -> HandleRecovery:
        handle = document.storage_handle
        if handle is not None and handle.kind == "inline" and handle.is_present():
            return HandleRecovery()
        ref = self._file_refs.get(document.id)
        if not ref:
            return HandleRecovery(action="Could not restore web file data - file may need re-upload")
        return HandleRecovery(
            handle=StorageHandle(kind="inline", inline_data=list(ref)),
            action="Restored missing web file data",
        )

    async def release(self, document: Document) -> None:
        self._file_refs.pop(document.id, None)


class FilesystemStorageBackend:
    """Device-style storage: bytes are copied to `<root>/<document_id>_<filename>`."""

    platform: Platform = "mobile"
    storage_type = "path"

    def __init__(self, root: str | Path):
        self._root = Path(root)

    async def store(self, document_id: str, filename: str, data: bytes) -> StoredBytes:
        if not data:
            raise StorageError("No file data available for storage", ["Try selecting the file again"])
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            path = self._root / f"{document_id}_{safe_filename(filename)}"
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(
                f"Could not write file to device storage: {e}",
                ["Check device storage", "Check app permissions"],
            ) from e
        return StoredBytes(handle=StorageHandle(kind="path", local_path=str(path)))

    @staticmethod
    def _path(document: Document) -> Path:
        handle = document.storage_handle
        if handle is None or handle.kind != "path" or not handle.local_path:
            raise StorageError("Local file path is missing", ["Try uploading the file again", "Check app permissions"])
        return Path(handle.local_path)

    async def read(self, document: Document) -> bytes:
        path = self._path(document)
        if not path.exists():
            raise StorageError("File no longer exists on device", ["Try uploading the file again", "Check device storage"])
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Cannot read device file: {e}", ["Check app permissions"]) from e

    async def read_sample(self, document: Document, size: int) -> bytes:
        path = self._path(document)
        try:
            with path.open("rb") as fh:
                return fh.read(size)
        except OSError as e:
            raise StorageError(f"Cannot read device file: {e}", ["Check app permissions"]) from e

    async def inspect(self, document: Document) -> StorageInspection:
        try:
            path = self._path(document)
        except StorageError:
            return StorageInspection(resolved=False, actual_size=None, issues=["Local file path missing"])
        if not path.exists():
            return StorageInspection(resolved=False, actual_size=None, issues=["File does not exist at local path"])
        size = path.stat().st_size
        if size == 0:
            return StorageInspection(resolved=False, actual_size=0, issues=["Local file is empty"])
        return StorageInspection(resolved=True, actual_size=size)

    async def recover(self, document: Document) -> HandleRecovery:
        # A deleted device file cannot be restored; repair only reports it.
        try:
            path = self._path(document)
        except StorageError:
            return HandleRecovery()
        if not path.exists():
            return HandleRecovery(action="Local file missing - document may need re-upload")
        return HandleRecovery()

    async def release(self, document: Document) -> None:
        try:
            path = self._path(document)
        except StorageError:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not delete local file %s", path, exc_info=True)
