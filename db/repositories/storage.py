"""
Storage backend abstractions for uploaded spreadsheets.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import BinaryIO, Protocol

from db.repositories.errors import FileStorageError


class UploadStorageBackend(Protocol):
    """
    Abstract storage backend for job input files.
    """

    def save(self, *, job_id: str, file_name: str, stream: BinaryIO) -> str:
        ...

    def delete(self, *, storage_path: str) -> bool:
        ...


def _sanitize_file_name(file_name: str) -> str:
    safe_name = Path(file_name).name.strip()
    if not safe_name:
        raise FileStorageError("Invalid file name.")
    return safe_name


class LocalUploadStorage:
    """
    Local filesystem storage for uploaded spreadsheets, one file per job.
    """

    def __init__(self, root_dir: str | Path = "uploads") -> None:
        self._root_dir = Path(root_dir)

    def save(self, *, job_id: str, file_name: str, stream: BinaryIO) -> str:
        safe_file_name = _sanitize_file_name(file_name)
        absolute_path = self._root_dir / f"{job_id}_{safe_file_name}"
        absolute_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = absolute_path.with_suffix(f"{absolute_path.suffix}.tmp")
        try:
            stream.seek(0)
            with tmp_path.open("wb") as handle:
                shutil.copyfileobj(stream, handle, length=1024 * 1024)
            tmp_path.replace(absolute_path)
        except OSError as exc:
            raise FileStorageError("Failed to write uploaded file to storage.") from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass
        return str(absolute_path)

    def delete(self, *, storage_path: str) -> bool:
        """
        Remove the stored file. Returns False when it was already gone.
        """

        target = Path(storage_path)
        if not target.exists():
            return False
        try:
            target.unlink()
        except OSError as exc:
            raise FileStorageError("Failed to delete uploaded file from storage.") from exc
        return True
