"""
Temporary asset handling.

Uploaded files are stored under the upload directory for the duration of
one request. The request that stored an asset owns it and must delete it
exactly once, whatever happens in between.

AssetGuard is the only place that deletes assets:

    with AssetGuard(asset):
        ...  # any exit path, including exceptions, releases the file

Deletion failures (file already gone, permissions) are logged and
swallowed; they never replace the error that ended the request.
"""

import asyncio
from pathlib import Path
from typing import Optional
from uuid import uuid4

import structlog

from spendeka.models.transaction import UploadedAsset


logger = structlog.get_logger(__name__)

_DEFAULT_SUFFIX = ".img"


def discard_file(path: Path) -> bool:
    """
    Delete a file, ignoring failures.

    Returns True if a file was removed.
    """
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.debug("asset_delete_failed", path=str(path), error=str(e))
        return False


class AssetGuard:
    """
    Releases an UploadedAsset exactly once.

    Usable as a context manager; release() may also be called directly and
    is idempotent.
    """

    def __init__(self, asset: UploadedAsset):
        self.asset = asset
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        removed = discard_file(self.asset.path)
        logger.debug(
            "asset_released",
            asset_id=str(self.asset.asset_id),
            removed=removed,
        )

    def __enter__(self) -> "AssetGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False


def _safe_suffix(filename: Optional[str]) -> str:
    suffix = Path(filename or "").suffix.lower()
    if not suffix or len(suffix) > 10 or not suffix[1:].isalnum():
        return _DEFAULT_SUFFIX
    return suffix


async def store_upload(
    data: bytes,
    directory: Path,
    filename: Optional[str] = None,
    mime_type: Optional[str] = None,
) -> UploadedAsset:
    """
    Write upload bytes to a fresh file and describe it as an UploadedAsset.

    The stored name is random; the original filename is kept for logging
    only. A partially written file is removed before the error propagates.
    """
    path = Path(directory) / f"{uuid4().hex}{_safe_suffix(filename)}"

    try:
        await asyncio.to_thread(path.write_bytes, data)
    except OSError:
        discard_file(path)
        raise

    return UploadedAsset(
        path=path,
        size_bytes=len(data),
        mime_type=mime_type or "image/jpeg",
        original_filename=Path(filename).name if filename else None,
    )
