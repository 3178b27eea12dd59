"""Streamed ZIP archives of event photos."""

from __future__ import annotations

import io
import logging
import re
import zipfile
from typing import AsyncIterator, Iterable
from urllib.parse import quote

from eventpix.core.storage import ObjectStorage, StorageError, storage_key
from eventpix.models import Photo

logger = logging.getLogger(__name__)

_UNSAFE_NAME = re.compile(r'[/\\?%*:|"<>]')


class _ChunkSink(io.RawIOBase):
    """Write-only, non-seekable target that hands written bytes back in chunks."""

    def __init__(self) -> None:
        self._chunks: list[bytes] = []

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        chunk = bytes(data)
        self._chunks.append(chunk)
        return len(chunk)

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


def archive_base_name(name: str) -> str:
    cleaned = _UNSAFE_NAME.sub("", " ".join((name or "").split())).strip()
    return cleaned[:80].strip() or "event-photos"


def attachment_disposition(filename: str) -> str:
    """Content-Disposition with an ASCII fallback and the UTF-8 name."""
    fallback = re.sub(r"[^\x20-\x7e]+", "_", filename).replace('"', "")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def unique_entry_names(photos: Iterable[Photo]) -> list[str]:
    """Archive names per photo; repeated names become ``name (2).jpg`` and so on."""
    counts: dict[str, int] = {}
    names = []
    for photo in photos:
        base = photo.original_filename or photo.filename or f"photo-{photo.id}"
        counts[base] = counts.get(base, 0) + 1
        count = counts[base]
        if count == 1:
            names.append(base)
            continue
        stem, dot, suffix = base.rpartition(".")
        if stem:
            names.append(f"{stem} ({count}){dot}{suffix}")
        else:
            names.append(f"{base} ({count})")
    return names


async def stream_photo_archive(
    storage: ObjectStorage, photos: list[Photo]
) -> AsyncIterator[bytes]:
    """
    Yield a stored (uncompressed) ZIP of the photos' originals.

    Photos without an object key or whose object cannot be read are left out.
    """
    sink = _ChunkSink()
    with zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_STORED) as archive:
        for photo, name in zip(photos, unique_entry_names(photos)):
            key = storage_key(photo.file_path)
            if key is None:
                continue
            try:
                data = await storage.read_object(key)
            except StorageError as e:
                logger.warning(f"Skipping photo {photo.id} in archive: {e}")
                continue
            archive.writestr(name, data)
            chunk = sink.drain()
            if chunk:
                yield chunk
    tail = sink.drain()
    if tail:
        yield tail
