"""Chunked base64 encoder for uploading large video files inside JSON requests."""

from __future__ import annotations

import asyncio
import base64
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional

from vidcat.config.settings import DEFAULT_CHUNK_SIZE
from vidcat.exceptions import CatalogError
from vidcat.models.video import InlinePendingSource, UploadPayload
from vidcat.utils.media import build_data_uri
from vidcat.utils.progress import UploadProgress

ProgressCallback = Callable[[UploadProgress], None]


class EncodingError(CatalogError):
    """Raised when a file cannot be read completely while encoding."""


class EncodingCancelled(EncodingError):
    """Raised when encoding is aborted through the cancellation event."""


@dataclass(slots=True)
class EncodedUpload:
    """Result of encoding a whole file: one base64 string plus the original filename."""

    encoded_data: str
    filename: str

    def as_data_uri(self) -> str:
        return build_data_uri(self.encoded_data, self.filename)

    def to_payload(self) -> UploadPayload:
        return UploadPayload(data=self.encoded_data, filename=self.filename)

    def to_inline_source(self) -> InlinePendingSource:
        return InlinePendingSource(payload=self.encoded_data, filename=self.filename)


@dataclass(slots=True)
class EncodingAccumulator:
    """Running state of one encode: encoded parts so far and bytes not yet encodable.

    Base64 maps 3 input bytes onto 4 characters, so any tail of a chunk that is not a
    multiple of three is carried into the next step. Only :meth:`finish` pads.
    """

    total_bytes: int
    parts: List[str] = field(default_factory=list)
    carry: bytes = b""
    bytes_read: int = 0
    chunk_index: int = 0

    def feed(self, chunk: bytes) -> None:
        buffer = self.carry + chunk
        usable = len(buffer) - (len(buffer) % 3)
        if usable:
            self.parts.append(base64.b64encode(buffer[:usable]).decode("ascii"))
        self.carry = buffer[usable:]
        self.bytes_read += len(chunk)
        self.chunk_index += 1

    def progress(self) -> UploadProgress:
        if self.total_bytes == 0:
            fraction = 1.0
        else:
            fraction = min(1.0, self.bytes_read / self.total_bytes)
        return UploadProgress(
            fraction=fraction,
            bytes_encoded=self.bytes_read,
            total_bytes=self.total_bytes,
            chunk_index=self.chunk_index,
        )

    def finish(self) -> str:
        if self.carry:
            self.parts.append(base64.b64encode(self.carry).decode("ascii"))
            self.carry = b""
        return "".join(self.parts)

    def discard(self) -> None:
        self.parts.clear()
        self.carry = b""


class ChunkedUploadEncoder:
    """Encode a file chunk by chunk, reporting progress after each chunk."""

    def __init__(self, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive.")
        self._chunk_size = chunk_size

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def encode_file(
        self,
        handle: BinaryIO,
        size: int,
        *,
        filename: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EncodedUpload:
        """Encode ``size`` bytes from ``handle``.

        Parameters
        ----------
        handle:
            Binary stream positioned at the start of the file.
        size:
            Declared file size in bytes; exactly this many bytes are consumed.
        filename:
            Original filename, carried through to the result.
        on_progress:
            Invoked with an :class:`UploadProgress` after every chunk.
        cancel_event:
            Checked before each chunk; when set the encode is abandoned.

        Raises
        ------
        EncodingError
            If a read fails or the stream ends before ``size`` bytes.
        EncodingCancelled
            If ``cancel_event`` was set before the encode completed.
        """

        if size < 0:
            raise ValueError("size must not be negative.")

        accumulator = EncodingAccumulator(total_bytes=size)
        try:
            if size == 0:
                self._emit(on_progress, accumulator)
            while accumulator.bytes_read < size:
                self._check_cancelled(cancel_event)
                chunk = self._read_chunk(handle, accumulator)
                accumulator.feed(chunk)
                self._emit(on_progress, accumulator)
            self._check_cancelled(cancel_event)
        except EncodingError:
            accumulator.discard()
            raise

        return EncodedUpload(encoded_data=accumulator.finish(), filename=filename)

    async def encode_file_async(
        self,
        handle: BinaryIO,
        size: int,
        *,
        filename: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EncodedUpload:
        """Same as :meth:`encode_file`, reading each chunk in a worker thread.

        Chunk reads are awaited one at a time, so the event loop stays responsive
        while ordering is preserved.
        """

        if size < 0:
            raise ValueError("size must not be negative.")

        accumulator = EncodingAccumulator(total_bytes=size)
        try:
            if size == 0:
                self._emit(on_progress, accumulator)
            while accumulator.bytes_read < size:
                self._check_cancelled(cancel_event)
                chunk = await asyncio.to_thread(self._read_chunk, handle, accumulator)
                accumulator.feed(chunk)
                self._emit(on_progress, accumulator)
            self._check_cancelled(cancel_event)
        except (EncodingError, asyncio.CancelledError):
            accumulator.discard()
            raise

        return EncodedUpload(encoded_data=accumulator.finish(), filename=filename)

    def encode_path(
        self,
        path: Path,
        *,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EncodedUpload:
        """Open ``path`` and encode it, using its on-disk size and name."""

        try:
            size = path.stat().st_size
            handle = path.open("rb")
        except OSError as exc:
            raise EncodingError(f"Cannot open '{path}': {exc}") from exc

        with handle:
            return self.encode_file(
                handle,
                size,
                filename=path.name,
                on_progress=on_progress,
                cancel_event=cancel_event,
            )

    def _read_chunk(self, handle: BinaryIO, accumulator: EncodingAccumulator) -> bytes:
        wanted = min(self._chunk_size, accumulator.total_bytes - accumulator.bytes_read)
        try:
            chunk = handle.read(wanted)
        except OSError as exc:
            raise EncodingError(f"Failed to read chunk {accumulator.chunk_index}: {exc}") from exc
        if not chunk:
            raise EncodingError(
                f"File ended after {accumulator.bytes_read} of {accumulator.total_bytes} declared bytes."
            )
        return chunk

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise EncodingCancelled("Encoding cancelled; partial payload discarded.")

    @staticmethod
    def _emit(callback: Optional[ProgressCallback], accumulator: EncodingAccumulator) -> None:
        if callback is None:
            return
        callback(accumulator.progress())


__all__ = [
    "ChunkedUploadEncoder",
    "EncodedUpload",
    "EncodingAccumulator",
    "EncodingCancelled",
    "EncodingError",
]
