"""
The growing WebM container file and its single read cursor.

One writer (the encoder delivery thread, through ``write``) appends samples;
one reader (the fragment cutter) copies flushed bytes out of the same file.
They are kept apart by a single lock used in two different ways:

* the writer only ever *tries* to take it; if a cut holds it, the sample is
  dropped instead of waiting, so the encoder never stalls;
* the cutter takes it blocking, which at most waits for the one sample being
  appended right now, so a cut never observes a half-written block.
"""

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from webm_dash_live.container.webm_muxer import SampleInfo, TrackDescriptor, WebMMuxer

logger = logging.getLogger(__name__)


class SessionResetError(Exception):
    """The container or the fragment catalog could not be prepared for a new session."""


class ContainerStream:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._muxer: Optional[WebMMuxer] = None
        self._writer: Optional[BinaryIO] = None
        self._reader: Optional[BinaryIO] = None
        self._write_lock = threading.Lock()

        # Track numbers registered with the current muxer, by kind
        self._track_numbers: dict[str, int] = {}
        # Last known descriptor per kind, reapplied on every reset()
        self._descriptors: dict[str, TrackDescriptor] = {}

        self._writing = False
        self.read_cursor = 0
        self.dropped_writes = 0

    @property
    def is_prepared(self) -> bool:
        return self._muxer is not None

    @property
    def is_writing(self) -> bool:
        return self._writing

    @property
    def writable(self) -> bool:
        return not self._write_lock.locked()

    @property
    def registered_kinds(self) -> list[str]:
        return sorted(self._track_numbers)

    def reset(self) -> "ContainerStream":
        """
        Discard the current file and prepare an empty one for a new session.

        Known track descriptors are registered again, the read cursor goes back
        to 0 and the stream waits for ``begin_writing()``.

        Raises:
            SessionResetError: If the file cannot be recreated.
        """
        self.release()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.unlink(missing_ok=True)
            self._writer = open(self.path, "wb")
            self._reader = open(self.path, "rb")
        except OSError as e:
            self.release()
            raise SessionResetError(f"Unable to recreate container file {self.path}: {e}") from e

        self._muxer = WebMMuxer(self._writer)
        self._track_numbers = {}
        self.read_cursor = 0
        self.dropped_writes = 0
        for descriptor in self._descriptors.values():
            self._track_numbers[descriptor.kind] = self._muxer.add_track(descriptor)

        logger.info(f"Container reset at {self.path} with tracks {self.registered_kinds}")
        return self

    def register_track(self, descriptor: TrackDescriptor) -> None:
        """
        Register the format of a track.

        Only takes effect before ``begin_writing()``; later registrations are
        cached and applied by the next ``reset()``.
        """
        self._descriptors[descriptor.kind] = descriptor

        if self._muxer is None:
            logger.debug(f"{descriptor.kind} track cached until the container is prepared")
            return
        if self._writing:
            logger.warning(f"{descriptor.kind} track registered after writing began; deferred to the next session")
            return
        if descriptor.kind in self._track_numbers:
            logger.warning(f"{descriptor.kind} track already registered; new format deferred to the next session")
            return

        self._track_numbers[descriptor.kind] = self._muxer.add_track(descriptor)
        logger.info(f"Registered {descriptor.kind} track ({descriptor.matroska_codec_id})")

    def begin_writing(self) -> None:
        """Write the container header; from now on ``write`` calls take effect."""
        if self._writing:
            return
        if self._muxer is None:
            self.reset()
        with self._write_lock:
            self._muxer.start()
            self._writing = True
        logger.info(f"Writing started ({self.flushed_length()} header bytes)")

    def write(self, kind: str, data: bytes, info: SampleInfo) -> bool:
        """
        Append one encoded sample.

        Returns False when the sample was dropped: writing not begun, track
        kind not registered, codec-config buffer, or a cut in progress.
        """
        if not self._writing or info.is_codec_config:
            return False

        track_number = self._track_numbers.get(kind)
        if track_number is None:
            return False

        if not self._write_lock.acquire(blocking=False):
            self.dropped_writes += 1
            logger.debug(f"Dropped {kind} sample ({len(data)} bytes): cut in progress")
            return False
        try:
            # Re-check under the lock: release() may have run meanwhile
            if not self._writing:
                return False
            self._muxer.write_sample(track_number, data, info)
        finally:
            self._write_lock.release()
        return True

    @contextmanager
    def exclusive(self) -> Iterator["ContainerStream"]:
        """Hold off writers for the duration of a cut."""
        with self._write_lock:
            yield self

    def flushed_length(self) -> int:
        if self._reader is None:
            return 0
        return os.fstat(self._reader.fileno()).st_size

    def read_range(self, start: int, end: int) -> bytes:
        """Read flushed bytes ``[start, end)``."""
        if self._reader is None:
            raise RuntimeError("Container stream has not been prepared")
        if end <= start:
            return b""
        self._reader.seek(start)
        return self._reader.read(end - start)

    def advance_cursor(self, offset: int) -> None:
        if offset < self.read_cursor:
            raise ValueError(f"Read cursor cannot move backwards ({self.read_cursor} -> {offset})")
        if offset > self.flushed_length():
            raise ValueError(f"Read cursor cannot pass flushed length ({offset} > {self.flushed_length()})")
        self.read_cursor = offset

    def release(self) -> None:
        """Stop writing and close the file handles. The file itself is kept."""
        with self._write_lock:
            self._writing = False
            for handle in (self._writer, self._reader):
                if handle is not None:
                    handle.close()
            self._writer = None
            self._reader = None
            self._muxer = None
