"""
Pure Python append-only WebM writer for live streaming.

File layout:
    EBML header | Segment (unknown size) | Info | Tracks | Cluster | Cluster | ...

Both the Segment and every Cluster are written with an unknown size, so the
file never needs to be patched: every byte is final the moment it is
flushed. That property is what lets the fragment cutter copy bytes out of the
file while it is still growing.

A new Cluster opens on the first sample, on every video keyframe, and when a
block timestamp no longer fits the signed 16-bit offset from the Cluster
timestamp.
"""

import logging
import struct
from dataclasses import dataclass
from typing import BinaryIO

from webm_dash_live.container.ebml import (
    AUDIO,
    CHANNELS,
    CLUSTER,
    CLUSTER_TIMESTAMP,
    CODEC_ID,
    CODEC_PRIVATE,
    DOC_TYPE,
    DOC_TYPE_READ_VERSION,
    DOC_TYPE_VERSION,
    EBML_HEADER,
    EBML_MAX_ID_LENGTH,
    EBML_MAX_SIZE_LENGTH,
    EBML_READ_VERSION,
    EBML_VERSION,
    FLAG_LACING,
    INFO,
    MUXING_APP,
    PIXEL_HEIGHT,
    PIXEL_WIDTH,
    SAMPLING_FREQUENCY,
    SEGMENT,
    SIMPLE_BLOCK,
    SIMPLE_BLOCK_KEYFRAME,
    TIMESTAMP_SCALE,
    TRACK_ENTRY,
    TRACK_NUMBER,
    TRACK_TYPE,
    TRACK_TYPE_AUDIO,
    TRACK_TYPE_VIDEO,
    TRACK_UID,
    TRACKS,
    VIDEO,
    WRITING_APP,
    build_binary,
    build_element,
    build_float,
    build_master,
    build_string,
    build_uint,
    build_unknown_size_header,
    encode_vint,
)

logger = logging.getLogger(__name__)

TRACK_KIND_VIDEO = "video"

# 1 ms per tick
DEFAULT_TIMESTAMP_SCALE_NS = 1_000_000

APP_NAME = "webm-dash-live"

# Short codec names accepted from the encoder side, mapped to Matroska CodecIDs.
CODEC_ID_ALIASES = {
    "vp8": "V_VP8",
    "vp9": "V_VP9",
    "av1": "V_AV1",
    "avc": "V_MPEG4/ISO/AVC",
    "h264": "V_MPEG4/ISO/AVC",
    "opus": "A_OPUS",
    "vorbis": "A_VORBIS",
}

_INT16_MIN = -0x8000
_INT16_MAX = 0x7FFF


# =============================================================================
# Track / sample metadata
# =============================================================================


@dataclass
class TrackDescriptor:
    """Format of one track as reported by the encoder (codec + init parameters)."""

    kind: str  # "video" or "audio"
    codec_id: str  # Matroska CodecID or a short alias like "vp9"
    codec_private: bytes = b""  # Codec-specific init data
    width: int = 0
    height: int = 0
    sample_rate: float = 0.0
    channels: int = 0

    @property
    def is_video(self) -> bool:
        return self.kind == TRACK_KIND_VIDEO

    @property
    def matroska_codec_id(self) -> str:
        return CODEC_ID_ALIASES.get(self.codec_id.lower(), self.codec_id)


@dataclass
class SampleInfo:
    """Per-sample metadata handed over with each encoded buffer."""

    presentation_time_us: int = 0
    is_keyframe: bool = False
    is_codec_config: bool = False


# =============================================================================
# Header building
# =============================================================================


def build_ebml_header() -> bytes:
    """EBML header declaring a WebM document."""
    return build_master(
        EBML_HEADER,
        build_uint(EBML_VERSION, 1),
        build_uint(EBML_READ_VERSION, 1),
        build_uint(EBML_MAX_ID_LENGTH, 4),
        build_uint(EBML_MAX_SIZE_LENGTH, 8),
        build_string(DOC_TYPE, "webm"),
        build_uint(DOC_TYPE_VERSION, 4),
        build_uint(DOC_TYPE_READ_VERSION, 2),
    )


def build_info(timestamp_scale_ns: int = DEFAULT_TIMESTAMP_SCALE_NS) -> bytes:
    # No Duration: the stream is live.
    return build_master(
        INFO,
        build_uint(TIMESTAMP_SCALE, timestamp_scale_ns),
        build_string(MUXING_APP, APP_NAME),
        build_string(WRITING_APP, APP_NAME),
    )


def build_track_entry(track_number: int, descriptor: TrackDescriptor) -> bytes:
    children = [
        build_uint(TRACK_NUMBER, track_number),
        build_uint(TRACK_UID, track_number),
        build_uint(TRACK_TYPE, TRACK_TYPE_VIDEO if descriptor.is_video else TRACK_TYPE_AUDIO),
        build_uint(FLAG_LACING, 0),
        build_string(CODEC_ID, descriptor.matroska_codec_id),
    ]
    if descriptor.codec_private:
        children.append(build_binary(CODEC_PRIVATE, descriptor.codec_private))

    if descriptor.is_video:
        children.append(
            build_master(
                VIDEO,
                build_uint(PIXEL_WIDTH, descriptor.width),
                build_uint(PIXEL_HEIGHT, descriptor.height),
            )
        )
    else:
        children.append(
            build_master(
                AUDIO,
                build_float(SAMPLING_FREQUENCY, descriptor.sample_rate),
                build_uint(CHANNELS, descriptor.channels),
            )
        )
    return build_master(TRACK_ENTRY, *children)


def build_tracks(descriptors: list[TrackDescriptor]) -> bytes:
    return build_master(
        TRACKS,
        *(build_track_entry(number, descriptor) for number, descriptor in enumerate(descriptors, start=1)),
    )


def build_simple_block(track_number: int, relative_timestamp: int, is_keyframe: bool, data: bytes) -> bytes:
    """SimpleBlock: [track VINT][int16 relative timestamp][flags][frame]."""
    flags = SIMPLE_BLOCK_KEYFRAME if is_keyframe else 0
    payload = encode_vint(track_number) + struct.pack(">hB", relative_timestamp, flags) + data
    return build_element(SIMPLE_BLOCK, payload)


# =============================================================================
# Muxer
# =============================================================================


class WebMMuxer:
    """
    Writes a live WebM stream into a binary file object.

    Mirrors the lifecycle of a platform muxer: tracks are added first, then
    ``start()`` writes the header and ``write_sample()`` appends blocks. Each
    call performs a single ``write`` followed by ``flush`` so that the file
    length seen by other readers always lands on an element boundary.
    """

    def __init__(self, fp: BinaryIO, timestamp_scale_ns: int = DEFAULT_TIMESTAMP_SCALE_NS):
        self._fp = fp
        self._timestamp_scale_ns = timestamp_scale_ns
        self._tracks: list[TrackDescriptor] = []
        self._started = False
        self._base_time_us: int | None = None
        self._cluster_timestamp: int | None = None
        self.bytes_written = 0
        self.samples_written = 0
        self.clusters_written = 0

    def add_track(self, descriptor: TrackDescriptor) -> int:
        """Add a track and return its 1-based track number."""
        if self._started:
            raise RuntimeError("Tracks cannot be added after the muxer has started")
        self._tracks.append(descriptor)
        logger.debug(f"Added {descriptor.kind} track #{len(self._tracks)} ({descriptor.matroska_codec_id})")
        return len(self._tracks)

    def start(self) -> None:
        if self._started:
            return
        header = build_ebml_header() + build_unknown_size_header(SEGMENT) + build_info(self._timestamp_scale_ns)
        header += build_tracks(self._tracks)
        self._append(header)
        self._started = True

    def write_sample(self, track_number: int, data: bytes, info: SampleInfo) -> None:
        if not self._started:
            raise RuntimeError("Muxer has not been started")
        if not 1 <= track_number <= len(self._tracks):
            raise ValueError(f"Unknown track number {track_number}")

        descriptor = self._tracks[track_number - 1]
        timestamp = self._to_timestamp(info.presentation_time_us)

        chunk = b""
        relative = None if self._cluster_timestamp is None else timestamp - self._cluster_timestamp
        if (
            relative is None
            or (descriptor.is_video and info.is_keyframe)
            or not _INT16_MIN <= relative <= _INT16_MAX
        ):
            self._cluster_timestamp = timestamp
            chunk += build_unknown_size_header(CLUSTER) + build_uint(CLUSTER_TIMESTAMP, self._cluster_timestamp)
            self.clusters_written += 1
            relative = timestamp - self._cluster_timestamp

        # Audio frames are always independently decodable.
        is_keyframe = info.is_keyframe or not descriptor.is_video
        chunk += build_simple_block(track_number, relative, is_keyframe, data)
        self._append(chunk)
        self.samples_written += 1

    def _to_timestamp(self, presentation_time_us: int) -> int:
        """Convert an encoder timestamp to Segment ticks relative to the first sample."""
        if self._base_time_us is None:
            self._base_time_us = presentation_time_us
        elapsed_ns = (presentation_time_us - self._base_time_us) * 1000
        # Timestamps are unsigned; samples older than the first one are pinned to 0.
        return max(elapsed_ns // self._timestamp_scale_ns, 0)

    def _append(self, chunk: bytes) -> None:
        self._fp.write(chunk)
        self._fp.flush()
        self.bytes_written += len(chunk)
