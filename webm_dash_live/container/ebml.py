"""
Minimal EBML toolkit for live WebM segmenting.

Two halves:

Reading: VINT / element header decoding and element iteration, used by the
boundary scanner and by tests that walk the produced fragments.

Writing: element builders used by the WebM muxer to lay out the EBML header,
Segment, Info, Tracks and the Cluster/SimpleBlock stream.

Boundary scanning: a WebM live stream is a header (EBML + Segment + Info +
Tracks) followed by Clusters. The first Cluster ID marks the end of the
initialization fragment.
"""

import logging
import struct

logger = logging.getLogger(__name__)

# =============================================================================
# EBML Element IDs (Matroska / WebM)
# =============================================================================

# EBML header
EBML_HEADER = 0x1A45DFA3
EBML_VERSION = 0x4286
EBML_READ_VERSION = 0x42F7
EBML_MAX_ID_LENGTH = 0x42F2
EBML_MAX_SIZE_LENGTH = 0x42F3
DOC_TYPE = 0x4282
DOC_TYPE_VERSION = 0x4287
DOC_TYPE_READ_VERSION = 0x4285

# Top-level
SEGMENT = 0x18538067

# Info
INFO = 0x1549A966
TIMESTAMP_SCALE = 0x2AD7B1
MUXING_APP = 0x4D80
WRITING_APP = 0x5741

# Tracks
TRACKS = 0x1654AE6B
TRACK_ENTRY = 0xAE
TRACK_NUMBER = 0xD7
TRACK_UID = 0x73C5
TRACK_TYPE = 0x83
FLAG_LACING = 0x9C
CODEC_ID = 0x86
CODEC_PRIVATE = 0x63A2

# Video track settings
VIDEO = 0xE0
PIXEL_WIDTH = 0xB0
PIXEL_HEIGHT = 0xBA

# Audio track settings
AUDIO = 0xE1
SAMPLING_FREQUENCY = 0xB5
CHANNELS = 0x9F

# Cluster
CLUSTER = 0x1F43B675
CLUSTER_TIMESTAMP = 0xE7
SIMPLE_BLOCK = 0xA3

TRACK_TYPE_VIDEO = 1
TRACK_TYPE_AUDIO = 2

# SimpleBlock flags
SIMPLE_BLOCK_KEYFRAME = 0x80

# Unknown/indeterminate size sentinel
UNKNOWN_SIZE = -1
UNKNOWN_SIZE_VINT = b"\x01\xff\xff\xff\xff\xff\xff\xff"

# The 4 raw bytes that open every Cluster element.
CLUSTER_MARKER = CLUSTER.to_bytes(4, "big")

_MAX_VINT_LENGTH = 8


# =============================================================================
# Low-level EBML parsing
# =============================================================================


def read_vint(data: bytes, pos: int) -> tuple[int, int, int]:
    """
    Read a variable-length integer (VINT) from EBML data.

    Returns:
        (raw_value, value_without_marker, new_pos)
        raw_value includes the VINT marker bit.
        value_without_marker has the marker bit masked off (for element sizes).
    """
    if pos >= len(data):
        raise ValueError(f"EBML VINT: position {pos} beyond data length {len(data)}")

    first = data[pos]
    if first == 0:
        raise ValueError(f"EBML VINT: invalid leading byte 0x00 at pos {pos}")

    length = 1
    mask = 0x80
    while mask and not (first & mask):
        length += 1
        mask >>= 1

    if pos + length > len(data):
        raise ValueError(f"EBML VINT: need {length} bytes at pos {pos}, only {len(data) - pos} available")

    raw = int.from_bytes(data[pos : pos + length], "big")
    value = raw & ~(1 << (7 * length))

    # All value bits set means unknown size
    if value == (1 << (7 * length)) - 1:
        value = UNKNOWN_SIZE

    return raw, value, pos + length


def read_element_id(data: bytes, pos: int) -> tuple[int, int]:
    """Read an EBML element ID. Returns ``(element_id, new_pos)``."""
    raw, _, new_pos = read_vint(data, pos)
    return raw, new_pos


def read_element_size(data: bytes, pos: int) -> tuple[int, int]:
    """Read an EBML element data size. Returns ``(size, new_pos)``; size may be UNKNOWN_SIZE."""
    _, value, new_pos = read_vint(data, pos)
    return value, new_pos


def read_uint(data: bytes, pos: int, length: int) -> int:
    """Read an unsigned integer of N bytes (big-endian)."""
    if length == 0:
        return 0
    return int.from_bytes(data[pos : pos + length], "big")


def iter_elements(data: bytes, start: int, end: int):
    """
    Iterate over EBML elements within a range.

    Yields:
        (element_id, data_offset, data_size, element_start)
        element_start is the byte position of the element ID.
        data_offset is where the element's data begins (after ID + size).
        data_size is the declared size (may be UNKNOWN_SIZE).

    Iteration stops after an unknown-sized element, since its end can only be
    found by descending into it.
    """
    pos = start
    while pos < end:
        try:
            element_start = pos
            eid, pos2 = read_element_id(data, pos)
            size, pos3 = read_element_size(data, pos2)
        except (ValueError, IndexError):
            break

        yield eid, pos3, size, element_start
        if size == UNKNOWN_SIZE:
            break
        pos = pos3 + size


# =============================================================================
# Element building
# =============================================================================


def encode_vint(value: int, length: int | None = None) -> bytes:
    """
    Encode a data size as an EBML VINT.

    Uses the shortest encoding unless *length* is given. The all-ones pattern
    of each width is reserved for "unknown size" and is never produced here.
    """
    if value < 0:
        raise ValueError(f"EBML VINT: negative value {value}")

    if length is None:
        length = 1
        while length < _MAX_VINT_LENGTH and value >= (1 << (7 * length)) - 1:
            length += 1

    if not 1 <= length <= _MAX_VINT_LENGTH or value >= (1 << (7 * length)) - 1:
        raise ValueError(f"EBML VINT: value {value} does not fit in {length} bytes")

    return (value | (1 << (7 * length))).to_bytes(length, "big")


def encode_element_id(element_id: int) -> bytes:
    """Element IDs already carry their marker bit, so they are written as-is."""
    return element_id.to_bytes((element_id.bit_length() + 7) // 8, "big")


def build_element(element_id: int, payload: bytes) -> bytes:
    """Build an element: [ID][size VINT][payload]."""
    return encode_element_id(element_id) + encode_vint(len(payload)) + payload


def build_master(element_id: int, *children: bytes) -> bytes:
    """Build a master element from already-built children."""
    return build_element(element_id, b"".join(children))


def build_unknown_size_header(element_id: int) -> bytes:
    """Header of a master element whose size is left open (live Segment/Cluster)."""
    return encode_element_id(element_id) + UNKNOWN_SIZE_VINT


def build_uint(element_id: int, value: int) -> bytes:
    length = max(1, (value.bit_length() + 7) // 8)
    return build_element(element_id, value.to_bytes(length, "big"))


def build_float(element_id: int, value: float) -> bytes:
    return build_element(element_id, struct.pack(">d", value))


def build_string(element_id: int, value: str) -> bytes:
    return build_element(element_id, value.encode("utf-8"))


def build_binary(element_id: int, value: bytes) -> bytes:
    return build_element(element_id, value)


# =============================================================================
# Boundary scanning
# =============================================================================


def find_cluster_start(data: bytes, start: int = 0) -> int | None:
    """
    Return the offset of the first Cluster marker at or after *start*.

    Returns None when no complete marker is present yet; a marker split
    across the end of *data* is not reported until its last byte arrives.
    """
    offset = data.find(CLUSTER_MARKER, start)
    if offset < 0:
        return None
    return offset


def find_cluster_starts(data: bytes, start: int = 0) -> list[int]:
    """Offsets of every Cluster marker at or after *start*."""
    offsets = []
    offset = find_cluster_start(data, start)
    while offset is not None:
        offsets.append(offset)
        offset = find_cluster_start(data, offset + len(CLUSTER_MARKER))
    return offsets
