import pytest

from webm_dash_live.container.ebml import (
    CLUSTER,
    CLUSTER_MARKER,
    INFO,
    TRACK_NUMBER,
    UNKNOWN_SIZE,
    UNKNOWN_SIZE_VINT,
    build_string,
    build_uint,
    build_unknown_size_header,
    encode_element_id,
    encode_vint,
    find_cluster_start,
    find_cluster_starts,
    iter_elements,
    read_element_size,
    read_vint,
)


def test_encode_vint_uses_shortest_width():
    assert encode_vint(0) == b"\x80"
    assert encode_vint(126) == b"\xfe"
    # 127 is the reserved all-ones pattern at width 1
    assert encode_vint(127) == b"\x40\x7f"
    assert encode_vint(5, length=4) == b"\x10\x00\x00\x05"


def test_encode_vint_rejects_values_that_do_not_fit():
    with pytest.raises(ValueError):
        encode_vint(-1)
    with pytest.raises(ValueError):
        encode_vint(127, length=1)


def test_read_vint_decodes_encoded_sizes():
    raw, value, pos = read_vint(b"\x00" + encode_vint(300), 1)
    assert value == 300
    assert pos == 3
    assert raw == 0x412C


def test_unknown_size_is_reported():
    size, pos = read_element_size(UNKNOWN_SIZE_VINT, 0)
    assert size == UNKNOWN_SIZE
    assert pos == 8


def test_read_vint_rejects_truncated_input():
    with pytest.raises(ValueError):
        read_vint(b"\x40", 0)
    with pytest.raises(ValueError):
        read_vint(b"\x00", 0)


def test_cluster_marker_is_cluster_id():
    assert CLUSTER_MARKER == b"\x1f\x43\xb6\x75"
    assert encode_element_id(CLUSTER) == CLUSTER_MARKER
    assert build_unknown_size_header(CLUSTER) == CLUSTER_MARKER + UNKNOWN_SIZE_VINT


def test_build_uint_is_minimal():
    assert build_uint(TRACK_NUMBER, 1) == b"\xd7\x81\x01"
    assert build_uint(TRACK_NUMBER, 0) == b"\xd7\x81\x00"
    assert build_uint(TRACK_NUMBER, 256) == b"\xd7\x82\x01\x00"


def test_iter_elements_walks_siblings():
    data = build_uint(TRACK_NUMBER, 7) + build_string(INFO, "webm")
    elements = list(iter_elements(data, 0, len(data)))

    assert [eid for eid, _, _, _ in elements] == [TRACK_NUMBER, INFO]
    _, offset, size, start = elements[1]
    assert start == 3
    assert data[offset : offset + size] == b"webm"


def test_iter_elements_stops_after_unknown_size():
    data = build_unknown_size_header(CLUSTER) + build_uint(TRACK_NUMBER, 1)
    elements = list(iter_elements(data, 0, len(data)))
    assert len(elements) == 1
    assert elements[0][2] == UNKNOWN_SIZE


def test_find_cluster_start():
    assert find_cluster_start(b"") is None
    assert find_cluster_start(b"header bytes") is None
    assert find_cluster_start(b"ab" + CLUSTER_MARKER + b"cd") == 2


def test_find_cluster_start_ignores_partial_marker():
    assert find_cluster_start(b"header" + CLUSTER_MARKER[:3]) is None


def test_find_cluster_start_from_offset():
    data = CLUSTER_MARKER + b"xx" + CLUSTER_MARKER
    assert find_cluster_start(data, 1) == 6
    assert find_cluster_starts(data) == [0, 6]
