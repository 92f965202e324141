import pytest

from webm_dash_live.container.ebml import find_cluster_start
from webm_dash_live.container.stream import ContainerStream, SessionResetError
from webm_dash_live.container.webm_muxer import SampleInfo


@pytest.fixture
def stream(tmp_path, video_track):
    container = ContainerStream(tmp_path / "temp.webm")
    container.register_track(video_track)
    container.reset()
    yield container
    container.release()


def test_reset_prepares_empty_stream(stream, tmp_path):
    assert stream.is_prepared
    assert not stream.is_writing
    assert stream.read_cursor == 0
    assert stream.flushed_length() == 0
    assert (tmp_path / "temp.webm").is_file()
    assert stream.registered_kinds == ["video"]


def test_writes_before_begin_are_dropped(stream):
    assert stream.write("video", b"frame", SampleInfo(is_keyframe=True)) is False
    assert stream.flushed_length() == 0


def test_begin_writing_emits_header_once(stream):
    stream.begin_writing()
    header_length = stream.flushed_length()
    assert header_length > 0
    assert find_cluster_start(stream.read_range(0, header_length)) is None

    stream.begin_writing()
    assert stream.flushed_length() == header_length


def test_write_appends_flushed_bytes(stream):
    stream.begin_writing()
    before = stream.flushed_length()
    assert stream.write("video", b"\x00" * 32, SampleInfo(is_keyframe=True)) is True
    assert stream.flushed_length() > before + 32


def test_unregistered_track_is_dropped(stream):
    stream.begin_writing()
    before = stream.flushed_length()
    assert stream.write("audio", b"\x00" * 32, SampleInfo()) is False
    assert stream.flushed_length() == before


def test_codec_config_buffers_are_not_written(stream):
    stream.begin_writing()
    before = stream.flushed_length()
    assert stream.write("video", b"\x00" * 32, SampleInfo(is_codec_config=True)) is False
    assert stream.flushed_length() == before


def test_write_during_cut_is_dropped_not_blocked(stream):
    stream.begin_writing()
    before = stream.flushed_length()
    with stream.exclusive():
        assert not stream.writable
        assert stream.write("video", b"\x00" * 32, SampleInfo(is_keyframe=True)) is False
    assert stream.writable
    assert stream.dropped_writes == 1
    assert stream.flushed_length() == before


def test_late_track_registration_is_deferred(stream, audio_track):
    stream.begin_writing()
    stream.register_track(audio_track)
    assert stream.registered_kinds == ["video"]
    assert stream.write("audio", b"\x00", SampleInfo()) is False

    stream.reset()
    assert stream.registered_kinds == ["audio", "video"]


def test_reset_discards_previous_recording(stream, write_frames):
    stream.begin_writing()
    write_frames(stream, 5)
    stream.advance_cursor(10)

    stream.reset()
    assert stream.flushed_length() == 0
    assert stream.read_cursor == 0
    assert not stream.is_writing


def test_cursor_is_monotonic_and_bounded(stream):
    stream.begin_writing()
    length = stream.flushed_length()
    stream.advance_cursor(length)
    with pytest.raises(ValueError):
        stream.advance_cursor(length - 1)
    with pytest.raises(ValueError):
        stream.advance_cursor(length + 1)


def test_release_stops_writes(stream):
    stream.begin_writing()
    stream.release()
    assert not stream.is_prepared
    assert stream.write("video", b"\x00", SampleInfo(is_keyframe=True)) is False


def test_reset_failure_is_surfaced(tmp_path, video_track):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    container = ContainerStream(blocker / "temp.webm")
    container.register_track(video_track)
    with pytest.raises(SessionResetError):
        container.reset()
    assert not container.is_prepared
