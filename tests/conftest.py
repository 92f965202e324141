"""
Pytest configuration and shared fixtures.

Every test gets its own output directory under ``tmp_path``; nothing is read
from the developer's ``.env``.
"""

import pytest

from webm_dash_live.configs import Settings
from webm_dash_live.container.webm_muxer import SampleInfo, TrackDescriptor
from webm_dash_live.live.session import LiveSession


def pytest_configure(config):
    """Configure pytest-asyncio mode."""
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture
def app_settings(tmp_path):
    return Settings(_env_file=None, output_dir=tmp_path / "dash", segment_interval_sec=3, api_password=None)


@pytest.fixture
def video_track():
    return TrackDescriptor(kind="video", codec_id="vp9", width=640, height=360)


@pytest.fixture
def audio_track():
    return TrackDescriptor(kind="audio", codec_id="opus", sample_rate=48000.0, channels=2)


@pytest.fixture
def session(app_settings, video_track):
    live_session = LiveSession(app_settings)
    live_session.prepare()
    live_session.register_track(video_track)
    yield live_session
    live_session.stream.release()


@pytest.fixture
def write_frames():
    """
    Factory fixture writing video frames into a stream.

    Usage:
        write_frames(stream, count=5, keyframe_every=3)
    """

    def _write(stream, count: int, start_us: int = 0, frame_us: int = 33_000, keyframe_every: int = 30, size: int = 64):
        accepted = 0
        for i in range(count):
            info = SampleInfo(presentation_time_us=start_us + i * frame_us, is_keyframe=i % keyframe_every == 0)
            accepted += stream.write("video", bytes([i % 251]) * size, info)
        return accepted

    return _write
