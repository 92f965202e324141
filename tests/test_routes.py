"""End-to-end tests of the HTTP surface: ingest, session control and DASH serving."""

import pytest
from fastapi.testclient import TestClient

from webm_dash_live.main import create_app

VIDEO_TRACK = {"kind": "video", "codec_id": "vp9", "width": 640, "height": 360}


def _client(settings):
    return TestClient(create_app(settings))


@pytest.fixture
def live_settings(app_settings):
    # Cuts are driven by hand in these tests
    return app_settings.model_copy(update={"segment_interval_sec": 3600})


@pytest.fixture
def client(live_settings):
    with _client(live_settings) as test_client:
        yield test_client


def _post_frame(client, pts_us: int, keyframe: bool = False, kind: str = "video"):
    return client.post(
        f"/ingest/{kind}/samples",
        content=b"\x00" * 64,
        headers={"X-Presentation-Time-Us": str(pts_us), "X-Keyframe": "true" if keyframe else "false"},
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_manifest_is_missing_before_start(client):
    assert client.get("/manifest.mpd").status_code == 404


def test_register_track(client):
    response = client.post("/ingest/tracks", json=VIDEO_TRACK)
    assert response.status_code == 200
    assert response.json() == {"kind": "video", "registered": True}


def test_register_track_rejects_bad_codec_private(client):
    response = client.post("/ingest/tracks", json={**VIDEO_TRACK, "codec_private": "not base64!"})
    assert response.status_code == 422


def test_samples_before_start_are_dropped(client):
    client.post("/ingest/tracks", json=VIDEO_TRACK)
    response = _post_frame(client, 0, keyframe=True)
    assert response.status_code == 200
    assert response.json() == {"accepted": False}


def test_unknown_track_kind_is_rejected(client):
    assert _post_frame(client, 0, kind="subtitle").status_code == 422


def test_unregistered_track_kind_is_dropped(client):
    client.post("/ingest/tracks", json=VIDEO_TRACK)
    client.post("/session/start")
    assert _post_frame(client, 0, kind="audio").json() == {"accepted": False}


def test_live_flow(client, live_settings):
    client.post("/ingest/tracks", json=VIDEO_TRACK)

    response = client.post("/session/start", json={"availability_start_time": "2024-05-01T12:00:00+00:00"})
    assert response.status_code == 200
    assert response.json()["state"] == "recording"

    manifest = client.get("/manifest.mpd")
    assert manifest.status_code == 200
    assert manifest.headers["content-type"].startswith("application/dash+xml")
    assert 'availabilityStartTime="2024-05-01T12:00:00+00:00"' in manifest.text
    assert 'media="/segment$Number$.webm"' in manifest.text

    for i in range(3):
        assert _post_frame(client, i * 33_000, keyframe=i == 0).json() == {"accepted": True}

    session = client.app.state.session
    result = session.scheduler.tick()
    assert result.init_produced and result.identity == 0

    init = client.get("/init.webm")
    assert init.status_code == 200
    assert init.headers["content-type"] == "video/webm"
    assert init.content == (live_settings.output_dir / "init.webm").read_bytes()

    segment = client.get("/segment0.webm")
    assert segment.status_code == 200
    assert init.content + segment.content == live_settings.temp_path.read_bytes()

    assert client.get("/segment1.webm").status_code == 404
    assert client.get("/temp.webm").status_code == 404

    status = client.get("/session/status").json()
    assert status["fragments"] == 1
    assert status["tracks"] == ["video"]


def test_reset_withdraws_fragments(client):
    client.post("/ingest/tracks", json=VIDEO_TRACK)
    client.post("/session/start")
    _post_frame(client, 0, keyframe=True)
    client.app.state.session.scheduler.tick()
    assert client.get("/segment0.webm").status_code == 200

    response = client.post("/session/reset")
    assert response.status_code == 200
    assert response.json()["fragments"] == 0
    assert response.json()["state"] == "idle"

    assert client.get("/init.webm").status_code == 404
    assert client.get("/segment0.webm").status_code == 404
    assert client.get("/manifest.mpd").status_code == 404


def test_stop_keeps_serving_published_fragments(client):
    client.post("/ingest/tracks", json=VIDEO_TRACK)
    client.post("/session/start")
    _post_frame(client, 0, keyframe=True)
    client.app.state.session.scheduler.tick()

    response = client.post("/session/stop")
    assert response.json()["state"] == "idle"
    assert client.get("/init.webm").status_code == 200
    assert client.get("/segment0.webm").status_code == 200
    assert _post_frame(client, 33_000).json() == {"accepted": False}


def test_api_password_protects_control_routes(live_settings):
    with _client(live_settings.model_copy(update={"api_password": "secret"})) as client:
        assert client.get("/session/status").status_code == 403
        assert client.post("/ingest/tracks", json=VIDEO_TRACK).status_code == 403
        assert client.get("/session/status", params={"api_password": "secret"}).status_code == 200
        assert client.get("/session/status", headers={"api_password": "secret"}).status_code == 200
        # Playback stays public
        assert client.get("/health").status_code == 200
        assert client.get("/manifest.mpd").status_code == 404


def test_player_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "manifest.mpd" in response.text
    assert "dash" in response.text


def test_player_page_can_be_disabled(live_settings):
    with _client(live_settings.model_copy(update={"disable_player_page": True})) as client:
        assert client.get("/").status_code == 404
