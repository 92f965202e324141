import logging

from fastapi import APIRouter, Depends, Header, Request

from webm_dash_live.const import CODEC_CONFIG_HEADER, KEYFRAME_HEADER, PRESENTATION_TIME_HEADER
from webm_dash_live.container.webm_muxer import SampleInfo
from webm_dash_live.live.session import LiveSession
from webm_dash_live.routes.dependencies import get_session
from webm_dash_live.schemas import TrackKind, TrackRegistrationRequest

logger = logging.getLogger(__name__)

ingest_router = APIRouter()


@ingest_router.post("/tracks")
async def register_track(track: TrackRegistrationRequest, session: LiveSession = Depends(get_session)):
    """
    Register the format of a track with the container.

    Formats registered after writing began only take effect after the next session reset.
    """
    session.register_track(track.to_descriptor())
    return {"kind": track.kind, "registered": track.kind in session.stream.registered_kinds}


@ingest_router.post("/{kind}/samples")
async def write_sample(
    kind: TrackKind,
    request: Request,
    presentation_time_us: int = Header(0, alias=PRESENTATION_TIME_HEADER),
    keyframe: bool = Header(False, alias=KEYFRAME_HEADER),
    codec_config: bool = Header(False, alias=CODEC_CONFIG_HEADER),
    session: LiveSession = Depends(get_session),
):
    """
    Append one encoded sample to the container.

    Samples are dropped, not queued, while a cut is in progress or before the session started.
    """
    data = await request.body()
    info = SampleInfo(presentation_time_us=presentation_time_us, is_keyframe=keyframe, is_codec_config=codec_config)
    return {"accepted": session.write(kind.value, data, info)}
