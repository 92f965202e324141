import base64
import binascii
from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from webm_dash_live.container.webm_muxer import TrackDescriptor


class TrackKind(str, Enum):
    video = "video"
    audio = "audio"


class TrackRegistrationRequest(BaseModel):
    kind: Literal["video", "audio"] = Field(..., description="Media type of the track.")
    codec_id: str = Field(..., description="Matroska CodecID (V_VP9, A_OPUS, ...) or short name (vp9, opus, ...).")
    codec_private: str = Field("", description="Base64-encoded codec initialization data.")
    width: int = Field(0, ge=0, description="Video width in pixels.")
    height: int = Field(0, ge=0, description="Video height in pixels.")
    sample_rate: float = Field(0.0, ge=0, description="Audio sampling frequency in Hz.")
    channels: int = Field(0, ge=0, description="Audio channel count.")

    @field_validator("codec_private")
    @classmethod
    def validate_codec_private(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ValueError(f"codec_private is not valid base64: {e}")
        return value

    def to_descriptor(self) -> TrackDescriptor:
        return TrackDescriptor(
            kind=self.kind,
            codec_id=self.codec_id,
            codec_private=base64.b64decode(self.codec_private),
            width=self.width,
            height=self.height,
            sample_rate=self.sample_rate,
            channels=self.channels,
        )


class SessionStartRequest(BaseModel):
    availability_start_time: Optional[datetime] = Field(
        None, description="Overrides the manifest availability start time. Defaults to now."
    )
