from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "INFO"  # The logging level to use.
    host: str = "0.0.0.0"  # Interface the HTTP server binds to.
    port: int = 8080  # Port the HTTP server listens on.
    api_password: str | None = None  # The password for protecting the ingest and session endpoints.
    disable_player_page: bool = False  # Whether to disable the dash.js player page at "/".

    output_dir: Path = Field(Path("dash_output"), description="Directory holding the container and the fragments.")
    temp_filename: str = "temp.webm"  # The growing container file, never published.
    init_segment_filename: str = "init.webm"  # Fixed name of the initialization fragment.
    segment_filename_prefix: str = "segment"  # Media fragments are named <prefix><N><extension>.
    segment_extension: str = ".webm"
    manifest_filename: str = "manifest.mpd"
    segment_interval_sec: int = Field(3, description="Seconds between two fragment cuts.")

    video_codec: str = "vp9"  # DASH codecs value of the video track.
    audio_codec: Optional[str] = None  # DASH codecs value of the audio track, if any (e.g. "opus").

    @field_validator("segment_interval_sec")
    @classmethod
    def validate_segment_interval(cls, value: int) -> int:
        if value < 1:
            raise ValueError("segment_interval_sec must be at least 1")
        return value

    @property
    def codecs(self) -> str:
        if self.audio_codec:
            return f"{self.video_codec},{self.audio_codec}"
        return self.video_codec

    @property
    def temp_path(self) -> Path:
        return self.output_dir / self.temp_filename

    @property
    def manifest_path(self) -> Path:
        return self.output_dir / self.manifest_filename

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
