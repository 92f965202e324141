"""
Live MPEG-DASH manifest for the published fragments.

The manifest is rendered once per session. Fragment numbering is expressed
through a ``$Number$`` template starting at 0, so the document never changes
while fragments accumulate: the player derives the newest fragment number
from ``availabilityStartTime`` and the fragment duration.
"""

import logging
from datetime import datetime
from typing import Optional

import xmltodict

from webm_dash_live.const import (
    DASH_MPD_NAMESPACE,
    DASH_PROFILES,
    DASH_ROLE_SCHEME,
    WEBM_VIDEO_MIME_TYPE,
)

logger = logging.getLogger(__name__)


def format_iso8601_timestamp(moment: datetime) -> str:
    """``YYYY-MM-DDTHH:MM:SS+HH:MM``; naive datetimes are taken as host local time."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment.isoformat(timespec="seconds")


def format_iso8601_duration(seconds: int) -> str:
    return f"PT{seconds}S"


class ManifestBuilder:
    def __init__(
        self,
        segment_interval_sec: int,
        segment_filename_prefix: str,
        segment_extension: str,
        init_segment_filename: str,
        codecs: str,
    ):
        if segment_interval_sec < 1:
            raise ValueError(f"Fragment interval must be at least 1 second, got {segment_interval_sec}")
        self.segment_interval_sec = segment_interval_sec
        self.segment_filename_prefix = segment_filename_prefix
        self.segment_extension = segment_extension
        self.init_segment_filename = init_segment_filename
        self.codecs = codecs
        self.availability_start_time: Optional[datetime] = None
        self._document: Optional[str] = None

    @property
    def rendered(self) -> bool:
        return self._document is not None

    @property
    def media_template(self) -> str:
        return f"/{self.segment_filename_prefix}$Number${self.segment_extension}"

    def render(self, now: Optional[datetime] = None) -> str:
        """
        Return the manifest, building it on the first call of the session.

        *now* fixes ``availabilityStartTime``; it is only used by the first
        call, later calls return the cached document verbatim.
        """
        if self._document is not None:
            return self._document

        now = now or datetime.now()
        self.availability_start_time = now if now.tzinfo else now.astimezone()
        self._document = xmltodict.unparse(self._build(self.availability_start_time), pretty=True)
        logger.info(f"Manifest rendered, availabilityStartTime={self._availability_start_attr}")
        return self._document

    def reset(self) -> None:
        self.availability_start_time = None
        self._document = None

    @property
    def _availability_start_attr(self) -> str:
        return format_iso8601_timestamp(self.availability_start_time)

    def _build(self, availability_start_time: datetime) -> dict:
        duration = format_iso8601_duration(self.segment_interval_sec)
        return {
            "MPD": {
                "@xmlns": DASH_MPD_NAMESPACE,
                "@availabilityStartTime": format_iso8601_timestamp(availability_start_time),
                "@maxSegmentDuration": duration,
                "@minBufferTime": duration,
                "@type": "dynamic",
                "@profiles": DASH_PROFILES,
                "BaseURL": "/",
                "Period": {
                    "@start": "PT0S",
                    "AdaptationSet": {
                        "@mimeType": WEBM_VIDEO_MIME_TYPE,
                        "Role": {"@schemeIdUri": DASH_ROLE_SCHEME, "@value": "main"},
                        "SegmentTemplate": {
                            "@duration": str(self.segment_interval_sec),
                            "@initialization": f"/{self.init_segment_filename}",
                            "@media": self.media_template,
                            "@startNumber": "0",
                        },
                        "Representation": {"@id": "default", "@codecs": self.codecs},
                    },
                },
            }
        }
