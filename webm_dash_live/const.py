DASH_MPD_NAMESPACE = "urn:mpeg:dash:schema:mpd:2011"

DASH_PROFILES = "urn:mpeg:dash:profile:isoff-live:2011,http://dashif.org/guidelines/dash-if-simple"

DASH_ROLE_SCHEME = "urn:mpeg:dash:role:2011"

DASH_MANIFEST_MEDIA_TYPE = "application/dash+xml"

WEBM_VIDEO_MIME_TYPE = "video/webm"

# Request headers carrying per-sample metadata on the ingest route
PRESENTATION_TIME_HEADER = "X-Presentation-Time-Us"
KEYFRAME_HEADER = "X-Keyframe"
CODEC_CONFIG_HEADER = "X-Codec-Config"
