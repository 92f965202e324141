"""
One live recording session: the container, the cutter, the catalog, the
manifest and the scheduler driving them.

The session is the only owner of that state. The encoder side talks to it
through ``register_track`` and ``write``; the serving side reads the catalog
and the rendered manifest.
"""

import logging
from datetime import datetime
from typing import Optional

import psutil

from webm_dash_live.configs import Settings
from webm_dash_live.container.cutter import FragmentCutter
from webm_dash_live.container.stream import ContainerStream, SessionResetError
from webm_dash_live.container.webm_muxer import SampleInfo, TrackDescriptor
from webm_dash_live.live.catalog import FragmentCatalog
from webm_dash_live.live.manifest import ManifestBuilder, format_iso8601_timestamp
from webm_dash_live.live.scheduler import SchedulerState, SegmentingScheduler
from webm_dash_live.utils.file_utils import directory_size, write_atomic_text

logger = logging.getLogger(__name__)


class LiveSession:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.stream = ContainerStream(settings.temp_path)
        self.cutter = FragmentCutter(self.stream)
        self.catalog = FragmentCatalog(
            output_dir=settings.output_dir,
            prefix=settings.segment_filename_prefix,
            extension=settings.segment_extension,
            init_filename=settings.init_segment_filename,
        )
        self.manifest = ManifestBuilder(
            segment_interval_sec=settings.segment_interval_sec,
            segment_filename_prefix=settings.segment_filename_prefix,
            segment_extension=settings.segment_extension,
            init_segment_filename=settings.init_segment_filename,
            codecs=settings.codecs,
        )
        self.scheduler = SegmentingScheduler(self, settings.segment_interval_sec)

    @property
    def state(self) -> SchedulerState:
        return self.scheduler.state

    def prepare(self) -> None:
        """
        Clear leftovers of earlier runs and create an empty container.

        Must not be called while the scheduler is running.

        Raises:
            SessionResetError: If the output directory cannot be prepared.
        """
        self.scheduler.reset()
        self.manifest.reset()
        self.catalog.reset()
        self._remove_manifest()
        self.stream.reset()
        self.cutter.reset()

    def register_track(self, descriptor: TrackDescriptor) -> None:
        self.stream.register_track(descriptor)

    def write(self, kind: str, data: bytes, info: SampleInfo) -> bool:
        return self.stream.write(kind, data, info)

    def start(self, now: Optional[datetime] = None) -> str:
        """
        Begin writing, publish the manifest and start cutting.

        Must be called from a running event loop. Returns the manifest.
        """
        if not self.stream.is_prepared:
            self.prepare()
        self.stream.begin_writing()
        document = self.manifest.render(now)
        write_atomic_text(self.settings.manifest_path, document)
        self.scheduler.start()
        return document

    async def stop(self) -> None:
        """Stop cutting and close the container. Published fragments stay available."""
        await self.scheduler.stop()
        self.stream.release()

    async def reset(self) -> None:
        """
        Stop and prepare a fresh session: fragments deleted, numbering back at 0,
        container recreated with the known tracks.

        Raises:
            SessionResetError: If the container or the catalog cannot be recreated.
        """
        await self.scheduler.stop()
        self.prepare()
        logger.info("Session reset")

    def status(self) -> dict:
        output_dir = self.settings.output_dir
        try:
            disk_free = psutil.disk_usage(str(output_dir)).free
        except OSError as e:
            logger.warning(f"Failed to get disk usage for {output_dir}: {e}")
            disk_free = None

        return {
            "state": self.state.value,
            "tracks": self.stream.registered_kinds,
            "writing": self.stream.is_writing,
            "init_produced": self.cutter.init_produced,
            "fragments": len(self.catalog),
            "container_bytes": self.stream.flushed_length(),
            "read_cursor": self.stream.read_cursor,
            "dropped_writes": self.stream.dropped_writes,
            "ticks": self.scheduler.ticks,
            "failed_ticks": self.scheduler.failed_ticks,
            "availability_start_time": (
                format_iso8601_timestamp(self.manifest.availability_start_time)
                if self.manifest.availability_start_time
                else None
            ),
            "output_bytes": directory_size(output_dir),
            "disk_free_bytes": disk_free,
        }

    def _remove_manifest(self) -> None:
        try:
            self.settings.manifest_path.unlink(missing_ok=True)
        except OSError as e:
            raise SessionResetError(f"Unable to remove manifest {self.settings.manifest_path}: {e}") from e
