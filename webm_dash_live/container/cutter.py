"""
Slices the growing container into one initialization fragment followed by
numbered media fragments.

The initialization fragment is everything before the first Cluster. Each
media fragment is whatever was flushed since the previous cut. Cuts are not
aligned to Cluster boundaries: a media fragment may end inside a Cluster and
the next one continues it, so only the concatenation init + 0 + 1 + ... is a
valid WebM stream.
"""

import logging
from pathlib import Path
from typing import Optional

from webm_dash_live.container.ebml import find_cluster_start
from webm_dash_live.container.stream import ContainerStream
from webm_dash_live.utils.file_utils import write_atomic

logger = logging.getLogger(__name__)


class FragmentOrderError(Exception):
    """A cut was requested out of order for the current session."""


class FragmentCutter:
    def __init__(self, stream: ContainerStream):
        self.stream = stream
        self.init_produced = False

    def reset(self) -> None:
        self.init_produced = False

    def cut_initialization_fragment(self, destination: Optional[Path] = None) -> Optional[bytes]:
        """
        Copy the container header (everything before the first Cluster).

        Returns the fragment bytes, or None when no Cluster has been flushed
        yet; in that case nothing is written and the call can simply be
        repeated later.

        Raises:
            FragmentOrderError: If the initialization fragment was already cut.
        """
        if self.init_produced:
            raise FragmentOrderError("Initialization fragment already produced for this session")

        with self.stream.exclusive():
            head = self.stream.read_range(0, self.stream.flushed_length())
            boundary = find_cluster_start(head)
            if boundary is None:
                logger.debug(f"No cluster yet in {len(head)} flushed bytes")
                return None
            fragment = head[:boundary]
            self.stream.advance_cursor(boundary)

        if destination is not None:
            write_atomic(destination, fragment)
        self.init_produced = True
        logger.info(f"Initialization fragment produced ({len(fragment)} bytes)")
        return fragment

    def cut_media_fragment(self, destination: Optional[Path] = None) -> bytes:
        """
        Copy everything flushed since the previous cut.

        An empty result is valid: it means nothing was written since the last
        cut (stalled encoder, or every sample dropped).

        Raises:
            FragmentOrderError: If the initialization fragment does not exist yet.
        """
        if not self.init_produced:
            raise FragmentOrderError("Media fragment requested before the initialization fragment")

        with self.stream.exclusive():
            start = self.stream.read_cursor
            fragment = self.stream.read_range(start, self.stream.flushed_length())
            self.stream.advance_cursor(start + len(fragment))

        if destination is not None:
            write_atomic(destination, fragment)
        logger.debug(f"Media fragment cut: [{start}, {start + len(fragment)})")
        return fragment
