"""
Naming and storage of published fragments.

The output directory is a flat set of files:

    init.webm            initialization fragment (fixed name)
    segment0.webm        media fragment 0
    segment1.webm        media fragment 1
    ...

Media identities start at 0 for every session and are never reused or
skipped.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from webm_dash_live.container.cutter import FragmentOrderError
from webm_dash_live.container.stream import SessionResetError
from webm_dash_live.utils.file_utils import write_atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    identity: int
    path: Path
    size: int

    @property
    def exists(self) -> bool:
        return self.path.is_file()


class FragmentCatalog:
    def __init__(self, output_dir: Path, prefix: str, extension: str, init_filename: str):
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self.extension = extension
        self.init_filename = init_filename
        self._media_name_re = re.compile(rf"^{re.escape(prefix)}(\d+){re.escape(extension)}$")
        self._next_identity = 0
        self._entries: list[CatalogEntry] = []

    @property
    def init_path(self) -> Path:
        return self.output_dir / self.init_filename

    @property
    def entries(self) -> list[CatalogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def path_for(self, identity: int) -> Path:
        return self.output_dir / f"{self.prefix}{identity}{self.extension}"

    def next_identity(self) -> int:
        """Reserve the identity of the next media fragment."""
        identity = self._next_identity
        self._next_identity += 1
        return identity

    def publish(self, identity: int, data: bytes) -> CatalogEntry:
        """
        Persist a media fragment under its deterministic name.

        If the write fails, the reservation is handed back so the same
        identity is used by the next attempt and the series keeps no gap.
        """
        if identity != len(self._entries):
            raise FragmentOrderError(f"Expected fragment {len(self._entries)}, got {identity}")

        try:
            path = write_atomic(self.path_for(identity), data)
        except Exception:
            if identity == self._next_identity - 1:
                self._next_identity = identity
            raise

        entry = CatalogEntry(identity=identity, path=path, size=len(data))
        self._entries.append(entry)
        logger.info(f"Published {path.name} ({len(data)} bytes)")
        return entry

    def get(self, identity: int) -> CatalogEntry | None:
        if 0 <= identity < len(self._entries):
            return self._entries[identity]
        return None

    def is_published_name(self, filename: str) -> bool:
        """True for the init fragment and any media fragment published this session."""
        if filename == self.init_filename:
            return self.init_path.is_file()
        match = self._media_name_re.match(filename)
        if not match or (len(match.group(1)) > 1 and match.group(1).startswith("0")):
            return False
        return self.get(int(match.group(1))) is not None

    def reset(self) -> None:
        """
        Delete every fragment in the output directory and restart numbering at 0.

        Fragments left over from earlier runs are removed as well.

        Raises:
            SessionResetError: If a fragment cannot be deleted.
        """
        removed = 0
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            for path in self.output_dir.iterdir():
                if path.is_file() and (path.name == self.init_filename or self._media_name_re.match(path.name)):
                    path.unlink()
                    removed += 1
        except OSError as e:
            raise SessionResetError(f"Unable to clear fragments in {self.output_dir}: {e}") from e

        self._entries = []
        self._next_identity = 0
        logger.info(f"Catalog cleared ({removed} files removed)")
