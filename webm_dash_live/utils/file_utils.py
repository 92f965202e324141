import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def write_atomic(path: Path, data: bytes) -> Path:
    """
    Write *data* to *path* via a temp file in the same directory and ``os.replace``.

    Readers serving the directory either see the previous state or the
    complete file, never a partially written fragment.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(tmp_fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def write_atomic_text(path: Path, text: str) -> Path:
    return write_atomic(path, text.encode("utf-8"))


def directory_size(path: Path) -> int:
    """Total size in bytes of the regular files directly inside *path*."""
    path = Path(path)
    if not path.is_dir():
        return 0
    return sum(entry.stat().st_size for entry in path.iterdir() if entry.is_file())
