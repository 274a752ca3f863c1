"""
Whole-file writes that never leave a truncated file behind.

The content goes to a temporary file in the destination directory and is
then renamed over the target. There is no cross-process locking: two
concurrent writers still race, and the last rename wins.
"""

import os
import tempfile
from pathlib import Path

from ..errors import FilesystemError


def atomic_write_text(path: Path, content: str) -> None:
    """Write `content` to `path` via temp file + rename.

    Raises:
        FilesystemError: The directory or file could not be written.
    """
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp.write(content)
            tmp_path = Path(tmp.name)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise FilesystemError(f"Cannot write {path}: {e}") from e
