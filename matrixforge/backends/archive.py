"""Archive tool backends.

``ArchiveTool.compress(files)`` turns a set of files into archive bytes.
The default ``TarGzArchiver`` stores each file under its own name and keeps
its permission bits, so an executable stays executable after extraction.
"""

from __future__ import annotations

import io
import tarfile
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class ArchiveTool(Protocol):
    """Protocol for archive backends."""

    extension: str

    def compress(self, files: Sequence[Path]) -> bytes:
        """Return the archive bytes containing *files* (flat, by file name)."""
        ...


class TarGzArchiver:
    """gzip-compressed tar archives (``.tar.gz``)."""

    extension = "tar.gz"

    def compress(self, files: Sequence[Path]) -> bytes:
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
            for path in files:
                path = Path(path)
                info = tar.gettarinfo(str(path), arcname=path.name)
                # Ownership is meaningless to whoever downloads the release.
                info.uid = info.gid = 0
                info.uname = info.gname = ""
                with path.open("rb") as fh:
                    tar.addfile(info, fh)
        return buffer.getvalue()
