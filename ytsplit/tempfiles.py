"""Scoped temporary files that are removed unless explicitly kept."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class TempFile:
    """Delete ``path`` when the ``with`` block exits, on every path out.

    Call :meth:`keep` to retain the file instead. The file does not have to
    exist yet; it is usually created by an external tool inside the block.
    """

    def __init__(self, path: Path, keep: bool = False):
        self.path = Path(path)
        self._keep = keep

    def keep(self) -> None:
        self._keep = True

    @property
    def kept(self) -> bool:
        return self._keep

    def cleanup(self) -> None:
        if self._keep or not self.path.exists():
            return
        try:
            self.path.unlink()
            logger.debug("Removed temp file %s", self.path)
        except OSError as e:
            logger.warning("Failed to remove temp file %s: %s", self.path, e)

    def __enter__(self) -> "TempFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
