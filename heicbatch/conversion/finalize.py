"""Publish staging artifacts to their final path, or discard them."""
import logging
from pathlib import Path

from heicbatch.conversion.errors import FinalizeError

logger = logging.getLogger("heicbatch.finalize")


class OutputFinalizer:
    """Write-then-publish protocol for one task's output.

    Any object already at the final path is replaced unconditionally.
    """

    def __init__(self, fs):
        self._fs = fs

    def publish(self, staging_path: Path, final_path: Path) -> None:
        """Move a complete staging artifact to final_path.

        Raises FinalizeError after removing the staging artifact if the old
        output cannot be removed or the rename fails.
        """
        try:
            self._fs.delete_if_exists(final_path)
            self._fs.atomic_rename(staging_path, final_path)
        except OSError as e:
            logger.warning("Could not finalize %s: %s", Path(final_path).name, e)
            self.discard(staging_path)
            raise FinalizeError(str(e)) from e

    def discard(self, staging_path: Path) -> None:
        """Remove a partial or orphaned staging artifact. The final path is never touched."""
        try:
            self._fs.delete_if_exists(staging_path)
        except OSError as e:
            logger.error("Could not remove staging file %s: %s", staging_path, e)

    def staging_path_for(self, final_path: Path) -> Path:
        return self._fs.staging_path_for(final_path)
