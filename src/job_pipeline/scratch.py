"""Per-invocation scratch storage for downloaded sources and renditions.

Each pipeline run gets its own directory under the scratch root, prefixed
with the job identity. Every file handed out is registered immediately and
removed when the scratch space is closed, whatever the run's outcome.
"""

import os
import shutil
import tempfile
from types import TracebackType

from aws_lambda_powertools import Logger

logger = Logger(service="scratch-space")


class ScratchSpace:
    """Context manager owning the temporary files of one job invocation.

    Example:
        >>> with ScratchSpace("/tmp", "my-vacation") as scratch:
        ...     source = scratch.path_for("input.mp4")
        ...     # download into source, transcode, upload
        # every registered file and the directory are gone here
    """

    def __init__(self, root: str, job_id: str) -> None:
        self.root = root
        self.job_id = job_id
        self.directory: str | None = None
        self._registered: list[str] = []

    def __enter__(self) -> "ScratchSpace":
        os.makedirs(self.root, exist_ok=True)
        self.directory = tempfile.mkdtemp(prefix=f"{self.job_id}_", dir=self.root)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    @property
    def registered(self) -> list[str]:
        """Paths registered so far, in creation order."""
        return list(self._registered)

    def path_for(self, filename: str) -> str:
        """Return a registered path for a new file in this invocation's directory."""
        if self.directory is None:
            raise RuntimeError("ScratchSpace used outside its context")

        path = os.path.join(self.directory, f"{self.job_id}_{filename}")
        self._registered.append(path)
        return path

    def cleanup(self) -> list[str]:
        """Delete every registered file and the scratch directory.

        Deletion errors are logged, never raised.

        Returns:
            Paths that could not be removed
        """
        leftovers: list[str] = []

        for path in self._registered:
            try:
                if os.path.exists(path):
                    os.remove(path)
                    logger.debug("Removed scratch file", extra={"path": path})
            except OSError as e:
                leftovers.append(path)
                logger.warning(
                    "Failed to remove scratch file",
                    extra={"path": path, "error": str(e)},
                )

        if self.directory is not None:
            try:
                shutil.rmtree(self.directory)
            except FileNotFoundError:
                pass
            except OSError as e:
                leftovers.append(self.directory)
                logger.warning(
                    "Failed to remove scratch directory",
                    extra={"path": self.directory, "error": str(e)},
                )

        self._registered.clear()
        return leftovers
