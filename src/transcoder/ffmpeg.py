"""FFmpeg-backed transcoder.

Runs one codec pass per profile as a child process. A pass either
finishes, fails with TranscodeFailureError or exceeds its budget and is
stopped (SIGTERM, grace period, SIGKILL) before TranscodeTimeoutError is
raised. The child process never outlives the call.
"""

import os
import subprocess

from aws_lambda_powertools import Logger

from ..job_pipeline.profiles import build_ffmpeg_args
from ..shared.exceptions import ToolchainError, TranscodeFailureError, TranscodeTimeoutError
from ..shared.models import EncodingProfile

logger = Logger(service="transcoder")

# Keep error details small enough for the ledger and API responses
STDERR_TAIL_CHARS = 2000


class FFmpegTranscoder:
    """Transcoder implementation invoking the ffmpeg CLI."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        termination_grace_seconds: float = 5.0,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.termination_grace_seconds = termination_grace_seconds

    def run(
        self,
        input_path: str,
        output_path: str,
        profile: EncodingProfile,
        timeout_seconds: float,
    ) -> None:
        """Render one profile.

        Args:
            input_path: Local source file
            output_path: Local rendition file to create
            profile: Profile to render
            timeout_seconds: Wall-clock budget for the pass

        Raises:
            TranscodeTimeoutError: Budget exceeded; the process has been stopped
            ToolchainError: FFmpeg could not be started
            TranscodeFailureError: FFmpeg exited non-zero or wrote nothing
        """
        args = build_ffmpeg_args(profile, input_path, output_path, ffmpeg_path=self.ffmpeg_path)

        logger.info(
            "Starting transcode",
            extra={
                "profile": profile.name,
                "target_height": profile.target_height,
                "timeout_seconds": timeout_seconds,
            },
        )

        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise ToolchainError(
                f"Could not start FFmpeg: {e}",
                {"profile": profile.name, "ffmpeg_path": self.ffmpeg_path},
            ) from e

        try:
            _, stderr = process.communicate(timeout=timeout_seconds)
        except subprocess.TimeoutExpired:
            forced = self._stop(process, profile)
            raise TranscodeTimeoutError(profile.name, timeout_seconds, forced=forced)
        except BaseException:
            process.kill()
            process.wait()
            raise

        if process.returncode != 0:
            tail = (stderr or "")[-STDERR_TAIL_CHARS:]
            logger.error(
                "Transcode failed",
                extra={"profile": profile.name, "returncode": process.returncode, "stderr": tail},
            )
            raise TranscodeFailureError(
                f"FFmpeg exited with code {process.returncode} for {profile.name}",
                {"profile": profile.name, "returncode": process.returncode, "stderr": tail},
            )

        if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
            raise TranscodeFailureError(
                f"FFmpeg produced no output for {profile.name}",
                {"profile": profile.name, "output_path": output_path},
            )

        logger.info("Completed transcode", extra={"profile": profile.name})

    def _stop(self, process: subprocess.Popen, profile: EncodingProfile) -> bool:
        """Terminate, then kill if the process ignores SIGTERM.

        Returns:
            True if SIGKILL was needed
        """
        logger.warning(
            "Transcode exceeded its budget, terminating",
            extra={"profile": profile.name, "pid": process.pid},
        )
        process.terminate()
        try:
            process.communicate(timeout=self.termination_grace_seconds)
            return False
        except subprocess.TimeoutExpired:
            logger.error(
                "Transcode did not terminate gracefully, killing",
                extra={"profile": profile.name, "pid": process.pid},
            )
            process.kill()
            process.communicate()
            return True
