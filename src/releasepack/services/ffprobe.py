"""ffprobe wrapper for channel count and duration."""

import logging
from pathlib import Path

from releasepack.config import ReleasePackConfig
from releasepack.error_handling import AudioFileError
from releasepack.models import AudioFileInfo
from releasepack.services.tools import run_tool

logger = logging.getLogger(__name__)

PROBE_ARGS = (
    "-v",
    "error",
    "-select_streams",
    "a:0",
    "-show_entries",
    "stream=channels:format=duration",
    "-of",
    "default=noprint_wrappers=1",
)


def parse_probe_output(output: str, path: Path) -> AudioFileInfo:
    """Read channels= and duration= lines from ffprobe's key=value output."""
    channels = 0
    duration = 0.0

    for line in output.strip().splitlines():
        key, _, value = line.strip().partition("=")
        try:
            if key == "channels":
                channels = int(value)
            elif key == "duration":
                duration = float(value)
        except ValueError:
            logger.debug(f"Ignoring unparsable ffprobe line for {path.name}: {line}")

    if channels == 0 or duration == 0:
        msg = f"Failed to get audio info for {path}"
        raise AudioFileError(msg, details=output.strip() or None)

    return AudioFileInfo(path=path, channels=channels, duration=duration)


class FFprobe:
    """Async wrapper for ffprobe."""

    def __init__(self, config: ReleasePackConfig):
        self.config = config
        self.binary = config.ffprobe_path

    async def probe(self, path: Path) -> AudioFileInfo:
        result = await run_tool(self.binary, *PROBE_ARGS, path)
        return parse_probe_output(result.stdout, path)
