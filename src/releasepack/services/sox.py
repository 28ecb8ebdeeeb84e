"""SoX wrapper for resampling and spectrogram rendering."""

import logging
from pathlib import Path

from releasepack.config import ReleasePackConfig
from releasepack.services.tools import run_tool

logger = logging.getLogger(__name__)


class Sox:
    """Async wrapper for sox (or sox_ng)."""

    def __init__(self, config: ReleasePackConfig):
        self.config = config
        self.binary = config.sox_path

    def resample_args(self, source: Path, destination: Path, target_rate: int) -> list[str]:
        """16-bit output, linear-phase very-high-quality rate filter, dithered."""
        return [
            "-S",
            str(source),
            "-R",
            "-G",
            "-b",
            "16",
            str(destination),
            "rate",
            "-v",
            "-L",
            str(target_rate),
            "dither",
        ]

    async def resample(self, source: Path, destination: Path, target_rate: int) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        await run_tool(self.binary, *self.resample_args(source, destination, target_rate))

    def spectrogram_args(self, source: Path, output: Path, *, zoom: bool = False) -> list[str]:
        args = [str(source), "-n", "remix", "1", "spectrogram"]
        if zoom:
            args += ["-x", "500", "-y", "1025", "-z", "120", "-w", "Kaiser", "-S", "1:00", "-d", "0:02"]
        else:
            args += ["-x", "3000", "-y", "513", "-z", "120", "-w", "Kaiser"]
        return [*args, "-o", str(output)]

    async def render_spectrograms(self, source: Path, output_dir: Path) -> tuple[Path, Path]:
        """Render full-length and two-second zoom spectrograms for one file."""
        output_dir.mkdir(parents=True, exist_ok=True)
        full = output_dir / f"{source.stem}_full.png"
        zoom = output_dir / f"{source.stem}_zoom.png"

        await run_tool(self.binary, *self.spectrogram_args(source, full))
        await run_tool(self.binary, *self.spectrogram_args(source, zoom, zoom=True))
        return full, zoom
