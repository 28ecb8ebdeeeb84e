"""24-bit to 16-bit FLAC downsampling with SoX."""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console

from releasepack.config import ReleasePackConfig
from releasepack.core.pool import TaskPool
from releasepack.error_handling import (
    AudioFileError,
    UnsupportedBitDepthError,
    UnsupportedSampleRateError,
)
from releasepack.fs import copy_tree, find_files, lacks_suffix
from releasepack.models import FlacSpecs
from releasepack.services.flac import FlacTools
from releasepack.services.sox import Sox
from releasepack.verify.report import VerificationReport

logger = logging.getLogger(__name__)

# Source rate -> 16-bit rendition rate; the rate effect runs even when equal
TARGET_SAMPLE_RATES = {
    192000: 48000,
    96000: 48000,
    176400: 44100,
    88200: 44100,
    48000: 48000,
    44100: 44100,
}


def target_sample_rate(sample_rate: int) -> int:
    try:
        return TARGET_SAMPLE_RATES[sample_rate]
    except KeyError:
        raise UnsupportedSampleRateError(sample_rate) from None


@dataclass
class DownsampleSummary:
    """Counts of what a downsample pass did."""

    output_dir: Path
    resampled: int = 0
    copied: int = 0

    @property
    def mixed(self) -> bool:
        return bool(self.resampled and self.copied)


class Downsampler:
    """Builds a 16-bit FLAC rendition of a 24-bit release.

    24-bit files are resampled and dithered down; 16-bit files of a mixed
    release are copied as they are.
    """

    def __init__(
        self,
        config: ReleasePackConfig,
        pool: TaskPool,
        report: VerificationReport | None = None,
        console: Console | None = None,
    ):
        self.config = config
        self.pool = pool
        self.report = report
        self.console = console or (report.console if report else Console())
        self.flac = FlacTools(config)
        self.sox = Sox(config)

    async def downsample_file(self, spec: FlacSpecs, destination: Path) -> None:
        rate = target_sample_rate(spec.sample_rate)
        await self.sox.resample(spec.path, destination, rate)
        await self.flac.add_padding(destination)

    async def downsample_release(self, input_dir: Path, output_dir: Path) -> DownsampleSummary:
        self.console.print("  [blue]→[/blue] Downsampling 24-bit FLAC to 16-bit...")

        files = find_files(input_dir, ".flac")
        if not files:
            msg = f"No FLAC files found in {input_dir}"
            raise AudioFileError(msg)

        self.console.print(f"    [dim]Analyzing {len(files)} FLAC files...[/dim]")
        specs: list[FlacSpecs] = await self.pool.map(self.flac.specs, files)

        files_24 = [spec for spec in specs if spec.bit_depth == 24]
        files_16 = [spec for spec in specs if spec.bit_depth == 16]
        unsupported = [spec.path for spec in specs if spec.bit_depth not in (16, 24)]
        if unsupported:
            raise UnsupportedBitDepthError(unsupported)

        # Rates are checked up front so nothing is written for an unusable release
        for spec in files_24:
            target_sample_rate(spec.sample_rate)

        if files_24 and files_16 and self.report is not None:
            self.report.warn(
                "WARNING: MIXED BIT DEPTH RELEASE DETECTED",
                [
                    f"Found {len(files_24)} × 24-bit files and {len(files_16)} × 16-bit files",
                    "This release must be designated as MIXED BITRATE",
                    "Follow tracker-specific rules for mixed bitrate releases",
                ],
            )

        copy_tree(input_dir, output_dir, lacks_suffix(".flac"))

        async def resample(spec: FlacSpecs) -> None:
            await self.downsample_file(spec, output_dir / spec.path.relative_to(input_dir))

        def copy(spec: FlacSpecs) -> None:
            destination = output_dir / spec.path.relative_to(input_dir)
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(spec.path, destination)

        self.console.print(f"    [dim]Processing {len(files)} files...[/dim]")
        await self.pool.map(resample, files_24)
        await self.pool.map_blocking(copy, files_16)

        summary = DownsampleSummary(output_dir, resampled=len(files_24), copied=len(files_16))
        logger.info(
            "Downsampled %d files and copied %d 16-bit files into %s",
            summary.resampled,
            summary.copied,
            output_dir,
        )
        self.console.print(f"  [green]✓[/green] Downsampled to 16-bit: {output_dir.name}")
        return summary
