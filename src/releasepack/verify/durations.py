"""Duration equivalence between a source release and its transcodes."""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from releasepack.core.pool import TaskPool
from releasepack.error_handling import DurationMismatchError
from releasepack.fs import find_files, relative_posix
from releasepack.models import AudioFileInfo, DurationMap
from releasepack.services.ffprobe import FFprobe

logger = logging.getLogger(__name__)

DURATION_TOLERANCE = 1.0


@dataclass(frozen=True)
class DurationMismatch:
    """One transcoded file outside the tolerance."""

    name: str
    expected: float
    actual: float

    @property
    def difference(self) -> float:
        return abs(self.actual - self.expected)

    def __str__(self) -> str:
        return (
            f"{self.name}: Expected {self.expected:.2f}s, got {self.actual:.2f}s "
            f"(diff: {self.difference:.2f}s)"
        )


def source_key(relative: str, source_suffix: str = ".flac") -> str:
    """Map a rendition-relative .mp3 path to its source duration key."""
    return str(PurePosixPath(relative).with_suffix(source_suffix))


def lookup_duration(durations: DurationMap, key: str) -> float | None:
    """Exact key first, then a case-insensitive match."""
    if key in durations:
        return durations[key]
    lowered = key.lower()
    for candidate, duration in durations.items():
        if candidate.lower() == lowered:
            return duration
    return None


def compare_durations(
    measured: dict[str, float],
    durations: DurationMap,
    *,
    source_suffix: str = ".flac",
    tolerance: float = DURATION_TOLERANCE,
) -> list[DurationMismatch]:
    """Compare measured rendition durations against the source map.

    Files with no source entry are logged and skipped.
    """
    mismatches = []
    for relative, actual in measured.items():
        expected = lookup_duration(durations, source_key(relative, source_suffix))
        if expected is None:
            logger.warning(f"No source duration recorded for {relative}")
            continue
        if abs(actual - expected) > tolerance:
            mismatches.append(DurationMismatch(PurePosixPath(relative).name, expected, actual))
    return mismatches


async def validate_durations(
    rendition_dir: Path,
    durations: DurationMap,
    pool: TaskPool,
    ffprobe: FFprobe,
    *,
    source_suffix: str = ".flac",
    tolerance: float = DURATION_TOLERANCE,
) -> None:
    """Probe every MP3 in a rendition and fail on any duration drift."""
    files = find_files(rendition_dir, ".mp3")
    if not files:
        logger.warning(f"No MP3 files to validate in {rendition_dir}")
        return

    results: list[AudioFileInfo] = await pool.map(ffprobe.probe, files)
    measured = {relative_posix(info.path, rendition_dir): info.duration for info in results}

    mismatches = compare_durations(
        measured,
        durations,
        source_suffix=source_suffix,
        tolerance=tolerance,
    )
    if mismatches:
        raise DurationMismatchError(mismatches, tolerance)

    logger.info(f"All {len(files)} transcoded files in {rendition_dir.name} match source durations")
