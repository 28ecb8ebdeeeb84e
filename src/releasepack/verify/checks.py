"""Release verification checks run before anything is modified."""

import logging
import unicodedata
from pathlib import Path

from mutagen import MutagenError
from rich.console import Console

from releasepack.config import ReleasePackConfig
from releasepack.core.pool import TaskPool
from releasepack.error_handling import ChannelCountError, MissingBitDepthTagError
from releasepack.fs import find_files, relative_posix, walk_directories, walk_files
from releasepack.models import AudioFileInfo, DurationMap, ReleaseDescriptor
from releasepack.release.parser import has_bit_depth_in_format_tag
from releasepack.services.ffprobe import FFprobe
from releasepack.services.flac import FlacTools
from releasepack.services.hbcl import LogChecker
from releasepack.services.tags import NORMALIZED_TAGS, has_id3_tags, read_flac_tags
from releasepack.verify.report import VerificationReport, summarize_items

logger = logging.getLogger(__name__)

AUDIO_SUFFIXES = (".flac", ".mp3", ".m4a", ".wav")
SUSPICIOUS_DURATION = 1.0


def validate_channel_count(info: AudioFileInfo) -> None:
    if info.channels not in (1, 2):
        raise ChannelCountError(info.path, info.channels)


def is_nfc(value: str) -> bool:
    return unicodedata.normalize("NFC", value) == value


def find_unnormalized_paths(release_dir: Path) -> list[str]:
    """Release name, directories and files whose names are not NFC."""
    issues = []
    if not is_nfc(release_dir.name):
        issues.append(f'Release directory name: "{release_dir.name}"')
    for directory in walk_directories(release_dir):
        relative = relative_posix(directory, release_dir)
        if not is_nfc(directory.name):
            issues.append(f'Directory: "{relative}"')
    for path in walk_files(release_dir):
        if not is_nfc(path.name):
            issues.append(f'Path: "{relative_posix(path, release_dir)}"')
    return issues


def find_unnormalized_tags(path: Path) -> list[str]:
    """Text tags of one FLAC file whose values are not NFC."""
    try:
        tags = read_flac_tags(path)
    except (MutagenError, OSError) as e:
        logger.debug(f"Skipping tag normalization check for {path.name}: {e}")
        return []
    return [
        f"{path.name} - {key} tag"
        for key in NORMALIZED_TAGS
        if tags.get(key) and not is_nfc(tags[key])
    ]


class Verifier:
    """Runs every verification check for one release.

    Fatal problems raise; everything else is recorded on the report so the
    orchestrator can decide whether to stop at the confirmation gate.
    """

    def __init__(
        self,
        config: ReleasePackConfig,
        pool: TaskPool,
        report: VerificationReport,
        *,
        console: Console | None = None,
    ):
        self.config = config
        self.pool = pool
        self.report = report
        self.console = console or report.console
        self.flac = FlacTools(config)
        self.ffprobe = FFprobe(config)
        self.log_checker = LogChecker(config)

    async def verify(self, release: ReleaseDescriptor) -> DurationMap:
        """Run the checks appropriate for the release and return source durations."""
        if release.has_mp3:
            durations = await self.probe_audio_files(release.path)
        else:
            await self.test_flac_integrity(release.path)
            await self.check_legacy_tags(release.path)
            await self.check_unicode_normalization(release.path)
            durations = await self.probe_audio_files(release.path)
            await self.check_bit_depth_tag(release.path, release.basename)

        await self.check_log_files(release.path)
        return durations

    async def test_flac_integrity(self, release_dir: Path) -> None:
        files = find_files(release_dir, ".flac")
        if not files:
            return

        self.console.print(f"  [blue]→[/blue] Testing {len(files)} FLAC files...")
        await self.pool.map(self.flac.test_integrity, files)
        self.console.print("  [green]✓[/green] All FLAC files passed integrity test")

    async def check_legacy_tags(self, release_dir: Path) -> None:
        """Warn about FLAC files carrying ID3 instead of Vorbis comments."""
        files = find_files(release_dir, ".flac")
        if not files:
            return

        flags = await self.pool.map_blocking(has_id3_tags, files)
        id3_files = [path.name for path, flagged in zip(files, flags) if flagged]

        if id3_files:
            self.report.warn(
                "WARNING: FLAC FILES WITH ID3 TAGS DETECTED",
                [
                    f"Found {len(id3_files)} FLAC file(s) with ID3 tags instead of Vorbis comments",
                    "FLAC files should use Vorbis comments, not ID3 tags",
                    f"Files: {summarize_items(id3_files)}",
                ],
            )

    async def check_unicode_normalization(self, release_dir: Path) -> None:
        issues = find_unnormalized_paths(release_dir)

        files = find_files(release_dir, ".flac")
        for tag_issues in await self.pool.map_blocking(find_unnormalized_tags, files):
            issues.extend(tag_issues)

        if issues:
            self.report.warn(
                "WARNING: NON-NFC NORMALIZED UNICODE DETECTED",
                [
                    f"Found {len(issues)} file(s), directory(ies), or tag(s) with non-NFC normalized Unicode",
                    "This can cause issues with file systems and torrent clients",
                    f"Items: {summarize_items(issues)}",
                ],
            )

    async def _probe(self, path: Path) -> AudioFileInfo:
        info = await self.ffprobe.probe(path)
        validate_channel_count(info)
        return info

    async def probe_audio_files(self, release_dir: Path) -> DurationMap:
        """Check channel counts and record every source duration."""
        files = find_files(release_dir, *AUDIO_SUFFIXES)
        if not files:
            return {}

        self.console.print(f"  [blue]→[/blue] Validating {len(files)} audio files...")
        results = await self.pool.map(self._probe, files)

        suspicious = [info for info in results if info.duration < SUSPICIOUS_DURATION]
        if suspicious:
            self.report.warn(
                "WARNING: SUSPICIOUSLY SHORT AUDIO FILES",
                [
                    f"{len(suspicious)} file(s) have a duration under {SUSPICIOUS_DURATION:g} second",
                    *(f"{info.path.name}: {info.duration}s" for info in suspicious),
                ],
            )

        self.console.print("  [green]✓[/green] All audio files have valid channel counts")
        return {relative_posix(info.path, release_dir): info.duration for info in results}

    async def check_bit_depth_tag(self, release_dir: Path, basename: str) -> None:
        """Require a bit-depth tag for 24-bit content and flag mixed bit depths."""
        files = find_files(release_dir, ".flac")
        if not files:
            return

        self.console.print("  [blue]→[/blue] Checking FLAC bit depths...")
        depths = await self.pool.map(self.flac.bit_depth, files)
        count_24 = depths.count(24)
        count_16 = depths.count(16)

        if count_24 and count_16:
            self.report.warn(
                "WARNING: MIXED BIT DEPTH RELEASE DETECTED",
                [
                    f"Found {count_24} × 24-bit files and {count_16} × 16-bit files",
                    "This release must be designated as MIXED BITRATE",
                    "Follow tracker-specific rules for mixed bitrate releases",
                ],
            )

        if count_24:
            if not has_bit_depth_in_format_tag(basename):
                raise MissingBitDepthTagError(basename)
            self.console.print("  [green]✓[/green] 24-bit FLAC files properly tagged in directory name")
        else:
            self.console.print("  [green]✓[/green] All FLAC files are 16-bit")

    async def _check_log(self, path: Path) -> None:
        try:
            result = await self.log_checker.check(path)
        except Exception as e:
            logger.exception(f"Failed to check log {path.name}: {e}")
            self.console.print(f"  [red]✗[/red] {path.name}: Failed to check log")
            return

        if result.unrecognized:
            self.report.note(f"{path.name}: Log is unrecognized")
        elif result.edited:
            self.report.note(f"{path.name}: Log checksum does not match (edited)")
        elif result.score is not None:
            style = result.score_style
            self.console.print(f"  [{style}]✓[/{style}] {path.name}: Score {result.score}")

    async def check_log_files(self, release_dir: Path) -> None:
        """Score ripper logs; results are informational."""
        files = find_files(release_dir, ".log")
        if not files:
            return

        self.console.print(f"  [blue]→[/blue] Testing {len(files)} log files with hbcl...")
        await self.pool.map(self._check_log, files)
