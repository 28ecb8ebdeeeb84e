"""Torrent assembly: file selection, piece sizing and torf metadata writing."""

import asyncio
import functools
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

import torf
from rich.console import Console

from releasepack import __version__
from releasepack.config import TrackerConfig
from releasepack.error_handling import ErrorCategory, ReleasePackError
from releasepack.fs import is_hidden, matches_any_pattern, relative_posix, walk_files
from releasepack.models import NON_AUDIO_DISC_TYPES, DiscDescriptor, DiscType, ProcessingResult

logger = logging.getLogger(__name__)

MB = 1_000_000
# (piece length, largest total size it is used for), smallest first
PIECE_LENGTH_TABLE = (
    (1 << 15, 50 * MB),
    (1 << 16, 100 * MB),
    (1 << 17, 200 * MB),
    (1 << 18, 400 * MB),
    (1 << 19, 800 * MB),
    (1 << 20, 1600 * MB),
    (1 << 21, 3200 * MB),
    (1 << 22, 6400 * MB),
)
MAX_PIECE_LENGTH = 1 << 22
CREATED_BY = f"releasepack/{__version__}"


class EmptyTorrentError(ReleasePackError):
    """No files left after filtering a rendition for one tracker."""

    def __init__(self, rendition_dir: Path, tracker: str, **kwargs):
        self.rendition_dir = rendition_dir
        self.tracker = tracker
        super().__init__(
            f"No files selected for {rendition_dir.name} on {tracker}",
            ErrorCategory.VALIDATION,
            solution="Check the tracker's exclude_file_patterns and the release's disc layout",
            **kwargs,
        )


def calculate_piece_length(total_size: int) -> int:
    """Smallest piece length whose size ceiling fits the torrent."""
    for piece_length, max_size in PIECE_LENGTH_TABLE:
        if total_size <= max_size:
            return piece_length
    return MAX_PIECE_LENGTH


def _on_any_disc(relative: str, discs: Iterable[DiscDescriptor]) -> bool:
    return any(disc.contains(relative) for disc in discs)


def select_files(
    rendition_dir: Path,
    tracker: TrackerConfig,
    discs: Sequence[DiscDescriptor] = (),
    include_types: Iterable[DiscType] | None = None,
) -> list[Path]:
    """Files of a rendition that belong in one tracker's torrent.

    Without include_types, files on non-audio discs are left out. With
    include_types, only files on discs of those types are kept. Tracker
    exclude patterns apply last. Hidden files are never selected since torf
    leaves them out of the metainfo.
    """
    files = walk_files(rendition_dir, lambda relative: not is_hidden(relative))

    if discs:
        if include_types is not None:
            wanted = set(include_types)
            included = [disc for disc in discs if disc.type in wanted]
            files = [
                path
                for path in files
                if _on_any_disc(relative_posix(path, rendition_dir), included)
            ]
        else:
            excluded = [disc for disc in discs if disc.type in NON_AUDIO_DISC_TYPES]
            files = [
                path
                for path in files
                if not _on_any_disc(relative_posix(path, rendition_dir), excluded)
            ]

    if tracker.exclude_file_patterns:
        files = [
            path
            for path in files
            if not matches_any_pattern(relative_posix(path, rendition_dir), tracker.exclude_file_patterns)
        ]

    return files


def torrent_filename(rendition_dir: Path, tracker: TrackerConfig, suffix: str | None = None) -> str:
    suffix_part = f"-{suffix}" if suffix else ""
    return f"{rendition_dir.name}{suffix_part}-{tracker.name}.torrent"


def build_torrent(
    rendition_dir: Path,
    files: list[Path],
    tracker: TrackerConfig,
    destination: Path,
) -> Path:
    """Hash the selected files and write the .torrent. Blocking."""
    total_size = sum(path.stat().st_size for path in files)

    torrent = torf.Torrent(
        path=rendition_dir,
        name=rendition_dir.name,
        trackers=[[tracker.announce]],
        private=True,
        source=tracker.source,
        created_by=CREATED_BY,
    )
    torrent.filepaths = files
    # Changing filepaths recalculates the piece size, so it is set last
    torrent.piece_size = calculate_piece_length(total_size)

    torrent.generate()
    torrent.write(destination, overwrite=True)
    logger.debug(
        "Wrote %s (%d files, %d bytes, piece size %d)",
        destination,
        len(files),
        total_size,
        torrent.piece_size,
    )
    return destination


@dataclass(frozen=True)
class TorrentJob:
    """One rendition to package for one tracker."""

    variant: str
    path: Path
    suffix: str | None = None
    include_types: tuple[DiscType, ...] | None = None


def plan_torrents(result: ProcessingResult, tracker: TrackerConfig) -> list[TorrentJob]:
    """Renditions of a result that a tracker receives, in creation order."""
    jobs = []
    for variant, path in result.variants():
        if variant == "mp3_320" and tracker.no320:
            continue
        if variant == "bluray":
            if tracker.output_bluray:
                jobs.append(TorrentJob(variant, path, "bd", (DiscType.BD,)))
            continue
        if variant == "dvd":
            if tracker.output_dvd:
                jobs.append(TorrentJob(variant, path, "dvd", (DiscType.DVD,)))
            continue
        if variant == "photobook":
            if tracker.output_photobook:
                jobs.append(TorrentJob(variant, path, "photobook", (DiscType.PHOTOBOOK,)))
            continue
        jobs.append(TorrentJob(variant, path))
    return jobs


class TorrentAssembler:
    """Writes the torrent set for a processed release."""

    def __init__(self, output_dir: Path, console: Console | None = None):
        self.output_dir = output_dir
        self.console = console or Console()

    async def create_torrent(
        self,
        rendition_dir: Path,
        tracker: TrackerConfig,
        discs: Sequence[DiscDescriptor] = (),
        suffix: str | None = None,
        include_types: Iterable[DiscType] | None = None,
    ) -> Path:
        files = select_files(rendition_dir, tracker, discs, include_types)
        if not files:
            raise EmptyTorrentError(rendition_dir, tracker.name)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        destination = self.output_dir / torrent_filename(rendition_dir, tracker, suffix)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(build_torrent, rendition_dir, files, tracker, destination),
        )

    async def create_torrents_for_release(
        self,
        result: ProcessingResult,
        trackers: Sequence[TrackerConfig],
        discs: Sequence[DiscDescriptor] = (),
    ) -> list[Path]:
        """One torrent per rendition and tracker, skipping empty selections."""
        created = []
        for tracker in trackers:
            self.console.print(f"  [blue]→[/blue] Creating torrents for tracker: {tracker.name}")
            for job in plan_torrents(result, tracker):
                try:
                    path = await self.create_torrent(
                        job.path,
                        tracker,
                        discs,
                        suffix=job.suffix,
                        include_types=job.include_types,
                    )
                except EmptyTorrentError as e:
                    logger.warning(e.message)
                    self.console.print(f"    [yellow]⚠[/yellow] Skipped {job.variant}: no files selected")
                    continue
                created.append(path)
                self.console.print(f"    [green]✓[/green] Created: {path.name}")
        return created
