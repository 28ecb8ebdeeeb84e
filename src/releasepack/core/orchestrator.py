"""Main workflow orchestration for releasepack."""

import logging
from collections.abc import Iterable
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from releasepack.clean.cleaner import Cleaner
from releasepack.config import ReleasePackConfig, TrackerConfig, should_skip_320
from releasepack.core.confirmation import ConfirmationPolicy, InteractiveConfirmation
from releasepack.core.pool import TaskPool
from releasepack.core.spectrograms import SpectrogramJob
from releasepack.encode.downsampler import Downsampler
from releasepack.encode.transcoder import TranscodeMode, Transcoder
from releasepack.error_handling import ReleasePackError, handle_error
from releasepack.models import (
    DiscType,
    DurationMap,
    ProcessingResult,
    ReleaseDescriptor,
    ReleaseOutcome,
    ReleaseState,
)
from releasepack.organize.relocate import relocate_release
from releasepack.release.parser import FORMAT_TAG_PATTERN, downsampled_basename, parse_release_directory
from releasepack.services.ffprobe import FFprobe
from releasepack.torrent.creator import TorrentAssembler
from releasepack.verify.checks import Verifier
from releasepack.verify.durations import validate_durations
from releasepack.verify.report import VerificationReport

logger = logging.getLogger(__name__)


def scan_input_directory(input_dir: Path) -> list[Path]:
    """Release directories waiting in the input directory.

    Only directories ending in a bracketed format tag count. Bare files are
    reported since they should be packed into a release directory first.
    """
    releases = []
    for entry in sorted(input_dir.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            if FORMAT_TAG_PATTERN.search(entry.name):
                releases.append(entry)
            else:
                logger.debug(f"Ignoring directory without format tag: {entry.name}")
        elif entry.is_file():
            logger.warning(
                f"Bare file found in input directory: {entry.name} "
                "(files should be organized into release directories)",
            )
    return releases


class ReleaseProcessor:
    """Runs releases through verification, cleanup, encoding and packaging."""

    def __init__(
        self,
        config: ReleasePackConfig,
        trackers: list[TrackerConfig],
        *,
        confirmation: ConfirmationPolicy | None = None,
        no_move: bool = False,
        force_type: DiscType | str | None = None,
        console: Console | None = None,
    ):
        self.config = config
        self.trackers = trackers
        self.confirmation = confirmation or InteractiveConfirmation()
        self.no_move = no_move
        self.force_type = force_type
        self.console = console or Console()
        self.skip_320 = should_skip_320(trackers)

    def _advance(
        self,
        release: ReleaseDescriptor,
        result: ProcessingResult,
        state: ReleaseState,
    ) -> ProcessingResult:
        logger.debug(f"{release.basename}: {result.state.value} -> {state.value}")
        return result.with_state(state)

    async def process(self, release_dir: Path) -> ProcessingResult:
        """Process one release and return its final snapshot."""
        outcome = await self.process_release(release_dir)
        return outcome.result

    async def process_release(self, release_dir: Path) -> ReleaseOutcome:
        """Process one release; fatal stage errors propagate."""
        release = parse_release_directory(release_dir, self.force_type)
        self.console.print(f"\n[bold cyan]Processing:[/bold cyan] {escape(release.basename)}")

        pool = TaskPool(self.config.concurrency_limit)
        report = VerificationReport(self.console)
        result = ProcessingResult()

        # Step 1: verify
        self.console.print("[bold]Step 1:[/bold] Verifying input...")
        result = self._advance(release, result, ReleaseState.VERIFYING)
        durations = await Verifier(self.config, pool, report, console=self.console).verify(release)

        if report.has_warnings:
            result = self._advance(release, result, ReleaseState.AWAITING_CONFIRMATION)
            if not await self.confirmation.confirm(release.basename):
                self.console.print(f"[yellow]Skipping release: {escape(release.basename)}[/yellow]\n")
                result = self._advance(release, result, ReleaseState.SKIPPED)
                return ReleaseOutcome(release_dir, result)

        # Step 2: clean
        self.console.print("[bold]Step 2:[/bold] Cleaning input...")
        result = self._advance(release, result, ReleaseState.CLEANING)
        await Cleaner(self.config, pool, self.console).clean(release)

        spectrograms = None
        if not release.has_mp3 and self.config.spectrograms:
            spectrograms = SpectrogramJob(self.config, release.path, self.console)
            spectrograms.start()

        try:
            # Step 3: renditions
            self.console.print("[bold]Step 3:[/bold] Transcoding...")
            result = self._advance(release, result, ReleaseState.TRANSCODING)
            result = await self.build_renditions(release, result, durations, pool, report)

            # Step 4: torrents
            self.console.print("[bold]Step 4:[/bold] Creating torrents...")
            result = self._advance(release, result, ReleaseState.PACKAGING)
            assembler = TorrentAssembler(self.config.torrent_dir, self.console)
            torrents = await assembler.create_torrents_for_release(result, self.trackers, release.discs)

            if spectrograms is not None:
                self.console.print("  [blue]→[/blue] Waiting for spectrograms to finish...")
                rendered = await spectrograms.wait()
                self.console.print(f"  [green]✓[/green] Spectrograms completed ({rendered} files)")
        except BaseException:
            if spectrograms is not None:
                await spectrograms.cancel()
            raise

        # Step 5: relocate
        if self.no_move:
            self.console.print("[bold]Step 5:[/bold] Skipping move (--no-move flag set)")
        else:
            self.console.print("[bold]Step 5:[/bold] Moving input files to output...")
            result = self._advance(release, result, ReleaseState.RELOCATING)
            destination = relocate_release(release.path, self.config.output_dir)
            if destination is None:
                self.console.print(
                    f"  [yellow]⚠[/yellow] Destination already exists, skipping move: {escape(release.basename)}",
                )
            else:
                result = result.relocated(release.path, destination)
                self.console.print("  [green]✓[/green] Moved input files to output directory")

        result = self._advance(release, result, ReleaseState.COMPLETED)
        self.console.print(f"[bold green]✓ Completed:[/bold green] {escape(release.basename)}\n")
        return ReleaseOutcome(release_dir, result, torrents)

    async def _transcode(
        self,
        transcoder: Transcoder,
        flac_dir: Path,
        mode: TranscodeMode,
        durations: DurationMap,
        pool: TaskPool,
    ) -> Path:
        rendition = await transcoder.transcode_release(flac_dir, self.config.output_dir, mode)
        await validate_durations(rendition, durations, pool, FFprobe(self.config))
        return rendition

    async def build_renditions(
        self,
        release: ReleaseDescriptor,
        result: ProcessingResult,
        durations: DurationMap,
        pool: TaskPool,
        report: VerificationReport,
    ) -> ProcessingResult:
        """Record or build every rendition the release needs."""
        if release.has_mp3:
            self.console.print("  [cyan]ℹ[/cyan] Release contains MP3s, skipping transcoding")
            result = result.with_variant("mp3_320", release.path)
        else:
            if release.is_24bit:
                self.console.print("  [yellow]⚠[/yellow] 24-bit FLAC detected, downsampling required")
                result = result.with_variant("flac24", release.path)
                flac_dir = self.config.output_dir / downsampled_basename(release.basename)
                downsampler = Downsampler(self.config, pool, report, self.console)
                await downsampler.downsample_release(release.path, flac_dir)
            else:
                flac_dir = release.path
            result = result.with_variant("flac", flac_dir)

            transcoder = Transcoder(self.config, pool, self.console)
            if self.skip_320:
                self.console.print("  [cyan]ℹ[/cyan] Skipping 320 transcoding (all trackers have no320)")
            else:
                mp3_320 = await self._transcode(transcoder, flac_dir, TranscodeMode.MP3_320, durations, pool)
                result = result.with_variant("mp3_320", mp3_320)

            mp3_v0 = await self._transcode(transcoder, flac_dir, TranscodeMode.MP3_V0, durations, pool)
            result = result.with_variant("mp3_v0", mp3_v0)

        # Disc renditions share the source tree; the torrent selection picks the discs
        source = result.flac24 or result.flac or release.path
        if release.has_bluray:
            result = result.with_variant("bluray", source)
        if release.has_dvd:
            result = result.with_variant("dvd", source)
        if release.has_photobook:
            result = result.with_variant("photobook", source)
        return result

    async def run_batch(self, releases: Iterable[Path]) -> list[ReleaseOutcome]:
        """Process releases one at a time; a failure never stops the batch."""
        outcomes = []
        for release_dir in releases:
            try:
                outcome = await self.process_release(release_dir)
            except ReleasePackError as e:
                e.display_to_user()
                outcome = ReleaseOutcome(
                    release_dir,
                    ProcessingResult(state=ReleaseState.FAILED),
                    error=e.message,
                )
            except Exception as e:
                handle_error(e)
                outcome = ReleaseOutcome(
                    release_dir,
                    ProcessingResult(state=ReleaseState.FAILED),
                    error=str(e) or type(e).__name__,
                )
            outcomes.append(outcome)
        return outcomes
