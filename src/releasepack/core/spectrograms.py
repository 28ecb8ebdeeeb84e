"""Background spectrogram rendering for FLAC releases."""

import asyncio
import logging
from pathlib import Path

from rich.console import Console

from releasepack.config import ReleasePackConfig
from releasepack.core.pool import TaskPool
from releasepack.error_handling import ReleasePackError
from releasepack.fs import find_files
from releasepack.services.sox import Sox

logger = logging.getLogger(__name__)


class SpectrogramJob:
    """Renders full and zoomed spectrograms for every FLAC file of a release.

    The job runs on its own pool alongside transcoding. Failures for a single
    file are logged and never fail the release.
    """

    def __init__(self, config: ReleasePackConfig, release_dir: Path, console: Console | None = None):
        self.config = config
        self.release_dir = release_dir
        self.output_root = config.spectrograms_dir / release_dir.name
        self.console = console or Console()
        self.sox = Sox(config)
        self.pool = TaskPool(config.concurrency_limit)
        self.failures: list[Path] = []
        self._task: asyncio.Task | None = None

    async def render(self, source: Path) -> None:
        output_dir = self.output_root / source.parent.relative_to(self.release_dir)
        try:
            await self.sox.render_spectrograms(source, output_dir)
        except (ReleasePackError, OSError) as e:
            self.failures.append(source)
            logger.warning(f"Failed to generate spectrogram for {source.name}: {e}")

    async def run(self) -> int:
        files = find_files(self.release_dir, ".flac")
        if not files:
            return 0
        await self.pool.map(self.render, files)
        return len(files) - len(self.failures)

    def start(self) -> None:
        files = find_files(self.release_dir, ".flac")
        if files:
            self.console.print(
                f"  [blue]→[/blue] Generating spectrograms for {len(files)} files in background...",
            )
        self._task = asyncio.create_task(self.run())

    async def wait(self) -> int:
        """Wait for the background job; returns the number of files rendered."""
        if self._task is None:
            return 0
        return await self._task

    async def cancel(self) -> None:
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.debug(f"Spectrogram job for {self.release_dir.name} cancelled")
