"""FLAC to MP3 transcoding through a flac | lame pipe."""

import asyncio
import logging
from enum import Enum
from pathlib import Path

from mutagen import MutagenError
from rich.console import Console

from releasepack.config import ReleasePackConfig
from releasepack.core.pool import TaskPool
from releasepack.fs import copy_tree, find_files, lacks_suffix
from releasepack.release.parser import replace_format_tag
from releasepack.services.flac import FlacTools
from releasepack.services.tags import build_lame_tag_args, read_flac_tags
from releasepack.services.tools import run_pipeline

logger = logging.getLogger(__name__)


class TranscodeMode(Enum):
    """Lossy rendition targets; the value is the format tag written."""

    MP3_320 = "320"
    MP3_V0 = "V0"


LAME_ARGS = {
    TranscodeMode.MP3_320: ("--silent", "-q", "0", "-b", "320", "--ignore-tag-errors", "--noreplaygain"),
    TranscodeMode.MP3_V0: (
        "--silent",
        "-q",
        "0",
        "-V",
        "0",
        "--vbr-new",
        "--ignore-tag-errors",
        "--noreplaygain",
    ),
}


def output_path_for(source: Path, input_dir: Path, output_dir: Path) -> Path:
    """MP3 path mirroring a FLAC file's position in the release."""
    return (output_dir / source.relative_to(input_dir)).with_suffix(".mp3")


def tag_args_for(source: Path) -> list[str]:
    """LAME tag flags for a file, or none when its tags cannot be read."""
    try:
        return build_lame_tag_args(read_flac_tags(source))
    except (MutagenError, OSError) as e:
        logger.warning(f"Failed to read metadata from {source.name}: {e}")
        return []


def build_lame_command(lame: str, mode: TranscodeMode, tag_args: list[str], destination: Path) -> list[str]:
    return [lame, *LAME_ARGS[mode], *tag_args, "--add-id3v2", "-", str(destination)]


class Transcoder:
    """Builds MP3 renditions of a FLAC directory."""

    def __init__(self, config: ReleasePackConfig, pool: TaskPool, console: Console | None = None):
        self.config = config
        self.pool = pool
        self.console = console or Console()
        self.flac = FlacTools(config)
        self.lame = config.lame_path

    async def transcode_file(self, source: Path, destination: Path, mode: TranscodeMode) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        loop = asyncio.get_running_loop()
        tag_args = await loop.run_in_executor(None, tag_args_for, source)
        await run_pipeline(
            self.flac.decode_command(source),
            build_lame_command(self.lame, mode, tag_args, destination),
        )

    async def transcode_release(self, input_dir: Path, output_root: Path, mode: TranscodeMode) -> Path:
        """Transcode every FLAC file of input_dir into a sibling rendition.

        The rendition directory is named after input_dir with its format tag
        replaced, and carries all non-FLAC files along.
        """
        output_dir = output_root / replace_format_tag(input_dir.name, mode.value)
        self.console.print(f"  [blue]→[/blue] Transcoding to {mode.value}: {output_dir.name}")

        copy_tree(input_dir, output_dir, lacks_suffix(".flac"))

        files = find_files(input_dir, ".flac")
        self.console.print(f"    [dim]Transcoding {len(files)} files...[/dim]")

        async def transcode(source: Path) -> None:
            await self.transcode_file(source, output_path_for(source, input_dir, output_dir), mode)

        await self.pool.map(transcode, files)

        self.console.print(f"  [green]✓[/green] Transcoded to {mode.value}: {output_dir.name}")
        return output_dir
