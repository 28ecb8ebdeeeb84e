"""Release cleanup: cover art, embedded pictures, playlists and cue names."""

import asyncio
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from rich.console import Console

from releasepack.config import ReleasePackConfig
from releasepack.core.pool import TaskPool
from releasepack.fs import find_files, list_files
from releasepack.models import ReleaseDescriptor
from releasepack.release.discs import DISC_FOLDER_PATTERN
from releasepack.services.flac import FlacTools

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp")
COVER_NAME = "cover.jpg"
COVER_SIZE = (512, 512)
COVER_QUALITY = 90
PLAYLIST_SUFFIXES = (".m3u", ".m3u8")


def resize_cover(source: Path, destination: Path) -> None:
    """Fit an image inside 512x512 without upscaling and save it as JPEG."""
    with Image.open(source) as image:
        image.thumbnail(COVER_SIZE, Image.Resampling.LANCZOS)
        if image.mode != "RGB":
            image = image.convert("RGB")
        image.save(destination, "JPEG", quality=COVER_QUALITY)


def process_folder_cover(folder: Path) -> Path | None:
    """Replace the only image in a folder with a resized cover.jpg."""
    images = list_files(folder, *IMAGE_SUFFIXES)
    if len(images) != 1:
        if images:
            logger.debug(f"Skipping cover art in {folder.name}: {len(images)} images found")
        return None

    source = images[0]
    cover = folder / COVER_NAME
    temporary = folder / f"{COVER_NAME}.tmp"
    try:
        resize_cover(source, temporary)
    except (UnidentifiedImageError, OSError) as e:
        temporary.unlink(missing_ok=True)
        logger.warning(f"Leaving unreadable cover art {source} as it is: {e}")
        return None

    # Cover.JPG and cover.jpg may be the same file on case-insensitive filesystems
    if source.name != COVER_NAME:
        source.unlink()
    temporary.replace(cover)

    logger.info(f"Resized cover art {source.name} -> {cover}")
    return cover


def cover_folders(release_dir: Path) -> list[Path]:
    """Release root plus Disc N folders that directly contain FLAC files."""
    folders = [release_dir]
    for entry in sorted(release_dir.iterdir(), key=lambda p: p.name):
        if entry.is_dir() and DISC_FOLDER_PATTERN.match(entry.name) and list_files(entry, ".flac"):
            folders.append(entry)
    return folders


def process_cover_art(release_dir: Path) -> list[Path]:
    covers = []
    for folder in cover_folders(release_dir):
        cover = process_folder_cover(folder)
        if cover is not None:
            covers.append(cover)
    return covers


def delete_playlists(release_dir: Path) -> list[Path]:
    """Remove .m3u and .m3u8 playlists anywhere in the release."""
    playlists = find_files(release_dir, *PLAYLIST_SUFFIXES)
    for playlist in playlists:
        playlist.unlink()
        logger.info(f"Deleted playlist {playlist.name}")
    return playlists


def reconcile_cue_names(release_dir: Path) -> list[Path]:
    """Rename a lone cue sheet after the lone rip log beside it.

    Applies to every directory of the release independently.
    """
    renamed = []
    directories = [release_dir, *(p for p in sorted(release_dir.rglob("*")) if p.is_dir())]
    for directory in directories:
        logs = list_files(directory, ".log")
        cues = list_files(directory, ".cue")
        if len(logs) != 1 or len(cues) != 1:
            continue

        log, cue = logs[0], cues[0]
        if cue.stem == log.stem:
            continue

        target = directory / f"{log.stem}{cue.suffix}"
        cue.rename(target)
        logger.info(f"Renamed cue sheet {cue.name} -> {target.name}")
        renamed.append(target)
    return renamed


async def strip_embedded_pictures(files: list[Path], pool: TaskPool, flac: FlacTools) -> None:
    """Remove embedded pictures and padding from every file, then re-pad."""
    await pool.map(flac.strip_pictures, files)


class Cleaner:
    """Normalizes a verified release in place."""

    def __init__(self, config: ReleasePackConfig, pool: TaskPool, console: Console | None = None):
        self.config = config
        self.pool = pool
        self.console = console or Console()
        self.flac = FlacTools(config)

    async def clean(self, release: ReleaseDescriptor) -> None:
        release_dir = release.path

        loop = asyncio.get_running_loop()
        covers = await loop.run_in_executor(None, process_cover_art, release_dir)
        if covers:
            self.console.print(f"  [green]✓[/green] Resized {len(covers)} cover image(s)")

        files = [] if release.has_mp3 else find_files(release_dir, ".flac")
        if files:
            self.console.print(f"  [blue]→[/blue] Stripping embedded pictures from {len(files)} FLAC files...")
            await strip_embedded_pictures(files, self.pool, self.flac)

        playlists = delete_playlists(release_dir)
        if playlists:
            self.console.print(f"  [green]✓[/green] Deleted {len(playlists)} playlist(s)")

        renamed = reconcile_cue_names(release_dir)
        if renamed:
            self.console.print(f"  [green]✓[/green] Renamed {len(renamed)} cue sheet(s) to match logs")
