"""Disc detection for multi-disc and mixed-media releases."""

import logging
import re
from pathlib import Path

from releasepack.models import DiscDescriptor, DiscType

logger = logging.getLogger(__name__)

DISC_FOLDER_PATTERN = re.compile(r"^Disc\s+\d+", re.IGNORECASE)
PHOTOBOOK_PREFIX = "photobook"
BLURAY_MARKER = "BDMV"
DVD_MARKER = "VIDEO_TS"


def is_photobook_folder(name: str) -> bool:
    return name.lower().startswith(PHOTOBOOK_PREFIX)


def is_disc_folder(name: str) -> bool:
    """Disc N folders and photobook folders both count as discs."""
    return bool(DISC_FOLDER_PATTERN.match(name)) or is_photobook_folder(name)


def contains_marker(directory: Path, marker: str) -> bool:
    """Search a directory tree for a structural marker directory."""
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as e:
        logger.debug(f"Cannot read {directory} while looking for {marker}: {e}")
        return False

    for entry in entries:
        if not entry.is_dir():
            continue
        if entry.name == marker or contains_marker(entry, marker):
            return True
    return False


def detect_disc_type(directory: Path, name: str) -> DiscType:
    """Classify one disc folder: photobook name, then BD/DVD content, then CD."""
    if is_photobook_folder(name):
        return DiscType.PHOTOBOOK
    if contains_marker(directory, BLURAY_MARKER):
        return DiscType.BD
    if contains_marker(directory, DVD_MARKER):
        return DiscType.DVD
    return DiscType.CD


def detect_discs(
    release_dir: Path,
    force_type: DiscType | None = None,
) -> tuple[DiscDescriptor, ...]:
    """Enumerate the discs of a release.

    Without disc folders the whole release is a single disc whose type is the
    forced type when given, otherwise sniffed from its content. With disc
    folders each one is classified independently and the forced type is
    ignored.
    """
    try:
        subdirectories = sorted(
            (entry for entry in release_dir.iterdir() if entry.is_dir()),
            key=lambda p: p.name,
        )
    except OSError as e:
        logger.error(f"Error detecting discs in {release_dir}: {e}")
        return ()

    disc_folders = [entry for entry in subdirectories if is_disc_folder(entry.name)]

    if not disc_folders:
        if force_type is not None:
            disc_type = force_type
        elif contains_marker(release_dir, BLURAY_MARKER):
            disc_type = DiscType.BD
        elif contains_marker(release_dir, DVD_MARKER):
            disc_type = DiscType.DVD
        else:
            disc_type = DiscType.CD
        return (DiscDescriptor(path=release_dir, name=release_dir.name, type=disc_type),)

    return tuple(
        DiscDescriptor(
            path=folder,
            name=folder.name,
            type=detect_disc_type(folder, folder.name),
            relative_path=folder.name,
        )
        for folder in disc_folders
    )
