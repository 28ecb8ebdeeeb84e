"""Filesystem traversal shared by every stage.

All stages agree on which files count through ``walk_files``: a sorted,
recursive listing filtered by a predicate over the release-relative POSIX
path, with a fixed set of always-ignored paths removed first.
"""

import logging
import shutil
from collections.abc import Callable, Iterable
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

# Directory names whose contents never belong in a rendition or torrent
IGNORED_DIRECTORIES = frozenset({"Scans (Raw)", "_raw", "__MACOSX"})
IGNORED_FILENAMES = frozenset({".DS_Store", "Thumbs.db", "desktop.ini"})
IGNORED_SUFFIXES = (".tmp", ".part", ".!qb")

PathPredicate = Callable[[str], bool]


def relative_posix(path: Path, root: Path) -> str:
    """Release-relative path with forward slashes."""
    return path.relative_to(root).as_posix()


def is_globally_ignored(relative: str) -> bool:
    """Check a release-relative path against the always-ignored set."""
    parts = PurePosixPath(relative).parts
    if any(part in IGNORED_DIRECTORIES for part in parts[:-1]):
        return True
    name = parts[-1] if parts else ""
    return name in IGNORED_FILENAMES or name.lower().endswith(IGNORED_SUFFIXES)


def is_hidden(relative: str) -> bool:
    """Check whether any component of a relative path is a dotfile or dot-directory."""
    return any(part.startswith(".") for part in PurePosixPath(relative).parts)


def has_suffix(*suffixes: str) -> PathPredicate:
    """Predicate matching paths by case-insensitive extension."""
    lowered = tuple(suffix.lower() for suffix in suffixes)
    return lambda relative: relative.lower().endswith(lowered)


def lacks_suffix(*suffixes: str) -> PathPredicate:
    """Predicate matching paths without any of the given extensions."""
    matches = has_suffix(*suffixes)
    return lambda relative: not matches(relative)


def matches_any_pattern(relative: str, patterns: Iterable[str]) -> bool:
    """Substring match of a normalized relative path against patterns."""
    normalized = relative.replace("\\", "/")
    return any(pattern in normalized for pattern in patterns)


def walk_files(
    root: Path,
    predicate: PathPredicate | None = None,
    *,
    include_ignored: bool = False,
) -> list[Path]:
    """Recursively list files under root in sorted traversal order."""
    results: list[Path] = []

    def walk(directory: Path) -> None:
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if entry.is_dir():
                if include_ignored or entry.name not in IGNORED_DIRECTORIES:
                    walk(entry)
                continue
            if not entry.is_file():
                continue
            relative = relative_posix(entry, root)
            if not include_ignored and is_globally_ignored(relative):
                continue
            if predicate is None or predicate(relative):
                results.append(entry)

    walk(root)
    return results


def walk_directories(root: Path) -> list[Path]:
    """Recursively list directories under root in sorted order."""
    results: list[Path] = []

    def walk(directory: Path) -> None:
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if entry.is_dir() and entry.name not in IGNORED_DIRECTORIES:
                results.append(entry)
                walk(entry)

    walk(root)
    return results


def find_files(root: Path, *suffixes: str) -> list[Path]:
    """Files under root with one of the given extensions."""
    return walk_files(root, has_suffix(*suffixes))


def list_files(directory: Path, *suffixes: str) -> list[Path]:
    """Files directly inside directory, optionally filtered by extension."""
    matches = has_suffix(*suffixes) if suffixes else None
    return [
        entry
        for entry in sorted(directory.iterdir(), key=lambda p: p.name)
        if entry.is_file() and (matches is None or matches(entry.name))
    ]


def copy_tree(source: Path, destination: Path, predicate: PathPredicate | None = None) -> int:
    """Mirror source into destination, copying files the predicate accepts.

    Directory structure is recreated even where no file is copied so that
    later per-file writers find their parent directories in place.
    """
    destination.mkdir(parents=True, exist_ok=True)
    for directory in walk_directories(source):
        (destination / directory.relative_to(source)).mkdir(parents=True, exist_ok=True)

    copied = 0
    for path in walk_files(source, predicate):
        target = destination / path.relative_to(source)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, target)
        copied += 1

    logger.debug("Copied %d files from %s to %s", copied, source, destination)
    return copied
