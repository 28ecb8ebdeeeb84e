"""Release relocation and working-directory archiving."""

import logging
import shutil
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from releasepack.config import ReleasePackConfig

logger = logging.getLogger(__name__)


def relocate_release(release_dir: Path, output_dir: Path) -> Path | None:
    """Move a processed source release into the output directory.

    Returns the new location, or None when a directory of the same name is
    already there and the release is left in place.
    """
    destination = output_dir / release_dir.name
    if destination.exists():
        logger.warning(f"Destination already exists, skipping move: {release_dir.name}")
        return None

    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Moving {release_dir} -> {destination}")
    shutil.move(str(release_dir), str(destination))
    return destination


def archive_directory_for(config: ReleasePackConfig, day: date | None = None) -> Path:
    day = day or date.today()
    return config.base_dir / f"archive-{day.isoformat()}"


@dataclass
class ArchiveReport:
    """Items moved and failures per working directory."""

    archive_dir: Path
    moved: dict[str, int] = field(default_factory=dict)
    failed: dict[str, list[str]] = field(default_factory=dict)


def archive_working_directories(config: ReleasePackConfig, day: date | None = None) -> ArchiveReport:
    """Move the contents of every working directory into a dated archive."""
    archive_dir = archive_directory_for(config, day)
    report = ArchiveReport(archive_dir)

    for name, source in config.working_directories.items():
        destination = archive_dir / name
        destination.mkdir(parents=True, exist_ok=True)
        report.moved[name] = 0

        if not source.exists():
            logger.info(f"{name}: {source} does not exist, nothing to archive")
            continue

        for entry in sorted(source.iterdir(), key=lambda p: p.name):
            try:
                shutil.move(str(entry), str(destination / entry.name))
                report.moved[name] += 1
            except OSError as e:
                logger.warning(f"Failed to move {entry.name}: {e}")
                report.failed.setdefault(name, []).append(entry.name)

    return report
