"""Data structures passed between pipeline stages."""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class DiscType(Enum):
    """Physical sub-unit kinds found inside a release."""

    CD = "cd"
    BD = "bd"
    DVD = "dvd"
    PHOTOBOOK = "photobook"


# Disc types kept out of the main audio torrent unless a tracker opts in
NON_AUDIO_DISC_TYPES = frozenset({DiscType.BD, DiscType.DVD, DiscType.PHOTOBOOK})


class AudioFormat(Enum):
    """Audio format encoded in a release's format tag."""

    FLAC = "FLAC"
    MP3_320 = "320"
    MP3_V0 = "V0"
    OTHER = "other"


class ReleaseState(Enum):
    """Pipeline state of a single release."""

    PENDING = "pending"
    VERIFYING = "verifying"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CLEANING = "cleaning"
    TRANSCODING = "transcoding"
    PACKAGING = "packaging"
    RELOCATING = "relocating"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class DiscDescriptor:
    """One Disc N folder, photobook folder, or the release root."""

    path: Path
    name: str
    type: DiscType
    # POSIX path relative to the release root, "" when the disc is the root
    relative_path: str = ""

    def contains(self, relative_file: str) -> bool:
        """Check whether a release-relative file path lives on this disc."""
        if not self.relative_path:
            return True
        return relative_file == self.relative_path or relative_file.startswith(
            self.relative_path + "/",
        )


@dataclass(frozen=True)
class ReleaseDescriptor:
    """Classification of a release directory, derived once per run."""

    path: Path
    basename: str
    format_tag: str
    format: AudioFormat
    format_label: str
    is_24bit: bool
    media_prefix: str | None = None
    discs: tuple[DiscDescriptor, ...] = ()

    @property
    def has_mp3(self) -> bool:
        return self.format in (AudioFormat.MP3_320, AudioFormat.MP3_V0)

    @property
    def has_bluray(self) -> bool:
        return any(disc.type is DiscType.BD for disc in self.discs)

    @property
    def has_dvd(self) -> bool:
        return any(disc.type is DiscType.DVD for disc in self.discs)

    @property
    def has_photobook(self) -> bool:
        return any(disc.type is DiscType.PHOTOBOOK for disc in self.discs)


@dataclass(frozen=True)
class AudioFileInfo:
    """Channel count and duration reported for one audio file."""

    path: Path
    channels: int
    duration: float


@dataclass(frozen=True)
class FlacSpecs:
    """Stream parameters of one FLAC file."""

    path: Path
    sample_rate: int
    bit_depth: int


# Release-relative POSIX path (with audio extension) -> source duration in seconds
DurationMap = dict[str, float]


VARIANT_NAMES = ("flac", "flac24", "mp3_320", "mp3_v0", "bluray", "dvd", "photobook")


@dataclass(frozen=True)
class ProcessingResult:
    """Immutable snapshot of the renditions produced for a release.

    Stages never mutate a result; they return a new snapshot through
    ``with_variant`` or ``with_state``. Each rendition path is set at most
    once per run.
    """

    flac: Path | None = None
    flac24: Path | None = None
    mp3_320: Path | None = None
    mp3_v0: Path | None = None
    bluray: Path | None = None
    dvd: Path | None = None
    photobook: Path | None = None
    state: ReleaseState = ReleaseState.PENDING

    def with_variant(self, name: str, path: Path) -> "ProcessingResult":
        """Return a snapshot with one more rendition recorded."""
        if name not in VARIANT_NAMES:
            msg = f"Unknown rendition: {name}"
            raise ValueError(msg)
        if getattr(self, name) is not None:
            msg = f"Rendition {name} is already set to {getattr(self, name)}"
            raise ValueError(msg)
        return dataclasses.replace(self, **{name: path})

    def with_state(self, state: ReleaseState) -> "ProcessingResult":
        """Return a snapshot in a new pipeline state."""
        return dataclasses.replace(self, state=state)

    def relocated(self, old: Path, new: Path) -> "ProcessingResult":
        """Return a snapshot with every path equal to ``old`` pointing at ``new``."""
        changes = {name: new for name, path in self.variants() if path == old}
        return dataclasses.replace(self, **changes)

    def variants(self) -> list[tuple[str, Path]]:
        """Recorded renditions in torrent-creation order."""
        return [
            (name, getattr(self, name))
            for name in VARIANT_NAMES
            if getattr(self, name) is not None
        ]


@dataclass
class ReleaseOutcome:
    """Summary of one release's run, used for the batch report."""

    release_dir: Path
    result: ProcessingResult = field(default_factory=ProcessingResult)
    torrents: list[Path] = field(default_factory=list)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.result.state is ReleaseState.FAILED

    @property
    def skipped(self) -> bool:
        return self.result.state is ReleaseState.SKIPPED
