"""Configuration management for releasepack."""

import os
from pathlib import Path
from typing import Any

import tomli
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from releasepack.error_handling import ConfigurationError


class TrackerConfig(BaseModel):
    """Per-tracker torrent options, read-only for a run."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    announce: str = Field(alias="tracker")
    source: str | None = None
    default: bool = True
    no320: bool = False
    exclude_file_patterns: list[str] = Field(
        default_factory=list,
        alias="excludeFilePatterns",
    )
    output_bluray: bool = Field(default=False, alias="outputBluray")
    output_dvd: bool = Field(default=False, alias="outputDVD")
    output_photobook: bool = Field(default=False, alias="outputPhotobook")


class ReleasePackConfig(BaseModel):
    """Main configuration for releasepack."""

    # Working directories, derived from base_dir unless set explicitly
    base_dir: Path = Field(default=Path("data-base"))
    input_dir: Path | None = None
    output_dir: Path | None = None
    torrent_dir: Path | None = None
    spectrograms_dir: Path | None = None
    log_dir: Path | None = None

    # External tools
    flac_path: str = Field(default="flac")
    metaflac_path: str = Field(default="metaflac")
    lame_path: str = Field(default="lame")
    sox_path: str = Field(default="sox_ng")
    ffprobe_path: str = Field(default="ffprobe")
    hbcl_cmd: str = Field(default='python -m heybrochecklog -ei "%1"')

    # Processing
    concurrency_limit: int = Field(default_factory=lambda: os.cpu_count() or 1, ge=1)
    spectrograms: bool = Field(default=True)

    trackers: dict[str, TrackerConfig] = Field(default_factory=dict)

    @field_validator(
        "base_dir",
        "input_dir",
        "output_dir",
        "torrent_dir",
        "spectrograms_dir",
        "log_dir",
        mode="before",
    )
    @classmethod
    def expand_paths(cls, v: Path | str | None) -> Path | None:
        """Expand user home directory in paths."""
        if v is None:
            return None
        if isinstance(v, str):
            v = Path(v)
        return v.expanduser().resolve()

    @field_validator("trackers", mode="before")
    @classmethod
    def name_trackers(cls, v: dict[str, Any]) -> dict[str, Any]:
        """Use the table key as tracker name when none is given."""
        named = {}
        for key, tracker in (v or {}).items():
            if isinstance(tracker, dict) and "name" not in tracker:
                tracker = {**tracker, "name": key}
            named[key] = tracker
        return named

    @model_validator(mode="after")
    def derive_directories(self) -> "ReleasePackConfig":
        """Place unset working directories under base_dir."""
        if self.input_dir is None:
            self.input_dir = self.base_dir / "input"
        if self.output_dir is None:
            self.output_dir = self.base_dir / "output"
        if self.torrent_dir is None:
            self.torrent_dir = self.base_dir / "torrent"
        if self.spectrograms_dir is None:
            self.spectrograms_dir = self.base_dir / "spectrograms"
        if self.log_dir is None:
            self.log_dir = self.base_dir / "logs"
        return self

    @property
    def working_directories(self) -> dict[str, Path]:
        """Directories the archive command rotates."""
        return {
            "input": self.input_dir,
            "output": self.output_dir,
            "torrent": self.torrent_dir,
            "spectrograms": self.spectrograms_dir,
        }

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        for dir_path in [*self.working_directories.values(), self.log_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)

    def select_trackers(self, requested: list[str] | tuple[str, ...] | None = None) -> list[TrackerConfig]:
        """Return the requested trackers, or every tracker marked default."""
        if requested:
            selected = []
            for name in requested:
                tracker = self.trackers.get(name)
                if tracker is None:
                    msg = f"Unknown tracker: {name}"
                    raise ConfigurationError(
                        msg,
                        solution=f"Configured trackers: {', '.join(self.trackers) or 'none'}",
                    )
                selected.append(tracker)
            return selected

        return [tracker for tracker in self.trackers.values() if tracker.default]


def load_trackers(
    config: ReleasePackConfig,
    requested: list[str] | tuple[str, ...] | None = None,
) -> list[TrackerConfig]:
    """Trackers for a run; see ReleasePackConfig.select_trackers."""
    return config.select_trackers(requested)


def should_skip_320(trackers: list[TrackerConfig]) -> bool:
    """True when every active tracker refuses 320 kbps renditions."""
    return bool(trackers) and all(tracker.no320 for tracker in trackers)


ENVIRONMENT_OVERRIDES = {
    "RELEASEPACK_BASE_DIR": "base_dir",
    "RELEASEPACK_CONCURRENCY": "concurrency_limit",
}


def load_config(config_path: Path | None = None) -> ReleasePackConfig:
    """Load configuration from file or defaults."""
    if config_path is None:
        possible_paths = [
            Path.home() / ".config" / "releasepack" / "config.toml",
            Path.cwd() / "releasepack.toml",
        ]

        for path in possible_paths:
            if path.exists():
                config_path = path
                break

    config_data: dict[str, Any] = {}
    if config_path and config_path.exists():
        with open(config_path, "rb") as f:
            config_data = tomli.load(f)

    for variable, field_name in ENVIRONMENT_OVERRIDES.items():
        value = os.getenv(variable)
        if value:
            config_data[field_name] = value

    return ReleasePackConfig(**config_data)


def create_sample_config(path: Path) -> None:
    """Create a sample configuration file."""
    sample_config = """# releasepack configuration
# =========================

# ============================================================================
# DIRECTORIES
# ============================================================================

base_dir = "~/releasepack"                        # Working root; the folders below default to subfolders of it
# input_dir = "~/releasepack/input"               # Releases waiting to be processed
# output_dir = "~/releasepack/output"             # Renditions and processed sources
# torrent_dir = "~/releasepack/torrent"           # Generated .torrent files
# spectrograms_dir = "~/releasepack/spectrograms" # Spectrogram PNGs per release
# log_dir = "~/releasepack/logs"                  # releasepack.log

# ============================================================================
# EXTERNAL TOOLS
# ============================================================================

flac_path = "flac"
metaflac_path = "metaflac"
lame_path = "lame"
sox_path = "sox_ng"                               # sox also works
ffprobe_path = "ffprobe"
hbcl_cmd = 'python -m heybrochecklog -ei "%1"'    # %1 is replaced by the log path

# ============================================================================
# PROCESSING
# ============================================================================

# concurrency_limit = 8                           # Parallel tool invocations (defaults to CPU count)
spectrograms = true                               # Render spectrograms for FLAC releases

# ============================================================================
# TRACKERS - one table per tracker; the table key is the tracker name
# ============================================================================

[trackers.example]
announce = "https://tracker.example.org/announce/your-passkey"
source = "EX"                                     # Optional info-dict source field
default = true                                    # Used when no --tracker is given
no320 = false                                     # Skip 320 kbps torrents for this tracker
exclude_file_patterns = ["Scans/"]                # Substring matches against relative paths
output_bluray = false                             # Also build Blu-ray disc torrents
output_dvd = false                                # Also build DVD disc torrents
output_photobook = false                          # Also build photobook torrents
"""

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(sample_config)
