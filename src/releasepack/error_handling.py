"""Error taxonomy for release processing with readable console output."""

import logging
import shutil
import shlex
import sys
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from releasepack.config import ReleasePackConfig

logger = logging.getLogger(__name__)
console = Console()


class ErrorCategory(Enum):
    """Categories of errors for better user experience."""

    CONFIGURATION = "configuration"
    DEPENDENCY = "dependency"
    FILESYSTEM = "filesystem"
    RELEASE = "release"
    MEDIA = "media"
    VALIDATION = "validation"
    EXTERNAL_TOOL = "external_tool"
    SYSTEM = "system"
    USER_INPUT = "user_input"


class ReleasePackError(Exception):
    """Base exception for releasepack with enhanced user experience."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        *,
        solution: str | None = None,
        details: str | None = None,
        recoverable: bool = True,
        log_level: int = logging.ERROR,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.solution = solution
        self.details = details
        self.recoverable = recoverable
        self.log_level = log_level
        self.original_error = original_error

    def display_to_user(self) -> None:
        """Display error to user with helpful context."""
        category_styles = {
            ErrorCategory.CONFIGURATION: ("⚙️", "yellow"),
            ErrorCategory.DEPENDENCY: ("📦", "red"),
            ErrorCategory.FILESYSTEM: ("📁", "red"),
            ErrorCategory.RELEASE: ("💿", "yellow"),
            ErrorCategory.MEDIA: ("🎵", "blue"),
            ErrorCategory.VALIDATION: ("🔍", "red"),
            ErrorCategory.EXTERNAL_TOOL: ("🔧", "red"),
            ErrorCategory.SYSTEM: ("💻", "red"),
            ErrorCategory.USER_INPUT: ("⌨️", "yellow"),
        }

        emoji, color = category_styles.get(self.category, ("❌", "red"))

        console.print(
            f"\n{emoji} [{color} bold]{self.category.value.replace('_', ' ').title()} Error[/{color} bold]",
        )
        console.print(f"[{color}]{escape(self.message)}[/{color}]")

        if self.details:
            console.print(f"\n[dim]Details:[/dim] {escape(self.details)}")

        if self.solution:
            console.print(f"\n[green]💡 Solution:[/green] {escape(self.solution)}")

        if self.recoverable:
            console.print(
                "\n[dim]Fix the release and run it again; other releases are unaffected.[/dim]",
            )
        else:
            console.print(
                "\n[dim]This error requires intervention before continuing.[/dim]",
            )

        if self.original_error:
            logger.log(
                self.log_level,
                "%s: %s",
                self.category.value,
                self.message,
                exc_info=self.original_error,
            )
        else:
            logger.log(self.log_level, "%s: %s", self.category.value, self.message)


class ConfigurationError(ReleasePackError):
    """Configuration-related errors."""

    def __init__(self, message: str, *, config_path: Path | None = None, **kwargs):
        solution = kwargs.pop("solution", None)
        if not solution and config_path:
            solution = f"Check your configuration file at {config_path}"
        super().__init__(
            message,
            ErrorCategory.CONFIGURATION,
            solution=solution,
            **kwargs,
        )


class DependencyError(ReleasePackError):
    """Missing or broken dependency errors."""

    def __init__(
        self,
        dependency: str,
        *,
        install_command: str | None = None,
        **kwargs,
    ):
        self.dependency = dependency
        message = f"Required dependency '{dependency}' is not available"
        solution = kwargs.pop("solution", None)
        if not solution and install_command:
            solution = f"Install with: {install_command}"
        super().__init__(
            message,
            ErrorCategory.DEPENDENCY,
            solution=solution,
            recoverable=False,
            **kwargs,
        )


class ExternalToolError(ReleasePackError):
    """External tool execution errors."""

    def __init__(
        self,
        tool: str,
        exit_code: int | None = None,
        stderr: str | None = None,
        **kwargs,
    ):
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr

        message = kwargs.pop("message", None) or f"{tool} failed"
        if exit_code is not None:
            message += f" with exit code {exit_code}"

        details = kwargs.pop("details", stderr)
        solution = kwargs.pop(
            "solution",
            f"Check {tool} is properly installed and the input file is intact",
        )

        super().__init__(
            message,
            ErrorCategory.EXTERNAL_TOOL,
            details=details,
            solution=solution,
            **kwargs,
        )


class MalformedReleaseNameError(ReleasePackError):
    """Release directory name lacks a trailing bracketed format tag."""

    def __init__(self, name: str, **kwargs):
        self.name = name
        super().__init__(
            f"Could not parse format from directory name: {name}",
            ErrorCategory.RELEASE,
            solution="Rename the directory so it ends with a format tag such as [FLAC] or [WEB-FLAC-24]",
            **kwargs,
        )


class MissingBitDepthTagError(ReleasePackError):
    """24-bit content in a release whose name does not say so."""

    def __init__(self, name: str, **kwargs):
        self.name = name
        super().__init__(
            "Directory contains 24-bit FLAC files but format tag does not indicate bit depth",
            ErrorCategory.RELEASE,
            details=f"Directory: {name}",
            solution="Use a format tag like [FLAC-24], [FLAC-24-48] or [CD-FLAC-24]",
            **kwargs,
        )


class AudioFileError(ReleasePackError):
    """Audio content that cannot be processed as-is."""

    def __init__(self, message: str, **kwargs):
        solution = kwargs.pop(
            "solution",
            "Replace the affected files with a clean copy of the release",
        )
        super().__init__(message, ErrorCategory.MEDIA, solution=solution, **kwargs)


class ChannelCountError(AudioFileError):
    """Audio file with a channel count other than mono or stereo."""

    def __init__(self, path: Path, channels: int, **kwargs):
        self.path = path
        self.channels = channels
        super().__init__(
            f"File {path} has {channels} channels (expected 1 or 2)",
            **kwargs,
        )


class UnsupportedBitDepthError(AudioFileError):
    """FLAC files whose bit depth is neither 16 nor 24."""

    def __init__(self, paths: list[Path], **kwargs):
        self.paths = paths
        super().__init__(
            f"Found {len(paths)} files with unsupported bit depths (not 16 or 24)",
            details=", ".join(path.name for path in paths[:5]),
            **kwargs,
        )


class UnsupportedSampleRateError(AudioFileError):
    """Sample rate without a downsampling target."""

    def __init__(self, sample_rate: int, **kwargs):
        self.sample_rate = sample_rate
        super().__init__(
            f"Unsupported sample rate for downsampling: {sample_rate} Hz",
            details="Supported rates: 192000, 176400, 96000, 88200, 48000, 44100",
            **kwargs,
        )


class DurationMismatchError(ReleasePackError):
    """Transcoded files whose duration drifted from the source."""

    def __init__(self, mismatches: list, tolerance: float, **kwargs):
        self.mismatches = mismatches
        self.tolerance = tolerance
        names = ", ".join(mismatch.name for mismatch in mismatches)
        super().__init__(
            f"Transcoding duration validation failed: {len(mismatches)} files have "
            f"duration mismatches > {tolerance}s ({names})",
            ErrorCategory.VALIDATION,
            details="\n".join(str(mismatch) for mismatch in mismatches),
            solution="Check the source files decode cleanly and re-run the release",
            **kwargs,
        )


def handle_error(
    error: Exception,
    *,
    category: ErrorCategory | None = None,
    **kwargs,
) -> None:
    """Convert generic exceptions to ReleasePackError and display to user."""
    if isinstance(error, ReleasePackError):
        error.display_to_user()
        return

    if category is None:
        if isinstance(error, FileNotFoundError | PermissionError | IsADirectoryError):
            category = ErrorCategory.FILESYSTEM
        else:
            category = ErrorCategory.SYSTEM

    wrapped = ReleasePackError(
        message=str(error) or "An unexpected error occurred",
        category=category,
        original_error=error,
        **kwargs,
    )
    wrapped.display_to_user()


TOOL_INSTALL_HINTS = {
    "flac": "apt install flac",
    "metaflac": "apt install flac",
    "lame": "apt install lame",
    "sox": "apt install sox",
    "sox_ng": "install sox_ng from https://codeberg.org/sox_ng/sox_ng",
    "ffprobe": "apt install ffmpeg",
}


def check_dependencies(config: "ReleasePackConfig") -> list[DependencyError]:
    """Check for missing external tools and return list of errors."""
    errors = []

    tools = [
        (config.flac_path, "decoding and integrity testing"),
        (config.metaflac_path, "reading stream info and managing FLAC padding"),
        (config.lame_path, "MP3 encoding"),
        (config.sox_path, "downsampling and spectrograms"),
        (config.ffprobe_path, "channel and duration probing"),
    ]

    for tool, purpose in tools:
        if not shutil.which(tool):
            errors.append(
                DependencyError(
                    tool,
                    install_command=TOOL_INSTALL_HINTS.get(Path(tool).name),
                    details=f"{tool} is required for {purpose}",
                ),
            )

    hbcl_tokens = shlex.split(config.hbcl_cmd)
    if hbcl_tokens and not shutil.which(hbcl_tokens[0]):
        errors.append(
            DependencyError(
                hbcl_tokens[0],
                install_command="pip install heybrochecklog",
                details="The log checker command is configured with hbcl_cmd",
            ),
        )

    return errors


def graceful_exit(exit_code: int = 1) -> None:
    """Exit gracefully with helpful message."""
    if exit_code == 0:
        console.print("\n[green]✨ All releases processed[/green]")
    else:
        console.print("\n[red]Some releases failed or could not be processed[/red]")
        console.print("[dim]Check the summary above for details on what went wrong[/dim]")
        console.print(
            "[dim]Run 'releasepack check' to verify the external tools are available[/dim]",
        )

    sys.exit(exit_code)
