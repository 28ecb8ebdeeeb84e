"""Wrappers for the flac and metaflac command-line tools."""

import logging
from pathlib import Path

from releasepack.config import ReleasePackConfig
from releasepack.error_handling import ExternalToolError
from releasepack.models import FlacSpecs
from releasepack.services.tools import run_tool, tool_name

logger = logging.getLogger(__name__)

PADDING_SIZE = 4096
INTEGRITY_FAILURE_TOKENS = ("ERROR", "FAILED")


class FlacTools:
    """Async wrapper for flac and metaflac."""

    def __init__(self, config: ReleasePackConfig):
        self.config = config
        self.flac = config.flac_path
        self.metaflac = config.metaflac_path

    def decode_command(self, path: Path) -> list[str]:
        """Decode silently to stdout."""
        return [self.flac, "-sdc", "--", str(path)]

    async def test_integrity(self, path: Path) -> None:
        """Decode-test a file; any reported error is fatal."""
        result = await run_tool(self.flac, "-t", path, check=False)
        output = result.output
        if result.returncode != 0 or any(token in output for token in INTEGRITY_FAILURE_TOKENS):
            raise ExternalToolError(
                tool_name(self.flac),
                result.returncode or None,
                output.strip(),
                message=f"FLAC test failed for {path.name}",
            )

    async def _show_number(self, option: str, path: Path) -> int:
        result = await run_tool(self.metaflac, option, path)
        value = result.stdout.strip()
        try:
            return int(value)
        except ValueError as e:
            raise ExternalToolError(
                tool_name(self.metaflac),
                message=f"Unexpected {option} output for {path.name}: {value!r}",
                original_error=e,
            ) from e

    async def bit_depth(self, path: Path) -> int:
        return await self._show_number("--show-bps", path)

    async def sample_rate(self, path: Path) -> int:
        return await self._show_number("--show-sample-rate", path)

    async def specs(self, path: Path) -> FlacSpecs:
        """Sample rate and bit depth of one file."""
        return FlacSpecs(
            path=path,
            sample_rate=await self.sample_rate(path),
            bit_depth=await self.bit_depth(path),
        )

    async def strip_pictures(self, path: Path) -> None:
        """Drop embedded pictures and padding, then add fixed padding back."""
        await run_tool(
            self.metaflac,
            "--remove",
            "--block-type=PICTURE,PADDING",
            "--dont-use-padding",
            path,
        )
        await self.add_padding(path)

    async def add_padding(self, path: Path, size: int = PADDING_SIZE) -> None:
        await run_tool(self.metaflac, f"--add-padding={size}", path)
