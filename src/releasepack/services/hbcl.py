"""Ripper log scoring through heybrochecklog (hbcl)."""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from releasepack.config import ReleasePackConfig
from releasepack.error_handling import ExternalToolError
from releasepack.services.tools import build_command_from_template, run_tool

logger = logging.getLogger(__name__)

LOG_PATH_LINE = re.compile(r"^\s*Log:\s*")
SCORE_LINE = re.compile(r"^\s*Score:\s*(-?\d+)", re.IGNORECASE | re.MULTILINE)
UNRECOGNIZED_SENTINEL = "Log is unrecognized"
EDITED_SENTINEL = "Log checksum does not match"


@dataclass
class LogCheckResult:
    """Parsed log checker verdict."""

    score: int | None
    unrecognized: bool
    edited: bool
    output: str

    @property
    def score_style(self) -> str:
        """Colour band used when printing the score."""
        if self.score == 100:
            return "green"
        if self.score is not None and self.score >= 95:
            return "cyan"
        return "yellow"


def parse_log_check_output(output: str) -> LogCheckResult:
    # Drop the echoed log path so file names cannot match the sentinels
    sanitized = "\n".join(
        line for line in output.splitlines() if not LOG_PATH_LINE.match(line)
    ).strip()

    unrecognized = UNRECOGNIZED_SENTINEL in sanitized
    edited = EDITED_SENTINEL in sanitized
    match = SCORE_LINE.search(sanitized)

    if match is None and not unrecognized:
        raise ExternalToolError(
            "hbcl",
            message="Failed to parse score from hbcl output",
            details=sanitized or None,
        )

    return LogCheckResult(
        score=int(match.group(1)) if match else None,
        unrecognized=unrecognized,
        edited=edited,
        output=sanitized,
    )


class LogChecker:
    """Runs the configured log checker command against .log files."""

    def __init__(self, config: ReleasePackConfig):
        self.config = config
        self.template = config.hbcl_cmd

    def build_command(self, path: Path) -> list[str]:
        return build_command_from_template(self.template, path)

    async def check(self, path: Path) -> LogCheckResult:
        command = self.build_command(path)
        env = {**os.environ, "PYTHONIOENCODING": "utf-8", "PYTHONUTF8": "1"}
        result = await run_tool(command[0], *command[1:], check=False, env=env)
        return parse_log_check_output(result.output)
