"""Confirmation gate policies for releases with verification warnings."""

import asyncio
import logging
from typing import Protocol

import click

logger = logging.getLogger(__name__)

CONFIRMATION_PROMPT = "Verification warnings detected. Continue processing this release?"


class ConfirmationPolicy(Protocol):
    """Decides whether a release held at the gate continues."""

    async def confirm(self, release_name: str) -> bool: ...


class InteractiveConfirmation:
    """Ask on the terminal, defaulting to No."""

    async def confirm(self, release_name: str) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: click.confirm(CONFIRMATION_PROMPT, default=False),
        )


class AutoApprove:
    """Continue every held release (--yes)."""

    async def confirm(self, release_name: str) -> bool:
        logger.info(f"Continuing {release_name} despite verification warnings")
        return True


class AutoReject:
    """Skip every held release (--no-confirm)."""

    async def confirm(self, release_name: str) -> bool:
        logger.info(f"Skipping {release_name} because of verification warnings")
        return False
