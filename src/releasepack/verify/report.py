"""Verification warning collection and banner display."""

import logging
from dataclasses import dataclass, field

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

logger = logging.getLogger(__name__)


def summarize_items(items: list[str], limit: int = 5) -> str:
    """First few items joined, with a count of the rest."""
    shown = ", ".join(items[:limit])
    if len(items) > limit:
        shown += f" and {len(items) - limit} more"
    return shown


def print_banner(console: Console, title: str, messages: list[str], style: str = "red") -> None:
    """Print a double-bordered banner."""
    body = f"[bold]{escape(title)}[/bold]"
    if messages:
        body += "\n\n" + "\n".join(escape(message) for message in messages)
    console.print()
    console.print(Panel(body, box=box.DOUBLE, border_style=style, padding=1, expand=False))
    console.print()


@dataclass
class VerificationWarning:
    title: str
    messages: list[str] = field(default_factory=list)


class VerificationReport:
    """Warnings raised while verifying one release.

    Any warning in the report holds the release at the confirmation gate.
    Notices are informational and never gate.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self.warnings: list[VerificationWarning] = []
        self.notices: list[str] = []

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def warn(self, title: str, messages: list[str] | None = None) -> None:
        """Record and display a gating warning; repeats of a title are ignored."""
        if any(existing.title == title for existing in self.warnings):
            logger.debug("Warning already reported: %s", title)
            return
        warning = VerificationWarning(title, list(messages or []))
        self.warnings.append(warning)
        logger.warning("%s: %s", title, " | ".join(warning.messages))
        print_banner(self.console, title, warning.messages, "red")

    def note(self, message: str, style: str = "yellow") -> None:
        self.notices.append(message)
        logger.info(message)
        self.console.print(f"  [{style}]•[/{style}] {escape(message)}")
