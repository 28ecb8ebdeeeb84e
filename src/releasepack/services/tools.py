"""Async subprocess helpers shared by the tool wrappers."""

import asyncio
import logging
import os
import shlex
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from releasepack.error_handling import DependencyError, ExternalToolError

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Completed tool invocation."""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """stdout and stderr joined, as tools split messages across both."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


def tool_name(program: str | Path) -> str:
    return Path(program).name


def _decode(data: bytes | None) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


async def _spawn(args: Sequence[str], **kwargs) -> asyncio.subprocess.Process:
    logger.debug("Running: %s", shlex.join(args))
    try:
        return await asyncio.create_subprocess_exec(*args, **kwargs)
    except FileNotFoundError as e:
        raise DependencyError(
            tool_name(args[0]),
            details=f"Executable not found: {args[0]}",
            original_error=e,
        ) from e


async def run_tool(
    program: str,
    *args: str | Path,
    check: bool = True,
    env: Mapping[str, str] | None = None,
) -> ToolResult:
    """Run a tool to completion and capture its output."""
    argv = [program, *(str(arg) for arg in args)]
    process = await _spawn(
        argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=dict(env) if env is not None else None,
    )
    stdout, stderr = await process.communicate()
    result = ToolResult(
        args=argv,
        returncode=process.returncode,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
    )

    if check and result.returncode != 0:
        raise ExternalToolError(
            tool_name(program),
            result.returncode,
            result.stderr.strip() or result.stdout.strip() or None,
        )
    return result


async def _collect(process: asyncio.subprocess.Process, name: str) -> tuple[str, int, str]:
    _, stderr = await process.communicate()
    return name, process.returncode, _decode(stderr)


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass


async def run_pipeline(producer: Sequence[str], consumer: Sequence[str]) -> None:
    """Stream producer's stdout into consumer's stdin without touching disk.

    Both processes are monitored concurrently. The first non-zero exit kills
    the other side, which is still waited on so its stderr is drained, and
    is raised as ExternalToolError.
    """
    read_fd, write_fd = os.pipe()
    try:
        upstream = await _spawn(
            producer,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=write_fd,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            downstream = await _spawn(
                consumer,
                stdin=read_fd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except BaseException:
            _kill(upstream)
            await upstream.wait()
            raise
    finally:
        # The children hold their own copies of the pipe ends
        os.close(write_fd)
        os.close(read_fd)

    pending = {
        asyncio.create_task(_collect(upstream, tool_name(producer[0]))),
        asyncio.create_task(_collect(downstream, tool_name(consumer[0]))),
    }
    failure: ExternalToolError | None = None
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                name, returncode, stderr = task.result()
                if returncode != 0 and failure is None:
                    failure = ExternalToolError(name, returncode, stderr.strip() or None)
                    _kill(upstream)
                    _kill(downstream)
    except BaseException:
        _kill(upstream)
        _kill(downstream)
        raise

    if failure is not None:
        raise failure


def build_command_from_template(template: str, path: Path) -> list[str]:
    """Tokenize a command template, substituting %1 with the path.

    The path is appended when the template has no %1 placeholder.
    """
    tokens = shlex.split(template)
    if not tokens:
        msg = "Command template is empty"
        raise ValueError(msg)

    command = [tokens[0]]
    replaced = False
    for token in tokens[1:]:
        if token == "%1":
            command.append(str(path))
            replaced = True
        else:
            command.append(token)
    if not replaced:
        command.append(str(path))
    return command
