"""Test the async subprocess helpers."""

import sys
from pathlib import Path

import pytest

from releasepack.error_handling import DependencyError, ExternalToolError
from releasepack.services.tools import build_command_from_template, run_pipeline, run_tool


class TestRunTool:
    """Test single tool invocations."""

    @pytest.mark.asyncio
    async def test_captures_output(self):
        """Test stdout and stderr are captured."""
        result = await run_tool(
            sys.executable,
            "-c",
            "import sys; print('out'); print('err', file=sys.stderr)",
        )

        assert result.returncode == 0
        assert result.stdout.strip() == "out"
        assert result.stderr.strip() == "err"
        assert "out" in result.output and "err" in result.output

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises(self):
        """Test a failing tool raises with its exit code."""
        with pytest.raises(ExternalToolError) as exc_info:
            await run_tool(sys.executable, "-c", "import sys; sys.exit(3)")

        assert exc_info.value.exit_code == 3

    @pytest.mark.asyncio
    async def test_unchecked_exit(self):
        """Test check=False returns the failing result."""
        result = await run_tool(sys.executable, "-c", "import sys; sys.exit(2)", check=False)

        assert result.returncode == 2

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        """Test a missing program is a dependency error."""
        with pytest.raises(DependencyError) as exc_info:
            await run_tool("/nonexistent/releasepack-tool")

        assert exc_info.value.dependency == "releasepack-tool"


class TestRunPipeline:
    """Test the producer to consumer pipe."""

    @pytest.mark.asyncio
    async def test_streams_between_processes(self, tmp_path):
        """Test producer stdout reaches consumer stdin."""
        output = tmp_path / "out.bin"
        producer = [sys.executable, "-c", "import sys; sys.stdout.buffer.write(b'x' * 200000)"]
        consumer = [
            sys.executable,
            "-c",
            "import sys; open(sys.argv[1], 'wb').write(sys.stdin.buffer.read())",
            str(output),
        ]

        await run_pipeline(producer, consumer)

        assert output.read_bytes() == b"x" * 200000

    @pytest.mark.asyncio
    async def test_producer_failure(self, tmp_path):
        """Test a failing producer raises and the consumer is reaped."""
        producer = [sys.executable, "-c", "import sys; sys.stderr.write('bad flac'); sys.exit(4)"]
        consumer = [sys.executable, "-c", "import sys; sys.stdin.buffer.read()"]

        with pytest.raises(ExternalToolError) as exc_info:
            await run_pipeline(producer, consumer)

        assert exc_info.value.exit_code == 4
        assert exc_info.value.stderr == "bad flac"

    @pytest.mark.asyncio
    async def test_consumer_failure_stops_producer(self):
        """Test a failing consumer kills a producer that would run forever."""
        producer = [
            sys.executable,
            "-c",
            "import time\nwhile True:\n    time.sleep(0.1)",
        ]
        consumer = [sys.executable, "-c", "import sys; sys.exit(5)"]

        with pytest.raises(ExternalToolError) as exc_info:
            await run_pipeline(producer, consumer)

        assert exc_info.value.exit_code == 5


class TestCommandTemplate:
    """Test log checker command templates."""

    def test_placeholder_substitution(self):
        """Test %1 is replaced by the path as one argument."""
        command = build_command_from_template('python -m heybrochecklog -ei "%1"', Path("/a b/rip.log"))

        assert command == ["python", "-m", "heybrochecklog", "-ei", "/a b/rip.log"]

    def test_path_appended_without_placeholder(self):
        """Test the path is appended when no placeholder exists."""
        assert build_command_from_template("hbcl", Path("rip.log")) == ["hbcl", "rip.log"]

    def test_empty_template(self):
        """Test an empty template is rejected."""
        with pytest.raises(ValueError):
            build_command_from_template("  ", Path("rip.log"))
