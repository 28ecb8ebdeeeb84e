"""Tests for the error taxonomy and dependency checks."""

import logging
from pathlib import Path
from unittest.mock import patch

from releasepack.config import ReleasePackConfig
from releasepack.error_handling import (
    ChannelCountError,
    ConfigurationError,
    DependencyError,
    DurationMismatchError,
    ErrorCategory,
    ExternalToolError,
    MalformedReleaseNameError,
    ReleasePackError,
    UnsupportedSampleRateError,
    check_dependencies,
    handle_error,
)
from releasepack.verify.durations import DurationMismatch


class TestReleasePackError:
    """Test the base ReleasePackError class."""

    def test_basic_error_creation(self):
        """Test creating a basic ReleasePackError."""
        error = ReleasePackError(
            "Test error message",
            ErrorCategory.CONFIGURATION,
            solution="Fix your config",
        )

        assert error.message == "Test error message"
        assert error.category == ErrorCategory.CONFIGURATION
        assert error.solution == "Fix your config"
        assert error.recoverable is True
        assert error.log_level == logging.ERROR

    def test_error_display(self, capsys):
        """Test error display to user."""
        error = ReleasePackError(
            "Configuration is invalid",
            ErrorCategory.CONFIGURATION,
            solution="Check your config file",
            details="Missing required field 'announce'",
        )

        error.display_to_user()
        captured = capsys.readouterr()

        assert "Configuration Error" in captured.out
        assert "Configuration is invalid" in captured.out
        assert "Check your config file" in captured.out
        assert "Missing required field" in captured.out

    def test_bracketed_text_survives_display(self, capsys):
        """Test format tags in messages are not eaten as markup."""
        error = MalformedReleaseNameError("Artist - Album")

        error.display_to_user()
        captured = capsys.readouterr()

        assert "[FLAC]" in captured.out


class TestSpecificErrors:
    """Test the specialised error classes."""

    def test_configuration_error_points_at_file(self):
        """Test the config path becomes the solution."""
        error = ConfigurationError("Bad value", config_path=Path("/etc/releasepack.toml"))

        assert error.category == ErrorCategory.CONFIGURATION
        assert "/etc/releasepack.toml" in error.solution

    def test_dependency_error(self):
        """Test dependency errors are not recoverable."""
        error = DependencyError("lame", install_command="apt install lame")

        assert error.dependency == "lame"
        assert error.recoverable is False
        assert "apt install lame" in error.solution

    def test_external_tool_error(self):
        """Test tool errors carry exit code and stderr."""
        error = ExternalToolError("flac", 1, "decode error")

        assert error.tool == "flac"
        assert error.exit_code == 1
        assert error.details == "decode error"
        assert error.message == "flac failed with exit code 1"

    def test_external_tool_error_custom_message(self):
        """Test a custom message keeps the exit code suffix."""
        error = ExternalToolError("flac", 2, message="FLAC test failed for a.flac")

        assert error.message == "FLAC test failed for a.flac with exit code 2"

    def test_channel_count_error(self):
        """Test channel errors name the file and count."""
        error = ChannelCountError(Path("surround.flac"), 6)

        assert "surround.flac" in error.message
        assert "6 channels" in error.message
        assert error.category == ErrorCategory.MEDIA

    def test_unsupported_sample_rate(self):
        """Test sample rate errors list the supported rates."""
        error = UnsupportedSampleRateError(32000)

        assert "32000" in error.message
        assert "192000" in error.details

    def test_duration_mismatch_lists_files(self):
        """Test the mismatch error names every offending file."""
        mismatches = [
            DurationMismatch("01.mp3", 200.0, 201.01),
            DurationMismatch("02.mp3", 180.0, 170.0),
        ]

        error = DurationMismatchError(mismatches, 1.0)

        assert "2 files" in error.message
        assert "01.mp3" in error.message
        assert "02.mp3" in error.message
        assert "Expected 200.00s, got 201.01s" in error.details
        assert error.category == ErrorCategory.VALIDATION


class TestErrorHandling:
    """Test handle_error wrapping."""

    def test_handle_release_pack_error(self, capsys):
        """Test known errors are displayed as-is."""
        handle_error(ReleasePackError("Known failure", ErrorCategory.RELEASE))

        assert "Known failure" in capsys.readouterr().out

    def test_handle_filesystem_error(self, capsys):
        """Test filesystem exceptions are categorised."""
        handle_error(FileNotFoundError("missing.flac"))

        assert "Filesystem Error" in capsys.readouterr().out

    def test_handle_generic_error(self, capsys):
        """Test other exceptions become system errors."""
        handle_error(RuntimeError("boom"))

        output = capsys.readouterr().out
        assert "System Error" in output
        assert "boom" in output


class TestCheckDependencies:
    """Test external tool discovery."""

    def test_all_tools_present(self):
        """Test no errors when every tool resolves."""
        config = ReleasePackConfig()

        with patch("releasepack.error_handling.shutil.which", return_value="/usr/bin/tool"):
            assert check_dependencies(config) == []

    def test_missing_tools_reported(self):
        """Test each missing tool yields a DependencyError."""
        config = ReleasePackConfig(lame_path="lame-missing")

        def which(name):
            return None if name in ("lame-missing", "python") else f"/usr/bin/{name}"

        with patch("releasepack.error_handling.shutil.which", side_effect=which):
            errors = check_dependencies(config)

        assert [error.dependency for error in errors] == ["lame-missing", "python"]
        assert all(isinstance(error, DependencyError) for error in errors)
