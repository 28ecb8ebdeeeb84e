"""Essential configuration tests."""

import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from releasepack.config import (
    ReleasePackConfig,
    TrackerConfig,
    create_sample_config,
    load_config,
    load_trackers,
    should_skip_320,
)
from releasepack.error_handling import ConfigurationError


@pytest.fixture
def temp_dir():
    """Create temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


class TestConfigBasics:
    """Test essential configuration functionality."""

    def test_default_config(self):
        """Test default configuration values."""
        config = ReleasePackConfig()

        assert config.flac_path == "flac"
        assert config.lame_path == "lame"
        assert config.sox_path == "sox_ng"
        assert "%1" in config.hbcl_cmd
        assert config.concurrency_limit >= 1
        assert config.trackers == {}

    def test_directories_derive_from_base_dir(self, temp_dir):
        """Test unset working directories live under base_dir."""
        config = ReleasePackConfig(base_dir=temp_dir)

        assert config.input_dir == temp_dir / "input"
        assert config.output_dir == temp_dir / "output"
        assert config.torrent_dir == temp_dir / "torrent"
        assert config.spectrograms_dir == temp_dir / "spectrograms"
        assert config.log_dir == temp_dir / "logs"

    def test_explicit_directory_wins(self, temp_dir):
        """Test an explicit directory is not overridden by base_dir."""
        config = ReleasePackConfig(base_dir=temp_dir, output_dir=temp_dir / "elsewhere")

        assert config.output_dir == temp_dir / "elsewhere"
        assert config.input_dir == temp_dir / "input"

    def test_home_expansion(self):
        """Test ~ is expanded in paths."""
        config = ReleasePackConfig(base_dir="~/releasepack")

        assert config.base_dir == (Path.home() / "releasepack").resolve()

    def test_directory_creation(self, temp_dir):
        """Test configuration ensures directories exist."""
        config = ReleasePackConfig(base_dir=temp_dir / "base")

        config.ensure_directories()

        for path in config.working_directories.values():
            assert path.is_dir()
        assert config.log_dir.is_dir()

    def test_concurrency_must_be_positive(self):
        """Test the pool size cannot be zero."""
        with pytest.raises(ValidationError):
            ReleasePackConfig(concurrency_limit=0)


class TestTrackerConfig:
    """Test tracker table parsing."""

    def test_camel_case_aliases(self):
        """Test tracker options accept their original camelCase names."""
        tracker = TrackerConfig(
            name="red",
            tracker="https://flacsfor.me/announce",
            excludeFilePatterns=["Scans/"],
            outputBluray=True,
            outputDVD=True,
            outputPhotobook=True,
        )

        assert tracker.announce == "https://flacsfor.me/announce"
        assert tracker.exclude_file_patterns == ["Scans/"]
        assert tracker.output_bluray
        assert tracker.output_dvd
        assert tracker.output_photobook
        assert tracker.default is True
        assert tracker.no320 is False

    def test_snake_case_names(self):
        """Test tracker options also accept field names."""
        tracker = TrackerConfig(name="ops", announce="https://a/announce", no320=True)

        assert tracker.no320

    def test_name_filled_from_table_key(self):
        """Test the tracker name defaults to its table key."""
        config = ReleasePackConfig(trackers={"red": {"announce": "https://a/announce"}})

        assert config.trackers["red"].name == "red"

    def test_tracker_is_read_only(self):
        """Test tracker configs cannot be changed during a run."""
        tracker = TrackerConfig(name="ops", announce="https://a/announce")

        with pytest.raises(ValidationError):
            tracker.no320 = True


class TestTrackerSelection:
    """Test choosing trackers for a run."""

    @pytest.fixture
    def config(self):
        return ReleasePackConfig(
            trackers={
                "red": {"announce": "https://red/announce"},
                "ops": {"announce": "https://ops/announce", "no320": True},
                "hidden": {"announce": "https://hidden/announce", "default": False},
            },
        )

    def test_defaults_when_none_requested(self, config):
        """Test every tracker not marked non-default is selected."""
        names = [tracker.name for tracker in load_trackers(config)]

        assert names == ["red", "ops"]

    def test_requested_trackers_in_order(self, config):
        """Test explicitly requested trackers are returned as asked."""
        names = [tracker.name for tracker in load_trackers(config, ["hidden", "red"])]

        assert names == ["hidden", "red"]

    def test_unknown_tracker(self, config):
        """Test an unknown tracker name is a configuration error."""
        with pytest.raises(ConfigurationError, match="Unknown tracker: nope"):
            load_trackers(config, ["nope"])

    def test_should_skip_320(self, config):
        """Test 320 is skipped only when every tracker refuses it."""
        trackers = config.trackers

        assert should_skip_320([trackers["ops"]])
        assert not should_skip_320([trackers["ops"], trackers["red"]])
        assert not should_skip_320([])


class TestConfigLoading:
    """Test configuration loading from files."""

    def test_load_config_defaults(self, temp_dir, monkeypatch):
        """Test loading configuration with no file present."""
        monkeypatch.setenv("HOME", str(temp_dir))
        monkeypatch.chdir(temp_dir)
        monkeypatch.delenv("RELEASEPACK_BASE_DIR", raising=False)
        monkeypatch.delenv("RELEASEPACK_CONCURRENCY", raising=False)

        config = load_config()

        assert config.trackers == {}
        assert config.flac_path == "flac"

    def test_config_file_loading(self, temp_dir, monkeypatch):
        """Test loading configuration from a TOML file."""
        monkeypatch.delenv("RELEASEPACK_BASE_DIR", raising=False)
        monkeypatch.delenv("RELEASEPACK_CONCURRENCY", raising=False)
        config_file = temp_dir / "config.toml"
        config_file.write_text(
            f"""
base_dir = "{temp_dir / 'work'}"
concurrency_limit = 3

[trackers.red]
announce = "https://red/announce"
source = "RED"
excludeFilePatterns = ["Scans/"]
""",
        )

        config = load_config(config_file)

        assert config.base_dir == temp_dir / "work"
        assert config.concurrency_limit == 3
        assert config.trackers["red"].source == "RED"
        assert config.trackers["red"].exclude_file_patterns == ["Scans/"]

    def test_environment_overrides(self, temp_dir, monkeypatch):
        """Test environment variables override file values."""
        config_file = temp_dir / "config.toml"
        config_file.write_text("concurrency_limit = 3\n")
        monkeypatch.setenv("RELEASEPACK_CONCURRENCY", "7")
        monkeypatch.setenv("RELEASEPACK_BASE_DIR", str(temp_dir / "env"))

        config = load_config(config_file)

        assert config.concurrency_limit == 7
        assert config.base_dir == temp_dir / "env"

    def test_sample_config_loads(self, temp_dir, monkeypatch):
        """Test the generated sample configuration is valid."""
        monkeypatch.delenv("RELEASEPACK_BASE_DIR", raising=False)
        monkeypatch.delenv("RELEASEPACK_CONCURRENCY", raising=False)
        config_file = temp_dir / "nested" / "config.toml"

        create_sample_config(config_file)
        config = load_config(config_file)

        assert config_file.exists()
        assert "example" in config.trackers
        assert config.trackers["example"].source == "EX"
