"""End-to-end release processing against stand-in command-line tools."""

import sys
from io import StringIO

import pytest
import torf
from rich.console import Console

from releasepack.config import ReleasePackConfig, TrackerConfig
from releasepack.core.confirmation import AutoReject
from releasepack.core.orchestrator import ReleaseProcessor
from releasepack.models import ReleaseState

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="stand-in tools are shell scripts")

RELEASE = "Artist - Album (2020) [FLAC-24-96]"

# One script plays every tool; FLAC sources hold "<bits> <rate>" as text
TOOL_SCRIPT = """\
import sys
from pathlib import Path

tool, args = sys.argv[1], sys.argv[2:]


def stream_info(path):
    return Path(path).read_text().split()[:2]


if tool == "flac":
    if args[0] == "-t":
        sys.stderr.write(f"{args[1]}: ok\\n")
    else:
        sys.stdout.buffer.write(b"\\x00" * 4096)
elif tool == "metaflac":
    if args[0] == "--show-bps":
        print(stream_info(args[1])[0])
    elif args[0] == "--show-sample-rate":
        print(stream_info(args[1])[1])
elif tool == "sox":
    destination = Path(args[args.index("-b") + 2])
    destination.write_text(f"16 {args[args.index('-L') + 1]}\\n" + "x" * 64)
elif tool == "lame":
    sys.stdin.buffer.read()
    Path(args[-1]).write_bytes(b"mp3 frames")
elif tool == "ffprobe":
    print("channels=2")
    print("duration=180.000000")
elif tool == "hbcl":
    print(f"Log: {args[0]}")
    print("Score: 100")
"""


def torrent_contents(path):
    info = torf.Torrent.read(path).metainfo["info"]
    if "files" not in info:
        return [info["name"]]
    return sorted("/".join(entry["path"]) for entry in info["files"])


@pytest.fixture
def tools(tmp_path):
    """Executable stand-ins for flac, metaflac, sox, lame, ffprobe and hbcl."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "tool.py"
    script.write_text(TOOL_SCRIPT)

    paths = {}
    for name in ("flac", "metaflac", "sox", "lame", "ffprobe", "hbcl"):
        wrapper = bin_dir / name
        wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" {name} "$@"\n')
        wrapper.chmod(0o755)
        paths[name] = str(wrapper)
    return paths


@pytest.fixture
def pipeline_config(tmp_path, tools):
    return ReleasePackConfig(
        base_dir=tmp_path / "base",
        concurrency_limit=2,
        spectrograms=False,
        flac_path=tools["flac"],
        metaflac_path=tools["metaflac"],
        sox_path=tools["sox"],
        lame_path=tools["lame"],
        ffprobe_path=tools["ffprobe"],
        hbcl_cmd=f'"{tools["hbcl"]}" "%1"',
    )


@pytest.fixture
def trackers():
    red = TrackerConfig(
        name="red",
        tracker="https://red.example.org/announce",
        source="RED",
        exclude_file_patterns=["Scans/"],
    )
    ops = TrackerConfig(
        name="ops",
        tracker="https://ops.example.org/announce",
        source="OPS",
        no320=True,
        output_bluray=True,
        output_photobook=True,
    )
    return [red, ops]


@pytest.fixture
def release_dir(pipeline_config, make_files):
    """24-bit release with an audio disc, a Blu-ray disc, a photobook and scans."""
    root = pipeline_config.input_dir / RELEASE
    make_files(root, "Disc 1/01.flac", "Disc 1/02.flac", content=b"24 96000\n" + b"x" * 64)
    make_files(root, "Disc 1/rip.log", "Disc 2/BDMV/index.bdmv", "Photobook/page01.jpg", "Scans/front.jpg")
    return root


class TestFullPipeline:
    """Test a release through every real stage."""

    @pytest.mark.asyncio
    async def test_24bit_multi_disc_release(self, pipeline_config, trackers, release_dir):
        """Test renditions, torrent set, tracker options and disc splits."""
        processor = ReleaseProcessor(
            pipeline_config,
            trackers,
            confirmation=AutoReject(),
            console=Console(file=StringIO()),
        )

        outcome = await processor.process_release(release_dir)

        output_dir = pipeline_config.output_dir
        result = outcome.result
        assert result.state is ReleaseState.COMPLETED
        assert result.flac24 == output_dir / RELEASE
        assert result.flac == output_dir / "Artist - Album (2020) [FLAC]"
        assert result.mp3_320 == output_dir / "Artist - Album (2020) [320]"
        assert result.mp3_v0 == output_dir / "Artist - Album (2020) [V0]"
        assert result.bluray == result.flac24
        assert result.photobook == result.flac24
        assert result.dvd is None
        assert not release_dir.exists()

        assert (result.flac / "Disc 1" / "01.flac").read_text().startswith("16 48000")
        assert (result.mp3_v0 / "Disc 1" / "02.mp3").read_bytes() == b"mp3 frames"

        assert [path.name for path in outcome.torrents] == [
            "Artist - Album (2020) [FLAC]-red.torrent",
            f"{RELEASE}-red.torrent",
            "Artist - Album (2020) [320]-red.torrent",
            "Artist - Album (2020) [V0]-red.torrent",
            "Artist - Album (2020) [FLAC]-ops.torrent",
            f"{RELEASE}-ops.torrent",
            "Artist - Album (2020) [V0]-ops.torrent",
            f"{RELEASE}-bd-ops.torrent",
            f"{RELEASE}-photobook-ops.torrent",
        ]
        assert all(path.parent == pipeline_config.torrent_dir for path in outcome.torrents)

        flac_red, flac24_red, mp3_320_red, v0_red, flac_ops, flac24_ops, v0_ops, bd_ops, book_ops = (
            outcome.torrents
        )
        audio_flac = ["Disc 1/01.flac", "Disc 1/02.flac", "Disc 1/rip.log"]
        audio_mp3 = ["Disc 1/01.mp3", "Disc 1/02.mp3", "Disc 1/rip.log"]

        assert torrent_contents(flac_red) == audio_flac
        assert torrent_contents(flac24_red) == audio_flac
        assert torrent_contents(mp3_320_red) == audio_mp3
        assert torrent_contents(v0_red) == audio_mp3
        assert torrent_contents(flac_ops) == [*audio_flac, "Scans/front.jpg"]
        assert torrent_contents(flac24_ops) == [*audio_flac, "Scans/front.jpg"]
        assert torrent_contents(v0_ops) == [*audio_mp3, "Scans/front.jpg"]
        assert torrent_contents(bd_ops) == ["Disc 2/BDMV/index.bdmv"]
        assert torrent_contents(book_ops) == ["Photobook/page01.jpg"]

        for path in outcome.torrents:
            torrent = torf.Torrent.read(path)
            assert torrent.private
            expected = "RED" if path.name.endswith("-red.torrent") else "OPS"
            assert torrent.source == expected
