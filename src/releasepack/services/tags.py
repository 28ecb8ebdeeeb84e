"""FLAC tag reading with mutagen and translation to LAME tag flags."""

import logging
import re
from pathlib import Path

from mutagen import MutagenError
from mutagen.flac import FLAC
from mutagen.id3 import ID3, ID3NoHeaderError

logger = logging.getLogger(__name__)

# Tags whose values must be NFC normalized, in Vorbis comment naming
NORMALIZED_TAGS = ("TITLE", "ALBUM", "ARTIST", "ALBUMARTIST", "GENRE", "COMMENT")

# Vorbis comment -> LAME flag; "--tv" entries carry an ID3 frame prefix
LAME_TAG_FLAGS = (
    ("TITLE", "--tt", None),
    ("ALBUM", "--tl", None),
    ("ARTIST", "--ta", None),
    ("ALBUMARTIST", "--tv", "TPE2="),
    ("TRACKNUMBER", "--tv", "TRCK="),
    ("DISCNUMBER", "--tv", "TPOS="),
    ("GENRE", "--tg", None),
    ("YEAR", "--tv", "TYER="),
    ("COMMENT", "--tc", None),
    ("CATALOGNUMBER", "--tv", "TXXX=CATALOGNUMBER="),
    ("BARCODE", "--tv", "TXXX=BARCODE="),
)


def _first(tags, *keys: str) -> str | None:
    for key in keys:
        values = [value for value in tags.get(key, []) if value]
        if values:
            return values[0]
    return None


def _pad_number(value: str | None) -> str | None:
    """Zero-pad the number part of "3" or "3/12" to two digits."""
    if not value:
        return None
    number = value.split("/", 1)[0].strip()
    if not number.isdigit():
        return None
    return number.zfill(2)


def read_flac_tags(path: Path) -> dict[str, str]:
    """Read the tags propagated to MP3 renditions.

    Raises mutagen.MutagenError when the file cannot be parsed.
    """
    audio = FLAC(path)
    tags = audio.tags or {}
    result: dict[str, str] = {}

    for key in ("TITLE", "ALBUM", "ARTIST", "ALBUMARTIST", "CATALOGNUMBER", "BARCODE"):
        value = _first(tags, key)
        if value:
            result[key] = value

    track = _pad_number(_first(tags, "TRACKNUMBER"))
    if track:
        result["TRACKNUMBER"] = track
    disc = _pad_number(_first(tags, "DISCNUMBER"))
    if disc:
        result["DISCNUMBER"] = disc

    date = _first(tags, "DATE")
    if date:
        result["DATE"] = date
    year = _first(tags, "YEAR") or date
    if year:
        match = re.match(r"\d{4}", year)
        if match:
            result["YEAR"] = match.group(0)

    genres = [value for value in tags.get("GENRE", []) if value]
    if genres:
        result["GENRE"] = ", ".join(genres)

    comments = [value for value in tags.get("COMMENT", []) + tags.get("DESCRIPTION", []) if value]
    if comments:
        result["COMMENT"] = "; ".join(comments)

    return result


def build_lame_tag_args(tags: dict[str, str]) -> list[str]:
    """Translate tags into lame command-line flags."""
    args: list[str] = []
    for key, flag, frame in LAME_TAG_FLAGS:
        value = tags.get(key)
        if not value:
            continue
        args += [flag, f"{frame}{value}" if frame else value]
    return args


def has_id3_tags(path: Path) -> bool:
    """Check a FLAC file for an ID3 tag container.

    Unreadable or unsupported ID3 data counts as no tags; the integrity test
    is what rejects broken files.
    """
    try:
        ID3(path)
    except ID3NoHeaderError:
        return False
    except (MutagenError, OSError) as e:
        logger.warning(f"Could not read ID3 data from {path.name}: {e}")
        return False
    return True
