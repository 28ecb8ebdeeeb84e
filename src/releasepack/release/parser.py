"""Release directory name parsing and format tag rewriting.

Release directories end with a bracketed format tag, for example
``Artist - Album (2020) [CD-FLAC-24]``. The tag determines the audio format,
whether the content is 24-bit, and an optional media designation prefix.
"""

import dataclasses
import logging
import re
from pathlib import Path

from releasepack.error_handling import MalformedReleaseNameError
from releasepack.models import AudioFormat, DiscType, ReleaseDescriptor
from releasepack.release.discs import detect_discs

logger = logging.getLogger(__name__)

FORMAT_TAG_PATTERN = re.compile(r"\[([^\]]+)\]$")
# Optional disc count, letters (CDr keeps its r), then a dash: "CD-", "2CD-", "WEB-"
MEDIA_PREFIX_PATTERN = re.compile(r"^(\d*)([A-Za-z]+r?)-")
BIT_DEPTH_TAG_PATTERN = re.compile(r"FLAC-\d+")
# Format words that can lead a tag without being a media designation
FORMAT_WORDS = frozenset({"FLAC", "MP3", "AAC", "ALAC", "OPUS"})


def extract_format_tag(name: str) -> str | None:
    """Trailing bracketed tag of a directory name, without brackets."""
    match = FORMAT_TAG_PATTERN.search(name)
    return match.group(1) if match else None


def infer_format(tag: str) -> AudioFormat:
    if re.search("FLAC", tag, re.IGNORECASE):
        return AudioFormat.FLAC
    if "320" in tag:
        return AudioFormat.MP3_320
    if "V0" in tag:
        return AudioFormat.MP3_V0
    return AudioFormat.OTHER


def media_prefix(tag: str) -> str | None:
    """Media designation of a tag with any disc count dropped (2CD -> CD)."""
    match = MEDIA_PREFIX_PATTERN.match(tag)
    if not match or match.group(2).upper() in FORMAT_WORDS:
        return None
    return match.group(2)


def replace_format_tag(name: str, new_tag: str) -> str:
    """Swap the format tag of a directory name, keeping its media prefix."""
    current = extract_format_tag(name)
    if current is None:
        return name

    prefix = media_prefix(current)
    if prefix and media_prefix(new_tag) is None:
        replacement = f"{prefix}-{new_tag}"
    else:
        replacement = MEDIA_PREFIX_PATTERN.sub(r"\2-", new_tag, count=1)

    return FORMAT_TAG_PATTERN.sub(lambda _: f"[{replacement}]", name)


def has_bit_depth_in_format_tag(name: str) -> bool:
    """Check for tags such as FLAC-24 or FLAC-24-48."""
    tag = extract_format_tag(name)
    return bool(tag and BIT_DEPTH_TAG_PATTERN.search(tag))


def downsampled_basename(name: str) -> str:
    """Directory name for the 16-bit rendition of a 24-bit release.

    ``[WEB-FLAC-24]`` becomes ``[WEB-FLAC]`` and ``[FLAC-24-96]`` becomes
    ``[FLAC]``.
    """
    tag = extract_format_tag(name)
    if tag is None:
        return name
    cleaned = re.sub(r"-24.*$", "", tag)
    return FORMAT_TAG_PATTERN.sub(lambda _: f"[{cleaned}]", name)


def parse_release_name(path: Path) -> ReleaseDescriptor:
    """Classify a release from its directory name alone."""
    basename = path.name
    tag = extract_format_tag(basename)
    if tag is None:
        raise MalformedReleaseNameError(basename)

    audio_format = infer_format(tag)
    return ReleaseDescriptor(
        path=path,
        basename=basename,
        format_tag=tag,
        format=audio_format,
        format_label=audio_format.value if audio_format is not AudioFormat.OTHER else tag,
        is_24bit="24" in tag,
        media_prefix=media_prefix(tag),
    )


def parse_release_directory(
    path: Path,
    force_type: DiscType | str | None = None,
) -> ReleaseDescriptor:
    """Classify a release directory and enumerate its discs."""
    if isinstance(force_type, str):
        force_type = DiscType(force_type)

    descriptor = parse_release_name(path)
    discs = detect_discs(path, force_type)
    logger.debug(
        "Classified %s as %s (24-bit: %s, discs: %s)",
        descriptor.basename,
        descriptor.format_label,
        descriptor.is_24bit,
        ", ".join(f"{disc.name}={disc.type.value}" for disc in discs) or "none",
    )
    return dataclasses.replace(descriptor, discs=discs)
