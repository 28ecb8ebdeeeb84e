"""releasepack - verify, clean, transcode and package music releases."""

__version__ = "0.1.0"
