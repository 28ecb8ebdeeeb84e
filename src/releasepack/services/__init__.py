"""External tool integrations.

This package contains thin async wrappers for the command-line tools the
pipeline drives (flac, metaflac, lame, sox, ffprobe and the log checker) and
for mutagen tag access. Keeping them separate allows easy mocking during
testing and a clean boundary around external dependencies.
"""
