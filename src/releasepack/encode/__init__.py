"""Rendition encoding: FLAC to MP3 transcoding and 24-bit downsampling."""
