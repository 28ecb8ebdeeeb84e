"""Torrent metadata creation for release renditions."""
