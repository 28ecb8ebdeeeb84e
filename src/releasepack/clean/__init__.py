"""In-place cleanup of a verified release before renditions are built."""
