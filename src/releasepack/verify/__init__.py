"""Release verification: pre-flight checks, warning gate and duration validation."""
