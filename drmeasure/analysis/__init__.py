"""Per-track and per-folder analysis."""
