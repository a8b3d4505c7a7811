"""DR computation."""
