"""Audio decoding and file discovery."""
