"""Core infrastructure: configuration, paths and error taxonomy."""
