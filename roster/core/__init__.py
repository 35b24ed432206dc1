"""Core infrastructure: configuration, logging, storage handle, unit of work."""
