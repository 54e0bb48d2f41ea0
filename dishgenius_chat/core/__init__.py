"""Core infrastructure: configuration, errors, logging and timing."""
