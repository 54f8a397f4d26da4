"""Core infrastructure: configuration, logging, topic parsing."""
