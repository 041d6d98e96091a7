"""External service integrations for Moovey."""
