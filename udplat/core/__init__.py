"""Core configuration, timing and logging."""
