"""Infrastructure layer - host I/O, configuration and logging plumbing."""
