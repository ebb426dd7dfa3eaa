"""Shell adapters — process spawning and filesystem helpers."""
