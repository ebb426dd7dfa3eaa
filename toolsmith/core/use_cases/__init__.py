"""Use cases — top-level vertical slices driven by the CLI."""
