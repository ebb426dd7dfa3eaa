"""Configuration — recipe file loading."""
