"""Core — engine, recipes, configuration and use cases."""
