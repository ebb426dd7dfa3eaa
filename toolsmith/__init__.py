"""toolsmith — composable installer pipelines over external processes."""

__version__ = "0.1.0"
