"""Recipes — reusable installers built from the engine."""

from toolsmith.core.recipes import shell, std
from toolsmith.core.recipes.std import RECIPES

__all__ = ["RECIPES", "shell", "std"]
