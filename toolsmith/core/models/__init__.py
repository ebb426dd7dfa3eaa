"""
Domain models — value types for the installer engine.

All models are re-exported here for convenient access:

    from toolsmith.core.models import Platform, ProcessOutcome
"""

from toolsmith.core.models.outcome import ProcessOutcome
from toolsmith.core.models.platform import VARIANT_KEYS, Platform

__all__ = [
    "Platform",
    "ProcessOutcome",
    "VARIANT_KEYS",
]
