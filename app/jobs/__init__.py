"""Background work for VocaboPlay."""

from .sync import ProgressSync, SyncConfigurationError

__all__ = [
    "ProgressSync",
    "SyncConfigurationError",
]
