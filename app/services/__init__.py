"""Service layer: progress rules, profiles, identity, leaderboards and admin helpers."""

from . import admin, identity, leaderboard, local_cache, notifications, profiles, progress, progress_tracker

__all__ = [
    "admin",
    "identity",
    "leaderboard",
    "local_cache",
    "notifications",
    "profiles",
    "progress",
    "progress_tracker",
]
