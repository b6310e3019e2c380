from __future__ import annotations

import datetime
import logging
from typing import Callable, Optional

from app.jobs.sync import ProgressSync
from app.repositories import progress_repo
from app.services.local_cache import PROGRESS_KEY, LocalStore, user_key
from app.services.notifications import Channel
from app.services.progress import (
    ProgressSnapshot,
    apply_update,
    default_snapshot,
    newly_unlocked,
    snapshot_from_dict,
)

logger = logging.getLogger(__name__)


def _utcnow_iso() -> str:
    return datetime.datetime.utcnow().isoformat()


class ProgressTracker:
    """Applies activity results to one learner's progress.

    The local cache is written first and synchronously. The remote write is
    handed to ``sync`` and may fail without affecting the local state or the
    notification sent on ``channel``.
    """

    def __init__(
        self,
        user_id: str,
        *,
        cache: LocalStore,
        sync: ProgressSync,
        channel: Channel[ProgressSnapshot],
        store=progress_repo,
        clock: Callable[[], str] = _utcnow_iso,
    ) -> None:
        self.user_id = user_id
        self.cache = cache
        self.sync = sync
        self.channel = channel
        self.store = store
        self.clock = clock
        self.last_unlocked: list[str] = []

    @property
    def cache_key(self) -> str:
        return user_key(PROGRESS_KEY, self.user_id)

    def cached(self) -> Optional[ProgressSnapshot]:
        raw = self.cache.get(self.cache_key)
        if raw is None:
            return None
        return snapshot_from_dict(raw)

    def current(self) -> ProgressSnapshot:
        return self.cached() or default_snapshot()

    def hydrate(self) -> ProgressSnapshot:
        """Load the stored snapshot into the local cache, creating it when absent."""
        try:
            snapshot = self.store.get_or_create_snapshot(self.user_id)
        except Exception as exc:
            logger.error("Error loading progress for user %s: %s", self.user_id, exc)
            self.cache.remove(self.cache_key)
            return default_snapshot()
        self.cache.set(self.cache_key, snapshot.to_dict())
        return snapshot

    def clear(self) -> None:
        self.cache.remove(self.cache_key)

    def record(self, update: dict[str, object]) -> ProgressSnapshot:
        """Apply an activity update and return the new snapshot."""
        before = self.cached()
        changes = dict(update)
        changes["last_active"] = self.clock()
        snapshot = apply_update(before, changes)

        self.cache.set(self.cache_key, snapshot.to_dict())
        self.last_unlocked = newly_unlocked(before, snapshot)
        if self.last_unlocked:
            logger.info(
                "User %s unlocked achievements: %s",
                self.user_id,
                ", ".join(self.last_unlocked),
            )

        user_id = self.user_id
        store = self.store
        self.sync.submit(
            f"progress:{user_id}",
            lambda: store.save_snapshot(user_id, snapshot),
        )

        self.channel.publish(snapshot)
        return snapshot
