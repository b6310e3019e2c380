from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SyncConfigurationError(RuntimeError):
    """Raised when the progress sync provider is not configured correctly."""


class ProgressSync:
    """Fire-and-forget runner for remote progress writes.

    ``inline`` runs the write in the caller's thread. ``thread`` hands it to a
    single background worker so writes apply in submission order. Failures are
    logged and never retried; the caller keeps its local state.
    """

    PROVIDERS = {"inline", "thread"}

    def __init__(self, provider: str = "thread") -> None:
        normalized = (provider or "").strip().lower()
        if normalized not in self.PROVIDERS:
            raise SyncConfigurationError(
                f"PROGRESS_SYNC_PROVIDER must be one of {sorted(self.PROVIDERS)}, got {provider!r}."
            )
        self.provider = normalized
        self._executor: Optional[ThreadPoolExecutor] = None
        if normalized == "thread":
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="progress-sync")

    def submit(self, label: str, write: Callable[[], None]) -> Optional[Future]:
        """Schedule ``write``; returns the future for the threaded provider."""
        if self._executor is None:
            self._run(label, write)
            return None
        return self._executor.submit(self._run, label, write)

    @staticmethod
    def _run(label: str, write: Callable[[], None]) -> bool:
        try:
            write()
        except Exception as exc:
            logger.warning("Remote sync failed for %s: %s", label, exc, exc_info=True)
            return False
        logger.debug("Remote sync completed for %s", label)
        return True

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
