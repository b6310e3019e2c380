from __future__ import annotations

import logging
from typing import Optional

from app.services.progress import ProgressSnapshot, default_snapshot, snapshot_from_dict
from models import get_progress_document, list_progress_ranked, set_progress_document

logger = logging.getLogger(__name__)


def fetch_snapshot(user_id: str) -> Optional[ProgressSnapshot]:
    """Return the stored snapshot for the learner, or None when absent."""
    document = get_progress_document(user_id)
    if document is None:
        return None
    return snapshot_from_dict(document)


def save_snapshot(user_id: str, snapshot: ProgressSnapshot) -> None:
    """Overwrite the learner's stored snapshot."""
    set_progress_document(user_id, snapshot.to_dict())


def get_or_create_snapshot(user_id: str) -> ProgressSnapshot:
    """Return the stored snapshot, storing a zero snapshot first when absent."""
    snapshot = fetch_snapshot(user_id)
    if snapshot is not None:
        return snapshot
    snapshot = default_snapshot()
    save_snapshot(user_id, snapshot)
    logger.info("Created default progress for user %s", user_id)
    return snapshot


def reset_snapshot(user_id: str) -> ProgressSnapshot:
    """Administrative reset: zero every counter and flag for the learner."""
    snapshot = default_snapshot()
    save_snapshot(user_id, snapshot)
    logger.info("Reset progress for user %s", user_id)
    return snapshot


def list_ranked(field: str, limit: int) -> list[dict[str, object]]:
    """Return learner entries ordered by ``field`` with typed progress snapshots."""
    entries = list_progress_ranked(field, limit)
    for entry in entries:
        entry["progress"] = snapshot_from_dict(entry.get("progress"))  # type: ignore[arg-type]
    return entries
