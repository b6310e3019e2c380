from __future__ import annotations

from typing import Iterable, Optional

from app.services.progress import ProgressSnapshot

BOARD_FIELDS = {
    "points": "total_points",
    "words": "words_learned",
    "streak": "streak",
    "games": "games_played",
}
DEFAULT_BOARD = "points"


def board_field(board: Optional[str]) -> str:
    """Return the snapshot field a board sorts by; unknown boards use points."""
    return BOARD_FIELDS.get((board or "").strip().lower(), BOARD_FIELDS[DEFAULT_BOARD])


def rank_entries(
    entries: Iterable[dict[str, object]],
    board: Optional[str] = None,
) -> list[dict[str, object]]:
    """Sort entries by the board's field, highest first, and number them from 1.

    Each entry needs a ``progress`` ProgressSnapshot. The sort is stable, so
    ties keep their incoming order.
    """
    field = board_field(board)

    def score(entry: dict[str, object]) -> int:
        progress = entry.get("progress")
        if not isinstance(progress, ProgressSnapshot):
            return 0
        return int(getattr(progress, field))

    ordered = sorted(entries, key=score, reverse=True)
    return [{**entry, "rank": index} for index, entry in enumerate(ordered, start=1)]
