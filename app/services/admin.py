"""Helpers behind the admin dashboard: word and game validation, overview stats."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from app.services.progress import ProgressSnapshot, snapshot_from_dict

DIFFICULTIES = ("Easy", "Medium", "Hard")
WORD_TEXT_FIELDS = ("word", "pronunciation", "definition", "example", "category")
GAME_TEXT_FIELDS = ("name", "icon", "description", "category", "difficulty", "time_estimate")
GAME_COUNT_FIELDS = ("total_items", "times_played", "avg_score")


def validate_word(
    payload: object,
    *,
    partial: bool = False,
) -> tuple[dict[str, object], dict[str, str]]:
    """Validate a word submission; ``partial`` allows omitting fields on update."""
    cleaned: dict[str, object] = {}
    errors: dict[str, str] = {}
    if not isinstance(payload, Mapping):
        return cleaned, {"form": "Word must be a JSON object."}

    for name in WORD_TEXT_FIELDS:
        if name in payload:
            cleaned[name] = str(payload[name] or "").strip()

    for name in ("word", "definition"):
        if name in cleaned or not partial:
            if not cleaned.get(name):
                errors["form"] = "Word and definition are required."

    if "difficulty" in payload or not partial:
        raw = str(payload.get("difficulty") or "Easy").strip().capitalize()
        if raw not in DIFFICULTIES:
            errors["difficulty"] = "Difficulty must be Easy, Medium, or Hard."
        else:
            cleaned["difficulty"] = raw

    if "points" in payload:
        points = payload["points"]
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            errors["points"] = "Points must be a non-negative integer."
        else:
            cleaned["points"] = points

    return cleaned, errors


def validate_game(payload: object) -> tuple[dict[str, object], dict[str, str]]:
    cleaned: dict[str, object] = {}
    errors: dict[str, str] = {}
    if not isinstance(payload, Mapping):
        return cleaned, {"form": "Game must be a JSON object."}

    for name in GAME_TEXT_FIELDS:
        if name in payload:
            value = str(payload[name] or "").strip()
            if name == "name" and not value:
                errors["name"] = "Game name is required."
            else:
                cleaned[name] = value

    for name in GAME_COUNT_FIELDS:
        if name in payload:
            value = payload[name]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                errors[name] = f"{name} must be a non-negative integer."
            else:
                cleaned[name] = value

    if "avg_score" in cleaned and int(cleaned["avg_score"]) > 100:  # type: ignore[arg-type]
        errors["avg_score"] = "avg_score must be between 0 and 100."

    return cleaned, errors


def student_snapshot(document: Mapping[str, object]) -> ProgressSnapshot:
    return snapshot_from_dict(document.get("progress"))  # type: ignore[arg-type]


def accuracy_percent(snapshot: ProgressSnapshot) -> Optional[int]:
    """Share of correct answers in percent, or None before the first answer."""
    if snapshot.total_answers <= 0:
        return None
    return round(snapshot.correct_answers * 100 / snapshot.total_answers)


def average_accuracy(snapshots: Iterable[ProgressSnapshot]) -> int:
    scores = [score for score in (accuracy_percent(s) for s in snapshots) if score is not None]
    if not scores:
        return 0
    return round(sum(scores) / len(scores))
