"""Learner progress snapshots and the rules that derive level and achievements.

Everything in this module is pure: snapshots are frozen dataclasses and
``apply_update`` always returns a new snapshot.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

XP_PER_LEVEL = 100

COUNTER_FIELDS = (
    "xp",
    "total_points",
    "streak",
    "games_played",
    "words_learned",
    "correct_answers",
    "total_answers",
)


@dataclass(frozen=True)
class FlashcardsProgress:
    cards_viewed: int = 0
    known_words: tuple[str, ...] = ()
    mastered_words: tuple[str, ...] = ()
    sessions_completed: int = 0


@dataclass(frozen=True)
class QuizProgress:
    games_completed: int = 0
    correct_answers: int = 0
    total_questions: int = 0
    best_score: int = 0


@dataclass(frozen=True)
class MatchProgress:
    games_completed: int = 0
    total_pairs: int = 0
    total_moves: int = 0
    best_time: int = 0
    best_moves: int = 0
    perfect_games: int = 0


@dataclass(frozen=True)
class GuessWhatProgress:
    games_completed: int = 0
    correct_answers: int = 0
    total_questions: int = 0
    best_score: int = 0


@dataclass(frozen=True)
class SentenceBuilderProgress:
    games_completed: int = 0
    correct_answers: int = 0
    total_sentences: int = 0
    best_score: int = 0


@dataclass(frozen=True)
class ShortStoryProgress:
    chapters_read: int = 0
    quizzes_passed: int = 0
    stories_completed: int = 0


@dataclass(frozen=True)
class Achievements:
    first_game: bool = False
    perfect_score: bool = False
    three_day_streak: bool = False
    ten_words: bool = False
    master_learner: bool = False
    speed_demon: bool = False
    vocabulary_master: bool = False


ACTIVITY_RECORDS: dict[str, type] = {
    "flashcards": FlashcardsProgress,
    "quiz": QuizProgress,
    "match": MatchProgress,
    "guess_what": GuessWhatProgress,
    "sentence_builder": SentenceBuilderProgress,
    "short_story": ShortStoryProgress,
}


@dataclass(frozen=True)
class ProgressSnapshot:
    """One learner's cumulative counters, derived level, and achievements."""

    level: int = 1
    xp: int = 0
    total_points: int = 0
    streak: int = 0
    games_played: int = 0
    words_learned: int = 0
    correct_answers: int = 0
    total_answers: int = 0
    last_active: Optional[str] = None
    flashcards: FlashcardsProgress = field(default_factory=FlashcardsProgress)
    quiz: QuizProgress = field(default_factory=QuizProgress)
    match: MatchProgress = field(default_factory=MatchProgress)
    guess_what: GuessWhatProgress = field(default_factory=GuessWhatProgress)
    sentence_builder: SentenceBuilderProgress = field(default_factory=SentenceBuilderProgress)
    short_story: ShortStoryProgress = field(default_factory=ShortStoryProgress)
    achievements: Achievements = field(default_factory=Achievements)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dict; word id tuples become lists."""
        payload = dataclasses.asdict(self)
        flashcards = payload["flashcards"]
        flashcards["known_words"] = list(flashcards["known_words"])
        flashcards["mastered_words"] = list(flashcards["mastered_words"])
        return payload


# Predicates re-evaluated against every merged snapshot.
DERIVED_ACHIEVEMENTS: dict[str, Callable[[ProgressSnapshot], bool]] = {
    "first_game": lambda snapshot: snapshot.games_played >= 1,
    "ten_words": lambda snapshot: snapshot.words_learned >= 10,
    "vocabulary_master": lambda snapshot: snapshot.words_learned >= 50,
    "three_day_streak": lambda snapshot: snapshot.streak >= 3,
}

# Flags only the caller can raise, by sending them as true in an update.
SIGNALLED_ACHIEVEMENTS = ("perfect_score", "speed_demon", "master_learner")


def compute_level(xp: int) -> int:
    """Compute the learner level from experience points."""
    if xp < 0:
        xp = 0
    return xp // XP_PER_LEVEL + 1


def default_snapshot() -> ProgressSnapshot:
    return ProgressSnapshot()


def _coerce_count(value: object) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return max(0, int(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0


def _coerce_ids(value: object) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(item) for item in value)


def _record_from_dict(record_cls: type, raw: object):
    if isinstance(raw, record_cls):
        return raw
    if not isinstance(raw, Mapping):
        return record_cls()
    values: dict[str, object] = {}
    for item in dataclasses.fields(record_cls):
        if item.name not in raw:
            continue
        if isinstance(item.default, tuple):
            values[item.name] = _coerce_ids(raw[item.name])
        else:
            values[item.name] = _coerce_count(raw[item.name])
    return record_cls(**values)


def _merge_record(current, changes: Mapping[str, object]):
    merged = dataclasses.asdict(current)
    merged.update({key: value for key, value in changes.items() if key in merged})
    return _record_from_dict(type(current), merged)


def _achievements_from_dict(raw: object) -> Achievements:
    if not isinstance(raw, Mapping):
        return Achievements()
    names = {item.name for item in dataclasses.fields(Achievements)}
    return Achievements(**{key: bool(value) for key, value in raw.items() if key in names})


def snapshot_from_dict(raw: Optional[Mapping[str, object]]) -> ProgressSnapshot:
    """Build a snapshot from a stored document, defaulting every missing field.

    The stored ``level`` is ignored and recomputed from ``xp``.
    """
    if not raw:
        return default_snapshot()

    values: dict[str, object] = {
        name: _coerce_count(raw[name]) for name in COUNTER_FIELDS if name in raw
    }
    last_active = raw.get("last_active")
    values["last_active"] = str(last_active) if last_active else None
    for name, record_cls in ACTIVITY_RECORDS.items():
        values[name] = _record_from_dict(record_cls, raw.get(name))
    values["achievements"] = _achievements_from_dict(raw.get("achievements"))

    snapshot = ProgressSnapshot(**values)
    return dataclasses.replace(snapshot, level=compute_level(snapshot.xp))


def _evaluate_achievements(
    snapshot: ProgressSnapshot,
    signalled: object,
) -> Achievements:
    flags = dataclasses.asdict(snapshot.achievements)
    for name, predicate in DERIVED_ACHIEVEMENTS.items():
        if predicate(snapshot):
            flags[name] = True
    if isinstance(signalled, Mapping):
        for name in SIGNALLED_ACHIEVEMENTS:
            if signalled.get(name) is True:
                flags[name] = True
    return Achievements(**flags)


def apply_update(
    current: Optional[ProgressSnapshot],
    update: Mapping[str, object],
) -> ProgressSnapshot:
    """Merge a partial update into ``current`` and re-derive level and achievements.

    Counter values in ``update`` are replacement totals, not deltas. Fields
    missing from ``update`` keep their current value. Activity records merge
    field by field. Achievement flags never go from true back to false.
    """
    base = current if current is not None else default_snapshot()

    changes: dict[str, object] = {}
    for name in COUNTER_FIELDS:
        if name in update:
            changes[name] = _coerce_count(update[name])
    if "last_active" in update:
        changes["last_active"] = update["last_active"]
    for name in ACTIVITY_RECORDS:
        record_changes = update.get(name)
        if isinstance(record_changes, Mapping):
            changes[name] = _merge_record(getattr(base, name), record_changes)

    merged = dataclasses.replace(base, **changes)
    return dataclasses.replace(
        merged,
        level=compute_level(merged.xp),
        achievements=_evaluate_achievements(merged, update.get("achievements")),
    )


def newly_unlocked(before: Optional[ProgressSnapshot], after: ProgressSnapshot) -> list[str]:
    """Return achievement names that are set in ``after`` but not in ``before``."""
    previous = dataclasses.asdict((before or default_snapshot()).achievements)
    current = dataclasses.asdict(after.achievements)
    return [name for name, value in current.items() if value and not previous.get(name)]


def parse_progress_update(payload: object) -> dict[str, object]:
    """Validate a progress update received from a client.

    Raises ValueError for malformed values. Unknown keys are dropped.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("Progress update must be a JSON object.")

    cleaned: dict[str, object] = {}
    for name in COUNTER_FIELDS:
        if name not in payload:
            continue
        value = payload[name]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer.")
        if value < 0:
            raise ValueError(f"{name} cannot be negative.")
        cleaned[name] = value

    for name, record_cls in ACTIVITY_RECORDS.items():
        if name not in payload:
            continue
        raw = payload[name]
        if not isinstance(raw, Mapping):
            raise ValueError(f"{name} must be an object.")
        record: dict[str, object] = {}
        for item in dataclasses.fields(record_cls):
            if item.name not in raw:
                continue
            value = raw[item.name]
            if isinstance(item.default, tuple):
                if not isinstance(value, list):
                    raise ValueError(f"{name}.{item.name} must be a list.")
            elif isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name}.{item.name} must be a non-negative integer.")
            record[item.name] = value
        cleaned[name] = record

    achievements = payload.get("achievements")
    if achievements is not None:
        if not isinstance(achievements, Mapping):
            raise ValueError("achievements must be an object.")
        cleaned["achievements"] = {
            name: achievements[name] is True
            for name in SIGNALLED_ACHIEVEMENTS
            if name in achievements
        }

    return cleaned
