from __future__ import annotations

from typing import Optional

from models import (
    count_games,
    count_words,
    create_word,
    delete_word,
    get_word,
    increment_word_studied,
    list_games,
    list_words,
    seed_vocabulary,
    update_game,
    update_word,
)


def search_words(
    *,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
) -> list[dict[str, object]]:
    """Return words matching all provided filters."""
    return list_words(category=category, difficulty=difficulty, search=search)


def add_word(payload: dict[str, object]) -> dict[str, object]:
    """Store a new word and return it with its generated id."""
    return create_word(payload)


def edit_word(word_id: str, fields: dict[str, object]) -> Optional[dict[str, object]]:
    """Update a word and return the stored result, or None when it does not exist."""
    if not update_word(word_id, fields):
        return None
    return get_word(word_id)


def remove_word(word_id: str) -> bool:
    return delete_word(word_id)


def mark_studied(word_id: str) -> Optional[dict[str, object]]:
    """Increment the times-studied counter for a word."""
    return increment_word_studied(word_id)


def seed_words() -> int:
    return seed_vocabulary()


def all_games() -> list[dict[str, object]]:
    return list_games()


def edit_game(game_id: int, fields: dict[str, object]) -> bool:
    return update_game(game_id, fields)


def totals() -> dict[str, int]:
    return {"words": count_words(), "games": count_games()}
