"""Database repository helpers for VocaboPlay."""

from .progress_repo import (
    fetch_snapshot,
    get_or_create_snapshot,
    list_ranked,
    reset_snapshot,
    save_snapshot,
)
from .users_repo import (
    fetch_profile_document,
    list_student_documents,
    remove_student,
    save_profile_fields,
    total_students,
)
from .library_repo import (
    add_word,
    all_games,
    edit_game,
    edit_word,
    mark_studied,
    remove_word,
    search_words,
    seed_words,
    totals,
)

__all__ = [
    "fetch_snapshot",
    "get_or_create_snapshot",
    "list_ranked",
    "reset_snapshot",
    "save_snapshot",
    "fetch_profile_document",
    "list_student_documents",
    "remove_student",
    "save_profile_fields",
    "total_students",
    "add_word",
    "all_games",
    "edit_game",
    "edit_word",
    "mark_studied",
    "remove_word",
    "search_words",
    "seed_words",
    "totals",
]
