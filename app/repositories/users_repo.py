from __future__ import annotations

from typing import Optional

from models import (
    count_students,
    delete_user,
    get_user_document,
    list_students,
    update_user_document,
)


def fetch_profile_document(user_id: str) -> Optional[dict[str, object]]:
    """Return the stored profile document for the user if it exists."""
    return get_user_document(user_id)


def save_profile_fields(user_id: str, fields: dict[str, object]) -> None:
    """Write profile fields through to the store, raising when the user is gone."""
    if not update_user_document(user_id, fields):
        raise LookupError(f"User {user_id} not found.")


def list_student_documents(search: Optional[str] = None) -> list[dict[str, object]]:
    """Return student documents, optionally filtered by name or email."""
    return list_students(search)


def total_students() -> int:
    return count_students()


def remove_student(user_id: str) -> bool:
    return delete_user(user_id)
