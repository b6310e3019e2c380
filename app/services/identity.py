"""Sign-up, sign-in and password changes backed by the users table.

Failures raise ``AuthError`` with a provider-style code such as
``auth/wrong-password``; the message tables below turn codes into the text
shown next to the form that triggered them.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from app.security import hash_password, is_strong_enough, is_valid_email, verify_password
from config.settings import get_settings
from models import (
    User,
    create_user,
    get_user_by_email,
    get_user_by_id,
    update_user_password,
)

logger = logging.getLogger(__name__)

SIGN_IN_MESSAGES = {
    "auth/invalid-email": "Invalid email address",
    "auth/user-disabled": "This account has been disabled",
    "auth/user-not-found": "No account found with this email",
    "auth/wrong-password": "Incorrect password",
    "auth/invalid-credential": "Invalid email or password",
}
SIGN_UP_MESSAGES = {
    "auth/email-already-in-use": "This email is already registered",
    "auth/invalid-email": "Invalid email address",
    "auth/weak-password": "Password is too weak",
}
PASSWORD_CHANGE_MESSAGES = {
    "auth/wrong-password": "Current password is incorrect",
}

DEFAULT_MESSAGES = {
    "sign_in": "Failed to log in. Please try again.",
    "sign_up": "Failed to create account. Please try again.",
    "password_change": "Failed to update password",
}

_MESSAGE_TABLES = {
    "sign_in": SIGN_IN_MESSAGES,
    "sign_up": SIGN_UP_MESSAGES,
    "password_change": PASSWORD_CHANGE_MESSAGES,
}

ADMIN_ACCESS_DENIED = "Access denied. This account is not an admin account."


class AuthError(Exception):
    """Identity failure carrying a provider error code."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


def message_for(code: str, action: str) -> str:
    """Map an error code to the user-facing message for ``action``."""
    return _MESSAGE_TABLES.get(action, {}).get(code, DEFAULT_MESSAGES[action])


def _password_min_length() -> int:
    return get_settings().PASSWORD_MIN_LENGTH


def validate_signup(payload: Mapping[str, object]) -> tuple[dict[str, str], dict[str, str]]:
    cleaned: dict[str, str] = {}
    errors: dict[str, str] = {}

    email = str(payload.get("email") or "").strip()
    password = payload.get("password")
    confirm_password = payload.get("confirm_password")
    password = password if isinstance(password, str) else ""
    confirm_password = confirm_password if isinstance(confirm_password, str) else ""

    if not email or not password or not confirm_password:
        errors["form"] = "All fields are required"
    elif not is_strong_enough(password, _password_min_length()):
        errors["password"] = f"Password must be at least {_password_min_length()} characters"
    elif password != confirm_password:
        errors["confirm_password"] = "Passwords do not match"

    cleaned["email"] = email
    cleaned["password"] = password
    return cleaned, errors


def validate_login(payload: Mapping[str, object]) -> tuple[dict[str, object], dict[str, str]]:
    cleaned: dict[str, object] = {}
    errors: dict[str, str] = {}

    email = str(payload.get("email") or "").strip()
    password = payload.get("password")
    password = password if isinstance(password, str) else ""
    if not email or not password:
        errors["form"] = "Please fill in all fields"

    cleaned["email"] = email
    cleaned["password"] = password
    cleaned["remember_me"] = bool(payload.get("remember_me"))
    return cleaned, errors


def validate_password_change(
    payload: Mapping[str, object],
) -> tuple[dict[str, str], dict[str, str]]:
    cleaned: dict[str, str] = {}
    errors: dict[str, str] = {}

    values = {}
    for name in ("current_password", "new_password", "confirm_password"):
        value = payload.get(name)
        values[name] = value if isinstance(value, str) else ""

    if not values["current_password"]:
        errors["current_password"] = "Current password is required"
    if values["new_password"] != values["confirm_password"]:
        errors["confirm_password"] = "New passwords do not match"
    elif not is_strong_enough(values["new_password"], _password_min_length()):
        errors["new_password"] = f"Password must be at least {_password_min_length()} characters"

    cleaned["current_password"] = values["current_password"]
    cleaned["new_password"] = values["new_password"]
    return cleaned, errors


def sign_up(email: str, password: str) -> User:
    """Create a student identity and its user document."""
    if not is_valid_email(email):
        raise AuthError("auth/invalid-email")
    if not is_strong_enough(password, _password_min_length()):
        raise AuthError("auth/weak-password")

    try:
        user = create_user(email=email, password_hash=hash_password(password), role="student")
    except ValueError as exc:
        raise AuthError("auth/email-already-in-use") from exc

    logger.info("Created student account %s", user.id)
    return user


def sign_in(email: str, password: str) -> User:
    """Return the user for valid credentials or raise AuthError."""
    if not is_valid_email(email):
        raise AuthError("auth/invalid-email")

    user = get_user_by_email(email)
    if user is None:
        raise AuthError("auth/user-not-found")
    if not verify_password(password, user.password_hash):
        raise AuthError("auth/wrong-password")
    if user.disabled:
        raise AuthError("auth/user-disabled")
    return user


def change_password(user_id: str, current_password: str, new_password: str) -> None:
    """Re-authenticate with the current password, then store the new one."""
    user: Optional[User] = get_user_by_id(user_id)
    if user is None:
        raise AuthError("auth/user-not-found")
    if not verify_password(current_password, user.password_hash):
        raise AuthError("auth/wrong-password")
    if not is_strong_enough(new_password, _password_min_length()):
        raise AuthError("auth/weak-password")

    update_user_password(user.id, hash_password(new_password))
    logger.info("Password updated for user %s", user.id)
