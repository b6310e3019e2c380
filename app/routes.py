from __future__ import annotations

import logging
import secrets
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, abort, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from app.services import admin as admin_service
from app.services.identity import (
    ADMIN_ACCESS_DENIED,
    AuthError,
    change_password,
    message_for,
    sign_in,
    sign_up,
    validate_login,
    validate_password_change,
    validate_signup,
)
from app.services.leaderboard import BOARD_FIELDS, DEFAULT_BOARD, board_field, rank_entries
from app.services.local_cache import PROGRESS_KEY, SessionStore, user_key
from app.services.profiles import (
    Identity,
    ProfileManager,
    ProfileSaveError,
    clean_profile_changes,
)
from app.services.progress import parse_progress_update
from app.repositories import (
    add_word,
    all_games,
    edit_game,
    edit_word,
    fetch_profile_document,
    list_ranked,
    list_student_documents,
    mark_studied,
    remove_student,
    remove_word,
    reset_snapshot,
    search_words,
    seed_words,
    total_students,
    totals,
)

logger = logging.getLogger(__name__)

bp = Blueprint("core", __name__)

DEVICE_COOKIE = "vocaboplay_device"
DEVICE_COOKIE_MAX_AGE = 86400 * 365


@bp.get("/health")
def health():
    return jsonify({"status": "ok", "service": "vocaboplay"}), 200


def role_required(expected_role: str) -> Callable:
    """Ensure the current user has the provided role."""

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            if current_user.role != expected_role:
                abort(403)
            return view(*args, **kwargs)

        return wrapped

    return decorator


def _profile_manager(user=None, device_id: Optional[str] = None) -> ProfileManager:
    """Build the profile manager for the signed-in user on this request."""
    user = user or current_user
    device_id = device_id or request.cookies.get(DEVICE_COOKIE)
    services = current_app.extensions["vocaboplay"]
    identity = Identity(uid=user.id, email=user.email, name=user.display_name)
    return ProfileManager(
        identity,
        remember_store=services.remember_store,
        session_store=SessionStore(services.session_data),
        progress_cache=services.progress_cache,
        sync=services.sync,
        device_id=device_id,
    )


def _auth_error_response(exc: AuthError, action: str, status_code: int = 401):
    return jsonify({"error": message_for(exc.code, action), "code": exc.code}), status_code


# ----------------------------------------------------------------------------- auth


@bp.post("/api/auth/signup")
def api_signup():
    payload = request.get_json(silent=True) or {}
    cleaned, errors = validate_signup(payload)
    if errors:
        return jsonify({"errors": errors}), 400

    try:
        user = sign_up(cleaned["email"], cleaned["password"])
    except AuthError as exc:
        status_code = 409 if exc.code == "auth/email-already-in-use" else 400
        return _auth_error_response(exc, "sign_up", status_code)

    login_user(user)
    manager = _profile_manager(user)
    # Drops any cached numbers, then creates the default progress document.
    manager.tracker.clear()
    profile = manager.start_session(remember_me=False)
    return jsonify({"profile": profile.to_dict()}), 201


def _login(required_role: str | None):
    payload = request.get_json(silent=True) or {}
    cleaned, errors = validate_login(payload)
    if errors:
        return jsonify({"errors": errors}), 400

    try:
        user = sign_in(str(cleaned["email"]), str(cleaned["password"]))
    except AuthError as exc:
        return _auth_error_response(exc, "sign_in")

    if required_role is not None and user.role != required_role:
        logger.warning("Rejected %s login for user %s with role %s", required_role, user.id, user.role)
        return jsonify({"error": ADMIN_ACCESS_DENIED}), 403

    remember_me = bool(cleaned["remember_me"])
    device_id = request.cookies.get(DEVICE_COOKIE)
    if remember_me and not device_id:
        device_id = secrets.token_urlsafe(24)

    login_user(user, remember=remember_me)
    profile = _profile_manager(user, device_id).start_session(remember_me=remember_me)
    response = jsonify({"profile": profile.to_dict(), "role": user.role})
    if device_id:
        response.set_cookie(
            DEVICE_COOKIE,
            device_id,
            max_age=DEVICE_COOKIE_MAX_AGE,
            secure=current_app.config["SESSION_COOKIE_SECURE"],
            httponly=True,
            samesite="Lax",
        )
    return response


@bp.post("/api/auth/login")
def api_login():
    return _login(None)


@bp.post("/api/admin/login")
def api_admin_login():
    return _login("admin")


@bp.post("/api/auth/logout")
@login_required
def api_logout():
    _profile_manager().end_session()
    logout_user()
    return jsonify({"logged_out": True})


# -------------------------------------------------------------------------- profile


@bp.get("/api/profile")
@login_required
def api_get_profile():
    profile = _profile_manager().resolve_profile()
    return jsonify({"profile": profile.to_dict()})


@bp.put("/api/profile")
@login_required
def api_update_profile():
    payload = request.get_json(silent=True) or {}
    changes, errors = clean_profile_changes(payload)
    if errors:
        return jsonify({"errors": errors}), 400

    manager = _profile_manager()
    manager.resolve_profile()
    try:
        profile = manager.update_profile(changes)
    except ProfileSaveError as exc:
        return jsonify({"error": str(exc), "profile": exc.profile.to_dict()}), 502
    return jsonify({"profile": profile.to_dict()})


@bp.post("/api/profile/password")
@login_required
def api_change_password():
    payload = request.get_json(silent=True) or {}
    cleaned, errors = validate_password_change(payload)
    if errors:
        return jsonify({"errors": errors}), 400

    try:
        change_password(current_user.id, cleaned["current_password"], cleaned["new_password"])
    except AuthError as exc:
        return _auth_error_response(exc, "password_change", 400)
    return jsonify({"updated": True, "message": "Password updated successfully"})


# ------------------------------------------------------------------------- progress


@bp.get("/api/progress")
@role_required("student")
def api_get_progress():
    tracker = _profile_manager().tracker
    snapshot = tracker.cached() or tracker.hydrate()
    return jsonify({"progress": snapshot.to_dict()})


@bp.post("/api/progress")
@role_required("student")
def api_record_progress():
    try:
        update = parse_progress_update(request.get_json(silent=True))
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    manager = _profile_manager()
    manager.resolve_profile()
    if manager.tracker.cached() is None:
        manager.tracker.hydrate()
    snapshot = manager.tracker.record(update)
    return jsonify(
        {
            "progress": snapshot.to_dict(),
            "unlocked": manager.tracker.last_unlocked,
        }
    )


@bp.get("/api/leaderboard")
@login_required
def api_leaderboard():
    board = request.args.get("board", DEFAULT_BOARD)
    if board not in BOARD_FIELDS:
        board = DEFAULT_BOARD
    limit_key = "ADMIN_LEADERBOARD_LIMIT" if current_user.role == "admin" else "LEADERBOARD_LIMIT"
    limit = int(current_app.config[limit_key])

    entries = rank_entries(list_ranked(board_field(board), limit), board)
    return jsonify(
        {
            "board": board,
            "entries": [
                {
                    "id": entry["id"],
                    "rank": entry["rank"],
                    "display_name": entry.get("display_name") or "Anonymous User",
                    "avatar": entry.get("avatar") or "👤",
                    "email": entry.get("email") if current_user.role == "admin" else None,
                    "is_current_user": entry["id"] == current_user.id,
                    "progress": entry["progress"].to_dict(),
                }
                for entry in entries
            ],
        }
    )


@bp.get("/api/words")
@login_required
def api_words():
    words = search_words(
        category=request.args.get("category") or None,
        difficulty=request.args.get("difficulty") or None,
        search=request.args.get("q") or None,
    )
    return jsonify({"items": words, "total": len(words)})


# ---------------------------------------------------------------------------- admin


@bp.get("/api/admin/overview")
@role_required("admin")
def api_admin_overview():
    students = list_student_documents()
    snapshots = [admin_service.student_snapshot(entry) for entry in students]
    counts = totals()
    return jsonify(
        {
            "total_students": total_students(),
            "total_words": counts["words"],
            "total_games": counts["games"],
            "avg_score": admin_service.average_accuracy(snapshots),
        }
    )


@bp.get("/api/admin/words")
@role_required("admin")
def api_admin_list_words():
    words = search_words(
        category=request.args.get("category") or None,
        difficulty=request.args.get("difficulty") or None,
        search=request.args.get("q") or None,
    )
    stats = {name.lower(): sum(1 for w in words if w.get("difficulty") == name) for name in admin_service.DIFFICULTIES}
    stats["times_studied"] = sum(int(w.get("times_studied") or 0) for w in words)
    return jsonify({"items": words, "total": len(words), "stats": stats})


@bp.post("/api/admin/words")
@role_required("admin")
def api_admin_add_word():
    cleaned, errors = admin_service.validate_word(request.get_json(silent=True))
    if errors:
        return jsonify({"errors": errors}), 400
    word = add_word(cleaned)
    logger.info("Admin %s added word %s", current_user.id, word["id"])
    return jsonify({"word": word}), 201


@bp.put("/api/admin/words/<word_id>")
@role_required("admin")
def api_admin_update_word(word_id: str):
    cleaned, errors = admin_service.validate_word(request.get_json(silent=True), partial=True)
    if errors:
        return jsonify({"errors": errors}), 400
    word = edit_word(word_id, cleaned)
    if word is None:
        return jsonify({"error": "Word not found."}), 404
    return jsonify({"word": word})


@bp.delete("/api/admin/words/<word_id>")
@role_required("admin")
def api_admin_delete_word(word_id: str):
    if not remove_word(word_id):
        return jsonify({"error": "Word not found."}), 404
    return jsonify({"deleted": True})


@bp.post("/api/admin/words/<word_id>/studied")
@role_required("admin")
def api_admin_word_studied(word_id: str):
    word = mark_studied(word_id)
    if word is None:
        return jsonify({"error": "Word not found."}), 404
    return jsonify({"word": word})


@bp.post("/api/admin/words/seed")
@role_required("admin")
def api_admin_seed_words():
    added = seed_words()
    return jsonify({"added": added}), 201


@bp.get("/api/admin/games")
@role_required("admin")
def api_admin_list_games():
    games = all_games()
    return jsonify({"items": games, "total": len(games)})


@bp.put("/api/admin/games/<int:game_id>")
@role_required("admin")
def api_admin_update_game(game_id: int):
    cleaned, errors = admin_service.validate_game(request.get_json(silent=True))
    if errors:
        return jsonify({"errors": errors}), 400
    if not edit_game(game_id, cleaned):
        return jsonify({"error": "Game not found."}), 404
    return jsonify({"updated": True})


@bp.get("/api/admin/students")
@role_required("admin")
def api_admin_students():
    students = list_student_documents(request.args.get("q") or None)
    items = []
    for entry in students:
        snapshot = admin_service.student_snapshot(entry)
        items.append(
            {
                "id": entry["id"],
                "name": entry.get("display_name"),
                "email": entry.get("email"),
                "avatar": entry.get("avatar"),
                "join_date": entry.get("created_at"),
                "last_active": snapshot.last_active,
                "avg_score": admin_service.accuracy_percent(snapshot),
                "progress": snapshot.to_dict(),
            }
        )
    return jsonify({"items": items, "total": len(items)})


@bp.post("/api/admin/students/<user_id>/reset")
@role_required("admin")
def api_admin_reset_student(user_id: str):
    document = fetch_profile_document(user_id)
    if document is None or document.get("role") != "student":
        return jsonify({"error": "Student not found."}), 404
    snapshot = reset_snapshot(user_id)
    current_app.extensions["vocaboplay"].progress_cache.set(
        user_key(PROGRESS_KEY, user_id), snapshot.to_dict()
    )
    return jsonify({"progress": snapshot.to_dict()})


@bp.delete("/api/admin/students/<user_id>")
@role_required("admin")
def api_admin_delete_student(user_id: str):
    document = fetch_profile_document(user_id)
    if document is None or document.get("role") != "student":
        return jsonify({"error": "Student not found."}), 404
    remove_student(user_id)
    current_app.extensions["vocaboplay"].progress_cache.remove(user_key(PROGRESS_KEY, user_id))
    return jsonify({"deleted": True})
