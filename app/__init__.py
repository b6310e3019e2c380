from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify
from flask_login import LoginManager
from dotenv import load_dotenv

from config.settings import get_settings
from models import get_user_by_id, init_db

_ENV_LOADED = False


def _ensure_env_loaded() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return

    base_dir = Path(__file__).resolve().parent.parent
    env_path = base_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=True)
    else:
        load_dotenv(override=False)

    _ENV_LOADED = True


login_manager = LoginManager()
login_manager.session_protection = "basic"


@login_manager.user_loader
def load_user(user_id: str) -> Optional[object]:
    user = get_user_by_id(str(user_id))
    if user is None or user.disabled:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required."}), 401


@dataclass
class AppServices:
    """Process-wide collaborators shared by every request."""

    remember_store: object
    session_data: object
    progress_cache: object
    sync: object


def create_app() -> Flask:
    _ensure_env_loaded()

    from models import reset_engine
    from app.jobs.sync import ProgressSync
    from app.services.local_cache import build_store

    reset_engine()
    settings = get_settings()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.SECRET_KEY
    app.config["SESSION_COOKIE_SECURE"] = settings.SESSION_COOKIE_SECURE
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["PERMANENT_SESSION_LIFETIME"] = 86400 * 31  # 31 days
    app.config["LEADERBOARD_LIMIT"] = settings.LEADERBOARD_LIMIT
    app.config["ADMIN_LEADERBOARD_LIMIT"] = settings.ADMIN_LEADERBOARD_LIMIT

    cache_dir = settings.LOCAL_CACHE_DIR
    app.extensions["vocaboplay"] = AppServices(
        remember_store=build_store(os.path.join(cache_dir, "remember") if cache_dir else None),
        session_data=build_store(os.path.join(cache_dir, "sessions") if cache_dir else None),
        progress_cache=build_store(os.path.join(cache_dir, "progress") if cache_dir else None),
        sync=ProgressSync(settings.PROGRESS_SYNC_PROVIDER),
    )

    login_manager.init_app(app)
    init_db()

    from .routes import bp as core_bp

    app.register_blueprint(core_bp)

    return app
