"""Data access layer for VocaboPlay without external ORM dependencies.

Tables are used as a small document store: user documents, one progress
document per learner, and the word and game collections managed by admins.
"""

from __future__ import annotations

import datetime
import json
import os
import sqlite3
import threading
import uuid
from typing import Optional, Sequence
from urllib.parse import urlparse

import psycopg
from flask_login import UserMixin
from psycopg import errors as pg_errors
from psycopg.rows import dict_row

from config.settings import get_settings

_connection: Optional[object] = None
_backend: Optional[str] = None  # "sqlite" or "postgres"
# Request threads and the progress-sync worker share one connection; every
# statement and its commit or rollback runs under this lock.
_db_lock = threading.RLock()

# Columns mirrored out of the progress document so leaderboards can sort in SQL.
RANKED_PROGRESS_COLUMNS: dict[str, str] = {
    "total_points": "total_points",
    "words_learned": "words_learned",
    "streak": "streak",
    "games_played": "games_played",
}

PROFILE_COLUMNS = (
    "display_name",
    "username",
    "avatar",
    "bio",
    "phone",
    "location",
    "website",
    "social_links",
    "settings",
)
_JSON_PROFILE_COLUMNS = {"social_links", "settings"}

WORD_COLUMNS = (
    "word",
    "pronunciation",
    "definition",
    "example",
    "difficulty",
    "category",
    "points",
    "color",
    "categories",
    "last_reviewed",
)

GAME_COLUMNS = (
    "name",
    "icon",
    "description",
    "category",
    "difficulty",
    "time_estimate",
    "total_items",
    "times_played",
    "avg_score",
)

DEFAULT_GAMES: tuple[dict[str, object], ...] = (
    {
        "name": "Flashcards",
        "icon": "📇",
        "description": "Master vocabulary through spaced repetition and active recall.",
        "category": "vocab",
        "difficulty": "beginner",
        "time_estimate": "5-10 min",
        "total_items": 30,
    },
    {
        "name": "Match Game",
        "icon": "🎯",
        "description": "Connect words with definitions in this fast-paced memory challenge.",
        "category": "vocab",
        "difficulty": "beginner",
        "time_estimate": "3-5 min",
        "total_items": 6,
    },
    {
        "name": "Short Story",
        "icon": "📖",
        "description": "Immerse yourself in narratives while learning vocabulary in context.",
        "category": "reading",
        "difficulty": "intermediate",
        "time_estimate": "15-20 min",
        "total_items": 5,
    },
    {
        "name": "Quiz",
        "icon": "❓",
        "description": "Test your knowledge with adaptive multiple choice questions.",
        "category": "challenge",
        "difficulty": "intermediate",
        "time_estimate": "10-15 min",
        "total_items": 10,
    },
    {
        "name": "GuessWhat",
        "icon": "🤔",
        "description": "Deduce the correct word from visual context clues and sentences.",
        "category": "challenge",
        "difficulty": "advanced",
        "time_estimate": "8-12 min",
        "total_items": 10,
    },
    {
        "name": "Sentence Builder",
        "icon": "📝",
        "description": "Construct grammatically correct sentences using vocabulary in context.",
        "category": "vocab",
        "difficulty": "beginner",
        "time_estimate": "6-10 min",
        "total_items": 5,
    },
)

SEED_VOCABULARY: tuple[dict[str, object], ...] = (
    {"word": "Participate", "definition": "To take part in an activity or discussion.", "category": "action", "difficulty": "Easy", "points": 5},
    {"word": "Concentrate", "definition": "To focus all your attention on something.", "category": "focus", "difficulty": "Easy", "points": 5},
    {"word": "Summarize", "definition": "To give a brief statement of the main points.", "category": "communication", "difficulty": "Easy", "points": 5},
    {"word": "Analyze", "definition": "To examine something in detail.", "category": "analysis", "difficulty": "Medium", "points": 10},
    {"word": "Collaborate", "definition": "To work together with others.", "category": "collaboration", "difficulty": "Medium", "points": 10},
    {"word": "Demonstrate", "definition": "To show clearly with proof.", "category": "action", "difficulty": "Medium", "points": 10},
    {"word": "Investigate", "definition": "To examine carefully to find facts.", "category": "analysis", "difficulty": "Hard", "points": 15},
    {"word": "Communicate", "definition": "To share information with others.", "category": "communication", "difficulty": "Hard", "points": 15},
    {"word": "Organize", "definition": "To arrange things in an orderly way.", "category": "action", "difficulty": "Easy", "points": 5},
    {"word": "Observe", "definition": "To watch carefully and notice details.", "category": "focus", "difficulty": "Easy", "points": 5},
    {"word": "Explain", "definition": "To make something clear.", "category": "communication", "difficulty": "Easy", "points": 5},
    {"word": "Compare", "definition": "To find similarities and differences.", "category": "analysis", "difficulty": "Medium", "points": 10},
    {"word": "Predict", "definition": "To say what will happen.", "category": "analysis", "difficulty": "Medium", "points": 10},
    {"word": "Create", "definition": "To bring something into existence.", "category": "creativity", "difficulty": "Easy", "points": 5},
    {"word": "Evaluate", "definition": "To judge the value of something.", "category": "analysis", "difficulty": "Hard", "points": 15},
)

DIFFICULTY_COLORS = {"Easy": "#4CAF50", "Medium": "#FF9800", "Hard": "#F44336"}
DIFFICULTY_CATEGORIES = {"Easy": "beginner", "Medium": "intermediate", "Hard": "advanced"}


class User(UserMixin):
    """Flask-Login compatible user wrapper."""

    def __init__(
        self,
        *,
        id: str,
        email: str,
        password_hash: str,
        role: str,
        display_name: str,
        disabled: bool,
        created_at: Optional[str],
    ) -> None:
        self.id = id
        self.email = email
        self.password_hash = password_hash
        self.role = role
        self.display_name = display_name
        self.disabled = disabled
        self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<User id={self.id} role={self.role} email={self.email!r}>"


def _utcnow_iso() -> str:
    return datetime.datetime.utcnow().isoformat()


def _resolve_default_sqlite_path() -> str:
    root_dir = os.path.dirname(os.path.dirname(__file__))
    return os.path.join(root_dir, "vocaboplay_dev.sqlite")


def _normalize_sqlite_path(database_url: str) -> str:
    parsed = urlparse(database_url)
    path = parsed.path or ""
    if path.startswith("/"):
        path = path[1:]
    if path in {"", ":memory:"}:
        return ":memory:"
    if parsed.netloc:
        path = os.path.join(parsed.netloc, path)
    return path or _resolve_default_sqlite_path()


def get_connection():
    """Return a singleton database connection."""
    global _connection, _backend
    with _db_lock:
        if _connection is not None:
            return _connection

        settings = get_settings()
        database_url = settings.DATABASE_URL or f"sqlite:///{_resolve_default_sqlite_path()}"

        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)

        if database_url.startswith("sqlite"):
            db_path = _normalize_sqlite_path(database_url)
            conn = sqlite3.connect(db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON;")
            _connection = conn
            _backend = "sqlite"
        else:
            conn = psycopg.connect(database_url, row_factory=dict_row)
            _connection = conn
            _backend = "postgres"

        return _connection


def reset_engine() -> None:
    """Reset the current database connection (used in tests)."""
    global _connection, _backend
    with _db_lock:
        if _connection is not None:
            _connection.close()
        _connection = None
        _backend = None


def _prepare(query: str) -> str:
    if _backend == "sqlite":
        return query.replace("%s", "?")
    return query


def _execute(query: str, params: tuple = ()) -> int:
    """Run a write statement, commit, and return the affected row count."""
    with _db_lock:
        conn = get_connection()
        cur = conn.cursor()
        try:
            cur.execute(_prepare(query), params)
            conn.commit()
            return cur.rowcount
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()


def _execute_fetchone(query: str, params: tuple) -> Optional[dict]:
    with _db_lock:
        conn = get_connection()
        cur = conn.cursor()
        try:
            cur.execute(_prepare(query), params)
            row = cur.fetchone()
            if row is None:
                return None
            if _backend == "sqlite":
                row = dict(row)
            return row
        finally:
            cur.close()


def _execute_fetchall(query: str, params: tuple = ()) -> list[dict]:
    with _db_lock:
        conn = get_connection()
        cur = conn.cursor()
        try:
            cur.execute(_prepare(query), params)
            rows = cur.fetchall() or []
            if _backend == "sqlite":
                return [dict(row) for row in rows]
            return list(rows)
        finally:
            cur.close()


def init_db() -> None:
    """Create the tables if they do not already exist and seed default games."""
    with _db_lock:
        conn = get_connection()
        cur = conn.cursor()
        game_id_column = (
            "id SERIAL PRIMARY KEY" if _backend == "postgres" else "id INTEGER PRIMARY KEY AUTOINCREMENT"
        )
        try:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id VARCHAR(64) PRIMARY KEY,
                    email VARCHAR(255) NOT NULL UNIQUE,
                    password_hash VARCHAR(255) NOT NULL,
                    role VARCHAR(16) NOT NULL CHECK (role IN ('student', 'admin')),
                    disabled INTEGER NOT NULL DEFAULT 0,
                    display_name TEXT NOT NULL,
                    username TEXT NOT NULL,
                    avatar TEXT,
                    bio TEXT,
                    phone TEXT,
                    location TEXT,
                    website TEXT,
                    social_links TEXT,
                    settings TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS user_progress (
                    user_id VARCHAR(64) PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
                    document TEXT NOT NULL,
                    total_points INTEGER NOT NULL DEFAULT 0,
                    words_learned INTEGER NOT NULL DEFAULT 0,
                    streak INTEGER NOT NULL DEFAULT 0,
                    games_played INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS words (
                    id VARCHAR(64) PRIMARY KEY,
                    word TEXT NOT NULL,
                    pronunciation TEXT,
                    definition TEXT NOT NULL,
                    example TEXT,
                    difficulty VARCHAR(16) NOT NULL,
                    category TEXT,
                    points INTEGER NOT NULL DEFAULT 0,
                    times_studied INTEGER NOT NULL DEFAULT 0,
                    color VARCHAR(16),
                    categories TEXT,
                    date_added TEXT NOT NULL,
                    last_reviewed TEXT
                );
                """
            )
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS games (
                    {game_id_column},
                    name TEXT NOT NULL UNIQUE,
                    icon TEXT,
                    description TEXT,
                    category TEXT,
                    difficulty TEXT,
                    time_estimate TEXT,
                    total_items INTEGER NOT NULL DEFAULT 0,
                    times_played INTEGER NOT NULL DEFAULT 0,
                    avg_score INTEGER NOT NULL DEFAULT 0,
                    last_updated TEXT NOT NULL
                );
                """
            )
            cur.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_user_progress_points
                ON user_progress (total_points);
                """
            )
            cur.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_users_role
                ON users (role);
                """
            )
            conn.commit()
        finally:
            cur.close()

    seed_default_games()


# --------------------------------------------------------------------------- users


def _row_to_user(row: Optional[dict]) -> Optional[User]:
    if not row:
        return None

    return User(
        id=row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=row["role"],
        display_name=row["display_name"],
        disabled=bool(row.get("disabled")),
        created_at=row.get("created_at"),
    )


def get_user_by_id(user_id: str) -> Optional[User]:
    row = _execute_fetchone(
        "SELECT * FROM users WHERE id = %s",
        (user_id,),
    )
    return _row_to_user(row)


def get_user_by_email(email: str) -> Optional[User]:
    if not email:
        return None

    row = _execute_fetchone(
        "SELECT * FROM users WHERE LOWER(email) = LOWER(%s)",
        (email,),
    )
    return _row_to_user(row)


def create_user(
    *,
    email: str,
    password_hash: str,
    role: str = "student",
    display_name: Optional[str] = None,
    username: Optional[str] = None,
    avatar: str = "👤",
    settings: Optional[dict[str, object]] = None,
) -> User:
    normalized_role = role.lower()
    if normalized_role not in {"student", "admin"}:
        raise ValueError("Role must be 'student' or 'admin'.")

    if get_user_by_email(email) is not None:
        raise ValueError("Email already in use.")

    local_part = email.split("@")[0]
    user_id = uuid.uuid4().hex
    try:
        _execute(
            """
            INSERT INTO users (
                id, email, password_hash, role, display_name, username,
                avatar, social_links, settings, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s);
            """,
            (
                user_id,
                email,
                password_hash,
                normalized_role,
                display_name or local_part,
                username or local_part,
                avatar,
                json.dumps({}),
                json.dumps(settings or {}),
                _utcnow_iso(),
            ),
        )
    except (sqlite3.IntegrityError, pg_errors.UniqueViolation) as exc:
        raise ValueError("Email already in use.") from exc

    user = get_user_by_id(user_id)
    if user is None:
        raise RuntimeError("Failed to retrieve created user.")
    return user


def update_user_password(user_id: str, password_hash: str) -> None:
    _execute(
        "UPDATE users SET password_hash = %s, updated_at = %s WHERE id = %s;",
        (password_hash, _utcnow_iso(), user_id),
    )


def set_user_disabled(user_id: str, disabled: bool) -> None:
    _execute(
        "UPDATE users SET disabled = %s WHERE id = %s;",
        (1 if disabled else 0, user_id),
    )


def delete_user(user_id: str) -> bool:
    """Delete a user and their progress document via CASCADE."""
    return _execute("DELETE FROM users WHERE id = %s;", (user_id,)) > 0


def _decode_json(raw: object, default):
    if raw in (None, ""):
        return default
    if isinstance(raw, (dict, list)):
        return raw
    try:
        return json.loads(str(raw))
    except ValueError:
        return default


def _row_to_user_document(row: dict) -> dict[str, object]:
    document = {key: row.get(key) for key in ("id", "email", "role", "created_at", "updated_at")}
    for column in PROFILE_COLUMNS:
        value = row.get(column)
        if column in _JSON_PROFILE_COLUMNS:
            value = _decode_json(value, {})
        document[column] = value
    return document


def get_user_document(user_id: str) -> Optional[dict[str, object]]:
    """Return the stored profile document for a user, without credentials."""
    row = _execute_fetchone("SELECT * FROM users WHERE id = %s", (user_id,))
    if row is None:
        return None
    return _row_to_user_document(row)


def update_user_document(user_id: str, fields: dict[str, object]) -> bool:
    """Overwrite the given profile columns. Unknown keys are ignored."""
    assignments: list[str] = []
    params: list[object] = []
    for column in PROFILE_COLUMNS:
        if column not in fields:
            continue
        value = fields[column]
        if column in _JSON_PROFILE_COLUMNS:
            value = json.dumps(value or {})
        assignments.append(f"{column} = %s")
        params.append(value)

    if not assignments:
        return get_user_by_id(user_id) is not None

    assignments.append("updated_at = %s")
    params.append(_utcnow_iso())
    params.append(user_id)
    updated = _execute(
        f"UPDATE users SET {', '.join(assignments)} WHERE id = %s;",
        tuple(params),
    )
    return updated > 0


def list_students(search: Optional[str] = None) -> list[dict[str, object]]:
    """Return student documents with their progress document, oldest first."""
    query = """
        SELECT u.*, p.document AS progress_document
        FROM users u
        LEFT JOIN user_progress p ON p.user_id = u.id
        WHERE u.role = 'student'
    """
    params: tuple = ()
    if search:
        term = f"%{search.strip().lower()}%"
        query += " AND (LOWER(u.display_name) LIKE %s OR LOWER(u.email) LIKE %s)"
        params = (term, term)
    query += " ORDER BY u.created_at ASC, u.id ASC;"

    students: list[dict[str, object]] = []
    for row in _execute_fetchall(query, params):
        document = _row_to_user_document(row)
        document["progress"] = _decode_json(row.get("progress_document"), None)
        students.append(document)
    return students


def count_students() -> int:
    row = _execute_fetchone("SELECT COUNT(*) AS total FROM users WHERE role = 'student'", ())
    return int(row["total"]) if row else 0


# ------------------------------------------------------------------------ progress


def get_progress_document(user_id: str) -> Optional[dict[str, object]]:
    """Return the stored progress document for a learner, or None."""
    row = _execute_fetchone(
        "SELECT document FROM user_progress WHERE user_id = %s",
        (user_id,),
    )
    if row is None:
        return None
    return _decode_json(row.get("document"), {})


def _ranked_value(document: dict[str, object], key: str) -> int:
    try:
        return max(0, int(document.get(key) or 0))
    except (TypeError, ValueError):
        return 0


def set_progress_document(user_id: str, document: dict[str, object]) -> None:
    """Overwrite the learner's progress document (last write wins)."""
    _execute(
        """
        INSERT INTO user_progress (
            user_id, document, total_points, words_learned, streak, games_played, updated_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (user_id) DO UPDATE SET
            document = excluded.document,
            total_points = excluded.total_points,
            words_learned = excluded.words_learned,
            streak = excluded.streak,
            games_played = excluded.games_played,
            updated_at = excluded.updated_at;
        """,
        (
            user_id,
            json.dumps(document),
            _ranked_value(document, "total_points"),
            _ranked_value(document, "words_learned"),
            _ranked_value(document, "streak"),
            _ranked_value(document, "games_played"),
            _utcnow_iso(),
        ),
    )


def list_progress_ranked(field: str, limit: int) -> list[dict[str, object]]:
    """Return learners ordered by a progress counter, highest first.

    Ties keep creation order of the user documents.
    """
    column = RANKED_PROGRESS_COLUMNS.get(field)
    if column is None:
        raise ValueError(f"Unsupported leaderboard field: {field}")

    rows = _execute_fetchall(
        f"""
        SELECT u.id, u.display_name, u.avatar, u.email, p.document
        FROM user_progress p
        JOIN users u ON u.id = p.user_id
        WHERE u.role = 'student'
        ORDER BY p.{column} DESC, u.created_at ASC, u.id ASC
        LIMIT %s;
        """,
        (int(limit),),
    )
    return [
        {
            "id": row["id"],
            "display_name": row.get("display_name"),
            "avatar": row.get("avatar"),
            "email": row.get("email"),
            "progress": _decode_json(row.get("document"), {}),
        }
        for row in rows
    ]


# --------------------------------------------------------------------------- words


def _row_to_word(row: dict) -> dict[str, object]:
    word = dict(row)
    word["categories"] = _decode_json(row.get("categories"), [])
    return word


def list_words(
    *,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
) -> list[dict[str, object]]:
    clauses: list[str] = []
    params: list[object] = []
    if category:
        clauses.append("LOWER(category) = LOWER(%s)")
        params.append(category)
    if difficulty:
        clauses.append("LOWER(difficulty) = LOWER(%s)")
        params.append(difficulty)
    if search:
        term = f"%{search.strip().lower()}%"
        clauses.append("(LOWER(word) LIKE %s OR LOWER(definition) LIKE %s)")
        params.extend([term, term])

    query = "SELECT * FROM words"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY date_added ASC, id ASC;"
    return [_row_to_word(row) for row in _execute_fetchall(query, tuple(params))]


def get_word(word_id: str) -> Optional[dict[str, object]]:
    row = _execute_fetchone("SELECT * FROM words WHERE id = %s", (word_id,))
    return _row_to_word(row) if row else None


def create_word(payload: dict[str, object]) -> dict[str, object]:
    word_id = uuid.uuid4().hex
    difficulty = str(payload.get("difficulty") or "Easy")
    _execute(
        """
        INSERT INTO words (
            id, word, pronunciation, definition, example, difficulty, category,
            points, times_studied, color, categories, date_added, last_reviewed
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s);
        """,
        (
            word_id,
            payload["word"],
            payload.get("pronunciation") or "",
            payload["definition"],
            payload.get("example") or "",
            difficulty,
            payload.get("category"),
            int(payload.get("points") or 0),
            0,
            DIFFICULTY_COLORS.get(difficulty, "#7c8b9c"),
            json.dumps([DIFFICULTY_CATEGORIES.get(difficulty, "beginner")]),
            _utcnow_iso(),
            None,
        ),
    )
    word = get_word(word_id)
    if word is None:
        raise RuntimeError("Failed to retrieve created word.")
    return word


def update_word(word_id: str, fields: dict[str, object]) -> bool:
    assignments: list[str] = []
    params: list[object] = []
    values = dict(fields)
    if "difficulty" in values:
        values["color"] = DIFFICULTY_COLORS.get(str(values["difficulty"]), "#7c8b9c")
    for column in WORD_COLUMNS:
        if column not in values:
            continue
        value = values[column]
        if column == "categories":
            value = json.dumps(value or [])
        assignments.append(f"{column} = %s")
        params.append(value)

    if not assignments:
        return get_word(word_id) is not None

    params.append(word_id)
    return _execute(
        f"UPDATE words SET {', '.join(assignments)} WHERE id = %s;",
        tuple(params),
    ) > 0


def delete_word(word_id: str) -> bool:
    return _execute("DELETE FROM words WHERE id = %s;", (word_id,)) > 0


def increment_word_studied(word_id: str) -> Optional[dict[str, object]]:
    """Bump times_studied and stamp last_reviewed; returns the updated word."""
    updated = _execute(
        """
        UPDATE words
        SET times_studied = times_studied + 1, last_reviewed = %s
        WHERE id = %s;
        """,
        (_utcnow_iso(), word_id),
    )
    if not updated:
        return None
    return get_word(word_id)


def count_words() -> int:
    row = _execute_fetchone("SELECT COUNT(*) AS total FROM words", ())
    return int(row["total"]) if row else 0


def seed_vocabulary(entries: Sequence[dict[str, object]] = SEED_VOCABULARY) -> int:
    """Insert the starter vocabulary; returns the number of words added."""
    for entry in entries:
        create_word(dict(entry))
    return len(entries)


# --------------------------------------------------------------------------- games


def seed_default_games() -> None:
    """Insert the default games that are not stored yet."""
    existing = {row["name"] for row in _execute_fetchall("SELECT name FROM games")}
    now = _utcnow_iso()
    for game in DEFAULT_GAMES:
        if game["name"] in existing:
            continue
        _execute(
            """
            INSERT INTO games (
                name, icon, description, category, difficulty, time_estimate,
                total_items, times_played, avg_score, last_updated
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, 0, 0, %s);
            """,
            (
                game["name"],
                game["icon"],
                game["description"],
                game["category"],
                game["difficulty"],
                game["time_estimate"],
                game["total_items"],
                now,
            ),
        )


def list_games() -> list[dict[str, object]]:
    return _execute_fetchall("SELECT * FROM games ORDER BY id ASC;")


def get_game(game_id: int) -> Optional[dict[str, object]]:
    return _execute_fetchone("SELECT * FROM games WHERE id = %s", (game_id,))


def update_game(game_id: int, fields: dict[str, object]) -> bool:
    assignments: list[str] = []
    params: list[object] = []
    for column in GAME_COLUMNS:
        if column in fields:
            assignments.append(f"{column} = %s")
            params.append(fields[column])

    if not assignments:
        return get_game(game_id) is not None

    assignments.append("last_updated = %s")
    params.append(_utcnow_iso())
    params.append(game_id)
    return _execute(
        f"UPDATE games SET {', '.join(assignments)} WHERE id = %s;",
        tuple(params),
    ) > 0


def count_games() -> int:
    row = _execute_fetchone("SELECT COUNT(*) AS total FROM games", ())
    return int(row["total"]) if row else 0
