import os

import psycopg
import pytest

pytestmark = pytest.mark.integration


@pytest.mark.skipif(
    not os.getenv("DATABASE_URL", "").startswith("postgres"),
    reason="PostgreSQL DATABASE_URL not set; skipping database connectivity test.",
)
def test_database_schema_is_created():
    from models import init_db, reset_engine

    reset_engine()
    init_db()

    with psycopg.connect(os.environ["DATABASE_URL"]) as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT table_name FROM information_schema.tables WHERE table_name IN "
                "('users', 'user_progress', 'words', 'games');"
            )
            tables = {row[0] for row in cur.fetchall()}
    reset_engine()

    assert tables == {"users", "user_progress", "words", "games"}
