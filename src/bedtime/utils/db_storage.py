"""
SQLite storage for stories, users and login sessions.

Connections are opened per operation through ``db_transaction``. Errors from
sqlite3 propagate to the caller; the service layer decides how they surface.
"""

import json
import os
import secrets
import sqlite3
import uuid
from pathlib import Path
from typing import Dict, Optional, Any, List, Union
from datetime import datetime, timezone
from contextlib import contextmanager
import logging

from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
DB_DIR = _PROJECT_ROOT / "data"
DB_PATH = DB_DIR / "bedtime.db"

PathLike = Union[str, Path]


def resolve_db_path(db_path: Optional[PathLike] = None) -> Path:
    """Explicit path, else ``DATABASE_PATH`` from the environment, else the default."""
    return Path(db_path or os.getenv("DATABASE_PATH") or DB_PATH)


def get_db_connection(db_path: Optional[PathLike] = None) -> sqlite3.Connection:
    """Get a database connection, creating the parent directory if needed."""
    path = resolve_db_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def db_transaction(db_path: Optional[PathLike] = None):
    """Context manager for database transactions."""
    conn = get_db_connection(db_path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_database(db_path: Optional[PathLike] = None) -> None:
    """Create tables and indexes if they do not exist."""
    with db_transaction(db_path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                name TEXT,
                password_hash TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                token TEXT PRIMARY KEY,
                user_id TEXT NOT NULL REFERENCES users(id),
                created_at TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS stories (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                images TEXT NOT NULL DEFAULT '[]',
                metadata TEXT NOT NULL DEFAULT '{}',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_stories_user_created
            ON stories(user_id, created_at DESC)
        """)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class StoryStorage:
    """
    Story table access.

    Images and metadata are stored as JSON text columns and decoded on read.
    Rows are returned as dicts with snake_case keys.
    """

    def __init__(self, db_path: Optional[PathLike] = None):
        self.db_path = resolve_db_path(db_path)
        init_database(self.db_path)

    def _deserialize_story(self, row: sqlite3.Row) -> Dict[str, Any]:
        story = dict(row)
        story["images"] = json.loads(story.get("images") or "[]")
        story["metadata"] = json.loads(story.get("metadata") or "{}")
        return story

    def create_story(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new story.

        Args:
            user_id: Owner taken from the session
            fields: Normalized title, content, images and metadata

        Returns:
            The stored row as a dict
        """
        now = utc_now()
        story = {
            "id": uuid.uuid4().hex,
            "user_id": user_id,
            "title": fields["title"],
            "content": fields["content"],
            "images": list(fields.get("images") or []),
            "metadata": dict(fields.get("metadata") or {}),
            "created_at": now,
            "updated_at": now,
        }
        with db_transaction(self.db_path) as conn:
            conn.execute("""
                INSERT INTO stories (
                    id, user_id, title, content, images, metadata, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                story["id"],
                story["user_id"],
                story["title"],
                story["content"],
                json.dumps(story["images"]),
                json.dumps(story["metadata"]),
                story["created_at"],
                story["updated_at"],
            ))
        logger.info(f"Created story {story['id']} for user {user_id}")
        return story

    def load_story(self, story_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Load one story, scoped to ``user_id`` when given."""
        query = "SELECT * FROM stories WHERE id = ?"
        params: List[Any] = [story_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        with db_transaction(self.db_path) as conn:
            row = conn.execute(query, params).fetchone()
        return self._deserialize_story(row) if row else None

    def list_stories(self, user_id: str) -> List[Dict[str, Any]]:
        """All stories of one user, newest first."""
        with db_transaction(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM stories WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,)
            ).fetchall()
        return [self._deserialize_story(row) for row in rows]

    def update_images(self, story_id: str, user_id: str, images: List[str]) -> Optional[Dict[str, Any]]:
        """Replace the image list of a story owned by ``user_id``."""
        with db_transaction(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE stories SET images = ?, updated_at = ? WHERE id = ? AND user_id = ?",
                (json.dumps(list(images)), utc_now(), story_id, user_id)
            )
            updated = cursor.rowcount > 0
        if not updated:
            return None
        return self.load_story(story_id, user_id)

    def count_stories(self, user_id: Optional[str] = None) -> int:
        with db_transaction(self.db_path) as conn:
            if user_id:
                cursor = conn.execute("SELECT COUNT(*) FROM stories WHERE user_id = ?", (user_id,))
            else:
                cursor = conn.execute("SELECT COUNT(*) FROM stories")
            return cursor.fetchone()[0]


class UserStorage:
    """Accounts with werkzeug password hashes, plus opaque bearer tokens."""

    def __init__(self, db_path: Optional[PathLike] = None):
        self.db_path = resolve_db_path(db_path)
        init_database(self.db_path)

    @staticmethod
    def _public(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
        if row is None:
            return None
        return {"id": row["id"], "email": row["email"], "name": row["name"]}

    def create_user(self, email: str, password: str, name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Create an account.

        Returns:
            The public user dict, or None when the email is already taken
        """
        user_id = uuid.uuid4().hex
        email = email.strip().lower()
        try:
            with db_transaction(self.db_path) as conn:
                conn.execute(
                    "INSERT INTO users (id, email, name, password_hash, created_at) VALUES (?, ?, ?, ?, ?)",
                    (user_id, email, name, generate_password_hash(password), utc_now())
                )
        except sqlite3.IntegrityError:
            logger.info(f"Registration refused, email already in use: {email}")
            return None
        return {"id": user_id, "email": email, "name": name}

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        with db_transaction(self.db_path) as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._public(row)

    def verify_credentials(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        with db_transaction(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.strip().lower(),)
            ).fetchone()
        if row is None or not check_password_hash(row["password_hash"], password):
            return None
        return self._public(row)

    def create_session(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        with db_transaction(self.db_path) as conn:
            conn.execute(
                "INSERT INTO sessions (token, user_id, created_at) VALUES (?, ?, ?)",
                (token, user_id, utc_now())
            )
        return token

    def get_user_id_for_token(self, token: str) -> Optional[str]:
        with db_transaction(self.db_path) as conn:
            row = conn.execute("SELECT user_id FROM sessions WHERE token = ?", (token,)).fetchone()
        return row["user_id"] if row else None

    def delete_session(self, token: str) -> None:
        with db_transaction(self.db_path) as conn:
            conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
