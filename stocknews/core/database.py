"""SQLite relational store: schema plus user, saved-search and bookmark queries."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from stocknews.core.errors import DuplicateRecordError
from stocknews.core.logger import logger
from stocknews.models.datatypes import Bookmark, SavedSearch, User

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT UNIQUE NOT NULL,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS saved_searches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    query TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS bookmarked_articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    article_url TEXT NOT NULL,
    article_title TEXT NOT NULL,
    article_source TEXT,
    article_published_at TEXT,
    bookmarked_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
    UNIQUE(user_id, article_url)
);

CREATE TABLE IF NOT EXISTS news_cache (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    query TEXT NOT NULL,
    response_data TEXT NOT NULL,
    sentiment TEXT,
    cached_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
CREATE INDEX IF NOT EXISTS idx_saved_searches_user ON saved_searches(user_id);
CREATE INDEX IF NOT EXISTS idx_bookmarks_user ON bookmarked_articles(user_id);
CREATE INDEX IF NOT EXISTS idx_news_cache_query ON news_cache(query, expires_at);
"""


class Database:
    """Owns the SQLite file and hands out short-lived connections."""

    def __init__(self, db_path: str = "data/stocknews.db") -> None:
        """
        Initialize the database, creating the file and schema if needed.

        Args:
            db_path (str): Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and is always closed."""
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(_SCHEMA)
        logger.info(f"Database initialized at {self.db_path}")


class UserRepository:
    """Account rows. Credentials are stored as an opaque, pre-computed hash."""

    def __init__(self, database: Database) -> None:
        self.db = database

    def create(self, username: str, email: str, password_hash: str) -> User:
        try:
            with self.db.connect() as conn:
                cursor = conn.execute(
                    "INSERT INTO users (username, email, password_hash) VALUES (?, ?, ?)",
                    (username, email, password_hash),
                )
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(f"User already exists: {e}") from e
        return self.find_by_id(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        return self._find_one("SELECT * FROM users WHERE email = ?", (email,))

    def find_by_username(self, username: str) -> Optional[User]:
        return self._find_one("SELECT * FROM users WHERE username = ?", (username,))

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self._find_one("SELECT * FROM users WHERE id = ?", (user_id,))

    def _find_one(self, sql: str, params: tuple) -> Optional[User]:
        with self.db.connect() as conn:
            row = conn.execute(sql, params).fetchone()
        if row is None:
            return None
        return User(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            created_at=row["created_at"],
            password_hash=row["password_hash"],
        )


class SavedSearchRepository:
    """Per-user saved search terms."""

    def __init__(self, database: Database) -> None:
        self.db = database

    def create(self, user_id: int, query: str) -> SavedSearch:
        with self.db.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO saved_searches (user_id, query) VALUES (?, ?)",
                (user_id, query),
            )
            row = conn.execute(
                "SELECT * FROM saved_searches WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        return _to_saved_search(row)

    def list_for_user(self, user_id: int) -> List[SavedSearch]:
        """Return a user's saved searches, newest first."""
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM saved_searches WHERE user_id = ? "
                "ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        return [_to_saved_search(row) for row in rows]

    def delete(self, search_id: int, user_id: int) -> bool:
        """Delete a saved search owned by ``user_id``. Returns False if nothing matched."""
        with self.db.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM saved_searches WHERE id = ? AND user_id = ?",
                (search_id, user_id),
            )
        return cursor.rowcount > 0


class BookmarkRepository:
    """Per-user bookmarked articles; an article URL is unique within one user's set."""

    def __init__(self, database: Database) -> None:
        self.db = database

    def create(
        self,
        user_id: int,
        article_url: str,
        article_title: str,
        article_source: Optional[str] = None,
        article_published_at: Optional[str] = None,
    ) -> Bookmark:
        try:
            with self.db.connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO bookmarked_articles
                        (user_id, article_url, article_title, article_source, article_published_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user_id, article_url, article_title, article_source, article_published_at),
                )
                row = conn.execute(
                    "SELECT * FROM bookmarked_articles WHERE id = ?", (cursor.lastrowid,)
                ).fetchone()
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(f"Article already bookmarked: {article_url}") from e
        return _to_bookmark(row)

    def exists(self, user_id: int, article_url: str) -> bool:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT id FROM bookmarked_articles WHERE user_id = ? AND article_url = ?",
                (user_id, article_url),
            ).fetchone()
        return row is not None

    def list_for_user(self, user_id: int) -> List[Bookmark]:
        """Return a user's bookmarks, newest first."""
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM bookmarked_articles WHERE user_id = ? "
                "ORDER BY bookmarked_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        return [_to_bookmark(row) for row in rows]

    def delete(self, bookmark_id: int, user_id: int) -> bool:
        with self.db.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM bookmarked_articles WHERE id = ? AND user_id = ?",
                (bookmark_id, user_id),
            )
        return cursor.rowcount > 0


def _to_saved_search(row: sqlite3.Row) -> SavedSearch:
    return SavedSearch(
        id=row["id"],
        user_id=row["user_id"],
        query=row["query"],
        created_at=row["created_at"],
    )


def _to_bookmark(row: sqlite3.Row) -> Bookmark:
    return Bookmark(
        id=row["id"],
        user_id=row["user_id"],
        article_url=row["article_url"],
        article_title=row["article_title"],
        article_source=row["article_source"],
        article_published_at=row["article_published_at"],
        bookmarked_at=row["bookmarked_at"],
    )
