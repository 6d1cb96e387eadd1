"""SQLite-backed tag store.

A local implementation of the TagStore protocol for running outside the
host mail application. Records have the same shape the host reports:
key, tag (display text), color and ordinal, all strings.

Usage:
    from mailtag.tags.store import SqliteTagStore

    store = SqliteTagStore("data/tags.db")
    await store.initialize()
    await store.create_tag("A:Bill", "#f4b136")
    tags = await store.get_all_tags()
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite
import regex

from mailtag.core.errors import TagStoreError
from mailtag.core.logging import get_logger
from mailtag.tags.models import REGEX_TIMEOUT, is_valid_color

logger = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tags (
    key TEXT PRIMARY KEY,               -- Store key, derived from the display name
    tag TEXT NOT NULL,                  -- Display text shown to the user
    color TEXT NOT NULL,                -- Hex color (#RGB or #RRGGBB)
    ordinal TEXT NOT NULL DEFAULT ''    -- Sort position, as a string
);
"""

WHITESPACE_PATTERN = regex.compile(r"\s+")


def derive_tag_key(display_name: str) -> str:
    """Build a store key from a display name ('A:Service Info' -> 'a:service_info')."""
    return WHITESPACE_PATTERN.sub("_", display_name.strip().lower(), timeout=REGEX_TIMEOUT)


class SqliteTagStore:
    """Persists tags in a single SQLite table.

    Attributes:
        db_path: Path to the SQLite database file
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the database file and tags table if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.executescript(SCHEMA_SQL)
                await db.commit()
        except aiosqlite.Error as e:
            raise TagStoreError(f"Failed to initialize tag store at {self.db_path}: {e}") from e

        logger.debug("Tag store initialized", path=str(self.db_path))

    @asynccontextmanager
    async def _db(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("PRAGMA busy_timeout = 10000")
            db.row_factory = aiosqlite.Row
            yield db

    async def get_all_tags(self) -> list[dict[str, str]]:
        """Return every stored tag, ordered by ordinal.

        Raises:
            TagStoreError: If the read fails
        """
        try:
            async with self._db() as db:
                cursor = await db.execute(
                    "SELECT key, tag, color, ordinal FROM tags "
                    "ORDER BY CAST(ordinal AS INTEGER), key"
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise TagStoreError(f"Failed to list tags: {e}") from e

        logger.debug("Fetched stored tags", count=len(rows))
        return [dict(row) for row in rows]

    async def create_tag(self, display_name: str, color: str) -> dict[str, str]:
        """Create a tag, or return the existing one with the same derived key.

        Args:
            display_name: Text shown for the tag
            color: Hex color

        Returns:
            The stored tag record

        Raises:
            TagStoreError: If the name is empty, the color is invalid, or the write fails
        """
        if not display_name or not display_name.strip():
            raise TagStoreError("Tag name is required", display_name=display_name)
        if not is_valid_color(color):
            raise TagStoreError(
                f"Invalid color format: {color}. Must be hex color (e.g., #FF0000)",
                display_name=display_name,
            )

        key = derive_tag_key(display_name)

        try:
            async with self._db() as db:
                cursor = await db.execute(
                    "SELECT key, tag, color, ordinal FROM tags WHERE key = ?", (key,)
                )
                existing = await cursor.fetchone()
                if existing is not None:
                    logger.warning("Tag already exists, returning existing", key=key)
                    return dict(existing)

                cursor = await db.execute("SELECT COUNT(*) FROM tags")
                row = await cursor.fetchone()
                count = row[0]
                record = {
                    "key": key,
                    "tag": display_name,
                    "color": color,
                    "ordinal": str(count + 1),
                }
                await db.execute(
                    "INSERT INTO tags (key, tag, color, ordinal) "
                    "VALUES (:key, :tag, :color, :ordinal)",
                    record,
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise TagStoreError(
                f"Failed to create tag '{display_name}': {e}", display_name=display_name
            ) from e

        logger.debug("Stored tag", key=key, name=display_name, color=color)
        return record
