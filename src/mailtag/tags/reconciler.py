"""Reconciles configured tags against the host tag store.

The reconciler combines the built-in tags with the user's custom tags and
makes sure each one exists in the tag store, creating the missing ones.
It is meant to run once at startup or after the custom tag list changes.

Usage:
    from mailtag.tags import ConfigFileTagSource, SqliteTagStore, TagReconciler

    store = SqliteTagStore("data/tags.db")
    await store.initialize()
    reconciler = TagReconciler(store, ConfigFileTagSource())
    await reconciler.ensure_tags_exist()
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from mailtag.core.errors import CustomTagsShapeError, TagStoreShapeError
from mailtag.core.logging import get_logger
from mailtag.tags.models import (
    BUILTIN_TAGS,
    DEFAULT_CUSTOM_TAGS,
    TAG_KEY_PREFIX,
    TAG_NAME_PREFIX,
    StoredTag,
    Tag,
)
from mailtag.tags.validation import parse_custom_tags_payload, parse_stored_tags

logger = get_logger(__name__)


class TagStore(Protocol):
    """The host application's tag API."""

    async def get_all_tags(self) -> Any:
        """Return every tag currently known to the store (raw records)."""
        ...

    async def create_tag(self, display_name: str, color: str) -> Any:
        """Create a tag with the given display name and color."""
        ...


class ConfigStore(Protocol):
    """Where the user's custom tag list lives."""

    async def get_custom_tags(self, default: Sequence[Tag]) -> Any:
        """Return a mapping with an optional 'custom_tags' list."""
        ...


class TagReconciler:
    """Ensures built-in and custom tags exist in the tag store.

    Presence is matched on either the prefixed key or the prefixed display
    name, since users can rename one without the other in the host app.

    Attributes:
        key_prefix: Prefix applied to tag keys in the store
        name_prefix: Prefix applied to tag display names in the store
    """

    def __init__(
        self,
        tag_store: TagStore,
        config_store: ConfigStore | None = None,
        *,
        key_prefix: str = TAG_KEY_PREFIX,
        name_prefix: str = TAG_NAME_PREFIX,
        builtin_tags: Sequence[Tag] = BUILTIN_TAGS,
        default_custom_tags: Sequence[Tag] = DEFAULT_CUSTOM_TAGS,
    ) -> None:
        self._tag_store = tag_store
        self._config_store = config_store
        self.key_prefix = key_prefix
        self.name_prefix = name_prefix
        self._builtin_tags = tuple(builtin_tags)
        self._default_custom_tags = tuple(default_custom_tags)

    @property
    def builtin_tags(self) -> list[Tag]:
        return list(self._builtin_tags)

    async def get_all_tag_configs(self) -> list[Tag]:
        """Get all tags (built-in + custom) that should exist in the store.

        Returns:
            Built-in tags followed by custom tags. If the custom tag payload
            is malformed or cannot be read, only the built-in tags.
        """
        try:
            if self._config_store is None:
                payload: Any = {"custom_tags": list(self._default_custom_tags)}
            else:
                payload = await self._config_store.get_custom_tags(self._default_custom_tags)

            custom_tags = parse_custom_tags_payload(payload)
        except CustomTagsShapeError as e:
            logger.error("Invalid format for custom tags", error=str(e))
            return self.builtin_tags
        except Exception as e:
            logger.error("Error getting tag configurations", error=str(e))
            return self.builtin_tags

        if custom_tags is None:
            custom_tags = list(self._default_custom_tags)

        return self.builtin_tags + custom_tags

    async def ensure_tags_exist(self) -> None:
        """Create every configured tag that is missing from the store.

        Tags are created one at a time. The stored tag list is read once up
        front and not refreshed between creations. Any failure is logged and
        ends the run; tags created before the failure are kept.
        """
        try:
            tags_to_ensure = await self.get_all_tag_configs()
            raw_tags = await self._tag_store.get_all_tags()

            try:
                stored_tags = parse_stored_tags(raw_tags)
            except TagStoreShapeError as e:
                logger.error(
                    "Invalid tag list received from tag store",
                    error=str(e),
                    problems=e.errors,
                )
                return

            created = 0
            for tag in tags_to_ensure:
                if self.check_tag_exists(stored_tags, tag):
                    logger.debug("Tag already exists", key=tag.key, name=tag.name)
                    continue

                await self._tag_store.create_tag(self.name_prefix + tag.name, tag.color)
                created += 1
                logger.info("Created new tag", key=tag.key, name=tag.name)

            logger.info(
                "tags_reconciled",
                configured=len(tags_to_ensure),
                created=created,
            )
        except Exception as e:
            logger.error("Error during tag creation", error=str(e))

    def check_tag_exists(self, stored_tags: Sequence[StoredTag], tag: Tag) -> bool:
        """Return True if any stored tag matches by prefixed key or prefixed name."""
        return self.find_stored_tag(stored_tags, tag) is not None

    def find_stored_tag(self, stored_tags: Sequence[StoredTag], tag: Tag) -> StoredTag | None:
        """Find the stored tag for a configured tag.

        Args:
            stored_tags: Tags currently in the store
            tag: Configured tag to look up

        Returns:
            The first matching stored tag, or None
        """
        for stored in stored_tags:
            if (
                stored.key == self.key_prefix + tag.key
                or stored.display_tag == self.name_prefix + tag.name
            ):
                return stored
        return None
