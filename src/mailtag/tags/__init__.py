"""Tag definitions and tag store reconciliation.

This package provides:
- Tag models and the built-in / default custom tag tables
- Boundary parsers for tag store and custom tag payloads
- TagReconciler for creating missing tags in the store
- SqliteTagStore and ConfigFileTagSource adapters
"""

from mailtag.tags.models import (
    BUILTIN_TAGS,
    DEFAULT_CUSTOM_TAGS,
    TAG_KEY_PREFIX,
    TAG_NAME_PREFIX,
    StoredTag,
    Tag,
    is_valid_color,
)
from mailtag.tags.reconciler import ConfigStore, TagReconciler, TagStore
from mailtag.tags.sources import ConfigFileTagSource
from mailtag.tags.store import SqliteTagStore, derive_tag_key
from mailtag.tags.validation import parse_custom_tags_payload, parse_stored_tags

__all__ = [
    # Models
    "BUILTIN_TAGS",
    "DEFAULT_CUSTOM_TAGS",
    "TAG_KEY_PREFIX",
    "TAG_NAME_PREFIX",
    "StoredTag",
    "Tag",
    "is_valid_color",
    # Reconciliation
    "ConfigStore",
    "TagReconciler",
    "TagStore",
    # Adapters
    "ConfigFileTagSource",
    "SqliteTagStore",
    "derive_tag_key",
    # Parsers
    "parse_custom_tags_payload",
    "parse_stored_tags",
]
