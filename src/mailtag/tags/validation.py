"""Boundary parsers for data coming back from the tag and config stores.

Responses from the host tag store and the custom tag payload are untrusted.
They are parsed once here into typed models; callers either get a list of
models back or a shape error describing what was wrong.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import TypeAdapter, ValidationError

from mailtag.core.errors import CustomTagsShapeError, TagStoreShapeError
from mailtag.core.logging import get_logger
from mailtag.tags.models import StoredTag, Tag

logger = get_logger(__name__)

CUSTOM_TAGS_FIELD = "custom_tags"

_stored_tags_adapter = TypeAdapter(list[StoredTag])


def _describe_errors(error: ValidationError) -> list[str]:
    """Flatten Pydantic errors into 'path: message' strings."""
    messages = []
    for err in error.errors():
        field_path = ".".join(str(loc) for loc in err["loc"])
        messages.append(f"{field_path}: {err['msg']}" if field_path else err["msg"])
    return messages


def parse_stored_tags(raw: Any) -> list[StoredTag]:
    """Parse the tag store's list response.

    Args:
        raw: Value returned by TagStore.get_all_tags()

    Returns:
        Parsed stored tags, in store order

    Raises:
        TagStoreShapeError: If raw is not a list of valid tag records
    """
    if not isinstance(raw, list):
        raise TagStoreShapeError(
            f"Tag store returned {type(raw).__name__}, expected a list of tags"
        )

    try:
        return _stored_tags_adapter.validate_python(raw)
    except ValidationError as e:
        errors = _describe_errors(e)
        raise TagStoreShapeError(
            f"Tag store returned {len(errors)} invalid tag field(s)", errors=errors
        ) from e


def parse_custom_tags_payload(raw: Any) -> list[Tag] | None:
    """Parse the configuration store's custom tag payload.

    The payload is a mapping with an optional 'custom_tags' list. Only that
    outer shape is enforced. Empty entries (None, '') are dropped silently
    and entries that aren't valid tags are skipped with a warning, so one
    bad tag doesn't discard the rest.

    Args:
        raw: Value returned by ConfigStore.get_custom_tags()

    Returns:
        The valid custom tags, or None if the payload has no 'custom_tags' entry

    Raises:
        CustomTagsShapeError: If the payload isn't a mapping or 'custom_tags'
            isn't a list
    """
    if not isinstance(raw, Mapping):
        raise CustomTagsShapeError(
            f"Custom tag payload must be a mapping, got {type(raw).__name__}"
        )

    if CUSTOM_TAGS_FIELD not in raw:
        return None

    custom_tags = raw[CUSTOM_TAGS_FIELD]
    if not isinstance(custom_tags, list | tuple):
        raise CustomTagsShapeError(
            f"'{CUSTOM_TAGS_FIELD}' must be a list, got {type(custom_tags).__name__}"
        )

    tags: list[Tag] = []
    for index, item in enumerate(custom_tags):
        if not item:
            continue
        try:
            tags.append(Tag.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "Skipping invalid custom tag",
                index=index,
                problems=_describe_errors(e),
            )
    return tags
