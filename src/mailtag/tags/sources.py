"""Configuration-file source for the user's custom tag list.

Implements the ConfigStore protocol on top of config.yaml. Before each read
the config file is checked for changes, so edits to the custom tag list are
picked up on the next reconciliation without a restart.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from mailtag.tags.models import Tag


class ConfigFileTagSource:
    """Reads custom tags from the application config.

    Args:
        config_path: Explicit config file to read on every call. If None,
            the shared config singleton (with hot-reload) is used.
    """

    def __init__(self, config_path: Path | None = None) -> None:
        self._config_path = config_path

    async def get_custom_tags(self, default: Sequence[Tag]) -> dict[str, Any]:
        """Return {'custom_tags': [...]} as plain data, using default if none configured."""
        from mailtag.config import get_config, load_config, reload_config_if_changed

        if self._config_path is not None:
            config = load_config(self._config_path)
        else:
            reload_config_if_changed()
            config = get_config()

        tags = config.tags.custom_tags
        if tags is None:
            tags = list(default)

        return {"custom_tags": [tag.model_dump(exclude_none=True) for tag in tags]}
