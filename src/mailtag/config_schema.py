"""Pydantic configuration schema for mailtag.

This module defines the configuration schema that mirrors config.yaml structure.
All configuration is validated against these models on startup and hot-reload.

Usage:
    from mailtag.config_schema import AppConfig

    config = AppConfig(**yaml_data)
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from mailtag.analysis.prompts import (
    BODY_PLACEHOLDER,
    CHARS_PER_TOKEN_ESTIMATE,
    CONTEXT_TOKEN_LIMIT,
    DEFAULT_WORD_WRAP_COLUMN,
    PROMPT_BASE,
)
from mailtag.tags.models import TAG_KEY_PREFIX, TAG_NAME_PREFIX, Tag

# Current schema version - increment when adding new required fields
CURRENT_SCHEMA_VERSION = 1


class LoggingConfig(BaseModel):
    """Log output configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level",
    )
    json_output: bool = Field(
        default=True,
        description="Emit JSON log lines (False for human-readable console output)",
    )


class PromptConfig(BaseModel):
    """Analysis prompt configuration."""

    template: str = Field(
        default=PROMPT_BASE,
        description="Prompt template with {headers}, {body} and {attachments} placeholders",
    )
    context_token_limit: int = Field(
        default=CONTEXT_TOKEN_LIMIT,
        ge=1,
        description="Context window of the classification model (tokens)",
    )
    chars_per_token_estimate: int = Field(
        default=CHARS_PER_TOKEN_ESTIMATE,
        ge=1,
        le=16,
        description="Characters per token used to estimate the character budget",
    )
    max_chars: int | None = Field(
        default=None,
        ge=1,
        description="Explicit prompt character limit (overrides the token estimate)",
    )
    word_wrap_column: int = Field(
        default=DEFAULT_WORD_WRAP_COLUMN,
        ge=20,
        le=1000,
        description="Wrap column for bodies converted from HTML",
    )

    @field_validator("template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        """Ensure the template has somewhere to put the body."""
        if BODY_PLACEHOLDER not in v:
            raise ValueError(f"Prompt template must contain the {BODY_PLACEHOLDER} placeholder")
        return v

    @property
    def context_char_limit(self) -> int:
        """Effective prompt character limit."""
        if self.max_chars is not None:
            return self.max_chars
        return self.context_token_limit * self.chars_per_token_estimate


class TagsConfig(BaseModel):
    """Tag store configuration."""

    key_prefix: str = Field(
        default=TAG_KEY_PREFIX,
        description="Prefix of tag keys in the tag store",
    )
    name_prefix: str = Field(
        default=TAG_NAME_PREFIX,
        description="Prefix of tag display names in the tag store",
    )
    custom_tags: list[Tag] | None = Field(
        default=None,
        description="Custom tags with classification prompts (default list if omitted)",
    )
    store_path: str = Field(
        default="data/tags.db",
        description="Path to the local SQLite tag store",
    )

    @field_validator("store_path")
    @classmethod
    def validate_store_path(cls, v: str) -> str:
        """Ensure tag store path doesn't contain path traversal."""
        if not v or not v.strip():
            raise ValueError("Tag store path cannot be empty")
        if ".." in v:
            raise ValueError("Tag store path cannot contain '..' (path traversal)")
        return v

    @field_validator("custom_tags")
    @classmethod
    def validate_unique_keys(cls, v: list[Tag] | None) -> list[Tag] | None:
        """Reject custom tags that share a key."""
        if v is None:
            return v
        seen: set[str] = set()
        for tag in v:
            if tag.key in seen:
                raise ValueError(f"Duplicate custom tag key '{tag.key}'")
            seen.add(tag.key)
        return v


class AppConfig(BaseModel):
    """Root configuration schema for mailtag.

    If validation fails on startup, commands exit with a clear error.
    If validation fails on hot-reload, the previous valid config is kept.
    """

    schema_version: int = Field(
        default=CURRENT_SCHEMA_VERSION,
        ge=1,
        description="Config schema version for migration tracking",
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    tags: TagsConfig = Field(default_factory=TagsConfig)
