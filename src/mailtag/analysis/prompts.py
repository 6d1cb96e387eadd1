"""Analysis prompt template and rendering helpers.

The template carries three placeholders, {headers}, {body} and
{attachments}, each substituted once. Custom tag checks are appended after
the template as one instruction line per tag.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING

import regex

if TYPE_CHECKING:
    from mailtag.analysis.models import Attachment
    from mailtag.tags.models import Tag

HEADERS_PLACEHOLDER = "{headers}"
BODY_PLACEHOLDER = "{body}"
ATTACHMENTS_PLACEHOLDER = "{attachments}"

PLACEHOLDER_PATTERN = regex.compile(r"\{(?:headers|body|attachments)\}")
REGEX_TIMEOUT = 1.0

# Context limits of the downstream model
CONTEXT_TOKEN_LIMIT = 128000
CHARS_PER_TOKEN_ESTIMATE = 4
CONTEXT_CHAR_LIMIT = CONTEXT_TOKEN_LIMIT * CHARS_PER_TOKEN_ESTIMATE

DEFAULT_WORD_WRAP_COLUMN = 130

_PROMPT_LINES = [
    "Hi, I like you to check and score an email based on the following structured data. "
    "Please respond as a single, clean JSON object with the specified properties.",
    "",
    "### Email Headers",
    "```json",
    HEADERS_PLACEHOLDER,
    "```",
    "",
    "### Email Body (converted from HTML to plain text)",
    "```text",
    BODY_PLACEHOLDER,
    "```",
    "",
    "### Attachments",
    "```json",
    ATTACHMENTS_PLACEHOLDER,
    "```",
    "",
    "### INSTRUCTIONS",
    "Based on the data above, please populate the following JSON object:",
    "- tags: (array of strings) list of tag keys where the corresponding check is true "
    '(e.g., ["is_advertise", "is_business"])',
    "- confidence: (number between 0.0 and 1.0) your overall confidence in the analysis",
    "- reasoning: (string) brief explanation of your analysis in one or two sentences",
]

PROMPT_BASE = "\n".join(_PROMPT_LINES)


def serialize_headers(headers: Mapping[str, str]) -> str:
    """Render headers as indented JSON."""
    return json.dumps(dict(headers), indent=2, ensure_ascii=False, default=str)


def serialize_attachments(attachments: Iterable[Attachment]) -> str:
    """Render attachment metadata as an indented JSON list."""
    return json.dumps(
        [attachment.to_dict() for attachment in attachments],
        indent=2,
        ensure_ascii=False,
    )


def render_tag_instructions(tags: Sequence[Tag]) -> str:
    """Render one '- key: (boolean) prompt' line per tag."""
    return "\n".join(f"- {tag.key}: (boolean) {tag.prompt or ''}" for tag in tags)


def fill_placeholders(template: str, headers: str, body: str, attachments: str) -> str:
    """Substitute the first occurrence of each placeholder.

    Substitution is a single pass over the template, so placeholder text
    inside an inserted value (e.g. a body quoting '{attachments}') is kept
    literally.
    """
    values = {
        HEADERS_PLACEHOLDER: headers,
        BODY_PLACEHOLDER: body,
        ATTACHMENTS_PLACEHOLDER: attachments,
    }

    def _substitute(match: regex.Match[str]) -> str:
        token = match.group(0)
        if token in values:
            return values.pop(token)
        return token

    return PLACEHOLDER_PATTERN.sub(_substitute, template, timeout=REGEX_TIMEOUT)
