"""Email content extraction and bounded prompt assembly.

Walks a message's part tree to a single plain-text body plus attachment
metadata, then renders the analysis prompt so that it never exceeds the
downstream model's character budget. When the prompt is too long the body
is shortened first; headers, attachments and instructions are kept intact
unless they overflow the budget on their own.

Usage:
    from mailtag.analysis.extractor import ContentExtractor

    extractor = ContentExtractor()
    parsed = extractor.extract(parts)
    data = StructuredEmailData(headers=headers, body=parsed.body,
                               attachments=parsed.attachments)
    prompt = extractor.build_prompt(data, custom_tags, PROMPT_BASE, max_chars=512000)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import html2text

from mailtag.analysis.models import Attachment, EmailPart, ParsedEmail, StructuredEmailData
from mailtag.analysis.prompts import (
    CONTEXT_CHAR_LIMIT,
    DEFAULT_WORD_WRAP_COLUMN,
    PROMPT_BASE,
    fill_placeholders,
    render_tag_instructions,
    serialize_attachments,
    serialize_headers,
)
from mailtag.core.logging import get_logger

if TYPE_CHECKING:
    from mailtag.tags.models import Tag

logger = get_logger(__name__)


@dataclass
class PartAccumulator:
    """Running state of a part tree walk."""

    text_body: str = ""
    html_body: str = ""
    attachments: list[Attachment] = field(default_factory=list)

    def visit(self, part: EmailPart) -> None:
        """Record a leaf part. Later body parts overwrite earlier ones."""
        if part.is_plain_text_body:
            self.text_body = part.body
        elif part.is_html_body:
            self.html_body = part.body
        elif part.looks_like_attachment and part.name:
            self.attachments.append(
                Attachment(name=part.name, mime_type=part.content_type, size=part.size or 0)
            )


def walk_parts(parts: Iterable[EmailPart], accumulator: PartAccumulator) -> PartAccumulator:
    """Visit every leaf in depth-first pre-order.

    Uses an explicit stack so deeply nested trees can't exhaust the
    recursion limit.
    """
    stack = list(reversed(list(parts)))
    while stack:
        part = stack.pop()
        if part.parts:
            stack.extend(reversed(part.parts))
        else:
            accumulator.visit(part)
    return accumulator


def html_to_text(html: str, word_wrap_column: int = DEFAULT_WORD_WRAP_COLUMN) -> str:
    """Convert an HTML body to wrapped plain text."""
    converter = html2text.HTML2Text()
    converter.body_width = word_wrap_column
    converter.ignore_images = True
    converter.ignore_emphasis = True
    return converter.handle(html).strip()


def truncate_text(text: str, max_length: int) -> str:
    """Return text cut to at most max_length characters."""
    if len(text) <= max_length:
        return text
    return text[: max(max_length, 0)]


class ContentExtractor:
    """Extracts email content and builds length-bounded analysis prompts.

    Attributes:
        word_wrap_column: Column at which converted HTML bodies are wrapped
    """

    def __init__(self, word_wrap_column: int = DEFAULT_WORD_WRAP_COLUMN) -> None:
        self.word_wrap_column = word_wrap_column

    def extract(self, parts: Iterable[EmailPart]) -> ParsedEmail:
        """Flatten a part tree into a body and an attachment list.

        An HTML body, converted to text, takes priority over a plain-text
        body. Attachments are collected in traversal order; unnamed parts
        are skipped.

        Args:
            parts: Root parts of the message

        Returns:
            ParsedEmail with the body ('' if none) and attachments
        """
        logger.debug("Parsing email parts")

        accumulator = walk_parts(parts, PartAccumulator())

        if accumulator.html_body:
            body = html_to_text(accumulator.html_body, self.word_wrap_column)
        else:
            body = accumulator.text_body

        return ParsedEmail(body=body, attachments=accumulator.attachments)

    def extract_email_content(
        self,
        headers: Mapping[str, str] | None = None,
        parts: Sequence[EmailPart] | None = None,
        body: str = "",
        attachments: Iterable[Attachment] = (),
    ) -> StructuredEmailData:
        """Assemble the structured data for one message.

        Args:
            headers: Message headers
            parts: Part tree; if given, body and attachments are extracted from it
            body: Body to use when there is no part tree
            attachments: Attachments reported directly by the host; added
                unless an attachment with the same name was already extracted

        Returns:
            StructuredEmailData ready for build_prompt()
        """
        found: list[Attachment] = []
        if parts:
            parsed = self.extract(parts)
            body = parsed.body
            found.extend(parsed.attachments)

        names = {attachment.name for attachment in found}
        for attachment in attachments:
            if attachment.name not in names:
                found.append(attachment)
                names.add(attachment.name)

        logger.debug(
            "Email content extracted",
            body_length=len(body),
            attachments_count=len(found),
        )
        return StructuredEmailData(headers=dict(headers or {}), body=body, attachments=found)

    def build_prompt(
        self,
        structured_data: StructuredEmailData,
        custom_tags: Sequence[Tag],
        template: str = PROMPT_BASE,
        max_chars: int = CONTEXT_CHAR_LIMIT,
    ) -> str:
        """Render the analysis prompt within max_chars characters.

        The body is truncated to whatever budget remains after headers,
        attachments and tag instructions. If those alone exceed max_chars,
        the whole prompt is cut at max_chars, which may leave the trailing
        structure incomplete.

        Args:
            structured_data: Headers, body and attachments to embed
            custom_tags: Tags whose checks are appended as instructions
            template: Prompt template with {headers}, {body}, {attachments}
            max_chars: Hard limit on the returned prompt length

        Returns:
            The prompt, never longer than max_chars
        """
        max_chars = max(max_chars, 0)

        headers_json = serialize_headers(structured_data.headers)
        attachments_json = serialize_attachments(structured_data.attachments)
        instructions = render_tag_instructions(custom_tags)
        frame = f"{template}\n{instructions}"

        frame_length = len(fill_placeholders(frame, headers_json, "", attachments_json))
        budget = max(max_chars - frame_length, 0)

        body = structured_data.body
        if len(body) > budget:
            logger.warning(
                "Email body truncated to fit context limit",
                original_length=len(body),
                budget=budget,
            )
            body = self.truncate_text(body, budget)

        prompt = fill_placeholders(frame, headers_json, body, attachments_json)

        if len(prompt) > max_chars:
            logger.error(
                "Prompt exceeds context limit without body, truncating",
                overflow=len(prompt) - max_chars,
                max_chars=max_chars,
            )
            prompt = self.truncate_text(prompt, max_chars)

        logger.debug(
            "Generated prompt",
            tag_count=len(custom_tags),
            prompt_length=len(prompt),
        )
        return prompt

    @staticmethod
    def truncate_text(text: str, max_length: int) -> str:
        """Return text cut to at most max_length characters."""
        return truncate_text(text, max_length)


def extract_email_parts(
    parts: Iterable[EmailPart],
    word_wrap_column: int = DEFAULT_WORD_WRAP_COLUMN,
) -> ParsedEmail:
    """Convenience function to extract a part tree.

    Args:
        parts: Root parts of the message
        word_wrap_column: Wrap column for converted HTML

    Returns:
        ParsedEmail with body and attachments
    """
    return ContentExtractor(word_wrap_column=word_wrap_column).extract(parts)
