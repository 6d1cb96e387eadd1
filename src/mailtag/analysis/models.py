"""Data types for email content extraction and prompt building."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

PLAIN_TEXT = "text/plain"
HTML = "text/html"


@dataclass
class EmailPart:
    """One node of a message's MIME part tree.

    A part with children is a container; only leaves (no children) carry
    body text or attachment metadata.

    Attributes:
        content_type: MIME type of the part (e.g., 'text/html')
        body: Decoded body text of the part ('' for containers and binaries)
        is_attachment: Whether the host flagged the part as an attachment
        name: File name, if the part has one
        size: Size in bytes, if known
        parts: Child parts, in message order
    """

    content_type: str = ""
    body: str = ""
    is_attachment: bool = False
    name: str | None = None
    size: int | None = None
    parts: list[EmailPart] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.parts

    @property
    def is_plain_text_body(self) -> bool:
        return self.content_type == PLAIN_TEXT and not self.is_attachment

    @property
    def is_html_body(self) -> bool:
        return self.content_type == HTML and not self.is_attachment

    @property
    def looks_like_attachment(self) -> bool:
        return self.is_attachment or self.name is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EmailPart:
        """Build a part tree from the host's mapping form.

        Accepts both camelCase keys as reported by the mail host
        (contentType, isAttachment) and snake_case keys.
        """
        children = data.get("parts") or []
        return cls(
            content_type=data.get("content_type", data.get("contentType")) or "",
            body=data.get("body") or "",
            is_attachment=bool(data.get("is_attachment", data.get("isAttachment", False))),
            name=data.get("name"),
            size=data.get("size"),
            parts=[cls.from_dict(child) for child in children],
        )


@dataclass(frozen=True)
class Attachment:
    """Attachment metadata included in the prompt."""

    name: str
    mime_type: str
    size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "mimeType": self.mime_type, "size": self.size}


@dataclass
class ParsedEmail:
    """Flattened body and attachment list extracted from a part tree."""

    body: str = ""
    attachments: list[Attachment] = field(default_factory=list)


@dataclass
class StructuredEmailData:
    """Headers, body and attachments merged into the prompt template."""

    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    attachments: list[Attachment] = field(default_factory=list)
