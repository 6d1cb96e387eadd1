"""Email content extraction and analysis prompt building.

This package provides:
- Part tree models (EmailPart, Attachment, ParsedEmail, StructuredEmailData)
- ContentExtractor for flattening part trees and building bounded prompts
- The analysis prompt template and context limits
"""

from mailtag.analysis.extractor import (
    ContentExtractor,
    PartAccumulator,
    extract_email_parts,
    html_to_text,
    truncate_text,
    walk_parts,
)
from mailtag.analysis.models import (
    Attachment,
    EmailPart,
    ParsedEmail,
    StructuredEmailData,
)
from mailtag.analysis.prompts import (
    CHARS_PER_TOKEN_ESTIMATE,
    CONTEXT_CHAR_LIMIT,
    CONTEXT_TOKEN_LIMIT,
    DEFAULT_WORD_WRAP_COLUMN,
    PROMPT_BASE,
    render_tag_instructions,
)

__all__ = [
    # Extraction
    "ContentExtractor",
    "PartAccumulator",
    "extract_email_parts",
    "html_to_text",
    "truncate_text",
    "walk_parts",
    # Models
    "Attachment",
    "EmailPart",
    "ParsedEmail",
    "StructuredEmailData",
    # Prompt template
    "CHARS_PER_TOKEN_ESTIMATE",
    "CONTEXT_CHAR_LIMIT",
    "CONTEXT_TOKEN_LIMIT",
    "DEFAULT_WORD_WRAP_COLUMN",
    "PROMPT_BASE",
    "render_tag_instructions",
]
