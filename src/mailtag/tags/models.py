"""Tag models and the compiled-in tag tables.

Built-in tags are always ensured in the tag store and carry no
classification prompt. Custom tags carry a natural-language prompt that is
rendered into the analysis prompt; the default list below is used whenever
the configuration has none.
"""

from __future__ import annotations

import regex
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Key/name prefixes applied to tags in the host tag store
TAG_KEY_PREFIX = "_ma_"
TAG_NAME_PREFIX = "A:"

REGEX_TIMEOUT = 1.0

HEX_COLOR_PATTERN = regex.compile(r"#(?:[A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})")


def is_valid_color(color: object) -> bool:
    """Return True if color is a '#RGB' or '#RRGGBB' hex string."""
    if not isinstance(color, str):
        return False
    return HEX_COLOR_PATTERN.fullmatch(color, timeout=REGEX_TIMEOUT) is not None


def _check_color(value: str) -> str:
    if not is_valid_color(value):
        raise ValueError(f"Color '{value}' must be a hex color like '#FF0000' or '#F00'")
    return value


class Tag(BaseModel):
    """A tag this assistant manages.

    Attributes:
        key: Stable machine identifier, also the key the classifier answers with
        name: Human-readable name (shown with TAG_NAME_PREFIX in the store)
        color: Display color as a hex string
        prompt: Classification prompt fragment (custom tags only)
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1, description="Stable machine identifier")
    name: str = Field(min_length=1, description="Human-readable tag name")
    color: str = Field(description="Hex display color (#RGB or #RRGGBB)")
    prompt: str | None = Field(
        default=None,
        description="Natural-language check the classifier answers with a boolean",
    )

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """Ensure the color is a 3- or 6-digit hex string."""
        return _check_color(v)


class StoredTag(BaseModel):
    """A tag record as reported by the host tag store.

    The store's key and displayed text are independently editable by the
    user, which is why presence checks match on either of them.
    """

    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)

    key: str = Field(min_length=1)
    display_tag: str = Field(alias="tag", min_length=1)
    color: str
    ordinal: str

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        return _check_color(v)


BUILTIN_TAGS: tuple[Tag, ...] = (
    Tag(key="is_scam", name="Scam Alert", color="#FF5722"),
    Tag(key="spf_fail", name="SPF Fail", color="#E91E63"),
    Tag(key="dkim_fail", name="DKIM Fail", color="#E91E63"),
    Tag(key="tagged", name="Tagged", color="#4f4f4f"),
    Tag(key="email_ai_analyzed", name="AI Analyzed", color="#9E9E9E"),
)

DEFAULT_CUSTOM_TAGS: tuple[Tag, ...] = (
    Tag(
        key="is_advertise",
        name="Advertisement",
        color="#FFC107",
        prompt=(
            "check if email is advertising something and contains an offer or someone "
            "is asking for contact to show the offer"
        ),
    ),
    Tag(
        key="is_business_approach",
        name="Business Ad",
        color="#2196F3",
        prompt=(
            "check if email is a cold marketing/sales/business approach (or next message "
            "in the approach process where sender reply to self to refresh the approach in "
            "the mailbox). Consider typical sales and lead generation scenarios."
        ),
    ),
    Tag(
        key="is_personal",
        name="Personal",
        color="#4CAF50",
        prompt=(
            "check if this is non-sales scenario approach from someone who likes to "
            "contact in a non-business context."
        ),
    ),
    Tag(
        key="is_business",
        name="Business",
        color="#af4c87",
        prompt="check if this looks like work related email",
    ),
    Tag(
        key="is_service_important",
        name="Service Important",
        color="#F44336",
        prompt=(
            "check if email contains important information related to already subscribed "
            "service (if this is subscription offer - ignore it): bill, password reset, "
            "login link, 2fa code, expiration notice. Consider common services like "
            "electricity, bank account, netflix, or similar subscription service."
        ),
    ),
    Tag(
        key="is_service_not_important",
        name="Service Info",
        color="#9E9E9E",
        prompt=(
            "check if email contains non critical information from already subscribed "
            "service (if this is subscription offer - ignore it) - like: daily posts "
            "update from linkedin, AWS invitation for conference, cross sale, tips how to "
            "use product, surveys, new offers"
        ),
    ),
    Tag(
        key="is_bill",
        name="Bill",
        color="#f4b136",
        prompt="check if email contains bill or invoice information.",
    ),
    Tag(
        key="has_calendar_invite",
        name="Appointment",
        color="#7F07f2",
        prompt=(
            "check if the mail has invitation to the call or meeting "
            "(with calendar appointment attached)"
        ),
    ),
)
