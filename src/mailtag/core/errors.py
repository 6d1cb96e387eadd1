"""Custom exception types for mailtag.

Error messages should say what failed, where, and how to fix it when a
fix is actionable by the user.
"""


class MailTagError(Exception):
    """Base exception for all mailtag errors."""

    pass


class ConfigValidationError(MailTagError):
    """Raised when config.yaml fails Pydantic validation.

    Includes specific field errors with actionable messages.
    """

    pass


class ConfigLoadError(MailTagError):
    """Raised when config.yaml cannot be loaded (file not found, YAML parse error)."""

    pass


class TagStoreError(MailTagError):
    """Raised when the tag store rejects a read or write.

    Attributes:
        display_name: Display name of the tag involved, if any
    """

    def __init__(self, message: str, display_name: str | None = None):
        super().__init__(message)
        self.display_name = display_name


class TagStoreShapeError(MailTagError):
    """Raised when the tag store returns records that don't look like tags.

    Attributes:
        errors: Field-level problems found while parsing the response
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class CustomTagsShapeError(MailTagError):
    """Raised when the configured custom tag payload has an unexpected shape."""

    pass
