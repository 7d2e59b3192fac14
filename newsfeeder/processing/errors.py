"""Domain exceptions for batch AI processing."""


class ContentValidationError(Exception):
    """Raised when content is too large to send for analysis.

    Attributes:
        content_id: Offending content item.
        length_chars: Body length in characters.
        limit: Maximum accepted length.
    """

    def __init__(self, content_id: int | None, length_chars: int, limit: int) -> None:
        """Initialize the error.

        Args:
            content_id: Offending content item.
            length_chars: Body length in characters.
            limit: Maximum accepted length.
        """
        self.content_id = content_id
        self.length_chars = length_chars
        self.limit = limit
        super().__init__(
            f"Content {content_id} is too long for analysis ({length_chars} > {limit} chars)"
        )
