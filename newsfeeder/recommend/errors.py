"""Domain exceptions for recommendation."""

from datetime import date


class RefreshNotAvailableError(Exception):
    """Raised when a user already refreshed the archive of a day.

    Attributes:
        user_id: User asking for the refresh.
        archive_date: Day of the archive.
    """

    def __init__(self, user_id: int, archive_date: date) -> None:
        """Initialize the error.

        Args:
            user_id: User asking for the refresh.
            archive_date: Day of the archive.
        """
        self.user_id = user_id
        self.archive_date = archive_date
        super().__init__(
            f"Archive refresh already used: user={user_id} date={archive_date.isoformat()}"
        )
