"""Domain exceptions for the state store.

This module defines a hierarchy of exceptions for the state store layer,
separating infrastructure errors (database issues) from domain errors
(missing referenced entities, uniqueness conflicts).
"""


class StateStoreError(Exception):
    """Base exception for all state store errors."""


class ConnectionError(StateStoreError):
    """Raised when the database connection is not established."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class NotFoundError(StateStoreError):
    """Raised when a referenced entity does not exist.

    Attributes:
        entity: Entity type name.
        entity_id: Identifier that was looked up.
    """

    entity = "entity"

    def __init__(self, entity_id: object) -> None:
        """Initialize the error with the missing identifier.

        Args:
            entity_id: The identifier that was not found.
        """
        self.entity_id = entity_id
        super().__init__(f"{self.entity.capitalize()} not found: {entity_id}")


class ContentNotFoundError(NotFoundError):
    """Raised when a content item is not found."""

    entity = "content"


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""

    entity = "user"


class CategoryNotFoundError(NotFoundError):
    """Raised when a category is not found."""

    entity = "category"


class CandidateKeywordNotFoundError(NotFoundError):
    """Raised when a candidate keyword is not found."""

    entity = "candidate keyword"


class DuplicateArchiveError(StateStoreError):
    """Raised when a daily archive already exists for a user and date."""

    def __init__(self, user_id: int, archive_date: object) -> None:
        """Initialize the error.

        Args:
            user_id: User the archive belongs to.
            archive_date: Calendar day of the archive.
        """
        self.user_id = user_id
        self.archive_date = archive_date
        super().__init__(f"Daily archive already exists: user={user_id} date={archive_date}")


class MigrationError(StateStoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
