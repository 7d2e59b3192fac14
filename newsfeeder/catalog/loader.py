"""Catalog file loading and seeding into the store."""

import hashlib
from dataclasses import dataclass
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from newsfeeder.catalog.schemas import CatalogConfig
from newsfeeder.store.models import ContentItem, User
from newsfeeder.store.store import SqliteStore


logger = structlog.get_logger()


class CatalogValidationError(Exception):
    """Raised when a catalog file cannot be parsed or validated."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


@dataclass(frozen=True)
class SeedReport:
    """Counts of rows written by a seed run.

    Attributes:
        keywords: Reserved keywords ensured.
        categories: Categories ensured.
        weights: Category keyword weights written.
        users: Users created.
        contents: Content items created.
    """

    keywords: int
    categories: int
    weights: int
    users: int
    contents: int

    def to_dict(self) -> dict[str, int]:
        """Convert to a plain dictionary for CLI output."""
        return {
            "keywords": self.keywords,
            "categories": self.categories,
            "weights": self.weights,
            "users": self.users,
            "contents": self.contents,
        }


def load_catalog(file_path: Path) -> CatalogConfig:
    """Load and validate a catalog YAML file.

    Args:
        file_path: Path to the catalog file.

    Returns:
        Validated catalog.

    Raises:
        FileNotFoundError: If the file does not exist.
        CatalogValidationError: If parsing or validation fails.
    """
    log = logger.bind(component="catalog", file_path=str(file_path))

    content_bytes = file_path.read_bytes()
    checksum = hashlib.sha256(content_bytes).hexdigest()

    try:
        data = yaml.safe_load(content_bytes.decode("utf-8")) or {}
    except yaml.YAMLError as e:
        log.error("catalog_yaml_error", error=str(e))
        raise CatalogValidationError(
            [{"loc": "", "msg": str(e), "type": "yaml_error"}], str(file_path)
        ) from e

    try:
        catalog = CatalogConfig.model_validate(data)
    except ValidationError as e:
        errors = [
            {
                "loc": ".".join(str(loc) for loc in err["loc"]),
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        log.error("catalog_validation_failed", validation_error_count=len(errors), errors=errors)
        raise CatalogValidationError(errors, str(file_path)) from e

    log.info(
        "catalog_loaded",
        file_sha256=checksum,
        category_count=len(catalog.categories),
        user_count=len(catalog.users),
        content_count=len(catalog.contents),
    )
    return catalog


def seed_catalog(store: SqliteStore, catalog: CatalogConfig) -> SeedReport:
    """Write a catalog into the store.

    Keywords and categories are upserted by name and weights overwrite
    previous values, so seeding twice is safe for them. Users and
    content items are always inserted.

    Args:
        store: Connected store.
        catalog: Validated catalog.

    Returns:
        Counts of rows written.
    """
    log = logger.bind(component="catalog", subcomponent="seed")

    keyword_names = set(catalog.keywords)
    for category in catalog.categories:
        keyword_names.update(category.keywords)
    keyword_ids = {name: store.upsert_keyword(name).id for name in sorted(keyword_names)}

    category_ids: dict[str, int] = {}
    weights = 0
    for category in catalog.categories:
        stored = store.upsert_category(category.name)
        category_ids[category.name] = stored.id
        for keyword, weight in category.keywords.items():
            store.set_keyword_weight(stored.id, keyword_ids[keyword], weight)
            weights += 1

    for user in catalog.users:
        store.save_user(
            User(
                name=user.name,
                category_ids=tuple(category_ids[name] for name in user.categories),
            )
        )

    for content in catalog.contents:
        store.save_content(ContentItem(**content.model_dump()))

    report = SeedReport(
        keywords=len(keyword_ids),
        categories=len(category_ids),
        weights=weights,
        users=len(catalog.users),
        contents=len(catalog.contents),
    )
    log.info("catalog_seeded", **report.to_dict())
    return report
