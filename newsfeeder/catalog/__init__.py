"""Catalog files describing categories, keyword weights, users and content."""

from newsfeeder.catalog.loader import (
    CatalogValidationError,
    SeedReport,
    load_catalog,
    seed_catalog,
)
from newsfeeder.catalog.schemas import (
    CatalogConfig,
    CategoryConfig,
    ContentConfig,
    UserConfig,
)


__all__ = [
    "CatalogConfig",
    "CatalogValidationError",
    "CategoryConfig",
    "ContentConfig",
    "SeedReport",
    "UserConfig",
    "load_catalog",
    "seed_catalog",
]
