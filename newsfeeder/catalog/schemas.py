"""Catalog file schema for seeding categories, keywords, users and content."""

from datetime import date
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StrictBaseModel(BaseModel):
    """Base model with strict, immutable defaults."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class CategoryConfig(StrictBaseModel):
    """A category and the signed weights of its keywords.

    Attributes:
        name: Category name.
        keywords: Keyword name to signed weight. Positive weights boost
            content, negative weights suppress it.
    """

    name: Annotated[str, Field(min_length=1)]
    keywords: dict[str, float] = Field(default_factory=dict)


class UserConfig(StrictBaseModel):
    """A user and the categories they follow.

    Attributes:
        name: Display name.
        categories: Names of followed categories.
    """

    name: Annotated[str, Field(min_length=1)]
    categories: list[str] = Field(default_factory=list)


class ContentConfig(StrictBaseModel):
    """A content item to load for processing.

    Attributes:
        title: Original title.
        body: Plain-text body.
        published_date: Publication day.
        provider_priority: Selection priority, lower first.
        newsletter_name: Sender or feed name.
        original_url: Link to the original article.
    """

    title: Annotated[str, Field(min_length=1)]
    body: str
    published_date: date
    provider_priority: Annotated[int, Field(ge=0)] = 100
    newsletter_name: str = ""
    original_url: str = ""


class CatalogConfig(StrictBaseModel):
    """Root of a catalog file.

    Attributes:
        keywords: Reserved keywords without category weights.
        categories: Categories with keyword weights.
        users: Users with followed categories.
        contents: Content items awaiting processing.
    """

    keywords: list[str] = Field(default_factory=list)
    categories: list[CategoryConfig] = Field(default_factory=list)
    users: list[UserConfig] = Field(default_factory=list)
    contents: list[ContentConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_references(self) -> "CatalogConfig":
        """Ensure category names are unique and users follow known categories."""
        names = [c.name for c in self.categories]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            msg = f"Duplicate category names: {', '.join(duplicates)}"
            raise ValueError(msg)

        known = set(names)
        for user in self.users:
            unknown = [c for c in user.categories if c not in known]
            if unknown:
                msg = f"User '{user.name}' follows unknown categories: {', '.join(unknown)}"
                raise ValueError(msg)
        return self
