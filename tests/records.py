"""Plain record types and metadata shared by in-memory slug tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from sluggable.memory import InMemorySession
from sluggable.models.datatypes import AssociationMetadata, FieldMetadata, RecordMetadata

SessionFactory = Callable[..., InMemorySession]


@dataclass(eq=False)
class Article:
    """Blog article with a title-derived slug."""

    title: Any = None
    code: Any = None
    slug: Any = None
    id: int | None = None
    deleted: bool = False


@dataclass(eq=False)
class Company:
    """Company owning users."""

    title: Any = None
    slug: Any = None
    id: int | None = None


@dataclass(eq=False)
class User:
    """User whose slug is prefixed by the company slug."""

    name: Any = None
    company: Company | None = None
    slug: Any = None
    id: int | None = None


@dataclass(eq=False)
class Category:
    """Self-referencing category tree."""

    title: Any = None
    parent: Category | None = None
    slug: Any = None
    id: int | None = None


@dataclass(eq=False)
class Tag:
    """Record using its slug as the identifier."""

    name: Any = None
    slug: Any = None


@dataclass(eq=False)
class Page:
    """Page with slugs unique per locale."""

    title: Any = None
    locale: Any = None
    slug: Any = None
    id: int | None = None
    children: list[Any] = field(default_factory=list)


def article_metadata(slug_length: int | None = 64, slug_nullable: bool = False) -> RecordMetadata:
    return RecordMetadata(
        name="Article",
        fields={
            "id": FieldMetadata("id", "integer"),
            "title": FieldMetadata("title", "string", length=128, nullable=True),
            "code": FieldMetadata("code", "integer", nullable=True),
            "slug": FieldMetadata("slug", "string", length=slug_length, nullable=slug_nullable),
            "deleted": FieldMetadata("deleted", "boolean"),
        },
        identifier=("id",),
    )


def company_metadata() -> RecordMetadata:
    return RecordMetadata(
        name="Company",
        fields={
            "id": FieldMetadata("id", "integer"),
            "title": FieldMetadata("title", "string", length=64),
            "slug": FieldMetadata("slug", "string", length=64),
        },
        identifier=("id",),
    )


def user_metadata() -> RecordMetadata:
    return RecordMetadata(
        name="User",
        fields={
            "id": FieldMetadata("id", "integer"),
            "name": FieldMetadata("name", "string", length=64),
            "slug": FieldMetadata("slug", "string", length=128),
        },
        identifier=("id",),
        associations={"company": AssociationMetadata("company", target="Company")},
    )


def category_metadata() -> RecordMetadata:
    return RecordMetadata(
        name="Category",
        fields={
            "id": FieldMetadata("id", "integer"),
            "title": FieldMetadata("title", "string", length=64),
            "slug": FieldMetadata("slug", "string", length=255),
        },
        identifier=("id",),
        associations={"parent": AssociationMetadata("parent", target="Category")},
    )


def tag_metadata() -> RecordMetadata:
    return RecordMetadata(
        name="Tag",
        fields={
            "name": FieldMetadata("name", "string", length=64),
            "slug": FieldMetadata("slug", "string", length=64),
        },
        identifier=("slug",),
    )


def page_metadata() -> RecordMetadata:
    return RecordMetadata(
        name="Page",
        fields={
            "id": FieldMetadata("id", "integer"),
            "title": FieldMetadata("title", "string", length=64),
            "locale": FieldMetadata("locale", "string", length=8),
            "slug": FieldMetadata("slug", "string", length=64),
        },
        identifier=("id",),
        associations={"children": AssociationMetadata("children", target="Page", to_many=True)},
    )


def all_metadata() -> dict[str, RecordMetadata]:
    return {
        metadata.name: metadata
        for metadata in (
            article_metadata(),
            company_metadata(),
            user_metadata(),
            category_metadata(),
            tag_metadata(),
            page_metadata(),
        )
    }
