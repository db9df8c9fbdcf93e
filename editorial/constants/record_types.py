"""
Collection Constants for the Editorial Console

Each record type (articles, blog posts) is described by a CollectionConfig:
how its storage key is chosen, which per-locale fields it carries, which
fields the list view searches and sorts on, and its editable scalar fields.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from editorial.exceptions import CollectionNotFoundError
from editorial.i18n.locale import PRIMARY_LOCALE


class KeyScheme(str, Enum):
    """How a record's storage key relates to its slug."""

    GENERATED = "generated"  # opaque repository id, slug stored alongside
    SLUG = "slug"  # the slug is the key


class RecordStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


# Status applied to records created without one
DEFAULT_STATUS = RecordStatus.PUBLISHED


class FieldKind(str, Enum):
    STRING = "string"
    DATE = "date"


@dataclass(frozen=True)
class SortField:
    """A sortable column: dotted path into the record plus comparison kind."""

    path: str
    kind: FieldKind = FieldKind.STRING


@dataclass(frozen=True)
class CollectionConfig:
    name: str
    key_scheme: KeyScheme
    translation_fields: tuple[str, ...]
    search_fields: tuple[str, ...]
    sort_fields: dict[str, SortField]
    field_defaults: Callable[[], dict[str, Any]]
    default_sort: tuple[str, str] = ("date", "desc")
    categories: tuple[str, ...] = ()
    city_category: str | None = None
    media_prefix: str = ""
    derived_category_key: bool = False
    title_field: str = "title"

    @property
    def slug_is_key(self) -> bool:
        return self.key_scheme == KeyScheme.SLUG

    @property
    def prefix(self) -> str:
        return self.media_prefix or self.name

    def new_fields(self) -> dict[str, Any]:
        return dict(self.field_defaults())


ARTICLE_CATEGORIES = (
    "UAE Real Estate Trends",
    "Real Estate Tips and Advice",
    "Rules and Regulations",
    "Laws",
    "Technology",
    "Property Guide",
    "Area Guide",
)


def _article_fields() -> dict[str, Any]:
    return {"category": "", "city": None, "image": ""}


def _blog_post_fields() -> dict[str, Any]:
    return {
        "category": "",
        "category_key": "",
        "author": "",
        "date": date.today().isoformat(),
        "image": "",
        "youtube_url": "",
        "summary": "",
    }


_PRIMARY_TITLE = f"translations.{PRIMARY_LOCALE}.title"

ARTICLES = CollectionConfig(
    name="articles",
    key_scheme=KeyScheme.GENERATED,
    translation_fields=("title", "h2", "h3", "content"),
    search_fields=(_PRIMARY_TITLE, "category"),
    sort_fields={
        "title": SortField(_PRIMARY_TITLE),
        "category": SortField("category"),
        "status": SortField("status"),
        "date": SortField("created_at", FieldKind.DATE),
    },
    field_defaults=_article_fields,
    categories=ARTICLE_CATEGORIES,
    city_category="Area Guide",
)

BLOG_POSTS = CollectionConfig(
    name="blog_posts",
    key_scheme=KeyScheme.SLUG,
    translation_fields=("title", "description"),
    search_fields=(_PRIMARY_TITLE, "author"),
    sort_fields={
        "title": SortField(_PRIMARY_TITLE),
        "author": SortField("author"),
        "date": SortField("date", FieldKind.DATE),
    },
    field_defaults=_blog_post_fields,
    media_prefix="blog",
    derived_category_key=True,
)

COLLECTIONS: dict[str, CollectionConfig] = {
    ARTICLES.name: ARTICLES,
    BLOG_POSTS.name: BLOG_POSTS,
}


def get_collection_config(name: str) -> CollectionConfig:
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise CollectionNotFoundError(name) from None
