from .record_types import (
    ARTICLE_CATEGORIES,
    ARTICLES,
    BLOG_POSTS,
    COLLECTIONS,
    DEFAULT_STATUS,
    CollectionConfig,
    FieldKind,
    KeyScheme,
    RecordStatus,
    SortField,
    get_collection_config,
)

__all__ = [
    "ARTICLE_CATEGORIES",
    "ARTICLES",
    "BLOG_POSTS",
    "COLLECTIONS",
    "DEFAULT_STATUS",
    "CollectionConfig",
    "FieldKind",
    "KeyScheme",
    "RecordStatus",
    "SortField",
    "get_collection_config",
]
