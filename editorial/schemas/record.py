from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from editorial.constants import RecordStatus


class EditorState(BaseModel):
    key: Optional[str] = Field(None, title="Key", description="Storage key; empty for a record not saved yet.")
    slug: str = Field("", title="Slug", description="Unique URL identifier.")
    slug_is_automatic: bool = Field(
        True, title="Automatic Slug", description="Whether the slug still follows the primary-locale title."
    )
    active_locale: Optional[str] = Field(None, title="Active Locale")
    translations: dict[str, dict[str, str]] = Field(default_factory=dict, title="Translations")
    gallery: list[str] = Field(default_factory=list, title="Gallery")
    fields: dict[str, Any] = Field(default_factory=dict, title="Fields", description="Collection-specific fields.")
    status: Optional[RecordStatus] = Field(None, title="Status")

    model_config = {
        "use_enum_values": True,
        "json_schema_extra": {
            "example": {
                "key": None,
                "slug": "villa-in-palm-jumeirah",
                "slug_is_automatic": True,
                "active_locale": "en",
                "translations": {"en": {"title": "Villa in Palm Jumeirah", "h2": "", "h3": "", "content": "<p></p>"}},
                "gallery": [],
                "fields": {"category": "Area Guide", "city": "Dubai", "image": ""},
                "status": "published",
            }
        },
    }


class EditAction(str, Enum):
    TRANSLATION = "translation"
    SLUG = "slug"
    FIELD = "field"
    LOCALE = "locale"
    GALLERY_APPEND = "gallery_append"
    GALLERY_REMOVE = "gallery_remove"
    RESET = "reset"


class EditorEdit(BaseModel):
    action: EditAction
    locale: Optional[str] = None
    field: Optional[str] = None
    value: Any = None
    index: Optional[int] = None
    urls: list[str] = Field(default_factory=list)


class EditorEditRequest(BaseModel):
    state: EditorState
    edits: list[EditorEdit] = Field(default_factory=list)


class SaveResponse(BaseModel):
    action: str = Field(..., description="created, updated or renamed")
    key: str
    previous_key: Optional[str] = None
    record: dict[str, Any]


class ListViewResponse(BaseModel):
    items: list[dict[str, Any]]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool
    query: str
    sort: str
    direction: str
    unresolved_renames: list[dict[str, Any]] = Field(default_factory=list)


class SlugCheckResponse(BaseModel):
    slug: str
    unique: bool


class SlugifyResponse(BaseModel):
    text: str
    slug: str


class PendingRename(BaseModel):
    key: str
    moved_from: str
    updated_at: Optional[datetime] = None


class ReconcileResponse(BaseModel):
    reconciled: list[PendingRename]
    unresolved: list[PendingRename]


class UploadResponse(BaseModel):
    url: str


class GalleryUploadResponse(BaseModel):
    urls: list[str]
