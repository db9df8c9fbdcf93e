"""
Editor Session

Form state of one record while it is being edited: the translation store,
the gallery, the collection's scalar fields, the slug and the active
locale. Nothing here touches the repository; saving is the identity
manager's job.

Slug tracking uses an explicit ``slug_is_automatic`` flag. While it is set,
editing the primary-locale title re-derives the slug. The first direct slug
edit clears it, and only ``reset()`` sets it again.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import UploadFile

from editorial.constants import CollectionConfig, RecordStatus
from editorial.exceptions import ValidationError
from editorial.i18n.locale import PRIMARY_LOCALE, SUPPORTED_LOCALES
from editorial.schemas.record import EditAction, EditorEdit, EditorState
from editorial.services.gallery_service import Gallery
from editorial.services.translation_service import TranslationStore
from editorial.services.upload_service import UploadService
from editorial.utils.slugify import slugify

logger = logging.getLogger(__name__)


class EditorSession:
    def __init__(
        self,
        config: CollectionConfig,
        key: str | None = None,
        locales: tuple[str, ...] = SUPPORTED_LOCALES,
        primary_locale: str = PRIMARY_LOCALE,
    ):
        if primary_locale not in locales:
            raise ValueError(f"Primary locale '{primary_locale}' is not among {locales}")

        self.config = config
        self.key = key
        self.primary_locale = primary_locale
        self.active_locale = primary_locale
        self.translations = TranslationStore(config.translation_fields, locales)
        self.gallery = Gallery()
        self.fields: dict[str, Any] = config.new_fields()
        self.status: str | None = None
        self.slug = ""
        self.slug_is_automatic = True
        self.created_at: datetime | None = None
        self.updated_at: datetime | None = None

    # ── Construction ──────────────────────────────────────────────────────────

    @classmethod
    def from_record(cls, config: CollectionConfig, record: dict[str, Any], **kwargs) -> EditorSession:
        """Seed a session from a persisted record."""
        session = cls(config, key=record["key"], **kwargs)
        session.translations.load(record.get("translations"))
        session.gallery = Gallery(record.get("gallery") or [])
        for name in session.fields:
            if name in record:
                session.fields[name] = record[name]
        session.status = record.get("status")
        session.slug = record.get("slug") or ""
        session.created_at = record.get("created_at")
        session.updated_at = record.get("updated_at")
        # Decided once against the stored state, never re-derived afterwards
        session.slug_is_automatic = session.slug == "" or session.slug == slugify(session.primary_title)
        return session

    @classmethod
    def from_state(cls, config: CollectionConfig, state: EditorState, **kwargs) -> EditorSession:
        """Rebuild a session from the form state a client sent back."""
        session = cls(config, key=state.key or None, **kwargs)
        session.translations.load(state.translations)
        session.gallery = Gallery(state.gallery)
        for name, value in state.fields.items():
            session._check_field(name)
            session.fields[name] = value
        session._normalize_category()
        session.status = state.status
        session.slug = state.slug
        session.slug_is_automatic = state.slug_is_automatic
        if state.active_locale:
            session.switch_locale(state.active_locale)
        return session

    def to_state(self) -> EditorState:
        return EditorState(
            key=self.key,
            slug=self.slug,
            slug_is_automatic=self.slug_is_automatic,
            active_locale=self.active_locale,
            translations=self.translations.to_dict(),
            gallery=self.gallery.urls,
            fields=dict(self.fields),
            status=self.status,
        )

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def is_new(self) -> bool:
        return self.key is None

    @property
    def primary_title(self) -> str:
        return self.translations.get_field(self.primary_locale, self.config.title_field)

    # ── Edits ─────────────────────────────────────────────────────────────────

    def switch_locale(self, locale: str) -> None:
        # Other locales keep their edits; all of them live in the store
        self.translations.get(locale)
        self.active_locale = locale

    def edit_translation(self, field: str, value: str, locale: str | None = None) -> None:
        locale = locale or self.active_locale
        self.translations.set_field(locale, field, value)
        if locale == self.primary_locale and field == self.config.title_field and self.slug_is_automatic:
            self.slug = slugify(value)

    def edit_title(self, value: str) -> None:
        self.edit_translation(self.config.title_field, value, locale=self.primary_locale)

    def edit_slug(self, value: str) -> None:
        self.slug = slugify(value)
        self.slug_is_automatic = False

    def _check_field(self, name: str) -> None:
        if name not in self.fields:
            raise ValidationError(f"Unknown field '{name}' for {self.config.name}", field=name)

    def _normalize_category(self) -> None:
        category = self.fields.get("category") or ""
        if self.config.categories and category and category not in self.config.categories:
            raise ValidationError(f"Unknown category '{category}'", field="category")
        if self.config.city_category and category != self.config.city_category:
            self.fields["city"] = None
        if self.config.derived_category_key:
            self.fields["category_key"] = slugify(category)

    def set_field(self, name: str, value: Any) -> None:
        self._check_field(name)
        if name == "city" and value and self.fields.get("category") != self.config.city_category:
            raise ValidationError(f"City only applies to the '{self.config.city_category}' category", field="city")
        self.fields[name] = value
        if name == "category":
            self._normalize_category()

    def set_status(self, status: str) -> None:
        try:
            self.status = RecordStatus(status).value
        except ValueError:
            raise ValidationError(f"Unknown status '{status}'", field="status") from None

    def reset(self) -> None:
        """Hand the slug back to the title."""
        self.slug_is_automatic = True
        self.slug = slugify(self.primary_title)

    def apply(self, edit: EditorEdit) -> None:
        if edit.action == EditAction.TRANSLATION:
            if not edit.field:
                raise ValidationError("A translation edit needs a field", field="field")
            self.edit_translation(edit.field, edit.value or "", locale=edit.locale)
        elif edit.action == EditAction.SLUG:
            self.edit_slug(edit.value or "")
        elif edit.action == EditAction.FIELD:
            if edit.field == "status":
                self.set_status(edit.value)
            else:
                self.set_field(edit.field or "", edit.value)
        elif edit.action == EditAction.LOCALE:
            self.switch_locale(edit.locale or "")
        elif edit.action == EditAction.GALLERY_APPEND:
            self.gallery.append(edit.urls)
        elif edit.action == EditAction.GALLERY_REMOVE:
            if edit.index is not None:
                self.gallery.remove_at(edit.index)
        elif edit.action == EditAction.RESET:
            self.reset()

    # ── Media ─────────────────────────────────────────────────────────────────

    async def upload_image(self, file: UploadFile, uploads: UploadService) -> str:
        """
        Store the primary image and attach its URL to this session.

        Library-level entry point for callers holding a session. The HTTP
        media routes only store files and return URLs; the client attaches
        them through ``field``/``gallery_append`` editor edits.
        """
        url = await uploads.upload_image(file, self.config.prefix)
        self.fields["image"] = url
        return url

    async def upload_gallery(self, files: list[UploadFile], uploads: UploadService) -> list[str]:
        """Store a gallery batch and attach it; either every URL is appended or none is."""
        urls = await uploads.upload_gallery(files, self.config.prefix)
        self.gallery.append(urls)
        return urls

    # ── Persistence payload ───────────────────────────────────────────────────

    def to_document(self) -> dict[str, Any]:
        document = {
            "slug": self.slug,
            "translations": self.translations.to_dict(),
            "gallery": self.gallery.urls,
            **self.fields,
        }
        if self.config.slug_is_key:
            # Redundant copy of the key kept on the document itself
            document["id"] = self.slug
        if self.status is not None:
            document["status"] = self.status
        return document
