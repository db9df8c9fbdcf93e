"""
Translation Store

Holds the per-locale content fields of one record. Every supported locale
is present at all times: loading seeds an empty translation per locale and
then lets each locale present in the persisted payload overwrite its slot.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from editorial.exceptions import ValidationError
from editorial.i18n.locale import SUPPORTED_LOCALES, is_rtl_locale

logger = logging.getLogger(__name__)


class TranslationStore:
    def __init__(self, fields: Iterable[str], locales: Iterable[str] = SUPPORTED_LOCALES):
        self.fields: tuple[str, ...] = tuple(fields)
        self.locales: tuple[str, ...] = tuple(locales)
        self._translations: dict[str, dict[str, str]] = {locale: self.empty() for locale in self.locales}

    def empty(self) -> dict[str, str]:
        return {field: "" for field in self.fields}

    def load(self, payload: Mapping[str, Any] | None) -> TranslationStore:
        """Replace the store's content with ``payload`` merged over empty defaults.

        The merge is per locale: a locale present in the payload replaces
        its slot wholesale (missing fields inside it become ""), a locale
        absent from the payload stays empty. Unknown locales are dropped.
        """
        translations = {locale: self.empty() for locale in self.locales}
        for locale, translation in (payload or {}).items():
            if locale not in translations:
                logger.warning("Dropping translation for unsupported locale %s", locale)
                continue
            translation = translation or {}
            translations[locale] = {field: str(translation.get(field) or "") for field in self.fields}

        self._translations = translations
        return self

    def _check(self, locale: str, field: str | None = None) -> None:
        if locale not in self._translations:
            raise ValidationError(f"Unsupported locale '{locale}'", field="locale")
        if field is not None and field not in self.fields:
            raise ValidationError(f"Unknown translation field '{field}'", field=field)

    def get(self, locale: str) -> dict[str, str]:
        self._check(locale)
        return dict(self._translations[locale])

    def get_field(self, locale: str, field: str) -> str:
        self._check(locale, field)
        return self._translations[locale][field]

    def set_field(self, locale: str, field: str, value: str) -> None:
        self._check(locale, field)
        self._translations[locale][field] = value if value is not None else ""

    def is_rtl(self, locale: str) -> bool:
        self._check(locale)
        return is_rtl_locale(locale)

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {locale: dict(translation) for locale, translation in self._translations.items()}
