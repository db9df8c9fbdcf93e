"""
Locale helpers

Pure functions over the fixed locale set a record is edited in:
- supported locale list and primary locale
- RTL (right-to-left) language detection
- language metadata lookup
"""

from __future__ import annotations

from editorial.config import settings

# ── Constants ─────────────────────────────────────────────────────────────────

# Base language codes whose scripts read right-to-left
RTL_LOCALES: frozenset[str] = frozenset({"ar", "he", "fa", "ur", "yi", "ku"})

# Human-readable names for supported locales
LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "ar": "Arabic",
    "zh": "Chinese",
    "ru": "Russian",
    "nl": "Dutch",
}

SUPPORTED_LOCALES: tuple[str, ...] = tuple(settings.locales)
PRIMARY_LOCALE: str = settings.primary_locale


# ── Public helpers ────────────────────────────────────────────────────────────


def is_rtl_locale(locale: str) -> bool:
    """Return True when the given locale is right-to-left.

    Compares only the base language tag (before the first hyphen), so
    both "ar" and "ar-SA" are identified as RTL.
    """
    base = locale.split("-")[0].lower()
    return base in RTL_LOCALES


def is_supported_locale(locale: str, supported: tuple[str, ...] | list[str] = SUPPORTED_LOCALES) -> bool:
    return locale in supported


def get_language_info(locale: str) -> dict[str, str | bool]:
    """Return a metadata dict describing the given locale.

    Returns:
        Dict with keys: ``code`` (str), ``name`` (str), ``is_rtl`` (bool).
    """
    return {
        "code": locale,
        "name": LANGUAGE_NAMES.get(locale, locale),
        "is_rtl": is_rtl_locale(locale),
    }
