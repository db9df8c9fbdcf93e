"""
i18n package

Locale set, language metadata and RTL detection for multi-locale records.
"""

from .locale import (
    LANGUAGE_NAMES,
    PRIMARY_LOCALE,
    RTL_LOCALES,
    SUPPORTED_LOCALES,
    get_language_info,
    is_rtl_locale,
    is_supported_locale,
)

__all__ = [
    "LANGUAGE_NAMES",
    "PRIMARY_LOCALE",
    "RTL_LOCALES",
    "SUPPORTED_LOCALES",
    "get_language_info",
    "is_rtl_locale",
    "is_supported_locale",
]
