"""Ordered gallery of media URLs attached to a record."""

from collections.abc import Iterable


class Gallery:
    def __init__(self, urls: Iterable[str] | None = None):
        self._urls: list[str] = list(urls or [])

    @property
    def urls(self) -> list[str]:
        return list(self._urls)

    def append(self, urls: Iterable[str]) -> None:
        # One splice so a batch lands together or not at all
        self._urls = [*self._urls, *urls]

    def remove_at(self, index: int) -> None:
        # Out-of-range and negative indices are ignored
        if 0 <= index < len(self._urls):
            del self._urls[index]

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self):
        return iter(self._urls)
