import re
from unidecode import unidecode

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\-]+", re.ASCII)
_HYPHEN_RUNS = re.compile(r"-{2,}")


def slugify(text):
    if not text:
        return ""
    text = unidecode(str(text)).lower().strip()
    text = _WHITESPACE.sub("-", text)
    text = _NON_WORD.sub("", text)
    text = _HYPHEN_RUNS.sub("-", text)
    return text.strip("-")
