import re

from slidespec.agents.config import ELLIPSIS

_WHITESPACE = re.compile(r"\s+")


def truncate(text: str, limit: int) -> str:
    """Hard cut to `limit` chars, the last three replaced by an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def dedupe_key(text: str) -> str:
    return text.lower().strip()
