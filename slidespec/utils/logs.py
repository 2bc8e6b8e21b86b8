"""
Helpers for keeping payloads out of the logs.
"""

import re
import time
from typing import Any, Optional

_SECRET_PATTERNS = [
    (re.compile(r"Bearer\s+[A-Za-z0-9._\-]+", re.IGNORECASE), "Bearer ***"),
    (re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}"), "sk-***"),
    (re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+"), "<email>"),
]


def redact_preview(value: Any, limit: int = 200) -> str:
    """Truncated, secret-masked preview of a payload for diagnostics."""
    if value is None:
        return ""
    text = value if isinstance(value, str) else repr(value)
    text = text[: limit * 2]
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    text = " ".join(text.split())
    if len(text) > limit:
        return text[:limit] + "...[truncated]"
    return text


def elapsed_ms(start: float, end: Optional[float] = None) -> int:
    return int(((end if end is not None else time.perf_counter()) - start) * 1000)
