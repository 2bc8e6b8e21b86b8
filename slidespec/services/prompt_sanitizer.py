"""
Prompt sanitation: turn raw user text into a bounded string that is safe to
embed in a generation request.
"""

import re
from typing import Optional

from slidespec.agents.config import DEFAULT_MAX_PROMPT_LENGTH, MIN_PROMPT_LENGTH
from slidespec.agents.generation.exceptions import InvalidInputError
from slidespec.setup_logging_optimized import get_logger

logger = get_logger(__name__)

_LEADING_FENCE = re.compile(r"^```[a-z0-9]*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"```$")

# Phrases removed verbatim before the prompt reaches the model
INJECTION_PATTERNS = [
    re.compile(r"\bignore (all )?previous instructions\b", re.IGNORECASE),
    re.compile(r"\bforget (all |the |your )?rules\b", re.IGNORECASE),
    re.compile(r"\bdisregard (the )?system prompt\b", re.IGNORECASE),
    re.compile(r"\bact as\b", re.IGNORECASE),
    re.compile(r"\brole-?play\b", re.IGNORECASE),
]


def strip_code_fences(text: str) -> str:
    """Remove a single leading/trailing ``` wrapper."""
    text = _LEADING_FENCE.sub("", text, count=1)
    text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


def sanitize_prompt(
    raw: str,
    max_length: int = DEFAULT_MAX_PROMPT_LENGTH,
    request_id: Optional[str] = None,
) -> str:
    """Normalize a raw prompt.

    Trims, unwraps one code fence, removes known injection phrases, rejects
    anything shorter than MIN_PROMPT_LENGTH and hard-cuts to max_length.

    Raises:
        InvalidInputError: the prompt is missing or too short after cleanup.
    """
    if not isinstance(raw, str):
        raise InvalidInputError("Prompt must be a string", request_id=request_id)

    original_length = len(raw)
    text = strip_code_fences(raw.strip())
    for pattern in INJECTION_PATTERNS:
        text = pattern.sub("", text)
    # Removing a phrase can leave doubled spaces behind
    text = re.sub(r"[ \t]{2,}", " ", text).strip()

    if len(text) < MIN_PROMPT_LENGTH:
        raise InvalidInputError(
            f"Prompt too short (min {MIN_PROMPT_LENGTH} chars)",
            context={"length": len(text)},
            request_id=request_id,
        )

    if len(text) > max_length:
        text = text[:max_length].rstrip()

    logger.info(
        f"[{request_id}] Prompt sanitized: {original_length} -> {len(text)} chars"
    )
    return text
