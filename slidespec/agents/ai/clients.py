"""
Model registry and request-body construction for the chat-completions endpoint.
"""

import hashlib
from typing import Any, Dict, List, Optional

# Alias -> (provider, model id)
MODELS = {
    "gpt-4o": ("openai", "gpt-4o"),
    "gpt-4o-mini": ("openai", "gpt-4o-mini"),
    "gpt-4.1": ("openai", "gpt-4.1-2025-04-14"),
    "gpt-4.1-mini": ("openai", "gpt-4.1-mini-2025-04-14"),
    "o3-mini": ("openai", "o3-mini-2025-01-31"),
    "o4-mini": ("openai", "o4-mini-2025-04-16"),
    "gpt-5": ("openai", "gpt-5"),
    "gpt-5-mini": ("openai", "gpt-5-mini"),
}

# Max token param overrides for specific models
MAX_PARAM = {
    "o3-mini-2025-01-31": "max_completion_tokens",
    "o4-mini-2025-04-16": "max_completion_tokens",
    # GPT-5 family requires max_completion_tokens instead of max_tokens
    "gpt-5": "max_completion_tokens",
    "gpt-5-mini": "max_completion_tokens",
}

# Reasoning models reject temperature/top_p
NO_SAMPLING_PARAMS = {
    "o3-mini-2025-01-31",
    "o4-mini-2025-04-16",
    "gpt-5",
    "gpt-5-mini",
}

# Max output token limits per model
MODEL_MAX_TOKENS = {
    "gpt-4o": 16384,
    "gpt-4o-mini": 16384,
    "gpt-4.1-2025-04-14": 32768,
    "gpt-4.1-mini-2025-04-14": 16384,
    "o3-mini-2025-01-31": 65536,
    "o4-mini-2025-04-16": 65536,
    "gpt-5": 128000,
    "gpt-5-mini": 128000,
}

DEFAULT_MAX_TOKENS = 4096


def resolve_model(model_name: str) -> str:
    """Return the concrete model id for an alias (unknown names pass through)."""
    if model_name in MODELS:
        return MODELS[model_name][1]
    return model_name


def get_max_tokens_for_model(model_name: str, requested: Optional[int] = None) -> int:
    """Requested output tokens, capped at what the model supports."""
    limit = MODEL_MAX_TOKENS.get(resolve_model(model_name), DEFAULT_MAX_TOKENS)
    if requested is None:
        return limit
    return max(1, min(requested, limit))


def derive_seed(request_id: str) -> int:
    """Stable 31-bit seed from a request id so replays sample the same way."""
    digest = hashlib.sha256((request_id or "").encode("utf-8")).hexdigest()
    return int(digest[:8], 16) & 0x7FFFFFFF


def schema_response_format(name: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "schema": schema,
            # Optional fields are not expressible in strict mode
            "strict": False,
        },
    }


FREEFORM_RESPONSE_FORMAT = {"type": "json_object"}


def build_chat_request(
    model: str,
    messages: List[Dict[str, str]],
    temperature: float,
    top_p: float,
    seed: int,
    max_tokens: int,
    response_format: Dict[str, Any],
    stop: Optional[List[str]] = None,
) -> Dict[str, Any]:
    model_id = resolve_model(model)
    body: Dict[str, Any] = {
        "model": model_id,
        "messages": messages,
        "seed": seed,
        "response_format": response_format,
    }
    if model_id not in NO_SAMPLING_PARAMS:
        body["temperature"] = temperature
        body["top_p"] = top_p
    body[MAX_PARAM.get(model_id, "max_tokens")] = get_max_tokens_for_model(model_id, max_tokens)
    if stop:
        body["stop"] = list(stop)
    return body
