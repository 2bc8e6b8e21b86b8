"""
Structured-output client for the chat-completions endpoint.

Each call starts in schema-constrained mode. A 400-class rejection that points
at the response format moves the call, once and without spending a retry, to
free-form JSON mode with the schema embedded in the system prompt. Transient
failures are retried with exponential backoff on the calling task.
"""

import asyncio
import json
import re
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from slidespec.agents.ai.clients import (
    FREEFORM_RESPONSE_FORMAT,
    build_chat_request,
    derive_seed,
    schema_response_format,
)
from slidespec.agents.config import MAX_REPORTED_ISSUES, STOP_SEQUENCES
from slidespec.agents.core.interfaces import IStructuredOutputClient, StructuredResult, T
from slidespec.agents.generation.config import AIConfig
from slidespec.agents.generation.exceptions import (
    AITimeoutError,
    ApiError,
    GenerationError,
    NoContentError,
    ParseError,
    ResponseTooLargeError,
    SchemaValidationError,
    get_retry_delay,
    is_retryable,
)
from slidespec.agents.prompts.generation.slide_prompts import render_freeform_instructions
from slidespec.services.prompt_sanitizer import strip_code_fences
from slidespec.setup_logging_optimized import get_logger
from slidespec.utils.logs import redact_preview

logger = get_logger(__name__)

SCHEMA_REJECTION_HINT = re.compile(r"response_format|json_schema|schema", re.IGNORECASE)
MAX_ISSUE_LENGTH = 200


class OutputMode(str, Enum):
    SCHEMA = "schema"
    FREEFORM = "freeform"


def is_schema_rejection(error: Exception) -> bool:
    """400-class response whose body complains about the response format."""
    if not isinstance(error, ApiError) or error.status_code is None:
        return False
    if not 400 <= error.status_code < 500 or error.status_code == 429:
        return False
    return bool(SCHEMA_REJECTION_HINT.search(error.body_preview or ""))


class ModeNegotiator:
    """Two states, one transition: SCHEMA -> FREEFORM on a schema rejection."""

    def __init__(self, mode: OutputMode = OutputMode.SCHEMA):
        self.mode = mode

    def on_error(self, error: Exception) -> bool:
        """Apply the transition if `error` triggers it; True when the mode changed."""
        if self.mode is OutputMode.SCHEMA and is_schema_rejection(error):
            self.mode = OutputMode.FREEFORM
            return True
        return False


def format_issues(error: PydanticValidationError, limit: int = MAX_REPORTED_ISSUES) -> List[str]:
    issues = []
    for issue in error.errors()[:limit]:
        path = ".".join(str(part) for part in issue.get("loc", ())) or "<root>"
        issues.append(f"{path}: {issue.get('msg', '')}"[:MAX_ISSUE_LENGTH])
    return issues


def extract_content(body: Dict[str, Any]) -> str:
    """choices[0].message.content, or NoContentError."""
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not isinstance(content, str) or not content.strip():
        raise NoContentError("Response contained no message content")
    return content


def extract_total_tokens(body: Dict[str, Any]) -> Optional[int]:
    usage = body.get("usage") if isinstance(body, dict) else None
    if isinstance(usage, dict) and isinstance(usage.get("total_tokens"), int):
        return usage["total_tokens"]
    return None


class StructuredOutputClient(IStructuredOutputClient):
    """httpx-based client; one instance can serve many concurrent requests."""

    def __init__(
        self,
        config: Optional[AIConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or AIConfig()
        self._http_client = http_client
        self._sleep = sleep

    # ------------------------------------------------------------------ public

    async def call_with_usage(
        self,
        prompt: str,
        schema: Type[T],
        temperature: float,
        request_id: str,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> StructuredResult:
        model = model or self.config.primary_model
        negotiator = ModeNegotiator()
        attempt = 0

        while True:
            try:
                data, tokens = await self._attempt(
                    prompt, schema, temperature, request_id, model,
                    system_prompt, max_tokens, negotiator.mode,
                )
                return StructuredResult(
                    data=data,
                    model=model,
                    mode=negotiator.mode.value,
                    tokens_used=tokens,
                    attempts=attempt + 1,
                )
            except GenerationError as e:
                e.request_id = e.request_id or request_id
                if negotiator.on_error(e):
                    logger.warning(
                        f"[{request_id}] {model} rejected schema mode, switching to free-form JSON"
                    )
                    continue
                if not is_retryable(e) or attempt + 1 >= self.config.max_retries:
                    logger.error(
                        f"[{request_id}] Structured call failed after {attempt + 1} attempt(s): "
                        f"{type(e).__name__}: {redact_preview(e.message)}"
                    )
                    raise
                delay = get_retry_delay(attempt, self.config.retry_delay)
                logger.warning(
                    f"[{request_id}] Attempt {attempt + 1} failed ({type(e).__name__}), "
                    f"retrying in {delay:.1f}s"
                )
                await self._sleep(delay)
                attempt += 1

    # ---------------------------------------------------------------- internal

    def _messages(self, prompt: str, schema: Type[BaseModel], system_prompt: Optional[str], mode: OutputMode) -> List[Dict[str, str]]:
        system_parts = [system_prompt] if system_prompt else []
        if mode is OutputMode.FREEFORM:
            system_parts.append(render_freeform_instructions(schema.model_json_schema()))
        messages = []
        if system_parts:
            messages.append({"role": "system", "content": "\n\n".join(system_parts)})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _payload(self, prompt, schema, temperature, request_id, model, system_prompt, max_tokens, mode) -> Dict[str, Any]:
        if mode is OutputMode.SCHEMA:
            response_format = schema_response_format(schema.__name__, schema.model_json_schema())
        else:
            response_format = FREEFORM_RESPONSE_FORMAT
        return build_chat_request(
            model=model,
            messages=self._messages(prompt, schema, system_prompt, mode),
            temperature=temperature,
            top_p=self.config.top_p,
            seed=derive_seed(request_id),
            max_tokens=max_tokens or self.config.max_tokens,
            response_format=response_format,
            stop=STOP_SEQUENCES,
        )

    async def _attempt(self, prompt, schema, temperature, request_id, model, system_prompt, max_tokens, mode):
        payload = self._payload(prompt, schema, temperature, request_id, model, system_prompt, max_tokens, mode)
        logger.debug(f"[{request_id}] POST chat/completions model={payload['model']} mode={mode.value}")

        try:
            raw = await asyncio.wait_for(self._post(payload), timeout=self.config.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise AITimeoutError(
                f"Generative service timed out after {self.config.timeout_seconds}s",
                cause=e, request_id=request_id,
            )
        except httpx.TimeoutException as e:
            raise AITimeoutError("Generative service request timed out", cause=e, request_id=request_id)
        except httpx.TransportError as e:
            raise ApiError(f"Transport error: {type(e).__name__}", cause=e, request_id=request_id)

        # Nothing below touches the caller's document until validation succeeds
        try:
            body = json.loads(raw)
        except ValueError as e:
            raise ParseError(
                "Response body is not JSON",
                cause=e, context={"preview": redact_preview(raw.decode("utf-8", "replace"))},
                request_id=request_id,
            )

        content = extract_content(body)
        try:
            document = json.loads(strip_code_fences(content))
        except ValueError as e:
            raise ParseError(
                "Message content is not JSON",
                cause=e, context={"preview": redact_preview(content)},
                request_id=request_id,
            )

        try:
            data = schema.model_validate(document)
        except PydanticValidationError as e:
            issues = format_issues(e)
            logger.warning(f"[{request_id}] {schema.__name__} validation failed: {issues}")
            raise SchemaValidationError(
                f"Response does not match {schema.__name__}", issues=issues, request_id=request_id,
            )

        return data, extract_total_tokens(body)

    async def _post(self, payload: Dict[str, Any]) -> bytes:
        if self._http_client is not None:
            return await self._stream(self._http_client, payload)
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout_seconds)) as client:
            return await self._stream(client, payload)

    async def _stream(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> bytes:
        """POST and read the body, refusing to buffer more than max_response_bytes."""
        limit = self.config.max_response_bytes
        url = f"{self.config.base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.config.api_key or ''}",
            "Content-Type": "application/json",
        }
        async with client.stream("POST", url, json=payload, headers=headers) as response:
            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > limit:
                raise ResponseTooLargeError(
                    "Response exceeds size limit", size=int(declared), limit=limit,
                )
            chunks = []
            size = 0
            async for chunk in response.aiter_bytes():
                size += len(chunk)
                if size > limit:
                    raise ResponseTooLargeError("Response exceeds size limit", size=size, limit=limit)
                chunks.append(chunk)
            raw = b"".join(chunks)

            if response.status_code >= 400:
                preview = redact_preview(raw.decode("utf-8", "replace"), limit=500)
                raise ApiError(
                    f"Generative service returned HTTP {response.status_code}",
                    status_code=response.status_code,
                    body_preview=preview,
                )
            return raw
