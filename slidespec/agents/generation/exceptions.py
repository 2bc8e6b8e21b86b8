"""
Exception hierarchy for the slide generation pipeline.

Two families matter to callers:
- rejections (bad input, moderation, rate limiting) which are always surfaced
- service failures which the orchestrator turns into a fallback specification
"""

from enum import Enum
from typing import Optional, Dict, Any, List

import httpx


class ErrorCode(str, Enum):
    BAD_REQUEST = "BAD_REQUEST"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    RATE_LIMITED = "RATE_LIMITED"
    MODERATION_REJECTED = "MODERATION_REJECTED"
    AI_SERVICE_ERROR = "AI_SERVICE_ERROR"
    AI_TIMEOUT = "AI_TIMEOUT"
    AI_VALIDATION_ERROR = "AI_VALIDATION_ERROR"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


STATUS_CODES = {
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.INVALID_PAYLOAD: 400,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.MODERATION_REJECTED: 400,
    ErrorCode.AI_SERVICE_ERROR: 502,
    ErrorCode.AI_TIMEOUT: 504,
    ErrorCode.AI_VALIDATION_ERROR: 502,
    ErrorCode.PAYLOAD_TOO_LARGE: 502,
    ErrorCode.INTERNAL_ERROR: 500,
}

USER_MESSAGES = {
    ErrorCode.BAD_REQUEST: "Invalid request",
    ErrorCode.INVALID_PAYLOAD: "Request payload is invalid",
    ErrorCode.RATE_LIMITED: "Too many requests, please try again later",
    ErrorCode.MODERATION_REJECTED: "Content does not meet safety guidelines",
    ErrorCode.AI_SERVICE_ERROR: "AI service temporarily unavailable",
    ErrorCode.AI_TIMEOUT: "Request took too long, please try again",
    ErrorCode.AI_VALIDATION_ERROR: "Generated content failed validation",
    ErrorCode.PAYLOAD_TOO_LARGE: "Generated content was too large",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred",
}


class GenerationError(Exception):
    """Base exception for all pipeline errors"""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = context or {}
        self.request_id = request_id

    def __str__(self):
        parts = [super().__str__()]
        if self.cause:
            parts.append(f" (caused by: {type(self.cause).__name__}: {str(self.cause)})")
        if self.context:
            parts.append(f" Context: {self.context}")
        return "".join(parts)

    def get_status_code(self) -> int:
        return STATUS_CODES.get(self.code, 500)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": USER_MESSAGES.get(self.code, self.message),
            }
        }
        if self.context:
            body["error"]["details"] = self.context
        if self.request_id:
            body["requestId"] = self.request_id
        return body


# === Rejections (never routed to the fallback) ===

class InvalidInputError(GenerationError):
    """Prompt or request envelope is unusable"""
    code = ErrorCode.BAD_REQUEST


class ModerationError(GenerationError):
    """Content safety gate blocked the prompt"""
    code = ErrorCode.MODERATION_REJECTED

    def __init__(self, message: str, categories: List[str], score: int, **kwargs):
        super().__init__(message, **kwargs)
        self.categories = list(categories)
        self.score = score
        self.context.update({"categories": self.categories, "score": score})


class RateLimitedError(GenerationError):
    """Caller exceeded its request allowance"""
    code = ErrorCode.RATE_LIMITED

    def __init__(self, message: str, retry_after: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        if retry_after is not None:
            self.context["retry_after"] = round(retry_after, 1)


# === Generative service failures ===

class AIGenerationError(GenerationError):
    """Generative service call failed"""
    code = ErrorCode.AI_SERVICE_ERROR


class ApiError(AIGenerationError):
    """Non-2xx response (or transport failure when status_code is None)"""

    def __init__(self, message: str, status_code: Optional[int] = None, body_preview: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body_preview = body_preview
        self.context["status_code"] = status_code


class AITimeoutError(AIGenerationError):
    """Attempt exceeded its wall-clock budget"""
    code = ErrorCode.AI_TIMEOUT


class ParseError(AIGenerationError):
    """Response body or message content is not valid JSON"""


class NoContentError(AIGenerationError):
    """Response carried no message content"""


class ResponseTooLargeError(AIGenerationError):
    """Response exceeded the payload size ceiling"""
    code = ErrorCode.PAYLOAD_TOO_LARGE

    def __init__(self, message: str, size: int, limit: int, **kwargs):
        super().__init__(message, **kwargs)
        self.size = size
        self.limit = limit
        self.context.update({"size": size, "limit": limit})


# === Validation ===

class ValidationError(GenerationError):
    """Content validation failed"""
    code = ErrorCode.AI_VALIDATION_ERROR


class SchemaValidationError(ValidationError):
    """Parsed document does not match the requested schema"""

    def __init__(self, message: str, issues: Optional[List[str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.issues = list(issues or [])
        self.context["issues"] = self.issues


class OutputValidationError(ValidationError):
    """Final specification violates a structural invariant"""


# === Orchestration ===

class ProcessingError(GenerationError):
    """Unexpected failure inside the orchestrator"""


# === Recovery helpers ===

REJECTION_TYPES = (InvalidInputError, ModerationError, RateLimitedError)


def is_rejection(error: Exception) -> bool:
    """Errors about the request itself; the caller must see these"""
    return isinstance(error, REJECTION_TYPES)


def is_retryable(error: Exception) -> bool:
    """Check if a failed attempt is worth repeating unchanged"""
    if isinstance(error, ApiError):
        status = error.status_code
        return status is None or status == 429 or status >= 500
    if isinstance(error, (AITimeoutError, ParseError, NoContentError)):
        return True
    return isinstance(error, (httpx.TimeoutException, httpx.TransportError))


def get_retry_delay(attempt: int, base_delay: float = 1.0) -> float:
    """Exponential backoff delay before the given (0-based) retry"""
    return base_delay * (2 ** attempt)


def classify_error(error: Exception) -> str:
    """Short label used in fallback logs and metrics"""
    if isinstance(error, ApiError):
        return f"api_error:{error.status_code}" if error.status_code else "api_error:transport"
    labels = (
        (AITimeoutError, "timeout"),
        (ResponseTooLargeError, "response_too_large"),
        (ParseError, "parse_error"),
        (NoContentError, "no_content"),
        (SchemaValidationError, "schema_validation"),
        (OutputValidationError, "output_validation"),
        (ModerationError, "moderation"),
        (InvalidInputError, "invalid_input"),
        (RateLimitedError, "rate_limited"),
        (ProcessingError, "processing"),
    )
    for error_type, label in labels:
        if isinstance(error, error_type):
            return label
    return type(error).__name__
